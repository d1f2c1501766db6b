# -----------------------------------------------------------------------------
# Project: ChainWindow v0.1
# File:    models.py
# (c)      2025-2026 Wolfgang Lohmann
# License: MIT
# -----------------------------------------------------------------------------

# models.py
'''
Shared data model of the chain window: blocks, their transactions,
the selection/camera state and the immutable window snapshot that
readers subscribe to. Also holds the gas accounting rule.
'''

from dataclasses import dataclass, replace, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

ERROR_HASH = "ERROR_FETCHING"
UNKNOWN_PROPOSER = "UNKNOWN"


class CameraMode(str, Enum):
    LIVE = "LIVE"
    FREE = "FREE"


@dataclass(frozen=True)
class Transaction:
    hash: str
    height: str
    gas_used: int = 0
    gas_wanted: int = 0
    success: bool = True


@dataclass(frozen=True)
class Block:
    """
    One height of the chain as held in the window.
    Immutable; `just_arrived` is changed by building a replacement via with_arrival().
    """
    height: int
    hash: str
    time: str
    proposer: str = UNKNOWN_PROPOSER
    tx_count: int = 0
    txs: Tuple[Transaction, ...] = ()
    just_arrived: bool = False

    @property
    def is_degraded(self) -> bool:
        return self.hash == ERROR_HASH

    @property
    def is_ghost(self) -> bool:
        """Transaction count is known but the details failed to load."""
        return self.tx_count > 0 and not self.txs

    @property
    def display_tx_count(self) -> int:
        return len(self.txs) if self.txs else self.tx_count

    def with_arrival(self, just_arrived: bool) -> "Block":
        if self.just_arrived == just_arrived:
            return self
        return replace(self, just_arrived=just_arrived)


def degraded_block(height: int) -> Block:
    """Placeholder that keeps a height's slot when its detail could not be fetched."""
    return Block(
        height=height,
        hash=ERROR_HASH,
        time=datetime.now(timezone.utc).isoformat(),
        proposer=UNKNOWN_PROPOSER,
        tx_count=0,
        txs=(),
    )


@dataclass(frozen=True)
class SelectedObject:
    kind: str  # "block" | "tx"
    data: Any

    def __post_init__(self):
        if self.kind not in ("block", "tx"):
            raise ValueError(f"Unknown selection kind '{self.kind}'. Use 'block' or 'tx'.")


@dataclass(frozen=True)
class WindowSnapshot:
    blocks: Tuple[Block, ...] = ()
    latest_known_height: int = 0
    is_loading: bool = False
    camera_mode: CameraMode = CameraMode.LIVE
    selected_object: Optional[SelectedObject] = None
    session_gas_burned: float = 0.0
    gas_price: float = 0.0
    initialized: bool = False

    @property
    def heights(self) -> Tuple[int, ...]:
        return tuple(b.height for b in self.blocks)

    @property
    def oldest_height(self) -> Optional[int]:
        return self.blocks[0].height if self.blocks else None

    @property
    def newest_height(self) -> Optional[int]:
        return self.blocks[-1].height if self.blocks else None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view of the snapshot."""
        selected = None
        if self.selected_object is not None:
            data = self.selected_object.data
            if isinstance(data, (Block, Transaction)):
                data = asdict(data)
            selected = {"kind": self.selected_object.kind, "data": data}
        return {
            "latest_known_height": self.latest_known_height,
            "is_loading": self.is_loading,
            "camera_mode": self.camera_mode.value,
            "selected_object": selected,
            "session_gas_burned": self.session_gas_burned,
            "gas_price": self.gas_price,
            "blocks": [
                {**asdict(b), "txs": [asdict(tx) for tx in b.txs]}
                for b in self.blocks
            ],
        }


def burned_for(gas_samples: Iterable[int], price: float) -> float:
    """Gas burned for a set of newly observed blocks at one price sample."""
    return sum(gas * price for gas in gas_samples)
