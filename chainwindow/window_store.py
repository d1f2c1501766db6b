# -----------------------------------------------------------------------------
# Project: ChainWindow v0.1
# File:    window_store.py
# (c)      2025-2026 Wolfgang Lohmann
# License: MIT
# -----------------------------------------------------------------------------

# window_store.py
'''
The chain window state machine.

Holds the ordered block window, the latest known height, the backfill
loading flag and the session gas accumulator. All state lives in one
immutable WindowSnapshot that is replaced in a single commit at the end
of each action, so readers never see a partial update.

Actions:
- init():        first bulk load of the most recent heights
- poll():        timer-driven catch-up (capped per cycle), FIFO trimmed
- load_older():  user-driven backfill toward older heights, no trimming
'''

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Tuple

from chainwindow.config import Config
from chainwindow.fetch_service import BlockFetcher
from chainwindow.models import Block, CameraMode, SelectedObject, WindowSnapshot, burned_for

logger = logging.getLogger(__name__)

Listener = Callable[[WindowSnapshot], None]


class PollStatus(str, Enum):
    NOT_READY = "not_ready"
    NO_NEW_BLOCKS = "no_new_blocks"
    APPENDED = "appended"
    ADVANCED = "advanced"
    FAILED = "failed"


@dataclass(frozen=True)
class PollOutcome:
    """Soft result of a poll cycle. poll() never raises."""
    status: PollStatus
    heights: Tuple[int, ...] = ()
    error: Optional[str] = None


class ChainWindowStore:
    """
    Explicitly owned window state. Only the store commits window, height and gas
    state; the presentation layer reads snapshots and may only change the camera
    mode and the selection.
    """

    def __init__(
        self,
        fetcher: BlockFetcher,
        max_blocks: int = Config.MAX_BLOCKS,
        initial_batch_size: int = Config.INITIAL_BATCH_SIZE,
        older_batch_size: int = Config.OLDER_BATCH_SIZE,
        catchup_limit: int = Config.CATCHUP_LIMIT,
    ):
        self.fetcher = fetcher
        self.max_blocks = max_blocks
        self.initial_batch_size = initial_batch_size
        self.older_batch_size = older_batch_size
        self.catchup_limit = catchup_limit
        self._state = WindowSnapshot()
        self._listeners: List[Listener] = []

    # --- read side ---

    @property
    def snapshot(self) -> WindowSnapshot:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a read-only listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, **changes) -> WindowSnapshot:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.error(f"Window listener {listener!r} failed: {e}", exc_info=True)
        return self._state

    # --- actions ---

    async def init(self) -> None:
        """
        Loads the most recent heights and seeds the gas accumulator.
        Raises if the chain head cannot be determined; is_loading is cleared either way.
        """
        self._commit(is_loading=True)
        try:
            head = await self.fetcher.latest_height()
            first = max(1, head - self.initial_batch_size + 1)
            logger.info(f"Init: chain head {head}, loading heights {first}..{head}")

            fetched = await self.fetcher.fetch_range(range(first, head + 1))
            blocks = tuple(b.with_arrival(False) for b in sorted(fetched, key=lambda b: b.height))

            base_fee = await self.fetcher.sample_base_fee()
            gas_samples = await self.fetcher.sample_block_gas([b.height for b in blocks])
            initial_gas = burned_for(gas_samples, base_fee)

            self._commit(
                blocks=blocks,
                latest_known_height=head,
                is_loading=False,
                session_gas_burned=initial_gas,
                gas_price=base_fee,
                initialized=True,
            )
            logger.info(f"Init complete: {len(blocks)} blocks, gas burned {initial_gas}, base fee {base_fee}")
        except Exception as e:
            logger.error(f"Init failed: {e}")
            self._commit(is_loading=False)
            raise

    async def poll(self) -> PollOutcome:
        """
        One catch-up cycle. Fetches at most `catchup_limit` new heights above the
        latest known height; any remaining backlog is skipped, as latest_known_height
        advances to the observed head. Failures leave the state untouched.
        """
        start = self._state
        if not start.initialized:
            return PollOutcome(PollStatus.NOT_READY)

        try:
            head = await self.fetcher.latest_height()
            known = start.latest_known_height
            if head <= known:
                return PollOutcome(PollStatus.NO_NEW_BLOCKS)

            last = min(head, known + self.catchup_limit)
            if head > last:
                logger.info(f"Catch-up capped: fetching {known + 1}..{last}, skipping {last + 1}..{head}")
            new_blocks = await self.fetcher.fetch_range(range(known + 1, last + 1))

            fee_to_use = await self.fetcher.sample_base_fee(fallback=start.gas_price)
            gas_samples = await self.fetcher.sample_block_gas([b.height for b in new_blocks])
        except Exception as e:
            logger.debug(f"Poll failed silently: {e}")
            return PollOutcome(PollStatus.FAILED, error=str(e))

        # Merge against the window as it is now; another action may have committed meanwhile.
        current = self._state
        newest = current.newest_height or 0
        cutoff = max(current.latest_known_height, newest)
        fresh = [
            (b.with_arrival(True), gas)
            for b, gas in zip(new_blocks, gas_samples)
            if b.height > cutoff
        ]
        if not fresh:
            if head <= current.latest_known_height:
                return PollOutcome(PollStatus.NO_NEW_BLOCKS)
            # An overlapping poll already appended these heights; only the head moves.
            self._commit(latest_known_height=head)
            logger.info(f"Poll: head {head}, nothing left to append")
            return PollOutcome(PollStatus.ADVANCED)

        merged = [b.with_arrival(False) for b in current.blocks] + [b for b, _ in fresh]
        trimmed = tuple(merged[-self.max_blocks:]) if self.max_blocks > 0 else ()
        new_gas = burned_for((gas for _, gas in fresh), fee_to_use)

        self._commit(
            blocks=trimmed,
            latest_known_height=max(head, current.latest_known_height),
            session_gas_burned=current.session_gas_burned + new_gas,
            gas_price=fee_to_use,
        )
        heights = tuple(b.height for b, _ in fresh)
        logger.info(f"Poll: head {head}, appended {list(heights)}, window {len(trimmed)}, gas +{new_gas}")
        return PollOutcome(PollStatus.APPENDED, heights=heights)

    async def load_older(self) -> int:
        """
        Prepends up to `older_batch_size` heights below the oldest held block.
        No-op while a backfill is running or the window is empty. Never requests height < 1.
        Returns the number of blocks prepended.
        """
        start = self._state
        if start.is_loading or not start.blocks:
            return 0

        self._commit(is_loading=True)
        added = 0
        try:
            oldest = start.blocks[0].height
            first = max(1, oldest - self.older_batch_size)
            heights = range(first, oldest)
            if not heights:
                logger.info("Load older: already at height 1, nothing to fetch.")
                return 0

            fetched = await self.fetcher.fetch_range(heights)
            older = sorted((b.with_arrival(False) for b in fetched), key=lambda b: b.height)

            current = self._state
            cutoff = current.oldest_height
            if cutoff is not None:
                older = [b for b in older if b.height < cutoff]
            added = len(older)
            self._commit(blocks=tuple(older) + current.blocks, is_loading=False)
            logger.info(f"Load older: prepended {added} block(s), window now {len(self._state.blocks)}")
            return added
        except Exception as e:
            logger.error(f"Load older failed: {e}")
            return 0
        finally:
            if self._state.is_loading:
                self._commit(is_loading=False)

    def set_camera_mode(self, mode: CameraMode) -> None:
        self._commit(camera_mode=CameraMode(mode))

    def select_object(self, obj: Optional[SelectedObject]) -> None:
        self._commit(selected_object=obj)
