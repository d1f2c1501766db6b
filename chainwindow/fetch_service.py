# -----------------------------------------------------------------------------
# Project: ChainWindow v0.1
# File:    fetch_service.py
# (c)      2025-2026 Wolfgang Lohmann
# License: MIT
# -----------------------------------------------------------------------------

# fetch_service.py
# Turns a set of requested heights into an ordered batch of blocks.
# A failed height degrades to a placeholder block instead of aborting the batch.

import logging
import asyncio
from typing import Any, Iterable, List

from chainwindow import chain_api
from chainwindow.models import Block, Transaction, degraded_block

logger = logging.getLogger(__name__)


class BlockFetcher:
    """
    Fetch orchestration on top of a remote chain source.

    `api` is the chain_api module by default; any object exposing the same
    coroutines (get_latest_height, get_block, search_transactions_by_height,
    get_block_gas, get_base_fee) can be injected instead.
    """

    def __init__(self, api: Any = chain_api):
        self.api = api

    async def latest_height(self) -> int:
        """Current chain head. Raises FetchError; callers decide how to react."""
        return await self.api.get_latest_height()

    async def fetch_transactions(self, height: int) -> List[Transaction]:
        """
        Collects all transaction pages of a height.
        If the first query encoding yields nothing, the second one is tried once.
        Returns [] (ghost transactions) if both fail or stay empty.
        """
        raw = await chain_api.collect_transactions(height, search=self.api.search_transactions_by_height)
        if raw:
            return [Transaction(**tx) for tx in raw]

        logger.warning(f"No transaction detail for block {height}. Keeping ghost transactions.")
        return []

    async def fetch_block(self, height: int) -> Block:
        """Block detail for one height, or a degraded placeholder on failure."""
        try:
            data = await self.api.get_block(height)
            tx_count = len(data.get("raw_txs") or [])
            txs: List[Transaction] = []
            if tx_count > 0:
                txs = await self.fetch_transactions(height)

            return Block(
                height=int(data.get("height", height)),
                hash=data["hash"],
                time=data.get("time", ""),
                proposer=data.get("proposer") or "UNKNOWN",
                tx_count=tx_count,
                txs=tuple(txs),
            )
        except Exception as e:
            logger.error(f"Error processing block {height}: {e}")
            return degraded_block(height)

    async def fetch_range(self, heights: Iterable[int]) -> List[Block]:
        """
        Fetches all requested heights concurrently.
        The result is sorted ascending by height, never by completion order.
        """
        wanted = sorted({h for h in heights if h >= 1})
        if not wanted:
            return []

        logger.info(f"Fetching {len(wanted)} block(s): {wanted[0]}..{wanted[-1]}")
        blocks = await asyncio.gather(*(self.fetch_block(h) for h in wanted))

        degraded = [b.height for b in blocks if b.is_degraded]
        if degraded:
            logger.warning(f"{len(degraded)} block(s) degraded to placeholders: {degraded}")

        return sorted(blocks, key=lambda b: b.height)

    async def _safe_block_gas(self, height: int) -> int:
        try:
            return max(0, int(await self.api.get_block_gas(height)))
        except Exception as e:
            logger.warning(f"Gas sample for block {height} failed: {e}. Using 0.")
            return 0

    async def sample_block_gas(self, heights: Iterable[int]) -> List[int]:
        """Per-height gas samples in the given order; failures count as 0."""
        return list(await asyncio.gather(*(self._safe_block_gas(h) for h in heights)))

    async def sample_base_fee(self, fallback: float = 0.0) -> float:
        """Fresh base fee, or `fallback` when the sample is unavailable."""
        try:
            fee = float(await self.api.get_base_fee())
        except Exception as e:
            logger.warning(f"Base fee sample failed: {e}. Using last known {fallback}.")
            return fallback
        return fee if fee > 0 else fallback
