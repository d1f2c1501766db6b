"""Shared fixtures: an in-memory chain source standing in for chain_api."""

import asyncio

import pytest

from chainwindow.chain_api import FetchError
from chainwindow.fetch_service import BlockFetcher
from chainwindow.window_store import ChainWindowStore


class FakeChainApi:
    """
    Duck-typed replacement for the chain_api module.

    - head: current chain head (raise on None)
    - failing_blocks: heights whose get_block raises FetchError
    - tx_counts: height -> number of raw txs in the block (default 0)
    - tx_pages: (height, variant) -> list of pages, each a list of tx dicts
    - gas: height -> gas used (default 100); gas_failures raise
    - fee: base fee returned by get_base_fee (exception instance is raised)
    """

    def __init__(self, head=100):
        self.head = head
        self.failing_blocks = set()
        self.tx_counts = {}
        self.tx_pages = {}
        self.gas = {}
        self.gas_failures = set()
        self.fee = 2.0
        self.block_calls = []
        self.search_calls = []
        self.gas_calls = []
        self.block_delays = {}

    async def get_latest_height(self):
        if self.head is None:
            raise FetchError("head unavailable")
        return self.head

    async def get_block(self, height):
        self.block_calls.append(height)
        delay = self.block_delays.get(height)
        if delay:
            await asyncio.sleep(delay)
        if height in self.failing_blocks:
            raise FetchError(f"block {height} unavailable")
        count = self.tx_counts.get(height, 0)
        return {
            "height": height,
            "hash": f"HASH{height}",
            "time": "2025-01-01T00:00:00Z",
            "proposer": "PROPOSER",
            "raw_txs": ["dHg="] * count,
        }

    async def search_transactions_by_height(self, height, query_variant=0, cursor=None):
        self.search_calls.append((height, query_variant, cursor))
        pages = self.tx_pages.get((height, query_variant))
        if pages is None:
            return [], None
        if isinstance(pages, Exception):
            raise pages
        index = int(cursor) if cursor else 0
        next_cursor = str(index + 1) if index + 1 < len(pages) else None
        return pages[index], next_cursor

    async def get_block_gas(self, height):
        self.gas_calls.append(height)
        if height in self.gas_failures:
            raise FetchError(f"gas for {height} unavailable")
        return self.gas.get(height, 100)

    async def get_base_fee(self):
        if isinstance(self.fee, Exception):
            raise self.fee
        return self.fee


def make_tx(height, n, gas_used=50, code=0):
    return {
        "hash": f"TX{height}-{n}",
        "height": str(height),
        "gas_used": gas_used,
        "gas_wanted": gas_used * 2,
        "success": code == 0,
    }


@pytest.fixture
def api():
    return FakeChainApi()


@pytest.fixture
def fetcher(api):
    return BlockFetcher(api)


@pytest.fixture
def store(fetcher):
    return ChainWindowStore(fetcher)
