# -----------------------------------------------------------------------------
# Project: ChainWindow v0.1
# File:    chain_api.py
# (c)      2025-2026 Wolfgang Lohmann
# License: MIT
# -----------------------------------------------------------------------------

# chain_api.py
'''
All functions related to the remote chain inquiry (Cosmos REST surface).
Every call is read-only and idempotent, so retried calls are safe.
Block height and block detail raise FetchError on failure; gas and fee
sampling never raise and fall back to 0.
'''

from typing import Dict, Any, Optional, List, Tuple
import logging
import time
from collections import deque
import asyncio

import aiohttp

from chainwindow.config import Config

api_call_timestamps = deque()  # Time stamps of last calls

# Two encodings of the same height filter; some nodes only match the quoted one.
TX_QUERY_VARIANTS = (
    "tx.height={height}",
    "tx.height='{height}'",
)

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the remote chain cannot deliver a usable response."""


# --- Helper to count and compute rate
def _record_api_call_and_get_rate() -> float:
    """Records the current timestamp and calculates the average rate over the window."""
    now = time.time()
    api_call_timestamps.append(now)
    return api_call_rate(now)


def api_call_rate(now: float | None = None) -> float:
    """Average calls per minute over the sliding measurement window."""
    now = time.time() if now is None else now
    window = Config.API_RATE_WINDOW_SECONDS

    # remove time stamps older than a measuring window
    while api_call_timestamps and api_call_timestamps[0] < now - window:
        api_call_timestamps.popleft()

    count_in_window = len(api_call_timestamps)
    rate_per_minute = count_in_window * 60 / window if window > 0 else 0.0
    logger.debug(f"[API Rate] Calls in last {window}s: {count_in_window}. Avg Rate: {rate_per_minute:.2f} calls/min.")
    return rate_per_minute


async def _log_aiohttp_error(response: aiohttp.ClientResponse, context: str):
    """Logs detailed error information from an aiohttp response."""
    try:
        error_data = await response.json(content_type=None)
        error_message = error_data.get('message', str(error_data))
    except Exception:
        error_message = await response.text()
    logger.error(f"Request failed for {context}: Status {response.status}, Error: {error_message}")


async def api_call(url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Central function for an API call using aiohttp.
    Every failure (status, connection, timeout, decoding) is logged and raised as FetchError,
    so a hung request ends after Config.TIMEOUT_CONNECT seconds.
    """
    _record_api_call_and_get_rate()
    timeout = aiohttp.ClientTimeout(total=Config.TIMEOUT_CONNECT)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    await _log_aiohttp_error(response, f"api_call to {url}")
                    raise FetchError(f"HTTP {response.status} from {url}")
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise FetchError(f"Invalid JSON from {url}: {e}") from e
    except aiohttp.ClientConnectorError as e:
        logger.error(f"Connection Error: Failed to connect to {url}: {e}")
        raise FetchError(f"Connection to {url} failed") from e
    except asyncio.TimeoutError as e:
        logger.error(f"Timeout Error: Request to {url} timed out after {Config.TIMEOUT_CONNECT} seconds.")
        raise FetchError(f"Timeout on {url}") from e
    except aiohttp.ClientError as e:
        logger.error(f"ClientError on {url}: {e}")
        raise FetchError(f"Client error on {url}") from e

    if not isinstance(data, dict):
        raise FetchError(f"Unexpected response format from {url}: {type(data).__name__}")
    return data


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _normalize_tx_response(tx: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Normalises a Cosmos tx_response to keys: hash, height, gas_used, gas_wanted, success
    """
    tx_hash = tx.get("txhash")
    if not tx_hash:
        return None
    return {
        "hash": str(tx_hash),
        "height": str(tx.get("height", "")),
        # Gas is returned as string in Cosmos SDK
        "gas_used": max(0, _to_int(tx.get("gas_used"))),
        "gas_wanted": max(0, _to_int(tx.get("gas_wanted"))),
        "success": _to_int(tx.get("code"), default=-1) == 0,
    }


def _parse_block(data: Dict[str, Any], height: int) -> Dict[str, Any]:
    try:
        header = data["block"]["header"]
        block_hash = data["block_id"]["hash"]
    except (KeyError, TypeError) as e:
        raise FetchError(f"Unexpected block format for height {height}: missing {e}") from e

    raw_txs = (data["block"].get("data") or {}).get("txs") or []
    return {
        "height": _to_int(header.get("height"), default=height),
        "hash": block_hash,
        "time": header.get("time", ""),
        "proposer": header.get("proposer_address") or "UNKNOWN",
        "raw_txs": list(raw_txs),
    }


def _parse_fee(data: Dict[str, Any]) -> float:
    """Accepts the feemarket gas_price shapes and the EVM base_fee shape."""
    for key in ("price", "gas_price"):
        entry = data.get(key)
        if isinstance(entry, dict) and entry.get("amount") is not None:
            return float(entry["amount"])
    if data.get("base_fee") is not None:
        return float(data["base_fee"])
    raise FetchError(f"No fee field in response: {list(data.keys())}")


async def get_latest_height() -> int:
    """Height of the current chain head."""
    url = f"{Config.API_BASE_URL}/cosmos/base/tendermint/v1beta1/blocks/latest"
    data = await api_call(url)
    try:
        return int(data["block"]["header"]["height"])
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Unexpected response format for latest block: {e}")
        raise FetchError("Could not read latest block height") from e


async def get_block(height: int) -> Dict[str, Any]:
    """Block metadata and raw transaction references for one height."""
    url = f"{Config.API_BASE_URL}/cosmos/base/tendermint/v1beta1/blocks/{height}"
    if Config.VERBOSE:
        logger.info(f"API Request URL (get_block): {url}")
    data = await api_call(url)
    return _parse_block(data, height)


async def search_transactions_by_height(
    height: int,
    query_variant: int = 0,
    cursor: str | None = None
) -> Tuple[List[Dict[str, Any]], str | None]:
    """
    One page of the transaction search for a block height.
    Returns (normalized transactions, next page cursor or None).
    """
    url = f"{Config.API_BASE_URL}/cosmos/tx/v1beta1/txs"
    params = {
        Config.TX_SEARCH_PARAM: TX_QUERY_VARIANTS[query_variant].format(height=height),
        "pagination.limit": str(Config.TX_PAGE_LIMIT),
    }
    if cursor:
        params["pagination.key"] = cursor

    data = await api_call(url, params=params)

    transactions: List[Dict[str, Any]] = []
    for tx in data.get("tx_responses") or []:
        ntx = _normalize_tx_response(tx) if isinstance(tx, dict) else None
        if not ntx:
            logger.warning(f"Skipping unrecognized tx_response for height {height}")
            continue
        transactions.append(ntx)

    next_cursor = (data.get("pagination") or {}).get("next_key") or None
    return transactions, next_cursor


async def collect_transaction_pages(search, height: int, query_variant: int) -> List[Dict[str, Any]]:
    """
    Follows the pagination cursor of one query encoding.
    Stops on a repeated cursor or after Config.MAX_TX_PAGES pages. Errors propagate.
    """
    collected: List[Dict[str, Any]] = []
    cursor = None
    seen_cursors = set()

    for _ in range(Config.MAX_TX_PAGES):
        page, cursor = await search(height, query_variant, cursor)
        collected.extend(page)
        if not cursor:
            break
        if cursor in seen_cursors:
            logger.warning(f"Repeated pagination cursor for block {height}. Stopping.")
            break
        seen_cursors.add(cursor)
    else:
        logger.warning(f"Pagination for block {height} hit the cap of {Config.MAX_TX_PAGES} pages.")

    return collected


async def collect_transactions(height: int, search=None) -> List[Dict[str, Any]]:
    """
    All transactions of a height. If the first query encoding fails or yields
    nothing, the second one is tried once. Returns [] if both come back empty.

    `search` defaults to search_transactions_by_height of this module.
    """
    search = search or search_transactions_by_height
    for variant in range(len(TX_QUERY_VARIANTS)):
        try:
            transactions = await collect_transaction_pages(search, height, variant)
        except Exception as e:
            logger.warning(f"Error fetching transactions for block {height} (query variant {variant}): {e}")
            continue
        if transactions:
            return transactions
        logger.debug(f"Query variant {variant} returned no transactions for block {height}.")
    return []


async def get_block_gas(height: int) -> int:
    """Total gas used by the transactions of one height. 0 on failure."""
    transactions = await collect_transactions(height)
    return sum(tx["gas_used"] for tx in transactions)


async def get_base_fee() -> float:
    """Current base fee (gas price). 0 on failure."""
    url = f"{Config.API_BASE_URL}{Config.BASE_FEE_PATH}"
    try:
        data = await api_call(url)
        return _parse_fee(data)
    except (FetchError, ValueError) as e:
        logger.warning(f"Base fee sample failed: {e}. Using 0.")
        return 0.0
