# -----------------------------------------------------------------------------
# Project: ChainWindow v0.1
# File:    cw_watch.py
# (c)      2025-2026 Wolfgang Lohmann
# License: MIT
# -----------------------------------------------------------------------------

# cw_watch.py
'''
Drives the chain window: the fixed-interval poll timer and the
"scrolled to the oldest entry" backfill signal.

- init() is retried until the chain head is known; the poll timer only
  starts afterwards, so a poll never overlaps the initial load.
- --backfill N issues N load_older() requests after init.
- --dump writes the window snapshot after every commit.

Control a running watcher with:
  python -m chainwindow.control_process watch pause|resume|stop
'''

import asyncio
import logging
import argparse
import os

from chainwindow.config import Config
from chainwindow import chain_api
from chainwindow import utils
from chainwindow.fetch_service import BlockFetcher
from chainwindow.snapshot_writer import SnapshotWriter
from chainwindow.window_store import ChainWindowStore, PollStatus

PROCESS_NAME = "watch"

logger = logging.getLogger(__name__)


def configure_logging():
    if hasattr(Config, 'LOG_FILE') and Config.LOG_FILE:
        log_dir = os.path.dirname(Config.LOG_FILE)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(Config.LOG_FILE, mode='a', encoding='utf-8'),
            logging.StreamHandler()
        ]
    )


def log_commit(snapshot):
    # loading toggles are not worth a line
    if not snapshot.is_loading:
        logger.info(utils.describe_snapshot(snapshot))


async def init_until_ready(store: ChainWindowStore) -> bool:
    """Retries init() until it succeeds. Returns False if a stop was requested first."""
    attempt = 0
    while True:
        attempt += 1
        try:
            await store.init()
            return True
        except Exception as e:
            logger.warning(f"Init attempt {attempt} failed: {e}. Retrying in {Config.INIT_RETRY_DELAY}s.")
        if await utils.check_process_controls(PROCESS_NAME):
            return False
        await asyncio.sleep(Config.INIT_RETRY_DELAY)


async def poll_loop(store: ChainWindowStore, interval: float):
    failures = 0
    while True:
        if await utils.check_process_controls(PROCESS_NAME):
            break

        outcome = await store.poll()
        if outcome.status == PollStatus.FAILED:
            failures += 1
            if failures % 10 == 0:
                logger.warning(f"{failures} consecutive poll failures. Last error: {outcome.error}")
        else:
            failures = 0

        await asyncio.sleep(interval)


async def main_watch(duration_minutes: int | None, interval: float, backfill: int, dump_file: str | None):
    """
    Starts the chain window watcher.
    - If duration_minutes is provided, it runs for that specific time.
    - If duration_minutes is None, it runs as a continuous service.
    """
    mode = f"DURATION mode for {duration_minutes} minutes" if duration_minutes else "CONTINUOUS mode"
    logger.info(f"\n--- Starting {Config.CHAIN_WINDOW_ID} Watcher in {mode} ({Config.API_BASE_URL}) ---")

    store = ChainWindowStore(BlockFetcher(chain_api))
    store.subscribe(log_commit)
    if dump_file:
        writer = SnapshotWriter(dump_file)
        store.subscribe(writer.save)
        logger.info(f"Writing window snapshots to {dump_file}")

    async def run():
        if not await init_until_ready(store):
            return
        for i in range(backfill):
            added = await store.load_older()
            logger.info(f"Backfill {i + 1}/{backfill}: {added} older block(s).")
            if added == 0:
                break
        await poll_loop(store, interval)

    try:
        if duration_minutes:
            watch_task = asyncio.create_task(run())
            try:
                await asyncio.wait_for(watch_task, timeout=duration_minutes * 60)
            except asyncio.TimeoutError:
                logger.info("Watcher stopped after duration.")
        else:
            await run()
    except asyncio.CancelledError:
        pass

    logger.info(f"API rate at shutdown: {chain_api.api_call_rate():.2f} calls/min.")
    logger.info("\n--- Chain Window Watcher has been stopped. ---")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Mirror the tail of the chain into a bounded local window.")
    parser.add_argument('-d', '--duration', type=int, help="Optional: Run for a specific duration in minutes.")
    parser.add_argument('-i', '--interval', type=float, default=Config.POLL_INTERVAL, help=f"Poll interval in seconds (default {Config.POLL_INTERVAL}).")
    parser.add_argument('-b', '--backfill', type=int, default=0, metavar='N', help="Load N older batches after init.")
    parser.add_argument('--dump', nargs='?', const=Config.SNAPSHOT_FILE, metavar='FILE', help="Write the window snapshot JSON after every change.")
    parser.add_argument('--api-base', type=str, help="Override the chain REST base URL.")
    args = parser.parse_args()

    configure_logging()

    if args.api_base:
        logger.info(f"Overriding API base URL to: {args.api_base}")
        Config.API_BASE_URL = args.api_base.rstrip("/")

    if args.interval <= 0:
        parser.error("--interval must be positive.")
    if args.backfill < 0:
        parser.error("--backfill cannot be negative.")

    try:
        asyncio.run(main_watch(args.duration, args.interval, args.backfill, args.dump))
    except KeyboardInterrupt:
        logging.info("\n--- Chain Window Watcher stopped by user (Ctrl+C). ---")
