# utils.py
# little helpers for the driver scripts
# - pause/stop control via flag files
# - display formatting of gas and window state

import logging
import os
import asyncio

from chainwindow.config import Config
from chainwindow.models import WindowSnapshot

logger = logging.getLogger(__name__)

CONTROL_POLL_SECONDS = 5


def control_flag(process_name: str, kind: str) -> str:
    """Flag file name, e.g. 'watch.pause.flag'."""
    return f"{process_name}.{kind}.flag"


async def check_process_controls(process_name: str):
    """
    Checks for pause and stop flag files for a given process.
    Blocks while paused. Returns True if the process should stop, False otherwise.
    """
    pause_flag = control_flag(process_name, "pause")
    stop_flag = control_flag(process_name, "stop")

    # Check for pause flag
    if os.path.exists(pause_flag):
        logger.info(f"'{pause_flag}' detected. Pausing process. To resume, run 'python -m chainwindow.control_process {process_name} resume'.")
        while os.path.exists(pause_flag) and not os.path.exists(stop_flag):
            await asyncio.sleep(CONTROL_POLL_SECONDS)
        logger.info(f"'{pause_flag}' released. Resuming process.")

    # Check for stop flag
    if os.path.exists(stop_flag):
        logger.info(f"'{stop_flag}' detected. Stopping process gracefully.")
        try:
            os.remove(stop_flag) # Clean up the flag file
        except OSError as e:
            logger.error(f"Error removing {stop_flag}: {e}")
        return True # Signal to stop

    return False # Signal to continue


def format_burned(amount: float) -> str:
    """Base-denom amount (e.g. uom) in display units (e.g. OM)."""
    display = amount / (10 ** Config.FEE_DENOM_EXPONENT)
    return f"{display:,.6f} {Config.FEE_DISPLAY_SYMBOL}"


def describe_snapshot(snapshot: WindowSnapshot) -> str:
    """One-line summary of a window snapshot for logs."""
    if not snapshot.blocks:
        return f"window empty, latest known {snapshot.latest_known_height}"

    degraded = sum(1 for b in snapshot.blocks if b.is_degraded)
    ghosts = sum(1 for b in snapshot.blocks if b.is_ghost)
    arrived = [b.height for b in snapshot.blocks if b.just_arrived]
    return (
        f"window {snapshot.oldest_height}..{snapshot.newest_height} ({len(snapshot.blocks)} blocks), "
        f"latest known {snapshot.latest_known_height}, new {arrived}, "
        f"degraded {degraded}, ghost {ghosts}, "
        f"burned {format_burned(snapshot.session_gas_burned)} @ {snapshot.gas_price}"
    )
