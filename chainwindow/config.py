# -----------------------------------------------------------------------------
# Project: ChainWindow v0.1
# File:    config.py
# (c)      2025-2026 Wolfgang Lohmann
# License: MIT
# -----------------------------------------------------------------------------

# chainwindow/config.py
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

class Config:
    """
    Central Configuration.
    Uses pathlib to find paths relative to THIS file, not the current working directory.
    """

    # Project root is two levels up (chainwindow/config.py)
    BASE_DIR = Path(__file__).resolve().parent.parent

    ENV_PATH = BASE_DIR / "local_config" / ".env"

    # Path for outputs (Logs, snapshot JSON)
    OUTPUT_DIR = BASE_DIR / "output"
    os.makedirs(OUTPUT_DIR, exist_ok=True)

    if ENV_PATH.exists():
        load_dotenv(ENV_PATH)
    else:
        print(f"WARNING: .env not found at {ENV_PATH}")

    CHAIN_WINDOW_ID = "ChainWindow v0.1"

    # --- Remote chain (Cosmos REST surface) ---
    API_BASE_URL: str = os.getenv("CW_API_BASE_URL", "https://api.archive.mantrachain.io").rstrip("/")
    FEE_DENOM = os.getenv("CW_FEE_DENOM", "uom")
    BASE_FEE_PATH: str = os.getenv("CW_BASE_FEE_PATH", f"/feemarket/v1/gas_price/{FEE_DENOM}")

    # 'events' for older SDK nodes, 'query' for SDK >= 0.50
    TX_SEARCH_PARAM: str = os.getenv("CW_TX_SEARCH_PARAM", "events")
    TX_PAGE_LIMIT = 100
    MAX_TX_PAGES = 20

    FEE_DENOM_EXPONENT = 6
    FEE_DISPLAY_SYMBOL = "OM"

    # --- Window behaviour ---
    MAX_BLOCKS = int(os.getenv("CW_MAX_BLOCKS", 50))
    INITIAL_BATCH_SIZE = 10
    OLDER_BATCH_SIZE = 10
    CATCHUP_LIMIT = 5

    # --- Control Behavior ---
    POLL_INTERVAL = float(os.getenv("CW_POLL_INTERVAL", 3.5))
    INIT_RETRY_DELAY = 5.0
    TIMEOUT_CONNECT = float(os.getenv("CW_TIMEOUT", 10.0))
    API_RATE_WINDOW_SECONDS = 60
    VERBOSE = os.getenv("CW_VERBOSE", "False").lower() in ('true', '1', 't')

    # --- File Paths ---
    LOG_FILE = str(OUTPUT_DIR / "chain_window.log")
    SNAPSHOT_FILE: Optional[str] = str(OUTPUT_DIR / "window_snapshot.json")
