"""
config.py
Environment-driven settings (.env supported) and logging setup.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DB_FILE = Path(os.getenv("SUBS_DB_FILE", str(Path(__file__).with_name("subscription.db"))))
LOG_LEVEL = os.getenv("SUBS_LOG_LEVEL", "INFO")
SAMPLE_DATA_ENABLED = os.getenv("SUBS_SAMPLE_DATA", "1").strip().lower() not in ("0", "false", "no", "off")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure the root logger once (console handler).
    Streamlit re-runs the script on every interaction, so repeated calls must be no-ops.
    """
    root = logging.getLogger()
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    root.setLevel(log_level)

    if not any(getattr(h, "_subs_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._subs_handler = True
        root.addHandler(handler)

    return root
