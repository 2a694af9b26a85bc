"""
screener/config.py  —  Settings shared by the CLI, the dashboard and the stores

Everything here is a plain module constant. The few values that differ per
machine (database file, log level) can be overridden from the environment.
"""

import logging
import os
from decimal import Decimal
from typing import Optional

# ── Storage ───────────────────────────────────────────────────────────────────
DB_FILE        = os.getenv("SCREENER_DB", "screener.db")
ACTUAL_PL_KEY  = "stock_screener_actual_pl"
VIRTUAL_PL_KEY = "virtual_pl_holdings"
WATCHLIST_KEY  = "stock_screener_watchlist"

# ── Display ───────────────────────────────────────────────────────────────────
CURRENCY = "₹"

# ── Mock prices (no live feed) ────────────────────────────────────────────────
DEFAULT_PRICES = {
    "RELIANCE": Decimal("2875.2"),
    "TCS":      Decimal("3842.5"),
    "HDFCBANK": Decimal("1502.9"),
    "INFY":     Decimal("1410.6"),
    "ITC":      Decimal("450.8"),
}

# ── Watchlist ─────────────────────────────────────────────────────────────────
RED_FLAG_OPTIONS = [
    "Seasonal",
    "-ve cash Flow",
    "Low Bank Bal",
    "High Debt",
    "Low Promoter Holding",
]

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL  = os.getenv("SCREENER_LOG_LEVEL", "WARNING")
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging once for whichever front end is starting."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
