"""
screener/db.py  —  SQLite storage layer

Design principles:
  - Single file database (screener.db)
  - Collections are stored the way a browser keeps local storage: one JSON
    document per named key, overwritten wholesale on every change
  - Manual prices live in their own table, stored as text so Decimal values
    round-trip exactly
  - Thread-safe via check_same_thread=False (Streamlit runs in threads)
  - All SQL uses parameterised queries

Schema
──────
  storage : key -> JSON text (transactions, virtual holdings)
  prices  : manual price per symbol
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from screener import config

logger = logging.getLogger(__name__)

# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS storage (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS prices (
    symbol     TEXT PRIMARY KEY,
    price      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

# ── Connection management ─────────────────────────────────────────────────────

def _connect(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row   # rows behave like dicts
    conn.executescript(_SCHEMA)
    return conn


@contextmanager
def _tx(conn: sqlite3.Connection):
    """Context manager that commits on success, rolls back on error."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


# ── Database class ────────────────────────────────────────────────────────────

class Database:
    """
    All reads and writes go through this class.
    The stores in portfolio.py and the PriceBook delegate to it.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.DB_FILE
        self.conn = _connect(self.path)
        logger.debug("Opened database %s", self.path)

    # ── Key/value storage ─────────────────────────────────────────────────────

    def get_item(self, key: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT value FROM storage WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        with _tx(self.conn):
            self.conn.execute("""
                INSERT INTO storage (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value      = excluded.value,
                    updated_at = excluded.updated_at
            """, (key, value, datetime.now().isoformat()))

    def remove_item(self, key: str) -> None:
        with _tx(self.conn):
            self.conn.execute("DELETE FROM storage WHERE key = ?", (key,))

    # ── Manual prices ─────────────────────────────────────────────────────────

    def get_prices(self) -> Dict[str, Decimal]:
        rows = self.conn.execute("SELECT symbol, price FROM prices").fetchall()
        prices = {}
        for r in rows:
            try:
                prices[r["symbol"]] = Decimal(r["price"])
            except InvalidOperation:
                logger.warning("Ignoring unreadable stored price %r for %s",
                               r["price"], r["symbol"])
        return prices

    def set_price(self, symbol: str, price: Decimal) -> None:
        with _tx(self.conn):
            self.conn.execute("""
                INSERT INTO prices (symbol, price, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(symbol) DO UPDATE SET
                    price      = excluded.price,
                    updated_at = excluded.updated_at
            """, (symbol, format(price, "f"), datetime.now().isoformat()))

    def delete_price(self, symbol: str) -> None:
        with _tx(self.conn):
            self.conn.execute("DELETE FROM prices WHERE symbol = ?", (symbol,))

    def get_price_updated_at(self, symbol: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT updated_at FROM prices WHERE symbol = ?", (symbol,)
        ).fetchone()
        return row["updated_at"] if row else None

    def close(self) -> None:
        self.conn.close()
