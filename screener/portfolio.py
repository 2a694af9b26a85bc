"""
screener/portfolio.py  —  Persisted transaction list, virtual holdings and watchlist

Each book keeps an ordered list in memory and mirrors it to a single named
key in the database as a JSON array of flat records. Every change rewrites
the whole array; there is no incremental diffing.

Summaries are never stored. Portfolio.summary() re-runs the ledger over the
current list each time it is called.
"""

import json
import logging
from datetime import date
from typing import Callable, Generic, List, Optional, TypeVar

from screener import config
from screener.charges import with_charges
from screener.csv_import import parse_transactions_csv
from screener.db import Database
from screener.exporter import transactions_to_csv
from screener.ledger import PriceLookup, compute_summary
from screener.models import (
    PortfolioSummary, Transaction, VirtualHolding, VirtualTotals, WatchlistItem, WatchlistRow,
)
from screener.virtual import calc_all, summarize
from screener.watchlist import annotate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _RecordList(Generic[T]):
    """Ordered records under one storage key."""

    def __init__(self, db: Database, key: str,
                 from_record: Callable[[dict], T]):
        self._db          = db
        self._key         = key
        self._from_record = from_record
        self.items: List[T] = []
        self._load()

    def _load(self) -> None:
        self.items = []
        raw = self._db.get_item(self._key)
        if raw is None:
            return
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Stored data under %r is not valid JSON (%s); "
                           "starting empty", self._key, e)
            return
        if not isinstance(data, list):
            logger.warning("Stored data under %r is not a list; starting empty",
                           self._key)
            return
        for i, record in enumerate(data):
            try:
                self.items.append(self._from_record(record))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("Skipping stored record %d under %r: %s",
                               i, self._key, e)

    def _save(self) -> None:
        payload = json.dumps([item.to_record() for item in self.items])
        self._db.set_item(self._key, payload)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            raise IndexError(f"No record at position {index} "
                             f"({len(self.items)} stored)")

    def prepend(self, items: List[T]) -> None:
        self.items = list(items) + self.items
        self._save()

    def append(self, item: T) -> None:
        self.items.append(item)
        self._save()

    def replace(self, index: int, item: T) -> None:
        self._check_index(index)
        self.items[index] = item
        self._save()

    def delete(self, index: int) -> T:
        self._check_index(index)
        removed = self.items.pop(index)
        self._save()
        return removed

    def __len__(self) -> int:
        return len(self.items)


# ── Actual P&L ────────────────────────────────────────────────────────────────

class Portfolio:
    def __init__(self, db: Database, key: Optional[str] = None):
        self._book = _RecordList(db, key or config.ACTUAL_PL_KEY,
                                 Transaction.from_record)

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._book.items)

    def add_transaction(self, txn: Transaction) -> None:
        """Appended, so the ledger sees hand-entered trades in entry order."""
        self._book.append(txn)

    def update_transaction(self, index: int, txn: Transaction) -> None:
        self._book.replace(index, txn)

    def delete_transaction(self, index: int) -> Transaction:
        return self._book.delete(index)

    def import_csv(self, text) -> int:
        """
        Prepend every acceptable row of a CSV export. Raises CsvImportError
        (store untouched) if the file cannot be parsed.
        """
        imported = parse_transactions_csv(text)
        if imported:
            self._book.prepend(imported)
        logger.info("Imported %d transaction(s)", len(imported))
        return len(imported)

    def export_csv(self) -> str:
        return transactions_to_csv(self._book.items)

    def summary(self, price_of: PriceLookup) -> PortfolioSummary:
        return compute_summary(self._book.items, price_of)

    def charge_rows(self):
        return with_charges(self._book.items)

    def __len__(self) -> int:
        return len(self._book)


# ── Virtual P&L ───────────────────────────────────────────────────────────────

class VirtualPortfolio:
    def __init__(self, db: Database, key: Optional[str] = None):
        self._book = _RecordList(db, key or config.VIRTUAL_PL_KEY,
                                 VirtualHolding.from_record)

    @property
    def holdings(self) -> List[VirtualHolding]:
        return list(self._book.items)

    def add_holding(self, holding: VirtualHolding) -> None:
        self._book.append(holding)

    def update_holding(self, index: int, holding: VirtualHolding) -> None:
        self._book.replace(index, holding)

    def delete_holding(self, index: int) -> VirtualHolding:
        return self._book.delete(index)

    def rows(self, price_of: PriceLookup):
        return calc_all(self._book.items, price_of)

    def totals(self, price_of: PriceLookup) -> VirtualTotals:
        return summarize(self._book.items, price_of)

    def __len__(self) -> int:
        return len(self._book)


# ── Watchlist ─────────────────────────────────────────────────────────────────

class Watchlist:
    def __init__(self, db: Database, key: Optional[str] = None):
        self._book = _RecordList(db, key or config.WATCHLIST_KEY,
                                 WatchlistItem.from_record)

    @property
    def items(self) -> List[WatchlistItem]:
        return list(self._book.items)

    def add_item(self, item: WatchlistItem) -> None:
        """Newest first."""
        self._book.prepend([item])

    def update_item(self, index: int, item: WatchlistItem) -> None:
        self._book.replace(index, item)

    def delete_item(self, index: int) -> WatchlistItem:
        return self._book.delete(index)

    def rows(self, today: Optional[date] = None) -> List[WatchlistRow]:
        return annotate(self._book.items, today)

    def __len__(self) -> int:
        return len(self._book)
