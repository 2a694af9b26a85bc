"""
screener/watchlist.py  —  Derived watchlist columns

Holding period, change and change % are recomputed from the stored add
date and rates every time the list is shown, so the holding period keeps
counting instead of freezing at the day the row was saved.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from screener.models import WatchlistItem, WatchlistRow, parse_date

CENT = Decimal("0.01")


def auto_fields(item: WatchlistItem, today: Optional[date] = None) -> WatchlistRow:
    """Change columns stay empty until both rates are non-zero."""
    today = today or date.today()
    added = parse_date(item.add_date)
    holding_days = (today - added).days if added else None

    change = change_pct = None
    if item.add_rate and item.current_rate:
        diff       = item.current_rate - item.add_rate
        change     = diff.quantize(CENT, rounding=ROUND_HALF_UP)
        change_pct = (diff / item.add_rate * 100).quantize(CENT, rounding=ROUND_HALF_UP)
    return WatchlistRow(item=item, holding_days=holding_days,
                        change=change, change_pct=change_pct)


def annotate(items: Iterable[WatchlistItem],
             today: Optional[date] = None) -> List[WatchlistRow]:
    today = today or date.today()
    return [auto_fields(i, today) for i in items]
