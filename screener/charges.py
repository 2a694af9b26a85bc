"""
screener/charges.py  —  Per-row charge impact

A single-row estimate shown next to each transaction: the trade price less
all itemised charges. It looks at one row in isolation and never nets a
sale against the original purchase, so it is not the realised P&L (that
comes from the ledger).
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from screener.models import ZERO, Action, Transaction

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ChargeBreakdown:
    total_fees: Decimal
    net_pl:     Decimal
    return_pct: Optional[Decimal]   # None when there is no buy leg


def compute_charges(t: Transaction) -> ChargeBreakdown:
    buy  = t.price if t.action is Action.BUY else ZERO
    sale = t.price if t.action is Action.SELL else ZERO
    total_fees = t.total_charges
    net_pl = sale - buy - total_fees
    return_pct = net_pl / buy * HUNDRED if buy != 0 else None
    return ChargeBreakdown(total_fees=total_fees, net_pl=net_pl,
                           return_pct=return_pct)


def with_charges(transactions: Iterable[Transaction]
                 ) -> List[Tuple[Transaction, ChargeBreakdown]]:
    return [(t, compute_charges(t)) for t in transactions]
