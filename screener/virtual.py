"""
screener/virtual.py  —  Virtual P&L for hypothetical holdings

A virtual holding is "what if I had bought N shares at this price". It is
marked straight against the current price, independent of the ledger.
"""

from decimal import Decimal
from typing import Iterable, List

from screener.ledger import PriceLookup
from screener.models import ZERO, VirtualHolding, VirtualPL, VirtualTotals, to_decimal


def calc_pl(holding: VirtualHolding, price_of: PriceLookup) -> VirtualPL:
    current_price = to_decimal(price_of(holding.symbol))
    invested      = holding.invested
    current_value = current_price * holding.quantity
    profit        = current_value - invested
    percent       = profit / invested * Decimal("100") if invested else ZERO
    return VirtualPL(holding=holding, current_price=current_price,
                     invested=invested, current_value=current_value,
                     profit=profit, percent=percent)


def calc_all(holdings: Iterable[VirtualHolding],
             price_of: PriceLookup) -> List[VirtualPL]:
    return [calc_pl(h, price_of) for h in holdings]


def summarize(holdings: Iterable[VirtualHolding],
              price_of: PriceLookup) -> VirtualTotals:
    invested = current_value = profit = ZERO
    for row in calc_all(holdings, price_of):
        invested      += row.invested
        current_value += row.current_value
        profit        += row.profit
    return VirtualTotals(invested=invested, current_value=current_value,
                         profit=profit)
