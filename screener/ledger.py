"""
screener/ledger.py  —  Position ledger: transactions in, P&L summary out

One left-to-right pass over the transactions in the order given (no
re-sorting by date). Fees are folded into the cost basis on buys and
deducted from the realised result on sells. The average buy price only
moves on buys; a sell books its P&L against whatever the average was at
that moment.

compute_summary() is a pure function of its inputs. Nothing is cached
between calls, so re-running it after every edit is always safe.

The ledger trusts its input. Rows with missing or non-numeric fields are
filtered out before they get here (see csv_import / validation). Selling
more than is held is allowed and simply leaves a negative quantity.
"""

from decimal import Decimal
from typing import Any, Callable, Dict, Iterable

from screener.models import ZERO, Action, PortfolioSummary, Position, Transaction, to_decimal

PriceLookup = Callable[[str], Any]


def _apply_buy(pos: Position, t: Transaction) -> Decimal:
    outlay    = t.amount + t.effective_fee
    prev_cost = pos.average_buy_price * pos.quantity_held
    pos.quantity_held += t.quantity
    pos.average_buy_price = ((prev_cost + outlay) / pos.quantity_held
                             if pos.quantity_held > 0 else ZERO)
    pos.invested_capital += outlay
    return outlay


def _apply_sell(pos: Position, t: Transaction) -> None:
    avg = pos.average_buy_price
    pos.realized_pl      += (t.price - avg) * t.quantity - t.effective_fee
    pos.quantity_held    -= t.quantity
    pos.invested_capital -= avg * t.quantity


def compute_summary(transactions: Iterable[Transaction],
                    price_of: PriceLookup) -> PortfolioSummary:
    """
    Fold transactions into per-symbol positions, then mark open positions
    to market with price_of(symbol).

    Totals on the returned summary are sums over its positions.
    gross_invested is the cumulative buy outlay (incl. fees), which sells
    never reduce.
    """
    positions: Dict[str, Position] = {}
    gross_invested = ZERO

    for t in transactions:
        pos = positions.get(t.symbol)
        if pos is None:
            pos = positions[t.symbol] = Position(symbol=t.symbol)
        if t.action is Action.BUY:
            gross_invested += _apply_buy(pos, t)
        elif t.action is Action.SELL:
            _apply_sell(pos, t)

    for pos in positions.values():
        if pos.quantity_held > 0:
            price = to_decimal(price_of(pos.symbol))
            pos.unrealized_pl = (price - pos.average_buy_price) * pos.quantity_held

    return PortfolioSummary(positions=positions, gross_invested=gross_invested)
