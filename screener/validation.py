"""
screener/validation.py  —  Input validation rules

All validators return a list of error strings (empty = valid).
The CLI and the dashboard call validate_*() before building a Transaction,
so nothing malformed ever reaches the ledger.

Selling more than you hold is NOT an error here; the ledger carries the
negative quantity forward. find_oversold() lets the front ends warn about it.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from screener import config
from screener.models import Action, Transaction, parse_date, to_decimal, to_quantity

# NSE/BSE style symbols: letters, digits, '&', '-', '.'
_BAD_SYMBOL_CHARS = re.compile(r'[^A-Z0-9&.\-]')
_MAX_SYMBOL_LEN   = 20

# Upper bounds for "almost certainly a typo"
_MAX_PRICE    = Decimal("10000000")
_MAX_QUANTITY = 100_000_000


def validate_symbol(symbol: str) -> List[str]:
    errors = []
    s = (symbol or "").strip().upper()
    if not s:
        errors.append("Symbol cannot be empty.")
        return errors
    if len(s) > _MAX_SYMBOL_LEN:
        errors.append(f"Symbol '{s}' is too long (max {_MAX_SYMBOL_LEN} characters).")
    if _BAD_SYMBOL_CHARS.search(s):
        errors.append(f"Symbol '{s}' contains invalid characters. "
                      f"Only letters, numbers, '&', dots and hyphens are allowed.")
    return errors


def _check_quantity(raw, errors: List[str]) -> None:
    try:
        quantity = to_quantity(raw)
    except ValueError as e:
        errors.append(str(e))
        return
    if quantity <= 0:
        errors.append("Quantity must be greater than zero.")
    elif quantity > _MAX_QUANTITY:
        errors.append(f"Quantity {quantity:,} seems extremely large. Please double-check.")


def _check_price(raw, label: str, errors: List[str]) -> None:
    try:
        price = to_decimal(raw, default=None)
    except ValueError:
        errors.append(f"{label} must be a number.")
        return
    if price is None:
        errors.append(f"{label} is required.")
    elif price < 0:
        errors.append(f"{label} cannot be negative.")
    elif price > _MAX_PRICE:
        errors.append(f"{label} {price:,.2f} seems unusually high. Please double-check.")


def validate_quantity(raw) -> List[str]:
    errors: List[str] = []
    _check_quantity(raw, errors)
    return errors


def validate_price(raw, label: str = "Price") -> List[str]:
    errors: List[str] = []
    _check_price(raw, label, errors)
    return errors


def validate_charge(raw, label: str) -> List[str]:
    """Optional amount: blank is zero, otherwise a non-negative number."""
    try:
        value = to_decimal(raw)
    except ValueError:
        return [f"{label} must be a number."]
    if value < 0:
        return [f"{label} cannot be negative."]
    return []


def validate_transaction(
        symbol: str,
        action: str,
        quantity,
        price,
        charges: Optional[Mapping[str, object]] = None,
        txn_date: Optional[date] = None,
) -> List[str]:
    errors = validate_symbol(symbol)

    try:
        Action.parse(action)
    except ValueError as e:
        errors.append(str(e))

    _check_quantity(quantity, errors)
    _check_price(price, "Price", errors)

    for name, raw in (charges or {}).items():
        errors.extend(validate_charge(raw, name))

    if txn_date is not None and txn_date > date.today():
        errors.append(f"Date {txn_date} is in the future. "
                      f"Transactions can only be recorded for today or earlier.")
    return errors


def validate_virtual_holding(symbol: str, buy_price, quantity) -> List[str]:
    errors = validate_symbol(symbol)
    _check_price(buy_price, "Buy price", errors)
    _check_quantity(quantity, errors)
    return errors


def validate_watchlist_item(stock_name: str, add_date, add_rate, current_rate,
                            red_flags_score=None, red_flags=()) -> List[str]:
    errors = validate_symbol(stock_name)
    if not str(add_date or "").strip():
        errors.append("Add date is required.")
    elif parse_date(add_date) is None:
        errors.append(f"'{add_date}' is not a valid date (expected YYYY-MM-DD).")
    _check_price(add_rate, "Add rate", errors)
    _check_price(current_rate, "Current rate", errors)
    try:
        to_decimal(red_flags_score)
    except ValueError:
        errors.append("Red flags score must be a number.")
    unknown = [f for f in red_flags if f not in config.RED_FLAG_OPTIONS]
    if unknown:
        errors.append(f"Unknown red flag(s): {', '.join(unknown)}.")
    return errors


def find_oversold(transactions: Iterable[Transaction]) -> Dict[str, int]:
    """
    Symbols whose running quantity goes below zero when the list is read in
    order, mapped to the lowest quantity reached.
    """
    running: Dict[str, int] = {}
    lowest:  Dict[str, int] = {}
    for t in transactions:
        qty = running.get(t.symbol, 0)
        qty += t.quantity if t.action is Action.BUY else -t.quantity
        running[t.symbol] = qty
        if qty < 0 and qty < lowest.get(t.symbol, 0):
            lowest[t.symbol] = qty
    return lowest
