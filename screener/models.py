"""
screener/models.py  —  Pure dataclasses, no dependencies on other screener modules.

Money is held as Decimal throughout so long transaction histories do not
drift. Records cross the storage/CSV boundary as flat dicts keyed by the
persisted field names below.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Tuple

ZERO = Decimal("0")

# Persisted field names, in CSV column order
RECORD_FIELDS = ["symbol", "action", "quantity", "price", "date", "fees",
                 "brokerage", "gst", "stampDuty", "sebiFee", "stt",
                 "otherCharges", "notes"]

# attribute name -> persisted name
CHARGE_FIELDS = {
    "brokerage":     "brokerage",
    "gst":           "gst",
    "stamp_duty":    "stampDuty",
    "sebi_fee":      "sebiFee",
    "stt":           "stt",
    "other_charges": "otherCharges",
}

VIRTUAL_FIELDS = ["symbol", "buyPrice", "quantity", "date"]

WATCHLIST_FIELDS = ["stockName", "gradingNew", "gradingOld", "addDate", "addRate",
                    "currentRate", "redFlagsScore", "redFlags", "remarks"]


class CsvImportError(ValueError):
    """Raised when an imported CSV cannot be parsed at all."""


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Blank/None -> default. Anything else must parse or this raises ValueError."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    text = str(value).strip().replace(",", "")
    if not text:
        return default
    try:
        result = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def to_quantity(value: Any) -> int:
    """Whole number of shares. '10' and '10.0' are fine, '10.5' is not."""
    number = to_decimal(value, default=None)
    if number is None:
        raise ValueError("Quantity is required.")
    if number != number.to_integral_value():
        raise ValueError(f"Quantity must be a whole number, got {value!r}")
    return int(number)


def to_positive_quantity(value: Any) -> int:
    quantity = to_quantity(value)
    if quantity <= 0:
        raise ValueError(f"Quantity must be greater than zero, got {value!r}")
    return quantity


def _fmt(value: Decimal) -> str:
    """Plain decimal text for storage ('2800.50', never '2.8005E+3')."""
    return format(value, "f")


def parse_date(text: Any) -> Optional[date]:
    """ISO date, or None for blank or free-text dates (imported rows keep whatever they had)."""
    try:
        return date.fromisoformat(str(text or "").strip())
    except ValueError:
        return None


class Action(str, Enum):
    BUY  = "Buy"
    SELL = "Sell"

    @classmethod
    def parse(cls, raw: Any) -> "Action":
        if isinstance(raw, cls):
            return raw
        text = str(raw or "").strip().lower()
        for action in cls:
            if action.value.lower() == text:
                return action
        raise ValueError(f"Action must be 'Buy' or 'Sell', got {raw!r}")


@dataclass(frozen=True)
class Transaction:
    symbol:        str
    action:        Action
    quantity:      int
    price:         Decimal
    date:          str               = ""       # "YYYY-MM-DD", display only
    brokerage:     Decimal           = ZERO
    gst:           Decimal           = ZERO
    stamp_duty:    Decimal           = ZERO
    sebi_fee:      Decimal           = ZERO
    stt:           Decimal           = ZERO
    other_charges: Decimal           = ZERO
    fees:          Optional[Decimal] = None     # aggregate override
    notes:         str               = ""

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.price

    @property
    def total_charges(self) -> Decimal:
        return sum((getattr(self, name) for name in CHARGE_FIELDS), ZERO)

    @property
    def effective_fee(self) -> Decimal:
        """Fee the ledger folds in. Itemised charges only feed the charge view."""
        return self.fees if self.fees is not None else ZERO

    def to_record(self) -> Dict[str, str]:
        record = {
            "symbol":   self.symbol,
            "action":   self.action.value,
            "quantity": str(self.quantity),
            "price":    _fmt(self.price),
            "date":     self.date,
            "fees":     "" if self.fees is None else _fmt(self.fees),
            "notes":    self.notes,
        }
        for attr, key in CHARGE_FIELDS.items():
            value = getattr(self, attr)
            record[key] = _fmt(value) if value else ""
        return {k: record[k] for k in RECORD_FIELDS}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Transaction":
        """Build from a flat record. Raises ValueError if a field will not convert."""
        symbol = str(record.get("symbol") or "").strip().upper()
        if not symbol:
            raise ValueError("Symbol is required.")
        price = to_decimal(record.get("price"), default=None)
        if price is None:
            raise ValueError("Price is required.")
        fees_raw = record.get("fees")
        charges = {attr: to_decimal(record.get(key))
                   for attr, key in CHARGE_FIELDS.items()}
        return cls(
            symbol=symbol,
            action=Action.parse(record.get("action")),
            quantity=to_positive_quantity(record.get("quantity")),
            price=price,
            date=str(record.get("date") or "").strip(),
            fees=to_decimal(fees_raw, default=None),
            notes=str(record.get("notes") or ""),
            **charges,
        )


@dataclass
class Position:
    symbol:            str
    quantity_held:     int     = 0
    average_buy_price: Decimal = ZERO
    invested_capital:  Decimal = ZERO
    realized_pl:       Decimal = ZERO
    unrealized_pl:     Decimal = ZERO

    @property
    def is_open(self) -> bool:
        return self.quantity_held > 0


@dataclass
class PortfolioSummary:
    positions:      Dict[str, Position] = field(default_factory=dict)
    gross_invested: Decimal             = ZERO   # every buy incl. fees, never reduced

    @property
    def total_invested(self) -> Decimal:
        return sum((p.invested_capital for p in self.positions.values()), ZERO)

    @property
    def total_realized_pl(self) -> Decimal:
        return sum((p.realized_pl for p in self.positions.values()), ZERO)

    @property
    def total_unrealized_pl(self) -> Decimal:
        return sum((p.unrealized_pl for p in self.positions.values()
                    if p.quantity_held > 0), ZERO)

    def open_positions(self):
        return [p for p in self.positions.values() if p.is_open]


@dataclass(frozen=True)
class VirtualHolding:
    symbol:    str
    buy_price: Decimal
    quantity:  int
    date:      str = ""

    @property
    def invested(self) -> Decimal:
        return self.buy_price * self.quantity

    def to_record(self) -> Dict[str, Any]:
        return {"symbol": self.symbol, "buyPrice": _fmt(self.buy_price),
                "quantity": self.quantity, "date": self.date}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "VirtualHolding":
        symbol = str(record.get("symbol") or "").strip().upper()
        if not symbol:
            raise ValueError("Symbol is required.")
        buy_price = to_decimal(record.get("buyPrice"), default=None)
        if buy_price is None:
            raise ValueError("Buy price is required.")
        return cls(symbol=symbol, buy_price=buy_price,
                   quantity=to_positive_quantity(record.get("quantity")),
                   date=str(record.get("date") or "").strip())


@dataclass(frozen=True)
class VirtualPL:
    holding:       VirtualHolding
    current_price: Decimal
    invested:      Decimal
    current_value: Decimal
    profit:        Decimal
    percent:       Decimal


@dataclass(frozen=True)
class VirtualTotals:
    invested:      Decimal = ZERO
    current_value: Decimal = ZERO
    profit:        Decimal = ZERO


@dataclass(frozen=True)
class WatchlistItem:
    stock_name:      str
    add_date:        str                 = ""
    add_rate:        Decimal             = ZERO
    current_rate:    Decimal             = ZERO
    grading_new:     str                 = ""
    grading_old:     str                 = ""
    red_flags_score: Optional[Decimal]   = None
    red_flags:       Tuple[str, ...]     = ()
    remarks:         str                 = ""

    def to_record(self) -> Dict[str, Any]:
        return {
            "stockName":     self.stock_name,
            "gradingNew":    self.grading_new,
            "gradingOld":    self.grading_old,
            "addDate":       self.add_date,
            "addRate":       _fmt(self.add_rate),
            "currentRate":   _fmt(self.current_rate),
            "redFlagsScore": "" if self.red_flags_score is None else _fmt(self.red_flags_score),
            "redFlags":      list(self.red_flags),
            "remarks":       self.remarks,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "WatchlistItem":
        """Derived columns in older records (holdingPeriod, change, changePct) are ignored."""
        name = str(record.get("stockName") or "").strip().upper()
        if not name:
            raise ValueError("Stock name is required.")
        flags = record.get("redFlags") or []
        if isinstance(flags, str):
            flags = [f.strip() for f in flags.split(";") if f.strip()]
        return cls(
            stock_name=name,
            add_date=str(record.get("addDate") or "").strip(),
            add_rate=to_decimal(record.get("addRate")),
            current_rate=to_decimal(record.get("currentRate")),
            grading_new=str(record.get("gradingNew") or "").strip(),
            grading_old=str(record.get("gradingOld") or "").strip(),
            red_flags_score=to_decimal(record.get("redFlagsScore"), default=None),
            red_flags=tuple(str(f) for f in flags),
            remarks=str(record.get("remarks") or ""),
        )


@dataclass(frozen=True)
class WatchlistRow:
    item:           WatchlistItem
    holding_days:   Optional[int]
    change:         Optional[Decimal]
    change_pct:     Optional[Decimal]
