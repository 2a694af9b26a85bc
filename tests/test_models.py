"""Tests for record conversion and the decimal helpers."""

from datetime import date
from decimal import Decimal

import pytest

from screener.models import (
    RECORD_FIELDS, Action, PortfolioSummary, Position, Transaction, VirtualHolding,
    parse_date, to_decimal, to_quantity,
)

_D = Decimal


class TestHelpers:
    def test_blank_decimal_uses_default(self):
        assert to_decimal("") == _D("0")
        assert to_decimal(None) == _D("0")
        assert to_decimal("  ", default=None) is None

    def test_decimal_strips_thousands_separators(self):
        assert to_decimal("1,502.90") == _D("1502.90")

    def test_float_goes_through_repr(self):
        assert to_decimal(0.1) == _D("0.1")

    @pytest.mark.parametrize("raw", ["abc", "NaN", "inf"])
    def test_bad_decimal_raises(self, raw):
        with pytest.raises(ValueError):
            to_decimal(raw)

    def test_quantity_accepts_integral_text(self):
        assert to_quantity("10") == 10
        assert to_quantity("10.0") == 10
        assert to_quantity(7) == 7

    @pytest.mark.parametrize("raw", ["10.5", "", "ten"])
    def test_quantity_rejects_fractional_blank_and_text(self, raw):
        with pytest.raises(ValueError):
            to_quantity(raw)


class TestAction:
    @pytest.mark.parametrize("raw,expected", [("Buy", Action.BUY), ("buy", Action.BUY),
                                              (" SELL ", Action.SELL), (Action.SELL, Action.SELL)])
    def test_parse_is_case_insensitive(self, raw, expected):
        assert Action.parse(raw) is expected

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            Action.parse("Hold")


class TestTransactionRecord:
    def test_from_record_normalises_symbol_and_parses_charges(self):
        t = Transaction.from_record({"symbol": " reliance ", "action": "Buy",
                                     "quantity": "100", "price": "2800",
                                     "stampDuty": "4.2", "sebiFee": "", "notes": "first lot"})
        assert t.symbol == "RELIANCE"
        assert t.stamp_duty == _D("4.2")
        assert t.sebi_fee == _D("0")
        assert t.fees is None
        assert t.effective_fee == _D("0")
        assert t.notes == "first lot"

    def test_missing_price_is_rejected(self):
        with pytest.raises(ValueError):
            Transaction.from_record({"symbol": "TCS", "action": "Buy", "quantity": "1"})

    def test_to_record_uses_persisted_names_in_order(self):
        t = Transaction(symbol="TCS", action=Action.SELL, quantity=5, price=_D("3842.50"),
                        fees=_D("12"), other_charges=_D("1.5"))
        record = t.to_record()
        assert list(record) == RECORD_FIELDS
        assert record["price"] == "3842.50"
        assert record["otherCharges"] == "1.5"
        assert record["brokerage"] == ""
        assert Transaction.from_record(record) == t

    def test_amount(self):
        t = Transaction(symbol="ITC", action=Action.BUY, quantity=3, price=_D("450.8"))
        assert t.amount == _D("1352.4")


def test_summary_totals_only_count_open_unrealized():
    s = PortfolioSummary(positions={
        "A": Position("A", quantity_held=5, invested_capital=_D("10"), unrealized_pl=_D("2")),
        "B": Position("B", quantity_held=0, invested_capital=_D("-1"), realized_pl=_D("3")),
    })
    assert s.total_invested == _D("9")
    assert s.total_realized_pl == _D("3")
    assert s.total_unrealized_pl == _D("2")
    assert [p.symbol for p in s.open_positions()] == ["A"]


def test_virtual_holding_record():
    h = VirtualHolding.from_record({"symbol": "infy", "buyPrice": "1400", "quantity": 3})
    assert h == VirtualHolding("INFY", _D("1400"), 3, "")
    assert h.invested == _D("4200")
    assert h.to_record() == {"symbol": "INFY", "buyPrice": "1400", "quantity": 3, "date": ""}


class TestRecordBoundary:
    @pytest.mark.parametrize("qty", ["0", "-5"])
    def test_non_positive_quantity_is_rejected(self, qty):
        with pytest.raises(ValueError):
            Transaction.from_record({"symbol": "TCS", "action": "Buy",
                                     "quantity": qty, "price": "1"})
        with pytest.raises(ValueError):
            VirtualHolding.from_record({"symbol": "TCS", "buyPrice": "1", "quantity": qty})

    @pytest.mark.parametrize("text, expected", [
        ("2024-01-02", date(2024, 1, 2)),
        (" 2024-01-02 ", date(2024, 1, 2)),
        ("02/01/2024", None),
        ("", None),
        (None, None),
    ])
    def test_parse_date_tolerates_free_text(self, text, expected):
        assert parse_date(text) == expected
