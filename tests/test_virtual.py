"""Tests for the virtual P&L calculator."""

from decimal import Decimal

from screener.models import VirtualHolding
from screener.virtual import calc_pl, summarize

_D = Decimal


def _prices(table):
    return lambda s: table.get(s, _D("0"))


def test_calc_pl_marks_against_current_price():
    row = calc_pl(VirtualHolding("TCS", _D("3500"), 4), _prices({"TCS": _D("3850.5")}))
    assert row.current_price == _D("3850.5")
    assert row.invested == _D("14000")
    assert row.current_value == _D("15402.0")
    assert row.profit == _D("1402.0")
    assert row.percent == _D("1402.0") / _D("14000") * 100


def test_zero_investment_gives_zero_percent():
    row = calc_pl(VirtualHolding("FREE", _D("0"), 10), _prices({"FREE": _D("5")}))
    assert row.profit == _D("50")
    assert row.percent == _D("0")


def test_unknown_symbol_is_a_full_loss():
    row = calc_pl(VirtualHolding("GONE", _D("10"), 3), _prices({}))
    assert row.profit == _D("-30")
    assert row.percent == _D("-100")


def test_summarize_adds_up_rows():
    holdings = [VirtualHolding("A", _D("10"), 2), VirtualHolding("B", _D("5"), 4)]
    totals = summarize(holdings, _prices({"A": _D("12"), "B": _D("4")}))
    assert totals.invested == _D("40")
    assert totals.current_value == _D("40")
    assert totals.profit == _D("0")


def test_summarize_empty():
    totals = summarize([], _prices({}))
    assert (totals.invested, totals.current_value, totals.profit) == (0, 0, 0)
