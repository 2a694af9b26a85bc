"""Tests for the price book and its database table."""

from decimal import Decimal

from screener.prices import PriceBook

_D = Decimal


def test_defaults_come_from_mock_map():
    book = PriceBook()
    assert book("RELIANCE") == _D("2875.2")
    assert book("reliance") == _D("2875.2")


def test_unknown_symbol_is_zero():
    assert PriceBook()("WHATEVER") == _D("0")


def test_manual_price_overrides_default_and_persists(db):
    book = PriceBook(db=db)
    book.set_price("tcs", "3900.05")
    assert book("TCS") == _D("3900.05")
    assert book.is_manual("TCS")
    assert PriceBook(db=db)("TCS") == _D("3900.05")


def test_clear_price_restores_default(db):
    book = PriceBook(db=db)
    book.set_price("ITC", "500")
    assert book.clear_price("ITC") is True
    assert book("ITC") == _D("450.8")
    assert PriceBook(db=db)("ITC") == _D("450.8")
    assert book.clear_price("ITC") is False


def test_get_prices_and_known_symbols():
    book = PriceBook(defaults={"A": _D("1")})
    book.set_price("B", 2)
    assert book.get_prices(["a", "b", "c"]) == {"A": _D("1"), "B": _D("2"), "C": _D("0")}
    assert book.known_symbols() == ["A", "B"]


def test_price_table_keeps_exact_decimals(db):
    db.set_price("X", _D("0.10"))
    assert db.get_prices() == {"X": _D("0.10")}
    assert db.get_price_updated_at("X") is not None
    db.delete_price("X")
    assert db.get_prices() == {}
