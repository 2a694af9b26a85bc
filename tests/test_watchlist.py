"""Tests for the watchlist: derived columns, records and the persisted store."""

import json
from datetime import date
from decimal import Decimal

import pytest

from screener import config
from screener.models import WatchlistItem
from screener.portfolio import Watchlist
from screener.watchlist import annotate, auto_fields

_D = Decimal
TODAY = date(2024, 3, 1)


def _item(name="TCS", add_date="2024-01-01", add="3500", cur="3850", **kw):
    return WatchlistItem(stock_name=name, add_date=add_date, add_rate=_D(add),
                         current_rate=_D(cur), **kw)


class TestAutoFields:
    def test_holding_period_and_change(self):
        row = auto_fields(_item(), TODAY)
        assert row.holding_days == 60
        assert row.change == _D("350.00")
        assert row.change_pct == _D("10.00")

    def test_change_pct_rounds_to_two_places(self):
        row = auto_fields(_item(add="3", cur="4"), TODAY)
        assert row.change_pct == _D("33.33")

    def test_loss_is_negative(self):
        row = auto_fields(_item(add="200", cur="150"), TODAY)
        assert row.change == _D("-50.00")
        assert row.change_pct == _D("-25.00")

    @pytest.mark.parametrize("add, cur", [("0", "100"), ("100", "0")])
    def test_change_needs_both_rates(self, add, cur):
        row = auto_fields(_item(add=add, cur=cur), TODAY)
        assert row.change is None
        assert row.change_pct is None

    def test_unreadable_date_has_no_holding_period(self):
        assert auto_fields(_item(add_date="last spring"), TODAY).holding_days is None
        assert auto_fields(_item(add_date=""), TODAY).holding_days is None

    def test_annotate_keeps_order(self):
        rows = annotate([_item("A"), _item("B")], TODAY)
        assert [r.item.stock_name for r in rows] == ["A", "B"]


class TestRecord:
    def test_to_record_names_and_round_trip(self):
        item = _item(grading_new="A", red_flags_score=_D("2"),
                     red_flags=("High Debt", "Seasonal"), remarks="watch Q3")
        record = item.to_record()
        assert record["stockName"] == "TCS"
        assert record["redFlags"] == ["High Debt", "Seasonal"]
        assert WatchlistItem.from_record(record) == item

    def test_from_record_ignores_stored_derived_columns(self):
        item = WatchlistItem.from_record({
            "stockName": "itc", "addDate": "2024-01-01", "addRate": "400",
            "currentRate": "450", "holdingPeriod": "3 days", "change": "50.00",
            "changePct": "12.50", "redFlags": "Seasonal; High Debt", "redFlagsScore": ""})
        assert item.stock_name == "ITC"
        assert item.red_flags == ("Seasonal", "High Debt")
        assert item.red_flags_score is None

    def test_name_is_required(self):
        with pytest.raises(ValueError):
            WatchlistItem.from_record({"stockName": " "})


class TestStore:
    def test_add_puts_newest_first_and_persists(self, db):
        w = Watchlist(db)
        w.add_item(_item("TCS"))
        w.add_item(_item("ITC"))
        assert [i.stock_name for i in Watchlist(db).items] == ["ITC", "TCS"]
        stored = json.loads(db.get_item(config.WATCHLIST_KEY))
        assert [r["stockName"] for r in stored] == ["ITC", "TCS"]

    def test_update_and_delete(self, db):
        w = Watchlist(db)
        w.add_item(_item("TCS"))
        w.update_item(0, _item("TCS", remarks="trim"))
        assert Watchlist(db).items[0].remarks == "trim"
        assert w.delete_item(0).stock_name == "TCS"
        assert len(Watchlist(db)) == 0
        with pytest.raises(IndexError):
            w.delete_item(0)

    def test_rows_are_computed_on_read(self, db):
        w = Watchlist(db)
        w.add_item(_item())
        (row,) = w.rows(TODAY)
        assert row.holding_days == 60
        assert w.rows(date(2024, 3, 2))[0].holding_days == 61

    def test_malformed_storage_starts_empty(self, db):
        db.set_item(config.WATCHLIST_KEY, "not json")
        assert Watchlist(db).items == []
