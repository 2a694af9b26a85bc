"""Tests for the position ledger.

Covers the weighted-average cost fold, realised and unrealised P&L,
zero/negative quantity handling, input-order folding and the totals
invariant over randomly generated histories.
"""

from decimal import Decimal

import numpy as np
import pytest

from screener.ledger import compute_summary
from screener.models import Action, Transaction

_D = Decimal  # shorthand


def _buy(symbol, qty, price, fees=None, **charges):
    return Transaction(symbol=symbol, action=Action.BUY, quantity=qty, price=_D(price),
                       fees=None if fees is None else _D(fees),
                       **{k: _D(v) for k, v in charges.items()})


def _sell(symbol, qty, price, fees=None, **charges):
    return Transaction(symbol=symbol, action=Action.SELL, quantity=qty, price=_D(price),
                       fees=None if fees is None else _D(fees),
                       **{k: _D(v) for k, v in charges.items()})


def _prices(**table):
    table = {k: _D(v) for k, v in table.items()}
    return lambda symbol: table.get(symbol, _D(0))


# ---------------------------------------------------------------------------
# Core arithmetic
# ---------------------------------------------------------------------------


class TestWeightedAverage:
    def test_two_buys_blend_to_weighted_average(self):
        s = compute_summary([_buy("X", 10, "100"), _buy("X", 10, "200")], _prices())
        pos = s.positions["X"]
        assert pos.quantity_held == 20
        assert pos.average_buy_price == _D("150")
        assert pos.invested_capital == _D("3000")

    def test_buy_fee_is_folded_into_cost_basis(self):
        s = compute_summary([_buy("X", 4, "100", fees="10")], _prices())
        assert s.positions["X"].average_buy_price == _D("102.5")
        assert s.positions["X"].invested_capital == _D("410")

    def test_itemised_charges_stay_out_of_cost_basis(self):
        s = compute_summary([_buy("X", 10, "100", brokerage="20", gst="3.6")], _prices())
        assert s.positions["X"].average_buy_price == _D("100")
        assert s.positions["X"].invested_capital == _D("1000")

    def test_itemised_sell_charges_do_not_reduce_realized(self):
        txns = [_buy("X", 10, "100"), _sell("X", 10, "110", stt="5", brokerage="20")]
        assert compute_summary(txns, _prices()).positions["X"].realized_pl == _D("100")

    def test_aggregate_fee_overrides_itemised_charges(self):
        s = compute_summary([_buy("X", 10, "100", fees="5", brokerage="20")], _prices())
        assert s.positions["X"].average_buy_price == _D("100.5")


class TestRealizedPL:
    def test_sell_books_against_average(self):
        txns = [_buy("X", 10, "100"), _buy("X", 10, "200"), _sell("X", 5, "180")]
        pos = compute_summary(txns, _prices()).positions["X"]
        assert pos.realized_pl == _D("150")
        assert pos.quantity_held == 15

    def test_sell_does_not_move_average(self):
        txns = [_buy("X", 10, "100"), _buy("X", 10, "200"), _sell("X", 5, "180")]
        pos = compute_summary(txns, _prices()).positions["X"]
        assert pos.average_buy_price == _D("150")
        assert pos.invested_capital == _D("2250")

    def test_sell_fee_reduces_realized(self):
        txns = [_buy("X", 10, "100"), _sell("X", 10, "110", fees="7")]
        assert compute_summary(txns, _prices()).positions["X"].realized_pl == _D("93")

    def test_loss_is_negative(self):
        txns = [_buy("X", 10, "100"), _sell("X", 4, "90")]
        assert compute_summary(txns, _prices()).positions["X"].realized_pl == _D("-40")


class TestUnrealizedPL:
    def test_marks_open_position_to_price(self):
        txns = [_buy("X", 10, "100"), _buy("X", 10, "200"), _sell("X", 5, "180")]
        s = compute_summary(txns, _prices(X="160"))
        assert s.positions["X"].unrealized_pl == _D("150")
        assert s.total_unrealized_pl == _D("150")

    def test_unknown_symbol_prices_at_zero(self):
        s = compute_summary([_buy("NOPE", 10, "50")], _prices())
        assert s.positions["NOPE"].unrealized_pl == _D("-500")

    def test_float_price_lookup_is_accepted(self):
        s = compute_summary([_buy("X", 15, "150")], lambda sym: 160.0)
        assert s.positions["X"].unrealized_pl == _D("150")

    def test_closed_position_has_no_unrealized(self):
        calls = []

        def price_of(symbol):
            calls.append(symbol)
            return _D("999")

        s = compute_summary([_buy("X", 10, "100"), _sell("X", 10, "120")], price_of)
        assert s.positions["X"].quantity_held == 0
        assert s.positions["X"].unrealized_pl == _D("0")
        assert calls == []


# ---------------------------------------------------------------------------
# Degenerate inputs
# ---------------------------------------------------------------------------


class TestEdgeCases:
    def test_buy_back_to_zero_gives_zero_average(self):
        # sell first (no holdings), then buy exactly that many back
        txns = [_sell("X", 10, "100"), _buy("X", 10, "90")]
        pos = compute_summary(txns, _prices(X="95")).positions["X"]
        assert pos.quantity_held == 0
        assert pos.average_buy_price == _D("0")
        assert pos.unrealized_pl == _D("0")

    def test_oversell_carries_negative_quantity(self):
        txns = [_buy("X", 5, "100"), _sell("X", 8, "110")]
        s = compute_summary(txns, _prices(X="120"))
        pos = s.positions["X"]
        assert pos.quantity_held == -3
        assert pos.realized_pl == _D("80")
        assert pos.invested_capital == _D("-300")
        assert pos.unrealized_pl == _D("0")
        assert s.total_unrealized_pl == _D("0")

    def test_folds_in_input_order_without_sorting(self):
        later = Transaction(symbol="X", action=Action.SELL, quantity=5,
                            price=_D("180"), date="2024-06-01")
        earlier = Transaction(symbol="X", action=Action.BUY, quantity=10,
                              price=_D("100"), date="2024-01-01")
        pos = compute_summary([later, earlier], _prices()).positions["X"]
        assert pos.realized_pl == _D("900")
        assert pos.quantity_held == 5
        assert pos.average_buy_price == _D("200")

    def test_empty_history(self):
        s = compute_summary([], _prices())
        assert s.positions == {}
        assert s.total_invested == _D("0")
        assert s.total_realized_pl == _D("0")
        assert s.total_unrealized_pl == _D("0")

    def test_positions_keep_first_seen_order(self):
        txns = [_buy("TCS", 1, "1"), _buy("ITC", 1, "1"), _buy("TCS", 1, "1")]
        assert list(compute_summary(txns, _prices()).positions) == ["TCS", "ITC"]


# ---------------------------------------------------------------------------
# Whole-portfolio properties
# ---------------------------------------------------------------------------


def test_reliance_scenario():
    txns = [_buy("RELIANCE", 100, "2800", fees="50"),
            _sell("RELIANCE", 40, "2900", fees="20")]
    s = compute_summary(txns, _prices(RELIANCE="2875.2"))
    pos = s.positions["RELIANCE"]
    assert pos.average_buy_price == _D("2800.5")
    assert pos.quantity_held == 60
    assert pos.realized_pl == _D("3960")
    # 100 * 2800 + 50 - 2800.5 * 40
    assert pos.invested_capital == _D("168030")
    assert pos.unrealized_pl == _D("4482")


def test_buy_only_conserves_outlay():
    txns = [_buy("X", 3, "10.10", fees="1.25"), _buy("X", 7, "11.90", fees="0.75"),
            _buy("X", 1, "9.99")]
    s = compute_summary(txns, _prices())
    expected = sum((t.amount + t.effective_fee for t in txns), _D(0))
    assert s.positions["X"].invested_capital == expected
    assert s.gross_invested == expected


def test_gross_invested_ignores_sells():
    txns = [_buy("X", 10, "100", fees="5"), _sell("X", 10, "120")]
    s = compute_summary(txns, _prices())
    assert s.gross_invested == _D("1005")
    assert s.total_invested == _D("0")


def test_is_idempotent_and_does_not_mutate_input():
    txns = [_buy("A", 10, "100", fees="3"), _sell("A", 4, "120"), _buy("B", 2, "50")]
    snapshot = list(txns)
    first = compute_summary(txns, _prices(A="110", B="45"))
    second = compute_summary(txns, _prices(A="110", B="45"))
    assert first == second
    assert txns == snapshot


def _random_history(seed, n=60):
    rng = np.random.default_rng(seed)
    symbols = ["RELIANCE", "TCS", "INFY", "ITC"]
    txns = []
    for _ in range(n):
        action = Action.BUY if rng.random() < 0.6 else Action.SELL
        txns.append(Transaction(
            symbol=symbols[int(rng.integers(len(symbols)))],
            action=action,
            quantity=int(rng.integers(1, 200)),
            price=_D(int(rng.integers(1, 500_000))) / 100,
            fees=_D(int(rng.integers(0, 5_000))) / 100,
        ))
    prices = {s: _D(int(rng.integers(0, 500_000))) / 100 for s in symbols[:3]}
    return txns, prices


@pytest.mark.parametrize("seed", range(25))
def test_totals_match_positions_for_random_histories(seed):
    txns, prices = _random_history(seed)
    s = compute_summary(txns, _prices(**prices))

    positions = list(s.positions.values())
    assert s.total_invested == sum((p.invested_capital for p in positions), _D(0))
    assert s.total_realized_pl == sum((p.realized_pl for p in positions), _D(0))
    assert s.total_unrealized_pl == sum((p.unrealized_pl for p in positions
                                         if p.quantity_held > 0), _D(0))

    for p in positions:
        net = sum(t.quantity if t.action is Action.BUY else -t.quantity
                  for t in txns if t.symbol == p.symbol)
        assert p.quantity_held == net
        if p.quantity_held <= 0:
            assert p.unrealized_pl == _D(0)

    assert compute_summary(txns, _prices(**prices)) == s
