from datetime import datetime, timezone

import pytest

from mmsim.accounting.ledger import Ledger, LedgerInvariantError
from mmsim.engine.state import Position, Side

TS = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def ledger() -> Ledger:
    return Ledger(balance=1_000.0, leverage=10.0)


def test_entries_update_weighted_average(ledger: Ledger) -> None:
    first = ledger.enter_position(Side.LONG, 100.0, 1.0, TS)
    second = ledger.enter_position("LONG", 110.0, 3.0, TS)
    assert first.id == 1 and second.id == 2
    assert ledger.long_position.size == pytest.approx(4.0)
    assert ledger.long_position.avg_price == pytest.approx(107.5)
    assert ledger.balance == pytest.approx(1_000.0 - 10.0 - 33.0)
    assert [trade.id for trade in ledger.trades] == [2, 1]


def test_collapse_nets_matched_inventory(ledger: Ledger) -> None:
    ledger.enter_position(Side.LONG, 100.0, 2.0, TS)
    ledger.enter_position(Side.SHORT, 105.0, 1.0, TS)
    balance_before = ledger.balance

    event = ledger.collapse(TS)

    assert event is not None
    assert event.id == 1
    assert event.size == pytest.approx(1.0)
    assert event.pnl == pytest.approx(5.0)
    assert ledger.realized_pnl == pytest.approx(5.0)
    assert ledger.long_position.size == pytest.approx(1.0)
    assert ledger.long_position.avg_price == pytest.approx(100.0)
    assert ledger.short_position.size == 0
    assert ledger.short_position.avg_price == 0
    returned_margin = 100.0 / 10.0 + 105.0 / 10.0
    assert ledger.balance == pytest.approx(balance_before + returned_margin + 5.0)
    assert ledger.collapses == [event]


def test_collapse_without_both_sides_is_a_no_op(ledger: Ledger) -> None:
    ledger.enter_position(Side.LONG, 100.0, 2.0, TS)
    snapshot = ledger.snapshot()
    assert ledger.collapse(TS) is None
    assert ledger.snapshot() == snapshot


def test_should_collapse_requires_low_cash_and_both_sides() -> None:
    ledger = Ledger(balance=200.0, leverage=10.0, collapse_threshold=150.0)
    ledger.enter_position(Side.LONG, 100.0, 6.0, TS)
    assert ledger.balance < 150.0
    assert not ledger.should_collapse()
    ledger.enter_position(Side.SHORT, 100.0, 1.0, TS)
    assert ledger.should_collapse()


def test_margin_rejection_leaves_state_untouched() -> None:
    ledger = Ledger(balance=100.0, leverage=10.0)
    assert ledger.enter_position(Side.LONG, 100.0, 11.0, TS) is None
    assert ledger.balance == 100.0
    assert ledger.long_position == Position()
    assert ledger.trades == []
    assert ledger.trades_executed == 0


def test_non_positive_entries_are_rejected(ledger: Ledger) -> None:
    assert ledger.enter_position(Side.SHORT, 0.0, 1.0, TS) is None
    assert ledger.enter_position(Side.SHORT, 100.0, -0.5, TS) is None
    assert ledger.short_position == Position()


def test_unrealized_pnl_and_equity(ledger: Ledger) -> None:
    ledger.enter_position(Side.LONG, 100.0, 2.0, TS)
    ledger.enter_position(Side.SHORT, 105.0, 1.0, TS)
    assert ledger.unrealized_pnl(110.0) == pytest.approx(20.0 - 5.0)
    assert ledger.equity(110.0) == pytest.approx(1_000.0 + 15.0)


def test_equity_after_reset_equals_initial_balance(ledger: Ledger) -> None:
    ledger.enter_position(Side.LONG, 100.0, 2.0, TS)
    ledger.enter_position(Side.SHORT, 105.0, 1.0, TS)
    ledger.collapse(TS)
    ledger.reset(1_000.0)
    for price in (0.5, 100.0, 123_456.0):
        assert ledger.equity(price) == 1_000.0
    assert ledger.trades == [] and ledger.collapses == []
    assert ledger.enter_position(Side.LONG, 10.0, 1.0, TS).id == 1


def test_trade_history_is_bounded(ledger: Ledger) -> None:
    for _ in range(150):
        ledger.enter_position(Side.LONG, 1.0, 0.01, TS)
    trades = ledger.trades
    assert len(trades) == 100
    assert trades[0].id == 150
    assert trades[-1].id == 51
    assert ledger.trades_executed == 150
    assert ledger.snapshot().trades_count == 100


def test_order_size_uses_fixed_notional(ledger: Ledger) -> None:
    assert ledger.order_size(100.0) == pytest.approx(0.5)
    assert ledger.margin(0.5, 100.0) == pytest.approx(5.0)
    small = Ledger(balance=2.0, leverage=10.0)
    assert small.order_size(100.0) == pytest.approx(0.2)


def test_corrupted_position_raises(ledger: Ledger) -> None:
    ledger.long_position = Position(size=0.0, avg_price=5.0)
    with pytest.raises(LedgerInvariantError):
        ledger.enter_position(Side.SHORT, 100.0, 1.0, TS)


def test_invalid_leverage_rejected() -> None:
    with pytest.raises(ValueError):
        Ledger(leverage=0)
