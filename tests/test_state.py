"""Unit tests for core.state."""

from datetime import date, datetime

import pytest

from trend_trader.core.state import TradingState, week_start_of
from trend_trader.core.types import Action, PendingOrder, Position, PositionPhase


def test_week_start_is_monday():
    assert week_start_of(date(2024, 1, 10)) == date(2024, 1, 8)
    assert week_start_of(date(2024, 1, 8)) == date(2024, 1, 8)
    assert week_start_of(date(2024, 1, 14)) == date(2024, 1, 8)


def test_roll_calendar_resets_daily_count():
    state = TradingState(symbol="BTCUSDT")
    assert state.roll_calendar(datetime(2024, 1, 10, 9)) is False
    state.daily_trade_count = 3
    state.weekly_pnl = -5.0
    assert state.roll_calendar(datetime(2024, 1, 10, 23)) is False
    assert state.daily_trade_count == 3

    version = state.version
    assert state.roll_calendar(datetime(2024, 1, 11, 0, 5)) is True
    assert state.daily_trade_count == 0
    assert state.weekly_pnl == -5.0
    assert state.version == version + 1


def test_roll_calendar_resets_weekly_pnl():
    state = TradingState(symbol="BTCUSDT")
    state.roll_calendar(datetime(2024, 1, 14, 12))
    state.weekly_pnl = -20.0
    assert state.roll_calendar(datetime(2024, 1, 15, 0, 1)) is True
    assert state.weekly_pnl == 0.0
    assert state.week_start == date(2024, 1, 15)


def test_round_trip_through_dict():
    state = TradingState(symbol="BTCUSDT", balance=550.0, start_balance=1000.0, total_trades=3,
                         win_trades=1, loss_trades=1, total_profit=12.5)
    state.phase = PositionPhase.OPEN
    state.position = Position(Action.BUY, 45000.0, datetime(2024, 1, 10, 12), 0.01,
                              stop_loss=44550.0, take_profit=45135.0, entry_fee=0.45, id="f1")
    state.roll_calendar(datetime(2024, 1, 10, 12))
    restored = TradingState.from_dict(state.to_dict())
    assert restored == state


def test_pending_phase_settles_on_load():
    entering = TradingState(symbol="BTCUSDT", phase=PositionPhase.ENTERING)
    assert TradingState.from_dict(entering.to_dict()).phase == PositionPhase.FLAT

    exiting = TradingState(symbol="BTCUSDT", phase=PositionPhase.EXITING)
    exiting.position = Position(Action.BUY, 45000.0, datetime(2024, 1, 10), 0.01)
    assert TradingState.from_dict(exiting.to_dict()).phase == PositionPhase.OPEN



def test_recorded_pending_order_survives_reload():
    state = TradingState(symbol="BTCUSDT", balance=1000.0, phase=PositionPhase.ENTERING)
    state.pending_order = PendingOrder(Action.BUY, 0.0002, 45000.0, 0.0, datetime(2024, 1, 10, 12),
                                       stop_loss=44550.0, take_profit=45135.0, reason="BUY 9.00 notional")
    restored = TradingState.from_dict(state.to_dict())
    assert restored.phase == PositionPhase.ENTERING
    assert restored.pending_order == state.pending_order


def test_equity_marks_position_at_price():
    state = TradingState(balance=550.0)
    assert state.equity(45000.0) == 550.0
    state.position = Position(Action.BUY, 45000.0, datetime(2024, 1, 10), 0.01)
    assert state.equity(44000.0) == pytest.approx(990.0)

def test_derived_stats():
    state = TradingState(start_balance=1000.0, win_trades=3, loss_trades=1, total_profit=25.0)
    assert state.win_rate == 75.0
    assert state.roi == 2.5
    assert TradingState().win_rate == 0.0
    assert TradingState().roi == 0.0
