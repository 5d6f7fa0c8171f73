"""Unit tests for analytics.metrics."""

from datetime import datetime

import pytest

from trend_trader.analytics.metrics import (
    compute_report,
    equity_returns,
    max_drawdown,
    profit_factor,
    sharpe_ratio,
    win_rate,
)
from trend_trader.core.types import Action, TradeRecord


def test_sharpe_ratio_empty():
    assert sharpe_ratio([]) == 0.0


def test_sharpe_ratio_constant():
    assert sharpe_ratio([0.01] * 10) == 0.0  # zero std


def test_sharpe_ratio_sign():
    assert sharpe_ratio([0.01, 0.02, 0.015, 0.005]) > 0
    assert sharpe_ratio([-0.01, -0.02, -0.015, -0.005]) < 0


def test_win_rate():
    assert win_rate([1, -1, 1, 1]) == 75.0
    assert win_rate([]) == 0.0
    assert win_rate([0.0]) == 0.0


def test_profit_factor():
    assert profit_factor(10.0, 5.0) == 2.0
    assert profit_factor(10.0, 0.0) == float("inf")
    assert profit_factor(0.0, 0.0) == 0.0


def test_max_drawdown():
    # equity 1 -> 1.2 -> 1.0 -> 1.1  =>  peak 1.2, trough 1.0
    assert max_drawdown([1.0, 1.2, 1.0, 1.1]) == pytest.approx(16.666, rel=0.01)
    assert max_drawdown([1.0, 1.1, 1.2]) == 0.0
    assert max_drawdown([]) == 0.0


def test_equity_returns():
    assert equity_returns([100.0, 110.0, 99.0]) == pytest.approx([0.1, -0.1])
    assert equity_returns([100.0]) == []


def _trade(side, pnl):
    return TradeRecord(side=side, amount=0.01, price=45000.0, fee=0.45, pnl=pnl, timestamp=datetime(2024, 1, 1))


def test_compute_report():
    trades = [
        _trade(Action.BUY, 0.0), _trade(Action.SELL, 10.0),
        _trade(Action.BUY, 0.0), _trade(Action.SELL, -5.0),
        _trade(Action.BUY, 0.0), _trade(Action.SELL, 20.0),
        _trade(Action.BUY, 0.0),
    ]
    report = compute_report(trades, [1000.0, 1010.0, 1005.0, 1025.0], 1000.0, 1025.0, periods_per_year=8760)
    assert report.total_trades == 7
    assert report.closed_trades == 3
    assert report.win_count == 2
    assert report.loss_count == 1
    assert report.win_rate == pytest.approx(200 / 3)
    assert report.avg_profit == pytest.approx(15.0)
    assert report.avg_loss == pytest.approx(5.0)
    assert report.profit_factor == pytest.approx(3.0)
    assert report.total_profit == pytest.approx(25.0)
    assert report.roi == pytest.approx(2.5)
    assert report.max_drawdown_pct == pytest.approx(5 / 1010 * 100)


def test_compute_report_no_trades():
    report = compute_report([], [1000.0, 1000.0], 1000.0, 1000.0)
    assert report.closed_trades == 0
    assert report.win_rate == 0.0
    assert report.profit_factor == 0.0
    assert report.sharpe_ratio == 0.0
    assert report.to_dict()["roi"] == 0.0
