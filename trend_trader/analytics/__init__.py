"""Analytics: backtest performance metrics."""

from trend_trader.analytics.metrics import (
    PerformanceReport,
    compute_report,
    equity_returns,
    max_drawdown,
    profit_factor,
    sharpe_ratio,
    win_rate,
)

__all__ = [
    "PerformanceReport",
    "compute_report",
    "equity_returns",
    "max_drawdown",
    "profit_factor",
    "sharpe_ratio",
    "win_rate",
]
