"""Backtesting: bar-replay simulator and report artifact."""

from trend_trader.backtesting.engine import BacktestResult, BacktestSimulator, Portfolio
from trend_trader.backtesting.report import build_report, dumps_report, format_summary, write_report

__all__ = [
    "BacktestResult",
    "BacktestSimulator",
    "Portfolio",
    "build_report",
    "dumps_report",
    "format_summary",
    "write_report",
]
