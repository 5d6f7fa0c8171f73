"""trend_trader: trend-following signal, risk and decision engine with a backtest harness."""

__version__ = "0.1.0"
