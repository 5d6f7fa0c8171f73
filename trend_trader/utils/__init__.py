"""Utils: timeframes, OHLCV frames, timeouts, exchange filters."""

from trend_trader.utils.timeframes import periods_per_year, timeframe_delta, timeframe_minutes
from trend_trader.utils.timeouts import call_with_timeout, CallTimeout

__all__ = ["periods_per_year", "timeframe_minutes", "timeframe_delta", "call_with_timeout", "CallTimeout"]
