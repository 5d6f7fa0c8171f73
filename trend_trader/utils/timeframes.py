"""Timeframe string conversions."""

from datetime import timedelta

_UNITS = {"m": 1, "h": 60, "d": 60 * 24, "w": 60 * 24 * 7}


def timeframe_minutes(tf: str) -> int:
    """Convert Binance-style timeframe (e.g. '5m', '1h', '1d', '1w') to minutes."""
    tf = tf.strip().lower()
    unit = tf[-1:]
    if unit not in _UNITS:
        raise ValueError(f"Unsupported timeframe: {tf}")
    try:
        count = int(tf[:-1])
    except ValueError:
        raise ValueError(f"Unsupported timeframe: {tf}") from None
    if count <= 0:
        raise ValueError(f"Unsupported timeframe: {tf}")
    return count * _UNITS[unit]


def timeframe_delta(tf: str) -> timedelta:
    """Bar duration for a timeframe string."""
    return timedelta(minutes=timeframe_minutes(tf))


def periods_per_year(tf: str) -> float:
    """Number of bars of this timeframe in a 365-day year (Sharpe annualization)."""
    return 365 * 24 * 60 / timeframe_minutes(tf)
