"""Indicators: RSI, moving averages, MACD, Bollinger, Stochastic, ATR."""

from trend_trader.indicators.technical import (
    IndicatorSet,
    MACD,
    BollingerBands,
    Stochastic,
    compute_indicators,
    sma,
    ema,
    ema_series,
    rsi,
    macd,
    bollinger_bands,
    stochastic,
    normalized_atr,
)

__all__ = [
    "IndicatorSet",
    "MACD",
    "BollingerBands",
    "Stochastic",
    "compute_indicators",
    "sma",
    "ema",
    "ema_series",
    "rsi",
    "macd",
    "bollinger_bands",
    "stochastic",
    "normalized_atr",
]
