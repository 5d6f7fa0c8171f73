"""Strategies: trend classification, signal fusion, pullback strategy."""

from trend_trader.strategies.base import BaseStrategy
from trend_trader.strategies.trend import TrendClassifier, TrendContext, TrendState, VolumeState
from trend_trader.strategies.trend_pullback import (
    CompositeSignal,
    MarketAnalysis,
    TrendPullbackStrategy,
    fuse_signals,
)

__all__ = [
    "BaseStrategy",
    "CompositeSignal",
    "MarketAnalysis",
    "TrendClassifier",
    "TrendContext",
    "TrendPullbackStrategy",
    "TrendState",
    "VolumeState",
    "fuse_signals",
]
