"""Abstract strategy: indicators + market analysis from a trailing bar window."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import pandas as pd

from trend_trader.indicators.technical import IndicatorSet

if TYPE_CHECKING:
    from trend_trader.strategies.trend_pullback import CompositeSignal, MarketAnalysis


class BaseStrategy(ABC):
    """Strategy turns the window ending at the last closed bar into a MarketAnalysis."""

    @abstractmethod
    def compute_indicators(self, df: pd.DataFrame) -> IndicatorSet:
        """Indicator snapshot for the last bar. No lookahead."""
        pass

    @abstractmethod
    def analyze(self, df: pd.DataFrame) -> "MarketAnalysis":
        """
        Full analysis for the last bar. Must not raise: on bad input return a
        neutral HOLD analysis carrying the reason.
        """
        pass

    def get_signal(self, df: pd.DataFrame) -> "CompositeSignal":
        return self.analyze(df).signal
