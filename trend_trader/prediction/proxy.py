"""
Deterministic technical proxy for backtests. Deliberately a different interface from
PredictionProvider: it sees only indicators, so a recorded-response replay can be
substituted without touching the simulator.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime

from trend_trader.core.types import Action, ExternalPrediction
from trend_trader.indicators.technical import IndicatorSet

PROXY_NAME = "technical-proxy"


class TechnicalProxy(ABC):
    @abstractmethod
    def predict(self, indicators: IndicatorSet, timestamp: datetime) -> ExternalPrediction:
        pass


class TechnicalProxyPredictor(TechnicalProxy):
    """SMA20 vs SMA50 with RSI in (30, 70): BUY/SELL at 0.7, otherwise HOLD at 0.5."""

    def predict(self, indicators: IndicatorSet, timestamp: datetime) -> ExternalPrediction:
        rsi_ok = 30 < indicators.rsi < 70
        if indicators.sma20 > indicators.sma50 and rsi_ok:
            signal, confidence, why = Action.BUY, 0.7, "SMA20 above SMA50, RSI neutral"
        elif indicators.sma20 < indicators.sma50 and rsi_ok:
            signal, confidence, why = Action.SELL, 0.7, "SMA20 below SMA50, RSI neutral"
        else:
            signal, confidence, why = Action.HOLD, 0.5, "No clear proxy signal"
        return ExternalPrediction(
            signal=signal, confidence=confidence, provider=PROXY_NAME, reasoning=why, timestamp=timestamp
        )
