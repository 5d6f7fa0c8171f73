"""
Risk assessor: weighted composite of five factors -> level, position notional,
dynamic stop-loss / take-profit distances.

Weights: volatility 25%, technical instability 20%, prediction confidence 20%,
position exposure 25%, trading frequency 10%. Level: HIGH >= 0.7, MEDIUM >= 0.4.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from trend_trader.core.state import TradingState
from trend_trader.core.types import ExternalPrediction, RiskLevel, TrendDirection
from trend_trader.indicators.technical import IndicatorSet, normalized_atr

logger = logging.getLogger("trend_trader.risk")

WEIGHTS: Dict[str, float] = {
    "volatility": 0.25,
    "technical": 0.20,
    "prediction": 0.20,
    "position": 0.25,
    "frequency": 0.10,
}
MIN_VOLATILITY_BARS = 20
ATR_LOOKBACK = 24
MACD_CROSS_THRESHOLD = 0.001


@dataclass(frozen=True)
class RiskFactor:
    name: str
    score: float
    reason: str


@dataclass
class RiskAssessment:
    """Composite risk for one cycle. position_size is a quote-currency notional."""
    level: RiskLevel
    score: float
    factors: List[str] = field(default_factory=list)
    breakdown: Dict[str, float] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)
    position_size: float = 0.0
    stop_loss_pct: float = 0.0
    take_profit_pct: float = 0.0
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> "RiskAssessment":
        """Fail-safe result: maximum risk, nothing to trade."""
        return cls(level=RiskLevel.HIGH, score=1.0, position_size=0.0, error=error)

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "score": self.score,
            "factors": list(self.factors),
            "breakdown": dict(self.breakdown),
            "recommendations": list(self.recommendations),
            "position_size": self.position_size,
            "stop_loss_pct": self.stop_loss_pct,
            "take_profit_pct": self.take_profit_pct,
            "error": self.error,
        }


def risk_level(score: float) -> RiskLevel:
    if score >= 0.7:
        return RiskLevel.HIGH
    if score >= 0.4:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def volatility_factor(df: pd.DataFrame) -> RiskFactor:
    """Normalized ATR over the last 24 bars."""
    if df is None or len(df) < MIN_VOLATILITY_BARS:
        return RiskFactor("volatility", 0.5, "insufficient history")
    atr = normalized_atr(df, ATR_LOOKBACK)
    if atr > 0.05:
        return RiskFactor("volatility", 0.8, f"very high volatility (ATR {atr:.2%})")
    if atr > 0.03:
        return RiskFactor("volatility", 0.6, f"high volatility (ATR {atr:.2%})")
    if atr > 0.02:
        return RiskFactor("volatility", 0.4, f"moderate volatility (ATR {atr:.2%})")
    return RiskFactor("volatility", 0.2, f"low volatility (ATR {atr:.2%})")


def technical_factor(ind: IndicatorSet, short_direction: TrendDirection) -> RiskFactor:
    score = 0.0
    notes: List[str] = []
    if ind.rsi > 80 or ind.rsi < 20:
        score += 0.3
        notes.append("RSI in extreme zone")
    elif ind.rsi > 70 or ind.rsi < 30:
        score += 0.2
        notes.append("RSI overbought/oversold")
    if abs(ind.macd.histogram) < MACD_CROSS_THRESHOLD:
        score += 0.2
        notes.append("MACD near crossover")
    bb = ind.bollinger
    if bb.middle and bb.width_pct < 0.02:
        score += 0.3
        notes.append("Bollinger squeeze")
    if ind.price > bb.upper or ind.price < bb.lower:
        score += 0.2
        notes.append("price outside Bollinger Bands")
    if short_direction == TrendDirection.SIDEWAYS:
        score += 0.2
        notes.append("sideways market")
    reason = ", ".join(notes) if notes else "technicals stable"
    return RiskFactor("technical", min(score, 1.0), reason)


def prediction_factor(prediction: Optional[ExternalPrediction]) -> RiskFactor:
    if prediction is None:
        return RiskFactor("prediction", 0.7, "no external prediction")
    c = prediction.confidence
    if c < 0.5:
        return RiskFactor("prediction", 0.8, f"very low prediction confidence ({c:.2f})")
    if c < 0.6:
        return RiskFactor("prediction", 0.6, f"low prediction confidence ({c:.2f})")
    if c < 0.7:
        return RiskFactor("prediction", 0.4, f"medium prediction confidence ({c:.2f})")
    if c < 0.8:
        return RiskFactor("prediction", 0.2, f"high prediction confidence ({c:.2f})")
    return RiskFactor("prediction", 0.1, f"very high prediction confidence ({c:.2f})")


def position_factor(state: TradingState, price: float, now: datetime) -> RiskFactor:
    pos = state.position
    if pos is None:
        return RiskFactor("position", 0.0, "no open position")
    score = 0.0
    notes: List[str] = []
    holding_hours = (now - pos.entry_time).total_seconds() / 3600
    if holding_hours > 24:
        score += 0.3
        notes.append(f"held {holding_hours:.0f}h")
    pnl = pos.unrealized_pct(price)
    if pnl < -0.05:
        score += 0.5
        notes.append(f"large loss ({pnl:.2%})")
    elif pnl < -0.02:
        score += 0.3
        notes.append(f"losing ({pnl:.2%})")
    if pos.stop_loss and price <= pos.stop_loss:
        score += 0.8
        notes.append("stop-loss reached")
    if pos.take_profit and price >= pos.take_profit:
        score -= 0.2
        notes.append("take-profit reached")
    reason = ", ".join(notes) if notes else "position stable"
    return RiskFactor("position", max(0.0, min(score, 1.0)), reason)


def frequency_factor(daily_trade_count: int, max_daily_trades: int) -> RiskFactor:
    ratio = daily_trade_count / max_daily_trades if max_daily_trades > 0 else 1.0
    detail = f"{daily_trade_count}/{max_daily_trades} trades today"
    if ratio >= 1.0:
        return RiskFactor("frequency", 1.0, f"daily limit reached ({detail})")
    if ratio >= 0.8:
        return RiskFactor("frequency", 0.6, f"near daily limit ({detail})")
    if ratio >= 0.5:
        return RiskFactor("frequency", 0.3, f"high frequency ({detail})")
    return RiskFactor("frequency", 0.1, f"normal frequency ({detail})")


def recommendations_for(score: float) -> List[str]:
    if score >= 0.7:
        return ["Avoid trading in high-risk conditions", "Wait for the market to stabilize"]
    if score >= 0.5:
        return ["Reduce position size", "Tighten the stop-loss"]
    if score >= 0.3:
        return ["Trade with normal position size", "Monitor signals closely"]
    return ["Favorable trading conditions", "Position size may be increased slightly"]


def size_multiplier(score: float) -> float:
    if score >= 0.7:
        return 0.2
    if score >= 0.5:
        return 0.5
    if score >= 0.3:
        return 0.8
    return 1.2


def stop_loss_multiplier(score: float) -> float:
    if score >= 0.7:
        return 0.5
    if score >= 0.5:
        return 0.7
    if score <= 0.2:
        return 1.5
    return 1.0


def take_profit_multiplier(score: float) -> float:
    if score >= 0.7:
        return 0.7
    if score <= 0.2:
        return 1.3
    return 1.0


def safe_position_value(
    balance: float,
    entry_price: float,
    stop_price: float,
    risk_pct: float = 0.5,
    max_pct: float = 10.0,
) -> float:
    """
    Stop-distance sizing: risk `risk_pct`% of balance between entry and stop,
    never more than `max_pct`% of balance. Zero stop distance -> 0.
    """
    distance = abs(entry_price - stop_price)
    if distance == 0 or balance <= 0 or entry_price <= 0:
        return 0.0
    risk_amount = balance * risk_pct / 100
    value = risk_amount / distance * entry_price
    return min(value, balance * max_pct / 100)


def within_weekly_loss_limit(balance: float, weekly_pnl: float, limit_pct: float = 1.5) -> bool:
    """False once the week's realized P&L reaches -limit_pct% of balance."""
    if balance <= 0:
        return weekly_pnl >= 0
    return weekly_pnl / balance * 100 > -limit_pct


class RiskAssessor:
    """
    Scores one cycle's risk. Holds configuration only; counters come from TradingState.
    """

    def __init__(
        self,
        max_daily_trades: int,
        trade_amount: float,
        max_position_size: float,
        stop_loss_pct: float,
        take_profit_pct: float,
    ):
        self.max_daily_trades = max_daily_trades
        self.trade_amount = trade_amount
        self.max_position_size = max_position_size
        self.stop_loss_pct = stop_loss_pct
        self.take_profit_pct = take_profit_pct

    def assess(
        self,
        df: pd.DataFrame,
        indicators: IndicatorSet,
        short_direction: TrendDirection,
        prediction: Optional[ExternalPrediction],
        state: TradingState,
        price: float,
        now: datetime,
    ) -> RiskAssessment:
        try:
            factors = [
                volatility_factor(df),
                technical_factor(indicators, short_direction),
                prediction_factor(prediction),
                position_factor(state, price, now),
                frequency_factor(state.daily_trade_count, self.max_daily_trades),
            ]
            score = sum(WEIGHTS[f.name] * f.score for f in factors)
            score = max(0.0, min(score, 1.0))
            result = RiskAssessment(
                level=risk_level(score),
                score=score,
                factors=[f"{f.name}: {f.reason}" for f in factors],
                breakdown={f.name: f.score for f in factors},
                recommendations=recommendations_for(score),
                position_size=min(self.trade_amount * size_multiplier(score), self.max_position_size),
                stop_loss_pct=self.stop_loss_pct * stop_loss_multiplier(score),
                take_profit_pct=self.take_profit_pct * take_profit_multiplier(score),
            )
        except Exception as e:
            logger.exception("Risk assessment failed: %s", e)
            return RiskAssessment.failed(str(e))
        logger.debug("Risk %s score=%.3f size=%.2f", result.level.value, result.score, result.position_size)
        return result
