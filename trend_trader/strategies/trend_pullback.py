"""
Trend-following pullback strategy with a sideways scalp branch.

Trending (daily UP/DOWN): at least 60% of the four indicator votes on the trend side,
price pulled back within 0.2% of EMA20, RSI < 40 for longs / > 60 for shorts.
Confidence = ratio * 0.8 (+0.1 on high volume). Voided if price already closed
beyond the Bollinger band on the entry side.

Sideways: within 0.1% of EMA20 with RSI < 35 (BUY) or > 65 (SELL), base 0.6,
+0.1 each for high volume, MACD agreement and a Bollinger band touch, capped at 0.8.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

import pandas as pd

from trend_trader.core.types import Action, TrendDirection, TrendStrength, VolumeStrength, VolumeTrend
from trend_trader.indicators.technical import IndicatorSet, compute_indicators
from trend_trader.strategies.base import BaseStrategy
from trend_trader.strategies.trend import (
    SIDEWAYS_PULLBACK_BAND,
    TREND_PULLBACK_BAND,
    TrendClassifier,
    TrendState,
    VolumeState,
    ema20_distance,
    entry_condition,
)

logger = logging.getLogger("trend_trader.strategy")

VOTE_COUNT = 4
MIN_VOTE_RATIO = 0.6
SIDEWAYS_MAX_CONFIDENCE = 0.8


@dataclass
class CompositeSignal:
    """Fused technical signal with its audit trail."""
    action: Action
    confidence: float
    reasons: List[str] = field(default_factory=list)

    @property
    def reasoning(self) -> str:
        return " | ".join(self.reasons)


@dataclass
class MarketAnalysis:
    indicators: IndicatorSet
    daily_trend: TrendDirection
    trend: TrendState
    volume: VolumeState
    signal: CompositeSignal
    entry_condition: bool

    @property
    def price(self) -> float:
        return self.indicators.price

    @property
    def sufficient(self) -> bool:
        return self.indicators.sufficient


def indicator_votes(ind: IndicatorSet) -> Tuple[int, int, List[str]]:
    """RSI, MACD, MA ordering and Stochastic votes. Returns (buy, sell, reasons)."""
    buy = sell = 0
    reasons: List[str] = []

    if ind.rsi < 30:
        buy += 1
        reasons.append(f"RSI oversold ({ind.rsi:.1f} < 30)")
    elif ind.rsi > 70:
        sell += 1
        reasons.append(f"RSI overbought ({ind.rsi:.1f} > 70)")
    else:
        reasons.append(f"RSI neutral ({ind.rsi:.1f})")

    m = ind.macd
    if m.line > m.signal and m.histogram > 0:
        buy += 1
        reasons.append("MACD bullish")
    elif m.line < m.signal and m.histogram < 0:
        sell += 1
        reasons.append("MACD bearish")
    else:
        reasons.append("MACD neutral")

    if ind.price > ind.sma20 > ind.sma50:
        buy += 1
        reasons.append("Price above SMA20 > SMA50")
    elif ind.price < ind.sma20 < ind.sma50:
        sell += 1
        reasons.append("Price below SMA20 < SMA50")
    else:
        reasons.append("Moving averages mixed")

    st = ind.stochastic
    if st.k < 20 and st.d < 20:
        buy += 1
        reasons.append("Stochastic oversold")
    elif st.k > 80 and st.d > 80:
        sell += 1
        reasons.append("Stochastic overbought")
    else:
        reasons.append("Stochastic neutral")

    return buy, sell, reasons


def _sideways_signal(ind: IndicatorSet, volume: VolumeState, reasons: List[str]) -> CompositeSignal:
    distance = ema20_distance(ind.price, ind.ema20)
    near = distance <= SIDEWAYS_PULLBACK_BAND
    reasons.append(f"Distance to EMA20: {distance * 100:.3f}%")
    action = Action.HOLD
    confidence = 0.0

    if ind.rsi < 35 and near:
        action = Action.BUY
        confidence = 0.6
        reasons.append(f"Sideways long: RSI oversold ({ind.rsi:.1f}) near EMA20")
        if volume.strength == VolumeStrength.HIGH:
            confidence += 0.1
            reasons.append("High volume confirms")
        if ind.macd.line > ind.macd.signal:
            confidence += 0.1
            reasons.append("MACD supports upside")
    elif ind.rsi > 65 and near:
        action = Action.SELL
        confidence = 0.6
        reasons.append(f"Sideways short: RSI overbought ({ind.rsi:.1f}) near EMA20")
        if volume.strength == VolumeStrength.HIGH:
            confidence += 0.1
            reasons.append("High volume confirms")
        if ind.macd.line < ind.macd.signal:
            confidence += 0.1
            reasons.append("MACD supports downside")
    else:
        reasons.append(f"Waiting for sideways setup: RSI needs < 35 or > 65 (now {ind.rsi:.1f})")
        if not near:
            reasons.append("Waiting for price to return to EMA20")

    if action == Action.BUY and ind.price <= ind.bollinger.lower:
        confidence += 0.1
        reasons.append("Price at Bollinger lower band")
    elif action == Action.SELL and ind.price >= ind.bollinger.upper:
        confidence += 0.1
        reasons.append("Price at Bollinger upper band")

    return CompositeSignal(action, min(confidence, SIDEWAYS_MAX_CONFIDENCE), reasons)


def fuse_signals(
    ind: IndicatorSet,
    daily: TrendDirection,
    trend: TrendState,
    volume: VolumeState,
) -> CompositeSignal:
    """Combine indicator votes and trend context into one composite signal."""
    reasons = [f"Daily trend: {daily.value}"]
    if daily == TrendDirection.SIDEWAYS:
        reasons.append("Sideways market: scalp rules")
        return _sideways_signal(ind, volume, reasons)

    buy, sell, vote_reasons = indicator_votes(ind)
    reasons.extend(vote_reasons)
    reasons.append(f"Short-term trend: {trend.direction.value} ({trend.strength.value})")
    buy_ratio = buy / VOTE_COUNT
    sell_ratio = sell / VOTE_COUNT
    near = ema20_distance(ind.price, ind.ema20) <= TREND_PULLBACK_BAND
    action = Action.HOLD
    confidence = 0.0

    if daily == TrendDirection.UP:
        reasons.append(
            f"Uptrend: price {ind.price:.2f} > MA50 {ind.long_ma:.2f} > MA200 {ind.long_ma2:.2f}"
        )
        if buy_ratio >= MIN_VOTE_RATIO and near and ind.rsi < 40:
            action = Action.BUY
            confidence = buy_ratio * 0.8
            reasons.append(f"Long: pullback to EMA20 ({ind.ema20:.2f}), buy votes {buy_ratio:.0%}")
            if volume.strength == VolumeStrength.HIGH:
                confidence += 0.1
                reasons.append("High volume confirms")
        else:
            reasons.append(f"Waiting for long setup: EMA20 pullback and buy votes >= 60% (now {buy_ratio:.0%})")
    else:
        reasons.append(
            f"Downtrend: price {ind.price:.2f} < MA50 {ind.long_ma:.2f} < MA200 {ind.long_ma2:.2f}"
        )
        if sell_ratio >= MIN_VOTE_RATIO and near and ind.rsi > 60:
            action = Action.SELL
            confidence = sell_ratio * 0.8
            reasons.append(f"Short: rally to EMA20 ({ind.ema20:.2f}), sell votes {sell_ratio:.0%}")
            if volume.strength == VolumeStrength.HIGH:
                confidence += 0.1
                reasons.append("High volume confirms")
        else:
            reasons.append(f"Waiting for short setup: EMA20 rally and sell votes >= 60% (now {sell_ratio:.0%})")

    # Do not chase a move that already closed outside the band.
    if action == Action.BUY and ind.price > ind.bollinger.upper:
        action, confidence = Action.HOLD, 0.0
        reasons.append("Long voided: price above Bollinger upper band")
    elif action == Action.SELL and ind.price < ind.bollinger.lower:
        action, confidence = Action.HOLD, 0.0
        reasons.append("Short voided: price below Bollinger lower band")

    if action == Action.HOLD:
        reasons.append("Capital first: waiting for a clearer signal")
    return CompositeSignal(action, min(confidence, 1.0), reasons)


class TrendPullbackStrategy(BaseStrategy):
    """IndicatorEngine -> TrendClassifier -> SignalFusion over one trailing window."""

    def __init__(self, warmup_bars: int = 60, rsi_period: int = 14):
        self.warmup_bars = warmup_bars
        self.rsi_period = rsi_period
        self.classifier = TrendClassifier()

    def compute_indicators(self, df: pd.DataFrame) -> IndicatorSet:
        return compute_indicators(df, warmup_bars=self.warmup_bars, rsi_period=self.rsi_period)

    def analyze(self, df: pd.DataFrame) -> MarketAnalysis:
        try:
            ind = self.compute_indicators(df)
            ctx = self.classifier.classify(df, ind)
            signal = fuse_signals(ind, ctx.daily, ctx.trend, ctx.volume)
            if not ind.sufficient:
                signal = CompositeSignal(
                    Action.HOLD, 0.0,
                    [f"Insufficient history: {ind.bars} bars < warm-up {self.warmup_bars}"],
                )
            analysis = MarketAnalysis(
                indicators=ind,
                daily_trend=ctx.daily,
                trend=ctx.trend,
                volume=ctx.volume,
                signal=signal,
                entry_condition=entry_condition(ind.price, ind.ema20, ind.rsi, ctx.daily),
            )
        except Exception as e:
            logger.exception("Analysis failed, falling back to HOLD: %s", e)
            return neutral_analysis(df, f"Analysis error: {e}")
        logger.debug(
            "Analysis: signal=%s conf=%.2f rsi=%.1f daily=%s",
            analysis.signal.action.value, analysis.signal.confidence,
            analysis.indicators.rsi, analysis.daily_trend.value,
        )
        return analysis


def neutral_analysis(df: pd.DataFrame, reason: str) -> MarketAnalysis:
    """HOLD analysis for a window that could not be evaluated."""
    price = 0.0
    try:
        if df is not None and len(df):
            price = float(df["close"].iloc[-1])
    except (KeyError, TypeError, ValueError):
        price = 0.0
    ind = IndicatorSet.neutral(price)
    return MarketAnalysis(
        indicators=ind,
        daily_trend=TrendDirection.SIDEWAYS,
        trend=TrendState(TrendDirection.SIDEWAYS, TrendStrength.WEAK, price, price),
        volume=VolumeState(VolumeTrend.STABLE, VolumeStrength.MEDIUM, 0.0, 0.0),
        signal=CompositeSignal(Action.HOLD, 0.0, [reason]),
        entry_condition=False,
    )
