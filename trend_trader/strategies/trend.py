"""
Trend classification: long-horizon ("daily") direction from MA50/MA200, short-horizon
direction/strength/support/resistance from SMA20/SMA50, and the volume regime.
"""

from __future__ import annotations
from dataclasses import dataclass

import numpy as np
import pandas as pd

from trend_trader.core.types import TrendDirection, TrendStrength, VolumeStrength, VolumeTrend
from trend_trader.indicators.technical import IndicatorSet, sma

TREND_PULLBACK_BAND = 0.002
SIDEWAYS_PULLBACK_BAND = 0.001


@dataclass(frozen=True)
class TrendState:
    direction: TrendDirection
    strength: TrendStrength
    support: float
    resistance: float


@dataclass(frozen=True)
class VolumeState:
    trend: VolumeTrend
    strength: VolumeStrength
    average: float
    current: float


def classify_direction(price: float, fast_ma: float, slow_ma: float) -> TrendDirection:
    """UP if price > fast > slow, DOWN if price < fast < slow, else SIDEWAYS."""
    if price > fast_ma > slow_ma:
        return TrendDirection.UP
    if price < fast_ma < slow_ma:
        return TrendDirection.DOWN
    return TrendDirection.SIDEWAYS


def daily_trend(ind: IndicatorSet) -> TrendDirection:
    """Long-horizon trend from the long moving averages (MA50 over MA200)."""
    if not ind.sufficient:
        return TrendDirection.SIDEWAYS
    return classify_direction(ind.price, ind.long_ma, ind.long_ma2)


def short_trend(df: pd.DataFrame, ind: IndicatorSet) -> TrendState:
    """Short-horizon trend, bar-over-bar strength, and 10-bar support/resistance."""
    closes = df["close"].to_numpy(dtype=float) if len(df) else np.array([ind.price])
    price = float(closes[-1])
    direction = classify_direction(price, ind.sma20, ind.sma50) if ind.sufficient else TrendDirection.SIDEWAYS

    change = price - closes[-2] if closes.size > 1 else 0.0
    change_pct = abs(change / price) * 100 if price else 0.0
    if change_pct > 2:
        strength = TrendStrength.STRONG
    elif change_pct > 0.5:
        strength = TrendStrength.MODERATE
    else:
        strength = TrendStrength.WEAK

    recent = closes[-10:]
    return TrendState(
        direction=direction,
        strength=strength,
        support=float(recent.min()),
        resistance=float(recent.max()),
    )


def volume_regime(df: pd.DataFrame) -> VolumeState:
    """Current volume vs SMA(20) of volume; trend from first vs last of the trailing 5."""
    if len(df) == 0:
        return VolumeState(VolumeTrend.STABLE, VolumeStrength.MEDIUM, 0.0, 0.0)
    volumes = df["volume"].to_numpy(dtype=float)
    current = float(volumes[-1])
    average = sma(volumes, 20)

    recent = volumes[-5:]
    if recent[-1] > recent[0]:
        trend = VolumeTrend.INCREASING
    elif recent[-1] < recent[0]:
        trend = VolumeTrend.DECREASING
    else:
        trend = VolumeTrend.STABLE

    if current > average * 1.5:
        strength = VolumeStrength.HIGH
    elif current < average * 0.8:
        strength = VolumeStrength.LOW
    else:
        strength = VolumeStrength.MEDIUM
    return VolumeState(trend=trend, strength=strength, average=average, current=current)


def ema20_distance(price: float, ema20: float) -> float:
    """|price - EMA20| / EMA20."""
    if ema20 == 0:
        return float("inf")
    return abs(price - ema20) / ema20


def entry_condition(price: float, ema20: float, rsi_value: float, daily: TrendDirection) -> bool:
    """
    Pullback entry rule. Trending: within 0.2% of EMA20 with RSI < 40 (UP) or > 60 (DOWN).
    Sideways: within 0.1% of EMA20 with RSI < 35 or > 65.
    """
    distance = ema20_distance(price, ema20)
    if daily == TrendDirection.UP:
        return distance <= TREND_PULLBACK_BAND and rsi_value < 40
    if daily == TrendDirection.DOWN:
        return distance <= TREND_PULLBACK_BAND and rsi_value > 60
    near = distance <= SIDEWAYS_PULLBACK_BAND
    return near and (rsi_value < 35 or rsi_value > 65)


@dataclass(frozen=True)
class TrendContext:
    daily: TrendDirection
    trend: TrendState
    volume: VolumeState


class TrendClassifier:
    """Bundles the long-horizon, short-horizon and volume classification of one window."""

    def classify(self, df: pd.DataFrame, ind: IndicatorSet) -> TrendContext:
        return TrendContext(
            daily=daily_trend(ind),
            trend=short_trend(df, ind),
            volume=volume_regime(df),
        )
