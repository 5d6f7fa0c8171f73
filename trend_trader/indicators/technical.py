"""
Technical indicators over a trailing OHLCV window: RSI, SMA/EMA, MACD,
Bollinger Bands, Stochastic, normalized ATR.

All functions are pure and never look past the last bar they are given.
With too little history they return neutral values instead of raising.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

NEUTRAL_RSI = 50.0
NEUTRAL_STOCH = 50.0


@dataclass(frozen=True)
class MACD:
    line: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float

    @property
    def width_pct(self) -> float:
        """Band width as a fraction of the middle band."""
        if self.middle == 0:
            return 0.0
        return (self.upper - self.lower) / self.middle


@dataclass(frozen=True)
class Stochastic:
    k: float
    d: float


@dataclass(frozen=True)
class IndicatorSet:
    """Indicator snapshot for the last bar of a window. Always recomputable from bars."""
    price: float
    volume: float
    rsi: float
    macd: MACD
    sma20: float
    sma50: float
    ema12: float
    ema26: float
    ema20: float
    long_ma: float
    long_ma2: float
    bollinger: BollingerBands
    stochastic: Stochastic
    atr_pct: float
    bars: int
    sufficient: bool

    @classmethod
    def neutral(cls, price: float, volume: float = 0.0, bars: int = 0) -> "IndicatorSet":
        """Placeholder set for short windows: RSI 50, every average at the last close."""
        return cls(
            price=price,
            volume=volume,
            rsi=NEUTRAL_RSI,
            macd=MACD(0.0, 0.0, 0.0),
            sma20=price,
            sma50=price,
            ema12=price,
            ema26=price,
            ema20=price,
            long_ma=price,
            long_ma2=price,
            bollinger=BollingerBands(price, price, price),
            stochastic=Stochastic(NEUTRAL_STOCH, NEUTRAL_STOCH),
            atr_pct=0.0,
            bars=bars,
            sufficient=False,
        )


def sma(values: Sequence[float], period: int) -> float:
    """Mean of the trailing `period` values (of all values if fewer)."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(arr[-period:].mean())


def ema_series(values: Sequence[float], period: int) -> np.ndarray:
    """
    EMA seeded with the SMA of the first `period` values, k = 2/(period+1).
    Entries before the seed are NaN.
    """
    arr = np.asarray(values, dtype=float)
    out = np.full(arr.shape, np.nan)
    if arr.size < period or period <= 0:
        return out
    k = 2.0 / (period + 1)
    ema_val = arr[:period].mean()
    out[period - 1] = ema_val
    for i in range(period, arr.size):
        ema_val = arr[i] * k + ema_val * (1 - k)
        out[i] = ema_val
    return out


def ema(values: Sequence[float], period: int) -> float:
    """Last EMA value; mean of all values when there are fewer than `period`."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    if arr.size < period:
        return float(arr.mean())
    return float(ema_series(arr, period)[-1])


def rsi(values: Sequence[float], period: int = 14) -> float:
    """
    Wilder RSI. Seed averages over the first `period` changes, then smooth with
    weight (period-1)/period. A flat window is neutral (50); no losses at all is 100.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size < period + 1:
        return NEUTRAL_RSI
    changes = np.diff(arr)
    gains = np.clip(changes, 0, None)
    losses = np.clip(-changes, 0, None)
    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
    if avg_loss == 0:
        return NEUTRAL_RSI if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))


def macd(values: Sequence[float], fast: int = 12, slow: int = 26, signal: int = 9) -> MACD:
    """MACD line = EMA(fast) - EMA(slow); signal = EMA(signal) of the line; histogram = line - signal."""
    arr = np.asarray(values, dtype=float)
    if arr.size < slow:
        return MACD(0.0, 0.0, 0.0)
    line_series = ema_series(arr, fast) - ema_series(arr, slow)
    line_series = line_series[slow - 1:]
    line = float(line_series[-1])
    sig = ema(line_series, signal)
    return MACD(line=line, signal=sig, histogram=line - sig)


def bollinger_bands(values: Sequence[float], period: int = 20, num_std: float = 2.0) -> BollingerBands:
    """Middle = SMA(period); upper/lower = middle +/- num_std * population stddev."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return BollingerBands(0.0, 0.0, 0.0)
    window = arr[-period:]
    middle = float(window.mean())
    std = float(window.std())
    return BollingerBands(upper=middle + num_std * std, middle=middle, lower=middle - num_std * std)


def stochastic(df: pd.DataFrame, period: int = 14, smooth: int = 3) -> Stochastic:
    """%K = (close - lowest low) / (highest high - lowest low) * 100 over `period`; %D = SMA(smooth) of %K."""
    if len(df) < period:
        return Stochastic(NEUTRAL_STOCH, NEUTRAL_STOCH)
    highest = df["high"].rolling(period).max()
    lowest = df["low"].rolling(period).min()
    rng = highest - lowest
    k_series = ((df["close"] - lowest) / rng.where(rng > 0) * 100).fillna(NEUTRAL_STOCH)
    k_series = k_series.iloc[period - 1:]
    k = float(k_series.iloc[-1])
    d = float(k_series.iloc[-smooth:].mean())
    return Stochastic(k=k, d=d)


def normalized_atr(df: pd.DataFrame, lookback: int = 24) -> float:
    """Mean true range over the last `lookback` bars, each TR divided by its close."""
    recent = df.iloc[-lookback:]
    if len(recent) < 2:
        return 0.0
    high_low = recent["high"] - recent["low"]
    high_close = (recent["high"] - recent["close"].shift()).abs()
    low_close = (recent["low"] - recent["close"].shift()).abs()
    tr = pd.concat([high_low, high_close, low_close], axis=1).max(axis=1).iloc[1:]
    closes = recent["close"].iloc[1:].replace(0, np.nan)
    return float((tr / closes).fillna(0.0).mean())


def compute_indicators(df: pd.DataFrame, warmup_bars: int = 60, rsi_period: int = 14) -> IndicatorSet:
    """
    Indicator snapshot for the last bar of an OHLCV window.
    Fewer than `warmup_bars` bars -> IndicatorSet.neutral (sufficient=False).
    """
    if df is None or len(df) == 0:
        return IndicatorSet.neutral(0.0)
    closes = df["close"].to_numpy(dtype=float)
    price = float(closes[-1])
    volume = float(df["volume"].iloc[-1])
    if len(df) < warmup_bars:
        return IndicatorSet.neutral(price, volume, len(df))
    return IndicatorSet(
        price=price,
        volume=volume,
        rsi=rsi(closes, rsi_period),
        macd=macd(closes),
        sma20=sma(closes, 20),
        sma50=sma(closes, 50),
        ema12=ema(closes, 12),
        ema26=ema(closes, 26),
        ema20=ema(closes, 20),
        long_ma=sma(closes, 50),
        long_ma2=sma(closes, 200),
        bollinger=bollinger_bands(closes, 20, 2.0),
        stochastic=stochastic(df, 14, 3),
        atr_pct=normalized_atr(df, 24),
        bars=len(df),
        sufficient=True,
    )
