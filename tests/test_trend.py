"""Unit tests for strategies.trend."""

import numpy as np

from trend_trader.core.types import TrendDirection, TrendStrength, VolumeStrength, VolumeTrend
from trend_trader.indicators.technical import compute_indicators
from trend_trader.strategies.trend import (
    TrendClassifier,
    daily_trend,
    ema20_distance,
    entry_condition,
    short_trend,
    volume_regime,
)


def test_rising_series_is_uptrend(make_frame):
    df = make_frame(45000 + 10 * np.arange(60))
    assert daily_trend(compute_indicators(df)) == TrendDirection.UP


def test_falling_series_is_downtrend(make_frame):
    df = make_frame(45000 - 10 * np.arange(200))
    assert daily_trend(compute_indicators(df)) == TrendDirection.DOWN


def test_constant_series_is_sideways(flat_frame):
    assert daily_trend(compute_indicators(flat_frame)) == TrendDirection.SIDEWAYS


def test_insufficient_history_is_sideways(make_frame):
    df = make_frame(45000 + 10 * np.arange(30))
    assert daily_trend(compute_indicators(df)) == TrendDirection.SIDEWAYS


def test_short_trend_strength_and_levels(make_frame):
    closes = 45000 + 10 * np.arange(60)
    df = make_frame(closes)
    state = short_trend(df, compute_indicators(df))
    assert state.direction == TrendDirection.UP
    assert state.strength == TrendStrength.WEAK
    assert state.support == closes[-10]
    assert state.resistance == closes[-1]


def test_short_trend_strong_move(make_frame):
    closes = [100.0] * 59 + [103.0]
    df = make_frame(closes)
    assert short_trend(df, compute_indicators(df)).strength == TrendStrength.STRONG


def test_volume_regimes(make_frame):
    high = volume_regime(make_frame([100.0] * 30, volumes=[1000.0] * 29 + [3000.0]))
    assert high.strength == VolumeStrength.HIGH
    assert high.trend == VolumeTrend.INCREASING

    low = volume_regime(make_frame([100.0] * 30, volumes=[1000.0] * 29 + [500.0]))
    assert low.strength == VolumeStrength.LOW
    assert low.trend == VolumeTrend.DECREASING

    flat = volume_regime(make_frame([100.0] * 30))
    assert flat.strength == VolumeStrength.MEDIUM
    assert flat.trend == VolumeTrend.STABLE


def test_entry_condition_trending():
    assert entry_condition(100.0, 100.1, 35.0, TrendDirection.UP) is True
    assert entry_condition(100.0, 100.1, 45.0, TrendDirection.UP) is False
    assert entry_condition(100.0, 101.0, 35.0, TrendDirection.UP) is False
    assert entry_condition(100.0, 100.1, 65.0, TrendDirection.DOWN) is True


def test_entry_condition_sideways_uses_tighter_band():
    assert entry_condition(100.0, 100.05, 30.0, TrendDirection.SIDEWAYS) is True
    assert entry_condition(100.0, 100.15, 30.0, TrendDirection.SIDEWAYS) is False
    assert entry_condition(100.0, 100.05, 50.0, TrendDirection.SIDEWAYS) is False


def test_ema20_distance_zero_ema():
    assert ema20_distance(100.0, 0.0) == float("inf")


def test_classifier_bundles_all_views(flat_frame):
    ctx = TrendClassifier().classify(flat_frame, compute_indicators(flat_frame))
    assert ctx.daily == TrendDirection.SIDEWAYS
    assert ctx.trend.direction == TrendDirection.SIDEWAYS
    assert ctx.volume.strength == VolumeStrength.MEDIUM
