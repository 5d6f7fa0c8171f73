"""Unit tests for indicators.technical."""

import numpy as np
import pytest

from trend_trader.indicators.technical import (
    bollinger_bands,
    compute_indicators,
    ema,
    ema_series,
    macd,
    rsi,
    sma,
    stochastic,
)


def test_rsi_all_gains_is_100():
    assert rsi(list(range(1, 40))) == 100.0


def test_rsi_all_losses_is_0():
    assert rsi(list(range(40, 1, -1))) == pytest.approx(0.0)


def test_rsi_flat_and_short_windows_are_neutral():
    assert rsi([45000.0] * 50) == 50.0
    assert rsi([1.0, 2.0, 3.0]) == 50.0


def test_rsi_bounded_on_random_walk():
    rng = np.random.default_rng(7)
    closes = 100 + np.cumsum(rng.normal(0, 1, 300))
    for end in range(20, 300, 17):
        value = rsi(closes[:end])
        assert 0.0 <= value <= 100.0


def test_sma_trailing_and_short():
    assert sma([1, 2, 3, 4], 2) == 3.5
    assert sma([1, 2, 3], 10) == 2.0
    assert sma([], 5) == 0.0


def test_ema_equals_sma_at_full_length():
    rng = np.random.default_rng(1)
    values = 50 + rng.normal(0, 2, 40)
    assert ema(values, len(values)) == pytest.approx(sma(values, len(values)))


def test_ema_series_nan_before_seed():
    out = ema_series([1, 2, 3, 4, 5], 3)
    assert np.isnan(out[:2]).all()
    assert out[2] == pytest.approx(2.0)
    # k = 0.5: 4*0.5 + 2*0.5 = 3
    assert out[3] == pytest.approx(3.0)


def test_macd_rising_series_positive_line():
    m = macd(np.linspace(100, 200, 80))
    assert m.line > 0
    assert m.histogram == pytest.approx(m.line - m.signal)


def test_macd_flat_series_is_zero():
    m = macd([10.0] * 60)
    assert m.line == pytest.approx(0.0)
    assert m.histogram == pytest.approx(0.0)


def test_bollinger_population_std():
    bb = bollinger_bands([1, 2, 3, 4], period=4)
    std = np.sqrt(1.25)
    assert bb.middle == 2.5
    assert bb.upper == pytest.approx(2.5 + 2 * std)
    assert bb.lower == pytest.approx(2.5 - 2 * std)


def test_bollinger_flat_has_zero_width():
    bb = bollinger_bands([45000.0] * 30)
    assert bb.upper == bb.middle == bb.lower == 45000.0
    assert bb.width_pct == 0.0


def test_stochastic_at_top_of_range(make_frame):
    df = make_frame(np.linspace(100, 130, 30), spread=0.0)
    st = stochastic(df)
    assert st.k == pytest.approx(100.0)
    assert st.d == pytest.approx(100.0)


def test_stochastic_zero_range_is_neutral(make_frame):
    st = stochastic(make_frame([10.0] * 30, spread=0.0))
    assert st.k == 50.0
    assert st.d == 50.0


def test_compute_indicators_short_window_is_neutral(make_frame):
    ind = compute_indicators(make_frame(np.linspace(100, 130, 30)))
    assert ind.sufficient is False
    assert ind.rsi == 50.0
    assert ind.price == pytest.approx(130.0)
    assert ind.sma20 == ind.sma50 == ind.long_ma2 == ind.price
    assert ind.bars == 30


def test_compute_indicators_empty_frame(make_frame):
    ind = compute_indicators(make_frame([]))
    assert ind.sufficient is False
    assert ind.price == 0.0


def test_compute_indicators_long_ma_uses_available_bars(make_frame):
    closes = 45000 + 10 * np.arange(60)
    ind = compute_indicators(make_frame(closes))
    assert ind.sufficient is True
    assert ind.long_ma == pytest.approx(closes[-50:].mean())
    assert ind.long_ma2 == pytest.approx(closes.mean())
    assert ind.rsi == 100.0
