"""Unit tests for risk.manager."""

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from trend_trader.core.state import TradingState
from trend_trader.core.types import Action, ExternalPrediction, Position, RiskLevel, TrendDirection
from trend_trader.indicators.technical import BollingerBands, IndicatorSet, compute_indicators
from trend_trader.risk.manager import (
    RiskAssessor,
    frequency_factor,
    position_factor,
    prediction_factor,
    risk_level,
    safe_position_value,
    technical_factor,
    volatility_factor,
    within_weekly_loss_limit,
)

NOW = datetime(2024, 1, 10, 12, 0)


def assessor(**overrides) -> RiskAssessor:
    params = dict(max_daily_trades=5, trade_amount=10.0, max_position_size=100.0,
                  stop_loss_pct=1.0, take_profit_pct=0.3)
    params.update(overrides)
    return RiskAssessor(**params)


def prediction(confidence: float) -> ExternalPrediction:
    return ExternalPrediction(signal=Action.BUY, confidence=confidence, provider="test")


def test_flat_market_assessment(flat_frame):
    ind = compute_indicators(flat_frame)
    state = TradingState(symbol="BTCUSDT", balance=1000.0)
    r = assessor().assess(flat_frame, ind, TrendDirection.SIDEWAYS, None, state, 45000.0, NOW)
    # 0.25*0.2 + 0.2*0.7 + 0.2*0.7 + 0.25*0 + 0.1*0.1
    assert r.score == pytest.approx(0.34)
    assert r.level == RiskLevel.LOW
    assert r.breakdown == pytest.approx(
        {"volatility": 0.2, "technical": 0.7, "prediction": 0.7, "position": 0.0, "frequency": 0.1}
    )
    assert r.position_size == pytest.approx(8.0)
    assert r.stop_loss_pct == pytest.approx(1.0)
    assert r.take_profit_pct == pytest.approx(0.3)
    assert len(r.factors) == 5
    assert r.recommendations == ["Trade with normal position size", "Monitor signals closely"]
    assert r.error is None


def test_position_size_capped(flat_frame):
    ind = compute_indicators(flat_frame)
    state = TradingState(symbol="BTCUSDT")
    r = assessor(trade_amount=100.0, max_position_size=50.0).assess(
        flat_frame, ind, TrendDirection.SIDEWAYS, None, state, 45000.0, NOW
    )
    assert r.position_size == 50.0


def test_risk_level_steps():
    assert risk_level(0.0) == RiskLevel.LOW
    assert risk_level(0.39) == RiskLevel.LOW
    assert risk_level(0.4) == RiskLevel.MEDIUM
    assert risk_level(0.69) == RiskLevel.MEDIUM
    assert risk_level(0.7) == RiskLevel.HIGH
    assert risk_level(1.0) == RiskLevel.HIGH


def test_volatility_factor(make_frame):
    assert volatility_factor(make_frame([100.0] * 10)).score == 0.5
    assert volatility_factor(make_frame([100.0] * 30)).score == 0.2
    # ~10% bar ranges
    assert volatility_factor(make_frame([100.0] * 30, spread=0.05)).score == 0.8


def test_technical_factor_components():
    base = IndicatorSet.neutral(100.0)
    # flat neutral set: MACD at crossover + Bollinger squeeze
    assert technical_factor(base, TrendDirection.UP).score == pytest.approx(0.5)
    assert technical_factor(replace(base, rsi=15.0), TrendDirection.UP).score == pytest.approx(0.8)
    assert technical_factor(replace(base, rsi=75.0), TrendDirection.UP).score == pytest.approx(0.7)
    capped = replace(base, rsi=15.0, bollinger=BollingerBands(99.5, 99.0, 98.5))
    assert technical_factor(capped, TrendDirection.SIDEWAYS).score == 1.0


def test_prediction_factor_buckets():
    assert prediction_factor(None).score == 0.7
    assert prediction_factor(prediction(0.45)).score == 0.8
    assert prediction_factor(prediction(0.55)).score == 0.6
    assert prediction_factor(prediction(0.65)).score == 0.4
    assert prediction_factor(prediction(0.75)).score == 0.2
    assert prediction_factor(prediction(0.85)).score == 0.1


def test_position_factor():
    state = TradingState(symbol="BTCUSDT")
    assert position_factor(state, 100.0, NOW).score == 0.0

    state.position = Position(Action.BUY, 45000.0, NOW - timedelta(hours=30), 0.01, stop_loss=44550.0)
    # held >24h (+0.3), loss > 2% (+0.3), stop crossed (+0.8) -> clamped
    assert position_factor(state, 44000.0, NOW).score == 1.0

    state.position = Position(Action.BUY, 100.0, NOW - timedelta(hours=1), 1.0, take_profit=101.0)
    assert position_factor(state, 102.0, NOW).score == 0.0


def test_frequency_factor_steps():
    assert frequency_factor(5, 5).score == 1.0
    assert frequency_factor(4, 5).score == 0.6
    assert frequency_factor(3, 5).score == 0.3
    assert frequency_factor(1, 5).score == 0.1


def test_assess_fails_safe(flat_frame):
    ind = compute_indicators(flat_frame)
    r = assessor().assess(flat_frame, ind, TrendDirection.UP, None, None, 45000.0, NOW)
    assert r.level == RiskLevel.HIGH
    assert r.score == 1.0
    assert r.position_size == 0.0
    assert r.error


def test_score_within_bounds(make_frame):
    state = TradingState(symbol="BTCUSDT", daily_trade_count=9)
    state.position = Position(Action.BUY, 50000.0, NOW - timedelta(days=3), 0.01, stop_loss=49000.0)
    df = make_frame([40000.0] * 100, spread=0.08)
    ind = compute_indicators(df)
    r = assessor().assess(df, ind, TrendDirection.SIDEWAYS, prediction(0.1), state, 40000.0, NOW)
    assert 0.0 <= r.score <= 1.0
    assert r.level == RiskLevel.HIGH
    assert r.position_size == pytest.approx(2.0)
    assert r.stop_loss_pct == pytest.approx(0.5)
    assert r.take_profit_pct == pytest.approx(0.21)


def test_safe_position_value():
    # risk 50 over a 450 stop distance -> 5000 notional, capped at 10% of balance
    assert safe_position_value(10000.0, 45000.0, 44550.0) == pytest.approx(1000.0)
    assert safe_position_value(10000.0, 45000.0, 44550.0, max_pct=100.0) == pytest.approx(5000.0)
    assert safe_position_value(10000.0, 45000.0, 45000.0) == 0.0


def test_weekly_loss_limit():
    assert within_weekly_loss_limit(10000.0, -100.0) is True
    assert within_weekly_loss_limit(10000.0, -150.0) is False
    assert within_weekly_loss_limit(10000.0, -200.0) is False
    assert within_weekly_loss_limit(10000.0, 500.0) is True
