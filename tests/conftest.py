"""Shared builders: synthetic OHLCV frames and a scripted strategy."""

from dataclasses import replace

import numpy as np
import pandas as pd
import pytest

from trend_trader.core.types import Action, TrendDirection
from trend_trader.strategies.trend_pullback import CompositeSignal, TrendPullbackStrategy


def build_frame(closes, volumes=None, start="2024-01-01", freq="1h", spread=0.001):
    """OHLCV frame: open = previous close, high/low = body widened by `spread`."""
    closes = np.asarray(closes, dtype=float)
    n = len(closes)
    vols = np.full(n, 1000.0) if volumes is None else np.asarray(volumes, dtype=float)
    opens = np.concatenate([closes[:1], closes[:-1]])
    return pd.DataFrame({
        "time": pd.date_range(start, periods=n, freq=freq),
        "open": opens,
        "high": np.maximum(opens, closes) * (1 + spread),
        "low": np.minimum(opens, closes) * (1 - spread),
        "close": closes,
        "volume": vols,
    })


class ScriptedStrategy(TrendPullbackStrategy):
    """Real indicators, but the composite signal comes from a script (one entry per analyze call)."""

    def __init__(self, script, daily=TrendDirection.UP, warmup_bars=60):
        super().__init__(warmup_bars=warmup_bars)
        self.script = list(script)
        self.daily = daily
        self.calls = 0
        self.current = Action.HOLD

    def analyze(self, df):
        analysis = super().analyze(df)
        action, confidence = self.script[self.calls] if self.calls < len(self.script) else (Action.HOLD, 0.0)
        self.calls += 1
        self.current = action
        return replace(
            analysis,
            signal=CompositeSignal(action, confidence, [f"scripted {action.value}"]),
            daily_trend=self.daily,
            entry_condition=True,
        )


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def flat_frame():
    """200 bars at a constant 45000 close, volume 1000."""
    return build_frame([45000.0] * 200)
