"""HTTP advisory provider: POST the market snapshot as JSON, validate the reply."""

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from trend_trader.core.types import Action, ExternalPrediction, MarketSnapshot
from trend_trader.prediction.base import PredictionError, PredictionProvider

logger = logging.getLogger("trend_trader.prediction.http")

SIGNAL_ALIASES = {"BUY": Action.BUY, "SELL": Action.SELL, "HOLD": Action.HOLD, "WAIT": Action.HOLD}


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_prediction(payload: Any, provider: str, now: Optional[datetime] = None) -> ExternalPrediction:
    """Validate `{signal, confidence, reasoning, target_price?, stop_loss?}`. Confidence is clamped to [0, 1]."""
    if not isinstance(payload, dict):
        raise PredictionError(f"{provider}: response is not a JSON object")
    signal = SIGNAL_ALIASES.get(str(payload.get("signal", "")).strip().upper())
    if signal is None:
        raise PredictionError(f"{provider}: unknown signal {payload.get('signal')!r}")
    try:
        confidence = float(payload.get("confidence"))
    except (TypeError, ValueError):
        raise PredictionError(f"{provider}: missing or invalid confidence")
    if confidence != confidence:
        raise PredictionError(f"{provider}: confidence is NaN")
    return ExternalPrediction(
        signal=signal,
        confidence=max(0.0, min(confidence, 1.0)),
        provider=provider,
        reasoning=str(payload.get("reasoning", "")),
        target_price=_optional_float(payload.get("target_price", payload.get("targetPrice"))),
        stop_loss=_optional_float(payload.get("stop_loss", payload.get("stopLoss"))),
        timestamp=now or datetime.now(timezone.utc),
    )


class HttpPredictionProvider(PredictionProvider):
    """Generic JSON-over-HTTP prediction endpoint. Never logs the API key."""

    def __init__(
        self,
        name: str,
        url: str,
        api_key: str = "",
        timeout_s: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._name = name
        self.url = url
        self._api_key = api_key
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return self._name

    def is_ready(self) -> bool:
        return bool(self.url)

    def predict(self, snapshot: MarketSnapshot) -> ExternalPrediction:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        try:
            r = self._session.post(self.url, json=snapshot.to_payload(), headers=headers, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise PredictionError(f"{self.name}: request failed: {e}") from e
        if r.status_code != 200:
            raise PredictionError(f"{self.name}: HTTP {r.status_code} {r.text[:200]}")
        try:
            payload = r.json()
        except ValueError as e:
            raise PredictionError(f"{self.name}: invalid JSON") from e
        return parse_prediction(payload, self.name)
