"""
External prediction capability: provider interface and a ranked fallback chain.

The chain is owned by the caller of the decision engine. A provider that fails
`max_failures` times in a row is skipped until its cooldown expires.
"""

from __future__ import annotations
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from trend_trader.core.types import ExternalPrediction, MarketSnapshot

logger = logging.getLogger("trend_trader.prediction")


class PredictionError(RuntimeError):
    """Provider could not produce a valid prediction."""


class PredictionProvider(ABC):
    """Advisory opinion source for one market snapshot."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def predict(self, snapshot: MarketSnapshot) -> ExternalPrediction:
        """Return a validated prediction or raise PredictionError."""
        pass

    def is_ready(self) -> bool:
        return True


@dataclass
class ProviderHealth:
    name: str
    requests: int = 0
    errors: int = 0
    consecutive_failures: int = 0
    last_error: str = ""
    cooldown_until: float = 0.0

    def to_dict(self, now: float) -> dict:
        return {
            "name": self.name,
            "requests": self.requests,
            "errors": self.errors,
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
            "healthy": now >= self.cooldown_until,
        }


class ProviderChain:
    """Try providers in rank order; None when every provider fails or is cooling down."""

    def __init__(
        self,
        providers: Sequence[PredictionProvider],
        max_failures: int = 3,
        cooldown_s: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.providers: List[PredictionProvider] = list(providers)
        self.max_failures = max_failures
        self.cooldown_s = cooldown_s
        self._clock = clock
        self._health: Dict[str, ProviderHealth] = {p.name: ProviderHealth(p.name) for p in self.providers}

    def __len__(self) -> int:
        return len(self.providers)

    def _available(self, provider: PredictionProvider, now: float) -> bool:
        health = self._health[provider.name]
        if now < health.cooldown_until:
            return False
        return provider.is_ready()

    def predict(self, snapshot: MarketSnapshot) -> Optional[ExternalPrediction]:
        for provider in self.providers:
            now = self._clock()
            if not self._available(provider, now):
                logger.debug("Skipping provider %s (cooling down or not ready)", provider.name)
                continue
            health = self._health[provider.name]
            health.requests += 1
            try:
                prediction = provider.predict(snapshot)
            except PredictionError as e:
                self._record_failure(health, str(e), now)
                continue
            health.consecutive_failures = 0
            health.cooldown_until = 0.0
            logger.info(
                "Prediction from %s: %s (%.2f)", provider.name, prediction.signal.value, prediction.confidence
            )
            return prediction
        logger.warning("No prediction available: all %d providers failed or unavailable", len(self.providers))
        return None

    def _record_failure(self, health: ProviderHealth, error: str, now: float) -> None:
        health.errors += 1
        health.consecutive_failures += 1
        health.last_error = error
        if health.consecutive_failures >= self.max_failures:
            health.cooldown_until = now + self.cooldown_s
            logger.warning(
                "Provider %s failed %d times in a row, cooling down for %.0fs",
                health.name, health.consecutive_failures, self.cooldown_s,
            )
        else:
            logger.warning("Provider %s failed: %s", health.name, error)

    def health(self) -> List[dict]:
        now = self._clock()
        return [self._health[p.name].to_dict(now) for p in self.providers]
