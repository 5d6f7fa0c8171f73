"""External prediction: provider interface, fallback chain, HTTP provider, backtest proxy."""

from trend_trader.prediction.base import PredictionError, PredictionProvider, ProviderChain
from trend_trader.prediction.http_provider import HttpPredictionProvider, parse_prediction
from trend_trader.prediction.proxy import PROXY_NAME, TechnicalProxy, TechnicalProxyPredictor

__all__ = [
    "PredictionError",
    "PredictionProvider",
    "ProviderChain",
    "HttpPredictionProvider",
    "parse_prediction",
    "PROXY_NAME",
    "TechnicalProxy",
    "TechnicalProxyPredictor",
]
