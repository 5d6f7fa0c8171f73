"""Core: config, types, state, logging."""

from trend_trader.core.config import load_config, Config, ConfigError
from trend_trader.core.types import (
    Action,
    Bar,
    ExternalPrediction,
    Fill,
    MarketSnapshot,
    PendingOrder,
    Position,
    PositionPhase,
    RiskLevel,
    TradeRecord,
    TrendDirection,
)
from trend_trader.core.state import TradingState
from trend_trader.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "ConfigError",
    "Action",
    "Bar",
    "ExternalPrediction",
    "Fill",
    "MarketSnapshot",
    "PendingOrder",
    "Position",
    "PositionPhase",
    "RiskLevel",
    "TradeRecord",
    "TrendDirection",
    "TradingState",
    "setup_logging",
]
