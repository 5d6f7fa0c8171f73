"""Execution: exchange abstraction, Binance Spot and paper implementations."""

from trend_trader.execution.base import ExecutionClient, ExecutionError
from trend_trader.execution.binance_spot import BinanceSpotClient
from trend_trader.execution.paper import PaperExecutionClient

__all__ = ["ExecutionClient", "ExecutionError", "BinanceSpotClient", "PaperExecutionClient"]
