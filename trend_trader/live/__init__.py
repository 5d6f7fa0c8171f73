"""Live operation: trading cycle and fixed-interval scheduler."""

from trend_trader.live.bot import CycleResult, TradingBot
from trend_trader.live.scheduler import CycleScheduler

__all__ = ["CycleResult", "CycleScheduler", "TradingBot"]
