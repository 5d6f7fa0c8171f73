"""Abstract execution interface: market data, balances and order placement."""

from __future__ import annotations
from abc import ABC, abstractmethod

import pandas as pd

from trend_trader.core.types import Action, Fill


class ExecutionError(RuntimeError):
    """Order or market-data request failed at the exchange."""


class ExecutionClient(ABC):
    """Abstract spot client: klines, price, balance, market order."""

    @abstractmethod
    def get_klines(self, symbol: str, interval: str, limit: int = 200) -> pd.DataFrame:
        """Return OHLCV DataFrame with columns: time, open, high, low, close, volume."""
        pass

    @abstractmethod
    def get_price(self, symbol: str) -> float:
        """Last traded price."""
        pass

    @abstractmethod
    def get_balance(self, asset: str) -> float:
        """Free balance of an asset."""
        pass

    @abstractmethod
    def place_order(self, symbol: str, side: Action, amount: float, price_hint: float) -> Fill:
        """
        Market order for `amount` base units. Returns the confirmed Fill.
        Raises ExecutionError on any failure; never partially mutates caller state.
        """
        pass
