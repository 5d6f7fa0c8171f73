"""Paper execution: fills at the price hint with a proportional fee. Used for dry runs and tests."""

from __future__ import annotations
import itertools
import logging
from typing import Optional

import pandas as pd

from trend_trader.core.types import Action, Fill
from trend_trader.execution.base import ExecutionClient, ExecutionError
from trend_trader.utils.exchange_filters import split_symbol

logger = logging.getLogger("trend_trader.execution.paper")


class PaperExecutionClient(ExecutionClient):
    """
    Simulated spot account. Market data comes from a DataFrame (or a wrapped client);
    balances are tracked locally per asset.
    """

    def __init__(
        self,
        bars: Optional[pd.DataFrame] = None,
        quote_balance: float = 1000.0,
        fee_rate: float = 0.001,
        market_data: Optional[ExecutionClient] = None,
    ):
        self._bars = bars
        self._market_data = market_data
        self.fee_rate = fee_rate
        self._balances: dict[str, float] = {}
        self._initial_quote = quote_balance
        self._ids = itertools.count(1)

    def _quote_of(self, symbol: str) -> str:
        return split_symbol(symbol)[1] or "USDT"

    def get_klines(self, symbol: str, interval: str, limit: int = 200) -> pd.DataFrame:
        if self._market_data is not None:
            return self._market_data.get_klines(symbol, interval, limit)
        if self._bars is None:
            raise ExecutionError("Paper client has no market data")
        return self._bars.iloc[-limit:].reset_index(drop=True)

    def get_price(self, symbol: str) -> float:
        if self._market_data is not None:
            return self._market_data.get_price(symbol)
        if self._bars is None or len(self._bars) == 0:
            raise ExecutionError("Paper client has no market data")
        return float(self._bars["close"].iloc[-1])

    def get_balance(self, asset: str) -> float:
        if asset not in self._balances:
            is_quote = asset in ("USDT", "FDUSD", "USDC", "BUSD", "TUSD")
            self._balances[asset] = self._initial_quote if is_quote else 0.0
        return self._balances[asset]

    def place_order(self, symbol: str, side: Action, amount: float, price_hint: float) -> Fill:
        if amount <= 0 or price_hint <= 0:
            raise ExecutionError(f"Invalid order: amount={amount} price={price_hint}")
        base, _ = split_symbol(symbol)
        quote = self._quote_of(symbol)
        notional = amount * price_hint
        fee = notional * self.fee_rate
        if side == Action.BUY:
            if self.get_balance(quote) < notional + fee:
                raise ExecutionError(f"Insufficient {quote}: need {notional + fee:.2f}")
            self._balances[quote] -= notional + fee
            self._balances[base] = self.get_balance(base) + amount
        elif side == Action.SELL:
            if self.get_balance(base) + 1e-12 < amount:
                raise ExecutionError(f"Insufficient {base}: need {amount}")
            self._balances[base] -= amount
            self._balances[quote] = self.get_balance(quote) + notional - fee
        else:
            raise ExecutionError(f"Cannot place a {side.value} order")
        fill = Fill(amount=amount, price=price_hint, fee=fee, id=f"paper-{next(self._ids)}")
        logger.info("Paper %s %.8f %s @ %.2f fee=%.6f", side.value, amount, symbol, price_hint, fee)
        return fill
