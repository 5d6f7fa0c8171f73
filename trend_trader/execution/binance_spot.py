"""
Binance Spot execution with retry and rate-limit handling.
"""

from __future__ import annotations
import functools
import logging
import time
from typing import Optional

import pandas as pd

from binance.client import Client
from binance.exceptions import BinanceAPIException, BinanceRequestException

from trend_trader.core.types import Action, Fill
from trend_trader.execution.base import ExecutionClient, ExecutionError
from trend_trader.utils.exchange_filters import SymbolFilters, parse_symbol_filters, round_quantity, split_symbol

logger = logging.getLogger("trend_trader.execution.binance")

KLINE_COLUMNS = [
    "open_time", "open", "high", "low", "close", "volume",
    "close_time", "quote_av", "num_trades", "tb_base_av", "tb_quote_av", "ignore",
]


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit) with exponential backoff."""
    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


def klines_to_frame(raw: list) -> pd.DataFrame:
    df = pd.DataFrame(raw, columns=KLINE_COLUMNS)
    df[["open", "high", "low", "close", "volume"]] = df[["open", "high", "low", "close", "volume"]].astype(float)
    df["time"] = pd.to_datetime(df["open_time"], unit="ms")
    return df[["time", "open", "high", "low", "close", "volume"]]


def fill_from_order(res: dict, symbol: str, side: Action, price_hint: float, fee_rate: float) -> Fill:
    """
    Average price, quantity and quote-currency fee from an order response.
    A BUY commission paid in the base asset is deducted from the amount, so the
    Fill reports what the account actually holds.
    """
    base, quote = split_symbol(symbol)
    fills = res.get("fills") or []
    qty = float(res.get("executedQty") or 0.0)
    quote_qty = float(res.get("cummulativeQuoteQty") or 0.0)
    price = quote_qty / qty if qty > 0 and quote_qty > 0 else price_hint
    fee = 0.0
    base_commission = 0.0
    for f in fills:
        commission = float(f.get("commission", 0.0))
        asset = f.get("commissionAsset", "")
        if asset == quote:
            fee += commission
        elif asset == base:
            base_commission += commission
            fee += commission * float(f.get("price", price))
        else:
            # Paid in a third asset (e.g. BNB); book the nominal rate instead.
            fee += float(f.get("qty", 0.0)) * float(f.get("price", price)) * fee_rate
    if not fills:
        fee = qty * price * fee_rate
    amount = qty - base_commission if side == Action.BUY else qty
    return Fill(amount=amount, price=price, fee=fee, id=str(res.get("orderId", "")))


class BinanceSpotClient(ExecutionClient):
    """Binance Spot client (testnet and live). Market orders only."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        testnet: bool = True,
        fee_rate: float = 0.001,
        request_timeout_s: float = 15.0,
    ):
        self._client = Client(
            api_key, api_secret, testnet=testnet, requests_params={"timeout": request_timeout_s}
        )
        self.fee_rate = fee_rate
        logger.info("Binance Spot: using %s", "TESTNET" if testnet else "LIVE")
        self._filters: dict[str, SymbolFilters] = {}

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_klines(self, symbol: str, interval: str, limit: int = 200) -> pd.DataFrame:
        raw = self._client.get_klines(symbol=symbol, interval=interval, limit=limit)
        return klines_to_frame(raw)

    @retry_on_rate_limit(max_retries=2)
    def get_price(self, symbol: str) -> float:
        return float(self._client.get_symbol_ticker(symbol=symbol)["price"])

    @retry_on_rate_limit(max_retries=2)
    def get_balance(self, asset: str) -> float:
        info: Optional[dict] = self._client.get_asset_balance(asset=asset)
        return float(info.get("free", 0.0)) if info else 0.0

    @retry_on_rate_limit(max_retries=2)
    def get_symbol_filters(self, symbol: str) -> SymbolFilters:
        if symbol not in self._filters:
            self._filters[symbol] = parse_symbol_filters(self._client.get_symbol_info(symbol))
        return self._filters[symbol]

    @retry_on_rate_limit(max_retries=2)
    def _market_order(self, symbol: str, side: Action, qty: float) -> dict:
        return self._client.create_order(symbol=symbol, side=side.value, type="MARKET", quantity=f"{qty:.8f}")

    def place_order(self, symbol: str, side: Action, amount: float, price_hint: float) -> Fill:
        if side not in (Action.BUY, Action.SELL):
            raise ExecutionError(f"Cannot place a {side.value} order")
        try:
            filters = self.get_symbol_filters(symbol)
            if side == Action.SELL:
                amount = min(amount, self.get_balance(split_symbol(symbol)[0]))
            qty = round_quantity(amount, filters.min_qty, filters.step_size)
            if qty <= 0:
                raise ExecutionError(f"Quantity {amount} below LOT_SIZE minimum {filters.min_qty}")
            if qty * price_hint < filters.min_notional:
                raise ExecutionError(f"Notional {qty * price_hint:.2f} below minimum {filters.min_notional}")
            res = self._market_order(symbol, side, qty)
        except (BinanceAPIException, BinanceRequestException) as e:
            logger.exception("Binance order error: %s", e)
            raise ExecutionError(str(e)) from e
        fill = fill_from_order(res, symbol, side, price_hint, self.fee_rate)
        if fill.amount <= 0:
            raise ExecutionError(f"Order {fill.id} not filled (status {res.get('status')})")
        return fill
