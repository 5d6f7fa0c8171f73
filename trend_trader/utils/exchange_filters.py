"""Spot symbol helpers: LOT_SIZE / PRICE_FILTER / notional filters and base/quote split."""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Optional

QUOTE_ASSETS = ("USDT", "FDUSD", "USDC", "BUSD", "TUSD", "BTC", "ETH", "BNB")


@dataclass(frozen=True)
class SymbolFilters:
    min_qty: float = 0.00001
    step_size: float = 0.00001
    tick_size: float = 0.01
    min_notional: float = 5.0


def parse_symbol_filters(symbol_info: Optional[dict]) -> SymbolFilters:
    """Read lot step, price tick and minimum notional from exchange symbol info. Defaults if None."""
    defaults = SymbolFilters()
    if not symbol_info:
        return defaults
    min_qty, step_size = defaults.min_qty, defaults.step_size
    tick_size, min_notional = defaults.tick_size, defaults.min_notional
    for f in symbol_info.get("filters", []):
        kind = f.get("filterType")
        if kind == "LOT_SIZE":
            min_qty = float(f.get("minQty", min_qty))
            step_size = float(f.get("stepSize", step_size))
        elif kind == "PRICE_FILTER":
            tick_size = float(f.get("tickSize", tick_size))
        elif kind in ("MIN_NOTIONAL", "NOTIONAL"):
            min_notional = float(f.get("minNotional", min_notional))
    return SymbolFilters(min_qty, step_size, tick_size, min_notional)


def round_quantity(qty: float, min_qty: float, step_size: float) -> float:
    """Round down to step size; return 0 if below min_qty."""
    if qty <= 0 or step_size <= 0:
        return 0.0
    # Guard against 0.3 / 0.1 = 2.9999999 style float error before flooring.
    rounded = math.floor(round(qty / step_size, 9)) * step_size
    if rounded < min_qty:
        return 0.0
    return round(rounded, 8)


def round_price(price: float, tick_size: float) -> float:
    """Round price to exchange tick."""
    return round(round(price / tick_size) * tick_size, 8)


def split_symbol(symbol: str) -> tuple[str, str]:
    """'BTCUSDT' -> ('BTC', 'USDT'). Unknown quote -> (symbol, '')."""
    symbol = symbol.upper()
    for quote in QUOTE_ASSETS:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return symbol[: -len(quote)], quote
    return symbol, ""
