"""Unit tests for execution clients and utils.exchange_filters."""

import pytest
from binance.exceptions import BinanceAPIException

from trend_trader.core.types import Action
from trend_trader.execution import BinanceSpotClient, ExecutionError, PaperExecutionClient
from trend_trader.execution.binance_spot import fill_from_order
from trend_trader.utils.exchange_filters import (
    SymbolFilters,
    parse_symbol_filters,
    round_price,
    round_quantity,
    split_symbol,
)

SYMBOL_INFO = {
    "symbol": "BTCUSDT",
    "filters": [
        {"filterType": "PRICE_FILTER", "tickSize": "0.01"},
        {"filterType": "LOT_SIZE", "minQty": "0.00001", "stepSize": "0.00001"},
        {"filterType": "NOTIONAL", "minNotional": "5.0"},
    ],
}


class FakeBinance:
    def __init__(self, order=None, error=None, free_base="1.0"):
        self.order = order
        self.error = error
        self.free_base = free_base
        self.orders = []

    def get_asset_balance(self, asset):
        return {"asset": asset, "free": self.free_base, "locked": "0"}

    def get_symbol_info(self, symbol):
        return SYMBOL_INFO

    def create_order(self, **kwargs):
        self.orders.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.order


def spot_client(fake):
    client = BinanceSpotClient.__new__(BinanceSpotClient)
    client._client = fake
    client.fee_rate = 0.001
    client._filters = {}
    return client


def test_round_quantity():
    assert round_quantity(0.00123456, 0.00001, 0.00001) == pytest.approx(0.00123)
    assert round_quantity(0.3, 0.1, 0.1) == pytest.approx(0.3)
    assert round_quantity(0.000005, 0.00001, 0.00001) == 0.0
    assert round_quantity(-1.0, 0.00001, 0.00001) == 0.0


def test_round_price():
    assert round_price(45000.123, 0.01) == pytest.approx(45000.12)


def test_parse_symbol_filters():
    f = parse_symbol_filters(SYMBOL_INFO)
    assert f == SymbolFilters(min_qty=0.00001, step_size=0.00001, tick_size=0.01, min_notional=5.0)
    assert parse_symbol_filters(None) == SymbolFilters()


def test_split_symbol():
    assert split_symbol("BTCUSDT") == ("BTC", "USDT")
    assert split_symbol("ethbtc") == ("ETH", "BTC")
    assert split_symbol("XYZ") == ("XYZ", "")


def test_fill_from_order_quote_commission():
    res = {
        "orderId": 7,
        "executedQty": "0.001",
        "cummulativeQuoteQty": "45.0",
        "fills": [{"price": "45000", "qty": "0.001", "commission": "0.045", "commissionAsset": "USDT"}],
    }
    fill = fill_from_order(res, "BTCUSDT", Action.BUY, 44990.0, 0.001)
    assert fill.amount == pytest.approx(0.001)
    assert fill.price == pytest.approx(45000.0)
    assert fill.fee == pytest.approx(0.045)
    assert fill.id == "7"


def test_fill_from_order_base_commission_and_no_fills():
    res = {
        "orderId": 8,
        "executedQty": "0.001",
        "cummulativeQuoteQty": "45.0",
        "fills": [{"price": "45000", "qty": "0.001", "commission": "0.000001", "commissionAsset": "BTC"}],
    }
    fill = fill_from_order(res, "BTCUSDT", Action.BUY, 45000.0, 0.001)
    assert fill.fee == pytest.approx(0.045)
    assert fill.amount == pytest.approx(0.001 - 0.000001)
    bare = {"orderId": 9, "executedQty": "0.002", "cummulativeQuoteQty": "90.0"}
    assert fill_from_order(bare, "BTCUSDT", Action.BUY, 45000.0, 0.001).fee == pytest.approx(0.09)


def test_sell_amount_keeps_base_commission_out():
    res = {
        "orderId": 10,
        "executedQty": "0.001",
        "cummulativeQuoteQty": "45.0",
        "fills": [{"price": "45000", "qty": "0.001", "commission": "0.000001", "commissionAsset": "BTC"}],
    }
    fill = fill_from_order(res, "BTCUSDT", Action.SELL, 45000.0, 0.001)
    assert fill.amount == pytest.approx(0.001)
    assert fill.fee == pytest.approx(0.045)

def test_spot_order_is_rounded_to_lot_size():
    fake = FakeBinance(order={"orderId": 1, "executedQty": "0.00012", "cummulativeQuoteQty": "5.4", "fills": []})
    fill = spot_client(fake).place_order("BTCUSDT", Action.BUY, 0.0001234, 45000.0)
    assert fake.orders[0]["quantity"] == "0.00012000"
    assert fake.orders[0]["side"] == "BUY"
    assert fake.orders[0]["type"] == "MARKET"
    assert fill.amount == pytest.approx(0.00012)


def test_spot_sell_is_capped_at_free_balance():
    # Bought 0.00100 but paid 0.000001 BTC commission; only 0.000999 is free.
    fake = FakeBinance(
        order={"orderId": 3, "executedQty": "0.00099", "cummulativeQuoteQty": "44.55", "fills": []},
        free_base="0.000999",
    )
    fill = spot_client(fake).place_order("BTCUSDT", Action.SELL, 0.001, 45000.0)
    assert fake.orders[0]["quantity"] == "0.00099000"
    assert fake.orders[0]["side"] == "SELL"
    assert fill.amount == pytest.approx(0.00099)

def test_spot_order_below_min_notional():
    fake = FakeBinance()
    with pytest.raises(ExecutionError):
        spot_client(fake).place_order("BTCUSDT", Action.BUY, 0.0001, 45000.0)
    assert fake.orders == []


def test_spot_order_api_error_is_wrapped():
    error = BinanceAPIException(None, 400, '{"code": -2010, "msg": "Account has insufficient balance"}')
    with pytest.raises(ExecutionError):
        spot_client(FakeBinance(error=error)).place_order("BTCUSDT", Action.SELL, 0.001, 45000.0)


def test_spot_order_unfilled():
    fake = FakeBinance(order={"orderId": 2, "status": "EXPIRED", "executedQty": "0", "cummulativeQuoteQty": "0"})
    with pytest.raises(ExecutionError):
        spot_client(fake).place_order("BTCUSDT", Action.BUY, 0.001, 45000.0)


def test_paper_round_trip(flat_frame):
    client = PaperExecutionClient(flat_frame, quote_balance=1000.0, fee_rate=0.001)
    assert client.get_price("BTCUSDT") == 45000.0
    assert len(client.get_klines("BTCUSDT", "1h", limit=50)) == 50
    buy = client.place_order("BTCUSDT", Action.BUY, 0.01, 45000.0)
    assert buy.fee == pytest.approx(0.45)
    assert client.get_balance("USDT") == pytest.approx(549.55)
    assert client.get_balance("BTC") == pytest.approx(0.01)
    sell = client.place_order("BTCUSDT", Action.SELL, 0.01, 45000.0)
    assert sell.id == "paper-2"
    assert client.get_balance("USDT") == pytest.approx(999.1)
    assert client.get_balance("BTC") == pytest.approx(0.0)


def test_paper_rejects_bad_orders(flat_frame):
    client = PaperExecutionClient(flat_frame, quote_balance=10.0)
    with pytest.raises(ExecutionError):
        client.place_order("BTCUSDT", Action.BUY, 0.01, 45000.0)
    with pytest.raises(ExecutionError):
        client.place_order("BTCUSDT", Action.SELL, 0.01, 45000.0)
    with pytest.raises(ExecutionError):
        client.place_order("BTCUSDT", Action.BUY, 0.0, 45000.0)
    with pytest.raises(ExecutionError):
        PaperExecutionClient().get_klines("BTCUSDT", "1h")
