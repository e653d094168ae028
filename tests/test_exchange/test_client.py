"""Tests for BinanceFuturesClient endpoint wrappers.

The gateway is mocked; tests assert paths, parameters and decoding.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from futures_bot.exchange.client import KLINES_MAX_LIMIT, BinanceFuturesClient
from futures_bot.models import OrderRequest, OrderSide, OrderType, PositionSide


@pytest.fixture
def gateway(exchange_settings) -> MagicMock:
    gw = MagicMock()
    gw.settings = exchange_settings
    gw.execute = AsyncMock()
    gw.execute_once = AsyncMock()
    gw.close = AsyncMock()
    return gw


@pytest.fixture
def client(gateway: MagicMock) -> BinanceFuturesClient:
    return BinanceFuturesClient(gateway)


class TestMarketData:
    @pytest.mark.asyncio
    async def test_symbol_defaults_from_settings(self, client) -> None:
        assert client.symbol == "BTCUSDT"

    @pytest.mark.asyncio
    async def test_ping(self, client, gateway) -> None:
        gateway.execute.return_value = {}
        assert await client.ping() is True
        gateway.execute.assert_awaited_once_with("GET", "/fapi/v1/ping", signed=False)

    @pytest.mark.asyncio
    async def test_get_price(self, client, gateway) -> None:
        gateway.execute.return_value = {"symbol": "BTCUSDT", "price": "20123.40"}

        price = await client.get_price()

        assert price == Decimal("20123.40")
        gateway.execute.assert_awaited_once_with(
            "GET", "/fapi/v1/ticker/price", {"symbol": "BTCUSDT"}, signed=False
        )

    @pytest.mark.asyncio
    async def test_get_klines_params_and_decoding(self, client, gateway) -> None:
        gateway.execute.return_value = [
            [60_000, "1.0", "2.0", "0.5", "1.5", "10", 119_999, "0", 3, "0", "0", "0"],
        ]

        candles = await client.get_klines("1m", 0, 120_000, limit=5000)

        method, path, params = gateway.execute.await_args.args
        assert (method, path) == ("GET", "/fapi/v1/klines")
        assert params == {
            "symbol": "BTCUSDT",
            "interval": "1m",
            "startTime": 0,
            "endTime": 120_000,
            "limit": KLINES_MAX_LIMIT,
        }
        assert candles[0].open_time == 60_000
        assert candles[0].high == 2.0


class TestOrders:
    @pytest.mark.asyncio
    async def test_create_order_submits_once(self, client, gateway) -> None:
        gateway.execute_once.return_value = {"orderId": 11, "updateTime": 5, "status": "NEW"}
        request = OrderRequest(
            symbol="BTCUSDT",
            side=OrderSide.BUY,
            order_type=OrderType.STOP_MARKET,
            quantity=Decimal("0.002"),
            stop_price=Decimal("20001.00"),
            time_in_force="GTC",
        )

        result = await client.create_order(request)

        assert result.order_id == 11
        assert result.status == "NEW"
        gateway.execute_once.assert_awaited_once_with(
            "POST", "/fapi/v1/order", request.to_params()
        )
        gateway.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_order(self, client, gateway) -> None:
        gateway.execute.return_value = {"orderId": 11, "updateTime": 9}

        result = await client.cancel_order(11)

        assert result.order_id == 11
        gateway.execute.assert_awaited_once_with(
            "DELETE", "/fapi/v1/order", {"symbol": "BTCUSDT", "orderId": 11}
        )

    @pytest.mark.asyncio
    async def test_cancel_all(self, client, gateway) -> None:
        gateway.execute.return_value = {"code": 200, "msg": "done"}
        await client.cancel_all_open_orders()
        gateway.execute.assert_awaited_once_with(
            "DELETE", "/fapi/v1/allOpenOrders", {"symbol": "BTCUSDT"}
        )

    @pytest.mark.asyncio
    async def test_get_order_param_order(self, client, gateway) -> None:
        gateway.execute.return_value = {"status": "NEW"}
        await client.get_order(3)
        gateway.execute.assert_awaited_once_with(
            "GET", "/fapi/v1/order", {"orderId": 3, "symbol": "BTCUSDT"}
        )


class TestAccount:
    @pytest.mark.asyncio
    async def test_position_risk_uses_v2(self, client, gateway) -> None:
        gateway.execute.return_value = []
        await client.get_position_risk()
        gateway.execute.assert_awaited_once_with(
            "GET", "/fapi/v2/positionRisk", {"symbol": "BTCUSDT"}
        )

    @pytest.mark.asyncio
    async def test_dual_side_position(self, client, gateway) -> None:
        gateway.execute.return_value = {"code": 200}
        await client.set_dual_side_position(True)
        gateway.execute.assert_awaited_once_with(
            "POST", "/fapi/v1/positionSide/dual", {"dualSidePosition": True}
        )

    @pytest.mark.asyncio
    async def test_async_context_closes_gateway(self, client, gateway) -> None:
        async with client:
            pass
        gateway.close.assert_awaited_once()


class TestOrderRequestParams:
    def test_reduce_only_sent_in_one_way_mode(self) -> None:
        request = OrderRequest(
            symbol="BTCUSDT",
            side=OrderSide.SELL,
            order_type=OrderType.MARKET,
            quantity=Decimal("0.2"),
            reduce_only=True,
        )
        assert list(request.to_params().items()) == [
            ("symbol", "BTCUSDT"),
            ("side", "SELL"),
            ("type", "MARKET"),
            ("quantity", "0.2"),
            ("reduceOnly", "true"),
            ("positionSide", "BOTH"),
        ]

    def test_reduce_only_omitted_in_hedge_mode(self) -> None:
        request = OrderRequest(
            symbol="BTCUSDT",
            side=OrderSide.SELL,
            order_type=OrderType.MARKET,
            quantity=Decimal("0.2"),
            position_side=PositionSide.LONG,
            reduce_only=True,
        )
        params = request.to_params()
        assert "reduceOnly" not in params
        assert params["positionSide"] == "LONG"
