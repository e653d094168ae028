"""Binance USD-M futures REST client.

Typed wrappers over ExchangeGateway, one per consumed endpoint. Strategy and
execution code depends on this class, keeping URL paths and payload shapes
isolated here.
"""

from decimal import Decimal

from futures_bot.exchange.codec import parse_klines, parse_order, parse_price
from futures_bot.exchange.gateway import ExchangeGateway
from futures_bot.logging import get_logger
from futures_bot.models import Candle, OrderRequest, OrderResult

logger = get_logger(__name__)

FAPI_V1 = "/fapi/v1"
FAPI_V2 = "/fapi/v2"

KLINES_MAX_LIMIT = 1500


class BinanceFuturesClient:
    """Endpoint-level client for a single default trading pair.

    Args:
        gateway: The signing/retrying gateway every call goes through.
        symbol: Default symbol; falls back to the gateway settings.
    """

    def __init__(self, gateway: ExchangeGateway, symbol: str | None = None) -> None:
        self._gateway = gateway
        self._symbol = symbol or gateway.settings.symbol

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def gateway(self) -> ExchangeGateway:
        return self._gateway

    # ──────────────────────────────────────────────
    # Market data (public)
    # ──────────────────────────────────────────────

    async def ping(self) -> bool:
        """Connectivity probe. Returns True when the exchange answers."""
        await self._gateway.execute("GET", f"{FAPI_V1}/ping", signed=False)
        return True

    async def exchange_info(self) -> dict:
        """Fetch exchange trading rules and symbol metadata."""
        return await self._gateway.execute(
            "GET", f"{FAPI_V1}/exchangeInfo", signed=False
        )

    async def get_price(self, symbol: str | None = None) -> Decimal:
        """Fetch the latest traded price for a symbol."""
        body = await self._gateway.execute(
            "GET",
            f"{FAPI_V1}/ticker/price",
            {"symbol": symbol or self._symbol},
            signed=False,
        )
        return parse_price(body)

    async def get_klines(
        self,
        interval: str,
        start_time: int,
        end_time: int,
        limit: int = KLINES_MAX_LIMIT,
        symbol: str | None = None,
    ) -> list[Candle]:
        """Fetch klines between two epoch-millisecond bounds, ascending by open time."""
        params = {
            "symbol": symbol or self._symbol,
            "interval": interval,
            "startTime": start_time,
            "endTime": end_time,
            "limit": min(limit, KLINES_MAX_LIMIT),
        }
        body = await self._gateway.execute(
            "GET", f"{FAPI_V1}/klines", params, signed=False
        )
        return parse_klines(body)

    # ──────────────────────────────────────────────
    # Orders (signed)
    # ──────────────────────────────────────────────

    async def create_order(self, request: OrderRequest) -> OrderResult:
        """Submit an order exactly once.

        Uses execute_once: on clock skew or DNS errors a TransientExchangeError
        is raised so the caller can re-derive price and quantity before
        resubmitting.
        """
        logger.info(
            "creating_order",
            symbol=request.symbol,
            side=request.side.value,
            order_type=request.order_type.value,
            position_side=request.position_side.value,
            quantity=str(request.quantity),
            stop_price=str(request.stop_price) if request.stop_price else None,
            price=str(request.price) if request.price else None,
        )
        body = await self._gateway.execute_once(
            "POST", f"{FAPI_V1}/order", request.to_params()
        )
        return parse_order(body)

    async def cancel_order(self, order_id: int, symbol: str | None = None) -> OrderResult:
        """Cancel a single open order by id."""
        logger.info("cancelling_order", order_id=order_id)
        body = await self._gateway.execute(
            "DELETE",
            f"{FAPI_V1}/order",
            {"symbol": symbol or self._symbol, "orderId": order_id},
        )
        return parse_order(body)

    async def cancel_all_open_orders(self, symbol: str | None = None) -> dict:
        """Cancel every open order on the symbol."""
        logger.info("cancelling_all_open_orders", symbol=symbol or self._symbol)
        return await self._gateway.execute(
            "DELETE", f"{FAPI_V1}/allOpenOrders", {"symbol": symbol or self._symbol}
        )

    async def get_order(self, order_id: int, symbol: str | None = None) -> dict:
        """Query a single order."""
        return await self._gateway.execute(
            "GET",
            f"{FAPI_V1}/order",
            {"orderId": order_id, "symbol": symbol or self._symbol},
        )

    async def get_open_orders(self, symbol: str | None = None) -> list[dict]:
        """List open orders on the symbol."""
        return await self._gateway.execute(
            "GET", f"{FAPI_V1}/openOrders", {"symbol": symbol or self._symbol}
        )

    # ──────────────────────────────────────────────
    # Account (signed)
    # ──────────────────────────────────────────────

    async def get_position_risk(self, symbol: str | None = None) -> list[dict]:
        """Fetch per-side position information."""
        return await self._gateway.execute(
            "GET", f"{FAPI_V2}/positionRisk", {"symbol": symbol or self._symbol}
        )

    async def set_dual_side_position(self, enabled: bool) -> dict:
        """Toggle hedge mode (dual side position) for the account."""
        return await self._gateway.execute(
            "POST", f"{FAPI_V1}/positionSide/dual", {"dualSidePosition": enabled}
        )

    async def close(self) -> None:
        await self._gateway.close()

    async def __aenter__(self) -> "BinanceFuturesClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
