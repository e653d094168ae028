"""Order lifecycle: placement, cancellation, replacement and position closing.

Each operation moves Idle -> Submitting -> Accepted/Rejected. Order ids are
returned in OrderResult; callers thread them into cancel/replace calls.

Rejection handling:
- immediate trigger on a stop order degrades to a market order on the same
  side and position side;
- 502 from the exchange propagates as ServerUnavailableError;
- clock skew / DNS rebuilds the whole operation, price and quantity
  included, since the market may have moved between attempts;
- reduce-only rejections on close and "no need to change position side" on
  hedge-mode toggles are successful no-ops;
- anything else propagates.

Every new/cancel call is followed by an AccountMonitor report, whatever its
outcome. The report runs after the outcome is settled; a fatal report error
carries the order result instead of replacing it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from decimal import Decimal

from futures_bot.config import RetrySettings
from futures_bot.exceptions import (
    BotError,
    ExchangeRejectedError,
    PositionInvariantError,
    RetryExhaustedError,
    TransientExchangeError,
)
from futures_bot.exchange.client import BinanceFuturesClient
from futures_bot.logging import get_logger, order_context
from futures_bot.models import (
    ErrorKind,
    OrderRequest,
    OrderResult,
    OrderSide,
    OrderState,
    OrderType,
    PositionSide,
)
from futures_bot.monitoring.account import AccountMonitor
from futures_bot.position.sizing import QuantitySizer, snap_limit_price, snap_stop_price

logger = get_logger(__name__)

TIME_IN_FORCE_GTC = "GTC"


def _require_order_id(order_id: int) -> None:
    if order_id <= 0:
        raise ValueError(f"Invalid Order ID: {order_id}")


class OrderLifecycle:
    """Places and manages orders for the client's symbol.

    Args:
        client: Futures client for all exchange I/O.
        sizer: Converts the configured notional into a quantity.
        monitor: Optional account reporter run after mutating calls.
        retry: Bounds for rebuilding an order after transient errors.
    """

    def __init__(
        self,
        client: BinanceFuturesClient,
        sizer: QuantitySizer,
        monitor: AccountMonitor | None = None,
        retry: RetrySettings | None = None,
    ) -> None:
        self._client = client
        self._sizer = sizer
        self._monitor = monitor
        self._retry = retry or RetrySettings()
        self._state = OrderState.IDLE

    @property
    def state(self) -> OrderState:
        """State of the most recent submission."""
        return self._state

    async def _report(
        self, result: OrderResult | None = None, error: BotError | None = None
    ) -> None:
        """Run the account report once a call's outcome is settled.

        A PositionInvariantError from the report carries ``result`` and is
        chained to ``error`` so the order outcome travels with it.
        """
        if self._monitor is None:
            return
        try:
            await self._monitor.report()
        except PositionInvariantError as exc:
            exc.result = result
            logger.error(
                "account_invariant_after_order_call",
                order_id=result.order_id if result is not None else None,
                order_error=type(error).__name__ if error is not None else None,
            )
            if error is not None:
                raise exc from error
            raise

    async def _submit(self, request: OrderRequest) -> OrderResult:
        self._state = OrderState.SUBMITTING
        try:
            result = await self._client.create_order(request)
        except BotError as exc:
            self._state = OrderState.REJECTED
            await self._report(error=exc)
            raise
        self._state = OrderState.ACCEPTED
        await self._report(result=result)
        return result

    async def _submit_rebuilding(
        self, build: Callable[[], Awaitable[OrderRequest]], operation: str
    ) -> OrderResult:
        """Build and submit an order, rebuilding from scratch on transient errors."""
        with order_context(operation=operation, symbol=self._client.symbol):
            return await self._rebuild_loop(build, operation)

    async def _rebuild_loop(
        self, build: Callable[[], Awaitable[OrderRequest]], operation: str
    ) -> OrderResult:
        attempts = self._retry.max_attempts
        last_error: TransientExchangeError | None = None

        for attempt in range(attempts):
            request = await build()
            try:
                result = await self._submit(request)
            except TransientExchangeError as exc:
                last_error = exc
                logger.warning(
                    "order_rebuild_after_transient_error",
                    operation=operation,
                    kind=exc.kind.value,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                )
                if attempt < attempts - 1:
                    await asyncio.sleep(self._retry.delay_for(attempt))
                continue

            logger.info(
                "order_accepted",
                operation=operation,
                order_id=result.order_id,
                side=request.side.value,
                position_side=request.position_side.value,
                quantity=str(request.quantity),
                update_time=result.update_time,
            )
            return result

        raise RetryExhaustedError(
            f"{operation} order kept failing transiently after {attempts} attempts",
            last_error=last_error,
        )

    async def _market_price(self) -> Decimal:
        return await self._client.get_price()

    # ──────────────────────────────────────────────
    # New orders
    # ──────────────────────────────────────────────

    async def new_stop_order(
        self,
        price: Decimal | float,
        side: OrderSide,
        position_side: PositionSide = PositionSide.BOTH,
        reduce_only: bool = False,
    ) -> OrderResult:
        """Place a stop-market order triggering near ``price``.

        Falls back to a market order on the same side and position side when
        the exchange reports the stop would trigger immediately.

        Raises:
            ServerUnavailableError: The exchange returned a 502.
            InvalidQuantityError: Sizing truncated to zero.
        """

        async def build() -> OrderRequest:
            quantity = self._sizer.calculate_quantity(await self._market_price())
            return OrderRequest(
                symbol=self._client.symbol,
                side=side,
                order_type=OrderType.STOP_MARKET,
                quantity=quantity,
                position_side=position_side,
                stop_price=snap_stop_price(price, side),
                reduce_only=reduce_only,
                time_in_force=TIME_IN_FORCE_GTC,
            )

        try:
            return await self._submit_rebuilding(build, "stop")
        except ExchangeRejectedError as exc:
            if exc.kind is not ErrorKind.IMMEDIATE_TRIGGER:
                raise
            logger.info(
                "stop_would_trigger_falling_back_to_market",
                side=side.value,
                position_side=position_side.value,
                requested_price=str(price),
            )
            result = await self.new_market_order(side, position_side)
            result.fallback_used = True
            return result

    async def new_limit_order(
        self,
        price: Decimal | float,
        side: OrderSide,
        position_side: PositionSide = PositionSide.BOTH,
    ) -> OrderResult:
        """Place a GTC limit order at ``price`` truncated to one decimal."""

        async def build() -> OrderRequest:
            quantity = self._sizer.calculate_quantity(await self._market_price())
            return OrderRequest(
                symbol=self._client.symbol,
                side=side,
                order_type=OrderType.LIMIT,
                quantity=quantity,
                position_side=position_side,
                price=snap_limit_price(price),
                time_in_force=TIME_IN_FORCE_GTC,
            )

        return await self._submit_rebuilding(build, "limit")

    async def new_market_order(
        self,
        side: OrderSide,
        position_side: PositionSide = PositionSide.BOTH,
    ) -> OrderResult:
        """Place a market order for one standard quantity."""

        async def build() -> OrderRequest:
            quantity = self._sizer.calculate_quantity(await self._market_price())
            return OrderRequest(
                symbol=self._client.symbol,
                side=side,
                order_type=OrderType.MARKET,
                quantity=quantity,
                position_side=position_side,
            )

        return await self._submit_rebuilding(build, "market")

    async def close_position(
        self,
        side: OrderSide,
        position_side: PositionSide = PositionSide.BOTH,
    ) -> OrderResult:
        """Flatten a position with an oversized market order.

        ``side`` is the closing direction (SELL closes a long). A
        "ReduceOnly Order is rejected" answer means there was nothing to
        close, which is returned as a successful no-op.
        """

        async def build() -> OrderRequest:
            quantity = self._sizer.calculate_close_quantity(await self._market_price())
            return OrderRequest(
                symbol=self._client.symbol,
                side=side,
                order_type=OrderType.MARKET,
                quantity=quantity,
                position_side=position_side,
                reduce_only=position_side is PositionSide.BOTH,
            )

        try:
            return await self._submit_rebuilding(build, "close")
        except ExchangeRejectedError as exc:
            if exc.kind is not ErrorKind.REDUCE_ONLY_REJECTED:
                raise
            logger.info(
                "no_position_to_close",
                side=side.value,
                position_side=position_side.value,
            )
            return OrderResult(
                http_status=200,
                no_op=True,
                raw={"msg": exc.classification.message},
            )

    # ──────────────────────────────────────────────
    # Cancellation
    # ──────────────────────────────────────────────

    async def cancel_order(self, order_id: int) -> OrderResult:
        """Cancel one open order by id."""
        _require_order_id(order_id)
        try:
            result = await self._client.cancel_order(order_id)
        except BotError as exc:
            await self._report(error=exc)
            raise
        logger.info("order_cancelled", order_id=order_id, update_time=result.update_time)
        await self._report(result=result)
        return result

    async def cancel_and_replace(
        self,
        order_id: int,
        price: Decimal | float,
        side: OrderSide,
        position_side: PositionSide = PositionSide.BOTH,
        reduce_only: bool = False,
    ) -> OrderResult:
        """Cancel ``order_id`` and, only if that succeeded, place a new stop order.

        Returns the new order's result; its ``order_id`` replaces the old one.
        """
        await self.cancel_order(order_id)
        return await self.new_stop_order(price, side, position_side, reduce_only)

    async def cancel_all_open_orders(self) -> dict:
        """Cancel every open order on the symbol."""
        try:
            body = await self._client.cancel_all_open_orders()
        except BotError as exc:
            await self._report(error=exc)
            raise
        logger.info("all_open_orders_cancelled", symbol=self._client.symbol)
        await self._report()
        return body

    async def cancel_all_open_orders_quietly(self) -> bool:
        """Best-effort bulk cancel for shutdown paths. Never raises.

        Returns:
            True if the exchange accepted the cancellation.
        """
        try:
            await self._client.cancel_all_open_orders()
        except BotError:
            logger.warning("cancel_all_open_orders_failed", exc_info=True)
            return False
        return True

    # ──────────────────────────────────────────────
    # Account mode
    # ──────────────────────────────────────────────

    async def set_hedge_mode(self, enabled: bool) -> bool:
        """Switch hedge mode on or off.

        Returns:
            True if the mode changed, False if it was already set.
        """
        try:
            await self._client.set_dual_side_position(enabled)
        except ExchangeRejectedError as exc:
            if exc.kind is not ErrorKind.NO_POSITION_SIDE_CHANGE:
                raise
            logger.info("hedge_mode_unchanged", enabled=enabled)
            return False
        logger.info("hedge_mode_changed", enabled=enabled)
        return True

    # ──────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────

    async def get_order(self, order_id: int) -> dict:
        _require_order_id(order_id)
        return await self._client.get_order(order_id)

    async def order_status(self, order_id: int) -> str:
        """Exchange status of an order, e.g. NEW, FILLED or CANCELED."""
        return str((await self.get_order(order_id))["status"])

    async def get_stop_price(self, order_id: int) -> Decimal:
        return Decimal(str((await self.get_order(order_id))["stopPrice"]))

    async def can_place_stop_order(
        self, price: Decimal | float, position_side: PositionSide
    ) -> bool:
        """Whether a trailing stop at ``price`` would rest instead of triggering.

        A LONG position's stop must sit below the market, a SHORT one's above.
        """
        market = await self._market_price()
        requested = Decimal(str(price))
        if position_side is PositionSide.LONG:
            return requested < market
        if position_side is PositionSide.SHORT:
            return requested > market
        raise ValueError("can_place_stop_order needs a LONG or SHORT position side")
