"""Order quantity sizing and price snapping.

All calculations use Decimal arithmetic. Truncation always rounds toward
zero so an order never exceeds the configured notional.

Sizing flow:
1. raw_qty = quantity_in_dollar / price
2. Truncate to 3 decimals (the BTCUSDT lot precision)
3. A zero result is a fatal sizing failure
4. Optionally substitute the exchange minimum quantity
"""

from decimal import ROUND_DOWN, Decimal

from futures_bot.config import TradingSettings
from futures_bot.exceptions import InvalidQuantityError
from futures_bot.models import OrderSide

QUANTITY_DECIMALS = 3
STOP_PRICE_DECIMALS = 2
LIMIT_PRICE_DECIMALS = 1
STOP_OFFSET = Decimal("1")


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert through str() so floats keep their shortest repr, not binary noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def truncate(value: Decimal | float, places: int) -> Decimal:
    """Truncate (round toward zero) to a fixed number of decimal places.

    >>> truncate(Decimal("0.0019"), 3)
    Decimal('0.001')
    """
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_DOWN)


def snap_stop_price(requested: Decimal | float, side: OrderSide) -> Decimal:
    """Trigger price for a stop-market order.

    Buy stops sit one unit above the requested price and sell stops one unit
    below, so the order cannot trigger immediately against the current book.
    """
    price = to_decimal(requested)
    offset = STOP_OFFSET if side is OrderSide.BUY else -STOP_OFFSET
    return truncate(price + offset, STOP_PRICE_DECIMALS)


def snap_limit_price(requested: Decimal | float) -> Decimal:
    """Limit price: truncated to one decimal, no offset."""
    return truncate(requested, LIMIT_PRICE_DECIMALS)


class QuantitySizer:
    """Converts a USD notional into a base-asset order quantity.

    Args:
        settings: Trading settings with the notional and close multiplier.
    """

    def __init__(self, settings: TradingSettings) -> None:
        self._settings = settings

    def calculate_quantity(self, price: Decimal | float) -> Decimal:
        """Quantity for one standard order at the given price.

        Raises:
            InvalidQuantityError: If the truncated quantity is zero.
        """
        price = to_decimal(price)
        if price <= 0:
            raise InvalidQuantityError(f"Cannot size an order at price {price}")

        quantity = truncate(self._settings.quantity_in_dollar / price, QUANTITY_DECIMALS)
        if quantity == 0:
            raise InvalidQuantityError(
                f"The quantity is not valid: {self._settings.quantity_in_dollar} USD "
                f"at price {price} truncates to 0"
            )

        if self._settings.use_minimum_quantity:
            return self._settings.minimum_quantity
        return quantity

    def calculate_close_quantity(self, price: Decimal | float) -> Decimal:
        """Oversized quantity that flattens a position whatever its residual size."""
        return self.calculate_quantity(price) * self._settings.close_multiplier
