"""Decoding of exchange JSON payloads into models."""

from decimal import Decimal

from futures_bot.models import Candle, OrderResult


def parse_klines(body: list[list]) -> list[Candle]:
    """Decode a klines response into candles, preserving exchange order.

    Each element is ``[open_time, open, high, low, close, volume, close_time, ...]``
    with prices encoded as strings.
    """
    return [
        Candle(
            open_time=int(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
            close_time=int(row[6]),
        )
        for row in body
    ]


def parse_order(body: dict, http_status: int = 200) -> OrderResult:
    """Build an OrderResult from an order or cancel response."""
    order_id = body.get("orderId")
    update_time = body.get("updateTime")
    return OrderResult(
        http_status=http_status,
        order_id=int(order_id) if order_id is not None else None,
        update_time=int(update_time) if update_time is not None else None,
        status=body.get("status"),
        raw=body,
    )


def parse_price(body: dict) -> Decimal:
    """Extract the price from a ticker/price response."""
    return Decimal(str(body["price"]))
