"""Exchange client layer -- Binance USD-M futures REST integration."""

from futures_bot.exchange.client import BinanceFuturesClient
from futures_bot.exchange.errors import classify, classify_response
from futures_bot.exchange.gateway import ExchangeGateway
from futures_bot.exchange.signing import build_query, sign
from futures_bot.exchange.transport import AiohttpTransport, HttpResponse, Transport

__all__ = [
    "AiohttpTransport",
    "BinanceFuturesClient",
    "ExchangeGateway",
    "HttpResponse",
    "Transport",
    "build_query",
    "classify",
    "classify_response",
    "sign",
]
