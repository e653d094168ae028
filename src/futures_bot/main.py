"""Command-line entry point for operating the futures client.

Wires settings, logging, gateway, client and services together and runs a
single operation per invocation. Library code never exits the process;
errors propagate to here and map to a non-zero exit status.

Component wiring order (in build_components):
1. AppSettings (configuration)
2. ExchangeGateway (signing + retry)
3. BinanceFuturesClient (endpoints)
4. AccountMonitor (post-mutation report)
5. QuantitySizer (notional -> quantity)
6. OrderLifecycle (orders)
7. CandleService (klines + resampling)
"""

import argparse
import asyncio
from typing import Any

from futures_bot.candles import CandleService, ResampleVariant
from futures_bot.config import AppSettings
from futures_bot.exceptions import BotError
from futures_bot.exchange import BinanceFuturesClient, ExchangeGateway
from futures_bot.execution.orders import OrderLifecycle
from futures_bot.logging import get_logger, setup_logging
from futures_bot.monitoring.account import AccountMonitor
from futures_bot.position.sizing import QuantitySizer

logger = get_logger("futures_bot.main")


def build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the client stack from settings."""
    if not settings.exchange.api_key.get_secret_value():
        logger.warning(
            "no_api_keys_configured",
            note="Public endpoints (ping, price, candles) will work. "
            "Signed endpoints (orders, account) will fail.",
        )

    gateway = ExchangeGateway(settings.exchange, settings.retry)
    client = BinanceFuturesClient(gateway)
    monitor = AccountMonitor(client)
    sizer = QuantitySizer(settings.trading)
    orders = OrderLifecycle(client, sizer, monitor=monitor, retry=settings.retry)
    candles = CandleService(client)

    return {
        "gateway": gateway,
        "client": client,
        "monitor": monitor,
        "sizer": sizer,
        "orders": orders,
        "candles": candles,
    }


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="futures-bot", description="Binance USD-M futures trading client"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Check connectivity to the exchange")
    sub.add_parser("price", help="Print the latest price for the configured symbol")
    sub.add_parser("account", help="Report position amounts and open orders")
    sub.add_parser("cancel-all", help="Cancel every open order on the symbol")

    candles = sub.add_parser("candles", help="Print resampled candles")
    candles.add_argument("quantity", type=int)
    candles.add_argument("interval", help='Bucket size such as "15m", "4h" or "1d"')
    candles.add_argument(
        "--variant",
        choices=[v.name.lower() for v in ResampleVariant],
        default="ohlc",
    )
    candles.add_argument("--base-interval", default="1m")

    hedge = sub.add_parser("hedge-mode", help="Turn hedge mode on or off")
    hedge.add_argument("state", choices=["on", "off"])

    return parser


async def run(args: argparse.Namespace, settings: AppSettings) -> None:
    components = build_components(settings)
    client: BinanceFuturesClient = components["client"]
    orders: OrderLifecycle = components["orders"]
    candles: CandleService = components["candles"]

    async with client:
        if args.command == "ping":
            await client.ping()
            logger.info("exchange_reachable", url=settings.exchange.url)
        elif args.command == "price":
            price = await client.get_price()
            logger.info("price", symbol=client.symbol, price=str(price))
        elif args.command == "account":
            await components["monitor"].report()
        elif args.command == "cancel-all":
            await orders.cancel_all_open_orders()
        elif args.command == "candles":
            variant = ResampleVariant[args.variant.upper()]
            buckets = await candles.get_buckets(
                args.quantity, args.interval, variant, args.base_interval
            )
            for bucket in buckets:
                logger.info(
                    "bucket",
                    start=bucket.start_seconds,
                    open=bucket.open,
                    high=bucket.high,
                    low=bucket.low,
                    close=bucket.close,
                )
        elif args.command == "hedge-mode":
            await orders.set_hedge_mode(args.state == "on")


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)

    try:
        asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        return 0
    except BotError as exc:
        logger.error("fatal_error", error_type=type(exc).__name__, error=str(exc))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
