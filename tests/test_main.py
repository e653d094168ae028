"""Tests for CLI parsing, component wiring and exit codes."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from futures_bot.candles import CandleService, ResampleVariant
from futures_bot.exceptions import BotError
from futures_bot.exchange import BinanceFuturesClient, ExchangeGateway
from futures_bot.execution.orders import OrderLifecycle
from futures_bot.main import _parser, build_components, main, run
from futures_bot.models import ResampledBucket


class TestParser:
    def test_candles_defaults(self) -> None:
        args = _parser().parse_args(["candles", "10", "15m"])
        assert args.command == "candles"
        assert args.quantity == 10
        assert args.variant == "ohlc"
        assert args.base_interval == "1m"

    def test_hedge_mode_choices(self) -> None:
        with pytest.raises(SystemExit):
            _parser().parse_args(["hedge-mode", "maybe"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            _parser().parse_args([])


def test_build_components(mock_settings) -> None:
    components = build_components(mock_settings)

    assert isinstance(components["gateway"], ExchangeGateway)
    assert isinstance(components["client"], BinanceFuturesClient)
    assert isinstance(components["orders"], OrderLifecycle)
    assert isinstance(components["candles"], CandleService)
    assert components["client"].symbol == "BTCUSDT"


def _fake_components() -> dict:
    client = MagicMock()
    client.symbol = "BTCUSDT"
    client.ping = AsyncMock(return_value=True)
    orders = MagicMock()
    orders.set_hedge_mode = AsyncMock(return_value=True)
    orders.cancel_all_open_orders = AsyncMock(return_value={})
    candles = MagicMock()
    candles.get_buckets = AsyncMock(
        return_value=[ResampledBucket(start_seconds=0, open=1, high=2, low=0.5, close=1.5)]
    )
    monitor = MagicMock()
    monitor.report = AsyncMock()
    return {"client": client, "orders": orders, "candles": candles, "monitor": monitor}


class TestRun:
    @pytest.mark.asyncio
    async def test_ping_closes_client(self, mock_settings) -> None:
        components = _fake_components()
        with patch("futures_bot.main.build_components", return_value=components):
            await run(_parser().parse_args(["ping"]), mock_settings)

        components["client"].ping.assert_awaited_once()
        components["client"].__aexit__.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_candles_variant_passed_through(self, mock_settings) -> None:
        components = _fake_components()
        args = _parser().parse_args(
            ["candles", "3", "1d", "--variant", "high", "--base-interval", "1h"]
        )
        with patch("futures_bot.main.build_components", return_value=components):
            await run(args, mock_settings)

        components["candles"].get_buckets.assert_awaited_once_with(
            3, "1d", ResampleVariant.HIGH, "1h"
        )

    @pytest.mark.asyncio
    async def test_hedge_mode_off(self, mock_settings) -> None:
        components = _fake_components()
        with patch("futures_bot.main.build_components", return_value=components):
            await run(_parser().parse_args(["hedge-mode", "off"]), mock_settings)

        components["orders"].set_hedge_mode.assert_awaited_once_with(False)

    @pytest.mark.asyncio
    async def test_account_reports(self, mock_settings) -> None:
        components = _fake_components()
        with patch("futures_bot.main.build_components", return_value=components):
            await run(_parser().parse_args(["account"]), mock_settings)

        components["monitor"].report.assert_awaited_once()


class TestMain:
    def test_success_exit_code(self) -> None:
        with patch("futures_bot.main.run", new=AsyncMock()) as fake_run:
            assert main(["ping"]) == 0
        fake_run.assert_awaited_once()

    def test_bot_error_exit_code(self) -> None:
        with patch("futures_bot.main.run", new=AsyncMock(side_effect=BotError("boom"))):
            assert main(["ping"]) == 1
