"""Shared test fixtures for the futures trading client."""

import json

import pytest

from futures_bot.config import AppSettings, ExchangeSettings, RetrySettings, TradingSettings
from futures_bot.exchange.transport import HttpResponse, Transport


class ScriptedTransport(Transport):
    """Transport returning queued responses (or raising queued exceptions) in order.

    Every call is recorded as ``(method, url, headers)``.
    """

    def __init__(self) -> None:
        self.script: list = []
        self.calls: list[tuple[str, str, dict]] = []
        self.closed = False

    def queue_ok(self, body) -> "ScriptedTransport":
        """Queue a 200 response with a JSON body."""
        self.script.append(HttpResponse(status=200, body=json.dumps(body)))
        return self

    def queue_error(
        self, msg: str, code: int = -1000, status: int = 400
    ) -> "ScriptedTransport":
        """Queue an error response in the exchange's ``{"code", "msg"}`` shape."""
        self.script.append(
            HttpResponse(status=status, body=json.dumps({"code": code, "msg": msg}))
        )
        return self

    def queue_raw(self, status: int, body: str) -> "ScriptedTransport":
        self.script.append(HttpResponse(status=status, body=body))
        return self

    def queue_exception(self, exc: BaseException) -> "ScriptedTransport":
        self.script.append(exc)
        return self

    async def send(self, method, url, headers=None):
        self.calls.append((method, url, dict(headers or {})))
        if not self.script:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def exchange_settings() -> ExchangeSettings:
    """Exchange settings with dummy credentials and a fixed base URL."""
    return ExchangeSettings(
        api_key="test-api-key",  # type: ignore[arg-type]
        api_secret="test-api-secret",  # type: ignore[arg-type]
        base_url="https://fapi.example.test",
        test_api_url="https://testnet.example.test",
        testnet=False,
        recv_window=50000,
        symbol="BTCUSDT",
    )


@pytest.fixture
def retry_settings() -> RetrySettings:
    """Retry bounds with zero backoff so tests do not sleep."""
    return RetrySettings(
        max_attempts=3,
        max_transport_attempts=3,
        base_delay=0.0,
        max_delay=0.0,
    )


@pytest.fixture
def trading_settings() -> TradingSettings:
    """Default sizing: 50 USD notional, no minimum-quantity override."""
    return TradingSettings(quantity_in_dollar=50, use_minimum_quantity=False)


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def mock_settings(
    exchange_settings: ExchangeSettings,
    trading_settings: TradingSettings,
    retry_settings: RetrySettings,
) -> AppSettings:
    """AppSettings with test defaults."""
    return AppSettings(
        log_level="DEBUG",
        exchange=exchange_settings,
        trading=trading_settings,
        retry=retry_settings,
    )
