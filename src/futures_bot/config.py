"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Binance USD-M futures connection settings."""

    model_config = SettingsConfigDict(env_prefix="BINANCE_")

    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    base_url: str = "https://fapi.binance.com"
    test_api_url: str = "https://testnet.binancefuture.com"
    testnet: bool = False
    recv_window: int = 50000  # ms the exchange tolerates between our timestamp and its clock
    symbol: str = "BTCUSDT"
    request_timeout_seconds: float = 20.0

    @property
    def url(self) -> str:
        """Base URL selected by the testnet flag."""
        return self.test_api_url if self.testnet else self.base_url


class TradingSettings(BaseSettings):
    """Order sizing parameters."""

    model_config = SettingsConfigDict(env_prefix="TRADING_")

    quantity_in_dollar: Decimal = Decimal("50")  # notional per order, in USDT
    use_minimum_quantity: bool = False
    minimum_quantity: Decimal = Decimal("0.001")  # BTCUSDT lot size
    close_multiplier: Decimal = Decimal("100")  # oversizes close orders to flatten any residual


class RetrySettings(BaseSettings):
    """Bounds for the gateway retry loops."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_attempts: int = 5  # fresh-timestamp rebuilds (skew / DNS)
    max_transport_attempts: int = 5  # identical resends after a transport failure
    base_delay: float = 0.5
    max_delay: float = 8.0

    def delay_for(self, attempt: int) -> float:
        """Exponential backoff for a zero-based attempt index, capped at max_delay."""
        return min(self.base_delay * (2**attempt), self.max_delay)


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    exchange: ExchangeSettings = ExchangeSettings()
    trading: TradingSettings = TradingSettings()
    retry: RetrySettings = RetrySettings()
