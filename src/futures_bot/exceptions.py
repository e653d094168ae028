"""Custom exceptions for the futures trading client.

All gateway, execution and candle exceptions live here to avoid circular
imports between modules.
"""

from futures_bot.models import ErrorClassification, OrderResult


class BotError(Exception):
    """Base exception for all bot errors."""


class ExchangeError(BotError):
    """Raised when the exchange answers a call with a non-success status.

    Carries the classification so callers can branch on ``classification.kind``.
    """

    def __init__(self, classification: ErrorClassification) -> None:
        super().__init__(classification.message)
        self.classification = classification

    @property
    def kind(self):
        return self.classification.kind


class ServerUnavailableError(ExchangeError):
    """Raised on gateway/server-side failures (502). Never retried internally."""


class ExchangeRejectedError(ExchangeError):
    """Raised for domain rejections the caller is expected to handle.

    Immediate-trigger, reduce-only and position-side rejections.
    """


class TransientExchangeError(ExchangeError):
    """Raised when a call failed on clock skew or DNS and may be rebuilt."""


class UnmappedExchangeError(ExchangeError):
    """Raised for any exchange error message without a known meaning."""


class TransportError(BotError):
    """Raised when no HTTP response was received at all."""


class RetryExhaustedError(BotError):
    """Raised when a bounded retry loop runs out of attempts."""

    def __init__(self, message: str, last_error: Exception | None = None) -> None:
        super().__init__(message)
        self.last_error = last_error


class InvalidQuantityError(BotError):
    """Raised when the sized order quantity truncates to zero."""


class PositionInvariantError(BotError):
    """Raised when the position-risk response has an unexpected shape.

    When the violation surfaces in the report that follows an order call,
    ``result`` holds that call's outcome so an accepted order id is not lost.
    """

    def __init__(self, message: str, result: OrderResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class CandleSequenceError(BotError):
    """Raised when a one-minute series is not contiguous and ascending."""


class UnsupportedIntervalError(BotError):
    """Raised for an interval string the resampler cannot convert."""
