"""Signed request execution with classification-driven retry.

Every exchange call goes through ExchangeGateway. Two bounded loops apply:

1. Transport resend: when no response arrives at all, the identical signed
   request is sent again (last response wins), with exponential backoff.
2. Rebuild: when the exchange reports clock skew or a DNS failure on its
   side, the whole request is rebuilt with a fresh timestamp and signature.
   A stale signed request is never reused for this.

Server unavailability, domain rejections and unmapped errors are raised to
the caller without retry.
"""

import asyncio
import json
import time
from collections.abc import Callable, Mapping
from typing import Any

from futures_bot.config import ExchangeSettings, RetrySettings
from futures_bot.exceptions import (
    ExchangeError,
    ExchangeRejectedError,
    RetryExhaustedError,
    ServerUnavailableError,
    TransientExchangeError,
    TransportError,
    UnmappedExchangeError,
)
from futures_bot.exchange.errors import classify_response
from futures_bot.exchange.signing import build_query, sign
from futures_bot.exchange.transport import AiohttpTransport, HttpResponse, Transport
from futures_bot.logging import get_logger
from futures_bot.models import ErrorClassification, ErrorKind

logger = get_logger(__name__)

API_KEY_HEADER = "X-MBX-APIKEY"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ExchangeGateway:
    """Builds, signs and sends exchange requests.

    Args:
        settings: Exchange credentials, base URL and receive window.
        retry: Attempt bounds and backoff for both retry loops.
        transport: HTTP transport; defaults to an aiohttp-backed one.
        clock: Millisecond clock used for request timestamps.
    """

    def __init__(
        self,
        settings: ExchangeSettings,
        retry: RetrySettings | None = None,
        transport: Transport | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._settings = settings
        self._retry = retry or RetrySettings()
        self._transport = transport or AiohttpTransport(
            timeout_seconds=settings.request_timeout_seconds
        )
        self._clock = clock

    @property
    def settings(self) -> ExchangeSettings:
        return self._settings

    def sign(self, query_string: str) -> str:
        """Sign a query string with the account secret."""
        return sign(self._settings.api_secret.get_secret_value(), query_string)

    def build_url(
        self, path: str, params: Mapping[str, object] | None = None, signed: bool = True
    ) -> str:
        """Build the full request URL.

        For signed calls a fresh ``timestamp`` and the fixed ``recvWindow`` are
        appended after the call's own parameters, the resulting query string is
        signed, and ``signature`` is appended last.
        """
        query_params: dict[str, object] = dict(params or {})
        if signed:
            query_params["timestamp"] = self._clock()
            query_params["recvWindow"] = self._settings.recv_window

        query = build_query(query_params)
        if signed:
            signature = self.sign(query)
            query = f"{query}&signature={signature}" if query else f"signature={signature}"

        url = f"{self._settings.url}{path}"
        return f"{url}?{query}" if query else url

    def _headers(self) -> dict[str, str]:
        return {API_KEY_HEADER: self._settings.api_key.get_secret_value()}

    async def _send_with_resend(self, method: str, url: str) -> HttpResponse:
        """Send a request, resending the identical URL on transport failure."""
        attempts = self._retry.max_transport_attempts
        last_error: TransportError | None = None

        for attempt in range(attempts):
            try:
                return await self._transport.send(method, url, headers=self._headers())
            except TransportError as exc:
                last_error = exc
                logger.warning(
                    "transport_failed_resending",
                    method=method,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    error=str(exc),
                )
                if attempt < attempts - 1:
                    await asyncio.sleep(self._retry.delay_for(attempt))

        raise RetryExhaustedError(
            f"{method} request got no response after {attempts} attempts",
            last_error=last_error,
        )

    async def execute_once(
        self,
        method: str,
        path: str,
        params: Mapping[str, object] | None = None,
        signed: bool = True,
    ) -> Any:
        """Execute one logical call and return the decoded JSON body.

        Transport failures are resent, but exchange-reported skew or DNS
        errors raise TransientExchangeError instead of being rebuilt here.

        Raises:
            TransientExchangeError: Clock skew or DNS failure reported by the exchange.
            ServerUnavailableError: The exchange returned a 502.
            ExchangeRejectedError: A domain rejection the caller must interpret.
            UnmappedExchangeError: Any other exchange error.
            RetryExhaustedError: No response after all transport attempts.
        """
        url = self.build_url(path, params, signed=signed)
        response = await self._send_with_resend(method, url)

        if response.status == 200:
            return json.loads(response.body) if response.body else {}

        classification = classify_response(response.body, http_status=response.status)
        raise self._error_for(classification, method, path)

    async def execute(
        self,
        method: str,
        path: str,
        params: Mapping[str, object] | None = None,
        signed: bool = True,
    ) -> Any:
        """Execute a call, rebuilding it with a fresh timestamp on transient errors.

        Raises:
            RetryExhaustedError: Transient errors persisted for every attempt.
            ExchangeError: Any non-transient classification (see execute_once).
        """
        attempts = self._retry.max_attempts
        last_error: TransientExchangeError | None = None

        for attempt in range(attempts):
            try:
                return await self.execute_once(method, path, params, signed=signed)
            except TransientExchangeError as exc:
                last_error = exc
                logger.warning(
                    "transient_exchange_error_rebuilding",
                    method=method,
                    path=path,
                    kind=exc.kind.value,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                )
                if attempt < attempts - 1:
                    await asyncio.sleep(self._retry.delay_for(attempt))

        raise RetryExhaustedError(
            f"{method} {path} kept failing transiently after {attempts} attempts",
            last_error=last_error,
        )

    def _error_for(
        self, classification: ErrorClassification, method: str, path: str
    ) -> ExchangeError:
        kind = classification.kind
        if kind.is_transient:
            return TransientExchangeError(classification)
        if kind is ErrorKind.SERVER_UNAVAILABLE:
            logger.error(
                "exchange_server_unavailable",
                method=method,
                path=path,
                message=classification.message,
            )
            return ServerUnavailableError(classification)
        if kind is ErrorKind.UNMAPPED:
            logger.error(
                "exchange_error_unmapped",
                method=method,
                path=path,
                http_status=classification.http_status,
                code=classification.code,
                message=classification.message,
            )
            return UnmappedExchangeError(classification)
        logger.info(
            "exchange_rejected",
            method=method,
            path=path,
            kind=kind.value,
            message=classification.message,
        )
        return ExchangeRejectedError(classification)

    async def close(self) -> None:
        """Clean up transport resources."""
        await self._transport.close()
