"""HTTP transport abstraction.

The gateway depends only on the Transport interface, which keeps aiohttp
details isolated here and lets tests inject scripted responses.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass

import aiohttp

from futures_bot.exceptions import TransportError
from futures_bot.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Status and raw body of one HTTP exchange."""

    status: int
    body: str


class Transport(ABC):
    """Abstract base class for sending a single HTTP request."""

    @abstractmethod
    async def send(
        self, method: str, url: str, headers: dict[str, str] | None = None
    ) -> HttpResponse:
        """Send the request and return the response.

        Raises:
            TransportError: If no response was received at all.
        """
        ...

    async def close(self) -> None:
        """Release any pooled connections."""
        return None


class AiohttpTransport(Transport):
    """Transport backed by a lazily created, shared aiohttp ClientSession."""

    def __init__(self, timeout_seconds: float = 20.0) -> None:
        self._timeout_seconds = timeout_seconds
        self._session: aiohttp.ClientSession | None = None

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(
            total=self._timeout_seconds,
            connect=min(10.0, self._timeout_seconds),
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout(),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        return self._session

    async def send(
        self, method: str, url: str, headers: dict[str, str] | None = None
    ) -> HttpResponse:
        session = await self._get_session()
        try:
            async with session.request(method, url, headers=headers) as resp:
                body = await resp.text()
                return HttpResponse(status=resp.status, body=body)
        except (asyncio.TimeoutError, aiohttp.ClientError) as exc:
            raise TransportError(f"{method} {url.split('?')[0]} failed: {exc}") from exc

    async def close(self) -> None:
        """Close the shared aiohttp session. Must be called to avoid resource leaks."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("http_session_closed")
