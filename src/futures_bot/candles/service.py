"""Candle fetching on top of the futures client.

Fetches base series (one-minute by default) through BinanceFuturesClient and
turns them into caller-sized buckets via the resampler. Fetch failures
propagate unchanged: no partial results are returned.
"""

import time
from collections.abc import Callable

from futures_bot.candles.resampler import (
    ResampleVariant,
    base_candles_needed,
    ensure_contiguous,
    interval_to_seconds,
    project,
    resample,
)
from futures_bot.exceptions import CandleSequenceError
from futures_bot.exchange.client import KLINES_MAX_LIMIT, BinanceFuturesClient
from futures_bot.logging import get_logger
from futures_bot.models import Candle, ResampledBucket

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class CandleService:
    """Builds resampled and native candle views for one symbol.

    Args:
        client: Futures client used for every klines request.
        clock: Millisecond clock; the fetch window always ends "now".
    """

    def __init__(
        self, client: BinanceFuturesClient, clock: Callable[[], int] = _now_ms
    ) -> None:
        self._client = client
        self._clock = clock

    # ──────────────────────────────────────────────
    # Raw series
    # ──────────────────────────────────────────────

    async def get_candles(self, count: int, interval: str = "1m") -> list[Candle]:
        """Return the ``count`` most recent closed candles of ``interval``.

        The window starts ``count`` steps before the currently forming candle's
        open and ends now. Only candles whose close time has passed are kept.
        Requests are paged ascending when the window exceeds the per-request
        limit.
        """
        if count <= 0:
            return []

        step_ms = interval_to_seconds(interval) * 1000
        now = self._clock()
        forming_open = now - now % step_ms
        start_time = forming_open - count * step_ms

        candles: list[Candle] = []
        cursor = start_time
        while cursor <= now:
            batch = await self._client.get_klines(
                interval, cursor, now, limit=KLINES_MAX_LIMIT
            )
            if not batch:
                break
            candles.extend(batch)
            next_cursor = batch[-1].open_time + step_ms
            if next_cursor <= cursor:
                break  # no progress guard
            cursor = next_cursor

        closed = [candle for candle in candles if candle.close_time <= now]
        logger.debug(
            "candles_fetched",
            interval=interval,
            requested=count,
            received=len(candles),
            closed=len(closed),
        )
        return closed[-count:]

    async def get_one_minute_candles(self, count: int) -> list[Candle]:
        """The ``count`` most recent closed one-minute candles."""
        return await self.get_candles(count, "1m")

    async def _last_closed_minute(self) -> Candle:
        candles = await self.get_candles(1, "1m")
        if not candles:
            raise CandleSequenceError("No closed one-minute candle for the last minute")
        return candles[-1]

    async def get_last_closed_price(self) -> float:
        """Close of the most recent fully closed one-minute candle."""
        return (await self._last_closed_minute()).close

    async def get_last_minute_high(self) -> float:
        """High of the most recent fully closed one-minute candle."""
        return (await self._last_closed_minute()).high

    async def get_last_minute_low(self) -> float:
        """Low of the most recent fully closed one-minute candle."""
        return (await self._last_closed_minute()).low

    # ──────────────────────────────────────────────
    # Resampled views
    # ──────────────────────────────────────────────

    async def get_buckets(
        self,
        quantity: int,
        interval: str,
        variant: ResampleVariant = ResampleVariant.OHLC,
        base_interval: str = "1m",
    ) -> list[ResampledBucket]:
        """Fetch base candles, resample them to ``interval`` and trim the padding.

        Args:
            quantity: Number of buckets wanted.
            interval: Bucket size, e.g. ``"30m"`` or ``"4h"``.
            variant: Controls the over-fetch and which edges are trimmed.
            base_interval: Native series to aggregate. ``"1h"`` suits day-sized
                buckets where a one-minute series would need many pages.
        """
        config = variant.config
        needed = base_candles_needed(quantity, interval, config.pad, base_interval)
        candles = await self.get_candles(needed, base_interval)
        ensure_contiguous(candles, interval_to_seconds(base_interval) * 1000)

        buckets = variant.apply(resample(candles, interval_to_seconds(interval)))
        logger.debug(
            "candles_resampled",
            interval=interval,
            variant=variant.name,
            base_candles=len(candles),
            buckets=len(buckets),
        )
        return buckets

    async def get_prices(
        self,
        quantity: int,
        interval: str,
        variant: ResampleVariant = ResampleVariant.CLOSE,
        base_interval: str = "1m",
    ) -> list[float]:
        """Single-value view: close, high or low per bucket depending on ``variant``."""
        if variant.config.value is None:
            raise ValueError("get_prices needs a single-value variant (CLOSE, HIGH or LOW)")
        buckets = await self.get_buckets(quantity, interval, variant, base_interval)
        return project(buckets, variant.config.value)

    async def get_native_candles(self, quantity: int, interval: str) -> list[Candle]:
        """Exchange-native candles of ``interval``, without resampling."""
        return await self.get_candles(quantity, interval)

    async def get_highest_price(
        self, quantity: int, interval: str, native: bool = False
    ) -> float:
        """Highest high over the last ``quantity`` buckets."""
        if native:
            highs = [c.high for c in await self.get_native_candles(quantity, interval)]
        else:
            highs = await self.get_prices(quantity, interval, ResampleVariant.HIGH)
        if not highs:
            raise CandleSequenceError(f"No {interval} candles available")
        return max(highs)

    async def get_lowest_price(
        self, quantity: int, interval: str, native: bool = False
    ) -> float:
        """Lowest low over the last ``quantity`` buckets."""
        if native:
            lows = [c.low for c in await self.get_native_candles(quantity, interval)]
        else:
            lows = await self.get_prices(quantity, interval, ResampleVariant.LOW)
        if not lows:
            raise CandleSequenceError(f"No {interval} candles available")
        return min(lows)
