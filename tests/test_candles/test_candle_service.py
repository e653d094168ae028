"""Tests for CandleService fetch windows, paging and resampled views.

The client is mocked with a klines generator that behaves like the exchange:
candles aligned to the interval, ascending, capped at ``limit``.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from futures_bot.candles import CandleService, ResampleVariant
from futures_bot.candles.resampler import interval_to_seconds
from futures_bot.exceptions import CandleSequenceError
from futures_bot.models import Candle

ALIGNED_MS = 1_700_000_100_000
NOW_MS = ALIGNED_MS + 30_000  # half way through the forming minute


def fake_klines(interval, start_time, end_time, limit=1500, symbol=None):
    """Exchange-like klines; close is the offset from ALIGNED_MS in minutes."""
    step = interval_to_seconds(interval) * 1000
    open_time = -(-start_time // step) * step
    candles = []
    while open_time <= end_time and len(candles) < limit:
        close = (open_time - ALIGNED_MS) / 60_000
        candles.append(
            Candle(
                open_time=open_time,
                open=close,
                high=close + 0.5,
                low=close - 0.5,
                close=close,
                close_time=open_time + step - 1,
            )
        )
        open_time += step
    return candles


@pytest.fixture
def client() -> MagicMock:
    mock = MagicMock()
    mock.get_klines = AsyncMock(side_effect=fake_klines)
    return mock


@pytest.fixture
def service(client: MagicMock) -> CandleService:
    return CandleService(client, clock=lambda: NOW_MS)


class TestGetCandles:
    @pytest.mark.asyncio
    async def test_drops_forming_candle(self, service: CandleService, client) -> None:
        candles = await service.get_candles(3)

        assert [c.close for c in candles] == [-3.0, -2.0, -1.0]
        args = client.get_klines.await_args
        assert args.args[1] == ALIGNED_MS - 3 * 60_000
        assert args.args[2] == NOW_MS

    @pytest.mark.asyncio
    async def test_pages_past_request_limit(self, service: CandleService, client) -> None:
        candles = await service.get_candles(2000)

        assert len(candles) == 2000
        assert client.get_klines.await_count == 2
        assert candles[0].close == -2000.0
        assert candles[-1].close == -1.0
        opens = [c.open_time for c in candles]
        assert opens == sorted(set(opens))

    @pytest.mark.asyncio
    async def test_clock_on_minute_boundary_keeps_newest_closed(self, client) -> None:
        service = CandleService(client, clock=lambda: ALIGNED_MS)

        candles = await service.get_candles(3)

        assert [c.close for c in candles] == [-3.0, -2.0, -1.0]

    @pytest.mark.asyncio
    async def test_forming_candle_dropped_by_close_time(self, client) -> None:
        # Exchange returns only the forming candle
        client.get_klines.side_effect = None
        client.get_klines.return_value = fake_klines("1m", ALIGNED_MS, ALIGNED_MS)
        service = CandleService(client, clock=lambda: NOW_MS)

        assert await service.get_candles(1) == []

    @pytest.mark.asyncio
    async def test_zero_count_fetches_nothing(self, service: CandleService, client) -> None:
        assert await service.get_candles(0) == []
        client.get_klines.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stops_on_empty_batch(self, service: CandleService, client) -> None:
        client.get_klines.side_effect = None
        client.get_klines.return_value = []
        assert await service.get_one_minute_candles(5) == []


class TestLastClosedMinute:
    @pytest.mark.asyncio
    async def test_most_recent_closed_candle(self, service: CandleService) -> None:
        assert await service.get_last_closed_price() == -1.0
        assert await service.get_last_minute_high() == -0.5
        assert await service.get_last_minute_low() == -1.5

    @pytest.mark.asyncio
    async def test_boundary_clock_reads_previous_minute(self, client) -> None:
        service = CandleService(client, clock=lambda: ALIGNED_MS)
        assert await service.get_last_closed_price() == -1.0

    @pytest.mark.asyncio
    async def test_no_closed_candle_raises(self, service: CandleService, client) -> None:
        client.get_klines.side_effect = None
        client.get_klines.return_value = fake_klines("1m", ALIGNED_MS, ALIGNED_MS)

        with pytest.raises(CandleSequenceError):
            await service.get_last_closed_price()


class TestResampledViews:
    @pytest.mark.asyncio
    async def test_ohlc_trims_both_edges(self, service: CandleService) -> None:
        buckets = await service.get_buckets(1, "5m")

        assert len(buckets) == 1
        (bucket,) = buckets
        assert bucket.start_seconds == ALIGNED_MS // 1000 - 600
        assert (bucket.open, bucket.close) == (-10.0, -6.0)
        assert (bucket.high, bucket.low) == (-5.5, -10.5)

    @pytest.mark.asyncio
    async def test_close_prices_trim_tail_only(self, service: CandleService) -> None:
        prices = await service.get_prices(2, "5m")
        assert prices == [-11.0, -6.0]

    @pytest.mark.asyncio
    async def test_prices_reject_ohlc(self, service: CandleService) -> None:
        with pytest.raises(ValueError):
            await service.get_prices(2, "5m", ResampleVariant.OHLC)

    @pytest.mark.asyncio
    async def test_hourly_base_interval(self, service: CandleService, client) -> None:
        buckets = await service.get_buckets(1, "1d", base_interval="1h")

        assert client.get_klines.await_args.args[0] == "1h"
        assert len(buckets) <= 1

    @pytest.mark.asyncio
    async def test_gap_in_series_raises(self, service: CandleService, client) -> None:
        candles = fake_klines("1m", NOW_MS - 16 * 60_000, NOW_MS)
        del candles[5]
        client.get_klines.side_effect = None
        client.get_klines.return_value = candles

        with pytest.raises(CandleSequenceError):
            await service.get_buckets(1, "5m")


class TestExtremes:
    @pytest.mark.asyncio
    async def test_highest_resampled(self, service: CandleService) -> None:
        assert await service.get_highest_price(1, "5m") == -5.5

    @pytest.mark.asyncio
    async def test_lowest_resampled(self, service: CandleService) -> None:
        assert await service.get_lowest_price(1, "5m") == -10.5

    @pytest.mark.asyncio
    async def test_highest_native(self, service: CandleService, client) -> None:
        assert await service.get_highest_price(2, "5m", native=True) == -4.5
        assert client.get_klines.await_args.args[0] == "5m"

    @pytest.mark.asyncio
    async def test_no_data_raises(self, service: CandleService, client) -> None:
        client.get_klines.side_effect = None
        client.get_klines.return_value = []

        with pytest.raises(CandleSequenceError):
            await service.get_lowest_price(3, "15m")
