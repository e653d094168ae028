"""Aggregation of a contiguous candle series into larger buckets.

Pure functions, no I/O. A bucket opens on every candle whose open time (in
integer seconds) is a multiple of the bucket length; candles seen before the
first boundary belong to no bucket. While a bucket is open it tracks the
first open, running high, running low and last close. It is finalized when
the next boundary is reached, and a bucket still open when the input ends is
appended as well.

Fetch windows are padded by one or two buckets, and the partial buckets
that padding produces are removed afterwards by ``trim``. Which edges are
trimmed depends on the variant and is part of its contract.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from futures_bot.exceptions import CandleSequenceError, UnsupportedIntervalError
from futures_bot.models import Candle, PriceField, ResampledBucket

ONE_MINUTE_MS = 60_000

_UNIT_SECONDS = {"m": 60, "h": 3600, "d": 86_400}
_INTERVAL_RE = re.compile(r"^(\d+)([mhd])$")


def interval_to_seconds(interval: str) -> int:
    """Convert an interval such as ``"15m"``, ``"4h"`` or ``"1d"`` to seconds.

    Raises:
        UnsupportedIntervalError: For any other format or a zero length.
    """
    match = _INTERVAL_RE.match(interval.strip())
    if match is None:
        raise UnsupportedIntervalError(f"Interval not implemented: {interval!r}")
    length = int(match.group(1))
    if length == 0:
        raise UnsupportedIntervalError(f"Interval length must be positive: {interval!r}")
    return length * _UNIT_SECONDS[match.group(2)]


def base_candles_needed(
    quantity: int, interval: str, pad: int, base_interval: str = "1m"
) -> int:
    """How many base candles cover ``quantity + pad`` buckets of ``interval``."""
    bucket_seconds = interval_to_seconds(interval)
    base_seconds = interval_to_seconds(base_interval)
    if bucket_seconds % base_seconds:
        raise UnsupportedIntervalError(
            f"{interval} is not a whole multiple of {base_interval}"
        )
    return (quantity + pad) * (bucket_seconds // base_seconds)


def one_minute_candles_needed(quantity: int, interval: str, pad: int) -> int:
    """``(quantity + pad) x bucket_minutes``."""
    return base_candles_needed(quantity, interval, pad, "1m")


def ensure_contiguous(candles: Sequence[Candle], step_ms: int = ONE_MINUTE_MS) -> None:
    """Assert the series is ascending with exactly ``step_ms`` between candles.

    Raises:
        CandleSequenceError: On a gap, a duplicate or out-of-order candle.
    """
    for previous, current in zip(candles, candles[1:]):
        delta = current.open_time - previous.open_time
        if delta != step_ms:
            raise CandleSequenceError(
                f"Candle at {current.open_time} follows {previous.open_time} "
                f"by {delta} ms, expected {step_ms} ms"
            )


class _OpenBucket:
    __slots__ = ("start_seconds", "open", "high", "low", "close")

    def __init__(self, start_seconds: int, open_: float, high: float, low: float, close: float):
        self.start_seconds = start_seconds
        self.open = open_
        self.high = high
        self.low = low
        self.close = close

    def update(self, high: float, low: float, close: float) -> None:
        if high > self.high:
            self.high = high
        if low < self.low:
            self.low = low
        self.close = close

    def finalize(self) -> ResampledBucket:
        return ResampledBucket(
            start_seconds=self.start_seconds,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
        )


def resample(
    candles: Iterable[Candle],
    bucket_seconds: int,
    source: PriceField | None = None,
) -> list[ResampledBucket]:
    """Aggregate ascending candles into buckets of ``bucket_seconds``.

    Args:
        candles: Contiguous candles, ascending by open time.
        bucket_seconds: Bucket length; boundaries are epoch-aligned.
        source: When given, every aggregate reads this single price (for
            instance CLOSE for a close-only line). By default open/high/low/close
            read the matching candle field.

    Returns:
        Buckets in ascending order, including a trailing bucket left open
        when the input ends.
    """
    if bucket_seconds <= 0:
        raise UnsupportedIntervalError(f"Bucket length must be positive: {bucket_seconds}")

    buckets: list[ResampledBucket] = []
    current: _OpenBucket | None = None

    for candle in candles:
        if source is None:
            open_, high, low, close = candle.open, candle.high, candle.low, candle.close
        else:
            open_ = high = low = close = candle.price(source)

        start = candle.open_time_seconds
        if start % bucket_seconds == 0:
            if current is not None:
                buckets.append(current.finalize())
            current = _OpenBucket(start, open_, high, low, close)
        elif current is not None:
            current.update(high, low, close)

    if current is not None:
        buckets.append(current.finalize())

    return buckets


def trim(
    buckets: list[ResampledBucket], head: bool = False, tail: bool = False
) -> list[ResampledBucket]:
    """Drop the first and/or last bucket."""
    start = 1 if head else 0
    end = len(buckets) - 1 if tail else len(buckets)
    return buckets[start:max(start, end)]


def project(buckets: Iterable[ResampledBucket], field_name: PriceField) -> list[float]:
    """Extract one aggregate from each bucket."""
    return [getattr(bucket, field_name.value) for bucket in buckets]


@dataclass(frozen=True)
class VariantConfig:
    """Fetch padding, edge trimming and projected value for one resampling variant."""

    pad: int
    trim_head: bool
    trim_tail: bool
    value: PriceField | None


class ResampleVariant(Enum):
    """The four resampling entry points, collapsed into configuration.

    CLOSE over-fetches one bucket and drops only the trailing, still-forming
    bucket. HIGH, LOW and OHLC over-fetch two and drop both edges.
    """

    CLOSE = VariantConfig(pad=1, trim_head=False, trim_tail=True, value=PriceField.CLOSE)
    HIGH = VariantConfig(pad=2, trim_head=True, trim_tail=True, value=PriceField.HIGH)
    LOW = VariantConfig(pad=2, trim_head=True, trim_tail=True, value=PriceField.LOW)
    OHLC = VariantConfig(pad=2, trim_head=True, trim_tail=True, value=None)

    @property
    def config(self) -> VariantConfig:
        return self.value

    def apply(self, buckets: list[ResampledBucket]) -> list[ResampledBucket]:
        """Trim the edges this variant's padding introduced."""
        return trim(buckets, head=self.config.trim_head, tail=self.config.trim_tail)
