"""Candle resampling -- aggregation of native klines into caller-sized buckets."""

from futures_bot.candles.resampler import (
    ResampleVariant,
    ensure_contiguous,
    interval_to_seconds,
    one_minute_candles_needed,
    project,
    resample,
    trim,
)
from futures_bot.candles.service import CandleService

__all__ = [
    "CandleService",
    "ResampleVariant",
    "ensure_contiguous",
    "interval_to_seconds",
    "one_minute_candles_needed",
    "project",
    "resample",
    "trim",
]
