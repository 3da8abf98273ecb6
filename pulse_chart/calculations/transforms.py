# pulse_chart/calculations/transforms.py
"""
Module: Candle transforms
Purpose: Turn a raw candle feed into the series actually drawn
Features: Interval aggregation, Heikin-Ashi conversion, forward timestamp projection
Note: Pure functions - inputs are never mutated
"""
import logging
from typing import List, Sequence

from ..config import FORWARD_PROJECTION_BARS
from ..data.models import Candle

logger = logging.getLogger(__name__)


def aggregate_candles(candles: Sequence[Candle], factor: int) -> Sequence[Candle]:
    """
    Merge consecutive runs of `factor` candles into one.

    Args:
        candles: Ordered candles (oldest first)
        factor: Number of input candles per output candle

    Returns:
        The input object itself when factor <= 1, otherwise a new list of
        ceil(len / factor) candles. The last chunk may be shorter.
    """
    if not factor or factor <= 1:
        return candles

    result = []
    for start in range(0, len(candles), factor):
        chunk = candles[start:start + factor]
        result.append(Candle(
            time=chunk[0].time,
            open=chunk[0].open,
            high=max(c.high for c in chunk),
            low=min(c.low for c in chunk),
            close=chunk[-1].close,
            volume=sum((c.volume or 0) for c in chunk),
        ))
    return result


def to_heikin_ashi(candles: Sequence[Candle]) -> List[Candle]:
    """
    Convert candles to Heikin-Ashi.

    Each output open is the midpoint of the previous *output* candle, so the
    walk is strictly sequential. The first candle seeds from its own raw
    open/close. Volume passes through unchanged.
    """
    if not candles:
        return []

    result = []
    prev_open = candles[0].open
    prev_close = candles[0].close
    for c in candles:
        ha_close = (c.open + c.high + c.low + c.close) / 4
        ha_open = (prev_open + prev_close) / 2
        result.append(Candle(
            time=c.time,
            open=ha_open,
            high=max(c.high, ha_open, ha_close),
            low=min(c.low, ha_open, ha_close),
            close=ha_close,
            volume=c.volume,
        ))
        prev_open, prev_close = ha_open, ha_close
    return result


def project_forward_timestamps(last_time: int, interval_seconds: int,
                               count: int = FORWARD_PROJECTION_BARS) -> List[int]:
    """
    Future timestamps spaced by `interval_seconds` after `last_time`.

    These only extend the time axis; they carry no prices.
    """
    if interval_seconds <= 0 or count <= 0:
        return []
    return [last_time + interval_seconds * (i + 1) for i in range(count)]
