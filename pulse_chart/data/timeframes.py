# pulse_chart/data/timeframes.py
"""
Timeframe catalogs.

Two minute catalogs exist: conventional instruments request extended-hours
candles, always-on instruments (crypto, FX) offer a slightly different set and
never ask for extended hours. Range timeframes are shared and never poll.
"""
from enum import Enum
from typing import List, Tuple

from .models import Timeframe


class TimeframeKind(str, Enum):
    MINUTE = 'minute'
    RANGE = 'range'


MINUTE_TIMEFRAMES: Tuple[Timeframe, ...] = (
    Timeframe('1m', '5d', '1m', 10000, 80, include_extended_hours=True),
    Timeframe('2m', '5d', '2m', 15000, 70, include_extended_hours=True),
    Timeframe('5m', '1mo', '5m', 30000, 60, include_extended_hours=True),
    Timeframe('15m', '1mo', '15m', 60000, 50, include_extended_hours=True),
    Timeframe('30m', '1mo', '30m', 60000, 40, include_extended_hours=True),
    Timeframe('1h', '2y', '1h', 60000, 40, include_extended_hours=True),
    Timeframe('2h', '2y', '1h', 0, 40, aggregation_factor=2, include_extended_hours=True),
    Timeframe('4h', '2y', '1h', 0, 40, aggregation_factor=4, include_extended_hours=True),
)

CRYPTO_MINUTE_TIMEFRAMES: Tuple[Timeframe, ...] = (
    Timeframe('1m', '5d', '1m', 10000, 80),
    Timeframe('5m', '5d', '5m', 30000, 60),
    Timeframe('15m', '1mo', '15m', 60000, 50),
    Timeframe('30m', '1mo', '30m', 60000, 40),
    Timeframe('1h', '6mo', '1h', 60000, 40),
    Timeframe('2h', '6mo', '1h', 0, 40, aggregation_factor=2),
    Timeframe('4h', '1y', '1h', 0, 40, aggregation_factor=4),
)

RANGE_TIMEFRAMES: Tuple[Timeframe, ...] = (
    Timeframe('D', '10y', '1d', 0, 120),
    Timeframe('W', '10y', '1wk', 0, 80),
    Timeframe('1M', 'max', '1mo', 0, 80),
    Timeframe('YTD', 'ytd', '1d', 0, 120),
    Timeframe('1Y', '1y', '1d', 0, 120),
    Timeframe('5Y', '5y', '1wk', 0, 80),
    Timeframe('Max', 'max', '1mo', 0, 80),
)

# Seconds per source interval, used for forward projection of intraday axes
INTERVAL_SECONDS = {
    '1m': 60,
    '2m': 120,
    '5m': 300,
    '15m': 900,
    '30m': 1800,
    '1h': 3600,
}

INTRADAY_INTERVALS = frozenset(INTERVAL_SECONDS)

DEFAULT_MINUTE_INDEX = 2


def is_crypto_symbol(symbol: str) -> bool:
    """Always-on instruments trade around the clock and have no sessions"""
    symbol = (symbol or '').upper()
    return symbol.endswith('-USD') or symbol.endswith('=X')


def minute_timeframes_for(symbol: str) -> Tuple[Timeframe, ...]:
    return CRYPTO_MINUTE_TIMEFRAMES if is_crypto_symbol(symbol) else MINUTE_TIMEFRAMES


def timeframes_for(symbol: str, kind: TimeframeKind) -> Tuple[Timeframe, ...]:
    if TimeframeKind(kind) == TimeframeKind.MINUTE:
        return minute_timeframes_for(symbol)
    return RANGE_TIMEFRAMES


def resolve_timeframe(symbol: str, index: int, kind: TimeframeKind) -> Timeframe:
    """
    Look up a timeframe by catalog position.

    Raises:
        IndexError: index is outside the catalog for this symbol
    """
    catalog = timeframes_for(symbol, kind)
    if index < 0 or index >= len(catalog):
        raise IndexError(f"No {TimeframeKind(kind).value} timeframe at index {index} for {symbol}")
    return catalog[index]


def is_intraday(timeframe: Timeframe) -> bool:
    return timeframe.source_interval in INTRADAY_INTERVALS


def labels(symbol: str, kind: TimeframeKind) -> List[str]:
    return [tf.label for tf in timeframes_for(symbol, kind)]
