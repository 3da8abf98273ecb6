# pulse_chart/data/models.py
"""
Chart data models
"""
from typing import List, Optional
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Candle:
    """Single OHLCV candle; time is unix seconds"""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: int = 0


@dataclass(frozen=True)
class Timeframe:
    """Selectable timeframe: where its candles come from and how they are shown"""
    label: str
    source_range: str
    source_interval: str
    poll_interval_ms: int
    visible_bar_count: int
    aggregation_factor: int = 1
    include_extended_hours: bool = False

    @property
    def polls(self) -> bool:
        return self.poll_interval_ms > 0


@dataclass(frozen=True)
class IndicatorPoint:
    time: int
    value: float


@dataclass(frozen=True)
class HistogramPoint:
    time: int
    value: float
    color: str


@dataclass
class MACDResult:
    """MACD line, signal line and histogram, aligned on the same timestamps"""
    macd: List[IndicatorPoint] = field(default_factory=list)
    signal: List[IndicatorPoint] = field(default_factory=list)
    histogram: List[HistogramPoint] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.macd


@dataclass(frozen=True)
class ChartPoint:
    """A (time, price) coordinate on the price surface"""
    time: int
    price: float


@dataclass(frozen=True)
class QuoteSnapshot:
    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    name: Optional[str] = None
    volume: Optional[int] = None

    @property
    def previous_close(self) -> float:
        return self.price - self.change


@dataclass(frozen=True)
class InstrumentMatch:
    symbol: str
    name: str
    type: Optional[str] = None
    exchange: Optional[str] = None
