# pulse_chart/calculations/indicators.py
"""
Module: Indicator calculations
Purpose: EMA, RSI, MACD and VWAP over an (already aggregated) candle series
Features: Pure, deterministic functions; short inputs yield empty series
Output: Lists of IndicatorPoint / HistogramPoint aligned to candle timestamps
Note: Plain float loops, not vectorised, so results are bit-reproducible and
      match a sequential walk exactly.
"""

from datetime import datetime
from typing import List, Sequence

from ..config import FEED_TIMEZONE
from ..data.models import Candle, IndicatorPoint, HistogramPoint, MACDResult
from ..styles.chart_styles import ChartStyles


def calc_ema(data: Sequence[Candle], period: int) -> List[IndicatorPoint]:
    """
    Exponential moving average of closes.

    Seeded with the simple average of the first `period` closes, emitted at
    index period-1, then ema = close * k + ema * (1 - k) with k = 2 / (period + 1).
    """
    if period <= 0 or len(data) < period:
        return []

    k = 2 / (period + 1)
    ema = sum(c.close for c in data[:period]) / period
    result = [IndicatorPoint(data[period - 1].time, ema)]
    for i in range(period, len(data)):
        ema = data[i].close * k + ema * (1 - k)
        result.append(IndicatorPoint(data[i].time, ema))
    return result


def calc_rsi(data: Sequence[Candle], period: int = 14) -> List[IndicatorPoint]:
    """
    Wilder's RSI.

    Average gain and loss are seeded over the first `period` deltas and then
    smoothed. RSI is exactly 100 when the average loss is zero.
    """
    if period <= 0 or len(data) < period + 1:
        return []

    avg_gain = 0.0
    avg_loss = 0.0
    for i in range(1, period + 1):
        diff = data[i].close - data[i - 1].close
        if diff > 0:
            avg_gain += diff
        else:
            avg_loss -= diff
    avg_gain /= period
    avg_loss /= period

    result = [IndicatorPoint(data[period].time, _rsi_value(avg_gain, avg_loss))]
    for i in range(period + 1, len(data)):
        diff = data[i].close - data[i - 1].close
        gain = diff if diff > 0 else 0.0
        loss = -diff if diff < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        result.append(IndicatorPoint(data[i].time, _rsi_value(avg_gain, avg_loss)))
    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return 100 - 100 / (1 + avg_gain / avg_loss)


def _ema_values(values: Sequence[float], period: int) -> List[float]:
    """EMA over raw values; slots before the seed hold the seed itself"""
    k = 2 / (period + 1)
    ema = sum(values[:period]) / period
    result = [ema] * period
    for i in range(period, len(values)):
        ema = values[i] * k + ema * (1 - k)
        result.append(ema)
    return result


def calc_macd(data: Sequence[Candle], fast: int = 12, slow: int = 26,
              signal: int = 9) -> MACDResult:
    """
    MACD line, signal line and histogram.

    The MACD line starts at index slow-1. Its first signal-1 values seed the
    signal EMA, so all three returned series begin at the first index where a
    signal value exists and share timestamps.

    Returns:
        MACDResult with three empty lists when len(data) < slow + signal
    """
    if len(data) < slow + signal:
        return MACDResult()

    closes = [c.close for c in data]
    fast_ema = _ema_values(closes, fast)
    slow_ema = _ema_values(closes, slow)

    macd_values = [fast_ema[i] - slow_ema[i] for i in range(slow - 1, len(data))]
    macd_times = [data[i].time for i in range(slow - 1, len(data))]
    signal_values = _ema_values(macd_values, signal)

    result = MACDResult()
    for i in range(signal - 1, len(macd_values)):
        t = macd_times[i]
        hist = macd_values[i] - signal_values[i]
        result.macd.append(IndicatorPoint(t, macd_values[i]))
        result.signal.append(IndicatorPoint(t, signal_values[i]))
        result.histogram.append(HistogramPoint(
            t, hist,
            ChartStyles.HIST_POSITIVE if hist >= 0 else ChartStyles.HIST_NEGATIVE,
        ))
    return result


def calc_vwap(data: Sequence[Candle]) -> List[IndicatorPoint]:
    """
    Volume-weighted average price, reset at every UTC calendar day.

    Typical price is (high + low + close) / 3. Candles before any volume has
    accumulated in the day emit nothing.
    """
    result = []
    cum_volume = 0.0
    cum_pv = 0.0
    current_day = None

    for c in data:
        day = datetime.fromtimestamp(c.time, tz=FEED_TIMEZONE).date()
        if day != current_day:
            cum_volume = 0.0
            cum_pv = 0.0
            current_day = day

        volume = c.volume or 0
        typical = (c.high + c.low + c.close) / 3
        cum_volume += volume
        cum_pv += typical * volume
        if cum_volume > 0:
            result.append(IndicatorPoint(c.time, cum_pv / cum_volume))
    return result
