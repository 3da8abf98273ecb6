"""
Pure calculations for the chart workstation
"""
from .transforms import aggregate_candles, to_heikin_ashi, project_forward_timestamps
from .indicators import calc_ema, calc_rsi, calc_macd, calc_vwap
from .compare import anchor_compare_series
from .sessions import extended_session_spans, is_regular_hours

__all__ = [
    'aggregate_candles',
    'to_heikin_ashi',
    'project_forward_timestamps',
    'calc_ema',
    'calc_rsi',
    'calc_macd',
    'calc_vwap',
    'anchor_compare_series',
    'extended_session_spans',
    'is_regular_hours',
]
