# pulse_chart/calculations/sessions.py
"""
Module: Market session detection
Purpose: Classify intraday timestamps as pre-market, regular or post-market
Note: Boundaries are US equity hours on the New York clock (DST aware via pytz)
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence

from ..config import DISPLAY_TIMEZONE

REGULAR_OPEN_HOUR = 9.5
REGULAR_CLOSE_HOUR = 16.0

PRE = 'pre'
REGULAR = 'regular'
POST = 'post'


@dataclass(frozen=True)
class SessionSpan:
    """Inclusive run of axis indices sharing one extended session"""
    start_index: int
    end_index: int
    session: str


def _decimal_hour(timestamp: int) -> float:
    local = datetime.fromtimestamp(int(timestamp), tz=DISPLAY_TIMEZONE)
    return local.hour + local.minute / 60


def session_of(timestamp: int) -> str:
    hour = _decimal_hour(timestamp)
    if hour < REGULAR_OPEN_HOUR:
        return PRE
    if hour >= REGULAR_CLOSE_HOUR:
        return POST
    return REGULAR


def is_regular_hours(timestamp: int) -> bool:
    return session_of(timestamp) == REGULAR


def extended_session_spans(times: Sequence[int]) -> List[SessionSpan]:
    """
    Group consecutive pre/post-market timestamps into spans.

    Args:
        times: Axis timestamps, real and projected, oldest first

    Returns:
        Spans in axis order; regular-hours stretches are omitted
    """
    spans = []
    start = None
    current = None
    for i, t in enumerate(times):
        session = session_of(t)
        if session != current:
            if current in (PRE, POST):
                spans.append(SessionSpan(start, i - 1, current))
            start, current = i, session
    if current in (PRE, POST):
        spans.append(SessionSpan(start, len(times) - 1, current))
    return spans
