# pulse_chart/calculations/compare.py
"""
Compare anchoring: rescale a second instrument so its latest close lands on
the primary instrument's latest close. Only relative movement is compared.
"""
import math
from typing import List, Sequence

from ..data.models import Candle, IndicatorPoint


def _usable(value) -> bool:
    return value is not None and not math.isnan(value) and value != 0


def anchor_compare_series(primary: Sequence[Candle],
                          compare: Sequence[Candle]) -> List[IndicatorPoint]:
    """
    scaled(t) = primary_latest * (compare_close(t) / compare_latest)

    Returns:
        A fresh list of points over the compare timestamps, or [] when either
        series is empty or either latest close is zero or missing
    """
    if not primary or not compare:
        return []

    main_latest = primary[-1].close
    comp_latest = compare[-1].close
    if not _usable(main_latest) or not _usable(comp_latest):
        return []

    return [
        IndicatorPoint(c.time, main_latest * (c.close / comp_latest))
        for c in compare
        if c.close is not None
    ]
