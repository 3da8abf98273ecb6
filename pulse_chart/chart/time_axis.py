# pulse_chart/chart/time_axis.py
"""
Logical time axis shared by every pane.

Panes plot against bar index rather than wall-clock time so overnight and
weekend gaps take no space. Index i is the i-th real candle; indices past the
last candle belong to projected (empty) timestamps.
"""
import math
from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np

from ..config import DISPLAY_TIMEZONE


class TimeAxis:

    def __init__(self, times: Sequence[int] = (), forward_times: Sequence[int] = (),
                 intraday: bool = True):
        self.data_length = len(times)
        self.times = np.asarray(list(times) + list(forward_times), dtype=np.int64)
        self.intraday = intraday
        self._positions = np.arange(len(self.times), dtype=np.float64)

    def __len__(self):
        return len(self.times)

    @property
    def is_empty(self) -> bool:
        return self.data_length == 0

    def x_for_time(self, time: int) -> Optional[float]:
        """Axis position of a timestamp; between-bar times interpolate"""
        if len(self.times) == 0:
            return None
        return float(np.interp(time, self.times, self._positions))

    def xs_for_times(self, times: Sequence[int]) -> np.ndarray:
        if len(self.times) == 0 or len(times) == 0:
            return np.empty(0, dtype=np.float64)
        return np.interp(np.asarray(times, dtype=np.float64), self.times, self._positions)

    def nearest_index(self, x: float) -> Optional[int]:
        """Nearest real candle index for an axis position, clamped to the data"""
        if self.data_length == 0 or x is None or math.isnan(x):
            return None
        index = int(math.floor(x + 0.5))
        return max(0, min(self.data_length - 1, index))

    def time_at(self, x: float) -> Optional[int]:
        index = self.nearest_index(x)
        if index is None:
            return None
        return int(self.times[index])

    def label_at(self, x: float) -> str:
        """Tick label for an axis position (projected positions included)"""
        if len(self.times) == 0:
            return ''
        index = int(round(x))
        if index < 0 or index >= len(self.times):
            return ''
        moment = datetime.fromtimestamp(int(self.times[index]), tz=DISPLAY_TIMEZONE)
        if self.intraday:
            return moment.strftime('%m/%d %H:%M')
        return moment.strftime('%Y-%m-%d')

    def labels_for(self, xs: Sequence[float]) -> List[str]:
        return [self.label_at(x) for x in xs]
