# pulse_chart/tests/conftest.py
"""
Shared fixtures: in-memory panes, a synchronous fetcher and candle factories.
Qt runs offscreen so the widget-backed tests work headless.
"""
import os

os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

import pytest

from pulse_chart.config import ChartConfig
from pulse_chart.data.models import Candle


def make_candles(closes, start=1_700_000_000, step=60, volume=100):
    """Candles with open=previous close and a 0.5 wick either side"""
    candles = []
    prev = closes[0]
    for i, close in enumerate(closes):
        candles.append(Candle(
            time=start + i * step,
            open=prev,
            high=max(prev, close) + 0.5,
            low=min(prev, close) - 0.5,
            close=close,
            volume=volume,
        ))
        prev = close
    return candles


class FakePriceLine:
    def __init__(self, price, color, title, dashed, width):
        self.price = price
        self.color = color
        self.title = title
        self.dashed = dashed
        self.width = width


class FakePreview:
    def __init__(self, color):
        self.color = color
        self.updates = []
        self.removed = False

    def update(self, start, x, price):
        self.updates.append((start, x, price))

    def remove(self):
        self.removed = True


class FakePane:
    """Records what a controller draws; range changes notify synchronously"""

    def __init__(self, name):
        self.name = name
        self.range = (0.0, 100.0)
        self.set_range_calls = 0
        self.series = {}
        self.price_lines = []
        self.regions = []
        self.time_axis = None
        self.axis_visible = True
        self.destroyed = False
        self._range_listeners = []

    def visible_range(self):
        return self.range

    def set_visible_range(self, lo, hi):
        self.set_range_calls += 1
        self.range = (float(lo), float(hi))
        for callback in list(self._range_listeners):
            callback(float(lo), float(hi))

    def user_pan(self, lo, hi):
        """Simulate a drag or wheel zoom on this pane"""
        self.set_visible_range(lo, hi)

    def on_range_changed(self, callback):
        self._range_listeners.append(callback)
        return lambda: self._range_listeners.remove(callback)

    @property
    def range_listener_count(self):
        return len(self._range_listeners)

    def set_time_axis(self, time_axis):
        self.time_axis = time_axis

    def show_time_axis(self, visible):
        self.axis_visible = visible

    def series_keys(self):
        return list(self.series)

    def set_series(self, key, spec):
        self.series[key] = spec

    def remove_series(self, key):
        self.series.pop(key, None)

    def add_price_line(self, price, color, title='', dashed=True, width=1.0):
        line = FakePriceLine(price, color, title, dashed, width)
        self.price_lines.append(line)
        return line

    def remove_price_line(self, handle):
        self.price_lines.remove(handle)

    def set_session_regions(self, spans):
        self.regions = list(spans)

    def destroy(self):
        self.destroyed = True
        self._range_listeners.clear()


class FakePricePane(FakePane):
    """Main pane: adds pointer, click, preview and capture hooks"""

    def __init__(self, name='main'):
        super().__init__(name)
        self.pointer_listeners = []
        self.click_listeners = []
        self.previews = []
        self.frame = None
        self.size = (800, 600)

    def on_pointer_move(self, callback):
        self.pointer_listeners.append(callback)
        return lambda: self.pointer_listeners.remove(callback)

    def on_click(self, callback):
        self.click_listeners.append(callback)
        return lambda: self.click_listeners.remove(callback)

    def move_pointer(self, x, price):
        for callback in list(self.pointer_listeners):
            callback(x, price)

    def click(self, point):
        for callback in list(self.click_listeners):
            callback(point)

    def create_preview(self, color):
        preview = FakePreview(color)
        self.previews.append(preview)
        return preview

    def grab_frame(self):
        return self.frame

    def logical_size(self):
        return self.size


def fake_pane_factory(name):
    if name == 'main':
        return FakePricePane(name)
    return FakePane(name)


class FakeFetcher:
    """
    Runs fetch functions synchronously, or holds them for manual delivery
    when `hold` is set.
    """

    def __init__(self, hold=False):
        self.hold = hold
        self.requests = []
        self.pending = {}
        self.cancelled = []
        self.shut_down = False

    def request(self, purpose, fn, *args, on_result=None, on_error=None, **kwargs):
        if self.shut_down:
            return 0
        self.requests.append((purpose, fn, args, kwargs))
        if self.hold:
            self.pending[purpose] = (fn, args, kwargs, on_result, on_error)
            return len(self.requests)
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            if on_error is not None:
                on_error(e)
        else:
            if on_result is not None:
                on_result(result)
        return len(self.requests)

    def purposes(self):
        return [purpose for purpose, _, _, _ in self.requests]

    def cancel(self, purpose):
        self.cancelled.append(purpose)
        self.pending.pop(purpose, None)

    def shutdown(self):
        self.shut_down = True
        self.pending.clear()


@pytest.fixture
def candles():
    """60 one-minute candles drifting upward"""
    return make_candles([100 + i * 0.25 for i in range(60)])


@pytest.fixture
def test_config(tmp_path):
    return ChartConfig({
        'base_url': 'http://feed.test',
        'home_dir': tmp_path / 'home',
        'snapshot_dir': tmp_path / 'downloads',
        'max_retries': 2,
        'retry_base_delay': 1.0,
    })
