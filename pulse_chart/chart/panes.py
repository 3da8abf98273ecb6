# pulse_chart/chart/panes.py
"""
Rendering panes.

Each pane is one pyqtgraph PlotWidget with its own ViewBox and time axis.
The controller layers above only talk to panes through this small surface:

    visible_range() / set_visible_range(lo, hi) / on_range_changed(cb)
    set_time_axis(axis) / show_time_axis(flag)
    set_series(key, spec) / remove_series(key) / series_keys()
    add_price_line(...) / remove_price_line(handle)
    set_session_regions(spans)
    destroy()

PricePane adds pointer tracking, click-to-point conversion, the live drawing
preview and frame capture for snapshots.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pyqtgraph as pg
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QImage

from ..data.models import ChartPoint
from ..styles.chart_styles import ChartStyles
from .items import CandlestickItem, OHLCBarItem, TimeAxisItem
from .time_axis import TimeAxis

logger = logging.getLogger(__name__)

CANDLE = 'candle'
OHLC = 'ohlc'
LINE = 'line'
AREA = 'area'
HISTOGRAM = 'histogram'


@dataclass
class SeriesSpec:
    """What to draw for one series; points are Candles or IndicatorPoint-likes"""
    style: str
    points: Sequence = ()
    color: str = ChartStyles.LINE_COLOR
    width: float = 1.5
    dashed: bool = False
    marker_times: Tuple[int, ...] = ()


def make_pen(color, width: float = 1.0, dashed: bool = False):
    style = Qt.PenStyle.DashLine if dashed else Qt.PenStyle.SolidLine
    return pg.mkPen(color, width=width, style=style)


def _unsubscriber(listeners: List[Callable], callback: Callable) -> Callable[[], None]:
    def unsubscribe():
        if callback in listeners:
            listeners.remove(callback)
    return unsubscribe


class PlotPane:
    """One indicator or price pane"""

    def __init__(self, name: str, time_axis: Optional[TimeAxis] = None):
        self.name = name
        self.time_axis = time_axis or TimeAxis()

        self.axis_item = TimeAxisItem(self.time_axis)
        self.widget = pg.PlotWidget(axisItems={'bottom': self.axis_item})
        self.widget.setBackground(ChartStyles.CHART_BACKGROUND)
        self.widget.setObjectName(f"{name}_pane")

        self.plot = self.widget.getPlotItem()
        self.plot.showGrid(x=True, y=True, alpha=0.15)
        self.plot.hideButtons()
        self.plot.setMenuEnabled(False)
        self.plot.showAxis('right')
        self.plot.hideAxis('left')

        self.view_box = self.plot.getViewBox()
        self.view_box.disableAutoRange(axis=pg.ViewBox.XAxis)
        self.view_box.enableAutoRange(axis=pg.ViewBox.YAxis)
        self.view_box.setAutoVisible(y=True)
        self.view_box.setMouseEnabled(x=True, y=False)

        self._series: Dict[str, Tuple[SeriesSpec, list]] = {}
        self._regions: list = []
        self._range_listeners: List[Callable[[float, float], None]] = []
        self.view_box.sigXRangeChanged.connect(self._on_x_range_changed)
        self.destroyed = False

    # -- range ---------------------------------------------------------------

    def visible_range(self) -> Tuple[float, float]:
        lo, hi = self.view_box.viewRange()[0]
        return float(lo), float(hi)

    def set_visible_range(self, lo: float, hi: float) -> None:
        self.view_box.setXRange(lo, hi, padding=0)

    def on_range_changed(self, callback: Callable[[float, float], None]) -> Callable[[], None]:
        self._range_listeners.append(callback)
        return _unsubscriber(self._range_listeners, callback)

    def _on_x_range_changed(self, view_box, x_range):
        lo, hi = x_range
        for callback in list(self._range_listeners):
            callback(float(lo), float(hi))

    # -- axis ----------------------------------------------------------------

    def set_time_axis(self, time_axis: TimeAxis) -> None:
        self.time_axis = time_axis
        self.axis_item.set_time_axis(time_axis)
        for key, (spec, _) in list(self._series.items()):
            self.set_series(key, spec)

    def show_time_axis(self, visible: bool) -> None:
        self.plot.showAxis('bottom', visible)

    # -- series --------------------------------------------------------------

    def series_keys(self) -> List[str]:
        return list(self._series)

    def series(self, key: str) -> Optional[SeriesSpec]:
        entry = self._series.get(key)
        return entry[0] if entry else None

    def set_series(self, key: str, spec: SeriesSpec) -> None:
        """Replace the series under `key` wholesale"""
        self.remove_series(key)
        items = self._build_items(spec)
        for item in items:
            self.plot.addItem(item)
        self._series[key] = (spec, items)

    def remove_series(self, key: str) -> None:
        entry = self._series.pop(key, None)
        if entry is None:
            return
        for item in entry[1]:
            self.plot.removeItem(item)

    def _build_items(self, spec: SeriesSpec) -> list:
        points = list(spec.points)
        xs = self.time_axis.xs_for_times([p.time for p in points])
        if len(xs) == 0:
            return []

        if spec.style == CANDLE:
            items = [CandlestickItem(points, xs)]
        elif spec.style == OHLC:
            items = [OHLCBarItem(points, xs)]
        elif spec.style == HISTOGRAM:
            items = [pg.BarGraphItem(
                x=xs, height=[p.value for p in points], width=0.6,
                brushes=[pg.mkBrush(p.color) for p in points], pen=None)]
        else:
            ys = np.array([p.value for p in points], dtype=np.float64)
            pen = make_pen(spec.color, spec.width, spec.dashed)
            if spec.style == AREA:
                items = [pg.PlotDataItem(xs, ys, pen=pen, fillLevel=float(ys.min()),
                                         brush=pg.mkBrush(ChartStyles.AREA_FILL))]
            else:
                items = [pg.PlotDataItem(xs, ys, pen=pen)]

        if spec.marker_times:
            by_time = {p.time: p.value for p in points}
            marks = [t for t in spec.marker_times if t in by_time]
            items.append(pg.ScatterPlotItem(
                x=self.time_axis.xs_for_times(marks), y=[by_time[t] for t in marks],
                symbol='o', size=7, pen=None, brush=pg.mkBrush(spec.color)))
        return items

    # -- price lines and regions ---------------------------------------------

    def add_price_line(self, price: float, color: str, title: str = '',
                       dashed: bool = True, width: float = 1.0):
        line = pg.InfiniteLine(
            pos=price, angle=0, movable=False,
            pen=make_pen(color, width, dashed),
            label=title or None,
            labelOpts={'position': 0.97, 'color': color, 'movable': False,
                       'anchors': [(1, 1), (1, 1)]},
        )
        self.plot.addItem(line, ignoreBounds=True)
        return line

    def remove_price_line(self, handle) -> None:
        self.plot.removeItem(handle)

    def set_session_regions(self, spans) -> None:
        for region in self._regions:
            self.plot.removeItem(region)
        self._regions = []
        for span in spans:
            color = ChartStyles.SESSION_PRE if span.session == 'pre' else ChartStyles.SESSION_POST
            region = pg.LinearRegionItem(
                values=(span.start_index - 0.5, span.end_index + 0.5),
                orientation='vertical', movable=False,
                brush=pg.mkBrush(color), pen=pg.mkPen(None))
            region.setZValue(-10)
            self.plot.addItem(region, ignoreBounds=True)
            self._regions.append(region)

    # -- teardown ------------------------------------------------------------

    def destroy(self) -> None:
        if self.destroyed:
            return
        self.destroyed = True
        self._range_listeners.clear()
        try:
            self.view_box.sigXRangeChanged.disconnect(self._on_x_range_changed)
        except TypeError:
            pass
        self._series.clear()
        self._regions = []
        self.plot.clear()
        self.widget.setParent(None)
        self.widget.deleteLater()
        logger.debug(f"Destroyed pane {self.name}")


class PreviewLine:
    """Dashed segment plus two markers following the pointer while drawing"""

    def __init__(self, pane: 'PricePane', color: str):
        self.pane = pane
        self.line = pg.PlotDataItem([], [], pen=make_pen(color, 1, dashed=True))
        self.markers = pg.ScatterPlotItem([], [], symbol='o', size=7, pen=None,
                                          brush=pg.mkBrush(color))
        pane.plot.addItem(self.line, ignoreBounds=True)
        pane.plot.addItem(self.markers, ignoreBounds=True)

    def update(self, start: ChartPoint, x: float, price: float) -> None:
        start_x = self.pane.time_axis.x_for_time(start.time)
        if start_x is None:
            return
        self.line.setData([start_x, x], [start.price, price])
        self.markers.setData([start_x, x], [start.price, price])

    def remove(self) -> None:
        self.pane.plot.removeItem(self.line)
        self.pane.plot.removeItem(self.markers)


class PricePane(PlotPane):
    """Main price pane: adds pointer, click and capture support"""

    def __init__(self, name: str = 'main', time_axis: Optional[TimeAxis] = None):
        super().__init__(name, time_axis)
        self._pointer_listeners: List[Callable[[float, float], None]] = []
        self._click_listeners: List[Callable[[ChartPoint], None]] = []

        scene = self.widget.scene()
        self._move_proxy = pg.SignalProxy(scene.sigMouseMoved, rateLimit=60,
                                          slot=self._on_mouse_moved)
        scene.sigMouseClicked.connect(self._on_mouse_clicked)

    def on_pointer_move(self, callback: Callable[[float, float], None]) -> Callable[[], None]:
        self._pointer_listeners.append(callback)
        return _unsubscriber(self._pointer_listeners, callback)

    def on_click(self, callback: Callable[[ChartPoint], None]) -> Callable[[], None]:
        self._click_listeners.append(callback)
        return _unsubscriber(self._click_listeners, callback)

    def _on_mouse_moved(self, evt):
        pos = evt[0]
        if not self.view_box.sceneBoundingRect().contains(pos):
            return
        point = self.view_box.mapSceneToView(pos)
        for callback in list(self._pointer_listeners):
            callback(point.x(), point.y())

    def _on_mouse_clicked(self, event):
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = event.scenePos()
        # Axis and title clicks are not on the price surface
        if not self.view_box.sceneBoundingRect().contains(pos):
            return
        chart_point = self.to_chart_point(self.view_box.mapSceneToView(pos))
        if chart_point is None:
            return
        for callback in list(self._click_listeners):
            callback(chart_point)

    def to_chart_point(self, view_point) -> Optional[ChartPoint]:
        """Snap a view coordinate to the nearest candle time"""
        time = self.time_axis.time_at(view_point.x())
        if time is None:
            return None
        return ChartPoint(time, float(view_point.y()))

    def create_preview(self, color: str) -> PreviewLine:
        return PreviewLine(self, color)

    def grab_frame(self) -> QImage:
        """Full-resolution raster of the pane (device pixels)"""
        return self.widget.grab().toImage()

    def logical_size(self) -> Tuple[int, int]:
        return self.widget.width(), self.widget.height()

    def destroy(self) -> None:
        self._pointer_listeners.clear()
        self._click_listeners.clear()
        try:
            self.widget.scene().sigMouseClicked.disconnect(self._on_mouse_clicked)
        except TypeError:
            pass
        self._move_proxy.disconnect()
        super().destroy()


def create_pane(name: str):
    """Default pane factory: the main pane gets pointer and capture support"""
    if name == 'main':
        return PricePane(name)
    return PlotPane(name)
