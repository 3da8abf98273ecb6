# pulse_chart/chart/drawing.py
"""
Module: Drawing tools
Purpose: Click-driven annotation state machine for the price pane
Features:
    - hline: one click, horizontal price line
    - trendline / ray / fib: two clicks with a live preview in between
    - Ray extension walks real candle timestamps after the second anchor
    - A single cancel() tears down any in-progress drawing

States:
    IDLE                          no tool armed
    ARMED_SINGLE_CLICK            hline armed
    ARMED_AWAITING_FIRST_POINT    two-click tool armed, nothing clicked yet
    ARMED_AWAITING_SECOND_POINT   first anchor cached, preview following the pointer
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, Union

from ..data.models import Candle, ChartPoint, IndicatorPoint
from ..styles.chart_styles import ChartStyles
from .panes import SeriesSpec, LINE

logger = logging.getLogger(__name__)

FIB_LEVELS = (0, 0.236, 0.382, 0.5, 0.618, 0.786, 1)


class DrawingTool(str, Enum):
    NONE = 'none'
    HLINE = 'hline'
    TRENDLINE = 'trendline'
    RAY = 'ray'
    FIB = 'fib'


TWO_CLICK_TOOLS = (DrawingTool.TRENDLINE, DrawingTool.RAY, DrawingTool.FIB)


class DrawState(Enum):
    IDLE = 'idle'
    ARMED_SINGLE_CLICK = 'armed_single_click'
    ARMED_AWAITING_FIRST_POINT = 'armed_awaiting_first_point'
    ARMED_AWAITING_SECOND_POINT = 'armed_awaiting_second_point'


# -- annotation variants ------------------------------------------------------

@dataclass(frozen=True)
class HorizontalLine:
    price: float


@dataclass(frozen=True)
class Trendline:
    p1: ChartPoint
    p2: ChartPoint


@dataclass(frozen=True)
class Ray:
    p1: ChartPoint
    p2: ChartPoint

    def points(self, candles: Sequence[Candle]) -> List[IndicatorPoint]:
        """Anchors, then the anchor slope evaluated at every later candle time"""
        slope = (self.p2.price - self.p1.price) / (self.p2.time - self.p1.time)
        points = [IndicatorPoint(self.p1.time, self.p1.price),
                  IndicatorPoint(self.p2.time, self.p2.price)]
        for candle in candles:
            if candle.time > self.p2.time:
                points.append(IndicatorPoint(
                    candle.time, self.p2.price + slope * (candle.time - self.p2.time)))
        return points


@dataclass(frozen=True)
class FibRetracement:
    p1: ChartPoint
    p2: ChartPoint

    def levels(self) -> List[Tuple[float, float, str]]:
        """(level, price, color) from the high down to the low"""
        high = max(self.p1.price, self.p2.price)
        low = min(self.p1.price, self.p2.price)
        diff = high - low
        return [(level, high - diff * level, ChartStyles.FIB_COLORS[i])
                for i, level in enumerate(FIB_LEVELS)]


Annotation = Union[HorizontalLine, Trendline, Ray, FibRetracement]


@dataclass
class DrawnAnnotation:
    """A committed annotation and the on-screen handles that render it"""
    annotation: Annotation
    price_lines: list = field(default_factory=list)
    series_keys: List[str] = field(default_factory=list)


@dataclass
class DrawSession:
    """In-progress two-click drawing: first anchor plus its preview"""
    tool: DrawingTool
    first_point: ChartPoint
    preview: object
    unsubscribe_pointer: Callable[[], None]


def measurement_text(start_price: float, current_price: float) -> str:
    diff = current_price - start_price
    pct = diff / start_price * 100 if start_price else 0.0
    return f"{'+' if pct >= 0 else ''}{pct:.2f}% (${'+' if diff >= 0 else '-'}{abs(diff):.2f})"


class DrawingToolController:
    """
    Annotation state machine bound to the price pane.

    Args:
        pane: Price pane (add_price_line, set_series, create_preview, on_pointer_move)
        candles: Callable returning the candles currently drawn, used by rays
    """

    def __init__(self, pane, candles: Callable[[], Sequence[Candle]]):
        self.pane = pane
        self._candles = candles
        self.tool = DrawingTool.NONE
        self.session: Optional[DrawSession] = None
        self.annotations: List[DrawnAnnotation] = []
        self.measurement = ''
        self._measurement_listeners: List[Callable[[str], None]] = []
        self._tool_listeners: List[Callable[[DrawingTool], None]] = []
        self._series_ids = 0

    @property
    def state(self) -> DrawState:
        if self.tool == DrawingTool.NONE:
            return DrawState.IDLE
        if self.tool not in TWO_CLICK_TOOLS:
            return DrawState.ARMED_SINGLE_CLICK
        if self.session is None:
            return DrawState.ARMED_AWAITING_FIRST_POINT
        return DrawState.ARMED_AWAITING_SECOND_POINT

    def on_measurement(self, callback: Callable[[str], None]) -> None:
        self._measurement_listeners.append(callback)

    def on_tool_changed(self, callback: Callable[[DrawingTool], None]) -> None:
        self._tool_listeners.append(callback)

    def _set_tool(self, tool: DrawingTool) -> None:
        if tool == self.tool:
            return
        self.tool = tool
        for callback in list(self._tool_listeners):
            callback(tool)

    def _set_measurement(self, text: str) -> None:
        self.measurement = text
        for callback in list(self._measurement_listeners):
            callback(text)

    # -- arming --------------------------------------------------------------

    def arm(self, tool) -> DrawingTool:
        """Arm a tool; arming the active tool again disarms it"""
        tool = DrawingTool(tool)
        if tool == self.tool or tool == DrawingTool.NONE:
            self.cancel()
            return self.tool

        self.cancel()
        self._set_tool(tool)
        logger.debug(f"Armed drawing tool {tool.value}")
        return self.tool

    def cancel(self) -> None:
        """The one exit path: drop the in-progress drawing and disarm"""
        session, self.session = self.session, None
        if session is not None:
            session.unsubscribe_pointer()
            session.preview.remove()
        if self.measurement:
            self._set_measurement('')
        self._set_tool(DrawingTool.NONE)

    # -- clicks --------------------------------------------------------------

    def handle_click(self, point: Optional[ChartPoint]) -> Optional[DrawnAnnotation]:
        """
        Feed a click that landed on the price surface.

        Returns:
            The committed annotation, or None if nothing was committed
        """
        if point is None or self.tool == DrawingTool.NONE:
            return None

        if self.tool == DrawingTool.HLINE:
            drawn = self._commit(HorizontalLine(point.price))
            self.cancel()
            return drawn

        if self.session is None:
            self._begin_session(point)
            return None

        tool = self.session.tool
        p1, p2 = self.session.first_point, point
        self.cancel()

        if tool == DrawingTool.FIB:
            return self._commit(FibRetracement(p1, p2))

        if p2.time < p1.time:
            p1, p2 = p2, p1
        if p2.time <= p1.time:
            logger.debug(f"Rejected {tool.value}: both anchors at time {p1.time}")
            return None

        if tool == DrawingTool.RAY:
            return self._commit(Ray(p1, p2))
        return self._commit(Trendline(p1, p2))

    def _begin_session(self, point: ChartPoint) -> None:
        preview = self.pane.create_preview(ChartStyles.PREVIEW)

        def follow(x: float, price: float, start=point):
            if self.session is None:
                return
            preview.update(start, x, price)
            self._set_measurement(measurement_text(start.price, price))

        unsubscribe = self.pane.on_pointer_move(follow)
        self.session = DrawSession(self.tool, point, preview, unsubscribe)

    # -- committing ----------------------------------------------------------

    def _next_key(self) -> str:
        self._series_ids += 1
        return f"drawing-{self._series_ids}"

    def _commit(self, annotation: Annotation) -> DrawnAnnotation:
        drawn = DrawnAnnotation(annotation)

        if isinstance(annotation, HorizontalLine):
            drawn.price_lines.append(self.pane.add_price_line(
                annotation.price, ChartStyles.HLINE, title=f"{annotation.price:.2f}", dashed=True))

        elif isinstance(annotation, FibRetracement):
            for level, price, color in annotation.levels():
                drawn.price_lines.append(self.pane.add_price_line(
                    price, color, title=f"{level * 100:.1f}%", dashed=False))

        elif isinstance(annotation, Ray):
            key = self._next_key()
            self.pane.set_series(key, SeriesSpec(
                LINE, annotation.points(self._candles()), color=ChartStyles.RAY, width=2,
                marker_times=(annotation.p1.time, annotation.p2.time)))
            drawn.series_keys.append(key)

        else:
            key = self._next_key()
            self.pane.set_series(key, SeriesSpec(
                LINE,
                [IndicatorPoint(annotation.p1.time, annotation.p1.price),
                 IndicatorPoint(annotation.p2.time, annotation.p2.price)],
                color=ChartStyles.TRENDLINE, width=1, dashed=True,
                marker_times=(annotation.p1.time, annotation.p2.time)))
            drawn.series_keys.append(key)

        self.annotations.append(drawn)
        logger.info(f"Added {type(annotation).__name__} annotation")
        return drawn

    def clear_annotations(self) -> None:
        """Cancel any drawing in progress, then remove every annotation"""
        self.cancel()
        for drawn in self.annotations:
            for handle in drawn.price_lines:
                self.pane.remove_price_line(handle)
            for key in drawn.series_keys:
                self.pane.remove_series(key)
        self.annotations = []

    def detach(self) -> None:
        """Forget the pane without touching it (the pane is being destroyed)"""
        session, self.session = self.session, None
        if session is not None:
            session.unsubscribe_pointer()
        self.tool = DrawingTool.NONE
        self.annotations = []
