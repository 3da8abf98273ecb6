# pulse_chart/chart/surface.py
"""
Module: Chart surface controller
Purpose: Own the main, RSI and MACD panes and everything drawn on them
Features:
    - Derives the drawn series (aggregation, chart type, indicators) from raw candles
    - Creates/destroys RSI and MACD panes on toggle; main pane is permanent
    - Keeps every pane's visible range identical via PaneSynchronizer
    - One-time view reset per (symbol, timeframe label)
    - Forward axis projection and extended-session shading for intraday stocks
"""
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import FORWARD_PROJECTION_BARS
from ..data.models import Candle, IndicatorPoint, Timeframe
from ..data.timeframes import INTERVAL_SECONDS, is_intraday
from ..calculations.transforms import aggregate_candles, to_heikin_ashi, project_forward_timestamps
from ..calculations.indicators import calc_ema, calc_rsi, calc_macd, calc_vwap
from ..calculations.sessions import extended_session_spans
from ..styles.chart_styles import ChartStyles
from .panes import SeriesSpec, CANDLE, OHLC, LINE, AREA, HISTOGRAM, create_pane
from .sync import PaneSynchronizer
from .time_axis import TimeAxis

logger = logging.getLogger(__name__)

MAIN_PANE = 'main'
RSI_PANE = 'rsi'
MACD_PANE = 'macd'
PANE_ORDER = (MAIN_PANE, RSI_PANE, MACD_PANE)

INDICATORS = ('ema', 'vwap', RSI_PANE, MACD_PANE)
PANE_INDICATORS = (RSI_PANE, MACD_PANE)

EMA_FAST_PERIOD = 9
EMA_SLOW_PERIOD = 21
RSI_PERIOD = 14
RSI_GUIDES = (70, 30)
RIGHT_PADDING_BARS = 20

PRICE_SERIES = 'price'


class ChartType(str, Enum):
    CANDLE = 'candle'
    LINE = 'line'
    AREA = 'area'
    BAR = 'bar'
    HEIKIN_ASHI = 'heikinAshi'


class PaneState(Enum):
    NO_INDICATOR_PANES = 0
    ONE_INDICATOR_PANE = 1
    TWO_INDICATOR_PANES = 2


class ChartSurfaceController:
    """
    Owns the panes of one chart view.

    Args:
        pane_factory: Callable(name) -> pane; defaults to pyqtgraph panes
        forward_bars: How many projected timestamps to append on intraday stock axes
    """

    def __init__(self, pane_factory: Optional[Callable] = None,
                 forward_bars: int = FORWARD_PROJECTION_BARS):
        self._pane_factory = pane_factory or create_pane
        self.forward_bars = forward_bars
        self.sync = PaneSynchronizer()
        self.panes: Dict[str, object] = {}
        self._pane_listeners: List[Callable[[str, str, object], None]] = []
        self._guides: Dict[str, list] = {}

        self.indicators: Dict[str, bool] = {name: False for name in INDICATORS}
        self.chart_type = ChartType.CANDLE

        self.symbol: Optional[str] = None
        self.timeframe: Optional[Timeframe] = None
        self.raw_candles: Sequence[Candle] = []
        self.chart_data: Sequence[Candle] = []
        self._heikin_ashi: Optional[List[Candle]] = None
        self.time_axis = TimeAxis()
        self._session_spans = []
        self._overlays: Dict[str, SeriesSpec] = {}
        self._view_key: Optional[Tuple[str, str]] = None
        self.closed = False

        self._create_pane(MAIN_PANE)

    # -- pane bookkeeping ----------------------------------------------------

    @property
    def main_pane(self):
        return self.panes[MAIN_PANE]

    @property
    def pane_state(self) -> PaneState:
        return PaneState(sum(1 for name in PANE_INDICATORS if name in self.panes))

    def add_pane_listener(self, callback: Callable[[str, str, object], None]) -> None:
        """callback(event, name, pane) with event 'added' or 'removed'"""
        self._pane_listeners.append(callback)

    def _notify(self, event: str, name: str, pane) -> None:
        for callback in list(self._pane_listeners):
            callback(event, name, pane)

    def _create_pane(self, name: str):
        pane = self._pane_factory(name)
        pane.set_time_axis(self.time_axis)
        pane.set_session_regions(self._session_spans)
        self.panes[name] = pane

        seed = self.main_pane.visible_range() if name != MAIN_PANE else None
        self.sync.attach(name, pane, seed_range=seed)

        if name == RSI_PANE:
            self._render_rsi()
        elif name == MACD_PANE:
            self._render_macd()
        self._update_axis_visibility()
        logger.debug(f"Created pane {name} ({self.pane_state.name})")
        self._notify('added', name, pane)
        return pane

    def _destroy_pane(self, name: str) -> None:
        pane = self.panes.pop(name, None)
        if pane is None:
            return
        self.sync.detach(name)
        self._guides.pop(name, None)
        self._notify('removed', name, pane)
        pane.destroy()
        self._update_axis_visibility()
        logger.debug(f"Destroyed pane {name} ({self.pane_state.name})")

    def _update_axis_visibility(self) -> None:
        present = [name for name in PANE_ORDER if name in self.panes]
        for name in present:
            self.panes[name].show_time_axis(name == present[-1])

    # -- data ----------------------------------------------------------------

    def load(self, raw_candles: Sequence[Candle], symbol: str, timeframe: Timeframe,
             project_forward: bool = False, shade_sessions: bool = False) -> None:
        """
        Replace the drawn data with a new candle series.

        Args:
            raw_candles: Ordered candles as fetched
            symbol: Instrument shown
            timeframe: Active timeframe (drives aggregation and view reset)
            project_forward: Extend the axis past the last candle
            shade_sessions: Shade pre/post-market spans
        """
        if self.closed:
            return

        self.symbol = symbol
        self.timeframe = timeframe
        self.raw_candles = raw_candles
        self.chart_data = aggregate_candles(raw_candles, timeframe.aggregation_factor)
        self._heikin_ashi = None

        forward = []
        interval = INTERVAL_SECONDS.get(timeframe.source_interval)
        if project_forward and self.chart_data and interval:
            forward = project_forward_timestamps(
                self.chart_data[-1].time,
                interval * max(1, timeframe.aggregation_factor),
                self.forward_bars,
            )

        self.time_axis = TimeAxis([c.time for c in self.chart_data], forward,
                                  intraday=is_intraday(timeframe))
        self._session_spans = extended_session_spans(self.time_axis.times) if shade_sessions else []

        for pane in self.panes.values():
            pane.set_time_axis(self.time_axis)
            pane.set_session_regions(self._session_spans)

        self._render_main()
        self._render_rsi()
        self._render_macd()
        self._reset_view_once()

    def _reset_view_once(self) -> None:
        if not self.chart_data or self.timeframe is None:
            return
        key = (self.symbol, self.timeframe.label)
        if key == self._view_key:
            return
        self._view_key = key

        n = len(self.chart_data)
        visible = self.timeframe.visible_bar_count
        if visible and n > visible:
            view_range = (float(n - visible), float(n + RIGHT_PADDING_BARS))
        else:
            view_range = (-0.5, n - 0.5)
        self.sync.apply(view_range)
        logger.debug(f"View reset for {key}: {view_range}")

    def visible_range(self) -> Tuple[float, float]:
        return self.main_pane.visible_range()

    def _heikin_ashi_candles(self) -> List[Candle]:
        # Cached until the next load
        if self._heikin_ashi is None:
            self._heikin_ashi = to_heikin_ashi(self.chart_data)
        return self._heikin_ashi

    @property
    def displayed_candles(self) -> Sequence[Candle]:
        if self.chart_type == ChartType.HEIKIN_ASHI:
            return self._heikin_ashi_candles()
        return self.chart_data

    def candle_at(self, x: float) -> Optional[Candle]:
        index = self.time_axis.nearest_index(x)
        if index is None or index >= len(self.chart_data):
            return None
        return self.displayed_candles[index]

    # -- rendering -----------------------------------------------------------

    def _price_spec(self) -> SeriesSpec:
        data = self.chart_data
        if self.chart_type == ChartType.CANDLE:
            return SeriesSpec(CANDLE, data)
        if self.chart_type == ChartType.BAR:
            return SeriesSpec(OHLC, data)
        if self.chart_type == ChartType.HEIKIN_ASHI:
            return SeriesSpec(CANDLE, self._heikin_ashi_candles())
        closes = [IndicatorPoint(c.time, c.close) for c in data]
        style = AREA if self.chart_type == ChartType.AREA else LINE
        return SeriesSpec(style, closes, color=ChartStyles.LINE_COLOR, width=2)

    def _render_main(self) -> None:
        main = self.main_pane
        main.set_series(PRICE_SERIES, self._price_spec())

        if self.indicators['ema']:
            main.set_series('ema9', SeriesSpec(LINE, calc_ema(self.chart_data, EMA_FAST_PERIOD),
                                               color=ChartStyles.EMA_FAST, width=1))
            main.set_series('ema21', SeriesSpec(LINE, calc_ema(self.chart_data, EMA_SLOW_PERIOD),
                                                color=ChartStyles.EMA_SLOW, width=1))
        else:
            main.remove_series('ema9')
            main.remove_series('ema21')

        if self.indicators['vwap']:
            main.set_series('vwap', SeriesSpec(LINE, calc_vwap(self.chart_data),
                                               color=ChartStyles.VWAP, width=1, dashed=True))
        else:
            main.remove_series('vwap')

    def _render_rsi(self) -> None:
        pane = self.panes.get(RSI_PANE)
        if pane is None:
            return
        pane.set_series('rsi', SeriesSpec(LINE, calc_rsi(self.chart_data, RSI_PERIOD),
                                          color=ChartStyles.RSI, width=1.5))
        if RSI_PANE not in self._guides:
            self._guides[RSI_PANE] = [
                pane.add_price_line(level, ChartStyles.RSI_GUIDE, dashed=True)
                for level in RSI_GUIDES
            ]

    def _render_macd(self) -> None:
        pane = self.panes.get(MACD_PANE)
        if pane is None:
            return
        result = calc_macd(self.chart_data)
        pane.set_series('macd_hist', SeriesSpec(HISTOGRAM, result.histogram))
        pane.set_series('macd', SeriesSpec(LINE, result.macd,
                                           color=ChartStyles.MACD_LINE, width=1.5))
        pane.set_series('macd_signal', SeriesSpec(LINE, result.signal,
                                                  color=ChartStyles.MACD_SIGNAL, width=1.5))

    # -- user operations -----------------------------------------------------

    def toggle_indicator(self, name: str) -> bool:
        """
        Flip an indicator. RSI/MACD create or destroy their pane.

        Returns:
            The new visibility
        Raises:
            ValueError: unknown indicator name
        """
        if name not in INDICATORS:
            raise ValueError(f"Unknown indicator: {name}")
        if self.closed:
            return self.indicators[name]

        enabled = not self.indicators[name]
        self.indicators[name] = enabled

        if name in PANE_INDICATORS:
            if enabled:
                self._create_pane(name)
            else:
                self._destroy_pane(name)
        elif not self.closed:
            self._render_main()
        return enabled

    def set_chart_type(self, chart_type) -> bool:
        """Returns True when the primary series was recreated"""
        chart_type = ChartType(chart_type)
        if chart_type == self.chart_type:
            return False
        self.chart_type = chart_type
        self._render_main()
        return True

    def set_overlay(self, key: str, points: Sequence[IndicatorPoint],
                    color: str = ChartStyles.COMPARE, width: float = 2) -> None:
        spec = SeriesSpec(LINE, list(points), color=color, width=width)
        self._overlays[key] = spec
        self.main_pane.set_series(key, spec)

    def remove_overlay(self, key: str) -> None:
        self._overlays.pop(key, None)
        if MAIN_PANE in self.panes:
            self.main_pane.remove_series(key)

    def overlay(self, key: str) -> Optional[SeriesSpec]:
        return self._overlays.get(key)

    def close(self) -> None:
        """Tear down every pane synchronously"""
        if self.closed:
            return
        self.closed = True
        self.sync.clear()
        for name in reversed(PANE_ORDER):
            pane = self.panes.pop(name, None)
            if pane is not None:
                self._notify('removed', name, pane)
                pane.destroy()
        self._guides.clear()
        self._overlays.clear()
        self._pane_listeners.clear()
