# pulse_chart/chart/session.py
"""
Module: Chart session
Purpose: One open chart view for one symbol - wires the feed, the surface,
         drawing tools, compare overlay and snapshot export together
Features:
    - Timeframe selection with preference persistence and per-timeframe polling
    - Stale indication when a refresh fails (previous series stays on screen)
    - Header quote snapshot
    - Synchronous teardown on close
"""
import logging
from typing import Callable, Optional, Tuple

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from ..config import ChartConfig, get_config
from ..data.models import ChartPoint, QuoteSnapshot
from ..data.preferences import TimeframePreferenceStore
from ..data.rest_client import ChartRESTClient
from ..data.fetch_coordinator import FetchCoordinator
from ..data.timeframes import (
    TimeframeKind, DEFAULT_MINUTE_INDEX, is_crypto_symbol, is_intraday,
    resolve_timeframe, timeframes_for,
)
from .compare_overlay import CompareOverlay
from .drawing import DrawingToolController, DrawingTool
from .snapshot import SnapshotExporter, SnapshotOutcome, SelectionRect
from .surface import ChartSurfaceController, ChartType

logger = logging.getLogger(__name__)

CANDLES_PURPOSE = 'candles'
QUOTE_PURPOSE = 'quote'
SEARCH_PURPOSE = 'search'


class ChartSession(QObject):
    """
    Operations exposed to the chart window.

    Signals:
        data_loaded(int): candle count after a successful load
        stale_changed(bool): a refresh failed / recovered
        timeframe_changed(str, int): kind value and catalog index
        quote_loaded(object): QuoteSnapshot for the header
        measurement_changed(str): live drawing measurement text
        drawing_tool_changed(str): armed tool value, 'none' when idle
        snapshot_mode_changed(bool)
        snapshot_finished(str): 'copied', 'downloaded' or 'failed'
        closed()
    """

    data_loaded = pyqtSignal(int)
    stale_changed = pyqtSignal(bool)
    timeframe_changed = pyqtSignal(str, int)
    quote_loaded = pyqtSignal(object)
    measurement_changed = pyqtSignal(str)
    drawing_tool_changed = pyqtSignal(str)
    snapshot_mode_changed = pyqtSignal(bool)
    snapshot_finished = pyqtSignal(str)
    closed = pyqtSignal()

    def __init__(self, symbol: str, client=None, surface: Optional[ChartSurfaceController] = None,
                 fetcher=None, preferences: Optional[TimeframePreferenceStore] = None,
                 exporter: Optional[SnapshotExporter] = None,
                 config: Optional[ChartConfig] = None, parent=None):
        super().__init__(parent)
        self.symbol = symbol.strip().upper()
        self.is_crypto = is_crypto_symbol(self.symbol)
        self.config = config or get_config()

        self.client = client or ChartRESTClient(self.config)
        self.surface = surface or ChartSurfaceController(
            forward_bars=self.config.forward_projection_bars)
        self.fetcher = fetcher or FetchCoordinator(self)
        self.preferences = preferences or TimeframePreferenceStore(
            self.config.preferences_path, self.config.max_preference_entries)
        self.exporter = exporter or SnapshotExporter(download_dir=self.config.snapshot_dir)

        self.drawing = DrawingToolController(self.surface.main_pane, lambda: self.surface.chart_data)
        self.drawing.on_measurement(self.measurement_changed.emit)
        self.drawing.on_tool_changed(lambda tool: self.drawing_tool_changed.emit(tool.value))
        self._unsubscribe_click = self.surface.main_pane.on_click(self._on_surface_click)

        self.compare = CompareOverlay(self.surface, self.fetcher, self.client)

        self.poll_timer = QTimer(self)
        self.poll_timer.timeout.connect(self.refresh)

        self.timeframe = None
        self.timeframe_kind, self.timeframe_index = self._initial_timeframe()
        self.stale = False
        self.snapshot_mode = False
        self.quote: Optional[QuoteSnapshot] = None
        self.is_closed = False

    def _initial_timeframe(self) -> Tuple[TimeframeKind, int]:
        saved = self.preferences.get(self.symbol)
        if saved is not None:
            kind, index = saved
            if 0 <= index < len(timeframes_for(self.symbol, kind)):
                return kind, index
        return TimeframeKind.MINUTE, DEFAULT_MINUTE_INDEX

    @property
    def include_extended_hours(self) -> bool:
        return bool(self.timeframe and self.timeframe.include_extended_hours and not self.is_crypto)

    @property
    def session_aware(self) -> bool:
        """Intraday chart of an instrument with trading sessions"""
        return bool(self.timeframe and is_intraday(self.timeframe) and not self.is_crypto)

    def open(self) -> None:
        """Initial load: stored timeframe plus the header quote"""
        self.select_timeframe(self.timeframe_index, self.timeframe_kind, persist=False)
        self.fetcher.request(QUOTE_PURPOSE, self.client.fetch_quote_snapshot, self.symbol,
                             on_result=self._on_quote, on_error=self._on_quote_error)

    # -- timeframe and data --------------------------------------------------

    def select_timeframe(self, index: int, kind=TimeframeKind.MINUTE, persist: bool = True) -> None:
        """Switch timeframe: refetch, restart polling, remember the choice"""
        if self.is_closed:
            return
        kind = TimeframeKind(kind)
        timeframe = resolve_timeframe(self.symbol, index, kind)

        self.poll_timer.stop()
        self.drawing.clear_annotations()
        self.timeframe = timeframe
        self.timeframe_kind, self.timeframe_index = kind, index
        logger.info(f"{self.symbol}: timeframe {timeframe.label} ({kind.value} #{index})")

        if persist:
            self.preferences.save(self.symbol, kind, index)

        self._fetch_candles(bypass_cache=False)
        self.compare.refetch(timeframe, self.include_extended_hours)

        if timeframe.polls:
            self.poll_timer.start(self.config.poll_interval_ms(timeframe.poll_interval_ms))
        self.timeframe_changed.emit(kind.value, index)

    def refresh(self) -> None:
        """Poll tick: refetch the active timeframe past any cache"""
        if self.is_closed or self.timeframe is None:
            return
        self._fetch_candles(bypass_cache=True)

    def _fetch_candles(self, bypass_cache: bool) -> None:
        timeframe = self.timeframe
        self.fetcher.request(
            CANDLES_PURPOSE, self.client.fetch_candles,
            self.symbol, timeframe.source_range, timeframe.source_interval,
            self.include_extended_hours, bypass_cache=bypass_cache,
            on_result=lambda candles: self._on_candles(timeframe, candles),
            on_error=self._on_candles_error,
        )

    def _on_candles(self, timeframe, candles) -> None:
        if self.is_closed or timeframe != self.timeframe:
            return
        self.surface.load(candles, self.symbol, timeframe,
                          project_forward=self.session_aware,
                          shade_sessions=self.session_aware)
        self.compare.recompute()
        self._set_stale(False)
        self.data_loaded.emit(len(self.surface.chart_data))

    def _on_candles_error(self, error: Exception) -> None:
        if self.is_closed:
            return
        logger.warning(f"{self.symbol}: candle refresh failed, keeping previous data: {error}")
        self._set_stale(True)

    def _set_stale(self, stale: bool) -> None:
        if stale != self.stale:
            self.stale = stale
            self.stale_changed.emit(stale)

    def _on_quote(self, quote: QuoteSnapshot) -> None:
        if self.is_closed:
            return
        self.quote = quote
        self.quote_loaded.emit(quote)

    def _on_quote_error(self, error: Exception) -> None:
        logger.warning(f"{self.symbol}: quote snapshot failed: {error}")

    def live_change(self) -> Optional[Tuple[float, float]]:
        """(change, percent) of the latest close against the quote's previous close"""
        if self.quote is None or not self.surface.chart_data:
            return None
        previous_close = self.quote.previous_close
        change = self.surface.chart_data[-1].close - previous_close
        pct = change / previous_close * 100 if previous_close else 0.0
        return change, pct

    # -- view operations -----------------------------------------------------

    def toggle_indicator(self, name: str) -> bool:
        return self.surface.toggle_indicator(name)

    def set_chart_type(self, chart_type) -> bool:
        """Annotations are tied to the old primary series, so they go first"""
        chart_type = ChartType(chart_type)
        if chart_type == self.surface.chart_type:
            return False
        self.drawing.clear_annotations()
        return self.surface.set_chart_type(chart_type)

    def arm_drawing_tool(self, tool) -> DrawingTool:
        return self.drawing.arm(tool or DrawingTool.NONE)

    def clear_annotations(self) -> None:
        self.drawing.clear_annotations()

    def _on_surface_click(self, point: ChartPoint) -> None:
        if self.is_closed or self.snapshot_mode:
            return
        self.drawing.handle_click(point)

    def start_compare(self, symbol: str) -> None:
        if self.is_closed or self.timeframe is None:
            return
        self.compare.start(symbol, self.timeframe, self.include_extended_hours)

    def stop_compare(self) -> None:
        self.compare.stop()

    def search_instruments(self, query: str, callback: Callable) -> None:
        """Compare picker search; a newer query supersedes an older one"""
        if self.is_closed:
            return
        if not (query or '').strip():
            self.fetcher.cancel(SEARCH_PURPOSE)
            callback([])
            return
        self.fetcher.request(
            SEARCH_PURPOSE, self.client.search_instruments, query,
            on_result=callback,
            on_error=lambda e: logger.warning(f"Instrument search failed: {e}"),
        )

    # -- snapshot ------------------------------------------------------------

    def start_snapshot(self) -> None:
        if self.is_closed:
            return
        self.drawing.cancel()
        self.snapshot_mode = True
        self.snapshot_mode_changed.emit(True)

    def cancel_snapshot(self) -> None:
        if self.snapshot_mode:
            self.snapshot_mode = False
            self.snapshot_mode_changed.emit(False)

    def finish_snapshot(self, selection: SelectionRect) -> Optional[SnapshotOutcome]:
        """
        End snip mode with the dragged rectangle.

        Returns:
            None when snip mode was not active or the selection was accidental
        """
        if not self.snapshot_mode:
            return None
        self.cancel_snapshot()
        if selection.is_accidental() or self.timeframe is None:
            logger.debug("Snapshot selection too small, nothing exported")
            return None

        pane = self.surface.main_pane
        outcome = self.exporter.export(pane.grab_frame(), pane.logical_size(), selection,
                                       self.symbol, self.timeframe.label)
        if outcome is not None:
            self.snapshot_finished.emit(outcome.value)
        return outcome

    # -- teardown ------------------------------------------------------------

    def close(self) -> None:
        """Stop timers, abandon fetches, detach listeners and destroy panes"""
        if self.is_closed:
            return
        self.is_closed = True
        self.poll_timer.stop()
        self.fetcher.shutdown()
        self._unsubscribe_click()
        self.drawing.cancel()
        self.compare.stop()
        self.drawing.detach()
        self.surface.close()
        self.snapshot_mode = False
        logger.info(f"{self.symbol}: chart closed")
        self.closed.emit()
