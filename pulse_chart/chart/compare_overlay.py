# pulse_chart/chart/compare_overlay.py
"""
Compare overlay: a second instrument drawn on the primary pane, anchored so
its latest value sits on the primary's latest close.
"""
import logging
from typing import Optional, Sequence

from ..calculations.compare import anchor_compare_series
from ..calculations.transforms import aggregate_candles
from ..data.models import Candle, Timeframe
from ..styles.chart_styles import ChartStyles

logger = logging.getLogger(__name__)

COMPARE_SERIES = 'compare'
COMPARE_PURPOSE = 'compare'


class CompareOverlay:
    """
    Fetches the compare instrument and keeps its anchored series on the surface.

    Args:
        surface: ChartSurfaceController of the view
        fetcher: FetchCoordinator-like object (request/cancel)
        client: Feed client providing fetch_candles
    """

    def __init__(self, surface, fetcher, client):
        self.surface = surface
        self.fetcher = fetcher
        self.client = client
        self.symbol: Optional[str] = None
        self.candles: Sequence[Candle] = []

    @property
    def active(self) -> bool:
        return self.symbol is not None

    def start(self, symbol: str, timeframe: Timeframe, include_extended_hours: bool) -> None:
        symbol = (symbol or '').strip().upper()
        if not symbol:
            return
        logger.info(f"Comparing against {symbol}")
        self.symbol = symbol
        self.candles = []
        self.surface.remove_overlay(COMPARE_SERIES)
        self.refetch(timeframe, include_extended_hours)

    def refetch(self, timeframe: Timeframe, include_extended_hours: bool) -> None:
        """Fetch the compare instrument over the primary's range and interval"""
        if self.symbol is None:
            return
        symbol = self.symbol
        factor = timeframe.aggregation_factor
        self.fetcher.request(
            COMPARE_PURPOSE, self.client.fetch_candles,
            symbol, timeframe.source_range, timeframe.source_interval, include_extended_hours,
            on_result=lambda candles: self._on_candles(symbol, factor, candles),
            on_error=self._on_error,
        )

    def _on_candles(self, symbol: str, factor: int, candles: Sequence[Candle]) -> None:
        if symbol != self.symbol:
            return
        self.candles = aggregate_candles(candles, factor)
        self.recompute()

    def _on_error(self, error: Exception) -> None:
        logger.warning(f"Compare fetch for {self.symbol} failed: {error}")

    def recompute(self) -> None:
        """Replace the overlay series from the current primary and compare data"""
        self.surface.remove_overlay(COMPARE_SERIES)
        if self.symbol is None:
            return
        primary = self.surface.chart_data
        if not primary:
            return
        # np.interp would clamp out-of-span compare times onto the pane edges
        first, last = primary[0].time, primary[-1].time
        in_span = [c for c in self.candles if first <= c.time <= last]
        points = anchor_compare_series(primary, in_span)
        if points:
            self.surface.set_overlay(COMPARE_SERIES, points, color=ChartStyles.COMPARE, width=2)

    def stop(self) -> None:
        if self.symbol is not None:
            logger.info(f"Stopped comparing against {self.symbol}")
        self.fetcher.cancel(COMPARE_PURPOSE)
        self.symbol = None
        self.candles = []
        self.surface.remove_overlay(COMPARE_SERIES)
