# pulse_chart/tests/test_surface.py
"""
Module: Chart surface controller tests
Purpose: Pane lifecycle, range sync across toggles, view reset, rendering
"""
from unittest.mock import patch

import pytest

from pulse_chart.chart.surface import (
    ChartSurfaceController, ChartType, PaneState, MAIN_PANE, RSI_PANE, MACD_PANE,
    PRICE_SERIES, RIGHT_PADDING_BARS,
)
from pulse_chart.chart.panes import CANDLE, OHLC, LINE, AREA
from pulse_chart.data.models import Timeframe
from pulse_chart.data.timeframes import MINUTE_TIMEFRAMES, RANGE_TIMEFRAMES
from pulse_chart.tests.conftest import fake_pane_factory, make_candles

FIVE_MIN = MINUTE_TIMEFRAMES[2]


@pytest.fixture
def surface():
    return ChartSurfaceController(pane_factory=fake_pane_factory, forward_bars=10)


@pytest.fixture
def loaded(surface):
    data = make_candles([100 + (i % 11) * 0.4 for i in range(200)], step=300)
    surface.load(data, 'AAPL', FIVE_MIN)
    return surface


class TestPaneLifecycle:

    def test_starts_with_main_only(self, surface):
        assert list(surface.panes) == [MAIN_PANE]
        assert surface.pane_state == PaneState.NO_INDICATOR_PANES

    def test_toggle_walks_pane_states(self, loaded):
        """Test RSI then MACD then both off move through all pane states"""
        assert loaded.toggle_indicator('rsi') is True
        assert loaded.pane_state == PaneState.ONE_INDICATOR_PANE
        assert loaded.toggle_indicator('macd') is True
        assert loaded.pane_state == PaneState.TWO_INDICATOR_PANES

        loaded.toggle_indicator('rsi')
        loaded.toggle_indicator('macd')
        assert loaded.pane_state == PaneState.NO_INDICATOR_PANES

    def test_indicator_pane_toggle_keeps_main(self, loaded):
        """Test toggling RSI and MACD never recreates the main pane or its range"""
        main = loaded.main_pane
        price_spec = main.series[PRICE_SERIES]
        loaded.main_pane.user_pan(120.0, 190.0)
        calls_before = main.set_range_calls

        loaded.toggle_indicator('rsi')
        loaded.toggle_indicator('macd')
        loaded.toggle_indicator('rsi')
        loaded.toggle_indicator('macd')

        assert loaded.main_pane is main
        assert not main.destroyed
        assert main.series[PRICE_SERIES] is price_spec
        assert main.range == (120.0, 190.0)
        assert main.set_range_calls == calls_before

    def test_short_series_toggle_round_trip(self, surface):
        """Test a 30-bar 5m AAPL chart survives RSI, MACD, then both off unchanged"""
        data = make_candles([190 + (i % 7) * 0.3 for i in range(30)], step=300)
        surface.load(data, 'AAPL', FIVE_MIN)
        main = surface.main_pane
        price_spec = main.series[PRICE_SERIES]
        assert main.range == (-0.5, 29.5)

        surface.toggle_indicator('rsi')
        surface.toggle_indicator('macd')

        assert len(surface.panes[RSI_PANE].series['rsi'].points) == 16
        macd_pane = surface.panes[MACD_PANE]
        assert list(macd_pane.series['macd'].points) == []
        assert list(macd_pane.series['macd_hist'].points) == []
        assert macd_pane.range == (-0.5, 29.5)

        surface.toggle_indicator('rsi')
        surface.toggle_indicator('macd')

        assert surface.pane_state == PaneState.NO_INDICATOR_PANES
        assert surface.main_pane is main
        assert main.series[PRICE_SERIES] is price_spec
        assert list(main.series[PRICE_SERIES].points) == data
        assert main.range == (-0.5, 29.5)

    def test_new_pane_seeded_from_main(self, loaded):
        """Test an indicator pane opens at the main pane's range"""
        loaded.main_pane.user_pan(40.0, 90.0)
        loaded.toggle_indicator('macd')
        assert loaded.panes[MACD_PANE].range == (40.0, 90.0)

    def test_panes_stay_in_sync(self, loaded):
        loaded.toggle_indicator('rsi')
        loaded.toggle_indicator('macd')
        loaded.panes[RSI_PANE].user_pan(10.0, 60.0)

        assert all(p.range == (10.0, 60.0) for p in loaded.panes.values())
        assert loaded.sync.propagation_count == 1

    def test_destroyed_pane_is_detached(self, loaded):
        loaded.toggle_indicator('rsi')
        rsi = loaded.panes[RSI_PANE]
        loaded.toggle_indicator('rsi')

        assert rsi.destroyed
        assert rsi.range_listener_count == 0
        assert RSI_PANE not in loaded.sync.pane_names

    def test_only_bottom_pane_shows_axis(self, loaded):
        loaded.toggle_indicator('macd')
        assert not loaded.main_pane.axis_visible
        assert loaded.panes[MACD_PANE].axis_visible

        loaded.toggle_indicator('rsi')
        assert not loaded.panes[RSI_PANE].axis_visible
        assert loaded.panes[MACD_PANE].axis_visible

        loaded.toggle_indicator('macd')
        assert loaded.panes[RSI_PANE].axis_visible

    def test_pane_listener(self, loaded):
        events = []
        loaded.add_pane_listener(lambda event, name, pane: events.append((event, name)))
        loaded.toggle_indicator('rsi')
        loaded.toggle_indicator('rsi')
        assert events == [('added', RSI_PANE), ('removed', RSI_PANE)]

    def test_unknown_indicator(self, surface):
        with pytest.raises(ValueError):
            surface.toggle_indicator('bollinger')


class TestViewReset:

    def test_long_series_shows_recent_bars(self, loaded):
        """Test a long series opens on the last visible_bar_count bars plus padding"""
        n = len(loaded.chart_data)
        expected = (float(n - FIVE_MIN.visible_bar_count), float(n + RIGHT_PADDING_BARS))
        assert loaded.main_pane.range == expected

    def test_short_series_fits(self, surface):
        surface.load(make_candles([1.0, 2.0, 3.0]), 'AAPL', FIVE_MIN)
        assert surface.main_pane.range == (-0.5, 2.5)

    def test_reset_once_per_symbol_and_timeframe(self, loaded):
        """Test a poll refresh keeps the user's pan, a timeframe change resets"""
        loaded.main_pane.user_pan(5.0, 50.0)
        data = make_candles([100 + i * 0.1 for i in range(210)], step=300)

        loaded.load(data, 'AAPL', FIVE_MIN)
        assert loaded.main_pane.range == (5.0, 50.0)

        loaded.load(data, 'AAPL', MINUTE_TIMEFRAMES[3])
        assert loaded.main_pane.range != (5.0, 50.0)


class TestRendering:

    def test_aggregation_applied(self, surface):
        """Test 2h frames draw one candle per two hourly candles"""
        two_hour = MINUTE_TIMEFRAMES[6]
        surface.load(make_candles([float(i) for i in range(1, 11)], step=3600), 'AAPL', two_hour)
        assert len(surface.chart_data) == 5
        assert len(surface.main_pane.series[PRICE_SERIES].points) == 5

    def test_forward_projection(self, surface):
        data = make_candles([1.0, 2.0, 3.0], step=300)
        surface.load(data, 'AAPL', FIVE_MIN, project_forward=True)

        assert surface.time_axis.data_length == 3
        assert len(surface.time_axis) == 13
        assert int(surface.time_axis.times[3]) == data[-1].time + 300

    def test_no_projection_for_daily(self, surface):
        surface.load(make_candles([1.0, 2.0], step=86400), 'AAPL', RANGE_TIMEFRAMES[0],
                     project_forward=True)
        assert len(surface.time_axis) == 2

    def test_chart_types(self, loaded):
        """Test each chart type swaps the primary series style"""
        styles = {
            ChartType.CANDLE: CANDLE,
            ChartType.BAR: OHLC,
            ChartType.LINE: LINE,
            ChartType.AREA: AREA,
            ChartType.HEIKIN_ASHI: CANDLE,
        }
        for chart_type in (ChartType.LINE, ChartType.AREA, ChartType.BAR,
                           ChartType.HEIKIN_ASHI, ChartType.CANDLE):
            assert loaded.set_chart_type(chart_type) is True
            assert loaded.main_pane.series[PRICE_SERIES].style == styles[chart_type]

        assert loaded.set_chart_type('candle') is False

    def test_overlay_indicators(self, loaded):
        loaded.toggle_indicator('ema')
        loaded.toggle_indicator('vwap')
        assert {'ema9', 'ema21', 'vwap'} <= set(loaded.main_pane.series)

        loaded.toggle_indicator('ema')
        assert 'ema9' not in loaded.main_pane.series
        assert 'vwap' in loaded.main_pane.series

    def test_indicator_panes_render(self, loaded):
        loaded.toggle_indicator('rsi')
        loaded.toggle_indicator('macd')

        rsi = loaded.panes[RSI_PANE]
        assert len(rsi.series['rsi'].points) == len(loaded.chart_data) - 14
        assert [line.price for line in rsi.price_lines] == [70, 30]
        assert {'macd', 'macd_signal', 'macd_hist'} <= set(loaded.panes[MACD_PANE].series)

    def test_candle_at(self, loaded):
        assert loaded.candle_at(3.2) == loaded.chart_data[3]
        assert loaded.candle_at(10_000) == loaded.chart_data[-1]

    def test_heikin_ashi_cached_per_load(self, loaded):
        """Test pointer readouts reuse one Heikin-Ashi series until the next load"""
        loaded.set_chart_type(ChartType.HEIKIN_ASHI)
        drawn = loaded.main_pane.series[PRICE_SERIES].points

        with patch('pulse_chart.chart.surface.to_heikin_ashi') as convert:
            for x in range(50):
                assert loaded.candle_at(float(x)) is drawn[x]
            convert.assert_not_called()

        data = make_candles([50 + i * 0.1 for i in range(40)], step=300)
        loaded.load(data, 'AAPL', FIVE_MIN)
        assert loaded.candle_at(0.0).close == pytest.approx(
            (data[0].open + data[0].high + data[0].low + data[0].close) / 4)

    def test_session_regions(self, surface):
        stamps_start = 1718200800 - 3 * 3600  # 07:00 New York
        data = make_candles([float(i) for i in range(1, 6)], start=stamps_start, step=3600)
        one_hour = Timeframe('1h', '2y', '1h', 0, 40)
        surface.load(data, 'AAPL', one_hour, shade_sessions=True)

        assert surface.main_pane.regions
        assert surface.main_pane.regions[0].session == 'pre'


class TestClose:

    def test_close_destroys_everything(self, loaded):
        loaded.toggle_indicator('rsi')
        panes = list(loaded.panes.values())
        loaded.close()

        assert loaded.closed
        assert loaded.panes == {}
        assert all(p.destroyed for p in panes)
        assert loaded.sync.pane_names == []

    def test_load_after_close_ignored(self, loaded):
        loaded.close()
        loaded.load(make_candles([1.0, 2.0]), 'MSFT', FIVE_MIN)
        assert loaded.symbol == 'AAPL'
