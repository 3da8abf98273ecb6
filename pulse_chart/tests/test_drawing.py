# pulse_chart/tests/test_drawing.py
"""
Module: Drawing tool tests
Purpose: Arm/cancel state machine, annotation commit rules, ray extension
"""
import pytest

from pulse_chart.chart.drawing import (
    DrawingToolController, DrawingTool, DrawState, Ray, FibRetracement,
    FIB_LEVELS, measurement_text,
)
from pulse_chart.data.models import ChartPoint
from pulse_chart.styles.chart_styles import ChartStyles
from pulse_chart.tests.conftest import FakePricePane, make_candles


@pytest.fixture
def pane():
    return FakePricePane()


@pytest.fixture
def chart_candles():
    return make_candles([100.0] * 6, start=1000, step=1000)


@pytest.fixture
def controller(pane, chart_candles):
    return DrawingToolController(pane, lambda: chart_candles)


class TestArming:

    def test_idle_by_default(self, controller):
        assert controller.state == DrawState.IDLE

    def test_states(self, controller):
        controller.arm('hline')
        assert controller.state == DrawState.ARMED_SINGLE_CLICK
        controller.arm('trendline')
        assert controller.state == DrawState.ARMED_AWAITING_FIRST_POINT
        controller.handle_click(ChartPoint(1000, 10.0))
        assert controller.state == DrawState.ARMED_AWAITING_SECOND_POINT

    def test_rearming_same_tool_disarms(self, controller):
        """Test arming the active tool a second time returns to idle"""
        controller.arm(DrawingTool.RAY)
        assert controller.arm(DrawingTool.RAY) == DrawingTool.NONE
        assert controller.state == DrawState.IDLE

    def test_switching_tool_cancels_preview(self, controller, pane):
        """Test arming a different tool tears down the in-progress drawing"""
        controller.arm('fib')
        controller.handle_click(ChartPoint(1000, 10.0))
        preview = pane.previews[0]

        controller.arm('trendline')
        assert preview.removed
        assert pane.pointer_listeners == []
        assert controller.state == DrawState.ARMED_AWAITING_FIRST_POINT

    def test_tool_listener(self, controller):
        changes = []
        controller.on_tool_changed(changes.append)
        controller.arm('hline')
        controller.cancel()
        assert changes == [DrawingTool.HLINE, DrawingTool.NONE]

    def test_click_while_idle_ignored(self, controller, pane):
        assert controller.handle_click(ChartPoint(1000, 10.0)) is None
        assert pane.price_lines == []


class TestHorizontalLine:

    def test_commits_and_returns_to_idle(self, controller, pane):
        """Test one click draws a titled dashed line then disarms"""
        controller.arm('hline')
        drawn = controller.handle_click(ChartPoint(2000, 123.456))

        assert drawn is not None
        assert controller.state == DrawState.IDLE
        assert len(pane.price_lines) == 1
        line = pane.price_lines[0]
        assert line.price == 123.456
        assert line.title == '123.46'
        assert line.dashed
        assert line.color == ChartStyles.HLINE


class TestTwoClickTools:

    def test_fib_levels(self, controller, pane):
        """Test a fib from 100 to 120 commits seven solid level lines"""
        controller.arm('fib')
        controller.handle_click(ChartPoint(1000, 100.0))
        controller.handle_click(ChartPoint(2000, 120.0))

        assert len(pane.price_lines) == 7
        prices = [line.price for line in pane.price_lines]
        assert prices == pytest.approx([120 - 20 * level for level in FIB_LEVELS])
        assert [line.title for line in pane.price_lines] == [
            '0.0%', '23.6%', '38.2%', '50.0%', '61.8%', '78.6%', '100.0%']
        assert not any(line.dashed for line in pane.price_lines)
        assert controller.state == DrawState.IDLE

    def test_fib_allows_same_time(self, controller, pane):
        controller.arm('fib')
        controller.handle_click(ChartPoint(1000, 100.0))
        controller.handle_click(ChartPoint(1000, 90.0))
        assert len(pane.price_lines) == 7

    def test_trendline_same_time_rejected(self, controller, pane):
        """Test equal anchor times commit nothing but still end the drawing"""
        controller.arm('trendline')
        controller.handle_click(ChartPoint(3000, 100.0))
        assert controller.handle_click(ChartPoint(3000, 110.0)) is None

        assert pane.series == {}
        assert controller.state == DrawState.IDLE
        assert pane.previews[0].removed

    def test_trendline_anchors_sorted(self, controller, pane):
        """Test anchors clicked right-to-left are stored oldest first"""
        controller.arm('trendline')
        controller.handle_click(ChartPoint(4000, 104.0))
        drawn = controller.handle_click(ChartPoint(2000, 102.0))

        assert drawn.annotation.p1 == ChartPoint(2000, 102.0)
        spec = pane.series[drawn.series_keys[0]]
        assert [p.time for p in spec.points] == [2000, 4000]
        assert spec.dashed

    def test_ray_extends_on_candle_times(self, controller, pane, chart_candles):
        """Test ray extension points sit exactly on later candle timestamps"""
        controller.arm('ray')
        controller.handle_click(ChartPoint(1000, 100.0))
        drawn = controller.handle_click(ChartPoint(2000, 110.0))

        spec = pane.series[drawn.series_keys[0]]
        times = [p.time for p in spec.points]
        assert times == [c.time for c in chart_candles]
        assert spec.points[-1].value == pytest.approx(100.0 + 10.0 * 5)
        assert spec.color == ChartStyles.RAY

    def test_ray_at_last_candle_has_no_extension(self, chart_candles):
        ray = Ray(ChartPoint(5000, 100.0), ChartPoint(6000, 101.0))
        assert len(ray.points(chart_candles)) == 2

    def test_preview_follows_pointer(self, controller, pane):
        """Test pointer moves update the preview and the measurement"""
        texts = []
        controller.on_measurement(texts.append)
        controller.arm('trendline')
        controller.handle_click(ChartPoint(1000, 100.0))
        pane.move_pointer(3.0, 110.0)

        assert pane.previews[0].updates[-1][1:] == (3.0, 110.0)
        assert texts[-1] == '+10.00% ($+10.00)'

        controller.cancel()
        assert texts[-1] == ''


class TestClearAnnotations:

    def test_clear_removes_everything(self, controller, pane):
        controller.arm('hline')
        controller.handle_click(ChartPoint(1000, 101.0))
        controller.arm('trendline')
        controller.handle_click(ChartPoint(1000, 100.0))
        controller.handle_click(ChartPoint(3000, 105.0))
        controller.arm('ray')
        controller.handle_click(ChartPoint(1000, 100.0))

        controller.clear_annotations()

        assert pane.price_lines == []
        assert pane.series == {}
        assert pane.previews[-1].removed
        assert controller.annotations == []
        assert controller.state == DrawState.IDLE


def test_measurement_text_negative():
    assert measurement_text(200.0, 190.0) == '-5.00% ($-10.00)'


def test_fib_levels_descend_from_high():
    fib = FibRetracement(ChartPoint(1, 120.0), ChartPoint(2, 100.0))
    assert [price for _, price, _ in fib.levels()][0] == 120.0
    assert [price for _, price, _ in fib.levels()][-1] == 100.0
