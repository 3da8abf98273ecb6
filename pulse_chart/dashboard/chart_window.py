# pulse_chart/dashboard/chart_window.py
"""
Chart window
Hosts the panes of one ChartSession and the controls that drive it:
timeframes, chart type, indicators, drawing tools, compare picker and snapshot.
"""
import logging
from typing import Dict, Optional

from PyQt6.QtCore import Qt, QEvent, QPoint, QRect, QSize, QStringListModel, QTimer
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QComboBox,
    QButtonGroup, QLineEdit, QCompleter, QSplitter, QRubberBand, QFrame,
)

from ..config import ChartConfig, get_config
from ..data.timeframes import TimeframeKind, minute_timeframes_for, RANGE_TIMEFRAMES
from ..chart.drawing import DrawingTool
from ..chart.session import ChartSession
from ..chart.snapshot import SelectionRect
from ..chart.surface import ChartType, PANE_ORDER, MAIN_PANE
from ..styles.base_styles import BaseStyles
from ..styles.chart_styles import ChartStyles

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_MS = 150
STATUS_CLEAR_MS = 2500

CHART_TYPE_LABELS = [
    ("Candles", ChartType.CANDLE),
    ("Line", ChartType.LINE),
    ("Area", ChartType.AREA),
    ("Bars", ChartType.BAR),
    ("Heikin-Ashi", ChartType.HEIKIN_ASHI),
]

INDICATOR_LABELS = [("EMA", 'ema'), ("VWAP", 'vwap'), ("RSI", 'rsi'), ("MACD", 'macd')]

TOOL_LABELS = [
    ("H-Line", DrawingTool.HLINE),
    ("Trend", DrawingTool.TRENDLINE),
    ("Ray", DrawingTool.RAY),
    ("Fib", DrawingTool.FIB),
]


class ChartWindow(QWidget):
    """
    Full chart view for one symbol.

    Escape backs out one level at a time: snip mode, then an armed drawing
    tool, then the window itself. Keys 1..N pick the N-th minute timeframe.
    """

    def __init__(self, symbol: str, session: Optional[ChartSession] = None,
                 config: Optional[ChartConfig] = None, parent=None):
        super().__init__(parent)
        self.config = config or get_config()
        self.session = session or ChartSession(symbol, config=self.config, parent=self)
        self.symbol = self.session.symbol

        self._tf_buttons: Dict[tuple, QPushButton] = {}
        self._tool_buttons: Dict[str, QPushButton] = {}
        self._indicator_buttons: Dict[str, QPushButton] = {}
        self._pane_widgets: Dict[str, QWidget] = {}

        self._snip_origin: Optional[QPoint] = None
        self._rubber_band: Optional[QRubberBand] = None

        self.search_timer = QTimer(self)
        self.search_timer.setSingleShot(True)
        self.search_timer.setInterval(SEARCH_DEBOUNCE_MS)
        self.search_timer.timeout.connect(self._run_search)

        self.init_ui()
        self.connect_session()
        self.setWindowTitle(f"{self.symbol} - PulseChart")
        self.session.open()

    # -- layout --------------------------------------------------------------

    def init_ui(self):
        self.setObjectName("chart_window")
        self.setStyleSheet(ChartStyles.get_stylesheet())

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        layout.addWidget(self.create_header())
        layout.addWidget(self.create_timeframe_bar())
        layout.addWidget(self.create_tool_bar())

        self.splitter = QSplitter(Qt.Orientation.Vertical)
        self.splitter.setChildrenCollapsible(False)
        layout.addWidget(self.splitter, 1)

        surface = self.session.surface
        surface.add_pane_listener(self._on_pane_event)
        for name in PANE_ORDER:
            if name in surface.panes:
                self._on_pane_event('added', name, surface.panes[name])

        main_widget = surface.main_pane.widget
        main_widget.viewport().installEventFilter(self)
        surface.main_pane.on_pointer_move(self._update_readout)

    def create_header(self) -> QWidget:
        header = QWidget()
        row = QHBoxLayout(header)
        row.setContentsMargins(8, 4, 8, 4)

        self.header_label = QLabel(self.symbol)
        self.header_label.setObjectName("chart_header")
        row.addWidget(self.header_label)

        self.change_label = QLabel("")
        row.addWidget(self.change_label)

        self.stale_badge = QLabel("STALE")
        self.stale_badge.setObjectName("stale_badge")
        self.stale_badge.setToolTip("Last refresh failed; showing previous data")
        self.stale_badge.hide()
        row.addWidget(self.stale_badge)

        row.addStretch()

        self.ohlc_label = QLabel("")
        self.ohlc_label.setObjectName("ohlc_label")
        row.addWidget(self.ohlc_label)

        self.measure_label = QLabel("")
        self.measure_label.setObjectName("measure_label")
        row.addWidget(self.measure_label)

        self.status_label = QLabel("")
        self.status_label.setObjectName("measure_label")
        row.addWidget(self.status_label)
        return header

    def create_timeframe_bar(self) -> QWidget:
        bar = QWidget()
        bar.setObjectName("chart_toolbar")
        row = QHBoxLayout(bar)
        row.setContentsMargins(6, 2, 6, 2)
        row.setSpacing(2)

        self.tf_group = QButtonGroup(self)
        self.tf_group.setExclusive(True)

        for index, timeframe in enumerate(minute_timeframes_for(self.symbol)):
            row.addWidget(self._timeframe_button(timeframe.label, TimeframeKind.MINUTE, index))

        divider = QFrame()
        divider.setFrameShape(QFrame.Shape.VLine)
        divider.setStyleSheet(f"color: {BaseStyles.BORDER_LIGHT};")
        row.addWidget(divider)

        for index, timeframe in enumerate(RANGE_TIMEFRAMES):
            row.addWidget(self._timeframe_button(timeframe.label, TimeframeKind.RANGE, index))

        row.addStretch()
        return bar

    def _timeframe_button(self, label: str, kind: TimeframeKind, index: int) -> QPushButton:
        button = QPushButton(label)
        button.setCheckable(True)
        button.clicked.connect(lambda _, i=index, k=kind: self.session.select_timeframe(i, k))
        self.tf_group.addButton(button)
        self._tf_buttons[(kind.value, index)] = button
        return button

    def create_tool_bar(self) -> QWidget:
        bar = QWidget()
        bar.setObjectName("chart_toolbar")
        row = QHBoxLayout(bar)
        row.setContentsMargins(6, 2, 6, 2)
        row.setSpacing(2)

        self.chart_type_combo = QComboBox()
        for label, chart_type in CHART_TYPE_LABELS:
            self.chart_type_combo.addItem(label, chart_type.value)
        self.chart_type_combo.currentIndexChanged.connect(self.on_chart_type_changed)
        row.addWidget(self.chart_type_combo)

        for label, name in INDICATOR_LABELS:
            button = QPushButton(label)
            button.setCheckable(True)
            button.clicked.connect(lambda _, n=name: self.on_indicator_toggled(n))
            self._indicator_buttons[name] = button
            row.addWidget(button)

        row.addSpacing(12)

        for label, tool in TOOL_LABELS:
            button = QPushButton(label)
            button.setCheckable(True)
            button.clicked.connect(lambda _, t=tool: self.session.arm_drawing_tool(t))
            self._tool_buttons[tool.value] = button
            row.addWidget(button)

        clear_btn = QPushButton("Clear")
        clear_btn.clicked.connect(self.session.clear_annotations)
        row.addWidget(clear_btn)

        row.addSpacing(12)

        self.compare_input = QLineEdit()
        self.compare_input.setObjectName("compare_input")
        self.compare_input.setPlaceholderText("Compare symbol...")
        self.compare_input.setMaximumWidth(160)
        self.compare_model = QStringListModel(self)
        completer = QCompleter(self.compare_model, self)
        completer.setCaseSensitivity(Qt.CaseSensitivity.CaseInsensitive)
        completer.activated[str].connect(self._on_compare_chosen)
        self.compare_input.setCompleter(completer)
        self.compare_input.textEdited.connect(lambda _: self.search_timer.start())
        self.compare_input.returnPressed.connect(
            lambda: self._on_compare_chosen(self.compare_input.text()))
        row.addWidget(self.compare_input)

        stop_compare_btn = QPushButton("x")
        stop_compare_btn.setToolTip("Stop comparing")
        stop_compare_btn.clicked.connect(self.on_stop_compare)
        row.addWidget(stop_compare_btn)

        row.addStretch()

        self.snapshot_btn = QPushButton("Snapshot")
        self.snapshot_btn.setCheckable(True)
        self.snapshot_btn.clicked.connect(self.on_snapshot_clicked)
        row.addWidget(self.snapshot_btn)
        return bar

    def connect_session(self):
        self.session.timeframe_changed.connect(self.on_timeframe_changed)
        self.session.stale_changed.connect(self.stale_badge.setVisible)
        self.session.quote_loaded.connect(lambda _: self.update_change_label())
        self.session.data_loaded.connect(lambda _: self.update_change_label())
        self.session.measurement_changed.connect(self.measure_label.setText)
        self.session.drawing_tool_changed.connect(self.on_drawing_tool_changed)
        self.session.snapshot_mode_changed.connect(self.on_snapshot_mode_changed)
        self.session.snapshot_finished.connect(self.on_snapshot_finished)

    # -- panes ---------------------------------------------------------------

    def _on_pane_event(self, event: str, name: str, pane):
        if event == 'added':
            position = sum(1 for other in PANE_ORDER[:PANE_ORDER.index(name)]
                           if other in self._pane_widgets)
            self.splitter.insertWidget(position, pane.widget)
            self.splitter.setStretchFactor(position, 3 if name == MAIN_PANE else 1)
            self._pane_widgets[name] = pane.widget
        else:
            widget = self._pane_widgets.pop(name, None)
            if widget is not None:
                widget.hide()

    # -- session reactions ---------------------------------------------------

    def on_timeframe_changed(self, kind: str, index: int):
        button = self._tf_buttons.get((kind, index))
        if button is not None:
            button.setChecked(True)

    def on_chart_type_changed(self, combo_index: int):
        chart_type = self.chart_type_combo.itemData(combo_index)
        self.session.set_chart_type(chart_type)

    def on_indicator_toggled(self, name: str):
        enabled = self.session.toggle_indicator(name)
        self._indicator_buttons[name].setChecked(enabled)

    def on_drawing_tool_changed(self, tool: str):
        for value, button in self._tool_buttons.items():
            button.setChecked(value == tool)
        if tool == DrawingTool.NONE.value:
            self.measure_label.setText("")

    def update_change_label(self):
        change = self.session.live_change()
        if change is None:
            self.change_label.setText("")
            return
        amount, pct = change
        color = ChartStyles.CANDLE_UP if amount >= 0 else ChartStyles.CANDLE_DOWN
        sign = '+' if amount >= 0 else ''
        latest = self.session.surface.chart_data[-1].close
        self.change_label.setText(f"{latest:.2f}  {sign}{amount:.2f} ({sign}{pct:.2f}%)")
        self.change_label.setStyleSheet(f"color: {color};")

    def _update_readout(self, x: float, price: float):
        candle = self.session.surface.candle_at(x)
        if candle is None:
            self.ohlc_label.setText("")
            return
        self.ohlc_label.setText(
            f"O {candle.open:.2f}  H {candle.high:.2f}  L {candle.low:.2f}  "
            f"C {candle.close:.2f}  V {candle.volume:,}")

    # -- compare -------------------------------------------------------------

    def _run_search(self):
        self.session.search_instruments(self.compare_input.text(), self._on_search_results)

    def _on_search_results(self, matches):
        self.compare_model.setStringList([f"{m.symbol}  {m.name}" for m in matches])

    def _on_compare_chosen(self, text: str):
        symbol = (text or '').split()[0] if (text or '').split() else ''
        if not symbol:
            return
        self.search_timer.stop()
        self.compare_input.setText(symbol)
        self.session.start_compare(symbol)

    def on_stop_compare(self):
        self.compare_input.clear()
        self.session.stop_compare()

    # -- snapshot ------------------------------------------------------------

    def on_snapshot_clicked(self, checked: bool):
        if checked:
            self.session.start_snapshot()
        else:
            self.session.cancel_snapshot()

    def on_snapshot_mode_changed(self, active: bool):
        self.snapshot_btn.setChecked(active)
        viewport = self.session.surface.main_pane.widget.viewport()
        viewport.setCursor(Qt.CursorShape.CrossCursor if active else Qt.CursorShape.ArrowCursor)
        if not active and self._rubber_band is not None:
            self._rubber_band.hide()
            self._snip_origin = None

    def on_snapshot_finished(self, outcome: str):
        messages = {'copied': "Copied!", 'downloaded': "Downloaded!"}
        self.status_label.setText(messages.get(outcome, "Snapshot failed"))
        QTimer.singleShot(STATUS_CLEAR_MS, lambda: self.status_label.setText(""))

    def eventFilter(self, obj, event):
        if not self.session.snapshot_mode or self.session.is_closed:
            return super().eventFilter(obj, event)

        kind = event.type()
        if kind == QEvent.Type.MouseButtonPress and event.button() == Qt.MouseButton.LeftButton:
            self._snip_origin = event.position().toPoint()
            if self._rubber_band is None:
                self._rubber_band = QRubberBand(QRubberBand.Shape.Rectangle, obj)
            self._rubber_band.setGeometry(QRect(self._snip_origin, QSize()))
            self._rubber_band.show()
            return True

        if kind == QEvent.Type.MouseMove and self._snip_origin is not None:
            current = self._clamped(obj, event.position().toPoint())
            self._rubber_band.setGeometry(QRect(self._snip_origin, current).normalized())
            return True

        if kind == QEvent.Type.MouseButtonRelease and self._snip_origin is not None:
            end = self._clamped(obj, event.position().toPoint())
            origin, self._snip_origin = self._snip_origin, None
            self._rubber_band.hide()
            self.session.finish_snapshot(SelectionRect(origin.x(), origin.y(), end.x(), end.y()))
            return True

        if kind in (QEvent.Type.MouseButtonPress, QEvent.Type.MouseButtonRelease,
                    QEvent.Type.MouseMove, QEvent.Type.Wheel):
            return True
        return super().eventFilter(obj, event)

    @staticmethod
    def _clamped(widget, point: QPoint) -> QPoint:
        return QPoint(max(0, min(widget.width(), point.x())),
                      max(0, min(widget.height(), point.y())))

    # -- keyboard and teardown -----------------------------------------------

    def keyPressEvent(self, event):
        key = event.key()
        if key == Qt.Key.Key_Escape.value:
            if self.session.snapshot_mode:
                self.session.cancel_snapshot()
            elif self.session.drawing.tool != DrawingTool.NONE:
                self.session.arm_drawing_tool(DrawingTool.NONE)
            else:
                self.close()
            return

        if Qt.Key.Key_1.value <= key <= Qt.Key.Key_9.value and not self.compare_input.hasFocus():
            index = key - Qt.Key.Key_1.value
            if index < len(minute_timeframes_for(self.symbol)):
                self.session.select_timeframe(index, TimeframeKind.MINUTE)
                return

        super().keyPressEvent(event)

    def closeEvent(self, event):
        self.search_timer.stop()
        self.session.close()
        super().closeEvent(event)
