# pulse_chart/styles/chart_styles.py
"""
Styles for the chart workstation
"""

from .base_styles import BaseStyles


class ChartStyles:

    # Chart color scheme
    CHART_BACKGROUND = BaseStyles.BACKGROUND_PRIMARY
    CHART_GRID = "#1e1e2a"
    CHART_TEXT = "#9598a1"

    # Primary series
    CANDLE_UP = "#00d66b"
    CANDLE_DOWN = "#ff2952"
    LINE_COLOR = "#00e5ff"
    AREA_FILL = (0, 229, 255, 40)

    # Indicator overlays
    EMA_FAST = "#f5c842"
    EMA_SLOW = "#7b68ee"
    VWAP = "#ff6d00"
    RSI = "#9c27b0"
    RSI_GUIDE = "#555566"
    MACD_LINE = "#2962ff"
    MACD_SIGNAL = "#ff6d00"
    HIST_POSITIVE = "#00c85380"
    HIST_NEGATIVE = "#ff174480"
    COMPARE = "#00bcd4"

    # Session shading (pre / post market)
    SESSION_PRE = (66, 165, 245, 18)
    SESSION_POST = (255, 167, 38, 18)

    # Drawing tools
    HLINE = "#ffeb3b"
    TRENDLINE = "#ffeb3b"
    RAY = "#42a5f5"
    PREVIEW = "#ffeb3b"
    FIB_COLORS = ('#787b86', '#f44336', '#ff9800', '#ffeb3b', '#4caf50', '#00bcd4', '#787b86')

    # Snapshot footer
    BRANDED_BG = "#12121a"
    BRANDED_TEXT = "#e0e0e0"
    BRANDED_DIM = "#888888"

    @staticmethod
    def get_stylesheet():
        return f"""
        /* Chart window */
        QWidget#chart_window {{
            background-color: {BaseStyles.BACKGROUND_PRIMARY};
            color: {BaseStyles.TEXT_PRIMARY};
            font-family: {BaseStyles.FONT_FAMILY};
            font-size: {BaseStyles.FONT_SIZE_NORMAL};
        }}

        /* Header */
        QLabel#chart_header {{
            font-size: {BaseStyles.FONT_SIZE_LARGE};
            font-weight: bold;
            padding: 6px 10px;
        }}

        QLabel#stale_badge {{
            color: {BaseStyles.WARNING};
            font-size: {BaseStyles.FONT_SIZE_SMALL};
            padding: 2px 6px;
            border: 1px solid {BaseStyles.WARNING};
            border-radius: 3px;
        }}

        QLabel#measure_label, QLabel#ohlc_label {{
            color: {BaseStyles.TEXT_SECONDARY};
            font-size: {BaseStyles.FONT_SIZE_SMALL};
        }}

        /* Toolbar */
        QWidget#chart_toolbar {{
            background-color: {BaseStyles.BACKGROUND_SECONDARY};
            border-bottom: 1px solid {BaseStyles.BORDER_COLOR};
        }}

        QWidget#chart_toolbar QPushButton {{
            background-color: transparent;
            color: {BaseStyles.TEXT_SECONDARY};
            border: 1px solid transparent;
            border-radius: 3px;
            padding: 3px 8px;
        }}

        QWidget#chart_toolbar QPushButton:hover {{
            border-color: {BaseStyles.BORDER_LIGHT};
        }}

        QWidget#chart_toolbar QPushButton:checked {{
            color: {BaseStyles.ACCENT_PRIMARY};
            border-color: {BaseStyles.ACCENT_PRESSED};
        }}

        QLineEdit#compare_input {{
            background-color: {BaseStyles.BACKGROUND_TERTIARY};
            color: {BaseStyles.TEXT_PRIMARY};
            border: 1px solid {BaseStyles.BORDER_COLOR};
            border-radius: 3px;
            padding: 2px 6px;
        }}
        """
