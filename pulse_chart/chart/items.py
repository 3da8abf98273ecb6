# pulse_chart/chart/items.py
"""
pyqtgraph items for OHLC rendering
"""
import pyqtgraph as pg
from PyQt6.QtCore import QPointF, QRectF
from PyQt6.QtGui import QPainter, QPicture

from ..styles.chart_styles import ChartStyles


class CandlestickItem(pg.GraphicsObject):
    """Candles drawn at axis positions `xs`; also used for Heikin-Ashi"""

    BODY_WIDTH = 0.6

    def __init__(self, candles, xs, up_color=ChartStyles.CANDLE_UP,
                 down_color=ChartStyles.CANDLE_DOWN):
        pg.GraphicsObject.__init__(self)
        self.candles = list(candles)
        self.xs = list(xs)
        self.up_color = up_color
        self.down_color = down_color
        self.generatePicture()

    def _pen_and_brush(self, candle):
        color = self.up_color if candle.close >= candle.open else self.down_color
        return pg.mkPen(color, width=1), pg.mkBrush(color)

    def generatePicture(self):
        self.picture = QPicture()
        p = QPainter(self.picture)
        half = self.BODY_WIDTH / 2

        for x, candle in zip(self.xs, self.candles):
            pen, brush = self._pen_and_brush(candle)
            p.setPen(pen)
            p.setBrush(brush)

            # Wick
            p.drawLine(QPointF(x, candle.low), QPointF(x, candle.high))

            # Body; a flat candle still gets a hairline
            top = max(candle.open, candle.close)
            bottom = min(candle.open, candle.close)
            if top > bottom:
                p.drawRect(QRectF(x - half, bottom, self.BODY_WIDTH, top - bottom))
            else:
                p.drawLine(QPointF(x - half, bottom), QPointF(x + half, bottom))

        p.end()

    def paint(self, p, *args):
        p.drawPicture(0, 0, self.picture)

    def boundingRect(self):
        return QRectF(self.picture.boundingRect())


class OHLCBarItem(CandlestickItem):
    """Classic OHLC bars: vertical range with open tick left, close tick right"""

    def generatePicture(self):
        self.picture = QPicture()
        p = QPainter(self.picture)
        tick = self.BODY_WIDTH / 2

        for x, candle in zip(self.xs, self.candles):
            pen, _ = self._pen_and_brush(candle)
            p.setPen(pen)
            p.drawLine(QPointF(x, candle.low), QPointF(x, candle.high))
            p.drawLine(QPointF(x - tick, candle.open), QPointF(x, candle.open))
            p.drawLine(QPointF(x, candle.close), QPointF(x + tick, candle.close))

        p.end()


class TimeAxisItem(pg.AxisItem):
    """Bottom axis that labels bar indices with their timestamps"""

    def __init__(self, time_axis=None, **kwargs):
        super().__init__(orientation='bottom', **kwargs)
        self.time_axis = time_axis

    def set_time_axis(self, time_axis):
        self.time_axis = time_axis
        self.picture = None
        self.update()

    def tickStrings(self, values, scale, spacing):
        if self.time_axis is None:
            return ['' for _ in values]
        return self.time_axis.labels_for(values)
