# pulse_chart/chart/snapshot.py
"""
Module: Snapshot export
Purpose: Crop the main pane to a dragged rectangle and add a branded footer
Features: Raster/logical scaling, footer compositing, clipboard with file fallback
"""
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from PyQt6.QtCore import Qt, QRect
from PyQt6.QtGui import QColor, QFont, QGuiApplication, QImage, QPainter

from ..config import WATERMARK, get_config
from ..exceptions import ClipboardUnavailableError
from ..styles.chart_styles import ChartStyles

logger = logging.getLogger(__name__)

MIN_SELECTION_PX = 10
FOOTER_HEIGHT = 32
FOOTER_PADDING = 8


class SnapshotOutcome(str, Enum):
    COPIED = 'copied'
    DOWNLOADED = 'downloaded'
    FAILED = 'failed'


@dataclass(frozen=True)
class SelectionRect:
    """Drag rectangle in pane logical pixels; corners in drag order"""
    start_x: float
    start_y: float
    end_x: float
    end_y: float

    def normalized(self) -> Tuple[float, float, float, float]:
        x = min(self.start_x, self.end_x)
        y = min(self.start_y, self.end_y)
        return x, y, abs(self.end_x - self.start_x), abs(self.end_y - self.start_y)

    def is_accidental(self) -> bool:
        _, _, w, h = self.normalized()
        return w < MIN_SELECTION_PX or h < MIN_SELECTION_PX


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def scale_selection(selection: SelectionRect, raster_size: Tuple[int, int],
                    logical_size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """
    Map a logical selection onto the raster.

    Raster and logical sizes differ by the screen's device pixel ratio; each
    axis is scaled separately and rounded half-up.
    """
    x, y, w, h = selection.normalized()
    scale_x = raster_size[0] / logical_size[0] if logical_size[0] else 1.0
    scale_y = raster_size[1] / logical_size[1] if logical_size[1] else 1.0
    return (_round_half_up(x * scale_x), _round_half_up(y * scale_y),
            _round_half_up(w * scale_x), _round_half_up(h * scale_y))


def copy_to_clipboard(image: QImage) -> None:
    clipboard = QGuiApplication.clipboard()
    if clipboard is None:
        raise ClipboardUnavailableError("No system clipboard available")
    clipboard.setImage(image)


class SnapshotExporter:
    """
    Builds and delivers a snapshot.

    Args:
        clipboard_writer: Callable(QImage) that raises on failure
        download_dir: Where the fallback PNG is written
        watermark: Product name on the right of the footer
    """

    def __init__(self, clipboard_writer: Optional[Callable[[QImage], None]] = None,
                 download_dir: Optional[Union[str, Path]] = None,
                 watermark: str = WATERMARK):
        self.clipboard_writer = clipboard_writer or copy_to_clipboard
        self.download_dir = Path(download_dir) if download_dir else get_config().snapshot_dir
        self.watermark = watermark
        self.last_path: Optional[Path] = None

    def compose(self, frame: QImage, logical_size: Tuple[int, int],
                selection: SelectionRect, symbol: str, timeframe_label: str) -> QImage:
        """Crop `frame` to the selection and append the footer bar"""
        cx, cy, cw, ch = scale_selection(selection, (frame.width(), frame.height()), logical_size)
        cropped = frame.copy(QRect(cx, cy, cw, ch))

        # Footer is drawn in logical units, scaled by the frame's pixel ratio
        ratio = frame.width() / logical_size[0] if logical_size[0] else 1.0
        footer_px = _round_half_up(FOOTER_HEIGHT * ratio)

        result = QImage(cw, ch + footer_px, QImage.Format.Format_ARGB32)
        result.fill(QColor(ChartStyles.BRANDED_BG))

        painter = QPainter(result)
        try:
            painter.drawImage(0, 0, cropped)
            painter.scale(ratio, ratio)
            logical_w = cw / ratio
            logical_h = ch / ratio

            title_font = QFont()
            title_font.setPixelSize(13)
            title_font.setBold(True)
            painter.setFont(title_font)
            painter.setPen(QColor(ChartStyles.BRANDED_TEXT))
            painter.drawText(
                QRect(FOOTER_PADDING, int(logical_h), int(logical_w), FOOTER_HEIGHT),
                int(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter),
                f"{symbol}  |  {timeframe_label}")

            mark_font = QFont()
            mark_font.setPixelSize(10)
            painter.setFont(mark_font)
            painter.setPen(QColor(ChartStyles.BRANDED_DIM))
            painter.drawText(
                QRect(0, int(logical_h), int(logical_w) - FOOTER_PADDING, FOOTER_HEIGHT),
                int(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter),
                self.watermark)
        finally:
            painter.end()
        return result

    def export(self, frame: QImage, logical_size: Tuple[int, int],
               selection: SelectionRect, symbol: str,
               timeframe_label: str) -> Optional[SnapshotOutcome]:
        """
        Compose and deliver a snapshot.

        Returns:
            None for an accidental (sub-10px) selection, otherwise whether the
            image went to the clipboard, to a file, or nowhere (FAILED)
        """
        if selection.is_accidental():
            logger.debug(f"Ignoring accidental snapshot selection {selection.normalized()}")
            return None

        image = self.compose(frame, logical_size, selection, symbol, timeframe_label)

        try:
            self.clipboard_writer(image)
            logger.info(f"Snapshot of {symbol} {timeframe_label} copied to clipboard")
            return SnapshotOutcome.COPIED
        except Exception as e:
            logger.warning(f"Clipboard write failed, saving snapshot instead: {e}")

        return self._download(image, symbol, timeframe_label)

    def _save_png(self, image: QImage, path: Path) -> bool:
        return image.save(str(path), 'PNG')

    def _download(self, image: QImage, symbol: str, timeframe_label: str) -> SnapshotOutcome:
        filename = f"{symbol}-{timeframe_label}-{int(time.time() * 1000)}.png"
        path = self.download_dir / filename
        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
            saved = self._save_png(image, path)
        except OSError as e:
            logger.error(f"Could not save snapshot to {path}: {e}")
            return SnapshotOutcome.FAILED
        if not saved:
            logger.error(f"Could not write snapshot to {path}")
            return SnapshotOutcome.FAILED

        self.last_path = path
        logger.info(f"Snapshot of {symbol} {timeframe_label} saved to {path}")
        return SnapshotOutcome.DOWNLOADED
