# pulse_chart/tests/test_snapshot.py
"""
Module: Snapshot export tests
Purpose: Selection scaling, accidental-drag rejection, clipboard fallback, failed saves
"""
from unittest.mock import Mock, patch

import pytest
from PyQt6.QtGui import QColor, QImage

from pulse_chart.chart.snapshot import (
    SnapshotExporter, SnapshotOutcome, SelectionRect, scale_selection, FOOTER_HEIGHT,
)
from pulse_chart.exceptions import ClipboardUnavailableError


def make_frame(width, height):
    frame = QImage(width, height, QImage.Format.Format_ARGB32)
    frame.fill(QColor('#202020'))
    return frame


class TestSelection:

    def test_normalized_from_any_corner(self):
        sel = SelectionRect(50, 40, 10, 20)
        assert sel.normalized() == (10, 20, 40, 20)

    def test_accidental(self):
        """Test drags under 10px in either direction count as accidental"""
        assert SelectionRect(0, 0, 5, 5).is_accidental()
        assert SelectionRect(0, 0, 200, 9).is_accidental()
        assert not SelectionRect(0, 0, 10, 10).is_accidental()

    def test_scale_per_axis_rounding(self):
        """Test each axis scales by its own ratio and rounds half up"""
        sel = SelectionRect(10.25, 5.25, 30.25, 25.25)
        assert scale_selection(sel, (1600, 1200), (800, 600)) == (21, 11, 40, 40)
        assert scale_selection(SelectionRect(1, 1, 12, 12), (150, 100), (100, 100)) == (2, 1, 17, 11)


class TestSnapshotExporter:

    def test_accidental_selection_exports_nothing(self, qapp, tmp_path):
        writer = Mock()
        exporter = SnapshotExporter(clipboard_writer=writer, download_dir=tmp_path)

        result = exporter.export(make_frame(800, 600), (800, 600),
                                 SelectionRect(10, 10, 15, 15), 'AAPL', '5m')

        assert result is None
        writer.assert_not_called()
        assert list(tmp_path.iterdir()) == []

    def test_copies_to_clipboard(self, qapp, tmp_path):
        writer = Mock()
        exporter = SnapshotExporter(clipboard_writer=writer, download_dir=tmp_path)

        result = exporter.export(make_frame(800, 600), (800, 600),
                                 SelectionRect(100, 100, 300, 250), 'AAPL', '5m')

        assert result == SnapshotOutcome.COPIED
        image = writer.call_args[0][0]
        assert image.width() == 200
        assert image.height() == 150 + FOOTER_HEIGHT

    def test_clipboard_failure_falls_back_to_file(self, qapp, tmp_path):
        """Test a refused clipboard write saves a PNG named after symbol and timeframe"""
        writer = Mock(side_effect=ClipboardUnavailableError("denied"))
        exporter = SnapshotExporter(clipboard_writer=writer, download_dir=tmp_path)

        result = exporter.export(make_frame(800, 600), (800, 600),
                                 SelectionRect(0, 0, 100, 100), 'MSFT', '1h')

        assert result == SnapshotOutcome.DOWNLOADED
        assert exporter.last_path.parent == tmp_path
        assert exporter.last_path.name.startswith('MSFT-1h-')
        assert exporter.last_path.suffix == '.png'
        assert exporter.last_path.exists()

    def test_high_dpi_footer_scales(self, qapp, tmp_path):
        """Test a 2x raster doubles the crop and the footer"""
        writer = Mock()
        exporter = SnapshotExporter(clipboard_writer=writer, download_dir=tmp_path)

        exporter.export(make_frame(1600, 1200), (800, 600),
                        SelectionRect(0, 0, 100, 50), 'AAPL', 'D')

        image = writer.call_args[0][0]
        assert image.width() == 200
        assert image.height() == 100 + 2 * FOOTER_HEIGHT

    def test_failed_save_reports_failure(self, qapp, tmp_path):
        """Test an unwritable PNG after a refused clipboard reports FAILED, not a phantom file"""
        writer = Mock(side_effect=ClipboardUnavailableError("denied"))
        exporter = SnapshotExporter(clipboard_writer=writer, download_dir=tmp_path)

        with patch.object(exporter, '_save_png', return_value=False):
            result = exporter.export(make_frame(800, 600), (800, 600),
                                     SelectionRect(0, 0, 100, 100), 'MSFT', '1h')

        assert result == SnapshotOutcome.FAILED
        assert exporter.last_path is None
        assert list(tmp_path.iterdir()) == []

    def test_unusable_download_dir(self, qapp, tmp_path):
        """Test a download dir that cannot be created degrades to FAILED instead of raising"""
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')
        writer = Mock(side_effect=ClipboardUnavailableError("denied"))
        exporter = SnapshotExporter(clipboard_writer=writer, download_dir=blocker / 'shots')

        result = exporter.export(make_frame(800, 600), (800, 600),
                                 SelectionRect(0, 0, 100, 100), 'MSFT', '1h')

        assert result == SnapshotOutcome.FAILED
        assert exporter.last_path is None

    def test_mkdir_error_caught(self, qapp, tmp_path):
        writer = Mock(side_effect=ClipboardUnavailableError("denied"))
        exporter = SnapshotExporter(clipboard_writer=writer, download_dir=tmp_path / 'shots')

        with patch('pathlib.Path.mkdir', side_effect=PermissionError("read-only")):
            result = exporter.export(make_frame(800, 600), (800, 600),
                                     SelectionRect(0, 0, 100, 100), 'MSFT', '1h')

        assert result == SnapshotOutcome.FAILED
