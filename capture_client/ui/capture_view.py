"""
Live preview widget.

Shows the shared stream stretched to the widget, draws the selection
rubber band, and forwards mouse drags to the capture pipeline. It is the
pipeline's VideoSink: its size is the display size used for scaling.
"""

import logging
from typing import Optional, Tuple

from PIL.ImageQt import ImageQt
from PySide6.QtCore import Qt, QTimer, QRectF, Signal
from PySide6.QtGui import QColor, QPainter, QPen, QPixmap
from PySide6.QtWidgets import QWidget

from ..utils.capture_pipeline import CapturePipeline
from ..utils.geometry import Bounds, Point, SelectionRect

logger = logging.getLogger(__name__)


class CaptureView(QWidget):
    """Preview of the shared screen with drag-to-select."""

    selection_changed = Signal()
    detached = Signal()

    def __init__(self, frame_interval_ms: int = 100, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.pipeline: Optional[CapturePipeline] = None
        self._stream = None
        self._pixmap: Optional[QPixmap] = None

        self.setMinimumSize(480, 270)
        self.setMouseTracking(False)
        self.setCursor(Qt.CrossCursor)

        self._timer = QTimer(self)
        self._timer.setInterval(frame_interval_ms)
        self._timer.timeout.connect(self._refresh_frame)

    # -- VideoSink --------------------------------------------------------

    def attach(self, stream) -> None:
        self._stream = stream
        self._refresh_frame()
        self._timer.start()

    def detach(self) -> None:
        self._timer.stop()
        self._stream = None
        self._pixmap = None
        self.update()
        self.detached.emit()

    @property
    def display_size(self) -> Tuple[float, float]:
        return float(self.width()), float(self.height())

    # -- rendering --------------------------------------------------------

    def _refresh_frame(self):
        stream = self._stream
        if stream is None:
            return
        image = stream.read_frame()
        if image is None:
            # Ended; the pipeline's ended callback detaches us
            return
        self._pixmap = QPixmap.fromImage(ImageQt(image))
        self.update()

    def _bounds(self) -> Bounds:
        # Mouse events arrive in widget coordinates, so the box starts at 0,0
        return Bounds(0, 0, self.width(), self.height())

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#111827"))

        if self._pixmap is None:
            painter.setPen(QColor("#9ca3af"))
            painter.drawText(self.rect(), Qt.AlignCenter, "Not sharing")
            return

        painter.drawPixmap(self.rect(), self._pixmap)

        rect = None
        if self.pipeline is not None:
            rect = self.pipeline.drag_rect or self.pipeline.selection
        if rect is not None:
            self._draw_selection(painter, rect)

    def _draw_selection(self, painter: QPainter, rect: SelectionRect):
        pen = QPen(QColor("#3b82f6"))
        pen.setWidth(2)
        painter.setPen(pen)
        painter.setBrush(QColor(59, 130, 246, 40))
        painter.drawRect(QRectF(rect.x, rect.y, rect.width, rect.height))

    # -- mouse ------------------------------------------------------------

    def mousePressEvent(self, event):
        if self.pipeline is None or event.button() != Qt.LeftButton:
            return
        pos = event.position()
        if self.pipeline.begin_selection(Point(pos.x(), pos.y()), self._bounds()):
            self.update()

    def mouseMoveEvent(self, event):
        if self.pipeline is None:
            return
        pos = event.position()
        if self.pipeline.update_selection(Point(pos.x(), pos.y()), self._bounds()):
            self.update()

    def mouseReleaseEvent(self, event):
        if self.pipeline is None or event.button() != Qt.LeftButton:
            return
        self.pipeline.end_selection()
        self.update()
        self.selection_changed.emit()
