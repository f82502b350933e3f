"""
Interactive crop canvas and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the background ``ImageLoaderThread`` / ``ImageFetchThread``
and the ``CropCanvas`` widget that shows a rendered preview and forwards
pointer input to a ``CropEditor``.
"""

import logging
from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QEvent, QPointF, QRectF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QColor, QEventPoint, QImage, QMouseEvent, QPainter, QPaintEvent, QPixmap,
    QResizeEvent, QTouchEvent,
)

from family_crop.config import MOUSE_POINTER_ID
from family_crop.editor import CropEditor
from family_crop.errors import CropError
from family_crop.render import CURSOR_GRAB, CURSOR_GRABBING, RenderFrame
from family_crop.upload import UploadClient

logger = logging.getLogger(__name__)


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgb = pil_img.convert("RGBA")
    data = img_rgb.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgb.width, img_rgb.height, QImage.Format.Format_RGBA8888)
    # QImage does not own *data*; copy before it goes out of scope
    return QPixmap.fromImage(qimg.copy())


def pixmap_from_bytes(data: bytes) -> QPixmap | None:
    pixmap = QPixmap()
    if not pixmap.loadFromData(data):
        return None
    return pixmap


_CURSORS = {
    CURSOR_GRAB: Qt.CursorShape.OpenHandCursor,
    CURSOR_GRABBING: Qt.CursorShape.ClosedHandCursor,
}


# =============================================================================
# Background loaders
# =============================================================================

class ImageLoaderThread(QThread):
    """Decodes a chosen file off the UI thread (large PSDs can take a while)."""
    loaded = pyqtSignal(object, object)  # PIL image, Path
    error = pyqtSignal(str)

    def __init__(self, editor: CropEditor, path: Path, parent=None):
        super().__init__(parent)
        self._editor = editor
        self._path = path

    def run(self):
        try:
            image = self._editor.decode(self._path)
        except CropError as e:
            self.error.emit(str(e))
            return
        except Exception as e:
            logger.exception("Decoding %s failed", self._path)
            self.error.emit(f"Could not open {self._path.name}: {e}")
            return
        self.loaded.emit(image, self._path)


class ImageFetchThread(QThread):
    """Downloads an uploaded image so the page can show it."""
    loaded = pyqtSignal(bytes)
    error = pyqtSignal(str)

    def __init__(self, client: UploadClient, url: str, parent=None):
        super().__init__(parent)
        self._client = client
        self._url = url

    def run(self):
        try:
            data = self._client.fetch(self._url)
        except CropError as e:
            self.error.emit(str(e))
            return
        except Exception as e:
            logger.exception("Fetching %s failed", self._url)
            self.error.emit(f"Could not load {self._url}: {e}")
            return
        self.loaded.emit(data)


# =============================================================================
# Crop canvas: shows the rendered preview and forwards drags
# =============================================================================

class CropCanvas(QWidget):
    """Letterboxed view of the preview canvas that pans the image on drag."""

    def __init__(self, editor: CropEditor, parent=None):
        super().__init__(parent)
        self.setMinimumSize(320, 200)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)

        self._editor = editor
        self._pixmap: QPixmap | None = None
        self._preview_w = editor.preset.preview_w
        self._preview_h = editor.preset.preview_h

        # Display mapping (preview pixels → widget pixels)
        self._scale = 1.0
        self._offset_x = 0.0
        self._offset_y = 0.0
        self._update_display_mapping()

    def set_frame(self, frame: RenderFrame):
        """Show a freshly rendered frame (called by the editor after every change)."""
        self._pixmap = pil_to_qpixmap(frame.image)
        self.setCursor(_CURSORS.get(frame.cursor, Qt.CursorShape.ArrowCursor))
        self.update()

    # --- Coordinate mapping ---

    def _update_display_mapping(self):
        """Calculate scale and offset to fit the preview in the widget with letterboxing."""
        ww, wh = self.width(), self.height()
        self._scale = min(ww / self._preview_w, wh / self._preview_h)
        disp_w = self._preview_w * self._scale
        disp_h = self._preview_h * self._scale
        self._offset_x = (ww - disp_w) / 2
        self._offset_y = (wh - disp_h) / 2

    def to_preview(self, pos: QPointF) -> tuple[float, float]:
        if self._scale == 0:
            return 0.0, 0.0
        return (pos.x() - self._offset_x) / self._scale, (pos.y() - self._offset_y) / self._scale

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))
        if self._pixmap is not None:
            dest = QRectF(
                self._offset_x, self._offset_y,
                self._preview_w * self._scale, self._preview_h * self._scale,
            )
            painter.drawPixmap(dest.toRect(), self._pixmap)
        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self._update_display_mapping()
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton:
            return
        x, y = self.to_preview(event.position())
        self._editor.on_drag_start(MOUSE_POINTER_ID, x, y)

    def mouseMoveEvent(self, event: QMouseEvent):
        x, y = self.to_preview(event.position())
        self._editor.on_drag_move(MOUSE_POINTER_ID, x, y)

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self._editor.on_drag_end(MOUSE_POINTER_ID)

    # --- Touch interaction (each touch point carries its own id) ---

    def event(self, event: QEvent) -> bool:
        etype = event.type()
        if etype == QEvent.Type.TouchCancel:
            self._editor.on_drag_cancel()
            return True
        if etype in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate, QEvent.Type.TouchEnd):
            self._handle_touch(event)
            return True
        return super().event(event)

    def _handle_touch(self, event: QTouchEvent):
        for point in event.points():
            pointer_id = point.id() + 1  # keep clear of the mouse id
            x, y = self.to_preview(point.position())
            state = point.state()
            if state == QEventPoint.State.Pressed:
                self._editor.on_drag_start(pointer_id, x, y)
            elif state == QEventPoint.State.Updated:
                self._editor.on_drag_move(pointer_id, x, y)
            elif state == QEventPoint.State.Released:
                self._editor.on_drag_end(pointer_id)
        event.accept()
