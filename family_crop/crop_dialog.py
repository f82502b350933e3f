"""
Crop-and-upload dialog.

One ``CropDialog`` class serves every call site; the ``CropPreset`` it is
built with decides canvas size, mask shape and endpoint.  The dialog only
wires Qt controls to a ``CropEditor`` and runs decode/upload on worker
threads.  Errors are shown inline and in a message box; the dialog stays
open so the user can retry.
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QPushButton, QLabel, QSlider,
    QFileDialog, QMessageBox, QWidget,
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal

from family_crop.config import (
    IMAGE_EXTENSIONS, ZOOM_DEFAULT, ZOOM_MAX, ZOOM_MIN, ZOOM_SLIDER_SCALE,
)
from family_crop.crop_widget import CropCanvas, ImageLoaderThread
from family_crop.editor import MESSAGE_ERROR, CropEditor
from family_crop.errors import CropError
from family_crop.models import CropPreset, UploadResult
from family_crop.session import CropSession
from family_crop.upload import UploadClient, UploadHints

logger = logging.getLogger(__name__)

_STYLE_ERROR = "color: #d32f2f;"
_STYLE_INFO = "color: #9ab;"


def image_file_filter() -> str:
    patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
    return f"Images ({patterns})"


# =============================================================================
# Upload worker
# =============================================================================
class UploadThread(QThread):
    """Runs the blocking HTTP upload off the UI thread."""
    succeeded = pyqtSignal(object)  # UploadResult
    failed = pyqtSignal(str)

    def __init__(self, client: UploadClient, blob: bytes, hints: UploadHints, parent=None):
        super().__init__(parent)
        self._client = client
        self._blob = blob
        self._hints = hints

    def run(self):
        try:
            result = self._client.upload(self._blob, self._hints)
        except CropError as e:
            self.failed.emit(str(e))
            return
        except Exception as e:
            logger.exception("Upload of %s failed", self._hints.filename)
            self.failed.emit(f"{self._hints.error_message} ({e})")
            return
        self.succeeded.emit(result)


# =============================================================================
# Crop dialog
# =============================================================================
class CropDialog(QDialog):
    """Pick, pan/zoom and upload one image for a preset."""

    uploaded = pyqtSignal(object, object)  # UploadResult, call-site context dict

    def __init__(self, preset: CropPreset, client: UploadClient | None, parent: QWidget | None = None):
        super().__init__(parent)
        self.setWindowTitle(preset.title)
        self.setMinimumSize(640, 520)
        self._preset = preset
        self._loader: ImageLoaderThread | None = None
        self._uploader: UploadThread | None = None

        self.editor = CropEditor(
            preset, client,
            render=self._on_render,
            message=self._show_message,
            result=self._on_result,
        )
        self._build_ui()
        self.editor.render()

    def set_client(self, client: UploadClient | None):
        self.editor.client = client

    @property
    def preset(self) -> CropPreset:
        return self._preset

    def set_preset(self, preset: CropPreset):
        """Point the dialog at another target of the same preset (same canvas size)."""
        self._preset = preset
        self.setWindowTitle(preset.title)
        self.editor.set_preset(preset)

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        layout = QVBoxLayout(self)

        self._title = QLabel(self._preset.title)
        self._title.setStyleSheet("font-weight: bold;")
        layout.addWidget(self._title)

        self._choose_btn = QPushButton("Choose image…")
        self._choose_btn.clicked.connect(self._choose_file)
        layout.addWidget(self._choose_btn)

        self._canvas = CropCanvas(self.editor)
        layout.addWidget(self._canvas, stretch=1)

        zoom_row = QHBoxLayout()
        zoom_row.addWidget(QLabel("Zoom"))
        self._zoom = QSlider(Qt.Orientation.Horizontal)
        self._zoom.setRange(int(ZOOM_MIN * ZOOM_SLIDER_SCALE), int(ZOOM_MAX * ZOOM_SLIDER_SCALE))
        self._zoom.setValue(int(ZOOM_DEFAULT * ZOOM_SLIDER_SCALE))
        self._zoom.valueChanged.connect(self._on_zoom)
        zoom_row.addWidget(self._zoom, stretch=1)
        layout.addLayout(zoom_row)

        self._message = QLabel("")
        self._message.setWordWrap(True)
        layout.addWidget(self._message)

        buttons = QHBoxLayout()
        self._reset_btn = QPushButton("Reset")
        self._reset_btn.clicked.connect(self._on_reset)
        buttons.addWidget(self._reset_btn)
        buttons.addStretch()
        self._save_btn = QPushButton("Save")
        self._save_btn.clicked.connect(self._save)
        buttons.addWidget(self._save_btn)
        self._close_btn = QPushButton("Close")
        self._close_btn.clicked.connect(self.reject)
        buttons.addWidget(self._close_btn)
        layout.addLayout(buttons)

    def _set_zoom_slider(self, zoom: float):
        self._zoom.blockSignals(True)
        self._zoom.setValue(int(round(zoom * ZOOM_SLIDER_SCALE)))
        self._zoom.blockSignals(False)

    def _set_busy(self, busy: bool):
        for widget in (self._choose_btn, self._zoom, self._reset_btn, self._save_btn):
            widget.setEnabled(not busy)

    # =========================================================================
    # Opening / closing
    # =========================================================================

    def open_for(self, title: str | None = None, **extra):
        """Reset the session and show the dialog for one call-site target."""
        self._title.setText(title or self._preset.title)
        self._message.setText("")
        self.editor.open(**extra)
        self._set_zoom_slider(ZOOM_DEFAULT)
        self._set_busy(False)
        self.open()

    def done(self, result: int):
        self._stop_loader()
        if self._uploader is not None and self._uploader.isRunning():
            # Let the request finish, but drop its outcome
            self._uploader.succeeded.disconnect()
            self._uploader.failed.disconnect()
            self._uploader = None
        self.editor.on_close()
        self._set_zoom_slider(ZOOM_DEFAULT)
        super().done(result)

    # =========================================================================
    # Editor callbacks
    # =========================================================================

    def _on_render(self, frame):
        self._canvas.set_frame(frame)

    def _show_message(self, text: str, kind: str):
        self._message.setText(text)
        self._message.setStyleSheet(_STYLE_ERROR if kind == MESSAGE_ERROR else _STYLE_INFO)
        if kind == MESSAGE_ERROR and self.isVisible():
            QMessageBox.warning(self, self._preset.title, text)

    def _on_result(self, result: UploadResult, session: CropSession):
        self.uploaded.emit(result, dict(session.extra))

    # =========================================================================
    # Controls
    # =========================================================================

    def _choose_file(self):
        path_str, _ = QFileDialog.getOpenFileName(self, "Choose Image", "", image_file_filter())
        if not path_str:
            return
        self.load_file(Path(path_str))

    def load_file(self, path: Path):
        """Decode *path* on a worker thread and install it when done."""
        logger.debug("Decoding %s for %s", path, self._preset.name)
        self._stop_loader()
        self._message.setText("Loading…")
        self._message.setStyleSheet(_STYLE_INFO)
        self._loader = ImageLoaderThread(self.editor, path, self)
        self._loader.loaded.connect(self._on_image_loaded)
        self._loader.error.connect(lambda err: self._show_message(err, MESSAGE_ERROR))
        self._loader.start()

    def _stop_loader(self):
        if self._loader is None:
            return
        try:
            self._loader.loaded.disconnect()
            self._loader.error.disconnect()
        except TypeError:
            pass
        if self._loader.isRunning():
            self._loader.wait(2000)
        self._loader = None

    def _on_image_loaded(self, image, path):
        self._message.setText("")
        self.editor.apply_decoded(image, path)
        self._set_zoom_slider(self.editor.session.zoom)

    def _on_zoom(self, value: int):
        self.editor.on_zoom_changed(value / ZOOM_SLIDER_SCALE)

    def _on_reset(self):
        self.editor.on_reset()
        self._set_zoom_slider(self.editor.session.zoom)

    def _save(self):
        if self.editor.busy or not self.editor.session.has_image():
            return
        if self.editor.client is None:
            self._show_message("Set the server address in Settings first.", MESSAGE_ERROR)
            return
        try:
            blob, hints = self.editor.prepare_upload()
        except CropError as exc:
            self.editor.fail_upload(exc)
            return
        except Exception as exc:
            logger.exception("Preparing %s upload failed", self._preset.name)
            self.editor.fail_upload(exc)
            return

        self.editor.busy = True
        self._set_busy(True)
        self._message.setText("Uploading…")
        self._message.setStyleSheet(_STYLE_INFO)
        self._uploader = UploadThread(self.editor.client, blob, hints, self)
        self._uploader.succeeded.connect(self._on_upload_done)
        self._uploader.failed.connect(self._on_upload_failed)
        self._uploader.start()

    def _on_upload_done(self, result: UploadResult):
        self._uploader = None
        self._set_busy(False)
        self._message.setText("")
        self.editor.finish_upload(result)
        self.accept()

    def _on_upload_failed(self, error: str):
        self._uploader = None
        self._set_busy(False)
        self.editor.fail_upload(CropError(error))
