"""
Main application window.

Admin front end for the family site: opens the crop dialog for a family
profile photo, the landing background and a blog cover, uploads inline
blog images as-is, and shows what the server stored.
"""

import logging
import time
from pathlib import Path

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QPushButton,
    QLabel, QFileDialog, QGroupBox, QMessageBox, QStatusBar, QToolBar,
    QSpinBox, QLineEdit, QPlainTextEdit, QApplication,
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal
from PyQt6.QtGui import QAction, QBrush, QColor, QFont, QPainter, QPixmap

from family_crop.config import (
    BLOG_IMAGE_ENDPOINT, PRESET_BLOG_COVER, PRESET_LANDING, PRESET_PROFILE,
    SAFE_EXTENSIONS,
)
from family_crop.crop_dialog import CropDialog
from family_crop.crop_widget import ImageFetchThread, pixmap_from_bytes
from family_crop.errors import CropError
from family_crop.media import (
    SignedUrlCache, is_storage_ref, normalize_html_for_storage,
    resolve_html_image_sources,
)
from family_crop.models import UploadResult, get_preset
from family_crop.settings import Settings, load_settings, save_settings
from family_crop.settings_dialog import SettingsDialog
from family_crop.upload import UploadClient

logger = logging.getLogger(__name__)

_AVATAR_SIZE = 96
_PREVIEW_W = 320
_PREVIEW_H = 180


def _no_signer(bucket: str, object_path: str, expires_in: int | None) -> str:
    # No storage credentials on the desktop; only URLs primed from upload replies resolve
    return ""


def cache_busted(url: str) -> str:
    """Append ``t=<ms>`` so a replaced image is not served from cache."""
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}t={int(time.time() * 1000)}"


def initial_pixmap(name: str, size: int = _AVATAR_SIZE) -> QPixmap:
    """Round placeholder avatar showing the first letter of *name*."""
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(58, 110, 165))
    painter.drawEllipse(0, 0, size, size)
    font = QFont()
    font.setPixelSize(int(size * 0.45))
    font.setBold(True)
    painter.setFont(font)
    painter.setPen(QColor(255, 255, 255))
    letter = (name.strip()[:1] or "?").upper()
    painter.drawText(pixmap.rect(), Qt.AlignmentFlag.AlignCenter, letter)
    painter.end()
    return pixmap


class FileUploadThread(QThread):
    """Uploads an unmodified image file (inline blog images)."""
    succeeded = pyqtSignal(object)  # UploadResult
    failed = pyqtSignal(str)

    def __init__(self, client: UploadClient, path: Path, parent=None):
        super().__init__(parent)
        self._client = client
        self._path = path

    def run(self):
        try:
            result = self._client.upload_file(self._path, BLOG_IMAGE_ENDPOINT, "Image upload failed.")
        except CropError as e:
            self.failed.emit(str(e))
            return
        except Exception as e:
            logger.exception("Uploading %s failed", self._path)
            self.failed.emit(f"Image upload failed. ({e})")
            return
        self.succeeded.emit(result)


class MainWindow(QMainWindow):
    def __init__(self, settings: Settings | None = None):
        super().__init__()
        self.setWindowTitle("Family Photo Crop")
        self.setMinimumSize(900, 560)

        self._settings = settings if settings is not None else load_settings()
        self._client = self._make_client(self._settings)
        self._url_cache = SignedUrlCache(_no_signer)
        self._dialogs: dict[str, CropDialog] = {}
        self._threads: set[QThread] = set()

        self._build_ui()

    # =========================================================================
    # Client / settings
    # =========================================================================

    @staticmethod
    def _make_client(settings: Settings) -> UploadClient:
        return UploadClient(
            settings.base_url,
            timeout=settings.timeout,
            cookie_name=settings.session_cookie_name,
            cookie_value=settings.session_cookie,
        )

    def _open_settings(self):
        dlg = SettingsDialog(self._settings, self)
        if dlg.exec() != SettingsDialog.DialogCode.Accepted:
            return
        new_settings = dlg.get_settings()
        try:
            save_settings(new_settings)
        except (ValueError, OSError) as e:
            QMessageBox.warning(self, "Settings", f"Could not save settings:\n{e}")
            return
        self._settings = new_settings
        self._client = self._make_client(new_settings)
        for dialog in self._dialogs.values():
            dialog.set_client(self._client)
        self._status.showMessage(f"Server: {new_settings.base_url}")

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        grid = QGridLayout(central)
        grid.setContentsMargins(8, 8, 8, 8)
        grid.addWidget(self._build_profile_group(), 0, 0)
        grid.addWidget(self._build_landing_group(), 0, 1)
        grid.addWidget(self._build_blog_group(), 1, 0, 1, 2)
        grid.setRowStretch(1, 1)

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage(f"Server: {self._settings.base_url}")

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_settings = QAction("⚙ Settings", self)
        act_settings.triggered.connect(self._open_settings)
        toolbar.addAction(act_settings)

        toolbar.addSeparator()

        act_copy = QAction("📋 Copy storage HTML", self)
        act_copy.setToolTip("Copy the post body with storage references restored")
        act_copy.triggered.connect(self._copy_storage_html)
        toolbar.addAction(act_copy)

    def _build_profile_group(self) -> QGroupBox:
        group = QGroupBox("Family profile")
        layout = QHBoxLayout(group)

        self._avatar = QLabel()
        self._avatar.setFixedSize(_AVATAR_SIZE, _AVATAR_SIZE)
        self._avatar.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._avatar)

        fields = QVBoxLayout()
        id_row = QHBoxLayout()
        id_row.addWidget(QLabel("Profile id:"))
        self._profile_id = QSpinBox()
        self._profile_id.setRange(1, 999999)
        id_row.addWidget(self._profile_id)
        fields.addLayout(id_row)

        self._profile_name = QLineEdit()
        self._profile_name.setPlaceholderText("Name")
        self._profile_name.textChanged.connect(self._reset_avatar)
        fields.addWidget(self._profile_name)

        btn = QPushButton("Change photo…")
        btn.clicked.connect(self._edit_profile_photo)
        fields.addWidget(btn)
        fields.addStretch()
        layout.addLayout(fields, stretch=1)

        self._reset_avatar()
        return group

    def _build_landing_group(self) -> QGroupBox:
        group = QGroupBox("Landing background")
        layout = QVBoxLayout(group)
        self._landing_preview = self._make_preview_label()
        layout.addWidget(self._landing_preview)
        btn = QPushButton("Change background…")
        btn.clicked.connect(self._edit_landing_background)
        layout.addWidget(btn)
        return group

    def _build_blog_group(self) -> QGroupBox:
        group = QGroupBox("Blog post")
        layout = QHBoxLayout(group)

        cover_col = QVBoxLayout()
        cover_col.addWidget(QLabel("Cover image:"))
        self._cover_ref = QLineEdit()
        self._cover_ref.setPlaceholderText("Stored cover reference")
        self._cover_ref.editingFinished.connect(
            lambda: self._show_preview(self._cover_preview, self._cover_ref.text())
        )
        cover_col.addWidget(self._cover_ref)
        self._cover_preview = self._make_preview_label()
        cover_col.addWidget(self._cover_preview)
        btn_cover = QPushButton("Choose cover…")
        btn_cover.clicked.connect(self._edit_blog_cover)
        cover_col.addWidget(btn_cover)
        cover_col.addStretch()
        layout.addLayout(cover_col)

        body_col = QVBoxLayout()
        body_col.addWidget(QLabel("Body (HTML):"))
        self._html = QPlainTextEdit()
        body_col.addWidget(self._html, stretch=1)
        self._btn_insert = QPushButton("Insert image…")
        self._btn_insert.clicked.connect(self._insert_inline_image)
        body_col.addWidget(self._btn_insert)
        layout.addLayout(body_col, stretch=1)
        return group

    @staticmethod
    def _make_preview_label() -> QLabel:
        label = QLabel("No image")
        label.setFixedSize(_PREVIEW_W, _PREVIEW_H)
        label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        label.setStyleSheet("QLabel { background: #1e1e1e; border: 1px solid #444; }")
        return label

    # =========================================================================
    # Crop dialogs
    # =========================================================================

    def _dialog_for(self, preset_name: str, on_uploaded, **params) -> CropDialog:
        """One dialog per preset, created on first use and retargeted per profile id."""
        preset = get_preset(preset_name, **params)
        dialog = self._dialogs.get(preset_name)
        if dialog is None:
            dialog = CropDialog(preset, self._client, self)
            dialog.uploaded.connect(on_uploaded)
            self._dialogs[preset_name] = dialog
        else:
            dialog.set_preset(preset)
        return dialog

    def _edit_profile_photo(self):
        profile_id = self._profile_id.value()
        name = self._profile_name.text().strip()
        dialog = self._dialog_for(PRESET_PROFILE, self._on_profile_uploaded, profile_id=profile_id)
        dialog.open_for(
            title=f"Profile photo: {name}" if name else None,
            profile_id=profile_id, name=name,
        )

    def _edit_landing_background(self):
        dialog = self._dialog_for(PRESET_LANDING, self._on_landing_uploaded)
        dialog.open_for()

    def _edit_blog_cover(self):
        dialog = self._dialog_for(PRESET_BLOG_COVER, self._on_cover_uploaded)
        dialog.open_for()

    def _remember(self, result: UploadResult):
        self._url_cache.prime(result.reference, result.display_url)

    def _on_profile_uploaded(self, result: UploadResult, context: dict):
        self._remember(result)
        logger.info("Profile %s photo updated", context.get("profile_id"))
        self._status.showMessage(f"Profile photo saved: {result.reference}")
        if context.get("profile_id") == self._profile_id.value():
            self._show_preview(self._avatar, result.display_url, rounded=True)

    def _on_landing_uploaded(self, result: UploadResult, _context: dict):
        self._remember(result)
        self._status.showMessage(f"Landing background saved: {result.reference}")
        self._show_preview(self._landing_preview, result.display_url)

    def _on_cover_uploaded(self, result: UploadResult, _context: dict):
        self._remember(result)
        self._cover_ref.setText(result.reference)
        self._status.showMessage(f"Cover saved: {result.reference}")
        self._show_preview(self._cover_preview, result.display_url)

    # =========================================================================
    # Inline blog images
    # =========================================================================

    def _insert_inline_image(self):
        patterns = " ".join(f"*{ext}" for ext in SAFE_EXTENSIONS)
        path_str, _ = QFileDialog.getOpenFileName(self, "Insert Image", "", f"Images ({patterns})")
        if not path_str:
            return
        self._btn_insert.setEnabled(False)
        self._status.showMessage(f"Uploading {Path(path_str).name}…")
        thread = FileUploadThread(self._client, Path(path_str), self)
        thread.succeeded.connect(self._on_inline_uploaded)
        thread.failed.connect(self._on_inline_failed)
        self._start(thread)

    def _on_inline_uploaded(self, result: UploadResult):
        self._btn_insert.setEnabled(True)
        self._remember(result)
        tag = f'<img src="{result.display_url}" alt="">'
        if is_storage_ref(result.reference):
            tag = f'<img src="{result.display_url}" data-media-ref="{result.reference}" alt="">'
        self._html.insertPlainText(tag)
        self._status.showMessage(f"Image inserted: {result.reference}")

    def _on_inline_failed(self, error: str):
        self._btn_insert.setEnabled(True)
        self._status.showMessage("Image upload failed.")
        QMessageBox.warning(self, "Insert Image", error)

    def _copy_storage_html(self):
        stored = normalize_html_for_storage(self._html.toPlainText())
        QApplication.clipboard().setText(stored)
        self._status.showMessage("Storage HTML copied to clipboard.")

    def set_post_html(self, stored_html: str):
        """Load stored post HTML into the editor in its display form."""
        self._html.setPlainText(
            resolve_html_image_sources(stored_html, self._url_cache, with_data_ref=True)
        )

    # =========================================================================
    # Previews
    # =========================================================================

    def _reset_avatar(self):
        self._avatar.setPixmap(initial_pixmap(self._profile_name.text()))

    def _show_preview(self, label: QLabel, url: str, rounded: bool = False):
        url = url.strip()
        if not url:
            return
        if is_storage_ref(url):
            url = self._url_cache.resolve(url)
            if not url:
                label.setText("Preview unavailable")
                return

        thread = ImageFetchThread(self._client, cache_busted(url), self)
        thread.loaded.connect(lambda data: self._on_preview_loaded(label, data, rounded))
        thread.error.connect(lambda err: self._on_preview_error(label, err))
        self._start(thread)

    def _on_preview_loaded(self, label: QLabel, data: bytes, rounded: bool):
        pixmap = pixmap_from_bytes(data)
        if pixmap is None:
            label.setText("Preview unavailable")
            return
        scaled = pixmap.scaled(
            label.size(),
            Qt.AspectRatioMode.KeepAspectRatioByExpanding if rounded else Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        )
        if rounded:
            scaled = self._round(scaled, label.width())
        label.setPixmap(scaled)

    def _on_preview_error(self, label: QLabel, error: str):
        logger.warning("Preview failed: %s", error)
        if label is self._avatar:
            self._reset_avatar()
        else:
            label.setText("Preview unavailable")

    @staticmethod
    def _round(pixmap: QPixmap, size: int) -> QPixmap:
        out = QPixmap(size, size)
        out.fill(Qt.GlobalColor.transparent)
        painter = QPainter(out)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        x = max(0, (pixmap.width() - size) // 2)
        y = max(0, (pixmap.height() - size) // 2)
        painter.setBrush(QBrush(pixmap.copy(x, y, size, size)))
        painter.setPen(Qt.PenStyle.NoPen)
        painter.drawEllipse(0, 0, size, size)
        painter.end()
        return out

    # =========================================================================
    # Thread bookkeeping
    # =========================================================================

    def _start(self, thread: QThread):
        self._threads.add(thread)
        thread.finished.connect(lambda: self._threads.discard(thread))
        thread.start()

    def closeEvent(self, event):
        """Wait briefly for in-flight requests before closing."""
        for thread in list(self._threads):
            thread.wait(2000)
        super().closeEvent(event)
