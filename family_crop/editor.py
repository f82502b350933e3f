"""
Toolkit-independent crop editor.

``CropEditor`` is the one component behind all three call sites.  It owns
a ``CropSession`` and an ``InteractionController`` and exposes the event
surface a UI forwards to it::

    on_file_chosen  on_zoom_changed  on_drag_start  on_drag_move
    on_drag_end     on_drag_cancel   on_reset       on_save   on_close

Every state change re-renders synchronously through the ``render``
callback.  Failures are reported through ``message`` and never close the
editor; a successful save hands the ``UploadResult`` to ``result`` and
then clears the session.

Decode and upload are split into prepare/finish halves so a UI can run
the slow middle part on a worker thread; the ``on_*`` methods run the
whole sequence inline.
"""

import logging
from pathlib import Path
from typing import Callable

from PIL import Image

from family_crop.errors import CropError, DecodeError
from family_crop.export import encode_jpeg, export_session
from family_crop.image_io import open_image, upload_filename
from family_crop.interaction import InteractionController
from family_crop.models import CropPreset, UploadResult
from family_crop.render import RenderFrame, render_preview
from family_crop.session import CropSession
from family_crop.upload import UploadClient, UploadHints

logger = logging.getLogger(__name__)

MESSAGE_INFO = "info"
MESSAGE_ERROR = "error"


def _noop(*_args):
    pass


class CropEditor:
    def __init__(
        self,
        preset: CropPreset,
        client: UploadClient | None,
        *,
        render: Callable[[RenderFrame], None] = _noop,
        message: Callable[[str, str], None] = _noop,
        result: Callable[[UploadResult, CropSession], None] = _noop,
        encoder: Callable[[Image.Image], bytes] = encode_jpeg,
    ):
        self.preset = preset
        self.client = client
        self.session = CropSession(preset)
        self.interaction = InteractionController(self.session)
        self.encoder = encoder
        self.busy = False
        self._render_cb = render
        self._message_cb = message
        self._result_cb = result
        self.last_frame: RenderFrame | None = None

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(self) -> RenderFrame:
        frame = render_preview(self.session, dragging=self.interaction.dragging)
        self.last_frame = frame
        self._render_cb(frame)
        return frame

    def _report(self, text: str, kind: str = MESSAGE_ERROR):
        if kind == MESSAGE_ERROR:
            logger.warning("%s: %s", self.preset.title, text)
        self._message_cb(text, kind)

    # =========================================================================
    # Dialog lifecycle
    # =========================================================================

    def open(self, **extra) -> RenderFrame:
        """Start a fresh session; *extra* is call-site context (profile id, name)."""
        self.interaction.cancel()
        self.session.close()
        self.session.extra.update(extra)
        logger.info("Opened %s editor %s", self.preset.title, extra or "")
        return self.render()

    def set_preset(self, preset: CropPreset):
        """Retarget the editor (e.g. another profile id).  Drops the current session."""
        if preset == self.preset:
            return
        self.interaction.cancel()
        self.session.close()
        self.preset = preset
        self.session = CropSession(preset)
        self.interaction = InteractionController(self.session)
        self.busy = False
        self.render()

    def on_close(self):
        """Drop the drag, the decoded image and the controls.  Idempotent."""
        self.interaction.cancel()
        self.session.close()
        self.busy = False
        self.render()

    # =========================================================================
    # File selection
    # =========================================================================

    def decode(self, path: Path) -> Image.Image:
        """Decode *path* without touching the session (safe off the UI thread)."""
        return open_image(Path(path))

    def apply_decoded(self, image: Image.Image, path: Path | None = None):
        """Install a decoded image; resets zoom/pan and any stale drag."""
        self.interaction.cancel()
        self.session.load(image, path)
        self.render()

    def on_file_chosen(self, path: Path) -> bool:
        """Decode and install *path*.  On failure the previous image stays."""
        try:
            image = self.decode(path)
        except DecodeError as exc:
            self._report(str(exc))
            return False
        self.apply_decoded(image, Path(path))
        return True

    # =========================================================================
    # Controls
    # =========================================================================

    def on_zoom_changed(self, zoom: float):
        self.session.set_zoom(zoom)
        self.render()

    def on_reset(self):
        self.session.reset_controls()
        self.render()

    def on_drag_start(self, pointer_id: int, x: float, y: float) -> bool:
        changed = self.interaction.pointer_down(pointer_id, x, y)
        if changed:
            self.render()
        return changed

    def on_drag_move(self, pointer_id: int, x: float, y: float) -> bool:
        handled = self.interaction.pointer_move(pointer_id, x, y)
        if handled:
            self.render()
        return handled

    def on_drag_end(self, pointer_id: int) -> bool:
        ended = self.interaction.pointer_up(pointer_id)
        if ended:
            self.render()
        return ended

    def on_drag_cancel(self):
        self.interaction.cancel()
        self.render()

    # =========================================================================
    # Save: export + upload
    # =========================================================================

    def prepare_upload(self) -> tuple[bytes, UploadHints]:
        """Encode the output image.  Raises EncodingError; never touches the network."""
        blob = export_session(self.session, encoder=self.encoder)
        hints = UploadHints(
            endpoint=self.preset.endpoint,
            filename=upload_filename(self.preset.filename_prefix),
            error_message=self.preset.error_message,
        )
        return blob, hints

    def finish_upload(self, result: UploadResult):
        """Hand the result to the call site, then clear the session."""
        self.busy = False
        logger.info("%s saved as %s", self.preset.title, result.reference)
        self._result_cb(result, self.session)
        self.on_close()

    def fail_upload(self, error: Exception):
        """Report a failed save; the session stays intact for a retry."""
        self.busy = False
        if isinstance(error, CropError):
            self._report(str(error) or self.preset.error_message)
        else:
            self._report(f"{self.preset.error_message} ({error})")

    def on_save(self) -> UploadResult | None:
        """Encode and upload synchronously.  Returns None on failure."""
        if self.busy or not self.session.has_image():
            return None
        if self.client is None:
            self._report("No server configured.")
            return None
        self.busy = True
        try:
            blob, hints = self.prepare_upload()
            result = self.client.upload(blob, hints)
        except CropError as exc:
            self.fail_upload(exc)
            return None
        except Exception as exc:
            logger.exception("%s save failed", self.preset.title)
            self.fail_upload(exc)
            return None
        self.finish_upload(result)
        return result
