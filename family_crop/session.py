"""
Per-dialog crop state.

A ``CropSession`` owns the decoded source image plus the zoom and pan
values for one open editor.  It is created when the dialog opens, mutated
by drag and zoom events, and released on save, cancel or close.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

from family_crop.config import ZOOM_DEFAULT, ZOOM_MAX, ZOOM_MIN
from family_crop.models import (
    CropPreset, DrawRect, ScaleInfo, clamp, clamp_pan, compute_draw_rect, scale_info,
)

logger = logging.getLogger(__name__)


@dataclass
class CropSession:
    """Transient editing state for one preset."""
    preset: CropPreset
    source_image: Image.Image | None = None
    source_path: Path | None = None
    zoom: float = ZOOM_DEFAULT
    pan_x: float = 0.0
    pan_y: float = 0.0
    extra: dict = field(default_factory=dict)  # call-site context, e.g. profile name

    # --- Source image ownership ---

    def has_image(self) -> bool:
        return self.source_image is not None

    @property
    def source_size(self) -> tuple[int, int] | None:
        if self.source_image is None:
            return None
        return self.source_image.size

    def load(self, image: Image.Image, path: Path | None = None):
        """Take ownership of a freshly decoded image, releasing the previous one."""
        self.release_image()
        self.source_image = image
        self.source_path = path
        self.reset_controls()
        logger.debug("Session %s loaded %s (%dx%d)", self.preset.name, path, image.width, image.height)

    def release_image(self):
        if self.source_image is not None:
            self.source_image.close()
            logger.debug("Session %s released %s", self.preset.name, self.source_path)
        self.source_image = None
        self.source_path = None

    def close(self):
        """Release everything; the session is back to its just-opened state."""
        self.release_image()
        self.reset_controls()
        self.extra.clear()

    # --- Controls ---

    def reset_controls(self):
        self.zoom = ZOOM_DEFAULT
        self.pan_x = 0.0
        self.pan_y = 0.0

    def set_zoom(self, zoom: float):
        """Set zoom within the UI bounds and re-clamp the existing pan ratios."""
        self.zoom = clamp(float(zoom), ZOOM_MIN, ZOOM_MAX)
        self.pan_x = clamp_pan(self.pan_x)
        self.pan_y = clamp_pan(self.pan_y)

    def set_pan(self, pan_x: float, pan_y: float):
        self.pan_x = clamp_pan(pan_x)
        self.pan_y = clamp_pan(pan_y)

    # --- Geometry at an arbitrary target resolution ---

    def scale_info(self, target_w: int, target_h: int) -> ScaleInfo:
        return scale_info(self.source_size, target_w, target_h, self.zoom)

    def draw_rect(self, target_w: int, target_h: int) -> DrawRect:
        return compute_draw_rect(self.source_size, target_w, target_h, self.zoom, self.pan_x, self.pan_y)

    def preview_scale_info(self) -> ScaleInfo:
        return self.scale_info(self.preset.preview_w, self.preset.preview_h)
