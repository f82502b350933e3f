"""
Data models and crop-geometry utilities.

CropPreset, DrawRect and UploadResult are the core data structures shared
across the editor, the renderer and the upload client.  The geometry
helpers implement "cover" fitting: the source image is scaled so that it
always fills the target rectangle, and the pan ratios in [-1, 1] shift it
by at most the overflow on each side.
"""

from dataclasses import dataclass

from family_crop.config import (
    CROP_PRESETS, MASK_CIRCLE, PAN_MAX, PAN_MIN,
)


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class CropPreset:
    """Fixed configuration of one call site."""
    name: str
    title: str
    preview_w: int
    preview_h: int
    output_w: int
    output_h: int
    mask: str
    endpoint: str
    filename_prefix: str
    error_message: str

    @property
    def circular(self) -> bool:
        return self.mask == MASK_CIRCLE


@dataclass(frozen=True)
class ScaleInfo:
    """Scaled image size and the largest allowed shift on each axis."""
    draw_w: float
    draw_h: float
    max_shift_x: float
    max_shift_y: float


@dataclass(frozen=True)
class DrawRect:
    """Where the scaled source lands on the target canvas."""
    x: float
    y: float
    w: float
    h: float


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload."""
    reference: str     # durable value persisted by the server (may be sb://...)
    display_url: str   # what the client renders immediately


def get_preset(name: str, **params) -> CropPreset:
    """Build a CropPreset from ``CROP_PRESETS``, filling endpoint placeholders.

    The profile preset needs ``profile_id``::

        get_preset("profile", profile_id=3).endpoint
        # → "/admin/family-profiles/3/photo"
    """
    try:
        raw = CROP_PRESETS[name]
    except KeyError:
        raise ValueError(f"Unknown crop preset: {name!r}") from None
    try:
        endpoint = raw["endpoint"].format(**params)
        prefix = raw["filename_prefix"].format(**params)
    except KeyError as exc:
        raise ValueError(f"Preset {name!r} requires parameter {exc.args[0]!r}") from None
    return CropPreset(
        name=name,
        title=raw["title"],
        preview_w=raw["preview_w"],
        preview_h=raw["preview_h"],
        output_w=raw["output_w"],
        output_h=raw["output_h"],
        mask=raw["mask"],
        endpoint=endpoint,
        filename_prefix=prefix,
        error_message=raw["error_message"],
    )


# =============================================================================
# Crop math utilities
# =============================================================================
def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def clamp_pan(value: float) -> float:
    """Clamp a pan ratio into [-1, 1]."""
    return clamp(value, PAN_MIN, PAN_MAX)


def scale_info(
    source_size: tuple[int, int] | None,
    target_w: int, target_h: int,
    zoom: float,
) -> ScaleInfo:
    """Cover-fit the source into the target and report the pan range.

    With no source image the result is degenerate (draw size equals the
    target, no shift) so the caller can render a placeholder.
    """
    if source_size is None:
        return ScaleInfo(float(target_w), float(target_h), 0.0, 0.0)
    src_w, src_h = source_size
    if src_w <= 0 or src_h <= 0:
        raise ValueError(f"source size must be positive, got {src_w}x{src_h}")
    base_scale = max(target_w / src_w, target_h / src_h)
    draw_w = src_w * base_scale * zoom
    draw_h = src_h * base_scale * zoom
    return ScaleInfo(
        draw_w=draw_w,
        draw_h=draw_h,
        max_shift_x=max(0.0, (draw_w - target_w) / 2),
        max_shift_y=max(0.0, (draw_h - target_h) / 2),
    )


def compute_draw_rect(
    source_size: tuple[int, int] | None,
    target_w: int, target_h: int,
    zoom: float,
    pan_x: float, pan_y: float,
) -> DrawRect:
    """Return the draw rectangle for the given zoom and pan ratios."""
    info = scale_info(source_size, target_w, target_h, zoom)
    shift_x = info.max_shift_x * clamp_pan(pan_x)
    shift_y = info.max_shift_y * clamp_pan(pan_y)
    return DrawRect(
        x=(target_w - info.draw_w) / 2 - shift_x,
        y=(target_h - info.draw_h) / 2 - shift_y,
        w=info.draw_w,
        h=info.draw_h,
    )


def pan_from_drag(start_offset: float, delta_px: float, max_shift: float) -> float:
    """Convert a drag distance into a pan ratio.

    Dragging right moves the picture right, which means the visible window
    moves left, hence the subtraction.  A zero ``max_shift`` (image exactly
    fits) leaves the offset untouched.
    """
    if max_shift <= 0:
        return start_offset
    return clamp_pan(start_offset - delta_px / max_shift)
