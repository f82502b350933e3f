"""
Preview rendering (Qt-free).

``render_preview`` repaints the whole preview canvas from a session as a
PIL image.  It is called synchronously after every state change; the Qt
widget only converts the result to a pixmap.  ``paste_scaled`` is shared
with the export encoder so preview and output use the same placement.
"""

from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont

from family_crop.config import (
    CIRCLE_RADIUS_RATIO, CIRCLE_STROKE_COLOR, CIRCLE_STROKE_WIDTH,
    COVER_PREVIEW_BACKGROUND, PLACEHOLDER_COLOR, PLACEHOLDER_TEXT,
    PRESET_BLOG_COVER, PREVIEW_BACKGROUND,
)
from family_crop.models import DrawRect
from family_crop.session import CropSession

CURSOR_DEFAULT = "default"
CURSOR_GRAB = "grab"
CURSOR_GRABBING = "grabbing"


@dataclass
class RenderFrame:
    image: Image.Image
    cursor: str


def paste_scaled(
    canvas: Image.Image,
    source: Image.Image,
    rect: DrawRect,
    resample: Image.Resampling = Image.Resampling.LANCZOS,
) -> None:
    """Draw *source* scaled into *rect* on *canvas*, clipped to the canvas.

    Only the visible part of the source is resampled, so high zoom levels
    never allocate the full scaled image.
    """
    if rect.w <= 0 or rect.h <= 0:
        return
    cw, ch = canvas.size
    dx0 = round(max(0.0, rect.x))
    dy0 = round(max(0.0, rect.y))
    dx1 = round(min(float(cw), rect.x + rect.w))
    dy1 = round(min(float(ch), rect.y + rect.h))
    if dx1 <= dx0 or dy1 <= dy0:
        return

    sx = source.width / rect.w
    sy = source.height / rect.h
    box = (
        max(0.0, (dx0 - rect.x) * sx),
        max(0.0, (dy0 - rect.y) * sy),
        min(float(source.width), (dx1 - rect.x) * sx),
        min(float(source.height), (dy1 - rect.y) * sy),
    )
    region = source.resize((dx1 - dx0, dy1 - dy0), resample, box=box)
    if region.mode == "RGBA":
        canvas.paste(region, (dx0, dy0), region)
    else:
        canvas.paste(region.convert(canvas.mode), (dx0, dy0))


def _background_for(session: CropSession) -> tuple[int, int, int]:
    if session.preset.name == PRESET_BLOG_COVER:
        return COVER_PREVIEW_BACKGROUND
    return PREVIEW_BACKGROUND


def _draw_placeholder(canvas: Image.Image) -> None:
    w, h = canvas.size
    # 18px on the 600px profile canvas, 24px on the 1600px landing canvas
    size = 18 if w <= 600 else 24
    font = ImageFont.load_default(size=size)
    draw = ImageDraw.Draw(canvas)
    draw.text((w / 2, h / 2), PLACEHOLDER_TEXT, fill=PLACEHOLDER_COLOR, font=font, anchor="mm")


def _circle_bbox(w: int, h: int) -> tuple[float, float, float, float]:
    radius = min(w, h) * CIRCLE_RADIUS_RATIO
    cx, cy = w / 2, h / 2
    return (cx - radius, cy - radius, cx + radius, cy + radius)


def render_preview(session: CropSession, dragging: bool = False) -> RenderFrame:
    """Render the preview canvas for *session* at the preset's preview size."""
    w, h = session.preset.preview_w, session.preset.preview_h
    canvas = Image.new("RGB", (w, h), _background_for(session))

    if not session.has_image():
        _draw_placeholder(canvas)
        return RenderFrame(canvas, CURSOR_DEFAULT)

    rect = session.draw_rect(w, h)
    cursor = CURSOR_GRABBING if dragging else CURSOR_GRAB

    if not session.preset.circular:
        paste_scaled(canvas, session.source_image, rect, Image.Resampling.BILINEAR)
        return RenderFrame(canvas, cursor)

    # Circular clip: draw into a layer, then paste it through an ellipse mask
    layer = canvas.copy()
    paste_scaled(layer, session.source_image, rect, Image.Resampling.BILINEAR)
    bbox = _circle_bbox(w, h)
    mask = Image.new("L", (w, h), 0)
    ImageDraw.Draw(mask).ellipse(bbox, fill=255)
    canvas.paste(layer, (0, 0), mask)

    overlay = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    ImageDraw.Draw(overlay).ellipse(bbox, outline=CIRCLE_STROKE_COLOR, width=CIRCLE_STROKE_WIDTH)
    canvas = Image.alpha_composite(canvas.convert("RGBA"), overlay).convert("RGB")
    return RenderFrame(canvas, cursor)
