"""
Export encoder (Qt-free).

Renders the session at the preset's *output* resolution, reusing the
preview's zoom and pan ratios, and serializes the result to JPEG bytes.
"""

import io
import logging

from PIL import Image

from family_crop.config import JPEG_QUALITY, OUTPUT_BACKGROUND
from family_crop.errors import EncodingError
from family_crop.render import paste_scaled
from family_crop.session import CropSession

logger = logging.getLogger(__name__)


def render_output(session: CropSession) -> Image.Image:
    """Draw the session onto an opaque canvas of output size."""
    w, h = session.preset.output_w, session.preset.output_h
    canvas = Image.new("RGB", (w, h), OUTPUT_BACKGROUND)
    paste_scaled(canvas, session.source_image, session.draw_rect(w, h))
    return canvas


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    """Serialize *image* to JPEG bytes.  Raises EncodingError on failure."""
    buf = io.BytesIO()
    try:
        image.convert("RGB").save(buf, "JPEG", quality=quality, optimize=True)
    except (OSError, ValueError) as exc:
        raise EncodingError(f"Image processing failed: {exc}") from exc
    data = buf.getvalue()
    if not data:
        raise EncodingError("Image processing failed.")
    return data


def export_session(session: CropSession, encoder=encode_jpeg) -> bytes:
    """Render and encode the session; *encoder* takes an image and returns bytes."""
    if not session.has_image():
        raise EncodingError("Select an image first.")
    image = render_output(session)
    data = encoder(image)
    if not data:
        raise EncodingError("Image processing failed.")
    logger.debug(
        "Exported %s at %dx%d (%d bytes)",
        session.preset.name, image.width, image.height, len(data),
    )
    return data
