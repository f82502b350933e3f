"""
Qt-free image I/O utilities.

Provides helpers to decode user-chosen files (including PSD), build upload
filenames and content types, and validate files before they are sent.
Safe to import in worker threads.
"""

import logging
import mimetypes
import time
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from psd_tools import PSDImage

from family_crop.config import (
    IMAGE_EXTENSIONS, SAFE_EXTENSIONS, SOURCE_MAX_BYTES, UPLOAD_MAX_BYTES,
)
from family_crop.errors import DecodeError

logger = logging.getLogger(__name__)


def check_file(path: Path, max_bytes: int = UPLOAD_MAX_BYTES) -> int:
    """Validate extension and size of a chosen file, returning its size in bytes."""
    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        raise DecodeError(f"Only image files can be used: {path.name}")
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise DecodeError(f"Cannot read {path.name}: {exc}") from exc
    if size == 0:
        raise DecodeError(f"{path.name} is empty.")
    if size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise DecodeError(f"{path.name} is larger than {limit_mb:g} MB.")
    return size


def _normalize_mode(img: Image.Image) -> Image.Image:
    """Convert to RGB, or RGBA when the source carries transparency."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        return img.convert("RGBA")
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def open_image(path: Path) -> Image.Image:
    """Decode an image file into memory, applying EXIF orientation.

    Uses psd-tools for PSD and Pillow for the rest.  Raises ``DecodeError``
    for anything that cannot be decoded; the returned image is fully
    loaded and detached from the file.
    """
    check_file(path, max_bytes=SOURCE_MAX_BYTES)
    try:
        if path.suffix.lower() == ".psd":
            img = PSDImage.open(str(path)).composite()
        else:
            with Image.open(path) as opened:
                opened.load()
                img = ImageOps.exif_transpose(opened)
                if img is opened:
                    img = opened.copy()
    except (Image.DecompressionBombError, MemoryError) as exc:
        logger.warning("Refusing to decode %s: %s", path, exc)
        raise DecodeError(f"{path.name} has too many pixels to edit.") from exc
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
        logger.warning("Could not decode %s: %s", path, exc)
        raise DecodeError(f"Could not open {path.name} as an image.") from exc
    if img is None or img.width == 0 or img.height == 0:
        raise DecodeError(f"{path.name} has no pixels.")
    img = _normalize_mode(img)
    logger.debug("Decoded %s (%dx%d, %s)", path, img.width, img.height, img.mode)
    return img


def safe_extname(filename: str) -> str:
    """Return the lowercase extension if the server accepts it, else ``.jpg``."""
    ext = Path(filename or "").suffix.lower()
    return ext if ext in SAFE_EXTENSIONS else ".jpg"


def guess_content_type(filename: str) -> str:
    """Return an ``image/*`` content type for *filename*, or octet-stream."""
    guessed, _ = mimetypes.guess_type(filename)
    if guessed and guessed.startswith("image/"):
        return guessed
    return "application/octet-stream"


def upload_filename(prefix: str, ext: str = ".jpg") -> str:
    """Timestamped upload name, e.g. ``landing-bg-1718000000000.jpg``."""
    return f"{prefix}-{int(time.time() * 1000)}{ext}"
