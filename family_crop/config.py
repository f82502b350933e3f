"""
Application constants and configuration.

CROP_PRESETS describes the three call sites that share the crop-and-upload
pipeline (profile photo, landing background, blog cover).  All other
constants control editor behaviour, encoding, upload limits and colours.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules (settings).
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "family-photo-crop"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    override = os.environ.get("FAMILY_CROP_CONFIG_DIR")
    if override:
        base_dir = Path(override)
        base_dir.mkdir(parents=True, exist_ok=True)
        return base_dir
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# CROP PRESETS (one entry per call site)
# =============================================================================
MASK_CIRCLE = "circle"
MASK_RECT = "rect"

PRESET_PROFILE = "profile"
PRESET_LANDING = "landing"
PRESET_BLOG_COVER = "blog_cover"

CROP_PRESETS = {
    PRESET_PROFILE: {
        "title": "Profile photo",
        "preview_w": 600,
        "preview_h": 600,
        "output_w": 512,
        "output_h": 512,
        "mask": MASK_CIRCLE,
        "endpoint": "/admin/family-profiles/{profile_id}/photo",
        "filename_prefix": "family-profile-{profile_id}",
        "error_message": "Profile image upload failed.",
    },
    PRESET_LANDING: {
        "title": "Landing background",
        "preview_w": 1600,
        "preview_h": 900,
        "output_w": 1600,
        "output_h": 900,
        "mask": MASK_RECT,
        "endpoint": "/admin/landing-background/photo",
        "filename_prefix": "landing-bg",
        "error_message": "Landing background upload failed.",
    },
    PRESET_BLOG_COVER: {
        "title": "Blog cover",
        "preview_w": 1200,
        "preview_h": 675,
        "output_w": 1200,
        "output_h": 675,
        "mask": MASK_RECT,
        "endpoint": "/blog/manage/upload-image",
        "filename_prefix": "cover",
        "error_message": "Cover image upload failed.",
    },
}

# Inline (uncropped) blog images go to the same endpoint as the cover
BLOG_IMAGE_ENDPOINT = "/blog/manage/upload-image"

# =============================================================================
# EDITOR BEHAVIOUR
# =============================================================================
ZOOM_MIN = 1.0
ZOOM_MAX = 3.0
ZOOM_DEFAULT = 1.0
# QSlider works in integers: slider value = zoom * ZOOM_SLIDER_SCALE
ZOOM_SLIDER_SCALE = 100

PAN_MIN = -1.0
PAN_MAX = 1.0

# Profile mask radius as a fraction of the preview edge
CIRCLE_RADIUS_RATIO = 0.42
CIRCLE_STROKE_WIDTH = 3

# Pointer id reported for the mouse (touch points use their own ids)
MOUSE_POINTER_ID = 0

# =============================================================================
# COLOURS
# =============================================================================
PREVIEW_BACKGROUND = (234, 244, 255)      # #eaf4ff
COVER_PREVIEW_BACKGROUND = (243, 248, 255)  # #f3f8ff
OUTPUT_BACKGROUND = (255, 255, 255)
PLACEHOLDER_COLOR = (91, 126, 169)        # #5b7ea9
CIRCLE_STROKE_COLOR = (62, 125, 221, 219)  # rgba(62, 125, 221, 0.86)
PLACEHOLDER_TEXT = "Select an image"

# =============================================================================
# ENCODING & UPLOAD
# =============================================================================
JPEG_QUALITY = 92
OUTPUT_CONTENT_TYPE = "image/jpeg"
UPLOAD_FIELD_NAME = "imageFile"
UPLOAD_TIMEOUT_DEFAULT = 30
UPLOAD_MAX_BYTES = 8 * 1024 * 1024
# Sources are re-encoded before upload, so the editor accepts larger files
SOURCE_MAX_BYTES = 64 * 1024 * 1024
GENERIC_UPLOAD_ERROR = "Upload failed"

# Accepted by the server's upload filter; anything else is stored as .jpg
SAFE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")

# Files the editor can open (PSD via psd-tools)
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".tif", ".webp", ".gif", ".psd"}

# =============================================================================
# SIGNED MEDIA URLS
# =============================================================================
STORAGE_REF_PREFIX = "sb://"
SIGNED_URL_CACHE_MS = int(os.environ.get("MEDIA_SIGNED_URL_CACHE_MS", "120000"))
SIGNED_URL_CACHE_MAX = int(os.environ.get("MEDIA_SIGNED_URL_CACHE_MAX", "1000"))
