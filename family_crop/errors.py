"""
Error taxonomy for the crop-and-upload pipeline.

Every failure a dialog has to show the user derives from ``CropError``,
so call sites can catch one type and keep the editing session open.
"""


class CropError(Exception):
    """Base class for user-facing crop/upload failures."""


class DecodeError(CropError):
    """The chosen file could not be decoded as an image."""


class EncodingError(CropError):
    """The off-screen canvas produced no image data."""


class UploadError(CropError):
    """Network failure or a server-reported upload failure."""

    def __init__(self, message: str, status_code: int | None = None, server_message: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message
