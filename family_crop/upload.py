"""
HTTP upload client (Qt-free).

Posts encoded images to the family web app as multipart form data and
turns the JSON reply into an ``UploadResult``.  Calls block; the UI runs
them in a worker thread.

Server reply contract::

    {"ok": true, "imageUrl": "...", "imageRef": "sb://...", "location": "..."}
    {"ok": false, "error": "message shown to the user"}
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urljoin

import requests

from family_crop.config import (
    GENERIC_UPLOAD_ERROR, OUTPUT_CONTENT_TYPE, UPLOAD_FIELD_NAME,
    UPLOAD_MAX_BYTES, UPLOAD_TIMEOUT_DEFAULT,
)
from family_crop.errors import UploadError
from family_crop.image_io import check_file, guess_content_type, safe_extname, upload_filename
from family_crop.models import UploadResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadHints:
    """Where and how to send one blob."""
    endpoint: str
    filename: str
    content_type: str = OUTPUT_CONTENT_TYPE
    error_message: str = GENERIC_UPLOAD_ERROR


class UploadClient:
    """Thin wrapper around a ``requests.Session`` bound to one server."""

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        timeout: float = UPLOAD_TIMEOUT_DEFAULT,
        cookie_name: str = "",
        cookie_value: str = "",
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self._http = session if session is not None else requests.Session()
        if cookie_name and cookie_value:
            self._http.cookies.set(cookie_name, cookie_value)

    def absolute_url(self, url: str) -> str:
        """Resolve a server-relative URL (``/uploads/...``) against the base URL."""
        return urljoin(self.base_url, url)

    # --- Uploads ---

    def upload(self, blob: bytes, hints: UploadHints) -> UploadResult:
        """Send *blob* under the ``imageFile`` field and return the stored reference."""
        if not blob:
            raise UploadError("Nothing to upload.")
        url = self.absolute_url(hints.endpoint)
        files = {UPLOAD_FIELD_NAME: (hints.filename, blob, hints.content_type)}
        logger.info("Uploading %s (%d bytes) to %s", hints.filename, len(blob), url)
        try:
            response = self._http.post(url, files=files, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Upload to %s failed: %s", url, exc)
            raise UploadError(f"{hints.error_message} ({exc.__class__.__name__})") from exc
        result = self._parse_response(response, hints.error_message)
        logger.info("Upload of %s stored as %s", hints.filename, result.reference)
        return result

    def upload_file(self, path: Path, endpoint: str, error_message: str = GENERIC_UPLOAD_ERROR) -> UploadResult:
        """Upload an image file as-is (no cropping), e.g. an inline blog image.

        Raises DecodeError if the file is not an acceptable image.
        """
        check_file(path, max_bytes=UPLOAD_MAX_BYTES)
        ext = safe_extname(path.name)
        hints = UploadHints(
            endpoint=endpoint,
            filename=upload_filename(path.stem or "image", ext),
            content_type=guess_content_type(path.name),
            error_message=error_message,
        )
        try:
            blob = path.read_bytes()
        except OSError as exc:
            raise UploadError(f"Cannot read {path.name}: {exc}") from exc
        return self.upload(blob, hints)

    @staticmethod
    def _parse_response(response: requests.Response, fallback: str) -> UploadResult:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            logger.warning("Upload reply was not JSON (HTTP %s)", response.status_code)
            raise UploadError(f"{fallback} (HTTP {response.status_code})", status_code=response.status_code)

        if not response.ok or not payload.get("ok"):
            server_message = payload.get("error")
            message = str(server_message) if server_message else fallback
            logger.warning("Server rejected upload (HTTP %s): %s", response.status_code, message)
            raise UploadError(message, status_code=response.status_code, server_message=server_message)

        display_url = str(payload.get("imageUrl") or payload.get("location") or "")
        reference = str(payload.get("imageRef") or display_url)
        if not reference:
            raise UploadError("Server did not return an image URL.", status_code=response.status_code)
        return UploadResult(reference=reference, display_url=display_url or reference)

    # --- Downloads (for refreshing previews) ---

    def fetch(self, url: str) -> bytes:
        """GET an image for display; returns the raw bytes."""
        try:
            response = self._http.get(self.absolute_url(url), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise UploadError(f"Could not load {url}: {exc}") from exc
        return response.content
