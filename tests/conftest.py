"""Pytest configuration and shared fixtures.

Most tests are Qt-free.  The widget tests need a ``QApplication``; one is
created for the whole session as early as possible, on the offscreen
platform so the suite runs headless.
"""

from __future__ import annotations

import os
from typing import Any

import pytest
import requests
from PIL import Image

from family_crop.models import get_preset
from family_crop.session import CropSession

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QApplication exists before collecting/running tests."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PyQt6.QtWidgets import QApplication
    except ImportError:
        return

    global _APP
    app = QApplication.instance()
    _APP = app if app is not None else QApplication([])


# =============================================================================
# Isolation
# =============================================================================
@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep settings files and env overrides out of the user's real config."""
    config_dir = tmp_path / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("FAMILY_CROP_CONFIG_DIR", str(config_dir))
    for key in ("FAMILY_CROP_BASE_URL", "FAMILY_CROP_SESSION", "FAMILY_CROP_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    return config_dir


# =============================================================================
# Images and sessions
# =============================================================================
def make_image(w: int, h: int, color=(200, 60, 40)) -> Image.Image:
    return Image.new("RGB", (w, h), color)


@pytest.fixture
def profile_preset():
    return get_preset("profile", profile_id=7)


@pytest.fixture
def landing_preset():
    return get_preset("landing")


@pytest.fixture
def profile_session(profile_preset):
    session = CropSession(profile_preset)
    session.load(make_image(800, 600))
    return session


# =============================================================================
# HTTP stand-in
# =============================================================================
class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, content: bytes = b"", text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Records requests and replays queued responses (or raises queued errors)."""

    def __init__(self):
        self.cookies = requests.cookies.RequestsCookieJar()
        self.calls: list[tuple[str, str, dict]] = []
        self.responses: list[Any] = []

    def queue(self, item):
        self.responses.append(item)
        return self

    def _next(self, method: str, url: str, kwargs: dict):
        self.calls.append((method, url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)


@pytest.fixture
def fake_http():
    return FakeSession()
