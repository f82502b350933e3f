"""
Settings persistence: server address and session cookie.

Settings are stored as JSON in the user's config directory (provided by
``config.config_dir()``).  A missing or corrupt file falls back to
defaults.  Environment variables override the stored values at load time
so the tool can be pointed at another server without editing the file.

The on-disk format uses a versioned envelope::

    {"version": 1, "settings": {"base_url": "...", ...}}

This module is Qt-free.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from urllib.parse import urlparse

from family_crop.config import UPLOAD_TIMEOUT_DEFAULT, config_dir

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1

_ENV_OVERRIDES = {
    "base_url": "FAMILY_CROP_BASE_URL",
    "session_cookie": "FAMILY_CROP_SESSION",
    "timeout": "FAMILY_CROP_TIMEOUT",
}


@dataclass
class Settings:
    base_url: str = "http://localhost:3000"
    session_cookie_name: str = "connect.sid"
    session_cookie: str = ""
    timeout: float = UPLOAD_TIMEOUT_DEFAULT


def _settings_path() -> Path:
    return config_dir() / _SETTINGS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_settings(settings: Settings) -> list[str]:
    """Return a list of error strings (empty means valid)."""
    errors: list[str] = []
    parsed = urlparse(settings.base_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        errors.append(f"base_url must be an http(s) URL, got {settings.base_url!r}")
    if not isinstance(settings.timeout, (int, float)) or settings.timeout <= 0:
        errors.append("timeout must be a positive number of seconds")
    if settings.session_cookie and not settings.session_cookie_name:
        errors.append("session_cookie_name is required when session_cookie is set")
    return errors


def _from_dict(raw: dict) -> Settings:
    known = {f.name for f in fields(Settings)}
    values = {k: v for k, v in raw.items() if k in known}
    settings = Settings(**values)
    if not isinstance(settings.timeout, (int, float)):
        try:
            settings.timeout = float(settings.timeout)
        except (TypeError, ValueError):
            settings.timeout = UPLOAD_TIMEOUT_DEFAULT
    return settings


def _env_values() -> dict:
    """Environment overrides that are set and parse, keyed by field name."""
    values = {}
    for name, env_key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        if name == "timeout":
            try:
                value = float(value)
            except ValueError:
                logger.warning("Ignoring %s=%r: not a number", env_key, value)
                continue
        values[name] = value
    return values


def _apply_env(settings: Settings) -> Settings:
    for name, value in _env_values().items():
        setattr(settings, name, value)
    return settings


# =============================================================================
# Load / Save
# =============================================================================
def _read_stored() -> Settings | None:
    """Settings as written in the file, without environment overrides."""
    path = _settings_path()
    if not path.exists():
        logger.debug("No settings file at %s; using defaults", path)
        return None

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings (%s); using defaults", exc)
        return None

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION:
        logger.warning("Settings version mismatch or invalid format; using defaults")
        return None

    stored = raw.get("settings")
    if not isinstance(stored, dict):
        logger.warning("Settings file missing 'settings' dict; using defaults")
        return None
    return _from_dict(stored)


def load_settings() -> Settings:
    """Load settings from disk, then apply environment overrides."""
    stored = _read_stored()
    if stored is None:
        return _apply_env(Settings())

    settings = _apply_env(stored)
    errors = validate_settings(settings)
    if errors:
        logger.warning("Invalid settings (%s); using defaults", "; ".join(errors))
        return _apply_env(Settings())
    logger.info("Loaded settings from %s (server %s)", _settings_path(), settings.base_url)
    return settings


def save_settings(settings: Settings) -> None:
    """Validate and write settings.  Raises ValueError if invalid, OSError on write failure.

    Fields still equal to their environment override keep the value already
    in the file, so a temporary override is never persisted.
    """
    errors = validate_settings(settings)
    if errors:
        raise ValueError("Invalid settings:\n" + "\n".join(errors))

    to_write = settings
    overrides = _env_values()
    if overrides:
        base = _read_stored() or Settings()
        kept = {name: getattr(base, name) for name, value in overrides.items()
                if getattr(settings, name) == value}
        to_write = replace(settings, **kept)

    path = _settings_path()
    envelope = {"version": _FORMAT_VERSION, "settings": asdict(to_write)}
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved settings to %s", path)
