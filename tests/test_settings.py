import json
from dataclasses import replace

import pytest

from family_crop.settings import Settings, load_settings, save_settings, validate_settings


def test_defaults_when_missing():
    settings = load_settings()
    assert settings == Settings()
    assert settings.session_cookie_name == "connect.sid"


def test_save_and_load(isolated_config):
    save_settings(Settings(base_url="https://family.example.org", session_cookie="abc", timeout=12))
    raw = json.loads((isolated_config / "settings.json").read_text(encoding="utf-8"))
    assert raw["version"] == 1
    assert raw["settings"]["base_url"] == "https://family.example.org"

    loaded = load_settings()
    assert loaded.base_url == "https://family.example.org"
    assert loaded.session_cookie == "abc"
    assert loaded.timeout == 12


def test_env_overrides_file(monkeypatch):
    save_settings(Settings(base_url="https://family.example.org"))
    monkeypatch.setenv("FAMILY_CROP_BASE_URL", "http://localhost:8080")
    monkeypatch.setenv("FAMILY_CROP_TIMEOUT", "not-a-number")
    loaded = load_settings()
    assert loaded.base_url == "http://localhost:8080"
    assert loaded.timeout == Settings().timeout


@pytest.mark.parametrize("content", [
    "{not json",
    json.dumps({"version": 99, "settings": {}}),
    json.dumps({"version": 1, "settings": "nope"}),
    json.dumps({"version": 1, "settings": {"base_url": "ftp://x"}}),
])
def test_bad_file_falls_back_to_defaults(isolated_config, content):
    (isolated_config / "settings.json").write_text(content, encoding="utf-8")
    assert load_settings() == Settings()


def test_unknown_keys_ignored(isolated_config):
    payload = {"version": 1, "settings": {"base_url": "https://a.test", "theme": "dark"}}
    (isolated_config / "settings.json").write_text(json.dumps(payload), encoding="utf-8")
    assert load_settings().base_url == "https://a.test"


def test_validation():
    assert validate_settings(Settings()) == []
    errors = validate_settings(Settings(base_url="family.test", timeout=0))
    assert len(errors) == 2
    assert validate_settings(Settings(session_cookie="x", session_cookie_name=""))


def test_save_rejects_invalid():
    with pytest.raises(ValueError):
        save_settings(Settings(base_url="nope"))


def test_env_override_is_not_written_back(isolated_config, monkeypatch):
    save_settings(Settings(base_url="https://family.example.org", timeout=12))
    monkeypatch.setenv("FAMILY_CROP_BASE_URL", "http://localhost:8080")
    monkeypatch.setenv("FAMILY_CROP_TIMEOUT", "5")

    loaded = load_settings()
    save_settings(replace(loaded, session_cookie="fresh"))

    raw = json.loads((isolated_config / "settings.json").read_text(encoding="utf-8"))
    assert raw["settings"]["base_url"] == "https://family.example.org"
    assert raw["settings"]["timeout"] == 12

    monkeypatch.delenv("FAMILY_CROP_BASE_URL")
    monkeypatch.delenv("FAMILY_CROP_TIMEOUT")
    reloaded = load_settings()
    assert reloaded.base_url == "https://family.example.org"
    assert reloaded.timeout == 12
    assert reloaded.session_cookie == "fresh"


def test_edited_value_saved_despite_env(isolated_config, monkeypatch):
    monkeypatch.setenv("FAMILY_CROP_BASE_URL", "http://localhost:8080")
    save_settings(replace(load_settings(), base_url="https://other.example.org"))
    raw = json.loads((isolated_config / "settings.json").read_text(encoding="utf-8"))
    assert raw["settings"]["base_url"] == "https://other.example.org"


def test_env_value_without_file_saves_default(isolated_config, monkeypatch):
    monkeypatch.setenv("FAMILY_CROP_BASE_URL", "http://localhost:8080")
    save_settings(load_settings())
    raw = json.loads((isolated_config / "settings.json").read_text(encoding="utf-8"))
    assert raw["settings"]["base_url"] == Settings().base_url
