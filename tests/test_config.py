import json

import pytest

from panelfiles.core import config


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    path = tmp_path / "panelfiles.json"
    monkeypatch.setenv("PANELFILES_CONFIG", str(path))
    config.get_settings.cache_clear()
    yield path
    config.get_settings.cache_clear()


def test_config_file_is_created_with_generated_token(config_path):
    settings = config.get_settings()

    stored = json.loads(config_path.read_text(encoding="utf-8"))
    assert list(stored) == ["api_token"]
    assert settings.api_token == stored["api_token"]
    assert settings.panel_url == config.DEFAULT_PANEL_URL
    assert settings.request_timeout == config.DEFAULT_REQUEST_TIMEOUT
    assert "yml" in settings.editable_extensions


def test_environment_applies_when_file_is_fresh(config_path, monkeypatch):
    monkeypatch.setenv("PANELFILES_PANEL_URL", "http://panel.internal:3001")
    monkeypatch.setenv("PANELFILES_PORT", "6000")
    monkeypatch.setenv("PANELFILES_AUTH_ENABLED", "false")

    settings = config.get_settings()

    assert settings.panel_url == "http://panel.internal:3001"
    assert settings.port == 6000
    assert settings.auth_enabled is False


def test_values_in_file_override_environment(config_path, monkeypatch):
    config_path.write_text(
        json.dumps({"panel_url": "http://from-file:3001", "api_token": "fixed"}),
        encoding="utf-8",
    )
    monkeypatch.setenv("PANELFILES_PANEL_URL", "http://from-env:3001")

    settings = config.get_settings()

    assert settings.panel_url == "http://from-file:3001"
    assert settings.api_token == "fixed"
    assert json.loads(config_path.read_text(encoding="utf-8"))["api_token"] == "fixed"


def test_invalid_config_file_is_rejected(config_path):
    config_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        config.get_settings()


def test_environment_supplies_non_persisted_settings(monkeypatch):
    monkeypatch.setenv("PANELFILES_UPLOAD_TIMEOUT", "42")
    assert config.Settings().upload_timeout == 42.0
