"""Tests for environment-driven settings."""

import pytest

from xorooms.config import DEFAULT_PORT, Settings


def test_defaults_without_environment():
    settings = Settings.from_env({})
    assert settings.port == DEFAULT_PORT
    assert settings.host == "0.0.0.0"
    assert settings.static_dir is None
    assert settings.room_idle_ttl == 0


def test_port_and_options_are_read_from_environment():
    settings = Settings.from_env(
        {
            "PORT": "8080",
            "XOROOMS_HOST": "127.0.0.1",
            "XOROOMS_STATIC_DIR": "public",
            "XOROOMS_LOG_LEVEL": "DEBUG",
            "XOROOMS_ROOM_IDLE_TTL": "600",
        }
    )
    assert settings == Settings(
        host="127.0.0.1",
        port=8080,
        static_dir="public",
        log_level="debug",
        room_idle_ttl=600,
    )


def test_invalid_port_names_the_variable():
    with pytest.raises(ValueError, match="PORT"):
        Settings.from_env({"PORT": "eighty"})


def test_package_import_does_not_read_environment(monkeypatch):
    import importlib

    import xorooms

    monkeypatch.setenv("PORT", "eighty")
    reloaded = importlib.reload(xorooms)
    assert not hasattr(reloaded, "app")
    assert reloaded.evaluate([None] * 9) is not None
