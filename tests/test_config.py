"""Tests for settings loading."""
import pytest

from app.config import load_settings
from app.errors import ConfigError

REQUIRED = {
    "GOOGLE_CLIENT_ID": "id",
    "GOOGLE_CLIENT_SECRET": "secret",
    "GOOGLE_REDIRECT_URI": "https://blog.example.com/oauth2callback",
    "GOOGLE_DRIVE_FOLDER_ID": "folder",
}


def test_defaults():
    settings = load_settings(dict(REQUIRED))

    assert settings.webhook_url == "https://blog.example.com/webhook"
    assert settings.cursor_backend == "appdata"
    assert settings.renewal_enabled is True
    assert settings.renewal_time == "07:00"
    assert settings.renewal_timezone == "Asia/Kolkata"
    assert settings.cors_origins == []


@pytest.mark.parametrize("missing", sorted(REQUIRED))
def test_missing_required_value(missing):
    env = dict(REQUIRED)
    env[missing] = "  "

    with pytest.raises(ConfigError, match=missing):
        load_settings(env)


def test_overrides():
    settings = load_settings({
        **REQUIRED,
        "WEBHOOK_URL": "https://hooks.example.com/drive",
        "CURSOR_BACKEND": "Database",
        "WATCH_RENEWAL_ENABLED": "false",
        "WATCH_RENEWAL_TIME": "23:45",
        "CORS_ORIGINS": "https://a.example.com, https://b.example.com",
        "LOG_LEVEL": "debug",
    })

    assert settings.webhook_url == "https://hooks.example.com/drive"
    assert settings.cursor_backend == "database"
    assert settings.renewal_enabled is False
    assert settings.renewal_time == "23:45"
    assert settings.cors_origins == ["https://a.example.com", "https://b.example.com"]
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("key,value", [
    ("CURSOR_BACKEND", "redis"),
    ("WATCH_RENEWAL_TIME", "7am"),
    ("WATCH_RENEWAL_TIME", "25:00"),
])
def test_invalid_values(key, value):
    with pytest.raises(ConfigError):
        load_settings({**REQUIRED, key: value})


def test_webhook_url_without_callback_suffix():
    settings = load_settings({**REQUIRED, "GOOGLE_REDIRECT_URI": "https://blog.example.com/"})
    assert settings.webhook_url == "https://blog.example.com/webhook"


def test_unknown_timezone():
    with pytest.raises(ConfigError, match="WATCH_RENEWAL_TIMEZONE"):
        load_settings({**REQUIRED, "WATCH_RENEWAL_TIMEZONE": "Mars/Olympus_Mons"})
