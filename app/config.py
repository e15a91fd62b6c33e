"""
Application settings loaded from environment variables (.env supported).

Required:
- GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET: OAuth app identity
- GOOGLE_REDIRECT_URI: full URL of the /oauth2callback endpoint
- GOOGLE_DRIVE_FOLDER_ID: the Drive folder whose Docs become posts

Missing values raise ConfigError when settings are first loaded (startup).
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from app.errors import ConfigError

# Load environment variables from .env
load_dotenv()

REQUIRED_ENV_VARS = [
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REDIRECT_URI",
    "GOOGLE_DRIVE_FOLDER_ID",
]

CURSOR_BACKENDS = ("appdata", "database")



@dataclass(frozen=True)
class Settings:
    """Validated runtime configuration."""
    google_client_id: str
    google_client_secret: str
    google_redirect_uri: str
    drive_folder_id: str
    webhook_url: str
    cursor_backend: str = "appdata"
    renewal_enabled: bool = True
    renewal_time: str = "07:00"
    renewal_timezone: str = "Asia/Kolkata"
    cors_origins: list[str] = field(default_factory=list)
    log_level: str = "INFO"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _derive_webhook_url(redirect_uri: str) -> str:
    """The webhook lives next to the OAuth callback: .../oauth2callback -> .../webhook"""
    if redirect_uri.rstrip("/").endswith("/oauth2callback"):
        return redirect_uri.rstrip("/")[: -len("/oauth2callback")] + "/webhook"
    return redirect_uri.rstrip("/") + "/webhook"


def load_settings(environ=None) -> Settings:
    """
    Build Settings from an environment mapping.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Raises:
        ConfigError: If a required variable is missing or a value is invalid
    """
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_ENV_VARS if not env.get(name, "").strip()]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    cursor_backend = env.get("CURSOR_BACKEND", "appdata").strip().lower()
    if cursor_backend not in CURSOR_BACKENDS:
        raise ConfigError(
            f"CURSOR_BACKEND must be one of {', '.join(CURSOR_BACKENDS)}, got '{cursor_backend}'"
        )

    renewal_time = env.get("WATCH_RENEWAL_TIME", "07:00").strip()
    try:
        hour, minute = (int(part) for part in renewal_time.split(":"))
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(renewal_time)
    except ValueError:
        raise ConfigError(f"WATCH_RENEWAL_TIME must be HH:MM, got '{renewal_time}'")

    renewal_timezone = env.get("WATCH_RENEWAL_TIMEZONE", "Asia/Kolkata").strip()
    try:
        ZoneInfo(renewal_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown WATCH_RENEWAL_TIMEZONE '{renewal_timezone}'")

    redirect_uri = env["GOOGLE_REDIRECT_URI"].strip()
    origins = [o.strip() for o in env.get("CORS_ORIGINS", "").split(",") if o.strip()]

    return Settings(
        google_client_id=env["GOOGLE_CLIENT_ID"].strip(),
        google_client_secret=env["GOOGLE_CLIENT_SECRET"].strip(),
        google_redirect_uri=redirect_uri,
        drive_folder_id=env["GOOGLE_DRIVE_FOLDER_ID"].strip(),
        webhook_url=env.get("WEBHOOK_URL", "").strip() or _derive_webhook_url(redirect_uri),
        cursor_backend=cursor_backend,
        renewal_enabled=_as_bool(env.get("WATCH_RENEWAL_ENABLED", "true")),
        renewal_time=renewal_time,
        renewal_timezone=renewal_timezone,
        cors_origins=origins,
        log_level=env.get("LOG_LEVEL", "INFO").strip().upper(),
    )


@lru_cache
def get_settings() -> Settings:
    """
    FastAPI dependency returning the process settings.

    Override in tests with app.dependency_overrides[get_settings].
    """
    return load_settings()
