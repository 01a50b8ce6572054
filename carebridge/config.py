"""Configuration management for CareBridge Reminders."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


def _load_env_file() -> None:
    """Load .env from root directory if present."""
    env_path = Path(__file__).parent.parent / ".env"
    if not env_path.is_file():
        return
    try:
        lines = env_path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return
    for line in lines:
        stripped = line.strip()
        if stripped and not stripped.startswith("#") and "=" in stripped:
            key, value = stripped.split("=", 1)
            key, value = key.strip(), value.strip().strip("'\"")
            if key and value and key not in os.environ:
                os.environ[key] = value


_load_env_file()


DEFAULT_APP_NAME = "CareBridge Reminders"
DEFAULT_APP_VERSION = "1.0.0"


def _env_int(name: str, fallback: int) -> int:
    try:
        return int(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


def _env_float(name: str, fallback: float) -> float:
    try:
        return float(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


def _env_flag(name: str, fallback: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


class Settings(BaseModel):
    """Application settings with environment fallbacks."""

    # App metadata
    app_name: str = Field(default=DEFAULT_APP_NAME)
    app_version: str = Field(default=DEFAULT_APP_VERSION)

    # Server runtime
    server_host: str = Field(default_factory=lambda: os.getenv("CAREBRIDGE_HOST", "0.0.0.0"))
    server_port: int = Field(default_factory=lambda: _env_int("CAREBRIDGE_PORT", 8000))

    # Supabase database
    supabase_url: Optional[str] = Field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_key: Optional[str] = Field(default_factory=lambda: os.getenv("SUPABASE_KEY"))

    # Cron trigger shared secret; when unset the endpoint is open
    cron_secret: Optional[str] = Field(default_factory=lambda: os.getenv("CRON_SECRET"))

    # Resend mail provider
    resend_api_key: Optional[str] = Field(default_factory=lambda: os.getenv("RESEND_API_KEY"))
    resend_sender_email: Optional[str] = Field(default_factory=lambda: os.getenv("RESEND_SENDER_EMAIL"))
    resend_sender_name: str = Field(default_factory=lambda: os.getenv("RESEND_SENDER_NAME", "CareBridge Health"))
    send_confirmation_email: bool = Field(default_factory=lambda: _env_flag("SEND_CONFIRMATION_EMAIL", True))

    # Google Calendar OAuth
    google_client_id: Optional[str] = Field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_ID"))
    google_client_secret: Optional[str] = Field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_SECRET"))
    google_redirect_uri: Optional[str] = Field(default_factory=lambda: os.getenv("GOOGLE_REDIRECT_URI"))

    # Where the OAuth callback sends the browser back to
    public_base_url: str = Field(default_factory=lambda: os.getenv("PUBLIC_BASE_URL", "http://localhost:3000"))

    # Scheduling
    reminder_timezone: str = Field(default_factory=lambda: os.getenv("REMINDER_TIMEZONE", "UTC"))
    http_timeout_seconds: float = Field(default_factory=lambda: _env_float("HTTP_TIMEOUT_SECONDS", 8.0))
    dispatch_concurrency: int = Field(default_factory=lambda: _env_int("DISPATCH_CONCURRENCY", 10))

    # HTTP behaviour
    cors_allow_origins_raw: str = Field(
        default_factory=lambda: os.getenv("CAREBRIDGE_CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    )
    enable_docs: bool = Field(default_factory=lambda: os.getenv("CAREBRIDGE_ENABLE_DOCS", "1") != "0")
    docs_url: Optional[str] = Field(default_factory=lambda: os.getenv("CAREBRIDGE_DOCS_URL", "/docs"))

    @property
    def cors_allow_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_allow_origins_raw.strip() in {"", "*"}:
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins_raw.split(",") if origin.strip()]

    @property
    def resolved_docs_url(self) -> Optional[str]:
        """Return documentation URL when docs are enabled."""
        return (self.docs_url or "/docs") if self.enable_docs else None

    @property
    def mail_configured(self) -> bool:
        return bool(self.resend_api_key and self.resend_sender_email)

    @property
    def calendar_configured(self) -> bool:
        """Flag indicating Google OAuth credentials are present."""
        return bool(self.google_client_id and self.google_client_secret and self.google_redirect_uri)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
