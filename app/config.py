from __future__ import annotations

import os
from dataclasses import dataclass


def _normalize_database_url(url: str) -> str:
    # Render/Heroku sometimes provide postgres:// which SQLAlchemy expects as postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _env() -> str:
    return (os.getenv("APP_ENV", "dev") or "dev").strip().lower()


def is_production_env(env: str | None) -> bool:
    return (env or "").strip().lower() in ("prod", "production")


class Config:
    # Base directory of the backend (one level above this `app` package)
    BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    INSTANCE_DIR = os.path.join(BACKEND_DIR, 'instance')
    ENV = _env()
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    _default_sqlite_path = os.path.join(INSTANCE_DIR, 'rentals.db').replace('\\', '/')
    _db_url = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL") or f"sqlite:///{_default_sqlite_path}"
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(_db_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS: comma-separated origins for web builds (e.g. https://yourapp.web.app,https://yourdomain.com)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")

    LOG_LEVEL = (os.getenv("LOG_LEVEL", "INFO") or "INFO").strip().upper()


@dataclass
class MetaConfig:
    """Settings for the Meta Conversions API.

    Built once at startup and handed to `build_meta_client`; nothing reads
    these environment variables at import time.
    """

    access_token: str = ""
    pixel_id: str = ""
    api_version: str = "v18.0"
    environment: str = "dev"
    test_event_code: str = ""
    currency: str = "EGP"
    event_source_url: str = "https://openbeit.com"
    partner_agent: str = "openbeit-platform-v1.0"
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "MetaConfig":
        config = cls()
        config.access_token = (os.getenv("META_CONVERSIONS_API_ACCESS_TOKEN") or "").strip()
        config.pixel_id = (os.getenv("META_PIXEL_ID") or "").strip()
        config.environment = _env()
        config.test_event_code = (os.getenv("META_TEST_EVENT_CODE") or "").strip()

        if os.getenv("META_API_VERSION"):
            config.api_version = os.getenv("META_API_VERSION").strip()
        if os.getenv("META_CURRENCY"):
            config.currency = os.getenv("META_CURRENCY").strip().upper()
        if os.getenv("META_EVENT_SOURCE_URL"):
            config.event_source_url = os.getenv("META_EVENT_SOURCE_URL").strip()
        if os.getenv("META_PARTNER_AGENT"):
            config.partner_agent = os.getenv("META_PARTNER_AGENT").strip()
        raw_timeout = (os.getenv("META_TIMEOUT_SECONDS") or "").strip()
        if raw_timeout:
            try:
                config.timeout_seconds = float(raw_timeout)
            except ValueError:
                config.timeout_seconds = 10.0

        return config

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.pixel_id)

    @property
    def is_production(self) -> bool:
        return is_production_env(self.environment)

    @property
    def events_url(self) -> str:
        return f"https://graph.facebook.com/{self.api_version}/{self.pixel_id}/events"
