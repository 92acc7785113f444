"""Configuration module for the RenoLedger application."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from renoledger.core.exceptions import ConfigurationError

load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    DB_CONNECTIVITY_REQUIRED: bool
    SITE_ID: str
    RESEND_API_KEY: str | None
    RESEND_API_URL: str
    EMAIL_FROM: str
    EMAIL_TIMEOUT_SECONDS: int
    COMPANY_NAME: str
    COMPANY_ADDRESS: str
    COMPANY_PHONE: str
    PAYMENT_EMAIL: str
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def email_configured(self) -> bool:
        return bool(self.RESEND_API_KEY)


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=(resolved_env != "production"))

    config = Config(
        APP_NAME="RenoLedger",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./renoledger.db"),
        DB_CONNECTIVITY_REQUIRED=_as_bool(
            os.getenv("DB_CONNECTIVITY_REQUIRED"), default=(resolved_env == "production")
        ),
        SITE_ID=os.getenv("SITE_ID", "default").strip(),
        RESEND_API_KEY=os.getenv("RESEND_API_KEY") or None,
        RESEND_API_URL=os.getenv("RESEND_API_URL", "https://api.resend.com/emails"),
        EMAIL_FROM=os.getenv("EMAIL_FROM", "AI Reno Demo <invoices@airenodemo.com>"),
        EMAIL_TIMEOUT_SECONDS=int(os.getenv("EMAIL_TIMEOUT_SECONDS", "30")),
        COMPANY_NAME=os.getenv("COMPANY_NAME", "AI Reno Demo Inc."),
        COMPANY_ADDRESS=os.getenv("COMPANY_ADDRESS", "123 Innovation Drive, Greater Ontario Area N0N 0N0"),
        COMPANY_PHONE=os.getenv("COMPANY_PHONE", "(555) 123-4567"),
        PAYMENT_EMAIL=os.getenv("PAYMENT_EMAIL", "payments@airenodemo.com"),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)

    if not config.SITE_ID:
        raise ConfigurationError("SITE_ID must not be empty.")
    if config.EMAIL_TIMEOUT_SECONDS < 1:
        raise ConfigurationError("EMAIL_TIMEOUT_SECONDS must be >= 1.")
    if not config.API_PREFIX.startswith("/"):
        raise ConfigurationError("API_PREFIX must start with '/'.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and "change_me" in config.DATABASE_URL.lower():
        raise ConfigurationError("Production DATABASE_URL uses placeholder credentials.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
