"""Configuration module for the invoicing service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from invoicing.core.exceptions import ConfigurationError

load_dotenv()

NUMBER_PERIODS = {"year", "month"}


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
    JWT_SECRET: str
    JWT_ACCESS_TTL_MINUTES: int
    JWT_REFRESH_TTL_DAYS: int
    JWT_PERMISSIONS_VERSION: int
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str
    INVOICE_ALLOCATION_MAX_ATTEMPTS: int
    INVOICE_STORE_MAX_RETRIES: int
    INVOICE_STORE_RETRY_BACKOFF_SECONDS: float
    INVOICE_NUMBER_PERIOD: str
    INVOICE_SEQUENCE_WIDTH: int
    INVOICE_NUMBER_CLIENT_CODE: bool
    INVOICE_VIEW_BATCH_SIZE: int

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=False)

    config = Config(
        APP_NAME="Invoicing",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./invoicing.db"),
        DB_CONNECTIVITY_REQUIRED=_as_bool(
            os.getenv("DB_CONNECTIVITY_REQUIRED"), default=(resolved_env == "production")
        ),
        JWT_SECRET=os.getenv("JWT_SECRET", "change_me_jwt_secret"),
        JWT_ACCESS_TTL_MINUTES=int(os.getenv("JWT_ACCESS_TTL_MINUTES", "15")),
        JWT_REFRESH_TTL_DAYS=int(os.getenv("JWT_REFRESH_TTL_DAYS", "14")),
        JWT_PERMISSIONS_VERSION=int(os.getenv("JWT_PERMISSIONS_VERSION", "1")),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
        INVOICE_ALLOCATION_MAX_ATTEMPTS=int(os.getenv("INVOICE_ALLOCATION_MAX_ATTEMPTS", "5")),
        INVOICE_STORE_MAX_RETRIES=int(os.getenv("INVOICE_STORE_MAX_RETRIES", "2")),
        INVOICE_STORE_RETRY_BACKOFF_SECONDS=float(os.getenv("INVOICE_STORE_RETRY_BACKOFF_SECONDS", "0.05")),
        INVOICE_NUMBER_PERIOD=os.getenv("INVOICE_NUMBER_PERIOD", "year").strip().lower(),
        INVOICE_SEQUENCE_WIDTH=int(os.getenv("INVOICE_SEQUENCE_WIDTH", "4")),
        INVOICE_NUMBER_CLIENT_CODE=_as_bool(os.getenv("INVOICE_NUMBER_CLIENT_CODE"), default=False),
        INVOICE_VIEW_BATCH_SIZE=int(os.getenv("INVOICE_VIEW_BATCH_SIZE", "100")),
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

    if config.JWT_ACCESS_TTL_MINUTES < 1:
        raise ConfigurationError("JWT_ACCESS_TTL_MINUTES must be >= 1.")
    if config.JWT_REFRESH_TTL_DAYS < 1:
        raise ConfigurationError("JWT_REFRESH_TTL_DAYS must be >= 1.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.INVOICE_ALLOCATION_MAX_ATTEMPTS < 1:
        raise ConfigurationError("INVOICE_ALLOCATION_MAX_ATTEMPTS must be >= 1.")
    if config.INVOICE_STORE_MAX_RETRIES < 0:
        raise ConfigurationError("INVOICE_STORE_MAX_RETRIES must be >= 0.")
    if config.INVOICE_STORE_RETRY_BACKOFF_SECONDS < 0:
        raise ConfigurationError("INVOICE_STORE_RETRY_BACKOFF_SECONDS must be >= 0.")
    if config.INVOICE_NUMBER_PERIOD not in NUMBER_PERIODS:
        raise ConfigurationError("INVOICE_NUMBER_PERIOD must be one of year/month.")
    if not 1 <= config.INVOICE_SEQUENCE_WIDTH <= 9:
        raise ConfigurationError("INVOICE_SEQUENCE_WIDTH must be between 1 and 9.")
    if config.INVOICE_VIEW_BATCH_SIZE < 1:
        raise ConfigurationError("INVOICE_VIEW_BATCH_SIZE must be >= 1.")
    if config.is_production and "change_me" in config.JWT_SECRET.lower():
        raise ConfigurationError("Production JWT_SECRET uses placeholder value.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
