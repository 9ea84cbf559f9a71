"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Tag Admin happen here. No module should
call os.getenv() or os.environ.get() directly -- build a Settings object (or
call get_settings() at process bootstrap) and pass it to constructors.

Design patterns used:
  Frozen settings object: Settings is immutable once constructed. TokenService,
      SessionRegistry and create_app() receive it explicitly instead of reading
      ambient globals, so tests can build a Settings(...) with their own values.

  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call. Only process bootstrap (main.py, uvicorn factory) uses it.

  Env file layering: `.env` is always read, then `.env.dev` when
      APP_ENV=development, otherwise `.env.prod`. Later files win.

Secret policy:
  DEBUG=true: missing JWT / session secrets are generated with a warning.
      Tokens will not survive restart -- acceptable for local dev.
  Otherwise a missing secret is a hard startup failure.
  Secrets shorter than 32 chars are rejected outright in both modes.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
cache/, or tags/.
"""

import logging
import os
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("tagadmin.config")

_ENV_FILES = (".env", ".env.dev" if os.environ.get("APP_ENV") == "development" else ".env.prod")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'tagadmin.db'}"

_SECRET_FIELDS = ("jwt_access_token_secret", "jwt_refresh_token_secret", "session_secret_key")

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files.

    Field names map to upper-cased env var names, e.g. `jwt_access_token_secret`
    reads JWT_ACCESS_TOKEN_SECRET and `app_port` reads APP_PORT.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    app_host: str = "127.0.0.1"
    app_port: int = 3000
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # JWT
    # ------------------------------------------------------------------

    # Empty string is the "not configured" sentinel; see the validators below.
    jwt_access_token_secret: str = ""
    jwt_refresh_token_secret: str = ""
    jwt_access_token_expires_in: int = 3600
    jwt_refresh_token_expires_in: int = 7 * 24 * 3600

    # ------------------------------------------------------------------
    # Redis
    # ------------------------------------------------------------------

    redis_url: str = "redis://localhost:6379/0"
    redis_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Sessions / CAPTCHA
    # ------------------------------------------------------------------

    session_secret_key: str = ""
    secure_cookies: bool = False
    captcha_expires_in: int = 60

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="before")
    @classmethod
    def fill_dev_secrets(cls, data: Any) -> Any:
        """Generate missing secrets in DEBUG mode.

        Runs before field validation because the model is frozen: the raw
        input dict is the last place a value can still be filled in.
        """
        if not isinstance(data, dict):
            return data
        if str(data.get("debug", "")).strip().lower() not in _TRUTHY:
            return data
        for name in _SECRET_FIELDS:
            if not data.get(name):
                data[name] = secrets.token_hex(32)
                logger.warning("Using auto-generated %s. Tokens will not persist across restarts.", name.upper())
        return data

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Refuse to start without secrets outside DEBUG mode; reject short secrets."""
        for name in _SECRET_FIELDS:
            value = getattr(self, name)
            if not value:
                raise ValueError(
                    f"{name.upper()} is required in production mode. "
                    "Set it in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            if len(value) < 32:
                raise ValueError(f"{name.upper()} must be at least 32 characters.")
        if self.jwt_access_token_expires_in <= 0 or self.jwt_refresh_token_expires_in <= 0:
            raise ValueError("JWT expiry values must be positive.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings singleton.

    In tests: build Settings(...) directly, or call get_settings.cache_clear()
    after changing the environment.
    """
    return Settings()
