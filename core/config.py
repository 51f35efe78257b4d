"""
core/config.py -- Library service settings (pydantic-settings).

Every environment variable the service reads is declared on Settings below;
other modules call get_settings() rather than touching os.environ.

  get_settings() is wrapped in lru_cache, so the first call builds Settings
      and every later call returns that same object.

  Field names map one-to-one onto environment variables or .env entries:
      secret_key <- SECRET_KEY, token_ttl_seconds <- TOKEN_TTL_SECONDS,
      database_url <- DATABASE_URL, login_rate_limit <- LOGIN_RATE_LIMIT.

  validate_secret_key() applies the key policy after field parsing: a dev
      key is generated under DEBUG, a production start without one fails.

The secret key and TTL are read here once and handed to auth.tokens.TokenCodec
by the application lifespan. Nothing in auth/ reads settings at import time.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or catalog/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("library.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'library.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Fixed session lifetime. Every token expires this many seconds after
    # login; there is no per-user override and no refresh.
    token_ttl_seconds: int = 3600

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters, and a
            non-positive token lifetime.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Sessions will not persist across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.token_ttl_seconds <= 0:
            raise ValueError("TOKEN_TTL_SECONDS must be positive.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings.

    The result is cached; tests that change the environment afterwards must
    call get_settings.cache_clear().
    """
    return Settings()
