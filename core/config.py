"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the account service happen here. No module
should call os.getenv() or os.environ.get() directly -- the composition root
(api/main.py, main.py) calls get_settings() and hands plain values to each
service constructor.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  frozen=True: the settings object is read-only once constructed. Every
      request reads the same secret, lifetimes and cost factors.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. HS256 token signing
  relies on key entropy -- a short key weakens every issued token.

  In production mode (DEBUG not set or false), a missing SECRET_KEY is a hard
  startup failure. Tokens signed with a random per-process key would all be
  invalidated on restart.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("storybook.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'storybook_accounts.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the "not configured" sentinel; the validator below either
    # generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    access_token_expire_seconds: int = Field(default=15 * 60, gt=0)
    refresh_token_expire_seconds: int = Field(default=7 * 24 * 3600, gt=0)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    salt_length: int = Field(default=16, ge=1, le=64)
    # salt + password must fit in the 72 bytes bcrypt reads.
    min_password_length: int = Field(default=8, ge=1, le=72)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # User store
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="before")
    @classmethod
    def fill_secret_key(cls, data):
        """Generate a throwaway SECRET_KEY in dev mode.

        Runs before field validation because the model is frozen and cannot be
        patched afterwards. Only fires when DEBUG is truthy and no key is set.
        """
        if not isinstance(data, dict):
            return data
        debug = str(data.get("debug", data.get("DEBUG", ""))).strip().lower() in ("1", "true", "yes", "on")
        if debug and not (data.get("secret_key") or data.get("SECRET_KEY")):
            data = dict(data)
            data["secret_key"] = secrets.token_hex(32)
            logger.warning("WARNING: Using auto-generated SECRET_KEY. Tokens will not survive a restart.")
        return data

    @model_validator(mode="after")
    def validate_security(self) -> "Settings":
        """Refuse to start with an unusable signing key or inverted lifetimes."""
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required in production mode. "
                "Set SECRET_KEY in your environment or .env file. "
                "To run in development mode, set DEBUG=true."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.refresh_token_expire_seconds < self.access_token_expire_seconds:
            raise ValueError("REFRESH_TOKEN_EXPIRE_SECONDS must not be shorter than ACCESS_TOKEN_EXPIRE_SECONDS.")
        if self.salt_length + self.min_password_length > 72:
            raise ValueError("SALT_LENGTH + MIN_PASSWORD_LENGTH must not exceed 72 (bcrypt input limit).")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
