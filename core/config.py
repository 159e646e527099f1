"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Storefront happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Dev mode generates a signing secret with a warning; production
      mode refuses to start without one. RS256 requires both PEM keys.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy -- a short key makes refresh tokens forgeable.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("storefront.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'storefront_auth.db'}"

_SUPPORTED_ALGORITHMS = ("HS256", "RS256")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (with DEBUG=true set).
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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Token signing
    # ------------------------------------------------------------------

    jwt_algorithm: str = "HS256"
    # Empty string is the sentinel for "not configured". The validator below
    # either generates a dev key or raises, so HS256 callers never see "".
    secret_key: str = ""
    # PEM-encoded keys, only read when jwt_algorithm is RS256.
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # 15 minutes / 1 year
    access_token_ttl_seconds: int = 15 * 60
    refresh_token_ttl_seconds: int = 365 * 24 * 60 * 60

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_signing_keys(self) -> "Settings":
        """Enforce the signing key policy.

        HS256, dev mode (DEBUG=true): auto-generate a random secret with a
            warning. Issued tokens will not survive restart.

        HS256, production mode: refuse to start without SECRET_KEY, and
            reject keys shorter than 32 characters.

        RS256: both JWT_PRIVATE_KEY and JWT_PUBLIC_KEY must be present.
        """
        if self.jwt_algorithm not in _SUPPORTED_ALGORITHMS:
            raise ValueError(f"JWT_ALGORITHM must be one of {_SUPPORTED_ALGORITHMS}, got {self.jwt_algorithm!r}.")

        if self.access_token_ttl_seconds <= 0 or self.refresh_token_ttl_seconds <= 0:
            raise ValueError("Token TTLs must be positive.")

        if self.jwt_algorithm == "RS256":
            if not self.jwt_private_key or not self.jwt_public_key:
                raise ValueError("RS256 requires both JWT_PRIVATE_KEY and JWT_PUBLIC_KEY.")
            return self

        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Issued tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
