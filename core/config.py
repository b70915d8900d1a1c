"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for TodoAuth happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, jwt_issuer -> JWT_ISSUER).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode generates a signing key with a
      warning; production mode refuses to start without one.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. HS256 signing
       relies on key entropy -- a short key weakens every issued token.

  [M7] A missing SECRET_KEY, JWT_ISSUER or JWT_AUDIENCE outside DEBUG mode is
       a hard startup failure. get_settings() surfaces it as ConfigurationError
       so the ASGI lifespan aborts before any request is accepted.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
store/, or todo/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("todoauth.config")

MIN_SECRET_LENGTH = 32


class ConfigurationError(RuntimeError):
    """Raised when the service cannot start with the supplied configuration."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `hash_iterations` from HASH_ITERATIONS.
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

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    jwt_issuer: str = ""
    jwt_audience: str = ""
    # 15 minutes. There is no revocation list, so the TTL is the only bound on
    # how long a leaked token stays usable.
    token_expire_seconds: int = 900
    clock_skew_seconds: int = 0

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    admin_role: str = "Administrator"
    default_role: str = "User"
    allow_self_delete: bool = False

    # ------------------------------------------------------------------
    # Password hashing
    # ------------------------------------------------------------------

    hash_iterations: int = 10_000

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # First-run admin account (both empty = disabled)
    # ------------------------------------------------------------------

    bootstrap_admin_username: str = ""
    bootstrap_admin_password: str = ""

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M6][M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < MIN_SECRET_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters.")
        return self

    @model_validator(mode="after")
    def validate_token_fields(self) -> "Settings":
        """Issuer and audience are checked on every request; both are mandatory."""
        if not self.jwt_issuer:
            raise ValueError("JWT_ISSUER is required.")
        if not self.jwt_audience:
            raise ValueError("JWT_AUDIENCE is required.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        if self.clock_skew_seconds < 0:
            raise ValueError("CLOCK_SKEW_SECONDS must not be negative.")
        if self.hash_iterations < 1:
            raise ValueError("HASH_ITERATIONS must be at least 1.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    Validation failures are re-raised as ConfigurationError; callers at startup
    let it propagate so the process never serves traffic misconfigured.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
