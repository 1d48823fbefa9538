"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Gatehouse happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      startup path (api/main.py lifespan, main.py CLI) calls it. Request
      handling code receives the token issuer/verifier and the password hasher
      already constructed from this object; nothing reads secrets per request.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  @model_validator(mode="after"): Cross-field validation of the two signing
      secrets. Dev mode generates them with a warning, production mode refuses
      to start without them.

Security notes:
  [S1] Each signing secret shorter than 32 chars is rejected outright.

  [S2] In production mode (DEBUG not set or false), a missing secret is a
       hard startup failure. Token issuance is impossible without it, so the
       process must not come up half-working.

  [S3] ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ. With equal
       secrets a refresh token would still verify against the access key
       (the typ claim is then the only separation left).

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("gatehouse.config")

_DEFAULT_DB_URL = "sqlite:///gatehouse.db"


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
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Token signing -- empty string is the "not configured" sentinel
    # ------------------------------------------------------------------

    access_token_secret: str = ""
    refresh_token_secret: str = ""
    access_token_ttl_seconds: int = Field(default=15 * 60, gt=0)
    refresh_token_ttl_seconds: int = Field(default=7 * 24 * 3600, gt=0)

    # ------------------------------------------------------------------
    # Password hashing
    # ------------------------------------------------------------------

    # bcrypt cost factor (log2 of the iteration count). Tests drop this to 4.
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_token_secrets(self) -> "Settings":
        """Enforce the signing secret policy [S1] [S2] [S3].

        Dev mode (DEBUG=true): auto-generate any missing secret with a warning.
            Issued tokens will not survive a restart.

        Production mode: refuse to start if either secret is missing.
        """
        for name in ("access_token_secret", "refresh_token_secret"):
            if getattr(self, name):
                continue
            env_name = name.upper()
            if not self.debug:
                raise ValueError(
                    f"{env_name} is required in production mode. "
                    f"Set {env_name} in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            setattr(self, name, secrets.token_hex(32))
            logger.warning("WARNING: Using auto-generated %s. Tokens will not persist across restarts.", env_name)

        if len(self.access_token_secret) < 32 or len(self.refresh_token_secret) < 32:
            raise ValueError("Token signing secrets must be at least 32 characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
