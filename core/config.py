"""
core/config.py -- Centralized service configuration via pydantic-settings.

All environment variable reads for the SSO service happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. token_ttl_seconds -> TOKEN_TTL_SECONDS). Type coercion is built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Unknown environments and out-of-range cost factors are a hard
      startup failure rather than a surprise at the first login.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sso.config")

ENV_LOCAL = "local"
ENV_DEV = "dev"
ENV_PROD = "prod"

_ENVIRONMENTS = (ENV_LOCAL, ENV_DEV, ENV_PROD)

# bcrypt accepts log2 work factors in this closed range.
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 31


class Settings(BaseSettings):
    """Service settings loaded from environment variables and .env file.

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

    env: str = ENV_LOCAL
    # Empty string means "derive from env" (DEBUG for local/dev, INFO for prod).
    log_level: str = ""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    storage_url: str = "sqlite:///./storage/sso.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_ttl_seconds: int = 3600
    # bcrypt.gensalt() default. Tests drop this to 4 to keep the suite fast.
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 8044
    # Per-call deadline handed to AuthService for every request.
    request_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_ranges(self) -> "Settings":
        """Reject settings the service cannot run with.

        env must be one of local/dev/prod. token TTL and request timeout must
        be positive. bcrypt_rounds must be a cost bcrypt accepts.
        """
        self.env = self.env.strip().lower()
        if self.env not in _ENVIRONMENTS:
            raise ValueError(f"ENV must be one of {', '.join(_ENVIRONMENTS)}; got {self.env!r}.")
        if self.token_ttl_seconds <= 0:
            raise ValueError("TOKEN_TTL_SECONDS must be greater than zero.")
        if self.request_timeout_seconds <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be greater than zero.")
        if not _MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= _MAX_BCRYPT_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be between {_MIN_BCRYPT_ROUNDS} and {_MAX_BCRYPT_ROUNDS}.")
        if self.env == ENV_PROD and self.bcrypt_rounds < 10:
            logger.warning("BCRYPT_ROUNDS=%d is below the recommended minimum of 10 for prod.", self.bcrypt_rounds)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
