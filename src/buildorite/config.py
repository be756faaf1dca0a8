"""Runtime configuration for the trip tools.

Values come from the environment or a local ``.env`` file. ``get_settings()``
parses them once per process; ``validate_credentials()`` is the startup check
that refuses to run against the trip service without a token in production.
Nothing else in ``buildorite`` is imported here.
"""

from __future__ import annotations

import sys
from functools import lru_cache

import structlog
from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Trip service connection and view settings.

    The bearer token is a ``SecretStr`` so it never shows in reprs or logs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    production: bool = False

    # Trip service
    trip_api_base_url: str = "http://localhost:3000/api/v1"
    trip_api_token: SecretStr = SecretStr("")
    request_timeout: float = 30.0

    # Schedule views
    upcoming_horizon_days: int = 7

    @field_validator("trip_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    """Parse settings once; tests reset with ``get_settings.cache_clear()``.

    Exits with status 1 when a value fails validation.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # exc.errors() only; str(exc) can echo the raw token.
        logger.error("settings_invalid", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Check that the trip service token is configured.

    Production runs stop with exit status 1 and a summary on stderr.
    Development runs log a warning and carry on, which lets the CLI talk to
    a local backend that does not check tokens.

    Args:
        settings: Loaded settings.
    """
    if settings.trip_api_token.get_secret_value():
        logger.info("credentials_present", base_url=settings.trip_api_base_url)
        return

    problem = "TRIP_API_TOKEN is empty or not set"
    if not settings.production:
        logger.warning("credentials_missing_dev", detail=problem)
        return

    logger.error("credentials_missing", detail=problem)
    print(
        f"\nbuildorite-trips: cannot start in production mode.\n  - {problem}\n",
        file=sys.stderr,
    )
    sys.exit(1)
