"""
Formloop — Application Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
FastAPI dependency-injection (and any other call-site) always receives the same
validated instance without re-parsing the environment on every request.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.services import aggregation


class Settings(BaseSettings):
    """Central configuration for the Formloop service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Record store
    # ------------------------------------------------------------------ #
    STORE_BACKEND: str = "sql"  # "sql" | "memory"
    DATABASE_URL: str = "sqlite+aiosqlite:///./formloop.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5
    SEED_DEMO_DATA: bool = False

    # ------------------------------------------------------------------ #
    # Aggregation defaults (request-level overrides are allowed)
    # ------------------------------------------------------------------ #
    DEFAULT_ACTIVITY_DAYS: int = aggregation.DEFAULT_ACTIVITY_DAYS
    DEFAULT_RECENT_LIMIT: int = aggregation.DEFAULT_RECENT_LIMIT

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # ------------------------------------------------------------------ #
    # CORS
    # ------------------------------------------------------------------ #
    ALLOWED_ORIGINS: str = "*"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list split on commas."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def async_database_url(self) -> str:
        """DATABASE_URL with a plain ``postgresql://`` scheme upgraded to asyncpg."""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @field_validator("STORE_BACKEND")
    @classmethod
    def _backend_must_be_known(cls, v: str) -> str:
        v = v.lower()
        if v not in ("sql", "memory"):
            raise ValueError(f"STORE_BACKEND must be 'sql' or 'memory', got {v!r}")
        return v

    @field_validator("DEFAULT_ACTIVITY_DAYS", "DEFAULT_RECENT_LIMIT")
    @classmethod
    def _must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Value must be non-negative, got {v}")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime::

        from app.config import get_settings
        settings = get_settings()
    """
    return Settings()
