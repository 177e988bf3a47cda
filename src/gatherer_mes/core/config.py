"""Centralized application settings using pydantic-settings.

All environment variable reads are consolidated here. Import `get_settings`
from this module rather than reading os.environ directly.
"""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All env vars are prefixed with GATHERER_ (case-insensitive).
    """

    model_config = SettingsConfigDict(
        env_prefix="GATHERER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_version: str = "0.1.0"

    # Database
    database_url: str = "sqlite+aiosqlite:///./gatherer_mes.db"
    db_echo: bool = False
    pool_size: int = 50

    # Startup
    seed_defaults: bool = True
    create_schema: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 19080

    # Logging
    log_format: Literal["console", "json"] = "console"
    log_level: str = "INFO"

    @field_validator("pool_size")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        """PostgreSQL allows 100 connections by default."""
        if v < 1 or v > 100:
            raise ValueError("pool_size must be between 1 and 100")
        return v


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings singleton."""
    return Settings()
