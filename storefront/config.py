"""
Configuration and settings for the storefront API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api/v1")

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    seed_file: Optional[str] = Field(default=None)
    log_level: str = Field(default="INFO")

    # Tokens
    jwt_secret: str = Field(
        default="storefront-development-secret-change-me-in-production"
    )
    jwt_algorithm: str = Field(default="HS256")
    access_token_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)
    refresh_token_ttl_seconds: int = Field(default=7 * 24 * 60 * 60, gt=0)

    # Password hashing cost factor (bcrypt accepts 4-31)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
