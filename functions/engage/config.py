"""
Configuration and settings for the classroom engagement backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Document store (any SQLAlchemy URL; Postgres expected)
    database_url: Optional[str] = Field(default=None)
    transaction_max_attempts: int = Field(default=5)

    # Real-time change feed and live game rooms (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_channel_prefix: str = Field(default="engage:")

    # S3-compatible storage for badge images and contest photos
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    storage_public_base_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "ENGAGE_USE_IN_MEMORY_BACKENDS", "USE_IN_MEMORY_BACKENDS"
        ),
    )

    # Classroom rules
    leadergrid_cooldown_seconds: int = Field(default=180)
    history_limit: int = Field(default=50)
    leaderboard_limit: int = Field(default=10)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
