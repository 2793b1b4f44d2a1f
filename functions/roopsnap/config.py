"""
Configuration and settings for the studio site backend.
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

    api_prefix: str = Field(default="/api")

    # Document database (MongoDB)
    mongodb_uri: Optional[str] = Field(default=None)
    mongodb_db_name: str = Field(default="roopsnap")

    # Relational photo table (Postgres, e.g. Supabase)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible object storage for photo uploads
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_bucket: str = Field(default="photos")
    storage_public_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Local JSON fallback
    data_dir: str = Field(default="data")

    log_level: str = Field(default="INFO")

    @property
    def object_storage_configured(self) -> bool:
        return bool(
            self.storage_endpoint
            and self.aws_access_key_id
            and self.aws_secret_access_key
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
