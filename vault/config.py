"""
Configuration and settings for the storage service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Firebase Realtime Database
    firebase_database_url: Optional[str] = Field(
        default=None, env="FIREBASE_DATABASE_URL"
    )
    firebase_credentials_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "firebase_credentials_path", "GOOGLE_APPLICATION_CREDENTIALS"
        ),
    )

    # Self-hosted alternative (any SQLAlchemy URL)
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # External file host (catbox-compatible API)
    file_host_url: str = Field(
        default="https://catbox.moe/user/api.php", env="FILE_HOST_URL"
    )
    file_host_userhash: Optional[str] = Field(default=None, env="FILE_HOST_USERHASH")
    request_timeout_seconds: float = Field(default=30.0, env="REQUEST_TIMEOUT_SECONDS")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "use_in_memory_backends", "VAULT_USE_IN_MEMORY_BACKENDS"
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
