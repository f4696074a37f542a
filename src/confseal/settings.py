"""
Application settings using Pydantic.

Provides environment-based configuration loading with CONFSEAL_ prefix.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CONFSEAL_",
        extra="ignore",
    )

    # Document
    config_path: Path = Path("confseal.conf")
    prefix: str = "confseal"
    factory: str = "confseal.document.models:ServiceConfig"

    # Secret stores
    env_secrets: bool = True
    env_secrets_prefix: str = ""
    credentials_file: Path | None = None
    vault_enabled: bool = False
    vault_mount_point: str = "secret"
    vault_namespace: str | None = None

    # Logging
    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
