"""
Application configuration using Pydantic Settings.

All settings are loaded from environment variables or .env file.
Defaults point at the public Crime Open Database project on OSF.
"""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OSFSettings(BaseSettings):
    """Open Science Framework API settings."""

    api_url: str = "https://api.osf.io/v2"
    project_id: str = "zyaqn"
    timeout: int = 60
    max_retries: int = 3
    backoff_base: float = 2.0
    chunk_size: int = 1024 * 1024
    page_size: int = 100

    model_config = SettingsConfigDict(env_prefix="OSF_")

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def docs_url(self) -> str:
        """Human-facing page describing the available data."""
        return f"https://osf.io/{self.project_id}/"


class CacheSettings(BaseSettings):
    """
    Result cache configuration.

    Leave ``dir`` unset for a per-process cache that is removed when the
    interpreter exits; set it to keep results across sessions.
    """

    dir: Optional[str] = None
    lock_timeout: float = 60.0

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    @field_validator("dir", mode="before")
    @classmethod
    def none_when_empty(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    file: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main application settings - aggregates all sub-settings."""

    osf: OSFSettings = OSFSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def setup(self) -> None:
        """Initialize application: create the cache directory and log directory."""
        if self.cache.dir:
            Path(self.cache.dir).mkdir(parents=True, exist_ok=True)
        if self.logging.file:
            Path(self.logging.file).parent.mkdir(parents=True, exist_ok=True)


# Global settings instance - import this in other modules
settings = Settings()
