"""
ImportSync Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


class WatcherSettings(BaseSettings):
    """File watcher configuration settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    debounce_delay_ms: int = Field(default=100, ge=0, le=5000)
    recursive: bool = Field(default=True)
    observer_join_timeout: float = Field(default=5.0, ge=0.0)


class DiscoverySettings(BaseSettings):
    """Partial discovery and import-identifier policy."""

    model_config = SettingsConfigDict(env_prefix="DISCOVERY_")

    partials_only: bool = Field(
        default=True,
        description="Only underscore-prefixed partials qualify for import",
    )
    import_base: Literal["watch_dir", "root_dir"] = Field(
        default="watch_dir",
        description="Directory that import identifiers are made relative to",
    )


class SyncSettings(BaseSettings):
    """Target file and project configuration settings."""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    target_at_root: bool = Field(
        default=False,
        description="Require the target stylesheet to sit directly inside root_dir",
    )
    config_file_name: str = Field(default=".scss-import-watcher-config.json")


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    # Application metadata
    app_name: str = Field(default="scss-import-sync")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    # Sub-settings
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()
