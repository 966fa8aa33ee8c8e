"""
Application Configuration

Settings class using pydantic-settings for environment variable loading.
Defines the media directories, the external tool locations and the
HTTP bind address.
"""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables carrying the
    STREAMIN_ prefix. For example, processed_dir can be set via
    STREAMIN_PROCESSED_DIR.
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="streamin", description="Application name")
    version: str = Field(default="0.1.0", description="API version")
    log_level: str = Field(default="INFO", description="Root logging level")

    # HTTP
    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8080, description="Bind port")

    # Media directories
    unprocessed_dir: Path = Field(
        default=Path("media/unprocessed"),
        description="Directory holding source files waiting for conversion",
    )
    processed_dir: Path = Field(
        default=Path("media/processed"),
        description="Directory receiving one DASH package per converted source",
    )
    temp_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Scratch directory for intermediate split and fragment files",
    )

    # External tools
    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")
    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")
    mp4fragment_path: str = Field(
        default="mp4fragment", description="Bento4 mp4fragment executable"
    )
    mp4dash_path: str = Field(default="mp4dash", description="Bento4 mp4dash executable")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Uses lru_cache to ensure settings are only loaded once per process.
    Tests that change the environment call get_settings.cache_clear().

    Returns:
        Settings: Application settings instance

    Example:
        >>> settings = get_settings()
        >>> print(settings.port)
        8080
    """
    return Settings()
