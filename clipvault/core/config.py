"""Application configuration using Pydantic Settings.

Loads settings from environment variables and .env file.
All settings have sensible defaults for local development.
"""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from clipvault.services.extractors.base import DESKTOP_USER_AGENT

# Valid Python logging levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Extraction engine configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Logging ---
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level to uppercase.

        Falls back to INFO if an invalid level is provided.
        """
        normalized = v.upper().strip()
        if normalized not in VALID_LOG_LEVELS:
            # Logging may not be configured yet
            import sys

            print(
                f"WARNING: Invalid LOG_LEVEL '{v}'. "
                f"Valid levels are: {', '.join(sorted(VALID_LOG_LEVELS))}. "
                "Falling back to INFO.",
                file=sys.stderr,
            )
            return "INFO"
        return normalized

    def get_log_level_int(self) -> int:
        """Return the integer value of the configured log level."""
        return getattr(logging, self.log_level, logging.INFO)

    # --- Media storage ---
    # Filesystem root for downloaded media: {upload_dir}/videos, {upload_dir}/images
    upload_dir: str = "./uploads"
    # URL prefix under which upload_dir is served statically
    media_url_prefix: str = "/uploads"

    # --- Browser ---
    playwright_headless: bool = True
    user_agent: str = DESKTOP_USER_AGENT
    navigation_timeout_seconds: float = 30
    content_ready_timeout_seconds: float = 10

    # --- Downloads ---
    download_timeout_seconds: float = 60
    max_media_size_mb: int = 200
    max_concurrent_downloads: int = 1

    @field_validator("max_concurrent_downloads")
    @classmethod
    def validate_max_concurrent_downloads(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent_downloads must be at least 1")
        return v


settings = Settings()
