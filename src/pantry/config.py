"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates storage locations and provides typed access to settings.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    """Durable per-user data area (XDG_DATA_HOME or ~/.local/share)."""
    xdg = os.environ.get("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def _default_legacy_dir() -> Path:
    """Reclaimable per-user cache area (XDG_CACHE_HOME or ~/.cache)."""
    xdg = os.environ.get("XDG_CACHE_HOME")
    return Path(xdg) if xdg else Path.home() / ".cache"


class Settings(BaseSettings):
    """Cache settings loaded from environment variables.

    Optional:
        PANTRY_DATA_DIR: Primary root; every write lands here
        PANTRY_LEGACY_DIR: Legacy root; read-only fallback for older installs
        PANTRY_NAMESPACE: Directory name under each root
        PANTRY_DEFAULT_TTL: Seconds until expiry when a caller gives none
        LOG_LEVEL: Logging level
        LOG_FILE: JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage roots
    PANTRY_DATA_DIR: Path = Field(
        default_factory=_default_data_dir,
        description="Primary (durable) storage root",
    )
    PANTRY_LEGACY_DIR: Path = Field(
        default_factory=_default_legacy_dir,
        description="Legacy (read-only) storage root",
    )
    PANTRY_NAMESPACE: str = Field(
        default="pantry",
        description="Directory name used under each root",
    )

    # Expiry
    PANTRY_DEFAULT_TTL: float | None = Field(
        default=None,
        description="Default time-to-live in seconds (unset = never expires)",
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @field_validator("PANTRY_NAMESPACE")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Validate that the namespace is a single path component."""
        v = v.strip()
        if not v or v in (".", "..") or "/" in v or "\\" in v or "\x00" in v:
            raise ValueError(
                "PANTRY_NAMESPACE must be a single, non-empty directory name"
            )
        return v

    @field_validator("PANTRY_DEFAULT_TTL")
    @classmethod
    def validate_default_ttl(cls, v: float | None) -> float | None:
        """Validate that a default TTL, when set, is positive."""
        if v is not None and v <= 0:
            raise ValueError("PANTRY_DEFAULT_TTL must be a positive number of seconds")
        return v

    @property
    def primary_dir(self) -> Path:
        """Namespaced directory in the primary root."""
        return self.PANTRY_DATA_DIR / self.PANTRY_NAMESPACE

    @property
    def legacy_dir(self) -> Path:
        """Namespaced directory in the legacy root."""
        return self.PANTRY_LEGACY_DIR / self.PANTRY_NAMESPACE

    def ensure_directories(self) -> None:
        """Create the primary directory if it doesn't exist.

        The legacy directory is never created here; it only exists on
        installations that wrote to it in the past.
        """
        self.primary_dir.mkdir(parents=True, exist_ok=True)

    def display(self) -> dict[str, str | float | None]:
        """Return settings as plain values for display."""
        return {
            "PANTRY_DATA_DIR": str(self.PANTRY_DATA_DIR),
            "PANTRY_LEGACY_DIR": str(self.PANTRY_LEGACY_DIR),
            "PANTRY_NAMESPACE": self.PANTRY_NAMESPACE,
            "PANTRY_DEFAULT_TTL": self.PANTRY_DEFAULT_TTL,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
