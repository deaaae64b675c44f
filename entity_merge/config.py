"""
Configuration management for the entity merge & canonicalization core.

Uses pydantic-settings for type-safe configuration with environment variable support.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    user: str = "travel_content"
    password: str = ""  # Required: Set POSTGRES_PASSWORD in .env
    host: str = "localhost"
    port: int = 5432
    db: str = "travel_content"

    # Full URL override, e.g. sqlite:///:memory: for tests
    url_override: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    @property
    def url(self) -> str:
        """Construct database URL."""
        if self.url_override:
            return self.url_override
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"


class MergeSettings(BaseSettings):
    """Duplicate detection and merge settings."""

    model_config = SettingsConfigDict(
        env_prefix="ENTITY_MERGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    # Feature flags, opt-in. The ENABLE_* names are the platform-wide ones.
    enabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("ENABLE_ENTITY_MERGE", "ENTITY_MERGE_ENABLED"),
    )
    auto_suggest: bool = Field(
        default=False,
        validation_alias=AliasChoices("ENABLE_MERGE_AUTO_SUGGEST", "ENTITY_MERGE_AUTO_SUGGEST"),
    )

    # Redirect resolution
    max_redirect_depth: int = 5

    # Detection thresholds
    fuzzy_threshold: float = 0.85
    location_name_threshold: float = 0.8
    location_match_threshold: float = 0.85

    # Optional JSON alias table ({"canonical": ["alias", ...]})
    alias_file: Optional[Path] = None

    # Threads used when scanning several entity types at once
    scan_workers: int = 4

    @field_validator("fuzzy_threshold", "location_name_threshold", "location_match_threshold")
    @classmethod
    def check_ratio(cls, v: float) -> float:
        """Similarity thresholds live in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {v}")
        return v

    @field_validator("max_redirect_depth", "scan_workers")
    @classmethod
    def check_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be at least 1, got {v}")
        return v


class Settings(BaseSettings):
    """Main settings class that combines all settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    merge: MergeSettings = Field(default_factory=MergeSettings)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None  # e.g. logs/entity_merge.log; stderr only when unset


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience access
settings = get_settings()
