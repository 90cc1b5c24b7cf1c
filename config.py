"""
Configuration settings for drillcoach.

Uses Pydantic Settings for environment variable management with .env file support.
Tuning constants live in a nested, immutable AssignmentConfig and can be
overridden with DRILLCOACH_ASSIGNMENT__<SECTION>__<FIELD> variables, e.g.

    DRILLCOACH_ASSIGNMENT__SCORING__EXPLORATION_EPSILON=0.05
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from drillcoach.core.tuning import AssignmentConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DRILLCOACH_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///data/drillcoach.db",
        description="SQLAlchemy connection string (sqlite or postgresql)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Assignment
    # ========================================
    random_seed: int | None = Field(
        default=None,
        description="Seed for the exploration random source (None = nondeterministic)",
    )
    seed_demo_catalog: bool = Field(
        default=True,
        description="Load the demo drill catalog when the database has no drills",
    )
    assignment: AssignmentConfig = Field(
        default_factory=AssignmentConfig,
        description="Difficulty, struggle, scoring, confidence, XP and session tuning",
    )

    def get_logging_config(self) -> dict[str, str | None]:
        """Get logging configuration as a dictionary."""
        return {
            "level": self.log_level,
            "file": self.log_file,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
