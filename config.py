"""
Configuration settings for topicdrill.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from topicdrill.scheduling.memory_model import FSRSParameters


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    storage_backend: Literal["github", "local"] = Field(
        default="github",
        description="Where the progress file lives",
    )
    progress_file_path: str = Field(
        default="progress.json",
        description="Path of the progress file inside the storage backend",
    )
    local_storage_dir: Path = Field(
        default=Path.home() / ".topicdrill",
        description="Root directory for the local storage backend",
    )

    # ========================================
    # GitHub
    # ========================================
    github_repo: str = Field(
        default="",
        description="Repository holding the progress file (owner/name)",
    )
    github_token: str = Field(
        default="",
        description="GitHub personal access token with contents write access",
    )
    github_api_base: str = Field(
        default="https://api.github.com/repos",
        description="Base URL of the GitHub repos API",
    )
    github_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for GitHub requests",
    )

    # ========================================
    # Question Bank
    # ========================================
    question_bank_path: Path = Field(
        default=Path("IB.json"),
        description="JSON question bank (module -> topic -> [questions])",
    )
    problem_viewer_url: str = Field(
        default="https://camcribs.com/viewer",
        description="Past-paper viewer used for problem links",
    )

    # ========================================
    # FSRS Settings (for spaced repetition)
    # ========================================
    fsrs_desired_retention: float = Field(
        default=0.9,
        gt=0,
        lt=1,
        description="Target retention rate for scheduling",
    )
    fsrs_maximum_interval: int = Field(
        default=36500,
        ge=1,
        description="Longest allowed review interval (days)",
    )

    # ========================================
    # Sessions
    # ========================================
    session_default_size: int = Field(
        default=3,
        ge=1,
        description="Number of problems per session",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for topic shuffling and question picks (None for random)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def fsrs_parameters(self) -> FSRSParameters:
        """Build the FSRS parameters for this configuration."""
        from topicdrill.scheduling.memory_model import FSRSParameters

        return FSRSParameters(
            request_retention=self.fsrs_desired_retention,
            maximum_interval=self.fsrs_maximum_interval,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
