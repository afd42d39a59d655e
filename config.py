"""
Configuration settings for the tutoria service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Persistence
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".tutoria",
        description="Directory holding one JSON file per stored collection",
    )

    # ========================================
    # AI Integration (content generation)
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Generative AI (Gemini) API key",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language REST API",
    )
    ai_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used for placement tests and activities",
    )
    insights_model: str = Field(
        default="gemini-2.5-pro",
        description="Model used for tutor progress insights",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        description="Per-request timeout for generation calls",
    )
    retry_attempts: int = Field(
        default=3,
        description="Attempts per generation call on timeouts and 5xx errors",
    )

    # ========================================
    # Adaptive Practice
    # ========================================
    activity_queue_depth: int = Field(
        default=3,
        description="Number of uncompleted activities kept ready per student",
    )

    # ========================================
    # Tutor Access
    # ========================================
    tutor_password_min_length: int = Field(
        default=4,
        description="Minimum length of the shared tutor password",
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

    def has_ai_configured(self) -> bool:
        """Check if a generation backend is configured."""
        return bool(self.gemini_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
