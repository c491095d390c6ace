"""
Configuration settings for the kanjiflow study client.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

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
    # Kanji API
    # ========================================
    kanji_api_url: str = Field(
        default="http://127.0.0.1:8080",
        description="Base URL of the kanji study API",
    )
    kanji_api_token: str | None = Field(
        default=None,
        description="Bearer token sent with every API request",
    )
    request_timeout_ms: int = Field(
        default=10000,
        ge=100,
        description="Per-request timeout in milliseconds",
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for transient API failures (timeouts, 5xx)",
    )

    # ========================================
    # Study Sessions
    # ========================================
    pending_grades_path: Path = Field(
        default=Path.home() / ".kanjiflow" / "pending_grades.json",
        description="Ledger of grades the API did not acknowledge",
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

    # ========================================
    # Helper Methods
    # ========================================
    def has_api_token(self) -> bool:
        """Check if an API token is configured."""
        return bool(self.kanji_api_token)

    def get_api_config(self) -> dict[str, Any]:
        """Keyword arguments for KanjiApiClient."""
        return {
            "api_url": self.kanji_api_url,
            "token": self.kanji_api_token,
            "timeout_ms": self.request_timeout_ms,
            "retry_attempts": self.retry_attempts,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
