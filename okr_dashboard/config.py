"""OKR dashboard configuration module.

Loads environment variables with type validation using pydantic-settings.
Every value has a sane default so the dashboard works against a local backend.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Backend API ──
    api_base_url: str = Field(
        default="http://localhost:8080/api",
        description="Base URL of the OKR backend REST API",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for a single backend request",
        gt=0,
    )

    # ── Editing ──
    actual_value_debounce_seconds: float = Field(
        default=1.0,
        description="Idle period before a typed actual value is persisted",
        ge=0,
    )

    # ── General ──
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended with a leading slash."""
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}, got '{v}'")
        return upper


def get_settings(**overrides: str) -> Settings:
    """Create a Settings instance with optional overrides.

    Args:
        **overrides: Key-value pairs to override env/defaults.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If any value fails validation.
    """
    return Settings(**overrides)
