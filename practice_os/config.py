"""Configuration management for Practice OS."""

from functools import lru_cache
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

    # Conflict rules
    min_buffer_minutes: int = Field(
        default=15,
        ge=0,
        description="Minimum gap between appointments before a buffer violation is reported",
    )
    back_to_back_is_conflict: bool = Field(
        default=True,
        description="Report appointments that touch end-to-start as medium-severity conflicts",
    )

    # Slot generation
    default_granularity_minutes: int = Field(
        default=15,
        gt=0,
        description="Grid step used when a caller does not supply one",
    )
    default_duration_minutes: int = Field(
        default=30,
        gt=0,
        description="Appointment length used by the CLI when none is given",
    )

    # Advisory scoring
    low_utilization_percent: float = Field(
        default=60.0,
        description="Utilization below this triggers a consolidation recommendation",
    )
    high_utilization_percent: float = Field(
        default=90.0,
        description="Utilization above this triggers an overload recommendation",
    )
    idle_gap_minutes: int = Field(
        default=60,
        description="Total idle minutes that trigger a gap-filling recommendation",
    )
    alternative_slot_limit: int = Field(
        default=3,
        gt=0,
        description="Open slots offered when a candidate overlaps an existing booking",
    )

    # API Settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)

    # Debug
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode (exposes error details in responses)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
