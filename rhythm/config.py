"""Centralized configuration loaded from environment variables."""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide settings sourced from .env / environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────────────
    rhythm_env: str = "development"
    rhythm_log_level: str = "INFO"

    # ── Database ─────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///data/rhythm.db"

    # ── Availability ─────────────────────────────────────────────────
    working_hours_start: int = 9
    working_hours_end: int = 17
    availability_grid_minutes: int = 30
    availability_max_duration_minutes: int = 480

    # ── Event search ─────────────────────────────────────────────────
    search_default_limit: int = 100
    search_max_limit: int = 100
    upcoming_max_days: int = 365

    # ── Session preparation ──────────────────────────────────────────
    prep_notes_limit: int = 5
    prep_tasks_limit: int = 10
    prep_goals_limit: int = 5

    @model_validator(mode="after")
    def _check_working_hours(self) -> Settings:
        if not (0 <= self.working_hours_start < self.working_hours_end <= 24):
            raise ValueError(
                "working hours must satisfy 0 <= start < end <= 24, "
                f"got {self.working_hours_start}-{self.working_hours_end}"
            )
        if self.availability_grid_minutes <= 0:
            raise ValueError("availability_grid_minutes must be positive")
        return self

    # ── Derived ──────────────────────────────────────────────────────
    @property
    def is_production(self) -> bool:
        return self.rhythm_env == "production"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
