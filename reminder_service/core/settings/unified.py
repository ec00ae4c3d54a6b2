"""Unified settings composition for convenient access.

Each nested settings class still loads from its own environment prefix
(APP_, DB_, LOG_, REMINDER_). Prefer the individual get_*_settings()
loaders in production code that only needs one domain.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .app import AppSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .reminders import ReminderSettings


class Settings(BaseSettings):
    """Unified settings composing all domain settings.

    Example:
        settings = Settings()
        assert settings.reminders.sweep_horizon_seconds == 300
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    reminders: ReminderSettings = Field(default_factory=ReminderSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get unified settings instance (cached)."""
    return Settings()
