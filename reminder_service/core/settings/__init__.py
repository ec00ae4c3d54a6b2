"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (app/db/logging/reminders), loaded from
environment variables (and an optional .env file), frozen, and cached.

Import settings via cached loaders:
    from reminder_service.core.settings import get_reminder_settings

Or use unified settings for convenient access to all domains:
    from reminder_service.core.settings import get_settings

    settings = get_settings()
    print(settings.reminders.sweep_horizon_seconds)
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_reminder_settings,
)
from .logs import LoggingSettings
from .reminders import ReminderSettings
from .unified import Settings, get_settings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "ReminderSettings",
    "Settings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_reminder_settings",
    "get_settings",
]
