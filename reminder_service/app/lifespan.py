"""Application lifespan management.

Startup Order:
1. Logging - always runs first
2. Database - connectivity check, optional table creation
3. Reminder sweep scheduler - only when REMINDER_SCHEDULER_ENABLED

Shutdown Order: Reverse of startup (what starts first, shuts down last)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from reminder_service.core.settings import (
    get_app_settings,
    get_logging_settings,
    get_reminder_settings,
)
from reminder_service.infra.logging import setup_logging
from reminder_service.infra.logging.config import shutdown as shutdown_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


async def _startup_database() -> None:
    from reminder_service.infra.database import init_database

    await init_database()


async def _shutdown_database() -> None:
    from reminder_service.infra.database import close_database

    await close_database()


async def _startup_scheduler() -> bool:
    if not get_reminder_settings().scheduler_enabled:
        logger.info("Reminder scheduler disabled (REMINDER_SCHEDULER_ENABLED=false)")
        return False

    from reminder_service.tasks.scheduler import setup_scheduled_jobs, start_scheduler

    if not setup_scheduled_jobs():
        return False
    await start_scheduler()
    return True


async def _shutdown_scheduler() -> None:
    from reminder_service.tasks.scheduler import stop_scheduler

    await stop_scheduler()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    _ = app
    app_settings = get_app_settings()

    # =========================================================================
    # STARTUP PHASE
    # =========================================================================
    setup_logging(get_logging_settings())
    logger.info(
        "Starting application",
        extra={
            "service": app_settings.service_name,
            "version": app_settings.version,
            "environment": app_settings.environment,
        },
    )

    await _startup_database()
    scheduler_started = await _startup_scheduler()

    yield

    # =========================================================================
    # SHUTDOWN PHASE
    # =========================================================================
    logger.info("Shutting down application")
    if scheduler_started:
        await _shutdown_scheduler()
    await _shutdown_database()
    logger.info("Application shutdown complete")
    shutdown_logging()
