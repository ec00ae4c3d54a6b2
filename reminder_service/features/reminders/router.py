"""API router for the reminders feature."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from reminder_service.core.dependencies.database import get_db_session
from reminder_service.features.reminders.processor import DueReminderProcessor
from reminder_service.features.reminders.schemas import SweepReport
from reminder_service.infra.logging import get_lazy_logger, set_log_context

router = APIRouter(prefix="/reminders", tags=["reminders"])

# Standard logger for INFO/WARNING/ERROR
logger = logging.getLogger(__name__)
# Lazy logger for DEBUG (zero overhead when DEBUG disabled)
lazy_logger = get_lazy_logger(__name__)


def get_reminder_processor() -> DueReminderProcessor:
    """Build a processor from the current reminder settings."""
    return DueReminderProcessor()


@router.post(
    "/process",
    response_model=SweepReport,
    status_code=status.HTTP_200_OK,
    summary="Process due reminders",
    description="""
Run one sweep over pending reminders due within the configured horizon.

Requires `Authorization: Bearer <REMINDER_SWEEP_SECRET>`. Intended for an
external cron; the in-process scheduler calls the same sweep.
""",
)
async def process_due_reminders(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    processor: Annotated[DueReminderProcessor, Depends(get_reminder_processor)],
    authorization: Annotated[str | None, Header()] = None,
) -> SweepReport:
    """Trigger a sweep.

    Returns:
        SweepReport with one outcome per examined reminder
    """
    set_log_context(trigger="http")
    lazy_logger.debug(lambda: "reminders.process: sweep requested over HTTP")
    return await processor.run_sweep(session, authorization=authorization)
