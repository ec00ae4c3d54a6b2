"""Reminder sweep commands.

Example:bash
    # Run one sweep now (uses REMINDER_SWEEP_SECRET)
    reminder-service reminders sweep

    # Fail reminders stuck in processing for more than 15 minutes
    reminder-service reminders reclaim --older-than 900
"""

import sys
from datetime import datetime, timedelta

import click

from reminder_service.cli.utils import coro, error, header, info, success, warning
from reminder_service.core.database import StorageError
from reminder_service.core.exceptions import UnauthorizedException
from reminder_service.core.settings import get_reminder_settings
from reminder_service.infra.logging import set_log_context


@click.group(name="reminders")
def reminders() -> None:
    """Due-reminder processing."""


@reminders.command()
@click.option(
    "--now",
    "now",
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]),
    default=None,
    help="Reference instant in UTC (default: current time)",
)
@coro
async def sweep(now: datetime | None) -> None:
    """Process pending reminders due within the horizon."""
    from reminder_service.features.reminders.processor import DueReminderProcessor
    from reminder_service.infra.database import close_database, get_async_session
    from reminder_service.tasks.scheduler import bearer_authorization

    settings = get_reminder_settings()
    processor = DueReminderProcessor(settings=settings)
    set_log_context(trigger="cli")

    try:
        async with get_async_session() as session:
            report = await processor.run_sweep(
                session, authorization=bearer_authorization(settings), now=now
            )
    except UnauthorizedException as e:
        error(f"Sweep rejected: {e.detail}")
        sys.exit(1)
    except StorageError as e:
        error(f"Sweep aborted: {e}")
        sys.exit(1)
    finally:
        await close_database()

    header(f"Processed {report.processed} reminder(s) in {report.duration_ms} ms")
    for outcome in report.results:
        line = f"{outcome.reminder_id}  {outcome.status}"
        if outcome.reason:
            line += f"  ({outcome.reason})"
        if outcome.error:
            line += f"  error={outcome.error}"
        if outcome.status == "failed":
            warning(line)
        else:
            info(line)
    success(
        f"sent={report.count('sent')} failed={report.count('failed')} "
        f"canceled={report.count('canceled')} skipped={report.count('skipped')}"
    )


@reminders.command()
@click.option(
    "--older-than",
    "older_than",
    type=click.IntRange(min=1),
    default=None,
    help="Seconds since the claim (default: REMINDER_STALE_PROCESSING_AFTER_SECONDS)",
)
@coro
async def reclaim(older_than: int | None) -> None:
    """Mark reminders stuck in processing as failed."""
    from reminder_service.features.reminders.processor import DueReminderProcessor
    from reminder_service.infra.database import close_database, get_async_session

    settings = get_reminder_settings()
    seconds = older_than or settings.stale_processing_after_seconds
    if not seconds:
        error("Pass --older-than or set REMINDER_STALE_PROCESSING_AFTER_SECONDS")
        sys.exit(2)

    processor = DueReminderProcessor(settings=settings)
    try:
        async with get_async_session() as session:
            count = await processor.reclaim_stale_processing(session, older_than=timedelta(seconds=seconds))
    except StorageError as e:
        error(f"Reclaim failed: {e}")
        sys.exit(1)
    finally:
        await close_database()

    success(f"Marked {count} reminder(s) as failed")


@reminders.command(name="sent-today")
@click.option("--email", required=True, help="User address")
@coro
async def sent_today(email: str) -> None:
    """Count reminders sent to a user during the current UTC day."""
    from reminder_service.features.reminders.service import ReminderService
    from reminder_service.features.users.repository import get_user_repository
    from reminder_service.infra.database import close_database, get_async_session

    try:
        async with get_async_session() as session:
            user = await get_user_repository().get_by_email(session, email)
            if user is None:
                error(f"No user with address {email}")
                sys.exit(1)
            count = await ReminderService().count_sent_today(session, user_id=user.id)
    except StorageError as e:
        error(f"Query failed: {e}")
        sys.exit(1)
    finally:
        await close_database()

    info(f"{count} reminder(s) sent today to {email}")
