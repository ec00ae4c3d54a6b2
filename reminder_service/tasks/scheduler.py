"""APScheduler integration for the periodic reminder sweep.

The API process runs ``process_due_reminders`` every
``REMINDER_SWEEP_INTERVAL_SECONDS`` when ``REMINDER_SCHEDULER_ENABLED`` is
set. External cron can call ``POST /api/v1/reminders/process`` instead;
both go through the same processor and the same shared secret.

Architecture:
    APScheduler (in-process) → DueReminderProcessor.run_sweep → notifier
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from reminder_service.core.settings import get_reminder_settings
from reminder_service.infra.logging import remove_from_log_context, set_log_context

if TYPE_CHECKING:
    from reminder_service.core.settings.reminders import ReminderSettings

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "process_due_reminders"

# Initialize APScheduler (runs in same process as FastAPI)
scheduler = AsyncIOScheduler(
    timezone="UTC",
    job_defaults={
        "coalesce": True,  # Combine multiple pending executions into one
        "max_instances": 1,  # Only one instance of each job at a time
        "misfire_grace_time": 60,  # Allow 60s delay before considering job missed
    },
)


def bearer_authorization(settings: ReminderSettings) -> str | None:
    """Authorization header value built from the configured sweep secret."""
    if not settings.is_sweep_secret_configured:
        return None
    return f"Bearer {settings.sweep_secret.get_secret_value()}"  # type: ignore[union-attr]


async def process_due_reminders() -> dict[str, Any]:
    """Run one sweep, reclaiming stale claims first when configured.

    Scheduled: every ``REMINDER_SWEEP_INTERVAL_SECONDS``.
    """
    from reminder_service.features.reminders.processor import DueReminderProcessor
    from reminder_service.infra.database import get_async_session

    settings = get_reminder_settings()
    processor = DueReminderProcessor(settings=settings)

    set_log_context(trigger="scheduler")
    try:
        async with get_async_session() as session:
            timed_out = 0
            if settings.stale_processing_after_seconds:
                timed_out = await processor.reclaim_stale_processing(
                    session,
                    older_than=timedelta(seconds=settings.stale_processing_after_seconds),
                )
            report = await processor.run_sweep(session, authorization=bearer_authorization(settings))
    except Exception:
        logger.exception("Scheduled reminder sweep failed")
        raise
    finally:
        remove_from_log_context("trigger")

    return {
        "processed": report.processed,
        "sent": report.count("sent"),
        "failed": report.count("failed"),
        "timed_out": timed_out,
    }


def setup_scheduled_jobs(settings: ReminderSettings | None = None) -> bool:
    """Register the sweep job.

    Returns:
        True if the job was registered. Without a sweep secret the job is
        not registered, since every sweep would be rejected.
    """
    settings = settings or get_reminder_settings()
    if not settings.is_sweep_secret_configured:
        logger.warning("REMINDER_SWEEP_SECRET not set, skipping scheduled reminder sweep")
        return False

    scheduler.add_job(
        func=process_due_reminders,
        trigger=IntervalTrigger(seconds=settings.sweep_interval_seconds),
        id=SWEEP_JOB_ID,
        name="Process due reminders",
        replace_existing=True,
    )
    logger.info(
        "Scheduled reminder sweep registered",
        extra={
            "interval_seconds": settings.sweep_interval_seconds,
            "horizon_seconds": settings.sweep_horizon_seconds,
            "reclaim_after_seconds": settings.stale_processing_after_seconds,
        },
    )
    return True


async def start_scheduler() -> None:
    """Start the APScheduler.

    Call during application startup after setup_scheduled_jobs().
    """
    if not scheduler.running:
        logger.info("Starting APScheduler")
        scheduler.start()
        logger.info("APScheduler started", extra={"jobs": len(scheduler.get_jobs())})
    else:
        logger.warning("APScheduler is already running")


async def stop_scheduler() -> None:
    """Stop the APScheduler gracefully.

    Call during application shutdown.
    """
    if scheduler.running:
        logger.info("Stopping APScheduler")
        scheduler.shutdown(wait=True)
        logger.info("APScheduler stopped")
    else:
        logger.debug("APScheduler is not running")


def get_job_status() -> list[dict[str, Any]]:
    """Status of all scheduled jobs."""
    jobs = []
    for job in scheduler.get_jobs():
        # Pending jobs (scheduler not started) have no next_run_time yet
        next_run = getattr(job, "next_run_time", None)
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            }
        )
    return jobs
