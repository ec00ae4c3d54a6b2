"""Background jobs."""

from .scheduler import (
    process_due_reminders,
    scheduler,
    setup_scheduled_jobs,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "process_due_reminders",
    "scheduler",
    "setup_scheduled_jobs",
    "start_scheduler",
    "stop_scheduler",
]
