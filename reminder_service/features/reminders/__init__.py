"""Reminders feature package.

Submodules are imported explicitly (``features.reminders.processor``,
``features.reminders.router``); the package itself only exposes the
interval catalog and models, which the users and tasks models depend on.
"""

from .intervals import DEFAULT_INTERVALS, IntervalKey, duration_of, interval_label
from .models import Reminder, ReminderStatus

__all__ = [
    "DEFAULT_INTERVALS",
    "IntervalKey",
    "Reminder",
    "ReminderStatus",
    "duration_of",
    "interval_label",
]
