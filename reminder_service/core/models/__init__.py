"""Database models package.

Import all models here so ``Base.metadata`` knows every table before
``create_all`` runs.
"""

from __future__ import annotations

from reminder_service.features.reminders.models import Reminder, ReminderStatus
from reminder_service.features.tasks.models import Tag, Task, TaskStatus, task_tags
from reminder_service.features.users.models import User

__all__ = [
    "Reminder",
    "ReminderStatus",
    "Tag",
    "Task",
    "TaskStatus",
    "User",
    "task_tags",
]
