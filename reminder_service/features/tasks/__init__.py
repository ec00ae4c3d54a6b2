"""Tasks feature package."""

from .models import Tag, Task, TaskStatus

__all__ = ["Tag", "Task", "TaskStatus"]
