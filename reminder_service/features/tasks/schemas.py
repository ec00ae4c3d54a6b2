"""Pydantic schemas for task writes."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

TaskStatusValue = Literal["active", "completed", "deleted"]


class TaskCreate(BaseModel):
    """Input for creating a task.

    ``reminder_intervals`` may use canonical keys (``P1W``) or legacy ones
    (``7d``); omitted, the owner's enabled intervals apply.
    """

    title: str = Field(..., max_length=200, description="Task title")
    notes: str | None = Field(None, max_length=5000, description="Free-form notes")
    deadline_at: datetime = Field(..., description="Deadline instant; naive values are read as UTC")
    reminder_intervals: list[str] | None = Field(
        None, description="Interval keys to remind at, restricted to the owner's enabled set"
    )
    tags: list[str] = Field(default_factory=list, description="Tag names")


class TaskUpdate(BaseModel):
    """Partial task update; only fields that are set are applied."""

    title: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=5000)
    deadline_at: datetime | None = None
    status: TaskStatusValue | None = None
    reminder_intervals: list[str] | None = None
    tags: list[str] | None = None


__all__ = ["TaskCreate", "TaskStatusValue", "TaskUpdate"]
