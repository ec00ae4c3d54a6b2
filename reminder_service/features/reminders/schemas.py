"""Pydantic schemas for the reminders feature."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

OutcomeStatus = Literal["sent", "failed", "canceled", "skipped"]


class ReminderOutcome(BaseModel):
    """What the sweep did with one reminder."""

    reminder_id: UUID
    status: OutcomeStatus
    reason: str | None = None
    message_id: str | None = None
    error: str | None = None


class SweepReport(BaseModel):
    """Aggregate result of one sweep."""

    processed: int = Field(..., ge=0, description="Number of due reminders examined")
    results: list[ReminderOutcome] = Field(default_factory=list)
    started_at: datetime
    duration_ms: int = Field(default=0, ge=0)

    def count(self, status: OutcomeStatus) -> int:
        """Number of outcomes with ``status``."""
        return sum(1 for outcome in self.results if outcome.status == status)
