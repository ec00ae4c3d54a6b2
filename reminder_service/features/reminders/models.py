"""SQLAlchemy models for the reminders feature."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reminder_service.core.database import UTCDateTime, UUIDTimestampedBase

if TYPE_CHECKING:
    from reminder_service.features.tasks.models import Task


class ReminderStatus(StrEnum):
    """Reminder delivery lifecycle.

    pending -> processing -> sent | failed; pending -> canceled.
    ``sent`` and ``canceled`` are terminal; ``failed`` is terminal under the
    current policy.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
    CANCELED = "canceled"


REMINDER_SOURCE_STANDARD = "standard"

# At most one unresolved reminder per (task, interval). Sent and failed rows
# stay as history and do not block a reminder for a moved deadline.
_ACTIVE_INTERVAL_PREDICATE = text("status IN ('pending', 'processing')")


class Reminder(UUIDTimestampedBase):
    """Scheduled reminder for a task.

    Rows are never deleted; cancellation is a status transition so the
    table doubles as an audit trail.
    """

    __tablename__ = "reminders"
    __table_args__ = (
        Index(
            "uq_reminders_task_interval_active",
            "task_id",
            "interval_key",
            unique=True,
            postgresql_where=_ACTIVE_INTERVAL_PREDICATE,
            sqlite_where=_ACTIVE_INTERVAL_PREDICATE,
        ),
        Index("ix_reminders_status_scheduled_for", "status", "scheduled_for"),
    )

    task_id: Mapped[UUID] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    interval_key: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="Catalog key (e.g. P1W); NULL for ad-hoc offsets",
    )
    offset_seconds: Mapped[int] = mapped_column(Integer(), nullable=False)
    source: Mapped[str] = mapped_column(
        String(20), default=REMINDER_SOURCE_STANDARD, nullable=False
    )
    scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ReminderStatus.PENDING.value, nullable=False
    )
    attempts: Mapped[int] = mapped_column(Integer(), default=0, nullable=False)
    last_attempt_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    canceled_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(String(100), nullable=True)
    provider_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error: Mapped[str | None] = mapped_column(Text(), nullable=True)

    task: Mapped[Task] = relationship("Task", back_populates="reminders")

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is allowed."""
        return self.status in (ReminderStatus.SENT, ReminderStatus.CANCELED)

    def __repr__(self) -> str:
        """Return reminder summary for debugging."""
        return (
            f"<Reminder(id={self.id}, task_id={self.task_id}, "
            f"interval={self.interval_key}, status={self.status})>"
        )
