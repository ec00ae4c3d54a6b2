"""SQLAlchemy models for the tasks feature."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Column, ForeignKey, String, Table, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reminder_service.core.database import Base, SoftDeleteMixin, UTCDateTime, UUIDTimestampedBase

if TYPE_CHECKING:
    from reminder_service.features.reminders.models import Reminder
    from reminder_service.features.users.models import User


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    DELETED = "deleted"


# Many-to-many association table for tasks <-> tags
task_tags = Table(
    "task_tags",
    Base.metadata,
    Column("task_id", ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Tag(UUIDTimestampedBase):
    """User-scoped label attached to tasks; names are forwarded to reminders."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tags_user_name"),)

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        """Return tag summary for debugging."""
        return f"<Tag(id={self.id}, name={self.name!r})>"


class Task(UUIDTimestampedBase, SoftDeleteMixin):
    """Task with a deadline that reminders are computed from.

    ``reminder_intervals`` keeps the interval keys selected for this task so
    reminders can be rebuilt when only the deadline changes.
    """

    __tablename__ = "tasks"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text(), nullable=True)
    deadline_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=TaskStatus.ACTIVE.value, nullable=False, index=True
    )
    reminder_intervals: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
        comment="Interval keys selected for this task",
    )

    user: Mapped[User] = relationship("User", back_populates="tasks")
    tags: Mapped[list[Tag]] = relationship("Tag", secondary=task_tags, lazy="selectin")
    reminders: Mapped[list[Reminder]] = relationship(
        "Reminder", back_populates="task", order_by="Reminder.scheduled_for"
    )

    def __repr__(self) -> str:
        """Return task summary for debugging."""
        return f"<Task(id={self.id}, title={self.title!r}, status={self.status})>"
