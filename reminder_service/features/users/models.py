"""SQLAlchemy models for users."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reminder_service.core.database import EmailType, UUIDTimestampedBase
from reminder_service.features.reminders.intervals import DEFAULT_INTERVALS

if TYPE_CHECKING:
    from reminder_service.features.tasks.models import Task


def _default_intervals() -> list[str]:
    return list(DEFAULT_INTERVALS)


class User(UUIDTimestampedBase):
    """Task owner and reminder recipient.

    ``enabled_intervals`` is the set of interval keys the user wants
    reminders for; per-task selections are restricted to it.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(EmailType(), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    enabled_intervals: Mapped[list[str]] = mapped_column(
        JSON,
        default=_default_intervals,
        nullable=False,
        comment="Interval keys enabled for this user's reminders",
    )

    tasks: Mapped[list[Task]] = relationship("Task", back_populates="user")

    def __repr__(self) -> str:
        """Return user summary for debugging."""
        return f"<User(id={self.id}, email={self.email!r})>"
