"""Read-side reminder queries."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING

from reminder_service.core.database import ensure_utc, utcnow
from reminder_service.core.services import BaseService
from reminder_service.features.reminders.repository import (
    ReminderRepository,
    get_reminder_repository,
)

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


def utc_day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of the UTC day containing ``now``."""
    now = ensure_utc(now)
    start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    return start, start + timedelta(days=1)


class ReminderService(BaseService):
    """Reminder statistics for a user."""

    def __init__(self, repository: ReminderRepository | None = None) -> None:
        super().__init__()
        self.repository = repository or get_reminder_repository()

    async def count_sent_today(
        self,
        session: AsyncSession,
        *,
        user_id: UUID,
        now: datetime | None = None,
    ) -> int:
        """Number of the user's reminders sent during the current UTC day."""
        start, end = utc_day_bounds(now if now is not None else utcnow())
        count = await self.repository.count_sent_between(session, user_id=user_id, start=start, end=end)
        self._lazy.debug(lambda: f"count_sent_today(user={user_id}, day={start.date()}) -> {count}")
        return count


__all__ = ["ReminderService", "utc_day_bounds"]
