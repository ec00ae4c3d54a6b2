"""Reminder scheduling, cancellation and rescheduling.

These operations run inside the transaction of the task write that
triggers them: they flush but never commit, so a failure rolls back the
task change together with its reminders.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from reminder_service.core.database import ensure_utc
from reminder_service.core.services import BaseService
from reminder_service.features.reminders.intervals import duration_of
from reminder_service.features.reminders.models import REMINDER_SOURCE_STANDARD
from reminder_service.features.reminders.repository import (
    ReminderRepository,
    get_reminder_repository,
)
from reminder_service.infra.metrics import reminders_canceled_total, reminders_scheduled_total

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from reminder_service.features.reminders.models import Reminder


class ReminderScheduler(BaseService):
    """Computes and maintains the pending reminders of a task."""

    def __init__(self, repository: ReminderRepository | None = None) -> None:
        super().__init__()
        self.repository = repository or get_reminder_repository()

    async def schedule(
        self,
        session: AsyncSession,
        *,
        task_id: UUID,
        user_id: UUID,
        deadline_at: datetime,
        interval_keys: Iterable[str],
        now: datetime,
    ) -> list[Reminder]:
        """Create pending reminders for the given interval keys.

        A reminder is admitted only when ``now < deadline - offset < deadline``.
        Unknown keys are skipped with a warning. Keys that already have a
        pending or processing reminder for this task are ignored by the
        insert, and so is a key whose reminder at the same instant was
        already sent or failed. Calling this twice is a no-op the second
        time.

        Returns:
            The reminders created by this call

        Raises:
            StorageError: If the insert fails
        """
        deadline_at = ensure_utc(deadline_at)
        now = ensure_utc(now)

        rows: list[dict[str, Any]] = []
        seen: set[str] = set()
        for key in interval_keys:
            if key in seen:
                continue
            seen.add(key)

            offset = duration_of(key)
            if offset is None:
                self.logger.warning(
                    "Skipping unknown reminder interval",
                    extra={
                        "task_id": str(task_id),
                        "interval_key": key,
                        "operation": "reminders.schedule",
                    },
                )
                continue

            scheduled_for = deadline_at - timedelta(seconds=offset)
            if not now < scheduled_for < deadline_at:
                self._lazy.debug(
                    lambda key=key, scheduled_for=scheduled_for: (
                        f"reminders.schedule: {key} at {scheduled_for.isoformat()} outside window, dropped"
                    )
                )
                continue

            rows.append(
                {
                    "task_id": task_id,
                    "user_id": user_id,
                    "interval_key": key,
                    "offset_seconds": offset,
                    "source": REMINDER_SOURCE_STANDARD,
                    "scheduled_for": scheduled_for,
                }
            )

        if rows:
            # A slot already delivered or failed for this deadline is not retried
            resolved = await self.repository.resolved_slots(session, task_id)
            rows = [row for row in rows if (row["interval_key"], row["scheduled_for"]) not in resolved]

        created = await self.repository.create_skip_duplicates(session, rows)
        if created:
            reminders_scheduled_total.inc(len(created))

        self.logger.info(
            "Reminders scheduled",
            extra={
                "task_id": str(task_id),
                "requested": len(seen),
                "admitted": len(rows),
                "created": len(created),
                "operation": "reminders.schedule",
            },
        )
        return created

    async def cancel_future_pending(
        self,
        session: AsyncSession,
        *,
        task_id: UUID,
        now: datetime,
        reason: str | None = None,
    ) -> int:
        """Cancel the task's pending reminders that are still in the future.

        Returns:
            Number of reminders canceled

        Raises:
            StorageError: If the update fails
        """
        count = await self.repository.cancel_future_pending(
            session, task_id=task_id, now=ensure_utc(now), reason=reason
        )
        if count:
            reminders_canceled_total.labels(source="canceller").inc(count)
            self.logger.info(
                "Future reminders canceled",
                extra={
                    "task_id": str(task_id),
                    "count": count,
                    "reason": reason,
                    "operation": "reminders.cancel_future_pending",
                },
            )
        return count

    async def reschedule(
        self,
        session: AsyncSession,
        *,
        task_id: UUID,
        user_id: UUID,
        deadline_at: datetime,
        interval_keys: Iterable[str],
        now: datetime,
        reason: str | None = "Rescheduled",
    ) -> list[Reminder]:
        """Cancel the task's unresolved pending reminders, then schedule afresh.

        Pending reminders whose time already passed are canceled as well,
        since no sweep reaches them any more.

        Returns:
            The reminders created by the schedule step
        """
        now = ensure_utc(now)
        await self.cancel_future_pending(session, task_id=task_id, now=now, reason=reason)
        overdue = await self.repository.cancel_overdue_pending(
            session, task_id=task_id, now=now, reason=reason
        )
        if overdue:
            reminders_canceled_total.labels(source="canceller").inc(overdue)
        return await self.schedule(
            session,
            task_id=task_id,
            user_id=user_id,
            deadline_at=deadline_at,
            interval_keys=interval_keys,
            now=now,
        )


_reminder_scheduler: ReminderScheduler | None = None


def get_reminder_scheduler() -> ReminderScheduler:
    """Get the shared ReminderScheduler instance."""
    global _reminder_scheduler
    if _reminder_scheduler is None:
        _reminder_scheduler = ReminderScheduler()
    return _reminder_scheduler
