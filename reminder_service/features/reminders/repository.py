"""Repository for the reminders feature.

Every status change is a compare-and-set: the UPDATE filters on the
expected prior status and the caller learns from the affected row count
whether it won. Updates run with ``synchronize_session=False``; callers
that need fresh values re-read the row.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from reminder_service.core.database import BaseRepository, utcnow
from reminder_service.features.reminders.models import Reminder, ReminderStatus

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

PROCESSING_TIMED_OUT = "Processing timed out"

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class ReminderRepository(BaseRepository[Reminder]):
    """Repository for Reminder rows.

    Inherits from BaseRepository:
        - get(session, id) -> Reminder | None
        - get_or_raise(session, id) -> Reminder
        - create(session, instance) -> Reminder

    Feature-specific methods below.
    """

    def __init__(self) -> None:
        """Initialize with Reminder model."""
        super().__init__(Reminder)

    async def create_skip_duplicates(
        self,
        session: AsyncSession,
        rows: Sequence[Mapping[str, Any]],
    ) -> list[Reminder]:
        """Insert pending reminders in one statement, ignoring conflicts.

        Rows that would collide with a pending or processing reminder for
        the same (task, interval) under ``uq_reminders_task_interval_active``
        are silently dropped by ``ON CONFLICT DO NOTHING``.

        Args:
            session: Database session
            rows: Column values for each reminder (task_id, user_id,
                interval_key, offset_seconds, scheduled_for, ...)

        Returns:
            Only the reminders that were actually inserted, ordered by
            scheduled_for.
        """
        if not rows:
            return []

        stamp = utcnow()
        values = [
            {
                "status": ReminderStatus.PENDING.value,
                "attempts": 0,
                "created_at": stamp,
                "updated_at": stamp,
                **row,
                "id": uuid.uuid4(),
            }
            for row in rows
        ]
        ids = [value["id"] for value in values]

        async with self._guard("db.create_skip_duplicates"):
            dialect = session.get_bind().dialect.name
            dialect_insert = _DIALECT_INSERTS.get(dialect)
            if dialect_insert is None:
                raise NotImplementedError(f"Conflict-skipping insert not supported on {dialect}")

            stmt = dialect_insert(Reminder.__table__).values(values).on_conflict_do_nothing()
            await session.execute(stmt)

            result = await session.execute(
                select(Reminder).where(Reminder.id.in_(ids)).order_by(Reminder.scheduled_for)
            )
            created = list(result.scalars().all())

        self._lazy.debug(
            lambda: f"db.create_skip_duplicates: requested={len(values)} inserted={len(created)}"
        )
        return created

    async def find_due(
        self,
        session: AsyncSession,
        *,
        window_start: datetime,
        window_end: datetime,
        limit: int = 500,
    ) -> Sequence[Reminder]:
        """Find pending reminders scheduled within ``[window_start, window_end]``.

        Returns:
            Pending reminders ordered by scheduled_for (oldest first)
        """
        stmt = (
            select(Reminder)
            .where(
                Reminder.status == ReminderStatus.PENDING,
                Reminder.scheduled_for >= window_start,
                Reminder.scheduled_for <= window_end,
            )
            .order_by(Reminder.scheduled_for.asc(), Reminder.id.asc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        async with self._guard("db.find_due"):
            result = await session.execute(stmt)
            items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.find_due: {len(items)} due between {window_start.isoformat()} and {window_end.isoformat()}"
        )
        return items

    async def claim(self, session: AsyncSession, reminder_id: UUID, *, now: datetime) -> bool:
        """Move a reminder from pending to processing.

        Increments ``attempts`` and stamps ``last_attempt_at``.

        Returns:
            True if this caller claimed the reminder, False if it was no
            longer pending.
        """
        claimed = await self._transition(
            session,
            reminder_id,
            expected=ReminderStatus.PENDING,
            operation="db.claim",
            status=ReminderStatus.PROCESSING.value,
            attempts=Reminder.attempts + 1,
            last_attempt_at=now,
        )
        self._lazy.debug(lambda: f"db.claim({reminder_id}) -> {'claimed' if claimed else 'lost'}")
        return claimed

    async def mark_sent(
        self,
        session: AsyncSession,
        reminder_id: UUID,
        *,
        now: datetime,
        message_id: str | None,
    ) -> bool:
        """Record a successful delivery for a claimed reminder."""
        return await self._transition(
            session,
            reminder_id,
            expected=ReminderStatus.PROCESSING,
            operation="db.mark_sent",
            status=ReminderStatus.SENT.value,
            sent_at=now,
            provider_message_id=message_id,
            error=None,
        )

    async def mark_failed(
        self,
        session: AsyncSession,
        reminder_id: UUID,
        *,
        error: str,
    ) -> bool:
        """Record a failed delivery for a claimed reminder.

        ``attempts`` and ``last_attempt_at`` keep the values set by the claim.
        """
        return await self._transition(
            session,
            reminder_id,
            expected=ReminderStatus.PROCESSING,
            operation="db.mark_failed",
            status=ReminderStatus.FAILED.value,
            error=error,
        )

    async def cancel_if_pending(
        self,
        session: AsyncSession,
        reminder_id: UUID,
        *,
        now: datetime,
        reason: str | None = None,
    ) -> bool:
        """Cancel a single reminder if it is still pending."""
        return await self._transition(
            session,
            reminder_id,
            expected=ReminderStatus.PENDING,
            operation="db.cancel_if_pending",
            status=ReminderStatus.CANCELED.value,
            canceled_at=now,
            cancel_reason=reason,
        )

    async def cancel_future_pending(
        self,
        session: AsyncSession,
        *,
        task_id: UUID,
        now: datetime,
        reason: str | None = None,
    ) -> int:
        """Cancel every pending reminder of a task scheduled after ``now``.

        Reminders that are processing, resolved, or already due are left
        untouched. Idempotent.

        Returns:
            Number of reminders canceled
        """
        stmt = (
            update(Reminder)
            .where(
                Reminder.task_id == task_id,
                Reminder.status == ReminderStatus.PENDING,
                Reminder.scheduled_for > now,
            )
            .values(
                status=ReminderStatus.CANCELED.value,
                canceled_at=now,
                cancel_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._guard("db.cancel_future_pending"):
            result = await session.execute(stmt)
        count: int = result.rowcount or 0

        self._lazy.debug(lambda: f"db.cancel_future_pending(task={task_id}) -> {count} canceled")
        return count

    async def cancel_overdue_pending(
        self,
        session: AsyncSession,
        *,
        task_id: UUID,
        now: datetime,
        reason: str | None = None,
    ) -> int:
        """Cancel pending reminders of a task whose time passed unswept.

        The sweep only looks forward from its own ``now``, so a pending row
        scheduled before ``now`` is never delivered.

        Returns:
            Number of reminders canceled
        """
        stmt = (
            update(Reminder)
            .where(
                Reminder.task_id == task_id,
                Reminder.status == ReminderStatus.PENDING,
                Reminder.scheduled_for < now,
            )
            .values(
                status=ReminderStatus.CANCELED.value,
                canceled_at=now,
                cancel_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._guard("db.cancel_overdue_pending"):
            result = await session.execute(stmt)
        count: int = result.rowcount or 0

        self._lazy.debug(lambda: f"db.cancel_overdue_pending(task={task_id}) -> {count} canceled")
        return count

    async def resolved_slots(
        self, session: AsyncSession, task_id: UUID
    ) -> set[tuple[str | None, datetime]]:
        """``(interval_key, scheduled_for)`` of the task's sent and failed reminders."""
        stmt = select(Reminder.interval_key, Reminder.scheduled_for).where(
            Reminder.task_id == task_id,
            Reminder.status.in_((ReminderStatus.SENT, ReminderStatus.FAILED)),
        )
        async with self._guard("db.resolved_slots"):
            result = await session.execute(stmt)
            return {(key, scheduled_for) for key, scheduled_for in result.all()}

    async def reclaim_stale_processing(
        self,
        session: AsyncSession,
        *,
        older_than: datetime,
    ) -> int:
        """Fail reminders stuck in processing since before ``older_than``.

        They are never put back to pending, so a reminder whose delivery
        actually went out before a crash cannot be sent twice.

        Returns:
            Number of reminders moved to failed
        """
        stmt = (
            update(Reminder)
            .where(
                Reminder.status == ReminderStatus.PROCESSING,
                Reminder.last_attempt_at < older_than,
            )
            .values(status=ReminderStatus.FAILED.value, error=PROCESSING_TIMED_OUT)
            .execution_options(synchronize_session=False)
        )
        async with self._guard("db.reclaim_stale_processing"):
            result = await session.execute(stmt)
        count: int = result.rowcount or 0

        if count:
            self._logger.warning(
                "Stale processing reminders marked failed",
                extra={
                    "count": count,
                    "older_than": older_than.isoformat(),
                    "operation": "db.reclaim_stale_processing",
                },
            )
        return count

    async def count_sent_between(
        self,
        session: AsyncSession,
        *,
        user_id: UUID,
        start: datetime,
        end: datetime,
    ) -> int:
        """Count a user's reminders sent within ``[start, end)``."""
        stmt = select(func.count()).where(
            Reminder.user_id == user_id,
            Reminder.status == ReminderStatus.SENT,
            Reminder.sent_at >= start,
            Reminder.sent_at < end,
        )
        async with self._guard("db.count_sent_between"):
            total: int = (await session.execute(stmt)).scalar_one()
        return total

    async def list_for_task(self, session: AsyncSession, task_id: UUID) -> Sequence[Reminder]:
        """All reminders of a task, oldest schedule first."""
        stmt = (
            select(Reminder)
            .where(Reminder.task_id == task_id)
            .order_by(Reminder.scheduled_for.asc(), Reminder.created_at.asc())
            .execution_options(populate_existing=True)
        )
        async with self._guard("db.list_for_task"):
            result = await session.execute(stmt)
            return result.scalars().all()

    async def _transition(
        self,
        session: AsyncSession,
        reminder_id: UUID,
        *,
        expected: ReminderStatus,
        operation: str,
        **values: Any,
    ) -> bool:
        """Compare-and-set a single reminder on its current status."""
        stmt = (
            update(Reminder)
            .where(Reminder.id == reminder_id, Reminder.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with self._guard(operation):
            result = await session.execute(stmt)
        return (result.rowcount or 0) == 1


# Factory function for dependency injection
_reminder_repository: ReminderRepository | None = None


def get_reminder_repository() -> ReminderRepository:
    """Get the shared ReminderRepository instance."""
    global _reminder_repository
    if _reminder_repository is None:
        _reminder_repository = ReminderRepository()
    return _reminder_repository
