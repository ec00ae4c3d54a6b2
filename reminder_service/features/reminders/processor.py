"""Due-reminder sweep.

One sweep examines the pending reminders due within the look-ahead
window, re-validates each against its task, claims it, hands it to the
notifier and records the outcome. Every transition is a compare-and-set
on the expected prior status and is committed on its own, so a claim is
visible to concurrent sweeps before delivery starts.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from reminder_service.core.database import StorageError, ensure_utc, utcnow
from reminder_service.core.services import BaseService
from reminder_service.features.reminders.intervals import interval_label
from reminder_service.features.reminders.notifier import (
    UNKNOWN_ERROR,
    NotificationResult,
    ReminderNotifier,
    get_notifier,
)
from reminder_service.features.reminders.repository import (
    ReminderRepository,
    get_reminder_repository,
)
from reminder_service.features.reminders.schemas import ReminderOutcome, SweepReport
from reminder_service.features.reminders.security import verify_sweep_authorization
from reminder_service.features.tasks.models import TaskStatus
from reminder_service.features.tasks.repository import TaskRepository, get_task_repository
from reminder_service.infra.logging import remove_from_log_context, set_log_context
from reminder_service.infra.metrics import (
    reminder_deliveries_total,
    reminder_sweep_duration_seconds,
    reminders_canceled_total,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from reminder_service.core.settings.reminders import ReminderSettings
    from reminder_service.features.tasks.repository import EligibleTask

REASON_TASK_DELETED = "Task deleted"
REASON_TASK_NOT_ACTIVE = "Task not active"
REASON_PAST_DEADLINE = "Past deadline"
REASON_STATE_CHANGED = "State changed during delivery"


@dataclass(slots=True, frozen=True)
class _Candidate:
    id: UUID
    task_id: UUID
    interval_key: str | None
    scheduled_for: datetime


def ineligibility_reason(reminder_scheduled_for: datetime, task: EligibleTask | None) -> str | None:
    """Why a due reminder must be canceled instead of sent, or None."""
    if task is None:
        return REASON_TASK_DELETED
    if task.status in (TaskStatus.COMPLETED, TaskStatus.DELETED):
        return REASON_TASK_NOT_ACTIVE
    if task.deleted_at is not None:
        return REASON_TASK_DELETED
    if ensure_utc(reminder_scheduled_for) > ensure_utc(task.deadline_at):
        return REASON_PAST_DEADLINE
    return None


class DueReminderProcessor(BaseService):
    """Runs the due-reminder sweep.

    Args:
        reminders: Reminder store
        tasks: Task store used to re-validate each reminder
        notifier: Delivery collaborator
        settings: Sweep configuration (secret, horizon, batch size)
    """

    def __init__(
        self,
        *,
        reminders: ReminderRepository | None = None,
        tasks: TaskRepository | None = None,
        notifier: ReminderNotifier | None = None,
        settings: ReminderSettings | None = None,
    ) -> None:
        super().__init__()
        if settings is None:
            from reminder_service.core.settings import get_reminder_settings

            settings = get_reminder_settings()
        self.settings = settings
        self.reminders = reminders or get_reminder_repository()
        self.tasks = tasks or get_task_repository()
        self.notifier = notifier or get_notifier(settings)

    async def run_sweep(
        self,
        session: AsyncSession,
        *,
        authorization: str | None,
        now: datetime | None = None,
    ) -> SweepReport:
        """Process every pending reminder due within the horizon.

        Args:
            session: Database session; committed after each transition
            authorization: ``Authorization`` header value of the trigger
            now: Reference instant, defaults to the current time

        Returns:
            SweepReport with one outcome per examined reminder

        Raises:
            UnauthorizedException: If the trigger is not authorized
            StorageError: If the store fails; the sweep stops and
                already-committed transitions stay in place
        """
        verify_sweep_authorization(authorization, self.settings)

        now = ensure_utc(now) if now is not None else utcnow()
        window_end = now + timedelta(seconds=self.settings.sweep_horizon_seconds)
        started = time.perf_counter()

        set_log_context(sweep_id=uuid.uuid4().hex)
        try:
            due = await self.reminders.find_due(
                session,
                window_start=now,
                window_end=window_end,
                limit=self.settings.sweep_batch_size,
            )
            candidates = [
                _Candidate(r.id, r.task_id, r.interval_key, r.scheduled_for) for r in due
            ]
            self._lazy.debug(lambda: f"sweep: {len(candidates)} candidates until {window_end.isoformat()}")

            results: list[ReminderOutcome] = []
            try:
                for candidate in candidates:
                    results.append(await self._process_one(session, candidate, now))
            except StorageError:
                await session.rollback()
                raise

            duration = time.perf_counter() - started
            reminder_sweep_duration_seconds.observe(duration)
            report = SweepReport(
                processed=len(candidates),
                results=results,
                started_at=now,
                duration_ms=int(duration * 1000),
            )
            self.logger.info(
                "Reminder sweep finished",
                extra={
                    "processed": report.processed,
                    "sent": report.count("sent"),
                    "failed": report.count("failed"),
                    "canceled": report.count("canceled"),
                    "skipped": report.count("skipped"),
                    "duration_ms": report.duration_ms,
                    "operation": "reminders.sweep",
                },
            )
            return report
        finally:
            remove_from_log_context("sweep_id")

    async def reclaim_stale_processing(
        self,
        session: AsyncSession,
        *,
        older_than: timedelta,
        now: datetime | None = None,
    ) -> int:
        """Fail reminders claimed longer ago than ``older_than`` and commit.

        Returns:
            Number of reminders moved to failed
        """
        now = ensure_utc(now) if now is not None else utcnow()
        try:
            count = await self.reminders.reclaim_stale_processing(session, older_than=now - older_than)
            await self._commit(session)
        except StorageError:
            await session.rollback()
            raise

        if count:
            reminder_deliveries_total.labels(status="timed_out").inc(count)
        return count

    async def _process_one(
        self,
        session: AsyncSession,
        candidate: _Candidate,
        now: datetime,
    ) -> ReminderOutcome:
        task = await self.tasks.find_eligible_task(session, candidate.task_id)

        reason = ineligibility_reason(candidate.scheduled_for, task)
        if reason is not None or task is None:
            return await self._cancel(session, candidate, now, reason or REASON_TASK_DELETED)

        claimed = await self.reminders.claim(session, candidate.id, now=now)
        await self._commit(session)
        if not claimed:
            reminder_deliveries_total.labels(status="skipped").inc()
            self.logger.info(
                "Due reminder claimed elsewhere",
                extra={"reminder_id": str(candidate.id), "operation": "reminders.sweep.claim"},
            )
            return ReminderOutcome(reminder_id=candidate.id, status="skipped", reason="Already claimed")

        result = await self._deliver(candidate, task)

        if result.success:
            recorded = await self.reminders.mark_sent(
                session, candidate.id, now=now, message_id=result.message_id
            )
            await self._commit(session)
            if not recorded:
                return self._lost_after_delivery(candidate, result)

            reminder_deliveries_total.labels(status="sent").inc()
            self.logger.info(
                "Reminder sent",
                extra={
                    "reminder_id": str(candidate.id),
                    "task_id": str(candidate.task_id),
                    "message_id": result.message_id,
                    "operation": "reminders.sweep.deliver",
                },
            )
            return ReminderOutcome(reminder_id=candidate.id, status="sent", message_id=result.message_id)

        error = result.error or UNKNOWN_ERROR
        recorded = await self.reminders.mark_failed(session, candidate.id, error=error)
        await self._commit(session)
        if not recorded:
            return self._lost_after_delivery(candidate, result)

        reminder_deliveries_total.labels(status="failed").inc()
        self.logger.warning(
            "Reminder delivery failed",
            extra={
                "reminder_id": str(candidate.id),
                "task_id": str(candidate.task_id),
                "error": error,
                "operation": "reminders.sweep.deliver",
            },
        )
        return ReminderOutcome(reminder_id=candidate.id, status="failed", error=error)

    async def _cancel(
        self,
        session: AsyncSession,
        candidate: _Candidate,
        now: datetime,
        reason: str,
    ) -> ReminderOutcome:
        canceled = await self.reminders.cancel_if_pending(session, candidate.id, now=now, reason=reason)
        await self._commit(session)
        if not canceled:
            reminder_deliveries_total.labels(status="skipped").inc()
            return ReminderOutcome(reminder_id=candidate.id, status="skipped", reason="Already handled")

        reminders_canceled_total.labels(source="sweep").inc()
        self.logger.info(
            "Due reminder canceled",
            extra={
                "reminder_id": str(candidate.id),
                "task_id": str(candidate.task_id),
                "reason": reason,
                "operation": "reminders.sweep.cancel",
            },
        )
        return ReminderOutcome(reminder_id=candidate.id, status="canceled", reason=reason)

    def _lost_after_delivery(self, candidate: _Candidate, result: NotificationResult) -> ReminderOutcome:
        # The row left processing while the notifier ran (e.g. reclaimed as
        # stale); the stored outcome stands.
        reminder_deliveries_total.labels(status="skipped").inc()
        self.logger.warning(
            "Reminder state changed during delivery",
            extra={
                "reminder_id": str(candidate.id),
                "task_id": str(candidate.task_id),
                "delivered": result.success,
                "message_id": result.message_id,
                "error": result.error,
                "operation": "reminders.sweep.deliver",
            },
        )
        return ReminderOutcome(
            reminder_id=candidate.id,
            status="skipped",
            reason=REASON_STATE_CHANGED,
            message_id=result.message_id,
        )

    async def _deliver(self, candidate: _Candidate, task: EligibleTask) -> NotificationResult:
        try:
            return await self.notifier.send(
                to=task.owner_email,
                task_title=task.title,
                deadline_at=task.deadline_at,
                notes=task.notes,
                tags=list(task.tags),
                interval_label=interval_label(candidate.interval_key),
            )
        except Exception as exc:  # noqa: BLE001 - notifier failures are recorded per reminder
            self.logger.exception(
                "Notifier raised",
                extra={"reminder_id": str(candidate.id), "operation": "reminders.sweep.deliver"},
            )
            return NotificationResult.failure_result(str(exc) or UNKNOWN_ERROR)

    async def _commit(self, session: AsyncSession) -> None:
        try:
            await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError("db.commit", exc) from exc


__all__ = [
    "REASON_PAST_DEADLINE",
    "REASON_STATE_CHANGED",
    "REASON_TASK_DELETED",
    "REASON_TASK_NOT_ACTIVE",
    "DueReminderProcessor",
    "ineligibility_reason",
]
