"""Task write flows and the reminder work they trigger.

Each public method is one unit of work: the task write and every reminder
change it implies share a transaction that is committed on success and
rolled back on any failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from reminder_service.core.database import NotFoundError, StorageError, ensure_utc, utcnow
from reminder_service.core.exceptions import ValidationException
from reminder_service.core.services import BaseService
from reminder_service.features.reminders.intervals import resolve_intervals
from reminder_service.features.reminders.scheduler import (
    ReminderScheduler,
    get_reminder_scheduler,
)
from reminder_service.features.tasks.models import Task, TaskStatus
from reminder_service.features.tasks.repository import TaskRepository, get_task_repository
from reminder_service.features.tasks.schemas import TaskCreate, TaskUpdate
from reminder_service.features.users.repository import UserRepository, get_user_repository

R = TypeVar("R")

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from reminder_service.features.users.models import User

CANCEL_REASON_COMPLETED = "Task completed"
CANCEL_REASON_DELETED = "Task deleted"
CANCEL_REASON_RESCHEDULED = "Rescheduled"

_CLOSED_STATUSES = (TaskStatus.COMPLETED, TaskStatus.DELETED)


def _validate_title(title: str) -> str:
    cleaned = title.strip()
    if not cleaned:
        raise ValidationException(detail="Title is required", extra={"field": "title"})
    return cleaned


def _validate_deadline(deadline_at: datetime, now: datetime) -> datetime:
    deadline_at = ensure_utc(deadline_at)
    if deadline_at <= now:
        raise ValidationException(
            detail="Deadline must be in the future",
            extra={"field": "deadline_at"},
        )
    return deadline_at


class TaskService(BaseService):
    """Creates, edits, completes and deletes tasks, keeping reminders in step."""

    def __init__(
        self,
        *,
        tasks: TaskRepository | None = None,
        users: UserRepository | None = None,
        scheduler: ReminderScheduler | None = None,
    ) -> None:
        super().__init__()
        self.tasks = tasks or get_task_repository()
        self.users = users or get_user_repository()
        self.scheduler = scheduler or get_reminder_scheduler()

    async def create_task(
        self,
        session: AsyncSession,
        *,
        user_id: UUID,
        payload: TaskCreate,
        now: datetime | None = None,
    ) -> Task:
        """Create a task and schedule its reminders.

        Raises:
            ValidationException: Empty title or deadline not in the future
            NotFoundError: Unknown user
            StorageError: Persistence failure (nothing is kept)
        """
        now = ensure_utc(now) if now is not None else utcnow()
        title = _validate_title(payload.title)
        deadline_at = _validate_deadline(payload.deadline_at, now)

        async def work() -> Task:
            user = await self.users.get_or_raise(session, user_id)
            intervals = resolve_intervals(payload.reminder_intervals, user.enabled_intervals)
            tags = await self.tasks.get_or_create_tags(session, user_id, payload.tags)

            task = await self.tasks.create(
                session,
                Task(
                    user_id=user_id,
                    title=title,
                    notes=payload.notes,
                    deadline_at=deadline_at,
                    status=TaskStatus.ACTIVE.value,
                    reminder_intervals=intervals,
                    tags=tags,
                ),
            )
            await self.scheduler.schedule(
                session,
                task_id=task.id,
                user_id=user_id,
                deadline_at=deadline_at,
                interval_keys=intervals,
                now=now,
            )
            return task

        task = await self._in_transaction(session, work)
        self.logger.info(
            "Task created",
            extra={
                "task_id": str(task.id),
                "user_id": str(user_id),
                "intervals": list(task.reminder_intervals),
                "operation": "service.create_task",
            },
        )
        return task

    async def update_task(
        self,
        session: AsyncSession,
        *,
        task_id: UUID,
        user_id: UUID,
        payload: TaskUpdate,
        now: datetime | None = None,
    ) -> Task:
        """Apply a partial update and adjust reminders.

        Closing the task (completed or deleted) cancels future reminders.
        Reactivating a completed task, moving the deadline or changing the
        interval selection reschedules. Other edits leave reminders alone.

        Raises:
            ValidationException: Empty title or a new deadline in the past
            NotFoundError: Task missing, soft-deleted or owned by someone else
            StorageError: Persistence failure (nothing is kept)
        """
        now = ensure_utc(now) if now is not None else utcnow()
        changes: dict[str, Any] = payload.model_dump(exclude_unset=True)

        async def work() -> Task:
            task = await self._get_owned(session, task_id, user_id)
            previous_status = task.status
            deadline_changed = False
            intervals_changed = False

            if changes.get("title") is not None:
                task.title = _validate_title(changes["title"])
            if "notes" in changes:
                task.notes = changes["notes"]
            if changes.get("deadline_at") is not None:
                new_deadline = ensure_utc(changes["deadline_at"])
                if new_deadline != task.deadline_at:
                    task.deadline_at = _validate_deadline(new_deadline, now)
                    deadline_changed = True
            if changes.get("reminder_intervals") is not None:
                user = await self._get_user(session, user_id)
                intervals = resolve_intervals(changes["reminder_intervals"], user.enabled_intervals)
                if intervals != list(task.reminder_intervals):
                    task.reminder_intervals = intervals
                    intervals_changed = True
            if changes.get("tags") is not None:
                task.tags = await self.tasks.get_or_create_tags(session, user_id, changes["tags"])

            new_status = changes.get("status") or previous_status
            if new_status != previous_status:
                task.status = new_status
                if new_status == TaskStatus.DELETED:
                    task.deleted_at = now

            await session.flush()

            if new_status in _CLOSED_STATUSES:
                if previous_status not in _CLOSED_STATUSES:
                    reason = (
                        CANCEL_REASON_DELETED if new_status == TaskStatus.DELETED else CANCEL_REASON_COMPLETED
                    )
                    await self.scheduler.cancel_future_pending(
                        session, task_id=task.id, now=now, reason=reason
                    )
            elif previous_status == TaskStatus.COMPLETED or deadline_changed or intervals_changed:
                await self.scheduler.reschedule(
                    session,
                    task_id=task.id,
                    user_id=user_id,
                    deadline_at=task.deadline_at,
                    interval_keys=task.reminder_intervals,
                    now=now,
                    reason=CANCEL_REASON_RESCHEDULED,
                )
            else:
                self._lazy.debug(lambda: f"service.update_task({task_id}): no reminder changes")
            return task

        task = await self._in_transaction(session, work)
        self.logger.info(
            "Task updated",
            extra={
                "task_id": str(task_id),
                "fields": sorted(changes),
                "status": task.status,
                "operation": "service.update_task",
            },
        )
        return task

    async def complete_task(
        self,
        session: AsyncSession,
        *,
        task_id: UUID,
        user_id: UUID,
        now: datetime | None = None,
    ) -> Task:
        """Mark a task completed and cancel its future reminders."""
        return await self.update_task(
            session,
            task_id=task_id,
            user_id=user_id,
            payload=TaskUpdate(status="completed"),
            now=now,
        )

    async def delete_task(
        self,
        session: AsyncSession,
        *,
        task_id: UUID,
        user_id: UUID,
        now: datetime | None = None,
    ) -> Task:
        """Soft-delete a task and cancel its future reminders."""
        return await self.update_task(
            session,
            task_id=task_id,
            user_id=user_id,
            payload=TaskUpdate(status="deleted"),
            now=now,
        )

    async def _get_owned(self, session: AsyncSession, task_id: UUID, user_id: UUID) -> Task:
        task = await self.tasks.get_for_user(session, task_id, user_id)
        if task is None:
            self.logger.info(
                "Task not found",
                extra={"task_id": str(task_id), "user_id": str(user_id), "operation": "service.update_task"},
            )
            raise NotFoundError("Task", {"id": task_id})
        return task

    async def _get_user(self, session: AsyncSession, user_id: UUID) -> User:
        return await self.users.get_or_raise(session, user_id)

    async def _in_transaction(
        self,
        session: AsyncSession,
        work: Callable[[], Awaitable[R]],
    ) -> R:
        try:
            result = await work()
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise StorageError("db.transaction", exc) from exc
        except Exception:
            await session.rollback()
            raise
        return result


_task_service: TaskService | None = None


def get_task_service() -> TaskService:
    """Get the shared TaskService instance."""
    global _task_service
    if _task_service is None:
        _task_service = TaskService()
    return _task_service


__all__ = [
    "CANCEL_REASON_COMPLETED",
    "CANCEL_REASON_DELETED",
    "CANCEL_REASON_RESCHEDULED",
    "TaskService",
    "get_task_service",
]
