"""Repository for the tasks feature."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from reminder_service.core.database import BaseRepository
from reminder_service.features.tasks.models import Tag, Task
from reminder_service.features.users.models import User

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(slots=True, frozen=True)
class EligibleTask:
    """Snapshot of the task state a reminder sweep needs.

    Attributes:
        id: Task id
        title: Task title, used in the message
        notes: Optional task notes
        deadline_at: Current deadline (may have moved since scheduling)
        status: Task lifecycle status
        deleted_at: Soft-delete marker
        owner_email: Recipient address
        tags: Tag names attached to the task
    """

    id: UUID
    title: str
    notes: str | None
    deadline_at: datetime
    status: str
    deleted_at: datetime | None
    owner_email: str
    tags: tuple[str, ...] = ()


class TaskRepository(BaseRepository[Task]):
    """Repository for Task rows.

    Inherits from BaseRepository:
        - get(session, id) -> Task | None
        - get_or_raise(session, id) -> Task
        - create(session, instance) -> Task
    """

    def __init__(self) -> None:
        """Initialize with Task model."""
        super().__init__(Task)

    async def find_eligible_task(self, session: AsyncSession, task_id: UUID) -> EligibleTask | None:
        """Load the task snapshot used to re-validate a due reminder.

        Soft-deleted and inactive tasks are returned too; the caller
        decides what to do with them.

        Returns:
            EligibleTask snapshot or None if the task does not exist
        """
        stmt = (
            select(Task, User.email)
            .join(User, User.id == Task.user_id)
            .where(Task.id == task_id)
            .options(selectinload(Task.tags))
            .execution_options(populate_existing=True)
        )
        async with self._guard("db.find_eligible_task"):
            row = (await session.execute(stmt)).one_or_none()

        if row is None:
            self._lazy.debug(lambda: f"db.find_eligible_task({task_id}) -> not found")
            return None

        task, email = row
        return EligibleTask(
            id=task.id,
            title=task.title,
            notes=task.notes,
            deadline_at=task.deadline_at,
            status=task.status,
            deleted_at=task.deleted_at,
            owner_email=email,
            tags=tuple(sorted(tag.name for tag in task.tags)),
        )

    async def get_for_user(self, session: AsyncSession, task_id: UUID, user_id: UUID) -> Task | None:
        """Get a task owned by ``user_id`` that has not been soft-deleted."""
        stmt = select(Task).where(
            Task.id == task_id,
            Task.user_id == user_id,
            Task.deleted_at.is_(None),
        )
        async with self._guard("db.get_for_user"):
            return (await session.execute(stmt)).scalar_one_or_none()

    async def get_or_create_tags(
        self,
        session: AsyncSession,
        user_id: UUID,
        names: Sequence[str],
    ) -> list[Tag]:
        """Resolve tag names for a user, creating missing tags."""
        cleaned: list[str] = []
        for name in names:
            value = name.strip()
            if value and value not in cleaned:
                cleaned.append(value)
        if not cleaned:
            return []

        async with self._guard("db.get_or_create_tags"):
            result = await session.execute(
                select(Tag).where(Tag.user_id == user_id, Tag.name.in_(cleaned))
            )
            existing = {tag.name: tag for tag in result.scalars().all()}
            missing = [Tag(user_id=user_id, name=name) for name in cleaned if name not in existing]
            if missing:
                session.add_all(missing)
                await session.flush()

        by_name = {**existing, **{tag.name: tag for tag in missing}}
        return [by_name[name] for name in cleaned]


_task_repository: TaskRepository | None = None


def get_task_repository() -> TaskRepository:
    """Get the shared TaskRepository instance."""
    global _task_repository
    if _task_repository is None:
        _task_repository = TaskRepository()
    return _task_repository
