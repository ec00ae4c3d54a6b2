"""Tests for task write flows and the reminder work they trigger."""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from reminder_service.core.database import NotFoundError, StorageError
from reminder_service.core.exceptions import ValidationException
from reminder_service.features.reminders.models import Reminder, ReminderStatus
from reminder_service.features.reminders.repository import ReminderRepository
from reminder_service.features.reminders.scheduler import ReminderScheduler
from reminder_service.features.tasks.models import Task, TaskStatus
from reminder_service.features.tasks.schemas import TaskCreate, TaskUpdate
from reminder_service.features.tasks.service import TaskService

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


@pytest.fixture
def service() -> TaskService:
    return TaskService()


async def _reminders(db_session: AsyncSession, task_id) -> list[Reminder]:
    return list(await ReminderRepository().list_for_task(db_session, task_id))


def _pending_keys(reminders: list[Reminder]) -> list[str | None]:
    return sorted(r.interval_key for r in reminders if r.status == ReminderStatus.PENDING)


async def _create(service: TaskService, db_session: AsyncSession, user, now: datetime, **fields) -> Task:
    payload = TaskCreate(
        title=fields.pop("title", "File taxes"),
        deadline_at=fields.pop("deadline_at", now + timedelta(days=10)),
        reminder_intervals=fields.pop("reminder_intervals", ["P1W", "P1D"]),
        **fields,
    )
    return await service.create_task(db_session, user_id=user.id, payload=payload, now=now)


class TestCreateTask:
    """Tests for TaskService.create_task."""

    async def test_schedules_requested_intervals(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now, tags=["finance", "home"])

        assert task.status == TaskStatus.ACTIVE
        assert task.reminder_intervals == ["P1W", "P1D"]
        assert sorted(tag.name for tag in task.tags) == ["finance", "home"]

        reminders = await _reminders(db_session, task.id)
        assert [(r.interval_key, r.scheduled_for) for r in reminders] == [
            ("P1W", now + timedelta(days=3)),
            ("P1D", now + timedelta(days=9)),
        ]

    async def test_legacy_keys_are_normalized(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now, reminder_intervals=["7d", "1d", "1h"])

        assert task.reminder_intervals == ["P1W", "P1D"]

    async def test_defaults_to_users_enabled_intervals(
        self, db_session: AsyncSession, service: TaskService, make_user, now: datetime
    ):
        owner = await make_user(enabled_intervals=["P3D", "P1D"])

        task = await _create(service, db_session, owner, now, reminder_intervals=None)

        assert task.reminder_intervals == ["P3D", "P1D"]
        assert _pending_keys(await _reminders(db_session, task.id)) == ["P1D", "P3D"]

    async def test_requested_intervals_limited_to_enabled(
        self, db_session: AsyncSession, service: TaskService, make_user, now: datetime
    ):
        owner = await make_user(enabled_intervals=["P1D"])

        task = await _create(service, db_session, owner, now, reminder_intervals=["P1W", "P1D"])

        assert task.reminder_intervals == ["P1D"]

    async def test_close_deadline_creates_no_reminders(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now, deadline_at=now + timedelta(hours=12))

        assert await _reminders(db_session, task.id) == []

    @pytest.mark.parametrize(
        ("title", "deadline_offset"),
        [("   ", timedelta(days=1)), ("File taxes", timedelta(0)), ("File taxes", -timedelta(days=1))],
    )
    async def test_invalid_input_is_rejected(
        self,
        db_session: AsyncSession,
        service: TaskService,
        user,
        now: datetime,
        title: str,
        deadline_offset: timedelta,
    ):
        with pytest.raises(ValidationException):
            await _create(service, db_session, user, now, title=title, deadline_at=now + deadline_offset)

        assert (await db_session.execute(select(func.count()).select_from(Task))).scalar_one() == 0

    async def test_unknown_user(self, db_session: AsyncSession, service: TaskService, now: datetime):
        payload = TaskCreate(title="File taxes", deadline_at=now + timedelta(days=10))

        with pytest.raises(NotFoundError):
            await service.create_task(db_session, user_id=uuid.uuid4(), payload=payload, now=now)

    async def test_scheduling_failure_rolls_back_task(
        self, db_session: AsyncSession, user, now: datetime
    ):
        class _FailingScheduler(ReminderScheduler):
            async def schedule(self, session, **kwargs):
                raise StorageError("db.create_skip_duplicates")

        service = TaskService(scheduler=_FailingScheduler())
        user_id = user.id

        with pytest.raises(StorageError):
            await service.create_task(
                db_session,
                user_id=user_id,
                payload=TaskCreate(title="File taxes", deadline_at=now + timedelta(days=10)),
                now=now,
            )

        assert (await db_session.execute(select(func.count()).select_from(Task))).scalar_one() == 0
        assert (await db_session.execute(select(func.count()).select_from(Reminder))).scalar_one() == 0


class TestUpdateTask:
    """Tests for TaskService.update_task and its shortcuts."""

    async def test_metadata_edit_keeps_reminders(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)
        before = {r.id for r in await _reminders(db_session, task.id)}

        updated = await service.update_task(
            db_session,
            task_id=task.id,
            user_id=user.id,
            payload=TaskUpdate(title="File taxes (2025)", notes="Use the new form", tags=["finance"]),
            now=now,
        )

        assert updated.title == "File taxes (2025)"
        assert updated.notes == "Use the new form"
        reminders = await _reminders(db_session, task.id)
        assert {r.id for r in reminders} == before
        assert all(r.status == ReminderStatus.PENDING for r in reminders)

    async def test_deadline_change_reschedules(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)
        original = {r.id for r in await _reminders(db_session, task.id)}

        await service.update_task(
            db_session,
            task_id=task.id,
            user_id=user.id,
            payload=TaskUpdate(deadline_at=now + timedelta(days=20)),
            now=now,
        )

        reminders = await _reminders(db_session, task.id)
        old = [r for r in reminders if r.id in original]
        new = [r for r in reminders if r.id not in original]
        assert {r.status for r in old} == {ReminderStatus.CANCELED}
        assert {r.cancel_reason for r in old} == {"Rescheduled"}
        assert sorted(r.scheduled_for for r in new) == [now + timedelta(days=13), now + timedelta(days=19)]

    async def test_interval_change_reschedules_with_same_deadline(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)

        updated = await service.update_task(
            db_session,
            task_id=task.id,
            user_id=user.id,
            payload=TaskUpdate(reminder_intervals=["P3D"]),
            now=now,
        )

        assert updated.reminder_intervals == ["P3D"]
        assert _pending_keys(await _reminders(db_session, task.id)) == ["P3D"]

    async def test_deadline_in_past_is_rejected(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)
        task_id, user_id = task.id, user.id

        with pytest.raises(ValidationException):
            await service.update_task(
                db_session,
                task_id=task_id,
                user_id=user_id,
                payload=TaskUpdate(deadline_at=now - timedelta(days=1)),
                now=now,
            )

        assert len(_pending_keys(await _reminders(db_session, task_id))) == 2

    async def test_complete_cancels_future_reminders(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)

        completed = await service.complete_task(db_session, task_id=task.id, user_id=user.id, now=now)

        assert completed.status == TaskStatus.COMPLETED
        reminders = await _reminders(db_session, task.id)
        assert {r.status for r in reminders} == {ReminderStatus.CANCELED}
        assert {r.cancel_reason for r in reminders} == {"Task completed"}

    async def test_complete_leaves_sent_reminders_alone(
        self, db_session: AsyncSession, service: TaskService, user, make_reminder, reload, now: datetime
    ):
        task = await _create(service, db_session, user, now, reminder_intervals=["P1D"])
        sent = await make_reminder(
            task,
            scheduled_for=now - timedelta(hours=1),
            interval_key="P1W",
            status=ReminderStatus.SENT.value,
            sent_at=now - timedelta(hours=1),
        )

        await service.complete_task(db_session, task_id=task.id, user_id=user.id, now=now)

        assert (await reload(sent.id)).status == ReminderStatus.SENT

    async def test_reactivating_completed_task_reschedules(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)
        await service.complete_task(db_session, task_id=task.id, user_id=user.id, now=now)

        later = now + timedelta(days=1)
        reactivated = await service.update_task(
            db_session,
            task_id=task.id,
            user_id=user.id,
            payload=TaskUpdate(status="active"),
            now=later,
        )

        assert reactivated.status == TaskStatus.ACTIVE
        reminders = await _reminders(db_session, task.id)
        pending = [r for r in reminders if r.status == ReminderStatus.PENDING]
        assert sorted(r.interval_key for r in pending) == ["P1D", "P1W"]
        assert len([r for r in reminders if r.status == ReminderStatus.CANCELED]) == 2

    async def test_closed_task_edit_does_not_reschedule(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)
        await service.complete_task(db_session, task_id=task.id, user_id=user.id, now=now)

        await service.update_task(
            db_session,
            task_id=task.id,
            user_id=user.id,
            payload=TaskUpdate(deadline_at=now + timedelta(days=30)),
            now=now,
        )

        assert _pending_keys(await _reminders(db_session, task.id)) == []

    async def test_delete_soft_deletes_and_cancels(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)

        deleted = await service.delete_task(db_session, task_id=task.id, user_id=user.id, now=now)

        assert deleted.status == TaskStatus.DELETED
        assert deleted.deleted_at == now
        reminders = await _reminders(db_session, task.id)
        assert {r.cancel_reason for r in reminders} == {"Task deleted"}

    async def test_deleted_task_is_not_found(
        self, db_session: AsyncSession, service: TaskService, user, now: datetime
    ):
        task = await _create(service, db_session, user, now)
        task_id, user_id = task.id, user.id
        await service.delete_task(db_session, task_id=task_id, user_id=user_id, now=now)

        with pytest.raises(NotFoundError):
            await service.update_task(
                db_session, task_id=task_id, user_id=user_id, payload=TaskUpdate(title="Again"), now=now
            )

    async def test_other_users_task_is_not_found(
        self, db_session: AsyncSession, service: TaskService, user, make_user, now: datetime
    ):
        task = await _create(service, db_session, user, now)
        stranger = await make_user()
        task_id, stranger_id = task.id, stranger.id

        with pytest.raises(NotFoundError):
            await service.complete_task(db_session, task_id=task_id, user_id=stranger_id, now=now)
