"""Tests for scheduling, cancelling and rescheduling reminders."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from reminder_service.features.reminders.models import REMINDER_SOURCE_STANDARD, ReminderStatus
from reminder_service.features.reminders.repository import ReminderRepository
from reminder_service.features.reminders.scheduler import ReminderScheduler
from reminder_service.infra.metrics import REGISTRY

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


@pytest.fixture
def scheduler() -> ReminderScheduler:
    return ReminderScheduler(ReminderRepository())


async def _pending(db_session: AsyncSession, task_id) -> list:
    reminders = await ReminderRepository().list_for_task(db_session, task_id)
    return [r for r in reminders if r.status == ReminderStatus.PENDING]


class TestSchedule:
    """Tests for ReminderScheduler.schedule."""

    async def test_creates_one_reminder_per_admitted_interval(
        self, db_session: AsyncSession, scheduler: ReminderScheduler, user, make_task, now: datetime
    ):
        deadline = now + timedelta(days=10)
        task = await make_task(user, deadline_at=deadline)

        created = await scheduler.schedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=deadline,
            interval_keys=["P1W", "P1D"],
            now=now,
        )

        assert [(r.interval_key, r.scheduled_for) for r in created] == [
            ("P1W", now + timedelta(days=3)),
            ("P1D", now + timedelta(days=9)),
        ]
        for reminder in created:
            assert reminder.status == ReminderStatus.PENDING
            assert reminder.attempts == 0
            assert reminder.source == REMINDER_SOURCE_STANDARD
            assert reminder.user_id == user.id
        assert created[0].offset_seconds == 7 * 86_400

    async def test_drops_reminders_already_in_the_past(
        self, db_session: AsyncSession, scheduler: ReminderScheduler, user, make_task, now: datetime
    ):
        deadline = now + timedelta(hours=12)
        task = await make_task(user, deadline_at=deadline)

        created = await scheduler.schedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=deadline,
            interval_keys=["P1W", "P1D"],
            now=now,
        )

        assert created == []
        assert await _pending(db_session, task.id) == []

    async def test_reminder_exactly_at_now_is_dropped(
        self, db_session: AsyncSession, scheduler: ReminderScheduler, user, make_task, now: datetime
    ):
        deadline = now + timedelta(days=1)
        task = await make_task(user, deadline_at=deadline)

        created = await scheduler.schedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=deadline,
            interval_keys=["P1D"],
            now=now,
        )

        assert created == []

    async def test_second_call_is_a_no_op(
        self, db_session: AsyncSession, scheduler: ReminderScheduler, user, make_task, now: datetime
    ):
        deadline = now + timedelta(days=40)
        task = await make_task(user, deadline_at=deadline)
        kwargs = {
            "task_id": task.id,
            "user_id": user.id,
            "deadline_at": deadline,
            "interval_keys": ["P1M", "P1W", "P1D"],
            "now": now,
        }

        first = await scheduler.schedule(db_session, **kwargs)
        second = await scheduler.schedule(db_session, **kwargs)

        assert len(first) == 3
        assert second == []
        assert len(await _pending(db_session, task.id)) == 3

    async def test_unknown_and_duplicate_keys_are_skipped(
        self,
        db_session: AsyncSession,
        scheduler: ReminderScheduler,
        user,
        make_task,
        now: datetime,
        caplog: pytest.LogCaptureFixture,
    ):
        deadline = now + timedelta(days=10)
        task = await make_task(user, deadline_at=deadline)

        with caplog.at_level(logging.WARNING, logger="ReminderScheduler"):
            created = await scheduler.schedule(
                db_session,
                task_id=task.id,
                user_id=user.id,
                deadline_at=deadline,
                interval_keys=["P5D", "P1D", "P1D"],
                now=now,
            )

        assert [r.interval_key for r in created] == ["P1D"]
        warnings = [r for r in caplog.records if r.getMessage() == "Skipping unknown reminder interval"]
        assert len(warnings) == 1
        assert warnings[0].interval_key == "P5D"

    async def test_counts_scheduled_reminders(
        self, db_session: AsyncSession, scheduler: ReminderScheduler, user, make_task, now: datetime
    ):
        deadline = now + timedelta(days=10)
        task = await make_task(user, deadline_at=deadline)
        before = REGISTRY.get_sample_value("reminders_scheduled_total") or 0.0

        await scheduler.schedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=deadline,
            interval_keys=["P1W", "P3D", "P1D"],
            now=now,
        )

        assert REGISTRY.get_sample_value("reminders_scheduled_total") == before + 3


class TestCancelFuturePending:
    """Tests for ReminderScheduler.cancel_future_pending."""

    async def test_only_future_pending_reminders_are_canceled(
        self,
        db_session: AsyncSession,
        scheduler: ReminderScheduler,
        user,
        make_task,
        make_reminder,
        reload,
        now: datetime,
    ):
        task = await make_task(user)
        future = await make_reminder(task, scheduled_for=now + timedelta(days=2), interval_key="P1W")
        due = await make_reminder(task, scheduled_for=now, interval_key="P3D")
        processing = await make_reminder(
            task, scheduled_for=now + timedelta(days=1), interval_key="P2W", status="processing"
        )
        sent = await make_reminder(
            task, scheduled_for=now + timedelta(days=1), interval_key="P3W", status="sent"
        )

        count = await scheduler.cancel_future_pending(
            db_session, task_id=task.id, now=now, reason="Task completed"
        )

        assert count == 1
        canceled = await reload(future.id)
        assert canceled.status == ReminderStatus.CANCELED
        assert canceled.canceled_at == now
        assert canceled.cancel_reason == "Task completed"
        assert (await reload(due.id)).status == ReminderStatus.PENDING
        assert (await reload(processing.id)).status == ReminderStatus.PROCESSING
        assert (await reload(sent.id)).status == ReminderStatus.SENT

    async def test_is_idempotent(
        self, db_session: AsyncSession, scheduler: ReminderScheduler, user, make_task, make_reminder, now: datetime
    ):
        task = await make_task(user)
        await make_reminder(task, scheduled_for=now + timedelta(days=2), interval_key="P1W")
        await make_reminder(task, scheduled_for=now + timedelta(days=3), interval_key="P2W")

        assert await scheduler.cancel_future_pending(db_session, task_id=task.id, now=now) == 2
        assert await scheduler.cancel_future_pending(db_session, task_id=task.id, now=now) == 0

    async def test_other_tasks_are_untouched(
        self,
        db_session: AsyncSession,
        scheduler: ReminderScheduler,
        user,
        make_task,
        make_reminder,
        reload,
        now: datetime,
    ):
        task = await make_task(user)
        other = await make_task(user, title="Renew passport")
        kept = await make_reminder(other, scheduled_for=now + timedelta(days=2), interval_key="P1W")

        await scheduler.cancel_future_pending(db_session, task_id=task.id, now=now)

        assert (await reload(kept.id)).status == ReminderStatus.PENDING


class TestReschedule:
    """Tests for ReminderScheduler.reschedule."""

    async def test_cancels_then_recreates(
        self, db_session: AsyncSession, scheduler: ReminderScheduler, user, make_task, now: datetime
    ):
        deadline = now + timedelta(days=10)
        task = await make_task(user, deadline_at=deadline)
        original = await scheduler.schedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=deadline,
            interval_keys=["P1W", "P1D"],
            now=now,
        )
        original_ids = {r.id for r in original}

        new_deadline = now + timedelta(days=20)
        created = await scheduler.reschedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=new_deadline,
            interval_keys=["P1W", "P1D"],
            now=now,
        )

        assert [(r.interval_key, r.scheduled_for) for r in created] == [
            ("P1W", now + timedelta(days=13)),
            ("P1D", now + timedelta(days=19)),
        ]
        reminders = await ReminderRepository().list_for_task(db_session, task.id)
        old = [r for r in reminders if r.id in original_ids]
        assert {r.status for r in old} == {ReminderStatus.CANCELED}
        assert {r.cancel_reason for r in old} == {"Rescheduled"}
        assert {r.id for r in await _pending(db_session, task.id)} == {r.id for r in created}

    async def test_interval_change_with_same_deadline(
        self, db_session: AsyncSession, scheduler: ReminderScheduler, user, make_task, now: datetime
    ):
        deadline = now + timedelta(days=10)
        task = await make_task(user, deadline_at=deadline)
        await scheduler.schedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=deadline,
            interval_keys=["P1W"],
            now=now,
        )

        await scheduler.reschedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=deadline,
            interval_keys=["P3D", "P1D"],
            now=now,
        )

        pending = await _pending(db_session, task.id)
        assert sorted(r.interval_key for r in pending) == ["P1D", "P3D"]

    async def test_sent_interval_is_recreated_for_extended_deadline(
        self,
        db_session: AsyncSession,
        scheduler: ReminderScheduler,
        user,
        make_task,
        make_reminder,
        reload,
        now: datetime,
    ):
        task = await make_task(user, deadline_at=now + timedelta(hours=20))
        sent = await make_reminder(
            task,
            scheduled_for=now - timedelta(hours=4),
            interval_key="P1D",
            status=ReminderStatus.SENT.value,
            sent_at=now - timedelta(hours=4),
        )

        created = await scheduler.reschedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=now + timedelta(days=20),
            interval_keys=["P1W", "P1D"],
            now=now,
        )

        assert [(r.interval_key, r.scheduled_for) for r in created] == [
            ("P1W", now + timedelta(days=13)),
            ("P1D", now + timedelta(days=19)),
        ]
        assert (await reload(sent.id)).status == ReminderStatus.SENT

    async def test_overdue_pending_reminder_is_replaced(
        self,
        db_session: AsyncSession,
        scheduler: ReminderScheduler,
        user,
        make_task,
        make_reminder,
        reload,
        now: datetime,
    ):
        task = await make_task(user, deadline_at=now + timedelta(hours=20))
        missed = await make_reminder(task, scheduled_for=now - timedelta(hours=4), interval_key="P1D")

        created = await scheduler.reschedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=now + timedelta(days=5),
            interval_keys=["P1D"],
            now=now,
        )

        assert [(r.interval_key, r.scheduled_for) for r in created] == [("P1D", now + timedelta(days=4))]
        canceled = await reload(missed.id)
        assert canceled.status == ReminderStatus.CANCELED
        assert canceled.cancel_reason == "Rescheduled"

    async def test_already_sent_slot_is_not_repeated(
        self,
        db_session: AsyncSession,
        scheduler: ReminderScheduler,
        user,
        make_task,
        make_reminder,
        now: datetime,
    ):
        deadline = now + timedelta(days=1, minutes=2)
        task = await make_task(user, deadline_at=deadline)
        await make_reminder(
            task,
            scheduled_for=now + timedelta(minutes=2),
            interval_key="P1D",
            status=ReminderStatus.SENT.value,
            sent_at=now,
        )

        created = await scheduler.reschedule(
            db_session,
            task_id=task.id,
            user_id=user.id,
            deadline_at=deadline,
            interval_keys=["P1D"],
            now=now,
        )

        assert created == []
