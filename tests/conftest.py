"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests off real infrastructure
    - Database Fixtures: in-memory SQLite engine and session
    - Data Factories: users, tasks and reminders persisted directly
    - Reminder Fixtures: settings, recording notifier, processor
    - Application Fixtures: FastAPI app and HTTP client
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DB_CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("REMINDER_SCHEDULER_ENABLED", "false")

from reminder_service.core import models  # noqa: E402,F401
from reminder_service.core.database import Base  # noqa: E402
from reminder_service.core.settings import ReminderSettings, clear_all_caches  # noqa: E402
from reminder_service.features.reminders.models import Reminder, ReminderStatus  # noqa: E402
from reminder_service.features.reminders.notifier import NotificationResult  # noqa: E402
from reminder_service.features.reminders.processor import DueReminderProcessor  # noqa: E402
from reminder_service.features.tasks.models import Task, TaskStatus  # noqa: E402
from reminder_service.features.users.models import User  # noqa: E402

SWEEP_SECRET = "test-sweep-secret"
AUTHORIZATION = f"Bearer {SWEEP_SECRET}"

# Fixed reference instant used by most tests
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Keep cached settings from leaking between tests."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Async engine on a fresh in-memory SQLite database.

    StaticPool keeps a single connection so every session sees the same
    database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory matching the application's configuration."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Database session for one test."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Data Factories
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """Reference instant for scheduling and sweeping."""
    return NOW


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Persist a user."""
    counter = {"n": 0}

    async def _make(
        email: str | None = None,
        *,
        enabled_intervals: Sequence[str] | None = None,
        name: str | None = "Ada",
    ) -> User:
        counter["n"] += 1
        user = User(email=email or f"user{counter['n']}@example.com", name=name)
        if enabled_intervals is not None:
            user.enabled_intervals = list(enabled_intervals)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
async def user(make_user: Callable[..., Awaitable[User]]) -> User:
    """Default user with every interval enabled."""
    return await make_user("ada@example.com")


@pytest.fixture
def make_task(db_session: AsyncSession, now: datetime) -> Callable[..., Awaitable[Task]]:
    """Persist a task directly, without scheduling reminders."""

    async def _make(
        user: User,
        *,
        title: str = "File taxes",
        deadline_at: datetime | None = None,
        status: str = TaskStatus.ACTIVE.value,
        notes: str | None = None,
        reminder_intervals: Sequence[str] = (),
        deleted_at: datetime | None = None,
    ) -> Task:
        task = Task(
            user_id=user.id,
            title=title,
            notes=notes,
            deadline_at=deadline_at or now + timedelta(days=30),
            status=status,
            reminder_intervals=list(reminder_intervals),
            deleted_at=deleted_at,
        )
        db_session.add(task)
        await db_session.commit()
        await db_session.refresh(task)
        return task

    return _make


@pytest.fixture
def make_reminder(db_session: AsyncSession) -> Callable[..., Awaitable[Reminder]]:
    """Persist a reminder row in any state."""

    async def _make(
        task: Task,
        *,
        scheduled_for: datetime,
        interval_key: str | None = "P1D",
        status: str = ReminderStatus.PENDING.value,
        offset_seconds: int = 86_400,
        **values: Any,
    ) -> Reminder:
        reminder = Reminder(
            task_id=task.id,
            user_id=task.user_id,
            interval_key=interval_key,
            offset_seconds=offset_seconds,
            scheduled_for=scheduled_for,
            status=status,
            **values,
        )
        db_session.add(reminder)
        await db_session.commit()
        await db_session.refresh(reminder)
        return reminder

    return _make


@pytest.fixture
def reload(db_session: AsyncSession) -> Callable[[Any], Awaitable[Reminder]]:
    """Fetch a reminder bypassing the identity map's cached values."""

    async def _reload(reminder_id: Any) -> Reminder:
        reminder = await db_session.get(Reminder, reminder_id, populate_existing=True)
        assert reminder is not None
        return reminder

    return _reload


# ============================================================================
# Reminder Fixtures
# ============================================================================


class RecordingNotifier:
    """Notifier double that records calls and returns scripted results."""

    def __init__(self, results: Sequence[NotificationResult | Exception] | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self._results = list(results or [])

    def script(self, *results: NotificationResult | Exception) -> None:
        """Queue results for the next calls; unscripted calls succeed."""
        self._results.extend(results)

    async def send(self, **kwargs: Any) -> NotificationResult:
        self.calls.append(kwargs)
        if self._results:
            result = self._results.pop(0)
        else:
            result = NotificationResult.success_result(f"msg-{len(self.calls)}")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def reminder_settings() -> ReminderSettings:
    """Reminder settings with a known sweep secret."""
    return ReminderSettings(sweep_secret=SWEEP_SECRET, sweep_horizon_seconds=300, sweep_batch_size=500)


@pytest.fixture
def authorization() -> str:
    """Valid Authorization header for the sweep trigger."""
    return AUTHORIZATION


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier that succeeds unless told otherwise."""
    return RecordingNotifier()


@pytest.fixture
def processor(reminder_settings: ReminderSettings, notifier: RecordingNotifier) -> DueReminderProcessor:
    """Processor wired to the recording notifier."""
    return DueReminderProcessor(notifier=notifier, settings=reminder_settings)


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(session_factory: async_sessionmaker[AsyncSession], processor: DueReminderProcessor) -> FastAPI:
    """FastAPI app whose session and processor dependencies use the test doubles."""
    from reminder_service.app.main import create_app
    from reminder_service.core.dependencies.database import get_db_session
    from reminder_service.features.reminders.router import get_reminder_processor

    application = create_app()

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db_session] = _session
    application.dependency_overrides[get_reminder_processor] = lambda: processor
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client bound to the app (lifespan is not run)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
