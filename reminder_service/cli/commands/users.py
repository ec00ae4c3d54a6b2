"""User account commands."""

import sys

import click

from reminder_service.cli.utils import coro, error, info, success
from reminder_service.core.database import StorageError
from reminder_service.features.reminders.intervals import DEFAULT_INTERVALS, normalize_interval_keys


@click.group(name="users")
def users() -> None:
    """User account management."""


@users.command()
@click.option("--email", required=True, help="Reminder recipient address")
@click.option("--name", default=None, help="Display name")
@click.option(
    "--interval",
    "intervals",
    multiple=True,
    help="Enabled interval key (repeatable, default: all)",
)
@coro
async def create(email: str, name: str | None, intervals: tuple[str, ...]) -> None:
    """Create a user that tasks and reminders can belong to."""
    from reminder_service.features.users.models import User
    from reminder_service.features.users.repository import get_user_repository
    from reminder_service.infra.database import close_database, get_async_session

    enabled = normalize_interval_keys(intervals) if intervals else list(DEFAULT_INTERVALS)
    repo = get_user_repository()

    try:
        async with get_async_session() as session:
            if await repo.get_by_email(session, email) is not None:
                error(f"User already exists: {email}")
                sys.exit(1)
            user = await repo.create(session, User(email=email, name=name, enabled_intervals=enabled))
            await session.commit()
    except StorageError as e:
        error(f"Could not create user: {e}")
        sys.exit(1)
    finally:
        await close_database()

    success(f"Created user {user.id}")
    info(f"Enabled intervals: {', '.join(user.enabled_intervals)}")
