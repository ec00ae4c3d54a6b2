"""Database management commands.

Example:bash
    # Verify connectivity and create missing tables
    reminder-service db init
"""

import sys

import click
from sqlalchemy.exc import SQLAlchemyError

from reminder_service.cli.utils import coro, error, info, success
from reminder_service.core.settings import get_db_settings


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@click.option(
    "--create-tables/--no-create-tables",
    default=True,
    help="Create missing tables after connecting",
)
@coro
async def init(create_tables: bool) -> None:
    """Verify database connectivity and create missing tables."""
    from reminder_service.infra.database import close_database, init_database

    db_settings = get_db_settings()
    info(f"Connecting to: {db_settings.url.split('@')[-1]}")

    try:
        await init_database(create=create_tables)
    except (SQLAlchemyError, OSError) as e:
        error(f"Database initialization failed: {e}")
        sys.exit(1)
    finally:
        await close_database()

    success("Database ready" + (" (tables ensured)" if create_tables else ""))
