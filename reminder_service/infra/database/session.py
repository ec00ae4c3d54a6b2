"""Database session management.

The engine is built from ``DB_URL``: psycopg3 for PostgreSQL in
production, aiosqlite for local development and tests.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from reminder_service.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

db_settings = get_db_settings()
app_settings = get_app_settings()

engine_kwargs = db_settings.engine_kwargs()
engine_kwargs["echo"] = db_settings.echo or app_settings.debug

engine = create_async_engine(db_settings.url, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
            async with get_async_session() as session:
            report = await processor.run_sweep(session, authorization=header)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables() -> None:
    """Create every table registered on the declarative metadata.

    There is no migration tooling; this is the only schema management the
    service performs and it never alters existing tables.
    """
    # Models must be imported so their tables are registered
    from reminder_service.core.database import Base
    from reminder_service.core import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured", extra={"tables": sorted(Base.metadata.tables)})


async def init_database(*, create: bool | None = None) -> None:
    """Verify connectivity and optionally create tables.

    Args:
        create: Create tables; defaults to ``DB_CREATE_TABLES_ON_STARTUP``.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection established", extra={"dialect": engine.dialect.name})

    if create if create is not None else db_settings.create_tables_on_startup:
        await create_tables()


async def close_database() -> None:
    """Dispose the engine during application shutdown."""
    logger.info("Closing database connection")
    await engine.dispose()


__all__ = [
    "AsyncSessionLocal",
    "close_database",
    "create_tables",
    "engine",
    "get_async_session",
    "init_database",
]
