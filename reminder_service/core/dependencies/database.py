"""Database dependencies for FastAPI route handlers.

``get_db_session()`` is the FastAPI dependency; CLI commands and the
scheduler job use ``get_async_session()`` from ``infra.database`` directly.
Both draw from the same session factory.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from reminder_service.infra.database import get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency for database session.

    Yields:
        Database session that is automatically closed after request.
    """
    async with get_async_session() as session:
        yield session
