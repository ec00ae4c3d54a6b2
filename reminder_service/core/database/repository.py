"""Minimal generic repository for SQLAlchemy models.

Provides basic CRUD operations with explicit session passing.
For complex queries, use the session directly - this is a convenience, not a cage.

Example:
    from reminder_service.core.database import BaseRepository
    from reminder_service.features.users.models import User

    class UserRepository(BaseRepository[User]):
        '''User-specific queries beyond basic CRUD.'''

        async def find_by_email(self, session: AsyncSession, email: str) -> User | None:
            stmt = select(User).where(User.email == email)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from reminder_service.core.database.exceptions import NotFoundError, StorageError
from reminder_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Minimal generic repository for CRUD operations.

    Provides:
        - get(session, id) -> T | None
        - get_or_raise(session, id) -> T (raises NotFoundError)
        - get_by(session, attr, value) -> T | None
        - create(session, instance) -> T
        - create_many(session, instances) -> Sequence[T]

    Session is always explicit - no hidden state. Subclasses run their own
    statements inside ``self._guard("db.xxx")`` so driver failures surface
    as ``StorageError`` instead of raw SQLAlchemy exceptions.
    """

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class (e.g., Task, Reminder)
        """
        self.model = model
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        """Translate SQLAlchemy failures into ``StorageError``."""
        try:
            yield
        except SQLAlchemyError as exc:
            self._logger.exception(
                "Storage operation failed",
                extra={"entity": self.model.__name__, "operation": operation},
            )
            raise StorageError(operation, exc) from exc

    async def get(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        options: Iterable[Any] | None = None,
    ) -> T | None:
        """Get entity by primary key.

        Args:
            session: Database session
            id: Primary key value
            options: SQLAlchemy loader options (e.g., selectinload)

        Returns:
            Entity if found, None otherwise
        """
        async with self._guard("db.get"):
            if options:
                stmt = select(self.model).where(self._pk_attr() == id).options(*options)
                result = await session.execute(stmt)
                instance = result.scalar_one_or_none()
            else:
                instance = await session.get(self.model, id)

        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_or_raise(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        options: Iterable[Any] | None = None,
    ) -> T:
        """Get entity by primary key or raise NotFoundError.

        Raises:
            NotFoundError: If entity doesn't exist
        """
        instance = await self.get(session, id, options=options)
        if instance is None:
            self._logger.info(
                "Entity not found",
                extra={
                    "entity": self.model.__name__,
                    "id": str(id),
                    "operation": "db.get_or_raise",
                },
            )
            raise NotFoundError(self.model.__name__, {"id": id})
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
    ) -> T | None:
        """Get entity by arbitrary attribute.

        Example:
                user = await repo.get_by(session, User.email, "ada@example.com")
        """
        async with self._guard("db.get_by"):
            result = await session.execute(select(self.model).where(attr == value))
            instance = result.scalar_one_or_none()

        self._lazy.debug(
            lambda: f"db.get_by: {self.model.__name__}.{attr.key}={value!r} -> {'found' if instance else 'not found'}"
        )
        return instance

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist a new entity.

        Adds to session, flushes to get generated values (like id),
        and refreshes to ensure instance is up-to-date.
        """
        async with self._guard("db.create"):
            session.add(instance)
            await session.flush()
            await session.refresh(instance)

        entity_id = getattr(instance, "id", None)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance

    async def create_many(self, session: AsyncSession, instances: Iterable[T]) -> Sequence[T]:
        """Persist multiple entities through the ORM unit of work."""
        instances_list = list(instances)
        async with self._guard("db.create_many"):
            session.add_all(instances_list)
            await session.flush()

        self._lazy.debug(
            lambda: f"db.create_many: {self.model.__name__} -> {len(instances_list)} created"
        )
        return instances_list

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        """Get primary key attribute."""
        mapper = sa_inspect(self.model)
        pk_cols = getattr(mapper, "primary_key", None)
        if pk_cols:
            return cast("InstrumentedAttribute[Any]", getattr(self.model, pk_cols[0].name))
        attr = getattr(self.model, "id", None)
        if attr is None:
            raise AttributeError(f"{self.model.__name__} has no 'id' attribute")
        return cast("InstrumentedAttribute[Any]", attr)


__all__ = ["BaseRepository"]
