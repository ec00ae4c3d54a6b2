"""Base database model classes with composable mixins.

This module provides the foundation for the service's SQLAlchemy models:
- UUID primary keys
- Timestamp tracking (created_at, updated_at)
- Soft delete marker (deleted_at)

Examples:
    UUID model with timestamps:
    class Task(UUIDTimestampedBase):
        __tablename__ = "tasks"
        title: Mapped[str] = mapped_column(String(255))

    Soft-deletable model:
    class Task(UUIDTimestampedBase, SoftDeleteMixin):
        __tablename__ = "tasks"
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from reminder_service.core.database.types import UTCDateTime

# Consistent naming convention for database constraints
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base with automatic table naming.

    Provides:
    - Consistent constraint naming via NAMING_CONVENTION
    - Automatic table name generation from class name (lowercase)
    - Metadata registry for all models
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Auto-derive table name from class name (lowercase)."""
        return cls.__name__.lower()


class UUIDPKMixin:
    """UUID v4 primary key.

    Provides:
        id: UUID v4 primary key (random)
    """

    __allow_unmapped__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
        comment="UUID v4 primary key",
    )


class TimestampMixin:
    """Timestamp tracking for create and update operations.

    Uses both Python-side defaults (for test environments) and database
    server defaults (for direct SQL inserts).

    Provides:
        created_at: Timestamp of record creation (immutable)
        updated_at: Timestamp of last modification (auto-updates)
    """

    __allow_unmapped__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        comment="Timestamp of record creation",
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp of last update",
    )


class SoftDeleteMixin:
    """Soft delete support for logical (reversible) deletion.

    Instead of physically removing records from the database, sets
    a deleted_at timestamp.

    Provides:
        deleted_at: Timestamp of deletion (None if not deleted)
        is_deleted: Property to check if record is deleted

    Note: Queries must explicitly filter out soft-deleted records
    using `.where(Model.deleted_at.is_(None))`.
    """

    __allow_unmapped__ = True

    deleted_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        default=None,
        comment="Timestamp of soft deletion",
    )

    @property
    def is_deleted(self) -> bool:
        """Check if this record has been soft-deleted."""
        return self.deleted_at is not None


class UUIDTimestampedBase(Base, UUIDPKMixin, TimestampMixin):
    """Convenience base with UUID PK and timestamps.

    Example:
            class Reminder(UUIDTimestampedBase):
            __tablename__ = "reminders"
            status: Mapped[str] = mapped_column(String(20))
    """

    __abstract__ = True


__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UUIDPKMixin",
    "UUIDTimestampedBase",
    "utcnow",
]
