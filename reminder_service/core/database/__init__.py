"""Core database package: declarative base, mixins, types and repository.

Base Classes and Mixins:
    - Base: Declarative base with auto table naming
    - UUIDPKMixin, TimestampMixin, SoftDeleteMixin
    - UUIDTimestampedBase: UUID PK + timestamps

Repository:
    - BaseRepository[T]: Generic CRUD with explicit session passing

Custom Types:
    - UTCDateTime: Aware UTC instants on every backend
    - EmailType: Validated email addresses

Exceptions:
    - RepositoryError, NotFoundError, StorageError
"""

from __future__ import annotations

from .base import (
    NAMING_CONVENTION,
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPKMixin,
    UUIDTimestampedBase,
    utcnow,
)
from .exceptions import NotFoundError, RepositoryError, StorageError
from .repository import BaseRepository
from .types import EmailType, UTCDateTime, ensure_utc

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "EmailType",
    "NotFoundError",
    "RepositoryError",
    "SoftDeleteMixin",
    "StorageError",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDPKMixin",
    "UUIDTimestampedBase",
    "ensure_utc",
    "utcnow",
]
