"""Database infrastructure: engine and session factory."""

from __future__ import annotations

from .session import (
    AsyncSessionLocal,
    close_database,
    create_tables,
    engine,
    get_async_session,
    init_database,
)

__all__ = [
    "AsyncSessionLocal",
    "close_database",
    "create_tables",
    "engine",
    "get_async_session",
    "init_database",
]
