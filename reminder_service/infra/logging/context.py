"""Context management for structured logging.

Provides automatic context injection into log records using contextvars,
so fields such as ``sweep_id`` appear on every record emitted while a
sweep runs without passing them to each logging call.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

# Each async task gets its own copy automatically
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for the current async task/thread.

    Example:
        ```python
        set_log_context(sweep_id="9b1d...", trigger="http")
        logger.info("Sweep started")  # Includes sweep_id and trigger
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current async task/thread."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


class ContextInjectingFilter(logging.Filter):
    """Logging filter that injects the contextvars log context into records.

    Attached to the root queue handler so every logger benefits. Existing record
    attributes are never overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject context into log record.

        Returns:
            True (always allow the record to be logged).
        """
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
