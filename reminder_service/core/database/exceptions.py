"""Database repository exceptions.

Custom exceptions for repository operations that provide better
error messages and typing than raw SQLAlchemy exceptions.
"""
from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """Base exception for repository operations.

    Raised when a repository operation fails due to programming
    errors, configuration issues, or unexpected states.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize repository error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotFoundError(RepositoryError):
    """Entity not found in database.

    This is a data-level error (404-like) rather than a system error.

    Attributes:
        model_name: Name of the model class that wasn't found
        identifier: The key/value that was searched for
    """

    def __init__(self, model_name: str, identifier: dict[str, Any]):
        """Initialize not found error.

        Args:
            model_name: Name of the model (e.g., "Task", "Reminder")
            identifier: Key-value pairs used in the search (e.g., {"id": 123})
        """
        self.model_name = model_name
        self.identifier = identifier

        id_str = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        message = f"{model_name} not found with {id_str}"

        super().__init__(message, details={"model": model_name, **identifier})

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"NotFoundError(model={self.model_name!r}, identifier={self.identifier!r})"


class StorageError(RepositoryError):
    """Persistence layer failed or is unavailable.

    Wraps driver and SQLAlchemy errors raised while reading or writing.
    Fatal to the calling operation: the enclosing transaction must be
    rolled back and the operation retried later.

    Attributes:
        operation: Repository operation that failed (e.g., "db.claim")
    """

    def __init__(self, operation: str, cause: BaseException | None = None):
        """Initialize storage error.

        Args:
            operation: Name of the failed repository operation
            cause: Underlying exception, if any
        """
        self.operation = operation
        details: dict[str, Any] = {"operation": operation}
        if cause is not None:
            details["cause"] = type(cause).__name__
        super().__init__("Storage operation failed", details=details)


__all__ = [
    "NotFoundError",
    "RepositoryError",
    "StorageError",
]
