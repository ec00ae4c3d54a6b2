"""CLI utilities for running async operations and formatting output."""

from reminder_service.cli.utils.async_runner import coro
from reminder_service.cli.utils.formatters import error, header, info, success, warning

__all__ = [
    "coro",
    "error",
    "header",
    "info",
    "success",
    "warning",
]
