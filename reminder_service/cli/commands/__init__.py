"""CLI command modules."""

from reminder_service.cli.commands import database, reminders, server, users

__all__ = [
    "database",
    "reminders",
    "server",
    "users",
]
