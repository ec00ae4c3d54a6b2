"""Main CLI entry point for reminder-service management commands."""

import click

from reminder_service.cli.commands import database, reminders, server, users
from reminder_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="reminder-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Reminder Service CLI - management commands for the reminder engine.

    \b
    Command Groups:
      db         Database connectivity and table creation
      users      User account management
      reminders  Sweep, reclaim and delivery statistics
      server     API server

    \b
    Quick Start:
      reminder-service db init
      reminder-service users create --email ada@example.com
      reminder-service reminders sweep
      reminder-service server run
    """
    ctx.ensure_object(dict)


cli.add_command(database.db)
cli.add_command(users.users)
cli.add_command(reminders.reminders)
cli.add_command(server.server)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
