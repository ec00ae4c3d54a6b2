"""Server management commands."""

import click

from reminder_service.cli.utils import info
from reminder_service.core.settings import get_app_settings


@click.group(name="server")
def server() -> None:
    """Server management commands."""


@server.command()
@click.option("--host", default=None, help="Host to bind (default: APP_HOST)")
@click.option("--port", default=None, type=int, help="Port to bind (default: APP_PORT)")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload on code changes")
def run(host: str | None, port: int | None, reload: bool) -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = get_app_settings()
    host = host or settings.host
    port = port or settings.port

    info(f"Starting server on {host}:{port}")
    uvicorn.run(
        "reminder_service.app.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )
