"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from reminder_service.app.exception_handlers import configure_exception_handlers
from reminder_service.app.lifespan import lifespan
from reminder_service.app.router import setup_routers
from reminder_service.core.settings import get_settings


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Uses unified settings from core.settings for all configuration.
    Settings are loaded once and cached via LRU cache.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    app_settings = settings.app

    app = FastAPI(
        title=app_settings.title,
        version=app_settings.version,
        debug=app_settings.debug,
        docs_url=None if app_settings.disable_docs else "/docs",
        redoc_url=None if app_settings.disable_docs else "/redoc",
        openapi_url=None if app_settings.disable_docs else "/openapi.json",
        lifespan=lifespan,
    )

    # Configure exception handlers
    configure_exception_handlers(app)

    # Setup routers
    setup_routers(app, app_settings)

    return app
