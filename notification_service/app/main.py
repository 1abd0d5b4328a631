"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from notification_service import __version__
from notification_service.app.exception_handlers import configure_exception_handlers
from notification_service.app.lifespan import lifespan
from notification_service.app.router import setup_routers
from notification_service.core.settings import get_app_settings


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_app_settings()

    app = FastAPI(
        title=settings.title,
        summary="Preference-aware push, email and digest delivery",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Exception handlers before routers
    configure_exception_handlers(app)
    setup_routers(app)
    return app


# Application instance for uvicorn
app = create_app()
