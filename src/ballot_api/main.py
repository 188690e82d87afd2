"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ballot_api import __version__
from ballot_api.core.config import get_settings
from ballot_api.core.database import dispose_engine, init_engine
from ballot_api.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: init engine on startup, dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    # In-process status reconciliation for deployments without an external scheduler
    refresh_task = None
    if settings.status_refresh_enabled:
        from ballot_api.services.election_status_service import status_refresh_loop

        refresh_task = asyncio.create_task(status_refresh_loop(settings.status_refresh_interval))

    yield

    if refresh_task is not None:
        refresh_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await refresh_task

    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Ballot API",
        description="Election scheduling, at-most-once ballot casting and full-system backup/restore",
        version=__version__,
        lifespan=lifespan,
    )

    from ballot_api.api.errors import register_exception_handlers
    from ballot_api.api.router import create_router, setup_middleware

    register_exception_handlers(app)
    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
