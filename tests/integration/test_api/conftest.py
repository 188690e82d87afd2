"""App and client fixtures for API integration tests against the SQLite test database."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.api.errors import register_exception_handlers
from ballot_api.api.router import create_router
from ballot_api.core.config import Settings, get_settings
from ballot_api.core.dependencies import get_async_session


@pytest.fixture
def app(async_session: AsyncSession, settings: Settings) -> FastAPI:
    """FastAPI app with every router, bound to the per-test session."""
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(create_router(settings))

    async def _session() -> AsyncGenerator[AsyncSession]:
        yield async_session

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_settings] = lambda: settings
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
