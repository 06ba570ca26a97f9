"""Fixtures wiring the API routers to the per-test SQLite session."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.api.router import create_router
from foxshrine_api.core.config import Settings, get_settings
from foxshrine_api.core.dependencies import get_async_session
from foxshrine_api.core.errors import register_exception_handlers


@pytest.fixture
def app(settings: Settings, async_session: AsyncSession) -> FastAPI:
    """Routers and error handlers without middleware or lifespan."""
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
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
