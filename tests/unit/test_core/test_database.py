"""Unit tests for the process-wide engine helpers."""

from collections.abc import AsyncGenerator

import pytest

from foxshrine_api.core import database


@pytest.fixture
async def clean_engine() -> AsyncGenerator[None]:
    await database.dispose_engine()
    yield
    await database.dispose_engine()


class TestEngineLifecycle:
    async def test_uninitialized_access_raises(self, clean_engine: None) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            database.get_engine()
        with pytest.raises(RuntimeError, match="not initialized"):
            database.get_session_factory()

    async def test_init_is_idempotent(self, clean_engine: None) -> None:
        first = database.init_engine("sqlite+aiosqlite:///:memory:")
        second = database.init_engine("sqlite+aiosqlite:///:memory:")
        assert first is second
        assert database.get_engine() is first

    async def test_ping(self, clean_engine: None) -> None:
        database.init_engine("sqlite+aiosqlite:///:memory:")
        assert await database.ping() is True

    async def test_session_factory_opens_sessions(self, clean_engine: None) -> None:
        database.init_engine("sqlite+aiosqlite:///:memory:")
        async with database.get_session_factory()() as session:
            assert session.bind is database.get_engine()

    async def test_dispose_resets(self, clean_engine: None) -> None:
        database.init_engine("sqlite+aiosqlite:///:memory:")
        await database.dispose_engine()
        with pytest.raises(RuntimeError):
            database.get_engine()
