"""Async database engine and session management.

One engine per process, created once by ``init_engine`` (application
lifespan or CLI command) and shared by every request through the session
factory.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the current async engine.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the current session factory.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


def init_engine(database_url: str, *, pool_size: int = 10, **kwargs: object) -> AsyncEngine:
    """Create and store the async engine and session factory.

    Calling it again while an engine exists returns the existing engine.

    Args:
        database_url: Async SQLAlchemy connection string.
        pool_size: Upper bound on pooled connections (no overflow).
        **kwargs: Additional arguments passed to create_async_engine.

    Returns:
        The process-wide async engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        return _engine
    # SQLite/StaticPool engines do not take pool sizing arguments
    uses_static_pool = kwargs.get("poolclass") is StaticPool or "sqlite" in database_url
    if not uses_static_pool:
        kwargs.setdefault("pool_size", pool_size)
        kwargs.setdefault("max_overflow", 0)
        kwargs.setdefault("pool_pre_ping", True)
    _engine = create_async_engine(database_url, **kwargs)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


async def ping() -> bool:
    """Run ``SELECT 1`` against the engine; True when the store answers."""
    async with get_engine().connect() as conn:
        result = await conn.execute(text("SELECT 1"))
        return result.scalar_one() == 1


async def dispose_engine() -> None:
    """Dispose of the async engine and release connections."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
