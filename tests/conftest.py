"""Shared test fixtures for async database, sessions, seeded users, and auth tokens."""

from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from foxshrine_api.core.config import Settings
from foxshrine_api.core.security import create_access_token, hash_password
from foxshrine_api.models.base import Base
from foxshrine_api.models.role import Role
from foxshrine_api.models.user import User
from foxshrine_api.services import seed_service

TEST_PASSWORD = "testpassword123"


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        jwt_refresh_token_expire_days=7,
        environment="test",
    )


@pytest.fixture(scope="session")
def password_hash() -> str:
    """One bcrypt hash of TEST_PASSWORD shared by every seeded user."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def roles(async_session: AsyncSession) -> dict[str, Role]:
    """Seed the standard roles and permissions."""
    from sqlalchemy import select

    await seed_service.seed_roles(async_session)
    result = await async_session.execute(select(Role))
    return {role.name: role for role in result.scalars().all()}


@pytest.fixture
def make_user(
    async_session: AsyncSession,
    roles: dict[str, Role],
    password_hash: str,
) -> Callable[..., Awaitable[User]]:
    """Factory creating a persisted user holding the given role."""

    async def _make(username: str, role: str = "Member", **overrides) -> User:
        fields = {
            "username": username,
            "email": f"{username}@example.com",
            "display_name": username.title(),
            "password_hash": password_hash,
            "role": roles[role],
            "is_active": True,
            "login_attempts": 0,
        }
        fields.update(overrides)
        user = User(**fields)
        async_session.add(user)
        await async_session.commit()
        return user

    return _make


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user("shrineadmin", "Admin")


@pytest.fixture
async def member_user(make_user) -> User:
    return await make_user("foxfan", "Member")


@pytest.fixture
def admin_token(settings: Settings, admin_user: User) -> str:
    """JWT access token for the Admin user."""
    return create_access_token(admin_user.id, settings.jwt_secret_key, settings.jwt_algorithm)


@pytest.fixture
def member_token(settings: Settings, member_user: User) -> str:
    """JWT access token for the Member user."""
    return create_access_token(member_user.id, settings.jwt_secret_key, settings.jwt_algorithm)
