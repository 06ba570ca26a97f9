"""Persisted login sessions: creation, refresh rotation and logout."""

from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.core.config import Settings
from foxshrine_api.core.security import TokenPair
from foxshrine_api.models.base import utcnow
from foxshrine_api.models.user_session import UserSession
from foxshrine_api.services.audit_service import RequestContext


def session_expiry(settings: Settings) -> datetime:
    """Expiry timestamp for a session row stamped now."""
    return utcnow() + timedelta(hours=settings.session_expire_hours)


def new_session(
    user_id: int,
    tokens: TokenPair,
    settings: Settings,
    context: RequestContext | None = None,
) -> UserSession:
    """Build (but do not add) a session row for a freshly issued token pair."""
    context = context or RequestContext()
    return UserSession(
        user_id=user_id,
        session_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        ip_address=context.ip_address,
        user_agent=(context.user_agent or "")[:500] or None,
        expires_at=session_expiry(settings),
        is_active=True,
        version=1,
    )


async def find_refreshable_session(session: AsyncSession, refresh_token: str) -> UserSession | None:
    """Return the active, unexpired session holding ``refresh_token``."""
    result = await session.execute(
        select(UserSession)
        .where(
            UserSession.refresh_token == refresh_token,
            UserSession.is_active.is_(True),
            UserSession.expires_at > utcnow(),
        )
        .order_by(UserSession.id.desc())
    )
    return result.scalars().first()


async def rotate_session(
    session: AsyncSession,
    user_session: UserSession,
    tokens: TokenPair,
    settings: Settings,
) -> bool:
    """Swap a session's tokens for a new pair.

    The UPDATE only matches while the row still holds the refresh token and
    version that were read, so of two concurrent refreshes of one token at
    most one wins.

    Returns:
        True when this call performed the rotation.
    """
    result = await session.execute(
        update(UserSession)
        .where(
            UserSession.id == user_session.id,
            UserSession.refresh_token == user_session.refresh_token,
            UserSession.is_active.is_(True),
            UserSession.version == user_session.version,
        )
        .values(
            session_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=session_expiry(settings),
            version=UserSession.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount == 1


async def deactivate_sessions(session: AsyncSession, access_token: str) -> int:
    """Deactivate every active session issued with ``access_token``.

    Returns:
        Number of rows deactivated.
    """
    result = await session.execute(
        update(UserSession)
        .where(UserSession.session_token == access_token, UserSession.is_active.is_(True))
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount
