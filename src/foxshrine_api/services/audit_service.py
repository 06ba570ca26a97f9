"""Activity/audit logging service.

Writes are best-effort: a failed insert is rolled back and logged, never
raised to the caller. Callers must finish reading ORM state they still
need before auditing, since a rollback expires loaded instances.
"""

from dataclasses import dataclass
from datetime import timedelta

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.models.activity_log import ActivityLog
from foxshrine_api.models.base import utcnow
from foxshrine_api.models.user import User
from foxshrine_api.schemas.admin import ActivityLogResponse
from foxshrine_api.schemas.auth import AuthenticatedUser

# Action tags
USER_REGISTERED = "USER_REGISTERED"
LOGIN_SUCCESS = "LOGIN_SUCCESS"
LOGIN_FAILED = "LOGIN_FAILED"
LOGOUT = "LOGOUT"
CONFIG_READ = "CONFIG_READ"
UPDATE_CONFIG = "UPDATE_CONFIG"
CONFIG_UPDATE = "CONFIG_UPDATE"
CONFIG_BULK_UPDATE = "CONFIG_BULK_UPDATE"
DELETE_CONFIG = "DELETE_CONFIG"
UPDATE_STREAM_STATUS = "UPDATE_STREAM_STATUS"
USER_ROLE_UPDATED = "USER_ROLE_UPDATED"

CONFIG_AUDIT_ACTIONS: frozenset[str] = frozenset(
    {UPDATE_CONFIG, CONFIG_UPDATE, CONFIG_BULK_UPDATE, DELETE_CONFIG, UPDATE_STREAM_STATUS}
)
SYSTEM_ACTIONS: frozenset[str] = CONFIG_AUDIT_ACTIONS | {USER_ROLE_UPDATED}


@dataclass(frozen=True)
class RequestContext:
    """Caller network details recorded alongside audit entries."""

    ip_address: str | None = None
    user_agent: str | None = None


async def log_activity(
    session: AsyncSession,
    *,
    user_id: int,
    action: str,
    details: str = "",
    context: RequestContext | None = None,
) -> ActivityLog | None:
    """Append an activity record and commit it.

    Args:
        session: The database session.
        user_id: The acting user's ID.
        action: Action tag (e.g. ``LOGIN_SUCCESS``, ``CONFIG_UPDATE``).
        details: Free-text details.
        context: Request IP and user agent.

    Returns:
        The created ActivityLog, or None when the write failed.
    """
    context = context or RequestContext()
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        details=details or "",
        ip_address=context.ip_address,
        user_agent=(context.user_agent or "")[:500],
        timestamp=utcnow(),
    )
    try:
        session.add(entry)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning(f"Activity logging failed for {action}: {e}")
        return None
    return entry


async def log_audit_trail(
    session: AsyncSession,
    actor: AuthenticatedUser | None,
    action: str,
    details: str = "",
    context: RequestContext | None = None,
) -> None:
    """Record an audit event for the acting user.

    Without an authenticated actor the event only goes to the application log.
    """
    if actor is None:
        logger.info(f"[AUDIT] {action} - {details}")
        return
    await log_activity(session, user_id=actor.id, action=action, details=details, context=context)


async def list_user_activity(
    session: AsyncSession,
    *,
    user_id: int | None = None,
    limit: int = 100,
) -> list[ActivityLogResponse]:
    """List activity entries joined with the acting user, newest first."""
    query = select(ActivityLog, User.username, User.email, User.display_name).join(
        User, ActivityLog.user_id == User.id
    )
    if user_id is not None:
        query = query.where(ActivityLog.user_id == user_id)
    query = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit)
    result = await session.execute(query)
    return [ActivityLogResponse.from_row(log, username, email, name) for log, username, email, name in result.all()]


async def list_system_activity(session: AsyncSession, *, limit: int = 100) -> list[ActivityLogResponse]:
    """List site-affecting entries (configuration, stream and role changes), newest first."""
    query = (
        select(ActivityLog, User.username, User.email, User.display_name)
        .join(User, ActivityLog.user_id == User.id)
        .where(ActivityLog.action.in_(SYSTEM_ACTIONS))
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(limit)
    )
    result = await session.execute(query)
    return [ActivityLogResponse.from_row(log, username, email, name) for log, username, email, name in result.all()]


async def list_config_audit(
    session: AsyncSession,
    *,
    key: str | None = None,
    days: int = 30,
) -> list[ActivityLogResponse]:
    """List configuration changes from the last ``days`` days.

    Args:
        session: The database session.
        key: Only entries whose details mention this key.
        days: Look-back window in days.

    Returns:
        Matching entries, newest first.
    """
    since = utcnow() - timedelta(days=days)
    query = (
        select(ActivityLog, User.username, User.email, User.display_name)
        .join(User, ActivityLog.user_id == User.id)
        .where(ActivityLog.action.in_(CONFIG_AUDIT_ACTIONS), ActivityLog.timestamp >= since)
    )
    if key:
        query = query.where(ActivityLog.details.contains(key, autoescape=True))
    query = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
    result = await session.execute(query)
    return [ActivityLogResponse.from_row(log, username, email, name) for log, username, email, name in result.all()]
