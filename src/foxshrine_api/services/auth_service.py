"""Authentication and user management service.

Handles registration, login with temporary lockout, token refresh, logout,
and the admin-side user and role listings.
"""

import math
from datetime import timedelta

import jwt
from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.core.config import Settings
from foxshrine_api.core.errors import AuthError, ConflictError, InternalError, LockedError, NotFoundError, ValidationError
from foxshrine_api.core.security import (
    REFRESH_TOKEN_TYPE,
    TokenPair,
    decode_token,
    hash_password,
    issue_token_pair,
    token_subject,
    verify_password,
)
from foxshrine_api.models.base import as_utc, utcnow
from foxshrine_api.models.role import Role
from foxshrine_api.models.user import User
from foxshrine_api.schemas.admin import RoleResponse
from foxshrine_api.schemas.auth import AuthenticatedUser, RegisterRequest, UserResponse
from foxshrine_api.schemas.common import PaginationMeta
from foxshrine_api.services import audit_service, session_service
from foxshrine_api.services.audit_service import RequestContext

DEFAULT_ROLE = "Member"
MAX_FAILED_LOGINS = 5
LOCKOUT_DURATION = timedelta(minutes=30)

INVALID_CREDENTIALS = "Invalid credentials"


async def get_role_by_name(session: AsyncSession, name: str) -> Role | None:
    result = await session.execute(select(Role).where(Role.name == name))
    return result.scalar_one_or_none()


async def get_active_user(session: AsyncSession, user_id: int) -> User | None:
    """Get an active user with role and permissions loaded.

    Args:
        session: The database session.
        user_id: The user's ID.

    Returns:
        The User if found and active, None otherwise.
    """
    result = await session.execute(select(User).where(User.id == user_id, User.is_active.is_(True)))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    password: str,
    role_name: str = DEFAULT_ROLE,
    display_name: str | None = None,
) -> User:
    """Create a new user holding ``role_name``.

    Raises:
        ConflictError: If the username or email already exists.
        ValidationError: If the role does not exist.
    """
    existing = await session.execute(select(User.id).where(or_(User.username == username, User.email == email)))
    if existing.first() is not None:
        msg = "Username or email already exists"
        raise ConflictError(msg)

    role = await get_role_by_name(session, role_name)
    if role is None:
        msg = f"Role '{role_name}' does not exist"
        raise ValidationError(msg)

    user = User(
        username=username,
        email=email,
        display_name=display_name or username,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
        login_attempts=0,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        msg = "Username or email already exists"
        raise ConflictError(msg) from e
    return user


async def register_user(
    session: AsyncSession,
    request: RegisterRequest,
    settings: Settings,
    context: RequestContext | None = None,
) -> tuple[AuthenticatedUser, TokenPair]:
    """Self-register a new user with the default role and open a session.

    Args:
        session: The database session.
        request: Registration data.
        settings: Application settings.
        context: Request IP and user agent.

    Returns:
        Tuple of (profile, issued tokens).

    Raises:
        ConflictError: If the username or email already exists.
        InternalError: If the default role has not been provisioned.
    """
    try:
        user = await create_user(
            session,
            username=request.username,
            email=str(request.email),
            password=request.password,
            role_name=DEFAULT_ROLE,
            display_name=request.display_name,
        )
    except ValidationError as e:
        raise InternalError("Registration failed", detail=e.message) from e

    tokens = issue_token_pair(user.id, settings)
    session.add(session_service.new_session(user.id, tokens, settings, context))
    await session.commit()

    profile = AuthenticatedUser.from_user(user)
    logger.info(f"User registered: {profile.username} (id={profile.id})")
    await audit_service.log_activity(
        session,
        user_id=profile.id,
        action=audit_service.USER_REGISTERED,
        details="New user registration",
        context=context,
    )
    return profile, tokens


async def login(
    session: AsyncSession,
    identifier: str,
    password: str,
    settings: Settings,
    context: RequestContext | None = None,
) -> tuple[AuthenticatedUser, TokenPair]:
    """Authenticate by username or email and open a session.

    A locked account is rejected before the password is checked. Each
    failed attempt increments the counter; reaching ``MAX_FAILED_LOGINS``
    locks the account for ``LOCKOUT_DURATION``.

    Args:
        session: The database session.
        identifier: Username or email address.
        password: The plaintext password.
        settings: Application settings.
        context: Request IP and user agent.

    Returns:
        Tuple of (profile, issued tokens).

    Raises:
        AuthError: Unknown user, inactive user or wrong password.
        LockedError: The account is currently locked.
    """
    result = await session.execute(
        select(User).where(or_(User.username == identifier, User.email == identifier), User.is_active.is_(True))
    )
    user = result.scalars().first()
    if user is None:
        raise AuthError(INVALID_CREDENTIALS)

    now = utcnow()
    locked_until = as_utc(user.locked_until)
    if locked_until is not None and now < locked_until:
        raise LockedError

    user_id = user.id
    if not verify_password(password, user.password_hash):
        attempts = (user.login_attempts or 0) + 1
        user.login_attempts = attempts
        user.locked_until = now + LOCKOUT_DURATION if attempts >= MAX_FAILED_LOGINS else None
        await session.commit()
        logger.warning(f"Failed login attempt {attempts} for user id={user_id}")
        await audit_service.log_activity(
            session,
            user_id=user_id,
            action=audit_service.LOGIN_FAILED,
            details=f"Failed login attempt {attempts}",
            context=context,
        )
        raise AuthError(INVALID_CREDENTIALS)

    user.login_attempts = 0
    user.locked_until = None
    user.last_login_at = now
    tokens = issue_token_pair(user_id, settings)
    session.add(session_service.new_session(user_id, tokens, settings, context))
    await session.commit()

    profile = AuthenticatedUser.from_user(user)
    logger.info(f"User logged in: {profile.username}")
    await audit_service.log_activity(
        session,
        user_id=user_id,
        action=audit_service.LOGIN_SUCCESS,
        details="User logged in successfully",
        context=context,
    )
    return profile, tokens


async def refresh_tokens(session: AsyncSession, refresh_token: str, settings: Settings) -> TokenPair:
    """Exchange a refresh token for a new pair, rotating the session row.

    Raises:
        AuthError: Bad or expired token, or no live session holds it.
        ValidationError: The token is not a refresh token.
    """
    try:
        payload = decode_token(refresh_token, settings.jwt_secret_key, settings.jwt_algorithm)
        user_id = token_subject(payload)
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid refresh token") from e

    if payload.get("type") != REFRESH_TOKEN_TYPE:
        raise ValidationError("Invalid token type")

    user_session = await session_service.find_refreshable_session(session, refresh_token)
    if user_session is None or user_session.user_id != user_id:
        raise AuthError("Refresh session not found or expired")

    tokens = issue_token_pair(user_id, settings)
    if not await session_service.rotate_session(session, user_session, tokens, settings):
        logger.warning(f"Concurrent refresh lost for session id={user_session.id}")
        raise AuthError("Refresh session not found or expired")
    return tokens


async def logout(
    session: AsyncSession,
    access_token: str,
    user: AuthenticatedUser,
    context: RequestContext | None = None,
) -> None:
    """Deactivate the sessions issued with ``access_token`` and audit it."""
    count = await session_service.deactivate_sessions(session, access_token)
    logger.info(f"User logged out: {user.username} ({count} session(s) closed)")
    await audit_service.log_activity(
        session,
        user_id=user.id,
        action=audit_service.LOGOUT,
        details="User logged out",
        context=context,
    )


async def list_users(
    session: AsyncSession,
    *,
    page: int = 1,
    limit: int = 10,
    role: str | None = None,
    search: str | None = None,
) -> tuple[list[UserResponse], PaginationMeta]:
    """List users with their role, newest first.

    Args:
        session: The database session.
        page: Page number (1-based).
        limit: Items per page.
        role: Only users holding this role name.
        search: Case-insensitive substring of username, email or display name.

    Returns:
        Tuple of (users, pagination metadata).
    """
    filters = []
    if role:
        filters.append(Role.name == role)
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(User.username).like(pattern),
                func.lower(User.email).like(pattern),
                func.lower(User.display_name).like(pattern),
            )
        )

    count_result = await session.execute(select(func.count(User.id)).join(Role, User.role_id == Role.id).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(User)
        .join(Role, User.role_id == Role.id)
        .where(*filters)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    users = [UserResponse.from_user(user) for user in result.scalars().all()]
    pagination = PaginationMeta(page=page, limit=limit, total=total, pages=math.ceil(total / limit))
    return users, pagination


async def update_user_role(
    session: AsyncSession,
    user_id: int,
    role_name: str,
    actor: AuthenticatedUser,
    context: RequestContext | None = None,
) -> UserResponse:
    """Assign ``role_name`` to a user.

    Raises:
        NotFoundError: If the user does not exist.
        ValidationError: If the role does not exist.
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")

    role = await get_role_by_name(session, role_name)
    if role is None:
        msg = f"Role '{role_name}' does not exist"
        raise ValidationError(msg)

    previous = user.role_name
    user.role = role
    user.updated_at = utcnow()
    await session.commit()

    response = UserResponse.from_user(user)
    logger.info(f"Role of {response.username} changed from {previous} to {role_name} by {actor.username}")
    await audit_service.log_activity(
        session,
        user_id=actor.id,
        action=audit_service.USER_ROLE_UPDATED,
        details=f"Changed role of {response.username} from {previous} to {role_name}",
        context=context,
    )
    return response


async def list_roles(session: AsyncSession) -> list[RoleResponse]:
    result = await session.execute(select(Role).order_by(Role.id))
    return [RoleResponse.from_role(role) for role in result.scalars().all()]
