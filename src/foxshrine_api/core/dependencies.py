"""FastAPI dependency injection for database sessions, auth, and access control.

Provides get_async_session, the mandatory and optional bearer-token user
resolvers, and the require_permission factory.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.api.middleware import get_client_ip
from foxshrine_api.core.config import Settings, get_settings
from foxshrine_api.core.database import get_session_factory
from foxshrine_api.core.errors import (
    AUTH_ERROR,
    INVALID_TOKEN,
    NO_TOKEN,
    TOKEN_EXPIRED,
    USER_NOT_FOUND,
    APIError,
    AuthError,
    InternalError,
    PermissionDeniedError,
)
from foxshrine_api.core.security import ACCESS_TOKEN_TYPE, decode_token, token_subject
from foxshrine_api.schemas.auth import AuthenticatedUser
from foxshrine_api.services import auth_service
from foxshrine_api.services.audit_service import RequestContext

bearer_scheme = HTTPBearer(auto_error=False)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Return the raw bearer token from the Authorization header, if any."""
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


def get_request_context(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestContext:
    """Client IP and user agent for audit entries."""
    return RequestContext(
        ip_address=get_client_ip(request, settings.trusted_proxy_header_list),
        user_agent=request.headers.get("user-agent"),
    )


async def _resolve_user(token: str, session: AsyncSession, settings: Settings) -> AuthenticatedUser:
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token expired", code=TOKEN_EXPIRED) from e
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid token", code=INVALID_TOKEN) from e

    if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        raise AuthError("Invalid token", code=INVALID_TOKEN)
    try:
        user_id = token_subject(payload)
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid token", code=INVALID_TOKEN) from e

    try:
        user = await auth_service.get_active_user(session, user_id)
        current = AuthenticatedUser.from_user(user) if user is not None else None
    except Exception as e:
        logger.exception(f"User lookup failed during authentication: {e}")
        raise InternalError("Authentication failed", code=AUTH_ERROR) from e
    if current is None:
        raise AuthError("User not found or inactive", code=USER_NOT_FOUND)
    return current


async def get_current_user(
    token: Annotated[str | None, Depends(get_bearer_token)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthenticatedUser:
    """Resolve the bearer token to the authenticated user.

    Args:
        token: The raw bearer token, if one was sent.
        session: The database session.
        settings: Application settings.

    Returns:
        The user with the permission set of their current role.

    Raises:
        AuthError: Missing, expired or invalid token, or unknown/inactive user.
        InternalError: The user lookup failed.
    """
    if token is None:
        raise AuthError("Access token required", code=NO_TOKEN)
    return await _resolve_user(token, session, settings)


async def get_optional_user(
    token: Annotated[str | None, Depends(get_bearer_token)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthenticatedUser | None:
    """Like get_current_user, but any failure yields None."""
    if token is None:
        return None
    try:
        return await _resolve_user(token, session, settings)
    except APIError:
        return None


def require_permission(permission: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring a named permission.

    Args:
        permission: Permission name (e.g., "config.write", "logs.read").

    Returns:
        A FastAPI dependency returning the authenticated user when allowed.
    """

    async def permission_checker(
        current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    ) -> AuthenticatedUser:
        if not current_user.has_permission(permission):
            logger.info(f"{current_user.username} denied: missing {permission}")
            raise PermissionDeniedError(permission, current_user.permissions)
        return current_user

    return permission_checker
