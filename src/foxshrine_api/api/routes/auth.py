"""Authentication API endpoints.

POST /auth/register, POST /auth/login, POST /auth/refresh,
POST /auth/logout, GET /auth/profile.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.core.config import Settings, get_settings
from foxshrine_api.core.dependencies import (
    get_async_session,
    get_bearer_token,
    get_current_user,
    get_request_context,
)
from foxshrine_api.core.errors import InternalError, ValidationError
from foxshrine_api.schemas.auth import (
    AuthenticatedUser,
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    TokenPairResponse,
)
from foxshrine_api.schemas.common import SuccessResponse
from foxshrine_api.services import auth_service
from foxshrine_api.services.audit_service import RequestContext

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> AuthResponse:
    """Self-register with the default role and receive a token pair."""
    try:
        user, tokens = await auth_service.register_user(session, request, settings, context)
    except SQLAlchemyError as e:
        logger.exception("Registration error")
        raise InternalError("Registration failed") from e
    return AuthResponse(
        message="User registered successfully",
        user=user,
        tokens=TokenPairResponse.from_pair(tokens),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> AuthResponse:
    """Authenticate with username or email and receive a token pair."""
    try:
        user, tokens = await auth_service.login(session, request.username, request.password, settings, context)
    except SQLAlchemyError as e:
        logger.exception("Login error")
        raise InternalError("Login failed") from e
    return AuthResponse(message="Login successful", user=user, tokens=TokenPairResponse.from_pair(tokens))


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    request: RefreshRequest | None = None,
) -> RefreshResponse:
    """Exchange a refresh token for a new pair, rotating the session."""
    if request is None or not request.refresh_token:
        raise ValidationError("refreshToken is required")
    try:
        tokens = await auth_service.refresh_tokens(session, request.refresh_token, settings)
    except SQLAlchemyError as e:
        logger.exception("Refresh token error")
        raise InternalError("Failed to refresh token") from e
    return RefreshResponse(tokens=TokenPairResponse.from_pair(tokens))


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    token: Annotated[str, Depends(get_bearer_token)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> SuccessResponse:
    """Close the sessions issued with the presented access token."""
    try:
        await auth_service.logout(session, token, current_user, context)
    except SQLAlchemyError as e:
        logger.exception("Logout error")
        raise InternalError("Logout failed") from e
    return SuccessResponse(message="Logged out successfully")


@router.get("/profile", response_model=ProfileResponse)
async def profile(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> ProfileResponse:
    """Return the authenticated user with their permissions."""
    return ProfileResponse(user=current_user)
