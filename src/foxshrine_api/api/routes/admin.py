"""Admin API endpoints for users, roles and activity logs."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.core.dependencies import get_async_session, get_request_context, require_permission
from foxshrine_api.core.errors import InternalError
from foxshrine_api.schemas.admin import (
    ActivityLogListResponse,
    RoleListResponse,
    RoleUpdateRequest,
    UserListResponse,
    UserRoleResponse,
)
from foxshrine_api.schemas.auth import AuthenticatedUser
from foxshrine_api.schemas.common import PaginationParams
from foxshrine_api.services import audit_service, auth_service
from foxshrine_api.services.audit_service import RequestContext

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=UserListResponse)
async def list_users(
    _current_user: Annotated[AuthenticatedUser, Depends(require_permission("users.read"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    role: str | None = None,
    search: str | None = None,
) -> UserListResponse:
    """List users newest first, filtered by role name and search text."""
    try:
        users, meta = await auth_service.list_users(
            session, page=pagination.page, limit=pagination.limit, role=role, search=search
        )
    except SQLAlchemyError as e:
        logger.exception("Get users error")
        raise InternalError("Failed to get users") from e
    return UserListResponse(users=users, pagination=meta)


@router.put("/users/{user_id}/role", response_model=UserRoleResponse)
async def update_user_role(
    user_id: int,
    request: RoleUpdateRequest,
    current_user: Annotated[AuthenticatedUser, Depends(require_permission("users.roles"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> UserRoleResponse:
    """Assign a role to a user."""
    try:
        user = await auth_service.update_user_role(session, user_id, request.role_name, current_user, context)
    except SQLAlchemyError as e:
        logger.exception("Update user role error")
        raise InternalError("Failed to update user role") from e
    return UserRoleResponse(message="User role updated successfully", user=user)


@router.get("/roles", response_model=RoleListResponse)
async def list_roles(
    _current_user: Annotated[AuthenticatedUser, Depends(require_permission("users.roles"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> RoleListResponse:
    """List roles with their permission names."""
    try:
        roles = await auth_service.list_roles(session)
    except SQLAlchemyError as e:
        logger.exception("Get roles error")
        raise InternalError("Failed to get roles") from e
    return RoleListResponse(roles=roles)


@router.get("/logs/users", response_model=ActivityLogListResponse)
async def list_user_logs(
    _current_user: Annotated[AuthenticatedUser, Depends(require_permission("logs.read"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    user_id: Annotated[int | None, Query(alias="userId")] = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> ActivityLogListResponse:
    """User activity, newest first, optionally for one user."""
    try:
        logs = await audit_service.list_user_activity(session, user_id=user_id, limit=limit)
    except SQLAlchemyError as e:
        logger.exception("Get logs error")
        raise InternalError("Failed to get logs") from e
    return ActivityLogListResponse(logs=logs)


@router.get("/logs/system", response_model=ActivityLogListResponse)
async def list_system_logs(
    _current_user: Annotated[AuthenticatedUser, Depends(require_permission("logs.read"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> ActivityLogListResponse:
    """Configuration, stream and role changes, newest first."""
    try:
        logs = await audit_service.list_system_activity(session, limit=limit)
    except SQLAlchemyError as e:
        logger.exception("Get system logs error")
        raise InternalError("Failed to get system logs") from e
    return ActivityLogListResponse(logs=logs)
