"""Site configuration API endpoints.

GET /config, GET /config/{category}, PUT /config/{key}, PUT /config,
DELETE /config/{key}, plus the configuration change history under
GET /config/audit.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.core.dependencies import (
    get_async_session,
    get_optional_user,
    get_request_context,
    require_permission,
)
from foxshrine_api.core.errors import InternalError, ValidationError, utc_timestamp
from foxshrine_api.schemas.admin import ConfigAuditResponse
from foxshrine_api.schemas.auth import AuthenticatedUser
from foxshrine_api.schemas.config import (
    BulkConfigRequest,
    BulkConfigWriteResponse,
    ConfigCategoryResponse,
    ConfigDeleteResponse,
    ConfigReadResponse,
    ConfigUpdateRequest,
    ConfigWriteResponse,
)
from foxshrine_api.services import audit_service, config_service
from foxshrine_api.services.audit_service import RequestContext

router = APIRouter(prefix="/config", tags=["config"])


@router.get("", response_model=ConfigReadResponse)
async def get_config(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    context: Annotated[RequestContext, Depends(get_request_context)],
    current_user: Annotated[AuthenticatedUser | None, Depends(get_optional_user)],
) -> ConfigReadResponse:
    """Return the whole active configuration as one nested object."""
    try:
        data, count = await config_service.read_config(session, current_user, context)
    except SQLAlchemyError as e:
        logger.exception("Error fetching configuration")
        raise InternalError("Failed to fetch configuration", detail=str(e)) from e
    user = {"role": current_user.role, "username": current_user.username} if current_user else None
    return ConfigReadResponse(data=data, timestamp=utc_timestamp(), count=count, user=user)


async def _config_audit(session: AsyncSession, key: str | None, days: int) -> ConfigAuditResponse:
    try:
        entries = await audit_service.list_config_audit(session, key=key, days=days)
    except SQLAlchemyError as e:
        logger.exception("Error fetching configuration audit")
        raise InternalError("Failed to fetch audit trail", detail=str(e)) from e
    return ConfigAuditResponse(data=entries, key=key, days=days, timestamp=utc_timestamp(), count=len(entries))


@router.get("/audit", response_model=ConfigAuditResponse)
async def get_config_audit(
    _current_user: Annotated[AuthenticatedUser, Depends(require_permission("logs.read"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    days: Annotated[int, Query(ge=1, le=3650)] = 30,
) -> ConfigAuditResponse:
    """Recent configuration changes across all keys."""
    return await _config_audit(session, None, days)


@router.get("/audit/{key}", response_model=ConfigAuditResponse)
async def get_config_audit_for_key(
    key: str,
    _current_user: Annotated[AuthenticatedUser, Depends(require_permission("logs.read"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    days: Annotated[int, Query(ge=1, le=3650)] = 30,
) -> ConfigAuditResponse:
    """Recent changes mentioning one key."""
    return await _config_audit(session, key, days)


@router.get("/{category}", response_model=ConfigCategoryResponse)
async def get_config_category(
    category: str,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    _current_user: Annotated[AuthenticatedUser | None, Depends(get_optional_user)],
) -> ConfigCategoryResponse:
    """Return the active configuration of one category."""
    try:
        data, count = await config_service.read_category(session, category)
    except SQLAlchemyError as e:
        logger.exception("Error fetching configuration by category")
        raise InternalError("Failed to fetch configuration by category", detail=str(e)) from e
    return ConfigCategoryResponse(data=data, category=category, timestamp=utc_timestamp(), count=count)


@router.put("", response_model=BulkConfigWriteResponse)
async def update_configs(
    request: BulkConfigRequest,
    current_user: Annotated[AuthenticatedUser, Depends(require_permission("config.write"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> BulkConfigWriteResponse:
    """Upsert several keys; entries without a key or value are skipped."""
    try:
        updated = await config_service.bulk_set(session, request.configs, current_user, context)
    except SQLAlchemyError as e:
        logger.exception("Error updating configurations")
        raise InternalError("Failed to update configurations", detail=str(e)) from e
    return BulkConfigWriteResponse(
        data=updated,
        message=f"Updated {len(updated)} configurations successfully",
        count=len(updated),
        timestamp=utc_timestamp(),
    )


@router.put("/{key}", response_model=ConfigWriteResponse)
async def update_config(
    key: str,
    current_user: Annotated[AuthenticatedUser, Depends(require_permission("config.write"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    context: Annotated[RequestContext, Depends(get_request_context)],
    request: ConfigUpdateRequest | None = None,
) -> ConfigWriteResponse:
    """Upsert one key. ``value`` must be present but may be null."""
    if request is None or not request.value_provided:
        raise ValidationError("Value is required")
    try:
        entry = await config_service.set_value(
            session,
            key,
            request.value,
            current_user,
            category=request.category,
            description=request.description,
            context=context,
        )
    except SQLAlchemyError as e:
        logger.exception("Error updating configuration")
        raise InternalError("Failed to update configuration", detail=str(e)) from e
    return ConfigWriteResponse(data=entry, message="Configuration updated successfully", timestamp=utc_timestamp())


@router.delete("/{key}", response_model=ConfigDeleteResponse)
async def delete_config(
    key: str,
    current_user: Annotated[AuthenticatedUser, Depends(require_permission("config.delete"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> ConfigDeleteResponse:
    """Soft-delete one key and return its last value."""
    try:
        deleted = await config_service.delete_entry(session, key, current_user, context)
    except SQLAlchemyError as e:
        logger.exception("Error deleting configuration")
        raise InternalError("Failed to delete configuration", detail=str(e)) from e
    return ConfigDeleteResponse(data=deleted, message="Configuration deleted successfully", timestamp=utc_timestamp())
