"""Live stream status endpoints backed by the ``stream`` configuration category."""

from typing import Annotated

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.core.dependencies import get_async_session, get_request_context, require_permission
from foxshrine_api.core.errors import InternalError, utc_timestamp
from foxshrine_api.schemas.auth import AuthenticatedUser
from foxshrine_api.schemas.config import StreamStatusResponse, StreamStatusUpdateRequest, StreamStatusWriteResponse
from foxshrine_api.services import config_service
from foxshrine_api.services.audit_service import RequestContext

router = APIRouter(prefix="/stream", tags=["stream"])


@router.get("/status", response_model=StreamStatusResponse)
async def get_stream_status(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> StreamStatusResponse:
    try:
        status = await config_service.get_stream_status(session)
    except SQLAlchemyError as e:
        logger.exception("Stream status fetch error")
        raise InternalError("Failed to fetch stream status", detail=str(e)) from e
    return StreamStatusResponse(data=status, timestamp=utc_timestamp())


@router.put("/status", response_model=StreamStatusWriteResponse)
async def update_stream_status(
    request: StreamStatusUpdateRequest,
    current_user: Annotated[AuthenticatedUser, Depends(require_permission("config.write"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> StreamStatusWriteResponse:
    """Update any of isLive, title, category, nextStream and notification."""
    try:
        updated = await config_service.update_stream_status(session, request, current_user, context)
    except SQLAlchemyError as e:
        logger.exception("Stream status update error")
        raise InternalError("Failed to update stream status", detail=str(e)) from e
    return StreamStatusWriteResponse(
        data=updated,
        message="Stream status updated successfully",
        timestamp=utc_timestamp(),
    )
