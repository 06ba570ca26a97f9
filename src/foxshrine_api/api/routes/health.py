"""Health check endpoints (no authentication required)."""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from loguru import logger

from foxshrine_api import __version__
from foxshrine_api.core import database
from foxshrine_api.core.errors import utc_timestamp

_STARTED_AT = time.monotonic()

router = APIRouter(tags=["health"])


def uptime_seconds() -> float:
    return round(time.monotonic() - _STARTED_AT, 3)


@router.get("/health", response_model=None)
async def health_check() -> dict | JSONResponse:
    """Report service status after a ``SELECT 1`` round trip; 503 when the store is unreachable."""
    try:
        connected = await database.ping()
    except Exception as e:  # noqa: BLE001
        logger.warning(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "timestamp": utc_timestamp(),
                "error": str(e),
                "uptime": uptime_seconds(),
                "version": __version__,
            },
        )
    return {
        "status": "healthy",
        "timestamp": utc_timestamp(),
        "database": "connected" if connected else "disconnected",
        "uptime": uptime_seconds(),
        "version": __version__,
    }


@router.get("/test")
async def api_test() -> dict:
    """Liveness probe that never touches the database."""
    return {"success": True, "message": "API is working", "timestamp": utc_timestamp()}
