"""Root API router under the configured prefix, and middleware registration."""

from fastapi import APIRouter, FastAPI

from foxshrine_api.api.middleware import RateLimitMiddleware, SecurityHeadersMiddleware, setup_cors
from foxshrine_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from foxshrine_api.api.routes.admin import router as admin_router
    from foxshrine_api.api.routes.auth import router as auth_router
    from foxshrine_api.api.routes.config import router as config_router
    from foxshrine_api.api.routes.health import router as health_router
    from foxshrine_api.api.routes.stream import router as stream_router

    root_router = APIRouter(prefix=settings.api_prefix)
    root_router.include_router(health_router)
    root_router.include_router(auth_router)
    root_router.include_router(admin_router)
    root_router.include_router(config_router)
    root_router.include_router(stream_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=settings.rate_limit_per_minute,
        trusted_proxy_headers=settings.trusted_proxy_header_list,
        path_prefix=settings.api_prefix,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    setup_cors(app, settings)
