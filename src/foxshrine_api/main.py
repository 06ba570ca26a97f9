"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
middleware and routers.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from foxshrine_api import __version__
from foxshrine_api.core.config import Settings, get_settings
from foxshrine_api.core.database import dispose_engine, init_engine
from foxshrine_api.core.errors import register_exception_handlers
from foxshrine_api.core.logging import setup_logging


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Init the shared engine on startup, dispose it on shutdown."""
        init_engine(settings.sqlalchemy_url, pool_size=settings.db_pool_size)
        logger.info(f"Fox Shrine API {__version__} starting ({settings.environment})")
        yield
        await dispose_engine()
        logger.info("Fox Shrine API stopped")

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Settings are loaded (and validated) first, so a production deployment
    without a real JWT secret fails here.

    Args:
        settings: Settings to use instead of loading them from the environment.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_dir)

    app = FastAPI(
        title="Fox Shrine API",
        description="Site configuration, accounts and permissions for the Fox Shrine VTuber site",
        version=__version__,
        lifespan=_lifespan(settings),
    )

    register_exception_handlers(app)

    from foxshrine_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
