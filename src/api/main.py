"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routers, exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.dependencies import build_services
from src.api.v1 import ott_router, router as standard_router
from src.config.settings import get_settings
from src.domain.signup import OTT_CODE_INVALID_PARAM

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
OTT_PREFIX = "/api/ott"

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "standard",
        "description": "Web signup and contact verification - free-text messages in a status envelope",
    },
    {
        "name": "ott",
        "description": "Lightweight signup for machine clients - fixed numeric status codes",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pools on startup (postgres backend)
    - Runs migrations on startup, on the original database too when it is separate
    - Builds domain services
    - Stops the audit worker and closes pools on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")
    pools: list[ConnectionPool] = []
    pool = None
    mirror_pool = None

    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        pools.append(pool)

        logger.info("Running database migrations...")
        run_migrations(pool)

        if settings.original_database_url:
            mirror_pool = ConnectionPool(
                conninfo=settings.original_database_url,
                min_size=1,
                max_size=settings.pool_max_size,
            )
            pools.append(mirror_pool)

            logger.info("Running database migrations on original database...")
            run_migrations(mirror_pool)

    app.state.pool = pool
    app.state.services = build_services(settings, pool=pool, mirror_pool=mirror_pool)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    app.state.services.close()
    for p in pools:
        p.close()
    logger.info("Shutdown complete")


async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Machine clients get code 203 instead of FastAPI's 422 body."""
    if request.url.path.startswith(OTT_PREFIX):
        return JSONResponse(
            status_code=200,
            content={"code": OTT_CODE_INVALID_PARAM, "msg": "Invalid parameter", "body": None},
        )
    return await request_validation_exception_handler(request, exc)


def create_app() -> FastAPI:
    app = FastAPI(
        title="signup-gate",
        description="Account registration and contact verification API",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.include_router(standard_router, prefix=API_PREFIX)
    app.include_router(ott_router, prefix=OTT_PREFIX)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if application (and database, when configured) is healthy.
        """
        pool = getattr(request.app.state, "pool", None)
        if pool is not None:
            with pool.connection() as conn:
                conn.execute("SELECT 1")
        return {"status": "healthy"}

    return app


app = create_app()
