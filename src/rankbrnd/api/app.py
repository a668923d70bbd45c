"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers and the
lifespan into a single ``FastAPI`` instance. The rest of the codebase
never touches ``FastAPI`` directly.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from rankbrnd.api.deps import get_settings
from rankbrnd.api.middleware.auth import AuthMiddleware
from rankbrnd.api.middleware.errors import (
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from rankbrnd.api.middleware.request_id import RequestIDMiddleware
from rankbrnd.api.middleware.timing import TimingMiddleware
from rankbrnd.api.settings import RankBrndAPISettings
from rankbrnd.core.connection import create_connection
from rankbrnd.core.health import HealthCheck, create_health_router, database_check
from rankbrnd.core.logging import get_logger

logger = get_logger("rankbrnd.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Apply the schema on startup so a fresh database is usable."""
    settings: RankBrndAPISettings = app.state.settings
    logger.info("api_starting", version=app.version)

    conn = None
    try:
        conn, info = create_connection(settings.database_url, init_schema=True, data_dir=settings.data_dir)
        logger.info("database_initialized", backend=info.backend)
    except Exception as exc:
        logger.warning("database_init_failed", error=str(exc))
    finally:
        if conn is not None and hasattr(conn, "close"):
            conn.close()

    yield
    logger.info("api_shutting_down")


def create_app(*, settings: RankBrndAPISettings | None = None) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : RankBrndAPISettings | None
        Override settings (tests). When ``None`` the cached singleton
        from :func:`get_settings` is used.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AuthMiddleware, api_key=settings.api_key)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from rankbrnd.api.routers import (
        articles,
        flows,
        integrations,
        keywords,
        organizations,
        queue,
        rank_tracking,
        scheduling,
        workers,
    )

    app.include_router(
        create_health_router(
            "rankbrnd",
            version=settings.api_version,
            checks=[HealthCheck("database", database_check(settings.database_url, data_dir=settings.data_dir))],
        ),
    )

    prefix = settings.api_prefix
    app.include_router(organizations.router, prefix=prefix, tags=["organizations"])
    app.include_router(keywords.router, prefix=prefix, tags=["keywords"])
    app.include_router(articles.router, prefix=prefix, tags=["articles"])
    app.include_router(integrations.router, prefix=prefix, tags=["integrations"])
    app.include_router(queue.router, prefix=prefix, tags=["publishing-queue"])
    app.include_router(scheduling.router, prefix=prefix, tags=["scheduling"])
    app.include_router(workers.router, prefix=prefix, tags=["workers"])
    app.include_router(rank_tracking.router, prefix=prefix, tags=["rank-tracking"])
    app.include_router(flows.router, prefix=prefix, tags=["flows"])

    return app
