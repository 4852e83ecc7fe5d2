"""
FastAPI Application Factory

Creates and configures the analytics API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
import structlog

from checkout_analytics.analytics.periods import Clock, utc_now
from checkout_analytics.config import get_settings
from checkout_analytics.database.connection import close_database, init_database
from checkout_analytics.exceptions import (
    AnalyticsError,
    TenantContextError,
    UpstreamFetchError,
    ValidationError,
)
from checkout_analytics.serving.api.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from checkout_analytics.serving.api.routes import analytics_router, health_router
from checkout_analytics.store.base import EventStore
from checkout_analytics.store.postgres import PostgresEventStore

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    from checkout_analytics.config.logging import configure_logging
    configure_logging()

    logger.info("Starting Checkout Analytics API")

    # Without an injected store, events come from PostgreSQL
    owns_database = app.state.event_store is None
    if owns_database:
        try:
            await init_database()
            logger.info("Database initialized")
        except Exception as e:
            logger.warning(f"Database init failed: {e}")
        app.state.event_store = PostgresEventStore()

    yield

    logger.info("Shutting down...")
    if owns_database:
        await close_database()


def register_exception_handlers(app: FastAPI) -> None:
    """Map analytics errors to JSON error responses"""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info("Request rejected", error=exc.message, details=exc.details, field=exc.field)
        content = {"error": exc.message}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(TenantContextError)
    async def tenant_error_handler(request: Request, exc: TenantContextError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(UpstreamFetchError)
    async def upstream_error_handler(request: Request, exc: UpstreamFetchError):
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(AnalyticsError)
    async def analytics_error_handler(request: Request, exc: AnalyticsError):
        logger.error("Unhandled analytics error", error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_api_app(
    event_store: Optional[EventStore] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        event_store: Event store to serve from (PostgreSQL when omitted)
        clock: Source of "now" for period resolution

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Checkout Analytics API",
        description="Customer LTV, CAC and segmentation from checkout events",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.event_store = event_store
    app.state.clock = clock or utc_now

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])

    if settings.monitoring.enable_metrics:
        app.mount("/metrics", make_asgi_app())

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Checkout Analytics API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app
