import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from src.shepherd.api.middlewares import setup_middlewares
from src.shepherd.api.v1.router import api_router
from src.shepherd.core.clock import Clock, SystemClock
from src.shepherd.core.config import get_settings
from src.shepherd.core.db import dispose_engine, get_session
from src.shepherd.core.exceptions import setup_exception_handlers
from src.shepherd.core.logging import get_logger, setup_logging
from src.shepherd.core.notifications import (
    EventDeduplicator,
    NotificationDispatcher,
    build_transport,
)
from src.shepherd.core.rate_limit import limiter
from src.shepherd.core.redis import close_redis, get_redis
from src.shepherd.core.shutdown import request_tracker

logger = get_logger(__name__)


def build_dispatcher() -> NotificationDispatcher:
    settings = get_settings()
    return NotificationDispatcher(
        transport=build_transport(settings),
        deduplicator=EventDeduplicator(ttl_seconds=settings.notification_dedup_ttl_seconds),
        queue_size=settings.notification_queue_size,
        send_timeout=settings.notification_send_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    app.state.dispatcher.start()

    yield

    grace_period = settings.shutdown_grace_period
    request_tracker.start_shutdown()
    await request_tracker.wait_for_drain(timeout=grace_period)

    await app.state.dispatcher.stop(timeout=grace_period)
    logger.info("Closing connections...")
    await close_redis()
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "tenants", "description": "Tenant onboarding and deactivation"},
    {"name": "invitations", "description": "Invitation codes and redemption"},
    {"name": "principals", "description": "Roles, grants and authorization checks"},
    {"name": "followups", "description": "Guest follow-up assignments"},
]


def create_app(
    dispatcher: NotificationDispatcher | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        dispatcher: Notification dispatcher override (tests).
        clock: Time source override (tests).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Authorization and invitation lifecycle for multi-tenant organizations",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher or build_dispatcher()
    app.state.clock = clock or SystemClock()

    setup_exception_handlers(app)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    setup_middlewares(app, settings)
    app.include_router(api_router)

    instrumentator = Instrumentator().instrument(app)
    if settings.metrics_api_key:
        api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

        async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
            if (
                api_key is None
                or settings.metrics_api_key is None
                or not secrets.compare_digest(api_key, settings.metrics_api_key)
            ):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid or missing metrics API key",
                )

        instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])
    else:
        instrumentator.expose(app, endpoint="/metrics")

    @app.get("/health")
    async def health() -> JSONResponse:
        """Store and Redis reachability plus dispatcher state."""
        if request_tracker.is_shutting_down:
            return JSONResponse(
                content={
                    "status": "draining",
                    "in_flight_requests": request_tracker.in_flight_count,
                },
                status_code=503,
            )

        health_status: dict[str, Any] = {
            "status": "healthy",
            "database": "unknown",
            "redis": "not_configured",
            "notifications": {
                "running": app.state.dispatcher.running,
                "delivered": app.state.dispatcher.delivered_count,
                "dropped": app.state.dispatcher.dropped_count,
            },
        }

        try:
            async with get_session() as session:
                await session.execute(text("SELECT 1"))
            health_status["database"] = "healthy"
        except Exception as e:
            health_status["database"] = f"unhealthy: {str(e)}"
            health_status["status"] = "unhealthy"

        # Redis only backs notification dedup; losing it degrades, never fails.
        redis = await get_redis()
        if redis is not None:
            try:
                await redis.ping()  # type: ignore[misc]
                health_status["redis"] = "healthy"
            except Exception as e:
                health_status["redis"] = f"unhealthy: {str(e)}"
                if health_status["status"] == "healthy":
                    health_status["status"] = "degraded"

        status_code = 200 if health_status["status"] != "unhealthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    return app


app = create_app()
