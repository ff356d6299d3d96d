import secrets
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text

from src.rotation.api.middlewares import setup_middlewares
from src.rotation.api.v1.router import api_router
from src.rotation.core.config import get_settings
from src.rotation.core.db import dispose_engine, get_session
from src.rotation.core.exceptions import setup_exception_handlers
from src.rotation.core.logging import get_logger, setup_logging
from src.rotation.core.shutdown import request_tracker
from src.rotation.temporal.client import close_temporal_client

logger = get_logger(__name__)

# Health check caching
_health_cache: dict[str, Any] | None = None
_health_cache_time: float = 0
HEALTH_CACHE_TTL = 10  # seconds


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    yield

    request_tracker.start_shutdown()
    drained = await request_tracker.wait_for_drain(timeout=settings.shutdown_grace_period)
    if not drained:
        logger.warning(
            f"Shutdown timeout after {settings.shutdown_grace_period}s - "
            f"{request_tracker.in_flight_count} requests may not have completed"
        )

    logger.info("Closing connections...")
    await close_temporal_client()
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "invitations", "description": "Developer responses to project invitations"},
    {"name": "projects", "description": "Batch composition, refresh and manual invites"},
    {"name": "admin", "description": "Sweep trigger and sweep history"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="First-accepted-wins project invitation rotation",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
    )

    setup_exception_handlers(app)
    setup_middlewares(app, settings)
    app.include_router(api_router)

    # Prometheus metrics instrumentation
    instrumentator = Instrumentator().instrument(app)

    # Protect /metrics endpoint if API key is configured
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
        """Health check with database validation and caching."""
        global _health_cache, _health_cache_time

        now = time.time()

        if request_tracker.is_shutting_down:
            return JSONResponse(
                content={
                    "status": "draining",
                    "in_flight_requests": request_tracker.in_flight_count,
                },
                status_code=503,
            )

        if _health_cache and (now - _health_cache_time) < HEALTH_CACHE_TTL:
            cached_response = _health_cache.copy()
            cached_response["cached"] = True
            status_code = 200 if cached_response["status"] == "healthy" else 503
            return JSONResponse(content=cached_response, status_code=status_code)

        health_status: dict[str, Any] = {
            "status": "healthy",
            "database": "unknown",
            "cached": False,
            "timestamp": now,
        }

        try:
            async with get_session() as session:
                await session.execute(text("SELECT 1"))
            health_status["database"] = "healthy"
        except Exception as e:
            health_status["database"] = f"unhealthy: {str(e)}"
            health_status["status"] = "unhealthy"

        _health_cache = health_status
        _health_cache_time = now

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    return app


app = create_app()
