"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.rotation.core.config import Settings

from .logging_context import logging_context_middleware
from .request_tracking import request_tracking_middleware

__all__ = [
    "setup_middlewares",
    "logging_context_middleware",
    "request_tracking_middleware",
]


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Configure all application middlewares.

    Starlette wraps each new middleware around the previous ones, so they
    are added innermost first and the correlation id middleware last.
    """

    # Request tracking - for graceful shutdown
    @app.middleware("http")
    async def _request_tracking(request, call_next):  # type: ignore[no-untyped-def]
        return await request_tracking_middleware(request, call_next)

    # Logging context - needs the correlation id already set
    @app.middleware("http")
    async def _logging_context(request, call_next):  # type: ignore[no-untyped-def]
        return await logging_context_middleware(request, call_next)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Developer-ID", "X-Cron-Secret", "X-Request-ID"],
    )

    # Correlation ID - generates/propagates X-Request-ID
    app.add_middleware(CorrelationIdMiddleware)
