"""Database engine management."""

import ssl
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.rotation.core.config import get_settings

_engine: AsyncEngine | None = None


def _get_connect_args(database_url: str) -> dict[str, Any]:
    """Get driver connection arguments including SSL configuration.

    Only asyncpg understands statement cache and SSL context arguments;
    other async drivers (aiosqlite in tests) get a busy timeout instead.
    """
    settings = get_settings()
    driver = make_url(database_url).drivername

    if driver.startswith("sqlite"):
        return {"timeout": 30}

    if not driver.endswith("+asyncpg"):
        return {}

    connect_args: dict[str, Any] = {
        "statement_cache_size": settings.database_statement_cache_size,
    }

    ssl_mode = settings.database_ssl_mode
    if ssl_mode != "disable":
        ssl_context = ssl.create_default_context()
        if ssl_mode == "prefer" or ssl_mode == "require":
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        elif ssl_mode in ("verify-ca", "verify-full"):
            ssl_context.check_hostname = ssl_mode == "verify-full"
            ssl_context.verify_mode = ssl.CERT_REQUIRED
        connect_args["ssl"] = ssl_context

    return connect_args


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """Create an async engine with pool settings appropriate to the driver."""
    settings = get_settings()
    if make_url(database_url).drivername.startswith("sqlite"):
        return create_async_engine(database_url, connect_args=_get_connect_args(database_url))

    return create_async_engine(
        database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        connect_args=_get_connect_args(database_url),
    )


def get_engine() -> AsyncEngine:
    """Get or create the database engine singleton."""
    global _engine
    if _engine is None:
        _engine = create_engine_for_url(get_settings().database_url)
    return _engine


async def dispose_engine() -> None:
    """Dispose the database engine. Call during shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
