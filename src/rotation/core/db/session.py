"""Database session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.rotation.core.db.engine import get_engine


def get_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to the given (or global) engine.

    The sweep settles each batch in its own session, so it takes a factory
    instead of a single session.
    """
    if engine is None:
        engine = get_engine()

    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_session(
    engine: AsyncEngine | None = None,
) -> AsyncGenerator[AsyncSession]:
    """Create a database session.

    Args:
        engine: Optional engine override for testing.

    Yields:
        AsyncSession bound to the engine. Callers own commit/rollback.
    """
    session_factory = get_session_factory(engine)
    async with session_factory() as session:
        yield session
