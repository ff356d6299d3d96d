"""Database session dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.rotation.core.db import get_session, get_session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Get a database session for the request."""
    async with get_session() as session:
        yield session


def get_db_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that needs several short transactions."""
    return get_session_factory()


DBSession = Annotated[AsyncSession, Depends(get_db_session)]
DBSessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_db_session_factory)]
