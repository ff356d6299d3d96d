"""Integration test fixtures for database and HTTP client operations.

Each test gets its own SQLite database file, created from the model
metadata and installed as the process-wide engine.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

import src.rotation.models  # noqa: F401 - registers tables on the metadata
from src.rotation import main
from src.rotation.core.db import create_engine_for_url, get_session_factory
from src.rotation.core.db import engine as engine_module
from src.rotation.core.shutdown import request_tracker
from src.rotation.main import create_app


@pytest.fixture
async def engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[AsyncEngine]:
    """Fresh SQLite database, used by every code path that calls get_engine()."""
    test_engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'rotation.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    monkeypatch.setattr(engine_module, "_engine", test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return get_session_factory(engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for seeding and assertions.

    Tests must call `await session.commit()` to persist seeded rows.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(
    engine: AsyncEngine, monkeypatch: pytest.MonkeyPatch
) -> AsyncGenerator[AsyncClient]:
    """HTTP client bound to a fresh app instance."""
    request_tracker.reset()
    monkeypatch.setattr(main, "_health_cache", None)
    app = create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    request_tracker.reset()
