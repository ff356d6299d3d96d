"""Database utilities - engine, session, migrations."""

from src.rotation.core.db.engine import (
    create_engine_for_url,
    dispose_engine,
    get_engine,
)
from src.rotation.core.db.migrations import run_migrations_async, run_migrations_sync
from src.rotation.core.db.session import get_session, get_session_factory

__all__ = [
    # Engine
    "create_engine_for_url",
    "dispose_engine",
    "get_engine",
    # Session
    "get_session",
    "get_session_factory",
    # Migrations
    "run_migrations_async",
    "run_migrations_sync",
]
