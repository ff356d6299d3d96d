"""Root test fixtures shared across all test types.

Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./rotation-test.db")
# Concurrent SQLite writers back off with "database is locked"; give them room to retry
os.environ.setdefault("STORE_RETRY_ATTEMPTS", "10")
os.environ.setdefault("STORE_RETRY_BACKOFF_SECONDS", "0.01")
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("CRON_SECRET", None)

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import Callable, Iterator

import pytest

from src.rotation.core.config import Settings, get_settings

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def override_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[Callable[..., Settings]]:
    """Override settings through environment variables for one test.

    Usage:
        settings = override_settings(acceptance_window_minutes=5)
    """

    def _override(**values: object) -> Settings:
        for key, value in values.items():
            monkeypatch.setenv(key.upper(), str(value))
        get_settings.cache_clear()
        return get_settings()

    yield _override
    get_settings.cache_clear()
