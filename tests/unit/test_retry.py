"""Tests for bounded retries on transient store errors."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.rotation.core.retry import TransientStoreError, is_transient, with_store_retry

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


def _locked() -> OperationalError:
    return OperationalError("UPDATE candidates", {}, Exception("database is locked"))


class TestIsTransient:
    async def test_operational_errors_are_transient(self):
        assert is_transient(_locked())

    async def test_integrity_errors_are_not(self):
        assert not is_transient(IntegrityError("INSERT", {}, Exception("duplicate key")))

    async def test_plain_exceptions_are_not(self):
        assert not is_transient(RuntimeError("boom"))


class TestWithStoreRetry:
    async def test_returns_first_success(self):
        async def op():
            return 42

        assert await with_store_retry("op", op, attempts=3, backoff_seconds=0) == 42

    async def test_retries_then_succeeds(self):
        calls = 0
        rollbacks = 0

        async def op():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise _locked()
            return "done"

        async def on_retry():
            nonlocal rollbacks
            rollbacks += 1

        result = await with_store_retry(
            "op", op, attempts=3, backoff_seconds=0, on_retry=on_retry
        )

        assert result == "done"
        assert calls == 3
        assert rollbacks == 2

    async def test_gives_up_after_bounded_attempts(self):
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            raise _locked()

        with pytest.raises(TransientStoreError) as exc_info:
            await with_store_retry("expire_stale", op, attempts=2, backoff_seconds=0)

        assert calls == 2
        assert exc_info.value.operation == "expire_stale"
        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.cause, OperationalError)

    async def test_non_transient_errors_propagate_immediately(self):
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await with_store_retry("op", op, attempts=5, backoff_seconds=0)
        assert calls == 1
