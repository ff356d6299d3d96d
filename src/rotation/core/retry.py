"""Bounded retries for transient store failures."""

import asyncio
from collections.abc import Awaitable, Callable

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from src.rotation.core.config import get_settings
from src.rotation.core.logging import get_logger

logger = get_logger(__name__)

TRANSIENT_STORE_ERRORS: tuple[type[Exception], ...] = (OperationalError, InterfaceError)


class TransientStoreError(Exception):
    """Raised when a store operation keeps failing after bounded retries."""

    def __init__(self, operation: str, attempts: int, cause: Exception):
        super().__init__(f"{operation} failed after {attempts} attempts: {cause}")
        self.operation = operation
        self.attempts = attempts
        self.cause = cause


def is_transient(exc: Exception) -> bool:
    """Return True for errors that are safe to retry.

    Lost connections, lock timeouts, deadlocks and serialization failures
    surface as OperationalError/InterfaceError, or as a DBAPIError whose
    connection was invalidated.
    """
    if isinstance(exc, TRANSIENT_STORE_ERRORS):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


async def with_store_retry[T](
    operation: str,
    func: Callable[[], Awaitable[T]],
    *,
    attempts: int | None = None,
    backoff_seconds: float | None = None,
    on_retry: Callable[[], Awaitable[None]] | None = None,
) -> T:
    """Run ``func`` and retry it on transient store errors.

    Args:
        operation: Name used in logs and in the final error.
        func: Zero-argument coroutine factory; called once per attempt.
        attempts: Maximum attempts (defaults to settings.store_retry_attempts).
        backoff_seconds: Base delay, doubled after each failed attempt.
        on_retry: Optional hook run before each retry (e.g. session rollback).

    Raises:
        TransientStoreError: When every attempt failed with a transient error.
        Exception: Non-transient errors propagate immediately.
    """
    settings = get_settings()
    max_attempts = attempts if attempts is not None else settings.store_retry_attempts
    delay = backoff_seconds if backoff_seconds is not None else settings.store_retry_backoff_seconds

    attempt = 0
    while True:
        attempt += 1
        try:
            return await func()
        except Exception as e:
            if not is_transient(e):
                raise
            if attempt >= max_attempts:
                logger.error(
                    "Store operation failed, giving up",
                    operation=operation,
                    attempts=attempt,
                    error=str(e),
                )
                raise TransientStoreError(operation, attempt, e) from e
            logger.warning(
                "Transient store error, retrying",
                operation=operation,
                attempt=attempt,
                error=str(e),
            )
            if on_retry is not None:
                await on_retry()
            await asyncio.sleep(delay * (2 ** (attempt - 1)))
