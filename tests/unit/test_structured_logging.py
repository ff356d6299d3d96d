"""Tests for structured logging context."""

from uuid import uuid4

import pytest
import structlog
from structlog.contextvars import bound_contextvars
from structlog.testing import CapturingLogger

from src.rotation.core.logging import (
    bind_developer_context,
    bind_request_context,
    clear_request_context,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Route structlog output into a CapturingLogger for the test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def test_bind_request_context(capturing_logger):
    """Test binding request_id to log context."""
    bind_request_context("test-request-123")
    structlog.get_logger().info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "test-request-123"


def test_bind_request_context_with_none(capturing_logger):
    """Test that None request_id is not bound."""
    bind_request_context(None)
    structlog.get_logger().info("test message")

    assert "request_id" not in capturing_logger.calls[0].kwargs


def test_bind_developer_context(capturing_logger):
    developer_id = uuid4()

    bind_developer_context(developer_id)
    structlog.get_logger().info("responded")

    assert capturing_logger.calls[0].kwargs["developer_id"] == str(developer_id)


def test_clear_request_context(capturing_logger):
    """Context does not leak between requests."""
    bind_request_context("request-1")
    bind_developer_context(uuid4())
    clear_request_context()

    structlog.get_logger().info("next request")

    kwargs = capturing_logger.calls[0].kwargs
    assert "request_id" not in kwargs
    assert "developer_id" not in kwargs


def test_sweep_batch_context_is_scoped(capturing_logger):
    """Batch context bound for one batch is gone once that batch is settled."""
    logger = structlog.get_logger()

    with bound_contextvars(sweep_run_id="run-1"):
        with bound_contextvars(batch_id="batch-1"):
            logger.error("Sweep failed to settle batch")
        logger.info("Sweep finished")

    first, second = capturing_logger.calls
    assert first.kwargs["batch_id"] == "batch-1"
    assert first.kwargs["sweep_run_id"] == "run-1"
    assert "batch_id" not in second.kwargs
    assert second.kwargs["sweep_run_id"] == "run-1"
