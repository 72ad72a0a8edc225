"""
Shared fixtures for invoke_retry executor tests.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from invoke_retry.types import RetryPolicy


@pytest.fixture
def timeout_policy():
    """Policy retrying only Timeout failures."""
    return RetryPolicy(
        max_attempts=3,
        initial_delay_seconds=0.1,
        max_delay_seconds=1.0,
        backoff_enabled=True,
        retryable_matchers=("Timeout",),
    )


@pytest.fixture
def mock_async_wait():
    """Replace backoff waits in the executor with an instant, recording mock."""
    with patch("invoke_retry.executor.async_wait", new=AsyncMock(return_value=False)) as mock:
        yield mock


@pytest.fixture
def mock_sync_wait():
    """Replace blocking waits in the executor with an instant, recording mock."""
    with patch("invoke_retry.executor.sync_wait", new=MagicMock(return_value=False)) as mock:
        yield mock


@pytest.fixture
def failing_then():
    """
    Build an async operation that raises the given failures in order,
    then returns the final value.
    """
    def build(failures, value="success"):
        calls = {"count": 0}

        async def operation():
            calls["count"] += 1
            if calls["count"] <= len(failures):
                raise failures[calls["count"] - 1]
            return value

        operation.calls = calls
        return operation

    return build
