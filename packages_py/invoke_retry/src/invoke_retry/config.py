"""
Default and preset retry policies
"""
import re
from typing import Any, Optional

from .types import Matcher, RetryPolicy


# Default retry policy
DEFAULT_RETRY_POLICY = RetryPolicy(
    max_attempts=3,
    initial_delay_seconds=1.0,
    max_delay_seconds=5.0,
    backoff_enabled=True,
    retryable_matchers=(),
    require_explicit_match=False,
)

# Outbound API calls: connection drops, throttling and 5xx responses
API_RETRY_POLICY = RetryPolicy(
    max_attempts=3,
    initial_delay_seconds=1.0,
    max_delay_seconds=15.0,
    retryable_matchers=(
        "ECONNRESET",
        "ETIMEDOUT",
        "Rate limit exceeded",
        "Too Many Requests",
        re.compile(r"5\d\d"),
        "Failed to fetch",
        "Network Error",
    ),
    require_explicit_match=True,
)

# Database operations: driver/network errors and write conflicts
DB_RETRY_POLICY = RetryPolicy(
    max_attempts=3,
    initial_delay_seconds=0.5,
    max_delay_seconds=5.0,
    retryable_matchers=(
        "MongoError",
        "MongoNetworkError",
        "MongoServerError",
        "WriteConflict",
        re.compile(r"Operation .* failed"),
    ),
    require_explicit_match=True,
)


def merge_policy(policy: Optional[RetryPolicy] = None, **overrides: Any) -> RetryPolicy:
    """
    Merge a policy with defaults and keyword overrides.

    Args:
        policy: User-provided policy (DEFAULT_RETRY_POLICY when omitted)
        **overrides: Individual fields to replace

    Returns:
        Complete, validated policy

    Raises:
        RetryPolicyError: If the overrides produce an invalid policy
    """
    base = policy if policy is not None else DEFAULT_RETRY_POLICY
    if not overrides:
        return base
    return base.replace(**overrides)


def parse_matcher(value: str) -> Matcher:
    """
    Parse a matcher written as text.

    ``/.../`` denotes a regular expression, anything else is matched as a
    category name or message substring.

    Args:
        value: Matcher text

    Returns:
        The text itself or a compiled pattern
    """
    if len(value) > 2 and value.startswith("/") and value.endswith("/"):
        return re.compile(value[1:-1])
    return value
