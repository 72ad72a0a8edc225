"""
Failure classification for invoke_retry
"""
import errno
import re
from typing import Optional

import httpx

from .types import Matcher, RetryPolicy


NETWORK_ERROR_CODES = [
    "ECONNREFUSED",
    "ECONNRESET",
    "ETIMEDOUT",
    "ENOTFOUND",
    "EHOSTUNREACH",
    "EHOSTDOWN",
]

_NETWORK_ERRNOS = frozenset(
    getattr(errno, code) for code in NETWORK_ERROR_CODES if hasattr(errno, code)
)


def failure_category(error: BaseException) -> str:
    """Category name of a failure: its exception class name."""
    return type(error).__name__


def failure_message(error: BaseException) -> str:
    """Message of a failure."""
    return str(error)


def matches(error: BaseException, matcher: Matcher) -> bool:
    """
    Check a single matcher against a failure.

    A string matcher matches when the category name equals it or the message
    contains it. A compiled pattern matches when it is found in the message.

    Args:
        error: The failure to check
        matcher: String or compiled regex

    Returns:
        Whether the matcher matches
    """
    message = failure_message(error)
    if isinstance(matcher, re.Pattern):
        return matcher.search(message) is not None
    return failure_category(error) == matcher or matcher in message


def is_retryable(error: BaseException, policy: RetryPolicy) -> bool:
    """
    Check if a failure should trigger a retry.

    With no matchers configured the answer depends on
    ``policy.require_explicit_match``: opt-in policies retry nothing,
    the others retry any failure and leave the decision to the attempt loop.

    Args:
        error: The failure to check
        policy: Retry policy

    Returns:
        Whether the failure is retryable
    """
    if not policy.retryable_matchers:
        return not policy.require_explicit_match
    return any(matches(error, matcher) for matcher in policy.retryable_matchers)


def _status_of(error: BaseException) -> Optional[int]:
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value

    response = getattr(error, "response", None)
    if response is not None:
        for attr in ("status_code", "status"):
            value = getattr(response, attr, None)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
    return None


def is_network_error(error: BaseException) -> bool:
    """
    Check if a failure is network related.

    Recognizes httpx transport errors, builtin connection and timeout errors,
    socket errno values and Node-style error codes carried in ``code`` or in
    the message. The cause chain is followed.

    Args:
        error: The failure to check

    Returns:
        Whether the failure is a network error
    """
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    if isinstance(error, OSError) and error.errno in _NETWORK_ERRNOS:
        return True

    code = getattr(error, "code", None)
    message = failure_message(error)
    if any(code == name or name in message for name in NETWORK_ERROR_CODES):
        return True

    if error.__cause__ is not None:
        return is_network_error(error.__cause__)
    return False


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Check if a failure is caused by rate limiting.

    Args:
        error: The failure to check

    Returns:
        Whether the failure carries status 429 or a rate limit message
    """
    if _status_of(error) == 429:
        return True
    message = failure_message(error).lower()
    return "rate limit" in message or "too many requests" in message


def is_server_error(error: BaseException) -> bool:
    """
    Check if a failure carries a 5xx status.

    Args:
        error: The failure to check

    Returns:
        Whether the status is in the 500-599 range
    """
    status = _status_of(error)
    return status is not None and 500 <= status < 600
