"""
Tests for failure classification.

Test coverage includes:
- Decision coverage: empty matchers under both explicit-match settings
- Condition coverage: category equality, message substring, regex search
- Equivalence partitioning: httpx, builtin and attribute-carried failures
"""

import errno
import re

import httpx
import pytest

from invoke_retry.classifier import (
    failure_category,
    failure_message,
    matches,
    is_retryable,
    is_network_error,
    is_rate_limit_error,
    is_server_error,
)
from invoke_retry.config import API_RETRY_POLICY, DB_RETRY_POLICY
from invoke_retry.types import RetryPolicy


class Timeout(Exception):
    pass


class ValidationError(Exception):
    pass


class MongoNetworkError(Exception):
    pass


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.example.com/quotes")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestMatches:
    """Tests for the single-matcher predicate."""

    def test_string_matches_category_name(self):
        """Should match when the class name equals the text."""
        assert matches(Timeout("slow upstream"), "Timeout") is True

    def test_string_matches_message_substring(self):
        """Should match when the message contains the text."""
        assert matches(RuntimeError("read ECONNRESET from peer"), "ECONNRESET") is True

    def test_string_does_not_match_partial_category(self):
        """Should not treat a partial class name as a category match."""
        assert matches(ValidationError("bad input"), "Validation") is False

    def test_pattern_searches_message(self):
        """Should search the message with a compiled pattern."""
        assert matches(RuntimeError("upstream returned 503"), re.compile(r"5\d\d")) is True
        assert matches(RuntimeError("upstream returned 404"), re.compile(r"5\d\d")) is False

    def test_pattern_ignores_category(self):
        """Should match patterns against the message only."""
        assert matches(Timeout("x"), re.compile("^Timeout$")) is False


class TestIsRetryable:
    """Tests for is_retryable."""

    def test_empty_matchers_retry_everything_by_default(self):
        """Should retry any failure when explicit matching is not required."""
        policy = RetryPolicy()
        assert is_retryable(ValidationError("bad"), policy) is True

    def test_empty_matchers_retry_nothing_when_explicit_match_required(self):
        """Should retry nothing when explicit matching is required."""
        policy = RetryPolicy(require_explicit_match=True)
        assert is_retryable(Timeout("slow"), policy) is False

    def test_any_matcher_is_enough(self):
        """Should retry when any matcher matches."""
        policy = RetryPolicy(retryable_matchers=["Nope", re.compile("slow")])
        assert is_retryable(Timeout("slow upstream"), policy) is True

    def test_non_matching_failure_is_not_retryable(self):
        """Should not retry a failure that no matcher matches."""
        policy = RetryPolicy(retryable_matchers=["Timeout"])
        assert is_retryable(ValidationError("bad input"), policy) is False

    def test_explicit_match_flag_irrelevant_with_matchers(self):
        """Should ignore require_explicit_match when matchers exist."""
        loose = RetryPolicy(retryable_matchers=["Timeout"], require_explicit_match=False)
        strict = RetryPolicy(retryable_matchers=["Timeout"], require_explicit_match=True)
        error = ValidationError("bad input")
        assert is_retryable(error, loose) is is_retryable(error, strict) is False

    def test_classification_is_pure(self):
        """Should give the same answer for repeated calls."""
        policy = RetryPolicy(retryable_matchers=["Timeout"])
        error = Timeout("slow")
        assert is_retryable(error, policy) == is_retryable(error, policy) is True

    def test_api_preset(self):
        """Should retry 5xx and throttling messages under the API preset."""
        assert is_retryable(RuntimeError("Request failed with status 502"), API_RETRY_POLICY) is True
        assert is_retryable(RuntimeError("Too Many Requests"), API_RETRY_POLICY) is True
        assert is_retryable(RuntimeError("Not Found"), API_RETRY_POLICY) is False

    def test_db_preset(self):
        """Should retry driver errors by category under the DB preset."""
        assert is_retryable(MongoNetworkError("socket closed"), DB_RETRY_POLICY) is True
        assert is_retryable(RuntimeError("Operation insert failed"), DB_RETRY_POLICY) is True
        assert is_retryable(KeyError("symbol"), DB_RETRY_POLICY) is False


class TestFailureDescription:
    """Tests for failure_category and failure_message."""

    def test_category_is_class_name(self):
        assert failure_category(Timeout("x")) == "Timeout"

    def test_message_is_str(self):
        assert failure_message(ValueError("bad value")) == "bad value"


class TestIsNetworkError:
    """Tests for is_network_error."""

    def test_httpx_connect_error(self):
        assert is_network_error(httpx.ConnectError("connection refused")) is True

    def test_httpx_timeout(self):
        assert is_network_error(httpx.ReadTimeout("read timed out")) is True

    def test_builtin_connection_error(self):
        assert is_network_error(ConnectionResetError("reset")) is True

    def test_socket_errno(self):
        assert is_network_error(OSError(errno.EHOSTUNREACH, "No route to host")) is True

    def test_code_attribute(self):
        error = RuntimeError("lookup failed")
        error.code = "ENOTFOUND"
        assert is_network_error(error) is True

    def test_code_in_message(self):
        assert is_network_error(RuntimeError("connect ETIMEDOUT 10.0.0.1:443")) is True

    def test_follows_cause_chain(self):
        try:
            try:
                raise ConnectionRefusedError("refused")
            except ConnectionRefusedError as inner:
                raise RuntimeError("fetch failed") from inner
        except RuntimeError as outer:
            assert is_network_error(outer) is True

    def test_unrelated_error(self):
        assert is_network_error(ValueError("bad value")) is False


class TestStatusClassifiers:
    """Tests for is_rate_limit_error and is_server_error."""

    def test_rate_limit_from_httpx_response(self):
        assert is_rate_limit_error(_status_error(429)) is True

    def test_rate_limit_from_status_attribute(self):
        error = RuntimeError("throttled")
        error.status = 429
        assert is_rate_limit_error(error) is True

    @pytest.mark.parametrize("message", ["Rate limit exceeded", "429 Too Many Requests"])
    def test_rate_limit_from_message(self, message):
        assert is_rate_limit_error(RuntimeError(message)) is True

    def test_not_rate_limited(self):
        assert is_rate_limit_error(_status_error(500)) is False

    @pytest.mark.parametrize("status", [500, 503, 599])
    def test_server_error_statuses(self, status):
        assert is_server_error(_status_error(status)) is True

    @pytest.mark.parametrize("status", [404, 429, 600])
    def test_non_server_error_statuses(self, status):
        assert is_server_error(_status_error(status)) is False

    def test_server_error_without_status(self):
        assert is_server_error(RuntimeError("boom")) is False
