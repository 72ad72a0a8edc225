"""
Exception types for invoke_retry
"""
from typing import Optional


class InvokeRetryError(Exception):
    """Base class for invoke_retry errors."""
    pass


class RetryPolicyError(InvokeRetryError, ValueError):
    """Raised when a RetryPolicy is misconfigured."""
    pass


class PolicyLoadError(InvokeRetryError):
    """Raised when a policy file cannot be read or validated."""
    pass


class RetryCancelledError(InvokeRetryError):
    """Raised by RetryOutcome.unwrap() when the invocation was cancelled."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Retry cancelled after {attempts} attempt(s)")
