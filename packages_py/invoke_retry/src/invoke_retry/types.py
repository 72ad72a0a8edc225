"""
Type definitions for invoke_retry
"""
import dataclasses
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Literal, Optional, TypeVar, Union

from .errors import RetryCancelledError, RetryPolicyError


T = TypeVar("T")

Matcher = Union[str, re.Pattern[str]]
"""A retryable-failure matcher: exact category name / message substring, or a regex"""


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy. Validated on construction, read-only afterwards."""

    max_attempts: int = 3
    """Total attempts including the first. Default: 3"""

    initial_delay_seconds: float = 1.0
    """Delay before the first retry (seconds). Default: 1.0"""

    max_delay_seconds: float = 5.0
    """Ceiling for computed delays (seconds). Default: 5.0"""

    backoff_enabled: bool = True
    """Double the delay on every retry. When False the delay stays at initial_delay_seconds"""

    retryable_matchers: tuple[Matcher, ...] = ()
    """Matchers deciding which failures are retried"""

    require_explicit_match: bool = False
    """When no matchers are configured: True retries nothing, False retries any failure"""

    jitter_factor: float = 0.0
    """Jitter factor (0-1) for Full Jitter spread. Default: 0 (exact delays)"""

    def __post_init__(self) -> None:
        matchers = self.retryable_matchers
        if isinstance(matchers, (str, re.Pattern)):
            matchers = (matchers,)
        object.__setattr__(self, "retryable_matchers", tuple(matchers or ()))
        self._validate()

    def _validate(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise RetryPolicyError(f"max_attempts must be an integer, got {self.max_attempts!r}")
        if self.max_attempts < 1:
            raise RetryPolicyError(f"max_attempts must be >= 1, got {self.max_attempts}")

        for name in ("initial_delay_seconds", "max_delay_seconds", "jitter_factor"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise RetryPolicyError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise RetryPolicyError(f"{name} must be a finite number, got {value}")
            if value < 0:
                raise RetryPolicyError(f"{name} must be >= 0, got {value}")

        if self.max_delay_seconds < self.initial_delay_seconds:
            raise RetryPolicyError(
                f"max_delay_seconds ({self.max_delay_seconds}) must be >= "
                f"initial_delay_seconds ({self.initial_delay_seconds})"
            )
        if self.jitter_factor > 1:
            raise RetryPolicyError(f"jitter_factor must be <= 1, got {self.jitter_factor}")

        for matcher in self.retryable_matchers:
            if isinstance(matcher, re.Pattern):
                if not isinstance(matcher.pattern, str):
                    raise RetryPolicyError("Pattern matchers must be compiled from str, not bytes")
                continue
            if not isinstance(matcher, str):
                raise RetryPolicyError(
                    f"Matcher must be a string or compiled pattern, got {type(matcher).__name__}"
                )
            if not matcher:
                raise RetryPolicyError("Matcher text must not be empty")

    def replace(self, **changes: Any) -> "RetryPolicy":
        """Return a validated copy with the given fields changed."""
        return dataclasses.replace(self, **changes)


class OutcomeStatus(str, Enum):
    """How an invocation terminated"""
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    NON_RETRYABLE = "non_retryable"
    CANCELLED = "cancelled"


@dataclass
class Attempt:
    """Record of a single try"""

    attempt_number: int
    """1-based attempt number"""

    value: Any = None
    """Value returned by the operation, if it succeeded"""

    error: Optional[Exception] = None
    """Failure raised by the operation, if it failed"""

    delay_before_next: Optional[float] = None
    """Wait before the next attempt (seconds), only set when another attempt follows"""

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class RetryOutcome(Generic[T]):
    """Final result of a retried operation"""

    status: OutcomeStatus
    """How the invocation terminated"""

    attempts: int
    """Number of attempts consumed"""

    value: Optional[T] = None
    """Value of the first successful attempt"""

    error: Optional[Exception] = None
    """Terminating failure: the last one on exhaustion, the triggering one otherwise"""

    last_error: Optional[Exception] = None
    """Most recent failure seen, also kept for cancelled outcomes"""

    delays: tuple[float, ...] = ()
    """Backoff waits performed, in order (seconds)"""

    total_time_seconds: float = 0.0
    """Total time spent including retries (seconds)"""

    delay_time_seconds: float = 0.0
    """Time spent in backoff delays (seconds)"""

    history: list[Attempt] = field(default_factory=list)
    """Per-attempt records"""

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def cancelled(self) -> bool:
        return self.status is OutcomeStatus.CANCELLED

    @property
    def retries(self) -> int:
        """Number of retries (0 if the first attempt settled the call)"""
        return max(self.attempts - 1, 0)

    def unwrap(self) -> T:
        """
        Return the success value or raise the terminating failure.

        Raises:
            Exception: The failure that ended an exhausted or non-retryable call
            RetryCancelledError: If the call was cancelled
        """
        if self.status is OutcomeStatus.SUCCESS:
            return self.value  # type: ignore[return-value]
        if self.status is OutcomeStatus.CANCELLED:
            raise RetryCancelledError(self.attempts, self.last_error)
        assert self.error is not None
        raise self.error


# Event types
EventType = Literal[
    "attempt:start",
    "attempt:success",
    "attempt:fail",
    "retry:wait",
    "retry:abort",
    "retry:exhausted",
    "retry:cancelled",
]


@dataclass
class RetryEvent:
    """Event emitted by the retry executor"""

    type: EventType
    """Event type"""

    attempt: int
    """Current attempt number (1-based)"""

    data: dict[str, Any] = field(default_factory=dict)
    """Event-specific data"""


# Event listener type
RetryEventListener = Callable[[RetryEvent], None]

# Custom retry predicate, overrides the policy classifier
ShouldRetry = Callable[[Exception, int], bool]
