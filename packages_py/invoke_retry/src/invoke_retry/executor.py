"""
Main retry executor implementation
"""
import asyncio
import functools
import inspect
import logging
import threading
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .backoff import async_wait, next_delay, sync_wait
from .classifier import failure_category, failure_message, is_retryable
from .config import merge_policy
from .types import (
    Attempt,
    EventType,
    OutcomeStatus,
    RetryEvent,
    RetryEventListener,
    RetryOutcome,
    RetryPolicy,
    ShouldRetry,
)


T = TypeVar("T")

logger = logging.getLogger(__name__)


_NOTE_PREFIX = "Retry gave up after "


def _annotate(error: Exception, attempts: int) -> None:
    error.retry_attempts = attempts  # type: ignore[attr-defined]
    # One note per exception, even when the same instance terminates several calls
    notes = getattr(error, "__notes__", None)
    if notes is not None:
        notes[:] = [note for note in notes if not (isinstance(note, str) and note.startswith(_NOTE_PREFIX))]
    error.add_note(f"{_NOTE_PREFIX}{attempts} attempt(s)")


class _Invocation:
    """State of a single execute() call: attempt records, timings and event fan-out."""

    def __init__(
        self,
        executor: "RetryExecutor",
        observer: Optional[RetryEventListener],
        should_retry: Optional[ShouldRetry],
    ) -> None:
        self._executor = executor
        self._policy = executor.policy
        self._observer = observer
        self._should_retry = should_retry
        self._start = time.monotonic()
        self._attempt_start = self._start
        self.history: list[Attempt] = []
        self.delays: list[float] = []
        self.last_error: Optional[Exception] = None

    def emit(self, event_type: EventType, attempt: int, **data: Any) -> None:
        self._executor._emit(RetryEvent(type=event_type, attempt=attempt, data=data), self._observer)

    def begin(self, attempt: int) -> None:
        self._attempt_start = time.monotonic()
        logger.debug(f"[{self._executor.id}] Starting attempt {attempt}/{self._policy.max_attempts}")
        self.emit("attempt:start", attempt)

    def _outcome(self, status: OutcomeStatus, attempts: int, **fields: Any) -> RetryOutcome:
        return RetryOutcome(
            status=status,
            attempts=attempts,
            last_error=self.last_error,
            delays=tuple(self.delays),
            total_time_seconds=time.monotonic() - self._start,
            delay_time_seconds=sum(self.delays),
            history=self.history,
            **fields,
        )

    def succeeded(self, attempt: int, value: Any) -> RetryOutcome:
        self.history.append(Attempt(attempt_number=attempt, value=value))
        self.emit("attempt:success", attempt, duration_seconds=time.monotonic() - self._attempt_start)
        return self._outcome(OutcomeStatus.SUCCESS, attempt, value=value)

    def _classify(self, error: Exception, attempt: int) -> bool:
        if self._should_retry is not None:
            try:
                return bool(self._should_retry(error, attempt))
            except Exception:
                logger.exception(
                    f"[{self._executor.id}] should_retry predicate failed, using policy classifier"
                )
        return is_retryable(error, self._policy)

    def failed(self, attempt: int, error: Exception) -> Optional[RetryOutcome]:
        """Record a failure. Returns the terminal outcome, or None when a retry follows."""
        self.last_error = error
        record = Attempt(attempt_number=attempt, error=error)
        self.history.append(record)

        category = failure_category(error)
        message = failure_message(error)
        exhausted = attempt >= self._policy.max_attempts
        will_retry = not exhausted and self._classify(error, attempt)

        self.emit(
            "attempt:fail",
            attempt,
            category=category,
            message=message,
            will_retry=will_retry,
            record=record,
        )

        if will_retry:
            return None

        _annotate(error, attempt)
        if exhausted:
            logger.error(
                f"[{self._executor.id}] Failed after {attempt} attempts. "
                f"Last error: {category}: {message}"
            )
            self.emit("retry:exhausted", attempt, category=category, message=message)
            return self._outcome(OutcomeStatus.EXHAUSTED, attempt, error=error)

        logger.warning(
            f"[{self._executor.id}] Attempt {attempt} failed with non-retryable error "
            f"{category}: {message}"
        )
        self.emit("retry:abort", attempt, category=category, message=message)
        return self._outcome(OutcomeStatus.NON_RETRYABLE, attempt, error=error)

    def schedule(self, attempt: int) -> float:
        """Compute the wait before the next attempt."""
        delay = next_delay(attempt, self._policy)
        self.history[-1].delay_before_next = delay
        error = self.last_error
        logger.warning(
            f"[{self._executor.id}] Attempt {attempt} failed. Retrying in {delay:.3f}s... "
            f"({failure_category(error)}: {failure_message(error)})"
        )
        self.emit("retry:wait", attempt, delay_seconds=delay)
        return delay

    def waited(self, delay: float) -> None:
        self.delays.append(delay)

    def cancelled(self, attempts: int) -> RetryOutcome:
        logger.info(f"[{self._executor.id}] Retry cancelled after {attempts} attempt(s)")
        self.emit("retry:cancelled", attempts)
        return self._outcome(OutcomeStatus.CANCELLED, attempts)


class RetryExecutor:
    """
    Retry Executor

    Provides retry logic with:
    - Bounded attempts
    - Exponential backoff with a ceiling (or a constant delay)
    - Matcher-based failure classification
    - Optional cancellation
    - Event emission for observability

    Attempts run strictly one after another. The executor holds no per-call
    state, so one instance can serve concurrent calls.
    """

    def __init__(self, policy: Optional[RetryPolicy] = None, executor_id: Optional[str] = None):
        """
        Create a new RetryExecutor.

        Args:
            policy: Retry policy (DEFAULT_RETRY_POLICY when omitted)
            executor_id: Optional unique identifier
        """
        self._policy = merge_policy(policy)
        self._id = executor_id or f"retry-{int(time.time() * 1000)}"
        self._listeners: list[RetryEventListener] = []

    def _emit(self, event: RetryEvent, observer: Optional[RetryEventListener] = None) -> None:
        """Emit an event to all listeners and the per-call observer."""
        targets = list(self._listeners)
        if observer is not None:
            targets.append(observer)
        for listener in targets:
            try:
                listener(event)
            except Exception:
                logger.exception(f"[{self._id}] Retry event listener failed on {event.type}")

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        observer: Optional[RetryEventListener] = None,
        cancel_event: Optional[asyncio.Event] = None,
        should_retry: Optional[ShouldRetry] = None,
    ) -> RetryOutcome[T]:
        """
        Execute an async operation with retry logic.

        Failures of the operation never propagate from here; they are
        returned in the outcome. Use ``outcome.unwrap()`` to re-raise.

        Args:
            operation: Zero-argument callable returning an awaitable
            observer: Per-call event listener
            cancel_event: Event checked before each attempt and around each wait
            should_retry: Custom predicate overriding the policy classifier

        Returns:
            Outcome with the value or the terminating failure

        Example:
            executor = RetryExecutor(RetryPolicy(max_attempts=5))
            outcome = await executor.execute(fetch_quote)
            quote = outcome.unwrap()
        """
        run = _Invocation(self, observer, should_retry)
        attempt = 1

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return run.cancelled(attempt - 1)

            run.begin(attempt)
            try:
                value = await operation()
            except Exception as error:
                outcome = run.failed(attempt, error)
                if outcome is not None:
                    return outcome
            else:
                return run.succeeded(attempt, value)

            if cancel_event is not None and cancel_event.is_set():
                return run.cancelled(attempt)
            delay = run.schedule(attempt)
            if await async_wait(delay, cancel_event):
                return run.cancelled(attempt)
            run.waited(delay)
            attempt += 1

    def execute_sync(
        self,
        operation: Callable[[], T],
        *,
        observer: Optional[RetryEventListener] = None,
        cancel_event: Optional[threading.Event] = None,
        should_retry: Optional[ShouldRetry] = None,
    ) -> RetryOutcome[T]:
        """
        Execute a synchronous operation with retry logic.

        Same contract as execute(), but waits block the calling thread.

        Args:
            operation: Zero-argument callable
            observer: Per-call event listener
            cancel_event: Event checked before each attempt and around each wait
            should_retry: Custom predicate overriding the policy classifier

        Returns:
            Outcome with the value or the terminating failure
        """
        run = _Invocation(self, observer, should_retry)
        attempt = 1

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return run.cancelled(attempt - 1)

            run.begin(attempt)
            try:
                value = operation()
            except Exception as error:
                outcome = run.failed(attempt, error)
                if outcome is not None:
                    return outcome
            else:
                return run.succeeded(attempt, value)

            if cancel_event is not None and cancel_event.is_set():
                return run.cancelled(attempt)
            delay = run.schedule(attempt)
            if sync_wait(delay, cancel_event):
                return run.cancelled(attempt)
            run.waited(delay)
            attempt += 1

    def on(self, listener: RetryEventListener) -> Callable[[], None]:
        """
        Add an event listener.

        Args:
            listener: Event listener function

        Returns:
            Function to remove the listener
        """
        self._listeners.append(listener)
        return lambda: self.off(listener)

    def off(self, listener: RetryEventListener) -> None:
        """Remove an event listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def id(self) -> str:
        """Get the executor ID."""
        return self._id

    @property
    def policy(self) -> RetryPolicy:
        """Get the current policy."""
        return self._policy


def create_retry_executor(
    policy: Optional[RetryPolicy] = None,
    executor_id: Optional[str] = None,
) -> RetryExecutor:
    """Create a new retry executor."""
    return RetryExecutor(policy, executor_id)


async def execute(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> RetryOutcome[T]:
    """Execute an async operation with retry logic and return the outcome."""
    return await RetryExecutor(policy).execute(operation, **kwargs)


async def retry(
    fn: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> T:
    """
    Execute an async operation with retry logic (convenience function).

    Args:
        fn: Zero-argument async callable
        policy: Retry policy
        **kwargs: observer, cancel_event, should_retry

    Returns:
        The operation's result

    Raises:
        Exception: The terminating failure
        RetryCancelledError: If cancelled

    Example:
        quote = await retry(fetch_quote, API_RETRY_POLICY)
    """
    outcome = await RetryExecutor(policy).execute(fn, **kwargs)
    return outcome.unwrap()


def retry_sync(
    fn: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> T:
    """
    Execute a sync operation with retry logic (convenience function).

    Args:
        fn: Zero-argument callable
        policy: Retry policy
        **kwargs: observer, cancel_event, should_retry

    Returns:
        The operation's result
    """
    outcome = RetryExecutor(policy).execute_sync(fn, **kwargs)
    return outcome.unwrap()


def with_retry(
    operation: Callable[..., Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> Callable[..., Awaitable[T]]:
    """
    Wrap an async operation so every call is retried.

    Arguments given to the wrapper are forwarded to ``operation`` on each attempt.

    Args:
        operation: Async callable
        policy: Retry policy
        **kwargs: observer, cancel_event, should_retry

    Returns:
        Async callable returning the result or raising the terminating failure

    Example:
        save = with_retry(repository.save, DB_RETRY_POLICY)
        await save(document)
    """
    executor = RetryExecutor(policy)

    @functools.wraps(operation)
    async def wrapper(*args: Any, **call_kwargs: Any) -> T:
        outcome = await executor.execute(lambda: operation(*args, **call_kwargs), **kwargs)
        return outcome.unwrap()

    return wrapper


def with_retry_sync(
    operation: Callable[..., T],
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> Callable[..., T]:
    """Wrap a sync operation so every call is retried."""
    executor = RetryExecutor(policy)

    @functools.wraps(operation)
    def wrapper(*args: Any, **call_kwargs: Any) -> T:
        outcome = executor.execute_sync(lambda: operation(*args, **call_kwargs), **kwargs)
        return outcome.unwrap()

    return wrapper


def retryable(policy: Optional[RetryPolicy] = None, **kwargs: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator form of with_retry / with_retry_sync.

    Example:
        @retryable(API_RETRY_POLICY)
        async def fetch_financials(symbol):
            ...
    """
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(getattr(fn, "__call__", None)):
            return with_retry(fn, policy, **kwargs)
        return with_retry_sync(fn, policy, **kwargs)

    return decorator
