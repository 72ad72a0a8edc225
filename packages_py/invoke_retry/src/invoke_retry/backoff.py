"""
Backoff delay calculation and waiting
"""
import asyncio
import random
import threading
import time
from typing import Optional

from .types import RetryPolicy


def next_delay(attempt_number: int, policy: RetryPolicy) -> float:
    """
    Calculate the delay before retrying a failed attempt.

    With backoff enabled the delay doubles per attempt and is capped:
    delay = min(max_delay, initial_delay * 2^(attempt_number - 1))

    When ``policy.jitter_factor`` is set, the "Full Jitter" spread is applied
    around that value and the result is clamped to [0, max_delay].

    Args:
        attempt_number: 1-based number of the attempt that just failed
        policy: Retry policy

    Returns:
        Delay in seconds
    """
    if attempt_number < 1:
        raise ValueError(f"attempt_number must be >= 1, got {attempt_number}")

    initial = policy.initial_delay_seconds
    max_delay = policy.max_delay_seconds

    if policy.backoff_enabled:
        # Cap the exponent so huge attempt numbers never overflow
        exponent = min(attempt_number - 1, 64)
        base_delay = min(max_delay, initial * (2 ** exponent))
    else:
        base_delay = initial

    jitter = policy.jitter_factor
    if jitter:
        jitter_amount = random.random() * jitter * base_delay
        base_delay = base_delay * (1 - jitter / 2) + jitter_amount

    return max(0.0, min(base_delay, max_delay))


async def async_wait(seconds: float, cancel_event: Optional[asyncio.Event] = None) -> bool:
    """
    Suspend the current task for a duration without blocking the event loop.

    Args:
        seconds: Duration in seconds
        cancel_event: Optional event that ends the wait early when set

    Returns:
        True if the wait was interrupted by the cancel event
    """
    if cancel_event is None:
        await asyncio.sleep(seconds)
        return False
    if cancel_event.is_set():
        return True
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


def sync_wait(seconds: float, cancel_event: Optional[threading.Event] = None) -> bool:
    """
    Block the calling thread for a duration.

    Args:
        seconds: Duration in seconds
        cancel_event: Optional event that ends the wait early when set

    Returns:
        True if the wait was interrupted by the cancel event
    """
    if cancel_event is None:
        time.sleep(seconds)
        return False
    return cancel_event.wait(seconds)
