"""Bounded exponential-backoff retry for idempotent async calls.

The policy knows nothing about inference: callers decide which failures are
worth retrying through ``is_retryable``. The default predicate honours a
``transient`` attribute on the exception, or an HTTP 503 status carried on
``status_code`` / ``status``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule: ``min(base * 2**(attempt-1), cap)`` milliseconds."""

    max_attempts: int = 3
    base_delay_ms: float = 1000.0
    max_delay_ms: float = 5000.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("Backoff delays must not be negative")

    def delay_seconds(self, attempt: int) -> float:
        """Wait after failed attempt number ``attempt`` (1-based), in seconds."""
        delay_ms = min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)
        return delay_ms / 1000.0


def is_transient_error(exc: BaseException) -> bool:
    """Return True when the failure signals temporary server-side unavailability."""
    if getattr(exc, "transient", False):
        return True
    for attr in ("status_code", "status"):
        if getattr(exc, attr, None) == 503:
            return True
    return False


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    *,
    policy: RetryPolicy | None = None,
    is_retryable: Callable[[BaseException], bool] = is_transient_error,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds, fails permanently, or attempts run out.

    Args:
        operation: No-argument coroutine factory. Must be idempotent.
        max_attempts: Upper bound on calls. Ignored when ``policy`` is given.
        policy: Full backoff policy (attempts, base and cap delays).
        is_retryable: Classifies a failure as worth another attempt.
        sleep: Awaitable sleep, injectable for tests. The wait between
            attempts is the only point where a caller can cancel.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        The last exception raised by ``operation``, unchanged.
    """
    policy = policy or RetryPolicy(max_attempts=max_attempts)

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_attempts or not is_retryable(exc):
                if attempt > 1:
                    logger.warning(
                        "Giving up after %d/%d attempts: %s",
                        attempt,
                        policy.max_attempts,
                        exc,
                    )
                raise
            delay = policy.delay_seconds(attempt)
            logger.warning(
                "Attempt %d/%d failed (%s); retrying in %.1fs",
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            await sleep(delay)
            attempt += 1
