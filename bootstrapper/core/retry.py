"""
Fixed-delay retry policy for flaky external calls.

Wraps tenacity so call sites share one policy object instead of repeating
decorator arguments. The policy is injected (the secret propagator takes
one), which lets tests run with zero delay.

Usage:
    policy = RetryPolicy(max_attempts=3, delay_seconds=10)
    result = policy.call(run_secret_set, "PAT")

    # Only retry transient failures:
    policy = RetryPolicy(retry_on=lambda exc: isinstance(exc, RetryableError))
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from bootstrapper.core.exceptions import RetryableError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, RetryableError)


@dataclass
class RetryPolicy:
    """
    Bounded retry with a fixed inter-attempt delay.

    Args:
        max_attempts: Total attempts, including the first one
        delay_seconds: Pause between attempts (no backoff)
        retry_on: Predicate deciding whether an exception consumes an attempt
        on_retry: Optional hook called with (attempt_number, exception) before sleeping
        sleep: Sleep function, replaceable in tests
    """

    max_attempts: int = 3
    delay_seconds: float = 10.0
    retry_on: Callable[[BaseException], bool] = _is_retryable
    on_retry: Optional[Callable[[int, BaseException], None]] = None
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "retry_scheduled",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            delay_seconds=self.delay_seconds,
            error=type(exc).__name__ if exc else None,
        )
        if self.on_retry and exc is not None:
            self.on_retry(retry_state.attempt_number, exc)

    def retrying(self) -> Retrying:
        """Build a tenacity controller for this policy."""
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay_seconds),
            retry=retry_if_exception(self.retry_on),
            before_sleep=self._before_sleep,
            sleep=self.sleep,
            reraise=True,
        )

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run func under this policy, re-raising the last error on exhaustion."""
        return self.retrying()(func, *args, **kwargs)
