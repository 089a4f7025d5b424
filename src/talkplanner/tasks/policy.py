"""Retry policy executor for task steps.

The executor knows nothing about what a step does. It runs an async callable
up to ``max_attempts`` times, each attempt bounded by ``timeout``. Between
attempts it sleeps ``base_delay * backoff_multiplier ** (attempt - 1)``.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings for a step.

    Attributes:
        max_attempts: Total attempts, including the first one.
        base_delay: Seconds to wait after the first failed attempt.
        backoff_multiplier: Factor applied to the delay after each failure.
        timeout: Seconds allowed per attempt, or None for no limit.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0
    timeout: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.backoff_multiplier < 1:
            raise ValueError("base_delay must be >= 0 and backoff_multiplier >= 1")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        return self.base_delay * self.backoff_multiplier ** (attempt - 1)


class StepFailedError(Exception):
    """All attempts of a step failed. ``cause`` is the last attempt's error."""

    def __init__(self, attempts: int, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__)
        self.attempts = attempts
        self.cause = cause


class StepTimeoutError(Exception):
    """An attempt exceeded the policy timeout."""


async def run_with_retry(
    fn: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    on_attempt_failed: Callable[[int, BaseException], None] | None = None,
) -> tuple[Any, int]:
    """Run ``fn`` under ``policy``.

    Returns:
        (value, attempts) from the first successful attempt.

    Raises:
        StepFailedError: When every attempt failed or timed out.
    """
    last_error: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            if policy.timeout is None:
                value = await fn()
            else:
                try:
                    value = await asyncio.wait_for(fn(), timeout=policy.timeout)
                except asyncio.TimeoutError:
                    raise StepTimeoutError(
                        f"Attempt {attempt} timed out after {policy.timeout}s"
                    ) from None
            return value, attempt
        except Exception as e:
            last_error = e
            if on_attempt_failed is not None:
                on_attempt_failed(attempt, e)
            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.warning(
                    f"Attempt {attempt}/{policy.max_attempts} failed: {e}; retrying in {delay:.1f}s"
                )
                await sleep(delay)

    assert last_error is not None
    raise StepFailedError(policy.max_attempts, last_error)
