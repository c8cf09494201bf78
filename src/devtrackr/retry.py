"""Retry driver with exponential backoff and quota-aware waits."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import ParamSpec, TypeVar

from devtrackr.errors import DevTrackrError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")

SleepFunc = Callable[[float], Awaitable[None]]


def default_is_retryable(error: BaseException) -> bool:
    """Retry only devtrackr errors that say they are retryable."""
    if isinstance(error, DevTrackrError):
        return error.retry_info.retryable
    return False


@dataclass(frozen=True)
class RetryOptions:
    """Retry policy. Delays are in seconds.

    Attributes:
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry
        max_delay: Upper bound of the exponential delay (before jitter)
        is_retryable: Predicate deciding whether an error may be retried
        jitter: Maximum extra delay as a fraction of the computed delay
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    is_retryable: Callable[[BaseException], bool] = field(
        default=default_is_retryable
    )
    jitter: float = 0.3

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays cannot be negative")


def calculate_delay(
    attempt: int, base_delay: float, max_delay: float, jitter: float = 0.3
) -> float:
    """Calculate exponential backoff delay with jitter to prevent thundering herd."""
    # Exponential backoff: base_delay * 2^attempt, capped at max_delay
    exponential_delay = min(base_delay * (2**attempt), max_delay)

    # Jitter only ever adds time
    final_delay = exponential_delay + random.uniform(0, jitter * exponential_delay)

    logger.debug(
        f"Calculated retry delay: {final_delay:.2f}s (attempt {attempt}, base {base_delay}s)"
    )
    return final_delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    options: RetryOptions | None = None,
    *,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """Run an async operation, retrying failures the policy allows.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        options: Retry policy (defaults to RetryOptions())
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        The operation's result

    Raises:
        The first non-retryable error, or the last error once the attempt
        budget is spent, unchanged.
    """
    opts = options or RetryOptions()
    quota_retries = 0

    for attempt in range(opts.max_retries + 1):
        try:
            return await operation()
        except Exception as error:
            if not opts.is_retryable(error):
                logger.info(f"Not retrying error on attempt {attempt + 1}: {error}")
                raise

            if attempt == opts.max_retries:
                logger.error(f"All retries exhausted. Final error: {error}")
                raise

            if isinstance(error, RateLimitError):
                # One retry per quota window unless the error allows more
                quota_budget = error.retry_info.max_retries
                if quota_budget is not None and quota_retries >= quota_budget:
                    logger.error(f"Quota still exhausted after waiting for reset: {error}")
                    raise
                quota_retries += 1

                # Quota waits are exact, not exponential
                retry_after = error.retry_after
                delay = retry_after if retry_after and retry_after > 0 else opts.base_delay
                logger.info(
                    f"Rate limit exceeded, waiting {delay:.2f} seconds until reset "
                    f"(attempt {attempt + 1}/{opts.max_retries})"
                )
            else:
                delay = calculate_delay(
                    attempt, opts.base_delay, opts.max_delay, opts.jitter
                )
                logger.info(
                    f"Retrying in {delay:.2f} seconds (attempt {attempt + 1}/{opts.max_retries})"
                )

            await sleep(delay)

    # range() always runs at least once and every path returns or raises
    raise AssertionError("unreachable")


def retrying(
    options: RetryOptions | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorate an async function so each call goes through with_retry."""

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await with_retry(lambda: func(*args, **kwargs), options)

        return wrapper

    return decorator
