"""Rate limit tracking for the GitHub API.

GitHub reports quota on every response:
- X-RateLimit-Limit: 5000
- X-RateLimit-Remaining: 4999
- X-RateLimit-Reset: 1372700873 (Unix timestamp)

The tracker only remembers the last snapshot it was given. It is advisory:
concurrent operations sharing one tracker race, and the last response wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Protocol

from devtrackr.models import QuotaSnapshot

logger = logging.getLogger(__name__)

LOW_QUOTA_RATIO = 0.10


def quota_is_low(limit: int, remaining: int) -> bool:
    """True when less than 10% of the quota remains."""
    return remaining < limit * LOW_QUOTA_RATIO


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def parse_rate_limit_headers(headers: Mapping[str, str]) -> tuple[int, int, int] | None:
    """Extract (limit, remaining, reset) from response headers.

    Args:
        headers: Response headers (case-insensitive mapping, e.g. httpx.Headers)

    Returns:
        The three values, or None unless all three are present and integral
    """
    limit = headers.get("x-ratelimit-limit")
    remaining = headers.get("x-ratelimit-remaining")
    reset = headers.get("x-ratelimit-reset")

    if limit is None or remaining is None or reset is None:
        return None

    try:
        return int(limit), int(remaining), int(reset)
    except ValueError:
        logger.debug(
            f"Ignoring malformed rate limit headers: {limit!r}/{remaining!r}/{reset!r}"
        )
        return None


class QuotaStore(Protocol):
    """Interface of anything that can record and report quota snapshots."""

    def update(self, limit: int, remaining: int, reset_epoch_seconds: int) -> None: ...

    def read(self) -> QuotaSnapshot | None: ...

    def is_low(self) -> bool: ...


class QuotaTracker:
    """Holds the last observed rate-limit snapshot."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize an empty tracker.

        Args:
            clock: Returns the current aware datetime, used for reset_in
        """
        self.clock = clock
        self._limit: int | None = None
        self._remaining: int | None = None
        self._reset_at: datetime | None = None

    def update(self, limit: int, remaining: int, reset_epoch_seconds: int) -> None:
        """Overwrite the snapshot unconditionally."""
        self._limit = limit
        self._remaining = remaining
        self._reset_at = datetime.fromtimestamp(reset_epoch_seconds, tz=UTC)

        if self.is_low():
            logger.warning(
                f"GitHub API quota is low: {remaining}/{limit} remaining, "
                f"resets at {self._reset_at.isoformat()}"
            )

    def read(self) -> QuotaSnapshot | None:
        """Return the snapshot with reset_in measured against the clock now."""
        if self._limit is None or self._remaining is None or self._reset_at is None:
            return None

        reset_in = max(0.0, (self._reset_at - self.clock()).total_seconds())
        return QuotaSnapshot(
            limit=self._limit,
            remaining=self._remaining,
            reset_at=self._reset_at,
            reset_in=reset_in,
        )

    def is_low(self) -> bool:
        """True when less than 10% of the quota remains."""
        if self._limit is None or self._remaining is None:
            return False
        return quota_is_low(self._limit, self._remaining)

    def reset(self) -> None:
        """Forget the stored snapshot."""
        self._limit = None
        self._remaining = None
        self._reset_at = None


# Process-wide tracker used when a client is not given its own
default_tracker = QuotaTracker()
