"""Typed error taxonomy for devtrackr.

Every failure surfaced by the library is one of four kinds. Callers decide
what to do from ``kind`` and ``retry_info`` alone, never from messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure kinds."""

    AUTH = "auth"
    QUOTA_EXCEEDED = "quota_exceeded"
    NETWORK = "network"
    VALIDATION = "validation"


class ErrorCode(Enum):
    """Finer-grained error codes within each kind."""

    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    AUTH_INSUFFICIENT_SCOPES = "AUTH_INSUFFICIENT_SCOPES"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


@dataclass(frozen=True)
class RetryInfo:
    """Retry metadata attached to every error.

    Attributes:
        retryable: Whether the same call may succeed if attempted again
        retry_after: Seconds to wait before retrying, when the server says so
        max_retries: Suggested attempt budget, if any
    """

    retryable: bool
    retry_after: float | None = None
    max_retries: int | None = None


class DevTrackrError(Exception):
    """Base exception for all devtrackr errors."""

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NETWORK_ERROR,
        retry_info: RetryInfo | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._code = code
        self._retry_info = retry_info or RetryInfo(retryable=False)
        self._status_code = status_code

    @property
    def message(self) -> str:
        return self._message

    @property
    def code(self) -> ErrorCode:
        return self._code

    @property
    def retry_info(self) -> RetryInfo:
        return self._retry_info

    @property
    def retryable(self) -> bool:
        return self._retry_info.retryable

    @property
    def retry_after(self) -> float | None:
        return self._retry_info.retry_after

    @property
    def status_code(self) -> int | None:
        """HTTP status of the response that caused the error, if any."""
        return self._status_code

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self._message!r}, "
            f"code={self._code.value}, retryable={self.retryable})"
        )


class AuthError(DevTrackrError):
    """Raised when the token is invalid or lacks the required scopes.

    Never retryable.
    """

    kind = ErrorKind.AUTH

    def __init__(
        self,
        message: str = "Authentication failed. Invalid or missing token.",
        code: ErrorCode = ErrorCode.AUTH_INVALID_TOKEN,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message, code, RetryInfo(retryable=False), status_code=status_code
        )


class RateLimitError(DevTrackrError):
    """Raised when the GitHub API quota is exhausted.

    Retryable once the server-declared reset instant has passed.
    """

    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(
        self,
        message: str,
        limit: int,
        remaining: int,
        reset_at: datetime,
        now: datetime | None = None,
        status_code: int | None = 403,
    ) -> None:
        current = now or datetime.now(tz=UTC)
        retry_after = max(0.0, (reset_at - current).total_seconds())
        super().__init__(
            message,
            ErrorCode.RATE_LIMIT_EXCEEDED,
            RetryInfo(retryable=True, retry_after=retry_after, max_retries=1),
            status_code=status_code,
        )
        self._limit = limit
        self._remaining = remaining
        self._reset_at = reset_at

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def reset_at(self) -> datetime:
        return self._reset_at


class NetworkError(DevTrackrError):
    """Raised for transport failures, server errors and unreadable responses."""

    kind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str = "Network request failed.",
        code: ErrorCode = ErrorCode.NETWORK_ERROR,
        retryable: bool = True,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            code,
            RetryInfo(retryable=retryable, max_retries=3 if retryable else None),
            status_code=status_code,
        )


class ValidationError(DevTrackrError):
    """Raised when caller input is malformed. Never retryable."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(
            message, ErrorCode.VALIDATION_ERROR, RetryInfo(retryable=False)
        )
