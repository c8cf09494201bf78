"""Library API for devtrackr.

This module provides the main entry points for projects using devtrackr:

    from devtrackr import create_devtrackr

    async with create_devtrackr(token="ghp_...") as tracker:
        profile = await tracker.get_profile("octocat")
        stats = await tracker.get_contribution_stats("octocat")
        quota = tracker.get_quota()

Every operation fails only with ValidationError, AuthError, RateLimitError
or NetworkError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, field_validator
from pydantic import ValidationError as PydanticValidationError

from devtrackr.errors import ValidationError
from devtrackr.fetchers import GitHubFetcher
from devtrackr.github_client import (
    DEFAULT_BASE_URL,
    DEFAULT_USER_AGENT,
    MAX_PAGINATED_ITEMS,
    GitHubClient,
)
from devtrackr.languages import normalize_language_stats
from devtrackr.models import (
    ActivityTimelineOptions,
    CalendarDay,
    CommitOptions,
    ContributionStats,
    LanguageStats,
    Profile,
    QuotaSnapshot,
    RecentCommit,
    Repository,
    RepositoryOptions,
)
from devtrackr.normalizers import (
    normalize_commits,
    normalize_profile,
    normalize_repositories,
)
from devtrackr.processors import calculate_contribution_stats, create_activity_timeline
from devtrackr.rate_limit import QuotaStore, default_tracker, utc_now
from devtrackr.retry import RetryOptions

logger = logging.getLogger(__name__)

OptionsT = TypeVar("OptionsT", bound=BaseModel)

MAX_USERNAME_LENGTH = 39


def _format_validation_error(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'value'}: {err['msg']}"
        for err in error.errors()
    )


class DevTrackrConfig(BaseModel):
    """Configuration for a DevTrackr instance."""

    token: str
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float | None = 30.0
    max_items: int = MAX_PAGINATED_ITEMS
    max_commits: int = 1000
    retry: RetryOptions | None = None
    clock: Callable[[], datetime] = utc_now
    quota_tracker: Any = None
    transport: Any = None

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Validate the token is a non-empty string."""
        if not v or not v.strip():
            raise ValueError("GitHub token must be a non-empty string")
        return v.strip()

    @field_validator("max_items", "max_commits")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


def validate_username(username: Any) -> str:
    """Check a GitHub username before any request is made.

    Raises:
        ValidationError: If the username is missing, blank, not a string or too long
    """
    if username is None or username == "":
        raise ValidationError("Username is required and cannot be empty.")
    if not isinstance(username, str):
        raise ValidationError("Username must be a string.")
    if not username.strip():
        raise ValidationError("Username cannot be whitespace only.")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(
            f"Username cannot exceed {MAX_USERNAME_LENGTH} characters (GitHub limit)."
        )
    return username


def _coerce_options(
    options: OptionsT | dict[str, Any] | None, model: type[OptionsT]
) -> OptionsT:
    if isinstance(options, model):
        return options
    try:
        return model.model_validate(options or {})
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid {model.__name__}: {_format_validation_error(e)}"
        ) from e


class DevTrackr:
    """Main entry point for fetching and analyzing GitHub developer activity."""

    def __init__(self, config: DevTrackrConfig) -> None:
        """Initialize with a validated configuration.

        Args:
            config: Token, endpoint and policy settings
        """
        self.config = config
        self.quota_tracker: QuotaStore = (
            config.quota_tracker if config.quota_tracker is not None else default_tracker
        )
        self.client = GitHubClient(
            token=config.token,
            base_url=config.base_url,
            user_agent=config.user_agent,
            timeout=config.timeout,
            quota_tracker=self.quota_tracker,
            transport=config.transport,
            clock=config.clock,
        )
        self.fetcher = GitHubFetcher(self.client, retry=config.retry)

    def _today(self) -> date:
        return self.config.clock().astimezone(UTC).date()

    async def get_profile(self, username: str) -> Profile:
        """Fetch a user's profile.

        Raises:
            ValidationError, AuthError, RateLimitError, NetworkError
        """
        validate_username(username)
        user = await self.fetcher.fetch_user(username)
        return normalize_profile(user)

    async def get_repositories(
        self,
        username: str,
        options: RepositoryOptions | dict[str, Any] | None = None,
    ) -> list[Repository]:
        """Fetch one page of a user's repositories.

        Raises:
            ValidationError, AuthError, RateLimitError, NetworkError
        """
        validate_username(username)
        repo_options = _coerce_options(options, RepositoryOptions)
        repos = await self.fetcher.fetch_user_repositories(username, repo_options)
        return normalize_repositories(repos)

    async def get_recent_commits(
        self,
        username: str,
        options: CommitOptions | dict[str, Any] | None = None,
    ) -> list[RecentCommit]:
        """Fetch a user's most recent commits across recently updated repositories.

        Raises:
            ValidationError, AuthError, RateLimitError, NetworkError
        """
        validate_username(username)
        commit_options = _coerce_options(options, CommitOptions)
        repos = await self.fetcher.fetch_user_repositories(
            username, RepositoryOptions(sort="updated", direction="desc", per_page=10)
        )
        commits = await self.fetcher.fetch_user_commits(username, repos, commit_options)
        return normalize_commits(commits)

    async def get_language_stats(self, username: str) -> LanguageStats:
        """Aggregate language shares over all of a user's repositories.

        Raises:
            ValidationError, AuthError, RateLimitError, NetworkError
        """
        validate_username(username)
        repos = await self.fetcher.fetch_all_user_repositories(
            username, max_items=self.config.max_items
        )
        byte_counts = await self.fetcher.fetch_user_language_stats(username, repos)
        return normalize_language_stats(byte_counts)

    async def _fetch_activity_commits(self, username: str) -> list[RecentCommit]:
        repos = await self.fetcher.fetch_all_user_repositories(
            username, max_items=self.config.max_items
        )
        commits = await self.fetcher.fetch_user_commits(
            username, repos, CommitOptions(per_page=self.config.max_commits)
        )
        return normalize_commits(commits)

    async def get_contribution_stats(self, username: str) -> ContributionStats:
        """Compute totals and streaks from a user's commits.

        Raises:
            ValidationError, AuthError, RateLimitError, NetworkError
        """
        validate_username(username)
        commits = await self._fetch_activity_commits(username)
        return calculate_contribution_stats(commits, today=self._today())

    async def get_activity_timeline(
        self,
        username: str,
        options: ActivityTimelineOptions | dict[str, Any] | None = None,
    ) -> list[CalendarDay]:
        """Build a daily commit calendar ending today (UTC).

        Returns:
            ``options.days + 1`` entries in ascending date order

        Raises:
            ValidationError, AuthError, RateLimitError, NetworkError
        """
        validate_username(username)
        timeline_options = _coerce_options(options, ActivityTimelineOptions)
        commits = await self._fetch_activity_commits(username)
        return create_activity_timeline(
            commits, days=timeline_options.days, today=self._today()
        )

    async def get_push_activity(self, username: str) -> dict[date, int]:
        """Count pushed commits per day from a user's recent public events.

        Raises:
            ValidationError, AuthError, RateLimitError, NetworkError
        """
        validate_username(username)
        activity = await self.fetcher.fetch_push_activity(username)
        return dict(sorted(activity.items()))

    def get_quota(self) -> QuotaSnapshot | None:
        """Return the last observed rate-limit snapshot, or None before any request."""
        return self.quota_tracker.read()

    get_rate_limit_info = get_quota

    async def refresh_quota(self) -> QuotaSnapshot | None:
        """Ask GitHub for the current quota and return the updated snapshot.

        Raises:
            AuthError, NetworkError
        """
        await self.fetcher.fetch_rate_limit()
        return self.get_quota()

    def is_quota_low(self) -> bool:
        """True when less than 10% of the quota remains."""
        return self.quota_tracker.is_low()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()

    async def __aenter__(self) -> DevTrackr:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit with cleanup."""
        await self.close()


def create_devtrackr(token: str, **settings: Any) -> DevTrackr:
    """Create a DevTrackr instance.

    Args:
        token: GitHub Personal Access Token
        **settings: Any other DevTrackrConfig field

    Returns:
        Ready-to-use DevTrackr

    Raises:
        ValidationError: If the token or a setting is invalid
    """
    try:
        config = DevTrackrConfig(token=token, **settings)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid configuration: {_format_validation_error(e)}"
        ) from e
    return DevTrackr(config)
