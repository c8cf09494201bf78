"""devtrackr - GitHub developer activity, streaks and language shares.

Library API for external projects:

    from devtrackr import create_devtrackr

    async with create_devtrackr(token="ghp_...") as tracker:
        profile = await tracker.get_profile("octocat")
        stats = await tracker.get_contribution_stats("octocat")
        timeline = await tracker.get_activity_timeline("octocat", {"days": 30})
        quota = tracker.get_quota()

    # Retry transient failures with exponential backoff
    from devtrackr import RetryOptions

    tracker = create_devtrackr(token="ghp_...", retry=RetryOptions(max_retries=5))

    # Pure analytics over commits you already have
    from devtrackr import calculate_contribution_stats, normalize_language_stats
"""

__version__ = "0.1.0"

from devtrackr.errors import (
    AuthError,
    DevTrackrError,
    ErrorCode,
    ErrorKind,
    NetworkError,
    RateLimitError,
    RetryInfo,
    ValidationError,
)
from devtrackr.github_client import GitHubClient
from devtrackr.languages import get_language_color, normalize_language_stats
from devtrackr.library import (
    DevTrackr,
    DevTrackrConfig,
    create_devtrackr,
    validate_username,
)
from devtrackr.models import (
    ActivityTimelineOptions,
    CalendarDay,
    CommitOptions,
    ContributionStats,
    LanguageStat,
    LanguageStats,
    Profile,
    QuotaSnapshot,
    RecentCommit,
    Repository,
    RepositoryOptions,
)
from devtrackr.processors import (
    calculate_contribution_stats,
    create_activity_timeline,
    current_streak,
    longest_streak,
)
from devtrackr.rate_limit import QuotaTracker, default_tracker
from devtrackr.retry import RetryOptions, calculate_delay, retrying, with_retry

__all__ = [
    # Core API
    "create_devtrackr",
    "DevTrackr",
    "DevTrackrConfig",
    "GitHubClient",
    "validate_username",
    # Errors
    "DevTrackrError",
    "AuthError",
    "RateLimitError",
    "NetworkError",
    "ValidationError",
    "ErrorKind",
    "ErrorCode",
    "RetryInfo",
    # Schemas
    "Profile",
    "Repository",
    "RecentCommit",
    "LanguageStat",
    "LanguageStats",
    "ContributionStats",
    "CalendarDay",
    "QuotaSnapshot",
    "RepositoryOptions",
    "CommitOptions",
    "ActivityTimelineOptions",
    # Retry and quota
    "RetryOptions",
    "with_retry",
    "retrying",
    "calculate_delay",
    "QuotaTracker",
    "default_tracker",
    # Analytics
    "calculate_contribution_stats",
    "create_activity_timeline",
    "longest_streak",
    "current_streak",
    "normalize_language_stats",
    "get_language_color",
    # Metadata
    "__version__",
]
