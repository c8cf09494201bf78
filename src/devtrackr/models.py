"""Pydantic models for GitHub API records and devtrackr output schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field, field_serializer, field_validator


def _check_iso_timestamp(v: str) -> str:
    try:
        datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid datetime format: {v}") from e
    return v


# Raw GitHub API records. Unknown provider fields are ignored.
class GitHubOwner(BaseModel):
    """Owner of a GitHub repository."""

    login: str


class GitHubUser(BaseModel):
    """GitHub user as returned by /users/{username}."""

    login: str
    name: str | None = None
    avatar_url: str = ""
    bio: str | None = None
    followers: int = 0
    following: int = 0
    public_repos: int = 0
    html_url: str = ""


class GitHubRepository(BaseModel):
    """GitHub repository as returned by /users/{username}/repos."""

    name: str
    full_name: str | None = None
    owner: GitHubOwner | None = None
    description: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    language: str | None = None
    updated_at: str = ""
    html_url: str = ""

    def owner_and_name(self, fallback_owner: str) -> tuple[str, str]:
        """Resolve the (owner, repo) pair used to build repository endpoints."""
        if self.full_name and "/" in self.full_name:
            owner, name = self.full_name.split("/", 1)
            return owner, name
        if self.owner is not None:
            return self.owner.login, self.name
        return fallback_owner, self.name


class GitHubCommitAuthor(BaseModel):
    """Author block inside a commit."""

    date: str
    name: str | None = None
    email: str | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _check_iso_timestamp(v)


class GitHubCommitDetail(BaseModel):
    """Git-level commit data."""

    message: str
    author: GitHubCommitAuthor


class GitHubCommitStats(BaseModel):
    """Line statistics, only present on single-commit responses."""

    additions: int = 0
    deletions: int = 0
    total: int | None = None


class GitHubRepositoryRef(BaseModel):
    """Repository a commit was fetched from."""

    name: str


class GitHubCommit(BaseModel):
    """Commit as returned by /repos/{owner}/{repo}/commits."""

    sha: str
    commit: GitHubCommitDetail
    stats: GitHubCommitStats | None = None
    html_url: str = ""
    repository: GitHubRepositoryRef | None = None

    @property
    def committed_at(self) -> str:
        return self.commit.author.date


class GitHubEvent(BaseModel):
    """Public event as returned by /users/{username}/events/public."""

    id: str | None = None
    type: str
    created_at: str | None = None
    payload: dict[str, Any] = {}

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: str | None) -> str | None:
        return v if v is None else _check_iso_timestamp(v)


# Output schemas
class Profile(BaseModel):
    """Normalized user profile."""

    username: str
    name: str | None = None
    avatar_url: str
    bio: str | None = None
    followers: int
    following: int
    public_repos: int
    profile_url: str


class Repository(BaseModel):
    """Normalized repository summary."""

    name: str
    description: str | None = None
    stars: int
    forks: int
    primary_language: str | None = None
    updated_at: str
    repo_url: str


class RecentCommit(BaseModel):
    """Normalized commit."""

    repo: str
    message: str
    additions: int = 0
    deletions: int = 0
    committed_at: str
    commit_url: str

    @field_validator("committed_at")
    @classmethod
    def validate_committed_at(cls, v: str) -> str:
        """Validate committed_at is a valid ISO datetime string."""
        return _check_iso_timestamp(v)


class LanguageStat(BaseModel):
    """Share of one language across a user's repositories."""

    name: str
    percentage: Decimal = Field(ge=0, le=100, decimal_places=2)
    color: str

    @field_serializer("percentage", when_used="json")
    def serialize_percentage(self, v: Decimal) -> float:
        return float(v)


class LanguageStats(BaseModel):
    """Language breakdown, sorted by byte count descending."""

    total_bytes: int
    languages: list[LanguageStat]


class ContributionStats(BaseModel):
    """Summary statistics derived from a commit collection."""

    total_commits: int
    active_days: int
    avg_commits_per_week: float
    longest_streak: int
    current_streak: int


class CalendarDay(BaseModel):
    """Commit count for one UTC calendar day."""

    date: date
    commit_count: int


class QuotaSnapshot(BaseModel):
    """Last observed GitHub rate-limit state."""

    limit: int
    remaining: int
    reset_at: datetime
    reset_in: float  # seconds until reset, never negative

    @property
    def used(self) -> int:
        return max(0, self.limit - self.remaining)


# Request options
class RepositoryOptions(BaseModel):
    """Options for listing a user's repositories."""

    sort: Literal["created", "updated", "pushed", "full_name"] | None = None
    direction: Literal["asc", "desc"] | None = None
    per_page: int = 100
    page: int | None = None

    @field_validator("per_page")
    @classmethod
    def validate_per_page(cls, v: int) -> int:
        """GitHub caps list pages at 100 items."""
        if v < 1:
            raise ValueError("per_page must be at least 1")
        if v > 100:
            raise ValueError("per_page cannot exceed 100 (GitHub API limitation)")
        return v

    @field_validator("page")
    @classmethod
    def validate_page(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("page must be at least 1")
        return v

    def to_params(self) -> dict[str, Any]:
        """Convert to GitHub query parameters."""
        params: dict[str, Any] = {"per_page": self.per_page}
        if self.sort:
            params["sort"] = self.sort
        if self.direction:
            params["direction"] = self.direction
        if self.page:
            params["page"] = self.page
        return params


class CommitOptions(BaseModel):
    """Options for fetching commits.

    ``per_page`` is both the page size sent to GitHub (capped at 100) and
    the total number of commits returned.
    """

    per_page: int = 30
    page: int | None = None
    since: str | None = None
    until: str | None = None

    @field_validator("per_page")
    @classmethod
    def validate_per_page(cls, v: int) -> int:
        if v < 1:
            raise ValueError("per_page must be at least 1")
        return v

    @field_validator("page")
    @classmethod
    def validate_page(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("page must be at least 1")
        return v

    @field_validator("since", "until")
    @classmethod
    def validate_timestamp(cls, v: str | None) -> str | None:
        """Validate since/until are ISO 8601 timestamps."""
        if v is None:
            return v
        return _check_iso_timestamp(v)

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"per_page": min(self.per_page, 100)}
        if self.page:
            params["page"] = self.page
        if self.since:
            params["since"] = self.since
        if self.until:
            params["until"] = self.until
        return params


class ActivityTimelineOptions(BaseModel):
    """Options for the activity calendar."""

    days: int = 365

    @field_validator("days")
    @classmethod
    def validate_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError("days cannot be negative")
        return v
