"""Endpoint fetchers composing GitHubClient requests into raw GitHub records."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, TypeVar

from devtrackr.errors import NetworkError
from devtrackr.github_client import MAX_PAGINATED_ITEMS, GitHubClient, validate_response
from devtrackr.languages import merge_language_bytes
from devtrackr.models import (
    CommitOptions,
    GitHubCommit,
    GitHubEvent,
    GitHubRepository,
    GitHubRepositoryRef,
    GitHubUser,
    RepositoryOptions,
)
from devtrackr.processors import day_key, parse_instant
from devtrackr.retry import RetryOptions, with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Commits are only read from this many recently updated repositories
MAX_COMMIT_REPOSITORIES = 10


class GitHubFetcher:
    """Fetches raw GitHub records for one user-facing operation at a time.

    Calls are issued one after another. When ``retry`` is given every
    request goes through ``with_retry``; otherwise errors surface at once.
    """

    def __init__(self, client: GitHubClient, retry: RetryOptions | None = None) -> None:
        """Initialize the fetcher.

        Args:
            client: GitHub API client for making requests
            retry: Retry policy applied to each request, or None for no retries
        """
        self.client = client
        self.retry = retry

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        if self.retry is None:
            return await operation()
        return await with_retry(operation, self.retry)

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self._call(lambda: self.client.request(endpoint, params=params))

    async def _paginate(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        per_page: int = 100,
        max_items: int = MAX_PAGINATED_ITEMS,
    ) -> list[Any]:
        return await self._call(
            lambda: self.client.paginate(
                endpoint, params=params, per_page=per_page, max_items=max_items
            )
        )

    async def fetch_user(self, username: str) -> GitHubUser:
        """Fetch a user's public profile."""
        endpoint = f"/users/{username}"
        return validate_response(await self._get(endpoint), GitHubUser, endpoint)

    async def fetch_user_repositories(
        self, username: str, options: RepositoryOptions | None = None
    ) -> list[GitHubRepository]:
        """Fetch one page of a user's repositories."""
        options = options or RepositoryOptions()
        endpoint = f"/users/{username}/repos"
        data = await self._get(endpoint, params=options.to_params())
        return validate_response(data, list[GitHubRepository], endpoint)

    async def fetch_all_user_repositories(
        self, username: str, max_items: int = MAX_PAGINATED_ITEMS
    ) -> list[GitHubRepository]:
        """Fetch every repository of a user, up to ``max_items``."""
        endpoint = f"/users/{username}/repos"
        data = await self._paginate(endpoint, max_items=max_items)
        repositories = validate_response(data, list[GitHubRepository], endpoint)
        logger.info(f"Fetched {len(repositories)} repositories for {username}")
        return repositories

    async def fetch_repository_commits(
        self,
        owner: str,
        repo: str,
        options: CommitOptions | None = None,
        author: str | None = None,
        max_items: int | None = None,
    ) -> list[GitHubCommit]:
        """Fetch commits of one repository.

        Args:
            owner: Repository owner
            repo: Repository name
            options: Page size, start page and since/until filters
            author: Only commits authored by this login
            max_items: Collect across pages up to this many commits; one page if None

        Returns:
            Commits tagged with the repository they came from
        """
        options = options or CommitOptions()
        params = options.to_params()
        if author:
            params["author"] = author

        endpoint = f"/repos/{owner}/{repo}/commits"
        if max_items is None:
            data = await self._get(endpoint, params=params)
        else:
            data = await self._paginate(
                endpoint,
                params=params,
                per_page=params["per_page"],
                max_items=max_items,
            )

        commits = validate_response(data, list[GitHubCommit], endpoint)
        for commit in commits:
            commit.repository = GitHubRepositoryRef(name=repo)
        return commits

    async def fetch_user_commits(
        self,
        username: str,
        repositories: list[GitHubRepository],
        options: CommitOptions | None = None,
    ) -> list[GitHubCommit]:
        """Fetch a user's commits across their most recently updated repositories.

        Stops once ``options.per_page`` commits are collected and returns at
        most that many, newest first.
        """
        options = options or CommitOptions()
        limit = options.per_page

        recent_repos = sorted(
            repositories, key=lambda repo: repo.updated_at, reverse=True
        )[:MAX_COMMIT_REPOSITORIES]

        all_commits: list[GitHubCommit] = []
        for repo in recent_repos:
            owner, name = repo.owner_and_name(username)
            try:
                commits = await self.fetch_repository_commits(
                    owner,
                    name,
                    options,
                    author=username,
                    max_items=limit - len(all_commits),
                )
            except NetworkError as e:
                if e.retryable:
                    raise
                logger.warning(f"Skipping commits of {owner}/{name}: {e}")
                continue

            all_commits.extend(commits)
            if len(all_commits) >= limit:
                break

        all_commits.sort(key=lambda commit: parse_instant(commit.committed_at), reverse=True)
        logger.info(
            f"Fetched {min(len(all_commits), limit)} commits for {username} "
            f"from {len(recent_repos)} repositories"
        )
        return all_commits[:limit]

    async def fetch_repository_languages(self, owner: str, repo: str) -> dict[str, int]:
        """Fetch bytes of code per language for one repository."""
        endpoint = f"/repos/{owner}/{repo}/languages"
        data = await self._get(endpoint)
        if data is None:
            return {}
        return validate_response(data, dict[str, int], endpoint)

    async def fetch_user_language_stats(
        self, username: str, repositories: list[GitHubRepository]
    ) -> dict[str, int]:
        """Sum language bytes over all given repositories."""
        per_repo: list[dict[str, int]] = []
        for repo in repositories:
            owner, name = repo.owner_and_name(username)
            try:
                per_repo.append(await self.fetch_repository_languages(owner, name))
            except NetworkError as e:
                if e.retryable:
                    raise
                logger.warning(f"Skipping languages of {owner}/{name}: {e}")

        merged = merge_language_bytes(per_repo)
        logger.info(
            f"Aggregated {len(merged)} languages across {len(per_repo)} repositories"
        )
        return merged

    async def fetch_rate_limit(self) -> dict[str, Any]:
        """Query /rate_limit, which does not count against the quota."""
        data = await self._get("/rate_limit")
        return validate_response(data or {}, dict[str, Any], "/rate_limit")

    async def fetch_push_activity(self, username: str) -> Counter[date]:
        """Count pushed commits per UTC day from a user's recent public events."""
        endpoint = f"/users/{username}/events/public"
        data = await self._get(endpoint, params={"per_page": 100})
        events = validate_response(data, list[GitHubEvent], endpoint)

        activity: Counter[date] = Counter()
        for event in events:
            if event.type != "PushEvent" or not event.created_at:
                continue
            commits = event.payload.get("commits") or []
            activity[day_key(event.created_at)] += len(commits)
        return activity
