"""Tests for endpoint fetchers."""

import logging
from datetime import date

import httpx
import pytest

from devtrackr.errors import ErrorCode, ErrorKind, NetworkError
from devtrackr.fetchers import GitHubFetcher
from devtrackr.github_client import GitHubClient
from devtrackr.models import CommitOptions, GitHubRepository, RepositoryOptions
from devtrackr.rate_limit import QuotaTracker
from devtrackr.retry import RetryOptions
from tests.fixtures.github_responses import (
    FakeGitHub,
    fixed_clock,
    make_commit,
    make_push_event,
    make_repo,
    make_user,
)


def make_fetcher(github: FakeGitHub, retry: RetryOptions | None = None) -> GitHubFetcher:
    client = GitHubClient(
        token="test_token",
        quota_tracker=QuotaTracker(clock=fixed_clock),
        transport=github.transport(),
        clock=fixed_clock,
    )
    return GitHubFetcher(client, retry=retry)


def repos(*names: str) -> list[GitHubRepository]:
    # Later names are more recently updated
    return [
        GitHubRepository.model_validate(
            make_repo(name, updated_at=f"2023-01-{index + 1:02d}T00:00:00Z")
        )
        for index, name in enumerate(names)
    ]


class TestUserAndRepositories:
    @pytest.mark.asyncio
    async def test_fetch_user(self):
        github = FakeGitHub({"/users/octocat": make_user()})

        user = await make_fetcher(github).fetch_user("octocat")

        assert user.login == "octocat"

    @pytest.mark.asyncio
    async def test_fetch_user_repositories_sends_options(self):
        github = FakeGitHub({"/users/octocat/repos": [make_repo("a"), make_repo("b")]})

        result = await make_fetcher(github).fetch_user_repositories(
            "octocat", RepositoryOptions(sort="updated", direction="desc", per_page=10)
        )

        assert [repo.name for repo in result] == ["a", "b"]
        params = github.requests[0].url.params
        assert params["sort"] == "updated"
        assert params["direction"] == "desc"
        assert params["per_page"] == "10"

    @pytest.mark.asyncio
    async def test_fetch_all_user_repositories_pages(self):
        github = FakeGitHub(
            {"/users/octocat/repos": [make_repo(f"repo-{i}") for i in range(150)]}
        )

        result = await make_fetcher(github).fetch_all_user_repositories("octocat")

        assert len(result) == 150
        assert len(github.requests) == 2

    @pytest.mark.asyncio
    async def test_fetch_all_user_repositories_capped(self):
        github = FakeGitHub(
            {"/users/octocat/repos": [make_repo(f"repo-{i}") for i in range(150)]}
        )

        result = await make_fetcher(github).fetch_all_user_repositories(
            "octocat", max_items=20
        )

        assert len(result) == 20


class TestCommits:
    @pytest.mark.asyncio
    async def test_repository_commits_tagged_and_filtered_by_author(self):
        github = FakeGitHub(
            {
                "/repos/octocat/hello/commits": [
                    make_commit("a1", "2023-01-02T10:00:00Z", repo="hello")
                ]
            }
        )

        commits = await make_fetcher(github).fetch_repository_commits(
            "octocat", "hello", author="octocat"
        )

        assert commits[0].repository.name == "hello"
        assert github.requests[0].url.params["author"] == "octocat"

    @pytest.mark.asyncio
    async def test_only_ten_most_recent_repositories_queried(self):
        names = [f"repo-{i:02d}" for i in range(12)]
        github = FakeGitHub()

        await make_fetcher(github).fetch_user_commits("octocat", repos(*names))

        queried = {path.split("/")[3] for path in github.paths}
        assert queried == set(names[2:])
        assert github.paths[0] == "/repos/octocat/repo-11/commits"

    @pytest.mark.asyncio
    async def test_stops_at_limit_and_sorts_newest_first(self):
        github = FakeGitHub(
            {
                "/repos/octocat/new/commits": [
                    make_commit("n1", "2023-01-03T10:00:00Z"),
                    make_commit("n2", "2023-01-01T10:00:00Z"),
                    make_commit("n3", "2022-12-30T10:00:00Z"),
                ],
                "/repos/octocat/mid/commits": [
                    make_commit("m1", "2023-01-02T10:00:00Z"),
                    make_commit("m2", "2022-12-31T10:00:00Z"),
                    make_commit("m3", "2022-12-29T10:00:00Z"),
                ],
                "/repos/octocat/old/commits": [
                    make_commit("o1", "2023-01-05T10:00:00Z"),
                ],
            }
        )

        commits = await make_fetcher(github).fetch_user_commits(
            "octocat", repos("old", "mid", "new"), CommitOptions(per_page=5)
        )

        assert [c.sha for c in commits] == ["n1", "m1", "n2", "m2", "n3"]
        assert "/repos/octocat/old/commits" not in github.paths

    @pytest.mark.asyncio
    async def test_skips_unavailable_repository(self, caplog):
        github = FakeGitHub(
            {
                "/repos/octocat/alive/commits": [make_commit("a1", "2023-01-02T10:00:00Z")],
                "/repos/octocat/empty/commits": httpx.Response(
                    409, json={"message": "Git Repository is empty."}
                ),
            }
        )

        with caplog.at_level(logging.WARNING, logger="devtrackr.fetchers"):
            commits = await make_fetcher(github).fetch_user_commits(
                "octocat", repos("alive", "empty")
            )

        assert [c.sha for c in commits] == ["a1"]
        assert "Skipping commits of octocat/empty" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_commit_date_is_api_error(self):
        github = FakeGitHub(
            {"/repos/octocat/hello/commits": [make_commit("bad", "not-a-date")]}
        )

        with pytest.raises(NetworkError) as exc_info:
            await make_fetcher(github).fetch_repository_commits("octocat", "hello")

        assert exc_info.value.code == ErrorCode.API_ERROR
        assert exc_info.value.kind == ErrorKind.NETWORK
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_repository_with_malformed_commits_skipped(self):
        github = FakeGitHub(
            {
                "/repos/octocat/good/commits": [make_commit("g1", "2023-01-02T10:00:00Z")],
                "/repos/octocat/bad/commits": [make_commit("b1", "not-a-date")],
            }
        )

        commits = await make_fetcher(github).fetch_user_commits(
            "octocat", repos("good", "bad")
        )

        assert [c.sha for c in commits] == ["g1"]

    @pytest.mark.asyncio
    async def test_transient_failure_propagates(self):
        github = FakeGitHub(
            {"/repos/octocat/flaky/commits": httpx.Response(503, json={"message": "down"})}
        )

        with pytest.raises(NetworkError) as exc_info:
            await make_fetcher(github).fetch_user_commits("octocat", repos("flaky"))

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_retry_policy_applied_per_request(self):
        attempts = []

        def flaky(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                return httpx.Response(502, json={"message": "Bad Gateway"})
            return httpx.Response(200, json=[make_commit("a1", "2023-01-02T10:00:00Z")])

        github = FakeGitHub({"/repos/octocat/hello/commits": flaky})
        fetcher = make_fetcher(github, retry=RetryOptions(base_delay=0, jitter=0))

        commits = await fetcher.fetch_repository_commits("octocat", "hello")

        assert len(commits) == 1
        assert len(attempts) == 2


class TestLanguagesAndEvents:
    @pytest.mark.asyncio
    async def test_language_bytes_merged(self):
        github = FakeGitHub(
            {
                "/repos/octocat/a/languages": {"Python": 100, "Shell": 10},
                "/repos/octocat/b/languages": {"Python": 50, "Go": 30},
                "/repos/octocat/c/languages": httpx.Response(204),
            }
        )

        merged = await make_fetcher(github).fetch_user_language_stats(
            "octocat", repos("a", "b", "c")
        )

        assert merged == {"Python": 150, "Shell": 10, "Go": 30}

    @pytest.mark.asyncio
    async def test_missing_repository_languages_skipped(self):
        github = FakeGitHub({"/repos/octocat/a/languages": {"Rust": 7}})

        merged = await make_fetcher(github).fetch_user_language_stats(
            "octocat", repos("a", "gone")
        )

        assert merged == {"Rust": 7}

    @pytest.mark.asyncio
    async def test_push_activity_counts_commits_per_day(self):
        github = FakeGitHub(
            {
                "/users/octocat/events/public": [
                    make_push_event("2023-01-05T10:00:00Z", 3),
                    make_push_event("2023-01-05T22:00:00Z", 1),
                    {"id": "w", "type": "WatchEvent", "created_at": "2023-01-05T11:00:00Z"},
                    make_push_event("2023-01-03T08:00:00Z", 2),
                ]
            }
        )

        activity = await make_fetcher(github).fetch_push_activity("octocat")

        assert activity == {date(2023, 1, 5): 4, date(2023, 1, 3): 2}

    @pytest.mark.asyncio
    async def test_rate_limit_endpoint(self):
        github = FakeGitHub({"/rate_limit": {"resources": {"core": {"limit": 5000}}}})

        data = await make_fetcher(github).fetch_rate_limit()

        assert data["resources"]["core"]["limit"] == 5000
