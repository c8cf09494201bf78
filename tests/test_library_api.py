"""Tests for the public library API."""

from datetime import date
from decimal import Decimal

import httpx
import pytest

import devtrackr
from devtrackr import (
    AuthError,
    DevTrackr,
    DevTrackrConfig,
    NetworkError,
    QuotaTracker,
    RetryOptions,
    ValidationError,
    create_devtrackr,
)
from devtrackr.library import validate_username
from tests.fixtures.github_responses import (
    FakeGitHub,
    fixed_clock,
    make_commit,
    make_push_event,
    make_repo,
    make_user,
    rate_limit_headers,
)


def make_tracker(github: FakeGitHub, **settings) -> DevTrackr:
    settings.setdefault("quota_tracker", QuotaTracker(clock=fixed_clock))
    return create_devtrackr(
        "test_token", transport=github.transport(), clock=fixed_clock, **settings
    )


ACTIVITY_ROUTES = {
    "/users/octocat/repos": [
        make_repo("hello", updated_at="2023-01-06T00:00:00Z", language="Python"),
        make_repo("world", updated_at="2023-01-02T00:00:00Z", language="Go"),
    ],
    "/repos/octocat/hello/commits": [
        make_commit("h1", "2023-01-06T08:15:00Z", repo="hello"),
        make_commit("h2", "2023-01-02T12:00:00Z", repo="hello"),
    ],
    "/repos/octocat/world/commits": [
        make_commit("w1", "2023-01-01T18:30:00Z", repo="world"),
        make_commit("w2", "2023-01-01T09:00:00Z", repo="world"),
    ],
    "/repos/octocat/hello/languages": {"Python": 1_000_000, "Shell": 250_000},
    "/repos/octocat/world/languages": {"Go": 500_000, "Shell": 100_000},
}


class TestConfiguration:
    def test_create_devtrackr(self):
        tracker = create_devtrackr("ghp_token")

        assert isinstance(tracker, DevTrackr)
        assert tracker.config.token == "ghp_token"
        assert tracker.config.retry is None
        assert tracker.client.headers["Authorization"] == "token ghp_token"

    def test_token_is_stripped(self):
        assert DevTrackrConfig(token="  ghp_token\n").token == "ghp_token"

    @pytest.mark.parametrize("token", ["", "   "])
    def test_empty_token_rejected(self, token):
        with pytest.raises(ValidationError) as exc_info:
            create_devtrackr(token)

        assert "token" in exc_info.value.message

    def test_invalid_setting_rejected(self):
        with pytest.raises(ValidationError):
            create_devtrackr("ghp_token", max_items=0)

    def test_retry_policy_passed_to_fetcher(self):
        policy = RetryOptions(max_retries=5)
        tracker = create_devtrackr("ghp_token", retry=policy)

        assert tracker.fetcher.retry == policy


class TestUsernameValidation:
    @pytest.mark.parametrize("username", [None, "", "   ", 42, "a" * 40])
    def test_rejected(self, username):
        with pytest.raises(ValidationError):
            validate_username(username)

    def test_maximum_length_accepted(self):
        assert validate_username("a" * 39) == "a" * 39

    @pytest.mark.asyncio
    async def test_validated_before_any_request(self):
        github = FakeGitHub()

        async with make_tracker(github) as tracker:
            with pytest.raises(ValidationError):
                await tracker.get_profile("")
            with pytest.raises(ValidationError):
                await tracker.get_contribution_stats(" ")

        assert github.requests == []


class TestOperations:
    @pytest.mark.asyncio
    async def test_get_profile(self):
        github = FakeGitHub({"/users/octocat": make_user()})

        async with make_tracker(github) as tracker:
            profile = await tracker.get_profile("octocat")

        assert profile.username == "octocat"
        assert profile.followers == 42

    @pytest.mark.asyncio
    async def test_get_repositories_with_options(self):
        github = FakeGitHub({"/users/octocat/repos": [make_repo("hello")]})

        async with make_tracker(github) as tracker:
            result = await tracker.get_repositories(
                "octocat", {"sort": "pushed", "per_page": 5}
            )

        assert result[0].name == "hello"
        assert github.requests[0].url.params["sort"] == "pushed"

    @pytest.mark.asyncio
    async def test_invalid_options_are_validation_errors(self):
        github = FakeGitHub()

        async with make_tracker(github) as tracker:
            with pytest.raises(ValidationError) as exc_info:
                await tracker.get_repositories("octocat", {"per_page": 500})
            with pytest.raises(ValidationError):
                await tracker.get_activity_timeline("octocat", {"days": -3})

        assert "per_page" in exc_info.value.message
        assert github.requests == []

    @pytest.mark.asyncio
    async def test_get_recent_commits(self):
        github = FakeGitHub(ACTIVITY_ROUTES)

        async with make_tracker(github) as tracker:
            commits = await tracker.get_recent_commits("octocat", {"per_page": 3})

        assert [c.committed_at for c in commits] == [
            "2023-01-06T08:15:00Z",
            "2023-01-02T12:00:00Z",
            "2023-01-01T18:30:00Z",
        ]
        assert commits[0].repo == "hello"
        repo_params = github.requests[0].url.params
        assert repo_params["sort"] == "updated"
        assert repo_params["direction"] == "desc"

    @pytest.mark.asyncio
    async def test_get_language_stats(self):
        github = FakeGitHub(ACTIVITY_ROUTES)

        async with make_tracker(github) as tracker:
            stats = await tracker.get_language_stats("octocat")

        assert stats.total_bytes == 1_850_000
        assert [lang.name for lang in stats.languages] == ["Python", "Go", "Shell"]
        assert [lang.percentage for lang in stats.languages] == [
            Decimal("54.05"),
            Decimal("27.03"),
            Decimal("18.92"),
        ]

    @pytest.mark.asyncio
    async def test_get_contribution_stats(self):
        github = FakeGitHub(ACTIVITY_ROUTES)

        async with make_tracker(github) as tracker:
            stats = await tracker.get_contribution_stats("octocat")

        assert stats.total_commits == 4
        assert stats.active_days == 3
        assert stats.longest_streak == 2
        assert stats.current_streak == 1

    @pytest.mark.asyncio
    async def test_get_activity_timeline(self):
        github = FakeGitHub(ACTIVITY_ROUTES)

        async with make_tracker(github) as tracker:
            timeline = await tracker.get_activity_timeline("octocat", {"days": 5})

        assert len(timeline) == 6
        assert timeline[0].date == date(2023, 1, 1)
        assert timeline[-1].date == date(2023, 1, 6)
        assert [day.commit_count for day in timeline] == [2, 1, 0, 0, 0, 1]

    @pytest.mark.asyncio
    async def test_get_push_activity(self):
        github = FakeGitHub(
            {
                "/users/octocat/events/public": [
                    make_push_event("2023-01-05T10:00:00Z", 2),
                    make_push_event("2023-01-02T10:00:00Z", 1),
                ]
            }
        )

        async with make_tracker(github) as tracker:
            activity = await tracker.get_push_activity("octocat")

        assert list(activity.items()) == [(date(2023, 1, 2), 1), (date(2023, 1, 5), 2)]


class TestErrorsAndQuota:
    @pytest.mark.asyncio
    async def test_bad_token_is_auth_error(self):
        github = FakeGitHub(
            {"/users/octocat": httpx.Response(401, json={"message": "Bad credentials"})}
        )

        async with make_tracker(github) as tracker:
            with pytest.raises(AuthError):
                await tracker.get_profile("octocat")

    @pytest.mark.asyncio
    async def test_quota_before_and_after_request(self):
        github = FakeGitHub({"/users/octocat": make_user()})

        async with make_tracker(github) as tracker:
            assert tracker.get_quota() is None
            await tracker.get_profile("octocat")
            quota = tracker.get_rate_limit_info()

        assert quota.limit == 5000
        assert quota.remaining == 4999
        assert quota.reset_in == 3600.0
        assert tracker.is_quota_low() is False

    @pytest.mark.asyncio
    async def test_low_quota(self):
        github = FakeGitHub()
        github.headers = rate_limit_headers(remaining=3)
        github.routes["/users/octocat"] = make_user()

        async with make_tracker(github) as tracker:
            await tracker.get_profile("octocat")

        assert tracker.is_quota_low() is True

    @pytest.mark.asyncio
    async def test_refresh_quota(self):
        github = FakeGitHub({"/rate_limit": {"resources": {}}})

        async with make_tracker(github) as tracker:
            quota = await tracker.refresh_quota()

        assert quota.remaining == 4999
        assert github.paths == ["/rate_limit"]

    @pytest.mark.asyncio
    async def test_retry_recovers_from_server_error(self):
        calls = []

        def flaky(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(500, json={"message": "oops"})
            return httpx.Response(200, json=make_user())

        github = FakeGitHub({"/users/octocat": flaky})

        async with make_tracker(
            github, retry=RetryOptions(base_delay=0, jitter=0)
        ) as tracker:
            profile = await tracker.get_profile("octocat")

        assert profile.username == "octocat"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_without_retry_server_error_surfaces(self):
        github = FakeGitHub(
            {"/users/octocat": httpx.Response(500, json={"message": "oops"})}
        )

        async with make_tracker(github) as tracker:
            with pytest.raises(NetworkError) as exc_info:
                await tracker.get_profile("octocat")

        assert exc_info.value.retryable is True


class TestPublicApi:
    def test_exports(self):
        for name in devtrackr.__all__:
            assert hasattr(devtrackr, name)

    def test_version(self):
        assert devtrackr.__version__ == "0.1.0"
