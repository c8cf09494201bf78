"""Map GitHub API records onto devtrackr output schemas."""

from devtrackr.models import (
    GitHubCommit,
    GitHubRepository,
    GitHubUser,
    Profile,
    RecentCommit,
    Repository,
)


def normalize_profile(user: GitHubUser) -> Profile:
    return Profile(
        username=user.login,
        name=user.name,
        avatar_url=user.avatar_url,
        bio=user.bio,
        followers=user.followers,
        following=user.following,
        public_repos=user.public_repos,
        profile_url=user.html_url,
    )


def normalize_repository(repo: GitHubRepository) -> Repository:
    return Repository(
        name=repo.name,
        description=repo.description,
        stars=repo.stargazers_count,
        forks=repo.forks_count,
        primary_language=repo.language,
        updated_at=repo.updated_at,
        repo_url=repo.html_url,
    )


def normalize_repositories(repos: list[GitHubRepository]) -> list[Repository]:
    return [normalize_repository(repo) for repo in repos]


def normalize_commit(commit: GitHubCommit) -> RecentCommit:
    """Normalize a commit, keeping only the first line of its message.

    The commit list endpoint omits line stats, so additions and deletions
    default to 0.
    """
    message = commit.commit.message.split("\n", 1)[0]
    return RecentCommit(
        repo=commit.repository.name if commit.repository else "",
        message=message,
        additions=commit.stats.additions if commit.stats else 0,
        deletions=commit.stats.deletions if commit.stats else 0,
        committed_at=commit.committed_at,
        commit_url=commit.html_url,
    )


def normalize_commits(commits: list[GitHubCommit]) -> list[RecentCommit]:
    return [normalize_commit(commit) for commit in commits]
