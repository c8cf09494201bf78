"""Command-line interface for devtrackr."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from pydantic import BaseModel
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from devtrackr import __version__
from devtrackr.config import Config
from devtrackr.errors import AuthError, NetworkError, RateLimitError, ValidationError
from devtrackr.library import DevTrackr, create_devtrackr
from devtrackr.models import QuotaSnapshot
from devtrackr.rate_limit import quota_is_low
from devtrackr.retry import RetryOptions

T = TypeVar("T")

app = typer.Typer(
    name="devtrackr",
    help="Fetch GitHub developer activity and derive streaks, calendars and language shares",
    no_args_is_help=True,
)

console = Console()

TOKEN_OPTION = typer.Option(
    None,
    "--token",
    "-t",
    help="GitHub Personal Access Token (or set GITHUB_TOKEN env var)",
    envvar="GITHUB_TOKEN",
)
JSON_OPTION = typer.Option(False, "--json", help="Print raw JSON instead of tables")
RETRY_OPTION = typer.Option(
    False, "--retry/--no-retry", help="Retry transient failures with backoff"
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Show debug logging")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _resolve_token(token: str | None) -> str:
    resolved = Config().resolve_token(token)
    if not resolved:
        console.print("[red]Error: GitHub token is required[/red]")
        console.print(
            "[yellow]Pass --token, set GITHUB_TOKEN, or run 'devtrackr auth'[/yellow]"
        )
        raise typer.Exit(1)
    return resolved


def _run(
    token: str | None,
    retry: bool,
    verbose: bool,
    action: Callable[[DevTrackr], Awaitable[T]],
) -> T:
    """Run one library operation and turn taxonomy errors into exit codes."""
    _configure_logging(verbose)
    resolved = _resolve_token(token)

    async def runner() -> T:
        async with create_devtrackr(
            resolved, retry=RetryOptions() if retry else None
        ) as tracker:
            return await action(tracker)

    try:
        return asyncio.run(runner())
    except ValidationError as e:
        console.print(f"[red]Invalid input: {e.message}[/red]")
    except RateLimitError as e:
        console.print(f"[red]{e.message}[/red]")
        console.print(
            f"[yellow]Quota {e.remaining}/{e.limit}, retry in "
            f"{e.retry_after or 0:.0f} seconds[/yellow]"
        )
    except AuthError as e:
        console.print(f"[red]Authentication failed: {e.message}[/red]")
    except NetworkError as e:
        hint = " (transient, try again or use --retry)" if e.retryable else ""
        console.print(f"[red]Request failed: {e.message}{hint}[/red]")
    raise typer.Exit(1)


def _print_json(data: Any) -> None:
    if isinstance(data, BaseModel):
        payload = data.model_dump(mode="json")
    elif isinstance(data, list):
        payload = [
            item.model_dump(mode="json") if isinstance(item, BaseModel) else item
            for item in data
        ]
    else:
        payload = data
    console.print_json(json.dumps(payload, default=str))


def _print_quota(quota: QuotaSnapshot | None) -> None:
    if quota is None:
        console.print("[yellow]No rate limit information available yet[/yellow]")
        return

    style = "red" if quota_is_low(quota.limit, quota.remaining) else "green"
    console.print(
        Panel.fit(
            f"[white]Limit:[/white] [cyan]{quota.limit}[/cyan]\n"
            f"[white]Remaining:[/white] [{style}]{quota.remaining}[/{style}]\n"
            f"[white]Used:[/white] [cyan]{quota.used}[/cyan]\n"
            f"[white]Resets at:[/white] [blue]{quota.reset_at.isoformat()}[/blue] "
            f"[dim](in {quota.reset_in:.0f}s)[/dim]",
            title="GitHub API Quota",
        )
    )


@app.command()
def version() -> None:
    """Show the version and exit."""
    console.print(f"devtrackr {__version__}")


@app.command()
def profile(
    user: str = typer.Argument(..., help="GitHub username"),
    token: str | None = TOKEN_OPTION,
    as_json: bool = JSON_OPTION,
    retry: bool = RETRY_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show a user's GitHub profile."""
    result = _run(token, retry, verbose, lambda t: t.get_profile(user))
    if as_json:
        _print_json(result)
        return

    table = Table(title=f"Profile: {result.username}", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_row("Name", result.name or "-")
    table.add_row("Bio", result.bio or "-")
    table.add_row("Followers", str(result.followers))
    table.add_row("Following", str(result.following))
    table.add_row("Public repos", str(result.public_repos))
    table.add_row("Profile", result.profile_url)
    console.print(table)


@app.command()
def repos(
    user: str = typer.Argument(..., help="GitHub username"),
    sort: str | None = typer.Option(None, help="created, updated, pushed or full_name"),
    direction: str | None = typer.Option(None, help="asc or desc"),
    per_page: int = typer.Option(30, "--per-page", help="Page size (max 100)"),
    page: int | None = typer.Option(None, help="Page number"),
    token: str | None = TOKEN_OPTION,
    as_json: bool = JSON_OPTION,
    retry: bool = RETRY_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List a user's repositories."""
    options = {"sort": sort, "direction": direction, "per_page": per_page, "page": page}
    result = _run(token, retry, verbose, lambda t: t.get_repositories(user, options))
    if as_json:
        _print_json(result)
        return

    table = Table(title=f"Repositories of {user}", header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Language")
    table.add_column("Stars", justify="right", style="green")
    table.add_column("Forks", justify="right")
    table.add_column("Updated", style="dim")
    for repo in result:
        table.add_row(
            repo.name,
            repo.primary_language or "-",
            str(repo.stars),
            str(repo.forks),
            repo.updated_at,
        )
    console.print(table)


@app.command()
def commits(
    user: str = typer.Argument(..., help="GitHub username"),
    limit: int = typer.Option(30, "--limit", "-n", help="Number of commits"),
    since: str | None = typer.Option(
        None, help="Only commits after this ISO 8601 timestamp"
    ),
    token: str | None = TOKEN_OPTION,
    as_json: bool = JSON_OPTION,
    retry: bool = RETRY_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show a user's recent commits."""
    options = {"per_page": limit, "since": since}
    result = _run(token, retry, verbose, lambda t: t.get_recent_commits(user, options))
    if as_json:
        _print_json(result)
        return

    table = Table(title=f"Recent commits by {user}", header_style="bold magenta")
    table.add_column("Date", style="dim", no_wrap=True)
    table.add_column("Repository", style="cyan")
    table.add_column("Message")
    for commit in result:
        table.add_row(commit.committed_at, commit.repo, commit.message)
    console.print(table)


@app.command()
def languages(
    user: str = typer.Argument(..., help="GitHub username"),
    token: str | None = TOKEN_OPTION,
    as_json: bool = JSON_OPTION,
    retry: bool = RETRY_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show the language breakdown across a user's repositories."""
    result = _run(token, retry, verbose, lambda t: t.get_language_stats(user))
    if as_json:
        _print_json(result)
        return

    if not result.languages:
        console.print(f"[yellow]No language data for {user}[/yellow]")
        return

    table = Table(title=f"Languages of {user}", header_style="bold magenta")
    table.add_column("Language", no_wrap=True)
    table.add_column("Share", justify="right", style="green")
    table.add_column("", no_wrap=True)
    for language in result.languages:
        bar = "█" * max(1, round(language.percentage / 4))
        table.add_row(
            f"[{language.color}]●[/] {language.name}",
            f"{language.percentage:.2f}%",
            f"[{language.color}]{bar}[/]",
        )
    console.print(table)
    console.print(f"[dim]{result.total_bytes} bytes total[/dim]")


@app.command()
def stats(
    user: str = typer.Argument(..., help="GitHub username"),
    token: str | None = TOKEN_OPTION,
    as_json: bool = JSON_OPTION,
    retry: bool = RETRY_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show commit totals and streaks."""
    result = _run(token, retry, verbose, lambda t: t.get_contribution_stats(user))
    if as_json:
        _print_json(result)
        return

    table = Table(title=f"Contribution statistics for {user}", show_header=False)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", justify="right")
    table.add_row("Total commits", str(result.total_commits))
    table.add_row("Active days", str(result.active_days))
    table.add_row("Commits per week", f"{result.avg_commits_per_week:.2f}")
    table.add_row("Longest streak", f"{result.longest_streak} days")
    table.add_row("Current streak", f"{result.current_streak} days")
    console.print(table)


@app.command()
def timeline(
    user: str = typer.Argument(..., help="GitHub username"),
    days: int = typer.Option(30, "--days", "-d", help="Days to look back"),
    token: str | None = TOKEN_OPTION,
    as_json: bool = JSON_OPTION,
    retry: bool = RETRY_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show daily commit counts ending today (UTC)."""
    result = _run(
        token, retry, verbose, lambda t: t.get_activity_timeline(user, {"days": days})
    )
    if as_json:
        _print_json(result)
        return

    peak = max((day.commit_count for day in result), default=0)
    table = Table(title=f"Activity of {user}", header_style="bold magenta")
    table.add_column("Date", style="dim", no_wrap=True)
    table.add_column("Commits", justify="right", style="green")
    table.add_column("")
    for day in result:
        width = round(day.commit_count / peak * 30) if peak else 0
        table.add_row(day.date.isoformat(), str(day.commit_count), "▇" * width)
    console.print(table)


@app.command()
def quota(
    token: str | None = TOKEN_OPTION,
    as_json: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show the current GitHub API quota."""
    result = _run(token, False, verbose, lambda t: t.refresh_quota())
    if as_json:
        _print_json(result)
        return
    _print_quota(result)


@app.command()
def auth() -> None:
    """Store a GitHub token for later commands."""
    config = Config()

    console.print("[bold cyan]GitHub Authentication Setup[/bold cyan]")
    console.print(
        "Create a token at: [link]https://github.com/settings/tokens[/link]\n"
        "[dim]Read-only public access is enough for public activity[/dim]"
    )

    if config.get_token() and not Confirm.ask(
        "A token is already stored. Replace it?"
    ):
        return

    token = Prompt.ask("[cyan]Enter your GitHub Personal Access Token", password=True)
    if not token:
        console.print("[red]No token provided[/red]")
        raise typer.Exit(1)

    config.set_token(token)
    console.print(f"[green]✓[/green] Token stored in {config.config_file}")


@app.command("auth-status")
def auth_status() -> None:
    """Show where the token comes from."""
    info = Config().get_config_info()

    table = Table(title="Authentication Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Config File", info["config_file"])
    table.add_row("Stored Token", "✓ Yes" if info["has_token"] else "✗ No")
    table.add_row("GITHUB_TOKEN", "✓ Set" if info["env_token"] else "✗ Not set")
    if info["config_exists"]:
        table.add_row("File Permissions", info["config_file_permissions"] or "unknown")
    console.print(table)

    if not info["has_token"] and not info["env_token"]:
        console.print(
            "[yellow]No GitHub token found. Run [bold]devtrackr auth[/bold] to set one up.[/yellow]"
        )


@app.command("auth-remove")
def auth_remove(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove the stored token."""
    config = Config()

    if not config.get_token():
        console.print("[yellow]No token is currently stored[/yellow]")
        return

    if yes or Confirm.ask("[red]Remove the stored token?[/red]"):
        config.remove_token()
        console.print("[green]✓[/green] Token removed")
    else:
        console.print("Token removal cancelled")
