"""Commit activity processors: active days, streaks and the activity calendar.

Everything here is a pure function of its inputs. "Today" and the time zone
that decides where one day ends are explicit parameters so results never
depend on the machine running them; both default to UTC.
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta, tzinfo

from devtrackr.errors import ValidationError
from devtrackr.models import CalendarDay, ContributionStats, RecentCommit

logger = logging.getLogger(__name__)

Instant = RecentCommit | datetime | str


def parse_instant(value: datetime | str) -> datetime:
    """Parse an ISO 8601 string or datetime into an aware datetime.

    Naive values are taken to be UTC.
    """
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(f"Invalid datetime format: {value}") from e
    else:
        parsed = value

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def day_key(instant: Instant, tz: tzinfo = UTC) -> date:
    """Return the calendar day an instant falls on in ``tz``."""
    if isinstance(instant, RecentCommit):
        instant = instant.committed_at
    return parse_instant(instant).astimezone(tz).date()


def resolve_today(today: date | None = None, tz: tzinfo = UTC) -> date:
    """Return ``today`` or, when omitted, the current date in ``tz``."""
    if today is not None:
        return today
    return datetime.now(tz=tz).date()


def active_day_counts(commits: Iterable[Instant], tz: tzinfo = UTC) -> Counter[date]:
    """Count commits per calendar day."""
    return Counter(day_key(commit, tz) for commit in commits)


def active_day_set(commits: Iterable[Instant], tz: tzinfo = UTC) -> set[date]:
    """Return the set of days with at least one commit."""
    return set(active_day_counts(commits, tz))


def longest_streak(day_keys: Iterable[date]) -> int:
    """Length of the longest run of consecutive active days."""
    days = sorted(set(day_keys))
    if len(days) <= 1:
        return len(days)

    longest = 1
    run = 1
    for previous, current in zip(days, days[1:]):
        if (current - previous).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
    return longest


def current_streak(day_keys: Iterable[date], today: date) -> int:
    """Consecutive active days ending today; 0 if today has no activity."""
    active = set(day_keys)
    streak = 0
    while (today - timedelta(days=streak)) in active:
        streak += 1
    return streak


def average_commits_per_week(total_commits: int, first_day: date, last_day: date) -> float:
    """Average weekly commits over the active span, at least one week long."""
    span_days = (last_day - first_day).days
    weeks = max(1, math.ceil(span_days / 7))
    return round(total_commits / weeks, 2)


def calculate_contribution_stats(
    commits: Iterable[Instant],
    today: date | None = None,
    tz: tzinfo = UTC,
) -> ContributionStats:
    """Derive contribution statistics from a commit collection.

    Args:
        commits: Normalized commits or bare commit instants, in any order
        today: Anchor for the current streak (defaults to the current date in tz)
        tz: Time zone defining day boundaries

    Returns:
        ContributionStats, all zero for an empty collection
    """
    counts = active_day_counts(commits, tz)
    if not counts:
        return ContributionStats(
            total_commits=0,
            active_days=0,
            avg_commits_per_week=0,
            longest_streak=0,
            current_streak=0,
        )

    total_commits = sum(counts.values())
    days = sorted(counts)

    stats = ContributionStats(
        total_commits=total_commits,
        active_days=len(days),
        avg_commits_per_week=average_commits_per_week(total_commits, days[0], days[-1]),
        longest_streak=longest_streak(days),
        current_streak=current_streak(days, resolve_today(today, tz)),
    )
    logger.debug(f"Contribution stats over {len(days)} active days: {stats}")
    return stats


def create_activity_timeline(
    commits: Iterable[Instant],
    days: int = 365,
    today: date | None = None,
    tz: tzinfo = UTC,
) -> list[CalendarDay]:
    """Build a gap-free daily calendar covering ``[today - days, today]``.

    Args:
        commits: Normalized commits or bare commit instants
        days: Size of the look-back window; the result has days + 1 entries
        today: Last day of the window (defaults to the current date in tz)
        tz: Time zone defining day boundaries

    Returns:
        One CalendarDay per day in ascending order, zero-filled

    Raises:
        ValidationError: If days is negative
    """
    if days < 0:
        raise ValidationError("days cannot be negative")

    end = resolve_today(today, tz)
    start = end - timedelta(days=days)

    counts: Counter[date] = Counter()
    for commit in commits:
        key = day_key(commit, tz)
        if start <= key <= end:
            counts[key] += 1

    window = (start + timedelta(days=offset) for offset in range(days + 1))
    return [CalendarDay(date=day, commit_count=counts[day]) for day in window]
