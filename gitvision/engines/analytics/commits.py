"""Commit classification, filtering, sorting and aggregation.

Pure functions over a commit collection. ``now`` and ``tz`` are parameters
so results are reproducible; by default "now" is the current UTC time and
local-time grouping uses the machine's zone.
"""

from __future__ import annotations

import calendar
import re
import unicodedata
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, timedelta, timezone, tzinfo

from gitvision.engines.analytics.models import (
    AggregateSnapshot,
    AuthorStats,
    CommitFilter,
    CommitType,
    CommitView,
    DailyActivity,
    HourBucket,
    SortKey,
)
from gitvision.engines.github.models import Commit

# Priority order matters: the first matching prefix wins.
COMMIT_TYPES: tuple[CommitType, ...] = ("feat", "fix", "docs", "style", "refactor", "test", "chore")

WINDOW_HOURS: dict[str, int] = {
    "hour": 1,
    "day": 24,
    "week": 168,
    "month": 720,
    "year": 8760,
}

_UNIT_SECONDS: dict[str, int] = {
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
    "weeks": 7 * 86400,
    "months": 30 * 86400,
    "years": 365 * 86400,
}
_FINE_WINDOW_RE = re.compile(r"^(seconds|minutes|hours|days|weeks|months|years)-(\d+)$")

SORT_KEYS: tuple[SortKey, ...] = ("date", "author", "additions", "deletions", "changes")

DAILY_ACTIVITY_DAYS = 30


# ── classification / derived fields ────────────────────────────────────────


def classify_commit(message: str) -> CommitType:
    """Conventional-commit style tag from the message's first line.

    Plain prefix match, so ``fixes typo`` counts as ``fix``.
    """
    first_line = message.strip().split("\n", 1)[0].strip().lower()
    for tag in COMMIT_TYPES:
        if first_line.startswith(tag):
            return tag
    return "other"


def to_local(moment: datetime, tz: tzinfo | None = None) -> datetime:
    """Convert to *tz* (system local when ``None``); naive values are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz)


def additions_of(commit: Commit) -> int:
    return commit.stats.additions if commit.stats is not None else 0


def deletions_of(commit: Commit) -> int:
    return commit.stats.deletions if commit.stats is not None else 0


def extend_commit(commit: Commit, tz: tzinfo | None = None) -> CommitView:
    local = to_local(commit.authored_at, tz)
    return CommitView(
        commit=commit,
        commit_type=classify_commit(commit.message),
        message_length=len(commit.message),
        day_of_week=calendar.day_name[local.weekday()],
        hour=local.hour,
        lines_changed=additions_of(commit) + deletions_of(commit),
        files_changed=len(commit.files or []),
    )


def unique_authors(commits: Iterable[Commit]) -> list[str]:
    return sorted({c.author_name for c in commits if c.author_name}, key=collation_key)


# ── filters ────────────────────────────────────────────────────────────────


def window_duration(window: str) -> timedelta | None:
    """Duration for a window tag; ``None`` means no time bound.

    Accepts ``hour|day|week|month|year|all`` and fine-grained tags such as
    ``minutes-5`` or ``months-6`` (a month is 30 days, a year 365).
    """
    if window == "all":
        return None
    if window in WINDOW_HOURS:
        return timedelta(hours=WINDOW_HOURS[window])
    match = _FINE_WINDOW_RE.match(window)
    if match is None:
        raise ValueError(f"unknown time window: {window!r}")
    unit, amount = match.groups()
    return timedelta(seconds=_UNIT_SECONDS[unit] * int(amount))


def filter_by_window(
    commits: Sequence[Commit], window: str, now: datetime | None = None
) -> list[Commit]:
    duration = window_duration(window)
    if duration is None:
        return list(commits)
    end = to_local(now or datetime.now(timezone.utc), timezone.utc)
    start = end - duration
    return [c for c in commits if start <= to_local(c.authored_at, timezone.utc) <= end]


def filter_by_search(commits: Sequence[Commit], term: str) -> list[Commit]:
    needle = term.strip().lower()
    if not needle:
        return list(commits)

    def _matches(commit: Commit) -> bool:
        haystacks = (commit.message, commit.author_name, commit.author_login or "", commit.sha)
        return any(needle in h.lower() for h in haystacks)

    return [c for c in commits if _matches(c)]


def filter_by_author(commits: Sequence[Commit], author: str) -> list[Commit]:
    if not author or author == "all":
        return list(commits)
    return [c for c in commits if c.author_name == author]


def collation_key(name: str) -> tuple[str, str, str]:
    """Order names alphabetically regardless of case and accents.

    Accents and case only break ties, so "Álvaro" sorts before "bob" and
    "bob" before "Carol" whatever the process locale is.
    """
    folded = unicodedata.normalize("NFKD", name).casefold()
    base = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return base, folded, name


def _sort_key(key: SortKey) -> Callable[[Commit], object]:
    if key == "date":
        return lambda c: -to_local(c.authored_at, timezone.utc).timestamp()
    if key == "author":
        return lambda c: collation_key(c.author_name)
    if key == "additions":
        return lambda c: -additions_of(c)
    if key == "deletions":
        return lambda c: -deletions_of(c)
    if key == "changes":
        return lambda c: -(additions_of(c) + deletions_of(c))
    raise ValueError(f"unknown sort key: {key!r}")


def sort_commits(commits: Sequence[Commit], key: SortKey = "date") -> list[Commit]:
    """Stable sort: commits that compare equal keep their relative order."""
    return sorted(commits, key=_sort_key(key))


def apply_filters(
    commits: Sequence[Commit],
    spec: CommitFilter,
    now: datetime | None = None,
) -> list[Commit]:
    """Search, author, window, then sort."""
    result = filter_by_search(commits, spec.search)
    result = filter_by_author(result, spec.author)
    result = filter_by_window(result, spec.window, now)
    return sort_commits(result, spec.sort_by)


# ── aggregation ────────────────────────────────────────────────────────────


def aggregate_commits(commits: Sequence[Commit], tz: tzinfo | None = None) -> AggregateSnapshot:
    """Roll *commits* up into an :class:`AggregateSnapshot`.

    An empty collection yields the zero snapshot (24 empty hour buckets,
    empty maps, ``None`` for the most-active fields).
    """
    if not commits:
        return AggregateSnapshot()

    authors: dict[str, list[int]] = {}
    daily: dict[date, list[int]] = {}
    hours = [0] * 24
    weekdays: dict[str, int] = {}
    types: dict[str, int] = {}
    total_additions = 0
    total_deletions = 0

    for commit in commits:
        view = extend_commit(commit, tz)
        additions = additions_of(commit)
        deletions = deletions_of(commit)

        tally = authors.setdefault(commit.author_name, [0, 0, 0])
        tally[0] += 1
        tally[1] += additions
        tally[2] += deletions

        day = to_local(commit.authored_at, tz).date()
        bucket = daily.setdefault(day, [0, 0, 0])
        bucket[0] += 1
        bucket[1] += additions
        bucket[2] += deletions

        hours[view.hour] += 1
        weekdays[view.day_of_week] = weekdays.get(view.day_of_week, 0) + 1
        types[view.commit_type] = types.get(view.commit_type, 0) + 1
        total_additions += additions
        total_deletions += deletions

    days = sorted(daily)
    span_days = (days[-1] - days[0]).days + 1
    daily_activity = [
        DailyActivity(
            date=d.isoformat(),
            commits=daily[d][0],
            additions=daily[d][1],
            deletions=daily[d][2],
        )
        for d in days[-DAILY_ACTIVITY_DAYS:]
    ]

    # max() returns the first maximal entry, so ties go to the earliest seen
    most_active_author = max(authors, key=lambda name: authors[name][0])
    most_active_day = max(weekdays, key=lambda name: weekdays[name])

    return AggregateSnapshot(
        total_commits=len(commits),
        total_authors=len(authors),
        total_additions=total_additions,
        total_deletions=total_deletions,
        avg_commits_per_day=len(commits) / max(1, span_days),
        most_active_author=most_active_author,
        most_active_day=most_active_day,
        author_stats={
            name: AuthorStats(commits=c, additions=a, deletions=d)
            for name, (c, a, d) in authors.items()
        },
        commit_frequency=weekdays,
        commit_types=types,
        time_distribution=[HourBucket(hour=h, commits=n) for h, n in enumerate(hours)],
        daily_activity=daily_activity,
    )


def summarize(
    commits: Sequence[Commit],
    spec: CommitFilter | None = None,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> AggregateSnapshot:
    """Filter then aggregate: the snapshot for one filter selection."""
    return aggregate_commits(apply_filters(commits, spec or CommitFilter(), now), tz)
