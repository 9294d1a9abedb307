"""Result types for commit and repository analytics.

Everything here is derived from a collection at call time and never
stored back onto the entities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from gitvision.engines.github.models import Commit, Repository

CommitType = Literal["feat", "fix", "docs", "style", "refactor", "test", "chore", "other"]
SortKey = Literal["date", "author", "additions", "deletions", "changes"]


@dataclass(frozen=True)
class CommitView:
    """A commit plus attributes computed from it for display and grouping."""

    commit: Commit
    commit_type: CommitType
    message_length: int
    day_of_week: str
    hour: int
    lines_changed: int
    files_changed: int


@dataclass(frozen=True)
class CommitFilter:
    search: str = ""
    window: str = "all"
    author: str = "all"
    sort_by: SortKey = "date"


@dataclass(frozen=True)
class AuthorStats:
    commits: int = 0
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class HourBucket:
    hour: int
    commits: int


@dataclass(frozen=True)
class DailyActivity:
    date: str  # YYYY-MM-DD, local time
    commits: int
    additions: int
    deletions: int


@dataclass(frozen=True)
class AggregateSnapshot:
    total_commits: int = 0
    total_authors: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    avg_commits_per_day: float = 0.0
    most_active_author: str | None = None
    most_active_day: str | None = None
    author_stats: dict[str, AuthorStats] = field(default_factory=dict)
    commit_frequency: dict[str, int] = field(default_factory=dict)
    commit_types: dict[str, int] = field(default_factory=dict)
    time_distribution: list[HourBucket] = field(
        default_factory=lambda: [HourBucket(hour=h, commits=0) for h in range(24)]
    )
    daily_activity: list[DailyActivity] = field(default_factory=list)


@dataclass(frozen=True)
class RepositoryTotals:
    total_repos: int = 0
    total_stars: int = 0
    total_forks: int = 0
    total_watchers: int = 0
    total_open_issues: int = 0
    total_size_mb: float = 0.0
    private_repos: int = 0
    public_repos: int = 0
    active_repos: int = 0  # pushed or updated within 30 days
    recent_activity: int = 0  # within 7 days
    avg_stars: float = 0.0
    most_popular: Repository | None = None


@dataclass(frozen=True)
class LanguageStats:
    language: str
    count: int
    percentage: float
    total_stars: int
    avg_stars: float
