"""Analytics engine: pure, recomputed-on-demand statistics over held collections."""

from gitvision.engines.analytics.commits import (
    COMMIT_TYPES,
    SORT_KEYS,
    WINDOW_HOURS,
    aggregate_commits,
    apply_filters,
    classify_commit,
    extend_commit,
    filter_by_author,
    filter_by_search,
    filter_by_window,
    sort_commits,
    summarize,
    unique_authors,
    window_duration,
)
from gitvision.engines.analytics.models import (
    AggregateSnapshot,
    AuthorStats,
    CommitFilter,
    CommitView,
    DailyActivity,
    HourBucket,
    LanguageStats,
    RepositoryTotals,
)
from gitvision.engines.analytics.repositories import (
    PERIOD_MONTHS,
    estimate_commit_count,
    filter_repositories_by_period,
    language_breakdown,
    period_commit_count,
    repository_totals,
)

__all__ = [
    "COMMIT_TYPES",
    "PERIOD_MONTHS",
    "SORT_KEYS",
    "WINDOW_HOURS",
    "AggregateSnapshot",
    "AuthorStats",
    "CommitFilter",
    "CommitView",
    "DailyActivity",
    "HourBucket",
    "LanguageStats",
    "RepositoryTotals",
    "aggregate_commits",
    "apply_filters",
    "classify_commit",
    "estimate_commit_count",
    "extend_commit",
    "filter_by_author",
    "filter_by_search",
    "filter_by_window",
    "filter_repositories_by_period",
    "language_breakdown",
    "period_commit_count",
    "repository_totals",
    "sort_commits",
    "summarize",
    "unique_authors",
    "window_duration",
]
