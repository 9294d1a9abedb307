"""Dashboard and fetch-status response schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from gitvision.engines.analytics.models import RepositoryTotals
from gitvision.engines.github.models import User


class LoadingFlags(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    loading: bool
    repositories: bool
    commits: bool
    user: bool
    all_commits: bool


class ErrorMessages(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    error: str
    repositories: str
    commits: str
    user: str


class StatusResponse(BaseModel):
    """Loading flags and error strings after an operation completed."""

    loading: LoadingFlags
    errors: ErrorMessages
    partial_failures: int = 0


class RepositoryTotalsResponse(BaseModel):
    total_repos: int
    total_stars: int
    total_forks: int
    total_watchers: int
    total_open_issues: int
    total_size_mb: float
    private_repos: int
    public_repos: int
    active_repos: int
    recent_activity: int
    avg_stars: float
    most_popular: str | None

    @classmethod
    def from_totals(cls, totals: RepositoryTotals) -> RepositoryTotalsResponse:
        return cls(
            total_repos=totals.total_repos,
            total_stars=totals.total_stars,
            total_forks=totals.total_forks,
            total_watchers=totals.total_watchers,
            total_open_issues=totals.total_open_issues,
            total_size_mb=totals.total_size_mb,
            private_repos=totals.private_repos,
            public_repos=totals.public_repos,
            active_repos=totals.active_repos,
            recent_activity=totals.recent_activity,
            avg_stars=totals.avg_stars,
            most_popular=totals.most_popular.name if totals.most_popular else None,
        )


class LanguageStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    language: str
    count: int
    percentage: float
    total_stars: int
    avg_stars: float


class DashboardResponse(BaseModel):
    period: str
    status: StatusResponse
    user: User | None
    totals: RepositoryTotalsResponse
    period_repositories: int
    period_commits: int
    languages: list[LanguageStatsResponse]
