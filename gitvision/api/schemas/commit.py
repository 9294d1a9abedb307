"""Commit listing and analytics schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from gitvision.engines.github.models import Commit


class FetchCommitsRequest(BaseModel):
    repository: str = Field(pattern=r"^[\w.-]+/[\w.-]+$")
    branch: str = "main"
    since: datetime | None = None
    until: datetime | None = None
    author: str | None = None
    path: str | None = None
    per_page: int | None = Field(default=None, ge=1, le=100)
    page: int | None = Field(default=None, ge=1)
    max_pages: int | None = Field(default=None, ge=1)


class CommitListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    commit: Commit
    commit_type: str
    message_length: int
    day_of_week: str
    hour: int
    lines_changed: int
    files_changed: int


class AuthorStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    commits: int
    additions: int
    deletions: int


class HourBucketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    hour: int
    commits: int


class DailyActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str
    commits: int
    additions: int
    deletions: int


class AnalyticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_commits: int
    total_authors: int
    total_additions: int
    total_deletions: int
    avg_commits_per_day: float
    most_active_author: str | None
    most_active_day: str | None
    author_stats: dict[str, AuthorStatsResponse]
    commit_frequency: dict[str, int]
    commit_types: dict[str, int]
    time_distribution: list[HourBucketResponse]
    daily_activity: list[DailyActivityResponse]
