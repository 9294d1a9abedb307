"""Commits router: fetching, filtered listing and analytics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from gitvision.api.deps import get_service
from gitvision.api.routers.dashboard import status_of
from gitvision.api.schemas.commit import AnalyticsResponse, CommitListItem, FetchCommitsRequest
from gitvision.api.schemas.dashboard import StatusResponse
from gitvision.engines.analytics.commits import (
    aggregate_commits,
    apply_filters,
    extend_commit,
    unique_authors,
)
from gitvision.engines.analytics.models import CommitFilter
from gitvision.engines.github.api import CommitQuery
from gitvision.engines.github.models import Commit
from gitvision.services import ValidationError
from gitvision.services.github_data_service import GitHubDataService

router = APIRouter()

_SORT_PATTERN = "^(date|author|additions|deletions|changes)$"
_SCOPE_PATTERN = "^(repository|all)$"


def _held(svc: GitHubDataService, scope: str) -> tuple[Commit, ...]:
    return svc.state.data.all_commits if scope == "all" else svc.state.commits


def _filtered(
    svc: GitHubDataService, scope: str, search: str, window: str, author: str, sort: str
) -> list[Commit]:
    spec = CommitFilter(search=search, window=window, author=author, sort_by=sort)  # type: ignore[arg-type]
    try:
        return apply_filters(_held(svc, scope), spec)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


@router.post("/fetch", response_model=StatusResponse)
async def fetch_commits(
    body: FetchCommitsRequest,
    svc: GitHubDataService = Depends(get_service),
) -> StatusResponse:
    query = CommitQuery(
        since=body.since,
        until=body.until,
        author=body.author,
        path=body.path,
        per_page=body.per_page,
        page=body.page,
        max_pages=body.max_pages,
    )
    await svc.fetch_commits(body.repository, body.branch, query)
    return status_of(svc)


@router.post("/fetch-all", response_model=StatusResponse)
async def fetch_all_commits(
    limit: int | None = Query(None, ge=0),
    svc: GitHubDataService = Depends(get_service),
) -> StatusResponse:
    await svc.fetch_all_repositories_commits(limit)
    return status_of(svc)


@router.get("/", response_model=list[CommitListItem])
async def list_commits(
    scope: str = Query("repository", pattern=_SCOPE_PATTERN),
    search: str = Query(""),
    window: str = Query("all"),
    author: str = Query("all"),
    sort: str = Query("date", pattern=_SORT_PATTERN),
    svc: GitHubDataService = Depends(get_service),
) -> list[CommitListItem]:
    commits = _filtered(svc, scope, search, window, author, sort)
    return [CommitListItem.model_validate(extend_commit(c)) for c in commits]


@router.get("/authors", response_model=list[str])
async def list_authors(
    scope: str = Query("repository", pattern=_SCOPE_PATTERN),
    svc: GitHubDataService = Depends(get_service),
) -> list[str]:
    return unique_authors(_held(svc, scope))


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    scope: str = Query("repository", pattern=_SCOPE_PATTERN),
    search: str = Query(""),
    window: str = Query("all"),
    author: str = Query("all"),
    svc: GitHubDataService = Depends(get_service),
) -> AnalyticsResponse:
    commits = _filtered(svc, scope, search, window, author, "date")
    return AnalyticsResponse.model_validate(aggregate_commits(commits))
