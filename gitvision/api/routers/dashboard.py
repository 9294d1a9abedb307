"""Dashboard router: aggregate view, full refresh and cache control."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from gitvision.api.deps import get_service
from gitvision.api.schemas.dashboard import (
    DashboardResponse,
    ErrorMessages,
    LanguageStatsResponse,
    LoadingFlags,
    RepositoryTotalsResponse,
    StatusResponse,
)
from gitvision.engines.analytics.repositories import (
    filter_repositories_by_period,
    language_breakdown,
    period_commit_count,
    repository_totals,
)
from gitvision.services.github_data_service import GitHubDataService

router = APIRouter()


def status_of(svc: GitHubDataService) -> StatusResponse:
    return StatusResponse(
        loading=LoadingFlags.model_validate(svc.state.loading),
        errors=ErrorMessages.model_validate(svc.state.errors),
        partial_failures=len(svc.state.data.partial_failures),
    )


@router.get("/", response_model=DashboardResponse)
async def get_dashboard(
    period: str = Query("6M", pattern="^(1M|3M|6M|1Y|ALL)$"),
    svc: GitHubDataService = Depends(get_service),
) -> DashboardResponse:
    data = svc.state.data
    in_period = filter_repositories_by_period(data.repositories, period)
    commits = data.all_commits or data.commits
    return DashboardResponse(
        period=period,
        status=status_of(svc),
        user=data.user,
        totals=RepositoryTotalsResponse.from_totals(repository_totals(data.repositories)),
        period_repositories=len(in_period),
        period_commits=period_commit_count(data.repositories, commits, period),
        languages=[LanguageStatsResponse.model_validate(s) for s in language_breakdown(in_period)],
    )


@router.post("/refresh", response_model=StatusResponse)
async def refresh(svc: GitHubDataService = Depends(get_service)) -> StatusResponse:
    await svc.refresh_all()
    return status_of(svc)


@router.delete("/cache", status_code=204)
async def clear_cache(svc: GitHubDataService = Depends(get_service)) -> Response:
    svc.clear_cache()
    return Response(status_code=204)
