"""Repositories router."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from gitvision.api.deps import get_service
from gitvision.api.routers.dashboard import status_of
from gitvision.api.schemas.dashboard import StatusResponse
from gitvision.engines.github.models import Branch, Repository
from gitvision.services.github_data_service import GitHubDataService

router = APIRouter()


@router.get("/", response_model=list[Repository])
async def list_repositories(
    svc: GitHubDataService = Depends(get_service),
) -> list[Repository]:
    return list(svc.state.repositories)


@router.post("/fetch", response_model=StatusResponse)
async def fetch_repositories(svc: GitHubDataService = Depends(get_service)) -> StatusResponse:
    await svc.fetch_repositories()
    return status_of(svc)


@router.get("/search", response_model=list[Repository])
async def search_repositories(
    q: str = Query(..., min_length=1),
    sort: str = Query("stars"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    per_page: int = Query(30, ge=1, le=100),
    page: int = Query(1, ge=1),
    svc: GitHubDataService = Depends(get_service),
) -> list[Repository]:
    return await svc.search_repositories(q, sort=sort, order=order, per_page=per_page, page=page)


@router.get("/{owner}/{name}/branches", response_model=list[Branch])
async def list_branches(
    owner: str,
    name: str,
    svc: GitHubDataService = Depends(get_service),
) -> list[Branch]:
    return await svc.fetch_branches(f"{owner}/{name}")


@router.get("/{owner}/{name}/contents")
async def get_contents(
    owner: str,
    name: str,
    path: str = Query(""),
    ref: str = Query("main"),
    svc: GitHubDataService = Depends(get_service),
) -> list[dict[str, Any]]:
    return await svc.get_repository_contents(f"{owner}/{name}", path, ref)


@router.get("/{owner}/{name}/stats")
async def get_stats(
    owner: str,
    name: str,
    svc: GitHubDataService = Depends(get_service),
) -> dict[str, Any]:
    return await svc.fetch_repository_stats(f"{owner}/{name}")
