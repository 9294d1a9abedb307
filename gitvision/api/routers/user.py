"""Authenticated user router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from gitvision.api.deps import get_service
from gitvision.api.routers.dashboard import status_of
from gitvision.api.schemas.dashboard import StatusResponse
from gitvision.engines.github.models import User
from gitvision.services import NotFoundError
from gitvision.services.github_data_service import GitHubDataService

router = APIRouter()


@router.get("/", response_model=User)
async def get_user(svc: GitHubDataService = Depends(get_service)) -> User:
    if svc.state.user is None:
        raise NotFoundError("user profile not loaded")
    return svc.state.user


@router.post("/fetch", response_model=StatusResponse)
async def fetch_user(svc: GitHubDataService = Depends(get_service)) -> StatusResponse:
    await svc.fetch_user()
    return status_of(svc)
