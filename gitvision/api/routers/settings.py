"""Settings router: credential and display preferences."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from gitvision.api.deps import get_preferences_store, get_service
from gitvision.api.schemas.settings import TokenRequest, TokenStatus
from gitvision.services.github_data_service import GitHubDataService
from gitvision.services.preferences import (
    Preferences,
    PreferencesStore,
    export_preferences,
    import_preferences,
)

router = APIRouter()

EXPORT_FILENAME = "gitvision-settings.json"


@router.get("/token", response_model=TokenStatus)
async def token_status(svc: GitHubDataService = Depends(get_service)) -> TokenStatus:
    return TokenStatus(configured=svc.has_token)


@router.put("/token", response_model=TokenStatus)
async def update_token(
    body: TokenRequest,
    svc: GitHubDataService = Depends(get_service),
) -> TokenStatus:
    svc.update_token(body.token)
    return TokenStatus(configured=True)


@router.delete("/token", status_code=204)
async def clear_token(svc: GitHubDataService = Depends(get_service)) -> Response:
    svc.clear_token()
    return Response(status_code=204)


@router.get("/preferences", response_model=Preferences)
async def get_preferences(
    prefs: PreferencesStore = Depends(get_preferences_store),
) -> Preferences:
    return prefs.load()


@router.put("/preferences", response_model=Preferences)
async def put_preferences(
    body: Preferences,
    prefs: PreferencesStore = Depends(get_preferences_store),
) -> Preferences:
    prefs.save(body)
    return body


@router.get("/export")
async def export_settings(
    prefs: PreferencesStore = Depends(get_preferences_store),
) -> Response:
    return Response(
        content=export_preferences(prefs.load()),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post("/import", response_model=Preferences)
async def import_settings(
    request: Request,
    prefs: PreferencesStore = Depends(get_preferences_store),
) -> Preferences:
    imported = import_preferences((await request.body()).decode("utf-8", errors="replace"))
    prefs.save(imported)
    return imported
