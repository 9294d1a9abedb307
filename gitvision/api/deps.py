"""Dependency injection: the data service and preference store singletons."""

from __future__ import annotations

import os

import httpx

from gitvision.core.config import Settings
from gitvision.core.store import JsonFileStore, KeyValueStore
from gitvision.services.github_data_service import GitHubDataService
from gitvision.services.preferences import PreferencesStore
from gitvision.services.token_store import TokenStore

# ---------------------------------------------------------------------------
# Singletons (initialised by app lifespan)
# ---------------------------------------------------------------------------
_service: GitHubDataService | None = None
_preferences: PreferencesStore | None = None


def init_service(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GitHubDataService:
    """Build the data service and preference store. Called once at startup."""
    global _service, _preferences  # noqa: PLW0603
    settings = settings or Settings.from_env()
    store = store if store is not None else JsonFileStore(settings.store_path)
    tokens = TokenStore(store, initial=os.environ.get("GITHUB_TOKEN"))
    _service = GitHubDataService(tokens, settings=settings, transport=transport)
    _preferences = PreferencesStore(store)
    return _service


async def dispose_service() -> None:
    """Stop the cache sweeper and close the HTTP client."""
    global _service, _preferences  # noqa: PLW0603
    if _service is not None:
        await _service.close()
        _service = None
    _preferences = None


def set_service(service: GitHubDataService, preferences: PreferencesStore) -> None:
    """Install prebuilt singletons (for testing)."""
    global _service, _preferences  # noqa: PLW0603
    _service = service
    _preferences = preferences


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_service() -> GitHubDataService:
    if _service is None:
        raise RuntimeError("call init_service() before handling requests")
    return _service


def get_preferences_store() -> PreferencesStore:
    if _preferences is None:
        raise RuntimeError("call init_service() before handling requests")
    return _preferences
