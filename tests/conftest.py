"""Shared fixtures: a scripted GitHub stand-in, payload builders, a wired service."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from gitvision.core.config import Settings
from gitvision.core.store import MemoryStore
from gitvision.engines.github.cache import ResponseCache
from gitvision.engines.github.http_client import HttpClient
from gitvision.services.github_data_service import GitHubDataService
from gitvision.services.token_store import TokenStore

TOKEN = "ghp_testtoken123"
NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# GitHub stand-in
# ---------------------------------------------------------------------------


class FakeGitHub:
    """Route table keyed by URL path; unknown paths answer 404."""

    def __init__(self) -> None:
        self.routes: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []

    def route(
        self,
        path: str,
        payload: Any = None,
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.routes[path] = lambda _req: httpx.Response(status, json=payload, headers=headers)

    def handle(self, path: str, handler: Handler) -> None:
        self.routes[path] = handler

    def sequence(self, path: str, *responses: httpx.Response) -> None:
        """Answer with *responses* in order, repeating the last one."""
        queue = list(responses)

        def _next(_req: httpx.Request) -> httpx.Response:
            return queue.pop(0) if len(queue) > 1 else queue[0]

        self.routes[path] = _next

    def paged(self, path: str, items: list[Any]) -> None:
        """Serve *items* honouring ``page`` / ``per_page``."""

        def _page(req: httpx.Request) -> httpx.Response:
            page = int(req.url.params.get("page", "1"))
            size = int(req.url.params.get("per_page", "30"))
            start = (page - 1) * size
            return httpx.Response(200, json=items[start : start + size])

        self.routes[path] = _page

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def repo_payload(
    repo_id: int,
    name: str | None = None,
    *,
    owner: str = "alice",
    updated_at: datetime = NOW,
    created_at: datetime | None = None,
    pushed_at: datetime | None = None,
    **extra: Any,
) -> dict[str, Any]:
    name = name or f"repo-{repo_id}"
    return {
        "id": repo_id,
        "name": name,
        "full_name": f"{owner}/{name}",
        "html_url": f"https://github.com/{owner}/{name}",
        "created_at": (created_at or updated_at - timedelta(days=365)).isoformat(),
        "updated_at": updated_at.isoformat(),
        "pushed_at": pushed_at.isoformat() if pushed_at else None,
        "default_branch": "main",
        **extra,
    }


def commit_payload(
    sha: str,
    message: str = "chore: update",
    *,
    author: str = "Alice",
    login: str | None = "alice",
    date: datetime = NOW,
) -> dict[str, Any]:
    return {
        "sha": sha,
        "html_url": f"https://github.com/alice/repo/commit/{sha}",
        "commit": {
            "message": message,
            "author": {"name": author, "email": f"{author.lower()}@example.com", "date": date.isoformat()},
            "committer": {"name": author, "email": "", "date": date.isoformat()},
        },
        "author": {"login": login, "id": sum(map(ord, login))} if login else None,
        "parents": [],
    }


def user_payload(login: str = "alice") -> dict[str, Any]:
    return {
        "login": login,
        "id": 1,
        "name": "Alice Example",
        "public_repos": 190,
        "followers": 12,
        "following": 3,
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def no_sleep() -> AsyncMock:
    return AsyncMock(return_value=None)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        api_base_url="https://api.github.test",
        store_path=tmp_path / "store.json",
        transient_delay=0.0,
        all_repos_delay=0.0,
    )


@pytest.fixture
def token_store() -> TokenStore:
    return TokenStore(MemoryStore(), initial=TOKEN)


@pytest_asyncio.fixture
async def http(github: FakeGitHub):
    client = HttpClient(
        lambda: TOKEN,
        base_url="https://api.github.test",
        cache=ResponseCache(),
        transport=github.transport,
    )
    yield client
    await client.close()


@pytest_asyncio.fixture
async def service(github: FakeGitHub, settings: Settings, token_store: TokenStore, no_sleep):
    svc = GitHubDataService(
        token_store, settings=settings, transport=github.transport, sleep=no_sleep
    )
    yield svc
    await svc.close()
