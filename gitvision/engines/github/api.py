"""Endpoint-level GitHub REST calls returning typed models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

import pydantic
import structlog

from gitvision.engines.github.errors import (
    MalformedPayloadError,
    NetworkError,
    NotFoundError,
    UpstreamError,
)
from gitvision.engines.github.http_client import HttpClient
from gitvision.engines.github.models import (
    Account,
    Branch,
    Commit,
    Contributor,
    Event,
    GitHubModel,
    Organization,
    Repository,
    User,
)
from gitvision.engines.github.paginator import PageResult, PaginatedFetcher
from gitvision.engines.github.rate_limit import RateLimitHandler, RetryPolicy, RetryState, Sleep

log = structlog.get_logger("gitvision.github")

M = TypeVar("M", bound=GitHubModel)

STATS_KINDS = ("code_frequency", "participation", "punch_card")


@dataclass(frozen=True)
class CommitQuery:
    """Optional filters and pagination overrides for a commit listing."""

    since: datetime | None = None
    until: datetime | None = None
    author: str | None = None
    path: str | None = None
    per_page: int | None = None
    page: int | None = None
    max_pages: int | None = None

    def params(self) -> dict[str, Any]:
        return {
            "since": _iso(self.since),
            "until": _iso(self.until),
            "author": self.author,
            "path": self.path,
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def decode_one(model: type[M], payload: Any, source: str) -> M:
    """Validate a single-resource payload or raise :class:`MalformedPayloadError`."""
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        log.warning("github.malformed_payload", source=source, errors=exc.error_count())
        raise MalformedPayloadError(f"unexpected payload from {source}") from exc


def decode_many(model: type[M], payload: Any, source: str) -> list[M]:
    """Validate list items one by one; malformed items are logged and dropped."""
    if not isinstance(payload, list):
        log.warning("github.malformed_payload", source=source, got=type(payload).__name__)
        return []
    items: list[M] = []
    for index, raw in enumerate(payload):
        try:
            items.append(model.model_validate(raw))
        except pydantic.ValidationError as exc:
            log.warning(
                "github.malformed_item",
                source=source,
                index=index,
                errors=exc.error_count(),
            )
    return items


class GitHubAPI:
    """All GitHub endpoints the dashboard reads.

    List endpoints go through :class:`PaginatedFetcher` and report partial
    results. Single-resource endpoints go through :meth:`get_json`, which
    raises instead of degrading.
    """

    def __init__(
        self,
        http: HttpClient,
        *,
        policy: RetryPolicy | None = None,
        page_size: int = 100,
        max_pages: int = 20,
        sleep: Sleep | None = None,
    ) -> None:
        self.http = http
        self.handler = RateLimitHandler(http, policy, sleep=sleep)
        self.fetcher = PaginatedFetcher(self.handler, page_size=page_size, max_pages=max_pages)

    # ── primitives ─────────────────────────────────────────────────────────

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Fetch one resource; failures surface as :class:`GitHubError` subclasses."""
        outcome = await self.handler.fetch(path, params)
        if outcome.state is RetryState.NOT_FOUND:
            raise NotFoundError(path)
        if outcome.state is RetryState.SKIPPED:
            if outcome.status is None:
                raise NetworkError(outcome.error or f"network failure fetching {path}")
            raise UpstreamError(outcome.status, f"{path}: {outcome.error}")
        return outcome.body

    async def get_list(self, model: type[M], path: str, params: dict[str, Any] | None = None) -> list[M]:
        return decode_many(model, await self.get_json(path, params), path)

    async def paginate(
        self,
        model: type[M],
        path: str,
        params: dict[str, Any] | None = None,
        *,
        page_size: int | None = None,
        max_pages: int | None = None,
        start_page: int = 1,
    ) -> PageResult:
        """Paginate *path* and decode the collected items into *model*."""
        result = await self.fetcher.fetch_all(
            path, params, page_size=page_size, max_pages=max_pages, start_page=start_page
        )
        result.items = decode_many(model, result.items, path)
        return result

    # ── repositories ───────────────────────────────────────────────────────

    async def list_repositories(self, *, max_pages: int | None = None) -> PageResult:
        return await self.paginate(
            Repository, "/user/repos", {"sort": "updated"}, max_pages=max_pages
        )

    async def repository_languages(self, full_name: str) -> dict[str, int]:
        path = f"/repos/{full_name}/languages"
        data = await self.get_json(path)
        if not isinstance(data, dict):
            raise MalformedPayloadError(f"unexpected payload from {path}")
        return {str(k): int(v) for k, v in data.items() if isinstance(v, int)}

    async def repository_contributors(self, full_name: str, limit: int = 10) -> list[Contributor]:
        path = f"/repos/{full_name}/contributors"
        data = await self.get_json(path, {"per_page": limit})
        # empty repositories answer 204 with no body
        return decode_many(Contributor, data or [], path)

    async def search_repositories(
        self,
        query: str,
        *,
        sort: str = "stars",
        order: str = "desc",
        per_page: int = 30,
        page: int = 1,
    ) -> list[Repository]:
        path = "/search/repositories"
        data = await self.get_json(
            path, {"q": query, "sort": sort, "order": order, "per_page": per_page, "page": page}
        )
        items = data.get("items", []) if isinstance(data, dict) else []
        return decode_many(Repository, items, path)

    async def repository_contents(
        self, full_name: str, path: str = "", ref: str = "main"
    ) -> list[dict[str, Any]]:
        url = f"/repos/{full_name}/contents/{path.lstrip('/')}"
        data = await self.get_json(url, {"ref": ref})
        if isinstance(data, dict):
            return [data]
        if isinstance(data, list):
            return [item for item in data if isinstance(item, dict)]
        raise MalformedPayloadError(f"unexpected payload from {url}")

    async def branches(self, full_name: str) -> list[Branch]:
        return await self.get_list(Branch, f"/repos/{full_name}/branches", {"per_page": 100})

    async def collaborators(self, full_name: str) -> list[Account]:
        return await self.get_list(
            Account, f"/repos/{full_name}/collaborators", {"per_page": 100}
        )

    async def raw_list(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Untyped list endpoints (tags, releases, issues, pulls)."""
        data = await self.get_json(path, params)
        if not isinstance(data, list):
            raise MalformedPayloadError(f"unexpected payload from {path}")
        return [item for item in data if isinstance(item, dict)]

    async def tags(self, full_name: str) -> list[dict[str, Any]]:
        return await self.raw_list(f"/repos/{full_name}/tags", {"per_page": 100})

    async def releases(self, full_name: str) -> list[dict[str, Any]]:
        return await self.raw_list(f"/repos/{full_name}/releases", {"per_page": 100})

    async def issues(self, full_name: str, state: str = "open") -> list[dict[str, Any]]:
        return await self.raw_list(
            f"/repos/{full_name}/issues", {"state": state, "per_page": 100}
        )

    async def pull_requests(self, full_name: str, state: str = "open") -> list[dict[str, Any]]:
        return await self.raw_list(
            f"/repos/{full_name}/pulls", {"state": state, "per_page": 100}
        )

    async def repository_stat(self, full_name: str, kind: str) -> Any:
        """One of the ``/stats/*`` endpoints.

        GitHub answers 202 with an empty body while it computes the numbers;
        that comes back as ``None``.
        """
        return await self.get_json(f"/repos/{full_name}/stats/{kind}")

    # ── commits ────────────────────────────────────────────────────────────

    async def list_commits(
        self,
        full_name: str,
        branch: str | None = None,
        query: CommitQuery | None = None,
        *,
        max_pages: int | None = None,
    ) -> PageResult:
        query = query or CommitQuery()
        params = {"sha": branch, **query.params()}
        return await self.paginate(
            Commit,
            f"/repos/{full_name}/commits",
            params,
            page_size=query.per_page,
            max_pages=query.max_pages or max_pages,
            start_page=query.page or 1,
        )

    async def commit_detail(self, full_name: str, sha: str) -> Commit:
        path = f"/repos/{full_name}/commits/{sha}"
        return decode_one(Commit, await self.get_json(path), path)

    # ── user ───────────────────────────────────────────────────────────────

    async def current_user(self) -> User:
        return decode_one(User, await self.get_json("/user"), "/user")

    async def user_events(self, login: str, limit: int = 10) -> list[Event]:
        return await self.get_list(Event, f"/users/{login}/events/public", {"per_page": limit})

    async def user_organizations(self) -> list[Organization]:
        return await self.get_list(Organization, "/user/orgs")

    async def user_starred(self, limit: int = 10) -> list[Repository]:
        return await self.get_list(Repository, "/user/starred", {"per_page": limit})
