"""Authenticated async GET against the GitHub REST API, with a response cache."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from gitvision.engines.github.cache import ResponseCache
from gitvision.engines.github.errors import MissingCredentialError, NetworkError

log = structlog.get_logger("gitvision.github")

ACCEPT = "application/vnd.github.v3+json"

TokenProvider = Callable[[], str | None]


@dataclass
class GitHubResponse:
    """Status, decoded body and headers of one GET.

    Non-2xx responses are returned as-is so callers can branch on the
    status code.
    """

    status: int
    body: Any = None
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        if isinstance(self.body, dict):
            return str(self.body.get("message", ""))
        return "" if self.body is None else str(self.body)


class HttpClient:
    """Thin async wrapper around ``httpx.AsyncClient``.

    The token is looked up through *token_provider* on every request, so a
    rotated credential takes effect immediately.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        cache: ResponseCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token_provider = token_provider
        self.cache = cache if cache is not None else ResponseCache()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Accept": ACCEPT},
            timeout=timeout,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        use_cache: bool = True,
    ) -> GitHubResponse:
        """GET *path*; serve from the cache when a fresh entry exists."""
        token = self._token_provider()
        if not token:
            raise MissingCredentialError()

        request = self._client.build_request(
            "GET",
            path,
            params=_clean_params(params),
            headers={"Authorization": f"token {token}"},
        )
        key = str(request.url)

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                log.debug("github.cache_hit", url=key)
                return GitHubResponse(status=200, body=cached, from_cache=True)

        try:
            resp = await self._client.send(request)
        except httpx.TransportError as exc:
            log.warning("github.network_error", url=key, error=str(exc))
            raise NetworkError(f"{type(exc).__name__}: {exc}") from exc

        result = GitHubResponse(
            status=resp.status_code,
            body=self._decode_body(resp),
            headers=resp.headers,
        )
        # a token swap during the request may have cleared the cache already
        if (
            use_cache
            and result.ok
            and result.body is not None
            and self._token_provider() == token
        ):
            self.cache.set(key, result.body)
        return result

    # ── internal ───────────────────────────────────────────────────────────

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop ``None`` values so optional filters never reach the query string."""
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None}
