"""Page-number pagination over list endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from gitvision.engines.github.errors import RateLimitError
from gitvision.engines.github.rate_limit import RateLimitHandler, RetryState

log = structlog.get_logger("gitvision.github")


@dataclass
class PageResult:
    """Items gathered across pages, plus how the walk ended."""

    items: list[Any] = field(default_factory=list)
    pages: int = 0  # pages that returned data
    not_found: bool = False
    partial: bool = False
    errors: list[str] = field(default_factory=list)


class PaginatedFetcher:
    """Request ``page=1..N`` until a short page or the page ceiling.

    Items keep upstream order: page N's items precede page N+1's.
    """

    def __init__(
        self,
        handler: RateLimitHandler,
        *,
        page_size: int = 100,
        max_pages: int = 20,
    ) -> None:
        self.handler = handler
        self.page_size = page_size
        self.max_pages = max_pages

    async def fetch_all(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        page_size: int | None = None,
        max_pages: int | None = None,
        start_page: int = 1,
    ) -> PageResult:
        size = page_size or self.page_size
        ceiling = max_pages or self.max_pages
        result = PageResult()

        for page in range(start_page, start_page + ceiling):
            query = {**(params or {}), "page": page, "per_page": size}
            try:
                outcome = await self.handler.fetch(path, query)
            except RateLimitError as exc:
                self._mark_partial(result, path, page, str(exc))
                break

            if outcome.state is RetryState.NOT_FOUND:
                log.info("github.not_found", path=path, page=page)
                result.not_found = True
                break

            if outcome.state is RetryState.SKIPPED:
                self._mark_partial(result, path, page, outcome.error or "request failed")
                break

            body = outcome.body
            if not isinstance(body, list):
                self._mark_partial(
                    result, path, page, f"expected a list, got {type(body).__name__}"
                )
                break

            result.items.extend(body)
            result.pages += 1
            if len(body) < size:
                break
        else:
            log.info("github.max_pages_reached", path=path, max_pages=ceiling)

        return result

    @staticmethod
    def _mark_partial(result: PageResult, path: str, page: int, reason: str) -> None:
        log.warning(
            "github.page_skipped",
            path=path,
            page=page,
            reason=reason,
            items_so_far=len(result.items),
        )
        result.partial = True
        result.errors.append(f"{path} page {page}: {reason}")
