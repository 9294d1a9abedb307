"""GitHubDataService: the facade the dashboard talks to.

Composes the GitHub engine (client, cache, paginator, enricher) and owns
the :class:`DashboardState`. Every fetch follows the same contract: raise
its loading flag, clear its error, replace its collection in one step on
success, set a readable error and keep the previous data on failure, and
always drop the loading flag on the way out.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Sequence
from typing import Any, TypeVar

import httpx
import structlog

from gitvision.core.config import Settings
from gitvision.engines.analytics.commits import sort_commits
from gitvision.engines.github.api import STATS_KINDS, CommitQuery, GitHubAPI
from gitvision.engines.github.cache import ResponseCache
from gitvision.engines.github.enricher import EntityEnricher
from gitvision.engines.github.errors import (
    AuthError,
    GitHubError,
    MissingCredentialError,
    PartialFailure,
    RateLimitError,
    UpstreamError,
)
from gitvision.engines.github.http_client import HttpClient
from gitvision.engines.github.models import (
    Account,
    Branch,
    Commit,
    Repository,
    RepositoryRef,
)
from gitvision.engines.github.paginator import PageResult
from gitvision.engines.github.rate_limit import RetryPolicy, Sleep
from gitvision.scheduler import CacheSweeper
from gitvision.services.state import DashboardState
from gitvision.services.token_store import TokenStore

log = structlog.get_logger("gitvision.service")

T = TypeVar("T")


def describe_error(exc: GitHubError) -> str:
    """Message suitable for the dashboard's error banner."""
    if isinstance(exc, MissingCredentialError):
        return "GitHub token is not configured"
    if isinstance(exc, AuthError):
        return "GitHub rejected the token; replace it in settings"
    if isinstance(exc, RateLimitError):
        return "GitHub rate limit exceeded; try again later"
    return str(exc) or type(exc).__name__


def sort_by_recent_update(repos: Sequence[Repository]) -> list[Repository]:
    """``updated_at`` descending, ties by id ascending."""
    return sorted(repos, key=lambda r: (-r.updated_at.timestamp(), r.id))


def _page_failures(page: PageResult, target: str) -> list[PartialFailure]:
    return [PartialFailure(stage="page", target=target, reason=e) for e in page.errors]


class GitHubDataService:
    def __init__(
        self,
        token_store: TokenStore,
        *,
        settings: Settings | None = None,
        state: DashboardState | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.token_store = token_store
        self.state = state or DashboardState()
        self._sleep: Sleep = sleep or asyncio.sleep

        self.http = HttpClient(
            token_store.get,
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout,
            cache=ResponseCache(self.settings.cache_ttl),
            transport=transport,
        )
        self.api = GitHubAPI(
            self.http,
            policy=RetryPolicy(
                rate_limit_backoff=self.settings.rate_limit_backoff,
                max_rate_limit_retries=self.settings.rate_limit_max_retries,
                transient_retries=self.settings.transient_retries,
                transient_delay=self.settings.transient_delay,
            ),
            page_size=self.settings.page_size,
            max_pages=self.settings.max_pages,
            sleep=self._sleep,
        )
        self.enricher = EntityEnricher(self.api, concurrency=self.settings.enrich_concurrency)
        self.sweeper = CacheSweeper(self.http.cache, self.settings.cache_sweep_interval)

        # bumped on every credential change; results from older fetches are dropped
        self._generation = 0
        self._all_commits_in_flight = False
        self._unsubscribe = token_store.subscribe(self._on_token_changed)

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def start(self) -> None:
        await self.sweeper.start()

    async def close(self) -> None:
        await self.sweeper.stop()
        self._unsubscribe()
        await self.http.close()

    async def __aenter__(self) -> GitHubDataService:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── credential ─────────────────────────────────────────────────────────

    @property
    def has_token(self) -> bool:
        return self.token_store.get() is not None

    def update_token(self, token: str) -> str:
        """Store a new token; held data and the cache are reset by the listener."""
        return self.token_store.set(token)

    def clear_token(self) -> None:
        self.token_store.clear()

    def clear_cache(self) -> None:
        self.http.cache.clear()
        log.info("service.cache_cleared")

    def _on_token_changed(self, _token: str | None) -> None:
        self._generation += 1
        self.http.cache.clear()
        self.state.reset()
        log.info("service.state_reset", reason="token_changed")

    # ── primary fetches ────────────────────────────────────────────────────

    async def fetch_repositories(self) -> None:
        generation = self._generation
        self.state.update_loading(repositories=True)
        self.state.update_errors(repositories="")
        try:
            page = await self.api.list_repositories(max_pages=self.settings.max_pages)
            self._require_items(page, "/user/repos")
            repos, failures = await self.enricher.enrich_repositories(page.items)
            ordered = sort_by_recent_update(repos)
            if self._store(
                generation,
                repositories=tuple(ordered),
                partial_failures=tuple(_page_failures(page, "/user/repos") + failures),
            ):
                log.info("service.repositories_loaded", count=len(ordered), partial=page.partial)
        except GitHubError as exc:
            self._fail(generation, "repositories", exc)
        finally:
            self.state.update_loading(repositories=False)

    async def fetch_commits(
        self,
        full_name: str,
        branch: str = "main",
        query: CommitQuery | None = None,
    ) -> None:
        generation = self._generation
        self.state.update_loading(commits=True)
        self.state.update_errors(commits="")
        try:
            page = await self.api.list_commits(
                full_name, branch, query, max_pages=self.settings.max_pages
            )
            if page.not_found and not page.items:
                # unknown branch or inaccessible repository: keep what is shown
                log.warning("service.commits_not_found", repo=full_name, branch=branch)
                return
            self._require_items(page, full_name)
            commits, failures = await self.enricher.enrich_commits(full_name, page.items)
            if self._store(
                generation,
                commits=tuple(commits),
                partial_failures=tuple(_page_failures(page, full_name) + failures),
            ):
                log.info("service.commits_loaded", repo=full_name, count=len(commits))
        except GitHubError as exc:
            self._fail(generation, "commits", exc)
        finally:
            self.state.update_loading(commits=False)

    async def fetch_user(self) -> None:
        generation = self._generation
        self.state.update_loading(user=True)
        self.state.update_errors(user="")
        try:
            user = await self.api.current_user()
            user, failures = await self.enricher.enrich_user(user)
            if self._store(generation, user=user, partial_failures=tuple(failures)):
                log.info("service.user_loaded", login=user.login)
        except GitHubError as exc:
            self._fail(generation, "user", exc)
        finally:
            self.state.update_loading(user=False)

    async def fetch_all_repositories_commits(self, limit: int | None = None) -> None:
        """Full commit history across the most recently updated repositories.

        Repositories are scanned one at a time with a short pause between
        them. A second call while a scan is running returns immediately.
        """
        if self._all_commits_in_flight:
            log.info("service.all_commits_in_flight")
            return
        self._all_commits_in_flight = True
        generation = self._generation
        self.state.update_loading(all_commits=True)
        try:
            cap = self.settings.all_repos_limit if limit is None else limit
            repos = sort_by_recent_update(self.state.repositories)
            if cap > 0:
                repos = repos[:cap]

            collected: list[Commit] = []
            failures: list[PartialFailure] = []
            for index, repo in enumerate(repos):
                if index:
                    await self._sleep(self.settings.all_repos_delay)
                try:
                    page = await self.api.list_commits(
                        repo.full_name,
                        repo.default_branch,
                        CommitQuery(per_page=self.settings.page_size),
                        max_pages=self.settings.history_max_pages,
                    )
                except (MissingCredentialError, AuthError) as exc:
                    self._fail(generation, "commits", exc)
                    return
                except GitHubError as exc:
                    log.warning("service.repository_commits_failed", repo=repo.full_name, error=str(exc))
                    failures.append(PartialFailure("commits", repo.full_name, str(exc)))
                    continue

                failures.extend(_page_failures(page, repo.full_name))
                source = RepositoryRef(
                    name=repo.name, full_name=repo.full_name, html_url=repo.html_url
                )
                collected.extend(c.model_copy(update={"repository": source}) for c in page.items)

            ordered = sort_commits(collected, "date")
            if self._store(
                generation, all_commits=tuple(ordered), partial_failures=tuple(failures)
            ):
                log.info(
                    "service.all_commits_loaded",
                    repositories=len(repos),
                    commits=len(ordered),
                    failures=len(failures),
                )
        finally:
            self._all_commits_in_flight = False
            self.state.update_loading(all_commits=False)

    async def refresh_all(self) -> None:
        """Drop the cache and errors, then reload user and repositories together."""
        self.state.update_loading(loading=True)
        self.http.cache.clear()
        self.state.clear_errors()
        try:
            await asyncio.gather(self.fetch_user(), self.fetch_repositories())
            errors = self.state.errors
            if errors.user or errors.repositories:
                self.state.update_errors(error="failed to refresh dashboard data")
        finally:
            self.state.update_loading(loading=False)

    # ── best-effort lookups ────────────────────────────────────────────────

    async def search_repositories(
        self,
        query: str,
        *,
        sort: str = "stars",
        order: str = "desc",
        per_page: int = 30,
        page: int = 1,
    ) -> list[Repository]:
        return await self._best_effort(
            "search",
            self.api.search_repositories(
                query, sort=sort, order=order, per_page=per_page, page=page
            ),
            [],
        )

    async def get_repository_contents(
        self, full_name: str, path: str = "", ref: str = "main"
    ) -> list[dict[str, Any]]:
        return await self._best_effort(
            "contents", self.api.repository_contents(full_name, path, ref), []
        )

    async def fetch_commit_details(self, full_name: str, sha: str) -> Commit | None:
        return await self._best_effort(
            "commit_detail", self.api.commit_detail(full_name, sha), None
        )

    async def fetch_branches(self, full_name: str) -> list[Branch]:
        generation = self._generation
        branches = await self._best_effort("branches", self.api.branches(full_name), [])
        self._store(generation, branches=tuple(branches))
        return branches

    async def fetch_collaborators(self, full_name: str) -> list[Account]:
        generation = self._generation
        people = await self._best_effort("collaborators", self.api.collaborators(full_name), [])
        self._store(generation, collaborators=tuple(people))
        return people

    async def fetch_languages(self, full_name: str) -> list[str]:
        generation = self._generation
        data = await self._best_effort("languages", self.api.repository_languages(full_name), {})
        names = list(data)
        self._store(generation, languages=tuple(names))
        return names

    async def fetch_tags(self, full_name: str) -> list[dict[str, Any]]:
        generation = self._generation
        tags = await self._best_effort("tags", self.api.tags(full_name), [])
        self._store(generation, tags=tuple(tags))
        return tags

    async def fetch_releases(self, full_name: str) -> list[dict[str, Any]]:
        generation = self._generation
        releases = await self._best_effort("releases", self.api.releases(full_name), [])
        self._store(generation, releases=tuple(releases))
        return releases

    async def fetch_issues(self, full_name: str, state: str = "open") -> list[dict[str, Any]]:
        generation = self._generation
        issues = await self._best_effort("issues", self.api.issues(full_name, state), [])
        self._store(generation, issues=tuple(issues))
        return issues

    async def fetch_pull_requests(
        self, full_name: str, state: str = "open"
    ) -> list[dict[str, Any]]:
        generation = self._generation
        pulls = await self._best_effort(
            "pull_requests", self.api.pull_requests(full_name, state), []
        )
        self._store(generation, pull_requests=tuple(pulls))
        return pulls

    async def fetch_repository_stats(self, full_name: str) -> dict[str, Any]:
        """code_frequency, participation and punch_card; ``None`` where unavailable."""
        values = await asyncio.gather(
            *(
                self._best_effort(kind, self.api.repository_stat(full_name, kind), None)
                for kind in STATS_KINDS
            )
        )
        return dict(zip(STATS_KINDS, values))

    async def fetch_contributor_stats(self, full_name: str) -> Any:
        return await self._best_effort(
            "contributor_stats", self.api.repository_stat(full_name, "contributors"), None
        )

    async def fetch_code_frequency(self, full_name: str) -> Any:
        return await self._best_effort(
            "code_frequency", self.api.repository_stat(full_name, "code_frequency"), None
        )

    async def fetch_punch_card(self, full_name: str) -> Any:
        return await self._best_effort(
            "punch_card", self.api.repository_stat(full_name, "punch_card"), None
        )

    # ── internal ───────────────────────────────────────────────────────────

    def _store(self, generation: int, **changes: Any) -> bool:
        """Publish *changes* unless the token changed since *generation*."""
        if generation != self._generation:
            log.info("service.stale_result_dropped", fields=sorted(changes))
            return False
        self.state.update_data(**changes)
        return True

    def _fail(self, generation: int, scope: str, exc: GitHubError) -> None:
        log.error(f"service.fetch_{scope}_failed", error=str(exc), kind=type(exc).__name__)
        if generation == self._generation:
            self.state.update_errors(**{scope: describe_error(exc)})

    @staticmethod
    def _require_items(page: PageResult, target: str) -> None:
        """A walk that failed before collecting anything is an error, not an empty result."""
        if page.partial and not page.items:
            raise UpstreamError(None, f"could not load {target}: {'; '.join(page.errors)}")

    @staticmethod
    async def _best_effort(operation: str, call: Awaitable[T], default: T) -> T:
        try:
            return await call
        except GitHubError as exc:
            log.warning("service.lookup_failed", operation=operation, error=str(exc))
            return default
