"""Join supplementary per-entity data onto list-endpoint entities.

Every sub-fetch is independent: a failure leaves that one field at its
fallback and is reported as a :class:`PartialFailure`, the base entity is
always returned. Batches fan out under a semaphore and come back in input
order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from gitvision.engines.github.api import GitHubAPI
from gitvision.engines.github.errors import GitHubError, PartialFailure
from gitvision.engines.github.models import Commit, Repository, User

log = structlog.get_logger("gitvision.enrich")

T = TypeVar("T")
E = TypeVar("E")

_MAX_CONCURRENCY = 10


class EntityEnricher:
    def __init__(self, api: GitHubAPI, *, concurrency: int = _MAX_CONCURRENCY) -> None:
        self.api = api
        self.concurrency = max(1, concurrency)

    # ── repositories ───────────────────────────────────────────────────────

    async def enrich_repository(self, repo: Repository) -> Repository:
        enriched, _ = await self._repository(repo)
        return enriched

    async def enrich_repositories(
        self, repos: Sequence[Repository]
    ) -> tuple[list[Repository], list[PartialFailure]]:
        return await self._batch(repos, self._repository)

    async def _repository(self, repo: Repository) -> tuple[Repository, list[PartialFailure]]:
        failures: list[PartialFailure] = []
        languages, contributors = await asyncio.gather(
            self._attempt(
                "languages", repo.full_name, self.api.repository_languages(repo.full_name), failures
            ),
            self._attempt(
                "contributors",
                repo.full_name,
                self.api.repository_contributors(repo.full_name),
                failures,
            ),
        )
        contributors = contributors if contributors is not None else []
        enriched = repo.model_copy(
            update={
                "languages_data": languages if languages is not None else {},
                "contributors_data": contributors,
                "contributor_count": len(contributors),
            }
        )
        return enriched, failures

    # ── commits ────────────────────────────────────────────────────────────

    async def enrich_commit(self, full_name: str, commit: Commit) -> Commit:
        enriched, _ = await self._commit(full_name, commit)
        return enriched

    async def enrich_commits(
        self, full_name: str, commits: Sequence[Commit]
    ) -> tuple[list[Commit], list[PartialFailure]]:
        return await self._batch(commits, lambda c: self._commit(full_name, c))

    async def _commit(self, full_name: str, commit: Commit) -> tuple[Commit, list[PartialFailure]]:
        failures: list[PartialFailure] = []
        detail = await self._attempt(
            "commit_detail",
            f"{full_name}@{commit.sha}",
            self.api.commit_detail(full_name, commit.sha),
            failures,
        )
        if detail is None:
            return commit, failures
        return commit.model_copy(update={"stats": detail.stats, "files": detail.files}), failures

    # ── user ───────────────────────────────────────────────────────────────

    async def enrich_user(self, user: User) -> tuple[User, list[PartialFailure]]:
        failures: list[PartialFailure] = []
        events, organizations, starred = await asyncio.gather(
            self._attempt("events", user.login, self.api.user_events(user.login), failures),
            self._attempt("organizations", user.login, self.api.user_organizations(), failures),
            self._attempt("starred", user.login, self.api.user_starred(), failures),
        )
        enriched = user.model_copy(
            update={
                "recent_events": events,
                "organizations": organizations,
                "starred_repos": starred,
            }
        )
        return enriched, failures

    # ── internal ───────────────────────────────────────────────────────────

    async def _batch(
        self,
        entities: Sequence[E],
        enrich: Callable[[E], Awaitable[tuple[E, list[PartialFailure]]]],
    ) -> tuple[list[E], list[PartialFailure]]:
        sem = asyncio.Semaphore(self.concurrency)

        async def _bounded(entity: E) -> tuple[E, list[PartialFailure]]:
            async with sem:
                return await enrich(entity)

        # gather keeps input order regardless of completion order
        results = await asyncio.gather(*(_bounded(e) for e in entities))
        items = [entity for entity, _ in results]
        failures = [f for _, entity_failures in results for f in entity_failures]
        if failures:
            log.warning("enrich.partial", entities=len(items), failures=len(failures))
        return items, failures

    @staticmethod
    async def _attempt(
        stage: str,
        target: str,
        call: Awaitable[T],
        failures: list[PartialFailure],
    ) -> T | None:
        try:
            return await call
        except GitHubError as exc:
            log.warning(f"enrich.{stage}_failed", target=target, error=str(exc))
            failures.append(PartialFailure(stage=stage, target=target, reason=str(exc)))
            return None
