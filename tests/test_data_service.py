"""Tests for GitHubDataService: fetch contracts, token rotation and bulk history."""

from __future__ import annotations

import asyncio
import random
from dataclasses import replace
from datetime import timedelta

import httpx
import pytest

from conftest import NOW, TOKEN, FakeGitHub, commit_payload, repo_payload, user_payload
from gitvision.core.store import MemoryStore
from gitvision.engines.github.api import CommitQuery
from gitvision.engines.github.errors import AuthError, RateLimitError
from gitvision.engines.github.models import Repository
from gitvision.services.github_data_service import (
    GitHubDataService,
    describe_error,
    sort_by_recent_update,
)
from gitvision.services.token_store import TokenStore


def _repos(count: int) -> list[dict]:
    return [repo_payload(i, updated_at=NOW - timedelta(minutes=i)) for i in range(1, count + 1)]


def _hold(service: GitHubDataService, payloads: list[dict]) -> None:
    service.state.update_data(
        repositories=tuple(Repository.model_validate(p) for p in payloads)
    )


# ── TestHelpers ───────────────────────────────────────────────────────────


class TestHelpers:
    def test_sort_by_recent_update_ties_by_id(self):
        repos = [
            Repository.model_validate(repo_payload(3, updated_at=NOW)),
            Repository.model_validate(repo_payload(1, updated_at=NOW)),
            Repository.model_validate(repo_payload(2, updated_at=NOW + timedelta(seconds=1))),
        ]
        assert [r.id for r in sort_by_recent_update(repos)] == [2, 1, 3]

    def test_describe_error(self):
        assert "rejected" in describe_error(AuthError(401))
        assert "rate limit" in describe_error(RateLimitError(30))


# ── TestFetchRepositories ─────────────────────────────────────────────────


class TestFetchRepositories:
    @pytest.mark.asyncio
    async def test_190_repositories_sorted(self, service, github: FakeGitHub):
        payloads = _repos(190)
        random.Random(7).shuffle(payloads)
        github.paged("/user/repos", payloads)

        await service.fetch_repositories()

        repos = service.state.repositories
        assert len(repos) == 190
        stamps = [r.updated_at for r in repos]
        assert stamps == sorted(stamps, reverse=True)
        assert len(github.calls("/user/repos")) == 2
        assert service.state.loading.repositories is False
        assert service.state.errors.repositories == ""

    @pytest.mark.asyncio
    async def test_enrichment_failures_are_partial(self, service, github: FakeGitHub):
        github.paged("/user/repos", _repos(2))
        github.route("/repos/alice/repo-1/languages", {"Rust": 100})
        github.route("/repos/alice/repo-1/contributors", [])
        await service.fetch_repositories()
        by_id = {r.id: r for r in service.state.repositories}
        assert by_id[1].languages_data == {"Rust": 100}
        assert by_id[2].languages_data == {}
        assert by_id[2].contributors_data == []
        assert {f.target for f in service.state.data.partial_failures} == {"alice/repo-2"}
        assert service.state.errors.repositories == ""

    @pytest.mark.asyncio
    async def test_auth_failure_keeps_previous_data(self, service, github: FakeGitHub):
        github.paged("/user/repos", _repos(3))
        await service.fetch_repositories()
        assert len(service.state.repositories) == 3

        service.clear_cache()
        github.route("/user/repos", {"message": "Bad credentials"}, status=401)
        await service.fetch_repositories()

        assert len(service.state.repositories) == 3
        assert service.state.errors.repositories == (
            "GitHub rejected the token; replace it in settings"
        )
        assert service.state.loading.repositories is False

    @pytest.mark.asyncio
    async def test_missing_token(self, github: FakeGitHub, settings, no_sleep):
        svc = GitHubDataService(
            TokenStore(MemoryStore()), settings=settings, transport=github.transport, sleep=no_sleep
        )
        try:
            await svc.fetch_repositories()
        finally:
            await svc.close()
        assert svc.state.errors.repositories == "GitHub token is not configured"
        assert github.requests == []

    @pytest.mark.asyncio
    async def test_nothing_loaded_is_an_error(self, service, github: FakeGitHub):
        github.route("/user/repos", None, status=502)
        await service.fetch_repositories()
        assert service.state.repositories == ()
        assert "could not load /user/repos" in service.state.errors.repositories

    @pytest.mark.asyncio
    async def test_cached_second_fetch(self, service, github: FakeGitHub):
        github.paged("/user/repos", _repos(5))
        await service.fetch_repositories()
        await service.fetch_repositories()
        assert len(github.calls("/user/repos")) == 1


# ── TestTokenRotation ─────────────────────────────────────────────────────


class TestTokenRotation:
    @pytest.mark.asyncio
    async def test_update_token_clears_data_and_cache(self, service, github: FakeGitHub):
        github.paged("/user/repos", _repos(4))
        await service.fetch_repositories()
        assert len(service.http.cache) > 0

        service.update_token("ghp_replacement")

        assert service.state.repositories == ()
        assert len(service.http.cache) == 0
        assert service.has_token

    @pytest.mark.asyncio
    async def test_new_token_used_for_next_request(self, service, github: FakeGitHub):
        github.route("/user", user_payload())
        service.update_token("ghp_replacement")
        await service.fetch_user()
        assert github.calls("/user")[0].headers["Authorization"] == "token ghp_replacement"

    @pytest.mark.asyncio
    async def test_result_of_stale_fetch_dropped(self, service, github: FakeGitHub, token_store):
        def _rotate_mid_flight(_req: httpx.Request) -> httpx.Response:
            token_store.set("ghp_rotated")
            return httpx.Response(200, json=_repos(2))

        github.handle("/user/repos", _rotate_mid_flight)
        await service.fetch_repositories()
        assert service.state.repositories == ()
        assert service.state.loading.repositories is False

    @pytest.mark.asyncio
    async def test_clear_token(self, service):
        service.clear_token()
        assert not service.has_token


# ── TestFetchCommits ──────────────────────────────────────────────────────


class TestFetchCommits:
    @pytest.mark.asyncio
    async def test_commits_enriched_with_stats(self, service, github: FakeGitHub):
        github.paged("/repos/alice/web/commits", [commit_payload("c1"), commit_payload("c2")])
        github.route(
            "/repos/alice/web/commits/c1",
            {**commit_payload("c1"), "stats": {"additions": 3, "deletions": 1, "total": 4}},
        )
        await service.fetch_commits("alice/web")
        commits = service.state.commits
        assert [c.sha for c in commits] == ["c1", "c2"]
        assert commits[0].stats.additions == 3
        assert commits[1].stats is None
        assert github.calls("/repos/alice/web/commits")[0].url.params["sha"] == "main"
        assert len(service.state.data.partial_failures) == 1

    @pytest.mark.asyncio
    async def test_query_passed_through(self, service, github: FakeGitHub):
        github.paged("/repos/alice/web/commits", [])
        await service.fetch_commits("alice/web", "dev", CommitQuery(author="bob", per_page=10))
        params = github.calls("/repos/alice/web/commits")[0].url.params
        assert params["sha"] == "dev"
        assert params["author"] == "bob"
        assert params["per_page"] == "10"

    @pytest.mark.asyncio
    async def test_unknown_branch_keeps_commits_without_error(self, service, github: FakeGitHub):
        github.paged("/repos/alice/web/commits", [commit_payload("c1")])
        await service.fetch_commits("alice/web")
        await service.fetch_commits("alice/nope", "missing")
        assert [c.sha for c in service.state.commits] == ["c1"]
        assert service.state.errors.commits == ""
        assert service.state.loading.commits is False

    @pytest.mark.asyncio
    async def test_not_found_after_first_page_keeps_collected(self, service, github: FakeGitHub):
        def _pages(req: httpx.Request) -> httpx.Response:
            if req.url.params.get("page", "1") != "1":
                return httpx.Response(404, json={"message": "Not Found"})
            size = int(req.url.params["per_page"])
            return httpx.Response(200, json=[commit_payload(f"c{i}") for i in range(size)])

        github.handle("/repos/alice/web/commits", _pages)
        await service.fetch_commits("alice/web")
        assert len(service.state.commits) == int(
            github.calls("/repos/alice/web/commits")[0].url.params["per_page"]
        )
        assert len(github.calls("/repos/alice/web/commits")) == 2
        assert service.state.errors.commits == ""


# ── TestFetchUser ─────────────────────────────────────────────────────────


class TestFetchUser:
    @pytest.mark.asyncio
    async def test_user_with_side_data(self, service, github: FakeGitHub):
        github.route("/user", user_payload())
        github.route("/user/orgs", [{"login": "acme", "id": 2}])
        await service.fetch_user()
        user = service.state.user
        assert user.login == "alice"
        assert user.organizations[0].login == "acme"
        assert user.recent_events is None
        assert service.state.errors.user == ""

    @pytest.mark.asyncio
    async def test_rate_limited_user(self, github: FakeGitHub, settings, token_store, no_sleep):
        svc = GitHubDataService(
            token_store,
            settings=replace(settings, rate_limit_max_retries=2),
            transport=github.transport,
            sleep=no_sleep,
        )
        github.route(
            "/user",
            {"message": "API rate limit exceeded"},
            status=403,
            headers={"X-RateLimit-Remaining": "0"},
        )
        try:
            await svc.fetch_user()
        finally:
            await svc.close()
        assert svc.state.errors.user == "GitHub rate limit exceeded; try again later"
        assert no_sleep.await_count == 2


# ── TestAllRepositoriesCommits ────────────────────────────────────────────


class TestAllRepositoriesCommits:
    @pytest.mark.asyncio
    async def test_scans_most_recent_repositories_only(self, service, github: FakeGitHub, no_sleep):
        payloads = _repos(12)
        _hold(service, payloads)
        for i, p in enumerate(payloads):
            github.paged(
                f"/repos/{p['full_name']}/commits",
                [commit_payload(f"s{p['id']}", date=NOW - timedelta(hours=i))],
            )

        await service.fetch_all_repositories_commits()

        scanned = {r.url.path for r in github.requests}
        assert len(scanned) == 10
        assert "/repos/alice/repo-11/commits" not in scanned
        all_commits = service.state.data.all_commits
        assert len(all_commits) == 10
        assert all_commits[0].sha == "s1"
        assert all_commits[0].repository.full_name == "alice/repo-1"
        stamps = [c.authored_at for c in all_commits]
        assert stamps == sorted(stamps, reverse=True)
        assert no_sleep.await_count == 9
        assert service.state.loading.all_commits is False

    @pytest.mark.asyncio
    async def test_explicit_limit_zero_scans_everything(self, service, github: FakeGitHub):
        payloads = _repos(12)
        _hold(service, payloads)
        for p in payloads:
            github.paged(f"/repos/{p['full_name']}/commits", [])
        await service.fetch_all_repositories_commits(limit=0)
        assert len(github.requests) == 12

    @pytest.mark.asyncio
    async def test_uses_default_branch(self, service, github: FakeGitHub):
        _hold(service, [repo_payload(1, "web", default_branch="trunk")])
        github.paged("/repos/alice/web/commits", [])
        await service.fetch_all_repositories_commits()
        assert github.requests[0].url.params["sha"] == "trunk"

    @pytest.mark.asyncio
    async def test_failing_repository_skipped(self, service, github: FakeGitHub):
        _hold(service, _repos(2))
        github.route("/repos/alice/repo-1/commits", None, status=500)
        github.paged("/repos/alice/repo-2/commits", [commit_payload("ok")])
        await service.fetch_all_repositories_commits()
        assert [c.sha for c in service.state.data.all_commits] == ["ok"]
        assert [f.target for f in service.state.data.partial_failures] == ["alice/repo-1"]
        assert service.state.errors.commits == ""

    @pytest.mark.asyncio
    async def test_auth_failure_aborts(self, service, github: FakeGitHub):
        _hold(service, _repos(2))
        github.route("/repos/alice/repo-1/commits", {"message": "Bad credentials"}, status=401)
        await service.fetch_all_repositories_commits()
        assert service.state.data.all_commits == ()
        assert "rejected" in service.state.errors.commits
        assert len(github.requests) == 1

    @pytest.mark.asyncio
    async def test_concurrent_call_is_ignored(self, github: FakeGitHub, settings):
        svc = GitHubDataService(
            TokenStore(MemoryStore(), initial=TOKEN),
            settings=settings,
            transport=github.transport,
            sleep=asyncio.sleep,
        )
        payloads = _repos(2)
        _hold(svc, payloads)
        for p in payloads:
            github.paged(f"/repos/{p['full_name']}/commits", [commit_payload(f"s{p['id']}")])
        try:
            await asyncio.gather(
                svc.fetch_all_repositories_commits(), svc.fetch_all_repositories_commits()
            )
        finally:
            await svc.close()
        assert len(github.requests) == 2
        assert len(svc.state.data.all_commits) == 2

    @pytest.mark.asyncio
    async def test_no_repositories(self, service, github: FakeGitHub):
        await service.fetch_all_repositories_commits()
        assert service.state.data.all_commits == ()
        assert github.requests == []


# ── TestRefreshAll ────────────────────────────────────────────────────────


class TestRefreshAll:
    @pytest.mark.asyncio
    async def test_success(self, service, github: FakeGitHub):
        github.route("/user", user_payload())
        github.paged("/user/repos", _repos(3))
        await service.refresh_all()
        assert service.state.user.login == "alice"
        assert len(service.state.repositories) == 3
        assert service.state.errors.error == ""
        assert service.state.loading.loading is False

    @pytest.mark.asyncio
    async def test_failure_sets_global_error(self, service, github: FakeGitHub):
        github.route("/user", {"message": "Bad credentials"}, status=401)
        github.paged("/user/repos", _repos(1))
        await service.refresh_all()
        assert service.state.errors.error == "failed to refresh dashboard data"
        assert service.state.errors.user != ""
        assert len(service.state.repositories) == 1

    @pytest.mark.asyncio
    async def test_bypasses_cache(self, service, github: FakeGitHub):
        github.route("/user", user_payload())
        github.paged("/user/repos", [])
        await service.refresh_all()
        await service.refresh_all()
        assert len(github.calls("/user")) == 2


# ── TestLookups ───────────────────────────────────────────────────────────


class TestLookups:
    @pytest.mark.asyncio
    async def test_search_failure_returns_empty(self, service, github: FakeGitHub):
        github.route("/search/repositories", {"message": "Validation Failed"}, status=422)
        assert await service.search_repositories("x") == []

    @pytest.mark.asyncio
    async def test_branches_stored(self, service, github: FakeGitHub):
        github.route("/repos/a/b/branches", [{"name": "main"}, {"name": "dev"}])
        branches = await service.fetch_branches("a/b")
        assert [b.name for b in branches] == ["main", "dev"]
        assert [b.name for b in service.state.data.branches] == ["main", "dev"]

    @pytest.mark.asyncio
    async def test_languages_names(self, service, github: FakeGitHub):
        github.route("/repos/a/b/languages", {"Python": 10, "C": 5})
        assert await service.fetch_languages("a/b") == ["Python", "C"]
        assert service.state.data.languages == ("Python", "C")

    @pytest.mark.asyncio
    async def test_collection_lookups(self, service, github: FakeGitHub):
        github.route("/repos/a/b/tags", [{"name": "v1"}])
        github.route("/repos/a/b/releases", [{"tag_name": "v1"}])
        github.route("/repos/a/b/pulls", [{"number": 2}])
        github.route("/repos/a/b/collaborators", [{"login": "bob", "id": 3}])
        assert await service.fetch_tags("a/b") == [{"name": "v1"}]
        assert await service.fetch_releases("a/b") == [{"tag_name": "v1"}]
        assert await service.fetch_pull_requests("a/b") == [{"number": 2}]
        assert await service.fetch_issues("a/b") == []
        assert [p.login for p in await service.fetch_collaborators("a/b")] == ["bob"]
        assert service.state.data.tags == ({"name": "v1"},)

    @pytest.mark.asyncio
    async def test_commit_details_missing(self, service):
        assert await service.fetch_commit_details("a/b", "nope") is None

    @pytest.mark.asyncio
    async def test_contents(self, service, github: FakeGitHub):
        github.route("/repos/a/b/contents/src", [{"name": "main.py"}])
        assert await service.get_repository_contents("a/b", "src") == [{"name": "main.py"}]

    @pytest.mark.asyncio
    async def test_repository_stats(self, service, github: FakeGitHub):
        github.route("/repos/a/b/stats/code_frequency", [[1700000000, 10, -2]])
        github.route("/repos/a/b/stats/punch_card", None, status=202)
        stats = await service.fetch_repository_stats("a/b")
        assert stats == {
            "code_frequency": [[1700000000, 10, -2]],
            "participation": None,
            "punch_card": None,
        }

    @pytest.mark.asyncio
    async def test_individual_stats(self, service, github: FakeGitHub):
        github.route("/repos/a/b/stats/contributors", [{"total": 5}])
        github.route("/repos/a/b/stats/punch_card", [[0, 0, 1]])
        assert await service.fetch_contributor_stats("a/b") == [{"total": 5}]
        assert await service.fetch_punch_card("a/b") == [[0, 0, 1]]
        assert await service.fetch_code_frequency("a/b") is None


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_runs_sweeper(self, github: FakeGitHub, settings, token_store):
        async with GitHubDataService(
            token_store, settings=settings, transport=github.transport
        ) as svc:
            assert svc.sweeper.running
        assert not svc.sweeper.running
