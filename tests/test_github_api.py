"""Tests for endpoint-level calls and payload decoding."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from conftest import FakeGitHub, commit_payload, repo_payload, user_payload
from gitvision.engines.github.api import CommitQuery, GitHubAPI, decode_many, decode_one
from gitvision.engines.github.errors import (
    MalformedPayloadError,
    NetworkError,
    NotFoundError,
    UpstreamError,
)
from gitvision.engines.github.models import Commit, Repository, User


@pytest.fixture
def api(http, no_sleep) -> GitHubAPI:
    return GitHubAPI(http, sleep=no_sleep)


# ── TestDecoding ──────────────────────────────────────────────────────────


class TestDecoding:
    def test_decode_many_drops_malformed_items(self):
        payload = [repo_payload(1), {"id": "nope"}, repo_payload(2)]
        repos = decode_many(Repository, payload, "/user/repos")
        assert [r.id for r in repos] == [1, 2]

    def test_decode_many_non_list(self):
        assert decode_many(Repository, {"message": "x"}, "/user/repos") == []

    def test_decode_one_raises(self):
        with pytest.raises(MalformedPayloadError):
            decode_one(User, {"name": "no login"}, "/user")

    def test_unknown_fields_ignored(self):
        user = decode_one(User, {**user_payload(), "plan": {"name": "pro"}}, "/user")
        assert user.login == "alice"

    def test_commit_derived_fields(self):
        commit = Commit.model_validate(
            commit_payload("abc", "feat: add thing\n\nLonger body here", author="Bob", login="bob")
        )
        assert commit.summary == "feat: add thing"
        assert commit.body == "Longer body here"
        assert commit.author_name == "Bob"
        assert commit.author_login == "bob"

    def test_repository_last_activity(self):
        updated = datetime(2026, 1, 1, tzinfo=timezone.utc)
        pushed = datetime(2026, 2, 1, tzinfo=timezone.utc)
        repo = Repository.model_validate(repo_payload(1, updated_at=updated, pushed_at=pushed))
        assert repo.last_activity == pushed


# ── TestSingleResource ────────────────────────────────────────────────────


class TestSingleResource:
    @pytest.mark.asyncio
    async def test_current_user(self, api, github: FakeGitHub):
        github.route("/user", user_payload())
        user = await api.current_user()
        assert user.login == "alice"
        assert user.public_repos == 190

    @pytest.mark.asyncio
    async def test_not_found_raises(self, api):
        with pytest.raises(NotFoundError):
            await api.commit_detail("a/b", "deadbeef")

    @pytest.mark.asyncio
    async def test_server_error_after_retries(self, api, github: FakeGitHub):
        github.route("/user", None, status=503)
        with pytest.raises(UpstreamError) as exc_info:
            await api.current_user()
        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_network_failure_after_retries(self, no_sleep):
        from gitvision.engines.github.http_client import HttpClient

        def _down(request):
            raise httpx.ConnectError("down", request=request)

        client = HttpClient(lambda: "ghp_x", transport=httpx.MockTransport(_down))
        try:
            with pytest.raises(NetworkError):
                await GitHubAPI(client, sleep=no_sleep).current_user()
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_commit_detail_includes_stats_and_files(self, api, github: FakeGitHub):
        github.route(
            "/repos/a/b/commits/abc",
            {
                **commit_payload("abc"),
                "stats": {"additions": 10, "deletions": 2, "total": 12},
                "files": [{"filename": "x.py", "additions": 10, "deletions": 2}],
            },
        )
        commit = await api.commit_detail("a/b", "abc")
        assert commit.stats.additions == 10
        assert commit.files[0].filename == "x.py"

    @pytest.mark.asyncio
    async def test_languages(self, api, github: FakeGitHub):
        github.route("/repos/a/b/languages", {"Python": 1200, "Shell": 40})
        assert await api.repository_languages("a/b") == {"Python": 1200, "Shell": 40}

    @pytest.mark.asyncio
    async def test_contributors_empty_repository(self, api, github: FakeGitHub):
        github.route("/repos/a/b/contributors", None, status=204)
        assert await api.repository_contributors("a/b") == []

    @pytest.mark.asyncio
    async def test_contributors_limit(self, api, github: FakeGitHub):
        github.route("/repos/a/b/contributors", [{"login": "x", "id": 1, "contributions": 9}])
        people = await api.repository_contributors("a/b", limit=5)
        assert people[0].contributions == 9
        assert github.requests[0].url.params["per_page"] == "5"


# ── TestListEndpoints ─────────────────────────────────────────────────────


class TestListEndpoints:
    @pytest.mark.asyncio
    async def test_list_repositories_sorted_by_update(self, api, github: FakeGitHub):
        github.paged("/user/repos", [repo_payload(i) for i in range(3)])
        page = await api.list_repositories()
        assert [r.id for r in page.items] == [0, 1, 2]
        assert github.requests[0].url.params["sort"] == "updated"

    @pytest.mark.asyncio
    async def test_list_commits_query(self, api, github: FakeGitHub):
        github.paged("/repos/a/b/commits", [commit_payload("s1")])
        since = datetime(2026, 1, 1, tzinfo=timezone.utc)
        page = await api.list_commits(
            "a/b", "dev", CommitQuery(since=since, author="alice", per_page=50, page=3)
        )
        params = github.requests[0].url.params
        assert params["sha"] == "dev"
        assert params["since"] == since.isoformat()
        assert params["author"] == "alice"
        assert params["per_page"] == "50"
        assert params["page"] == "3"
        assert "until" not in params
        assert page.items == []  # page 3 of a one-item history

    @pytest.mark.asyncio
    async def test_list_commits_unknown_branch(self, api):
        page = await api.list_commits("a/b", "nope")
        assert page.not_found

    @pytest.mark.asyncio
    async def test_search_reads_items(self, api, github: FakeGitHub):
        github.route(
            "/search/repositories", {"total_count": 1, "items": [repo_payload(9, "found")]}
        )
        repos = await api.search_repositories("found", per_page=10)
        assert [r.name for r in repos] == ["found"]
        params = github.requests[0].url.params
        assert params["q"] == "found"
        assert params["sort"] == "stars"
        assert params["per_page"] == "10"

    @pytest.mark.asyncio
    async def test_contents_single_file_wrapped(self, api, github: FakeGitHub):
        github.route("/repos/a/b/contents/README.md", {"name": "README.md", "type": "file"})
        entries = await api.repository_contents("a/b", "README.md")
        assert entries == [{"name": "README.md", "type": "file"}]
        assert github.requests[0].url.params["ref"] == "main"

    @pytest.mark.asyncio
    async def test_contents_directory(self, api, github: FakeGitHub):
        github.route("/repos/a/b/contents/", [{"name": "src"}, {"name": "setup.cfg"}])
        entries = await api.repository_contents("a/b")
        assert [e["name"] for e in entries] == ["src", "setup.cfg"]

    @pytest.mark.asyncio
    async def test_branches(self, api, github: FakeGitHub):
        github.route("/repos/a/b/branches", [{"name": "main", "commit": {"sha": "x"}}])
        branches = await api.branches("a/b")
        assert branches[0].name == "main"

    @pytest.mark.asyncio
    async def test_issues_state(self, api, github: FakeGitHub):
        github.route("/repos/a/b/issues", [{"number": 1}, "junk"])
        issues = await api.issues("a/b", state="closed")
        assert issues == [{"number": 1}]
        assert github.requests[0].url.params["state"] == "closed"

    @pytest.mark.asyncio
    async def test_raw_list_rejects_objects(self, api, github: FakeGitHub):
        github.route("/repos/a/b/tags", {"message": "odd"})
        with pytest.raises(MalformedPayloadError):
            await api.tags("a/b")

    @pytest.mark.asyncio
    async def test_stats_pending_is_none(self, api, github: FakeGitHub):
        github.route("/repos/a/b/stats/code_frequency", None, status=202)
        assert await api.repository_stat("a/b", "code_frequency") is None

    @pytest.mark.asyncio
    async def test_user_side_lists(self, api, github: FakeGitHub):
        github.route(
            "/users/alice/events/public",
            [{"id": "1", "type": "PushEvent", "repo": {"id": 1, "name": "alice/x"}}],
        )
        github.route("/user/orgs", [{"login": "acme", "id": 5}])
        github.route("/user/starred", [repo_payload(3)])
        assert (await api.user_events("alice"))[0].type == "PushEvent"
        assert (await api.user_organizations())[0].login == "acme"
        assert (await api.user_starred())[0].id == 3
