"""Typed GitHub entities decoded from REST v3 payloads.

Only the fields the dashboard reads are declared; everything else in a
payload is ignored. Models are frozen, enrichment produces new copies via
``model_copy(update=...)``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class GitHubModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class Account(GitHubModel):
    login: str
    id: int
    avatar_url: str = ""
    html_url: str = ""
    type: str = "User"


class Contributor(Account):
    contributions: int = 0


class License(GitHubModel):
    key: str | None = None
    name: str | None = None
    spdx_id: str | None = None


class Repository(GitHubModel):
    id: int
    name: str
    full_name: str
    html_url: str = ""
    description: str | None = None
    private: bool = False
    visibility: str = "public"
    fork: bool = False
    archived: bool = False
    is_template: bool = False
    created_at: datetime
    updated_at: datetime
    pushed_at: datetime | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    watchers_count: int = 0
    size: int = 0  # KB
    language: str | None = None
    open_issues_count: int = 0
    default_branch: str = "main"
    topics: list[str] = []
    owner: Account | None = None
    license: License | None = None

    # enrichment
    languages_data: dict[str, int] | None = None
    contributors_data: list[Contributor] | None = None
    contributor_count: int | None = None

    @property
    def last_activity(self) -> datetime:
        """Most recent of push and update time."""
        if self.pushed_at is not None and self.pushed_at > self.updated_at:
            return self.pushed_at
        return self.updated_at


class RepositoryRef(GitHubModel):
    """Source repository stamped on commits gathered across repositories."""

    name: str
    full_name: str
    html_url: str = ""


class GitIdentity(GitHubModel):
    name: str = ""
    email: str = ""
    date: datetime


class CommitDetail(GitHubModel):
    author: GitIdentity
    committer: GitIdentity | None = None
    message: str = ""
    comment_count: int = 0


class ParentRef(GitHubModel):
    sha: str
    html_url: str = ""


class CommitStats(GitHubModel):
    additions: int = 0
    deletions: int = 0
    total: int = 0


class CommitFile(GitHubModel):
    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None
    previous_filename: str | None = None


class Commit(GitHubModel):
    sha: str
    commit: CommitDetail
    html_url: str = ""
    author: Account | None = None
    committer: Account | None = None
    parents: list[ParentRef] = []

    # enrichment
    stats: CommitStats | None = None
    files: list[CommitFile] | None = None
    repository: RepositoryRef | None = None

    @property
    def message(self) -> str:
        return self.commit.message

    @property
    def summary(self) -> str:
        return self.commit.message.split("\n", 1)[0]

    @property
    def body(self) -> str:
        parts = self.commit.message.split("\n", 1)
        return parts[1].strip() if len(parts) > 1 else ""

    @property
    def author_name(self) -> str:
        return self.commit.author.name

    @property
    def author_login(self) -> str | None:
        return self.author.login if self.author is not None else None

    @property
    def authored_at(self) -> datetime:
        return self.commit.author.date


class EventRepo(GitHubModel):
    id: int
    name: str
    url: str = ""


class Event(GitHubModel):
    id: str
    type: str | None = None
    actor: Account | None = None
    repo: EventRepo | None = None
    payload: dict[str, Any] = {}
    public: bool = True
    created_at: datetime | None = None


class Organization(GitHubModel):
    login: str
    id: int
    avatar_url: str = ""
    description: str | None = None
    url: str = ""


class User(GitHubModel):
    login: str
    id: int
    name: str | None = None
    avatar_url: str = ""
    html_url: str = ""
    company: str | None = None
    blog: str | None = None
    location: str | None = None
    email: str | None = None
    bio: str | None = None
    public_repos: int = 0
    public_gists: int = 0
    followers: int = 0
    following: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # enrichment
    recent_events: list[Event] | None = None
    organizations: list[Organization] | None = None
    starred_repos: list[Repository] | None = None


class BranchCommit(GitHubModel):
    sha: str
    url: str = ""


class Branch(GitHubModel):
    name: str
    commit: BranchCommit | None = None
    protected: bool = False
