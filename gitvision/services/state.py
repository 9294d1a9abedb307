"""Dashboard state: immutable snapshots swapped atomically by the data service.

Consumers read through the properties and may :meth:`DashboardState.subscribe`;
only :class:`~gitvision.services.github_data_service.GitHubDataService`
calls the ``update_*`` / ``reset`` methods.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import structlog

from gitvision.engines.github.errors import PartialFailure
from gitvision.engines.github.models import Account, Branch, Commit, Repository, User

log = structlog.get_logger("gitvision.state")


@dataclass(frozen=True)
class DataState:
    repositories: tuple[Repository, ...] = ()
    commits: tuple[Commit, ...] = ()
    all_commits: tuple[Commit, ...] = ()
    user: User | None = None
    branches: tuple[Branch, ...] = ()
    collaborators: tuple[Account, ...] = ()
    languages: tuple[str, ...] = ()
    tags: tuple[dict[str, Any], ...] = ()
    releases: tuple[dict[str, Any], ...] = ()
    issues: tuple[dict[str, Any], ...] = ()
    pull_requests: tuple[dict[str, Any], ...] = ()
    partial_failures: tuple[PartialFailure, ...] = ()


@dataclass(frozen=True)
class LoadingState:
    loading: bool = False
    repositories: bool = False
    commits: bool = False
    user: bool = False
    all_commits: bool = False


@dataclass(frozen=True)
class ErrorState:
    """Human-readable messages; empty string means no error."""

    error: str = ""
    repositories: str = ""
    commits: str = ""
    user: str = ""


StateListener = Callable[["DashboardState"], None]


class DashboardState:
    def __init__(self) -> None:
        self._data = DataState()
        self._loading = LoadingState()
        self._errors = ErrorState()
        self._listeners: list[StateListener] = []

    # ── read ───────────────────────────────────────────────────────────────

    @property
    def data(self) -> DataState:
        return self._data

    @property
    def loading(self) -> LoadingState:
        return self._loading

    @property
    def errors(self) -> ErrorState:
        return self._errors

    @property
    def repositories(self) -> tuple[Repository, ...]:
        return self._data.repositories

    @property
    def commits(self) -> tuple[Commit, ...]:
        return self._data.commits

    @property
    def user(self) -> User | None:
        return self._data.user

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── write (data service only) ──────────────────────────────────────────

    def update_data(self, **changes: Any) -> None:
        self._data = replace(self._data, **changes)
        self._notify()

    def update_loading(self, **changes: bool) -> None:
        self._loading = replace(self._loading, **changes)
        self._notify()

    def update_errors(self, **changes: str) -> None:
        self._errors = replace(self._errors, **changes)
        self._notify()

    def clear_errors(self) -> None:
        self._errors = ErrorState()
        self._notify()

    def reset(self) -> None:
        """Drop all held data and errors; loading flags are left to their owners."""
        self._data = DataState()
        self._errors = ErrorState()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                log.debug("state.listener_failed", exc_info=True)
