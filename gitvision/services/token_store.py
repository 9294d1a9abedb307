"""TokenStore: GitHub personal access token held in memory and persisted."""

from __future__ import annotations

from collections.abc import Callable

import structlog

from gitvision.core.store import TOKEN_KEY, KeyValueStore, StoreError
from gitvision.services import ValidationError

log = structlog.get_logger("gitvision.token")

# classic and fine-grained personal access tokens
TOKEN_PREFIXES = ("ghp_", "github_pat_")

TokenListener = Callable[[str | None], None]


def normalize_token(token: str) -> str:
    return token.strip()


def is_valid_token(token: str) -> bool:
    normalized = normalize_token(token)
    return bool(normalized) and normalized.startswith(TOKEN_PREFIXES)


class TokenStore:
    """The credential, cached in memory on top of a :class:`KeyValueStore`.

    *initial* seeds the in-memory value without persisting it (e.g. from
    ``GITHUB_TOKEN``). Listeners registered with :meth:`subscribe` run after
    every successful ``set`` or ``clear``.
    """

    def __init__(self, store: KeyValueStore, *, initial: str | None = None) -> None:
        self._store = store
        self._token: str | None = normalize_token(initial) if initial else None
        self._loaded = self._token is not None
        self._listeners: list[TokenListener] = []

    def get(self) -> str | None:
        """Current token, or ``None``. Never raises on storage failures."""
        if not self._loaded:
            try:
                self._token = self._store.get(TOKEN_KEY) or None
            except StoreError as exc:
                log.warning("token.store_unavailable", error=str(exc))
                return None
            self._loaded = True
        return self._token

    def set(self, token: str) -> str:
        """Validate, persist and return the normalized token."""
        normalized = normalize_token(token)
        if not is_valid_token(normalized):
            raise ValidationError(
                "token must start with " + " or ".join(repr(p) for p in TOKEN_PREFIXES)
            )
        try:
            self._store.set(TOKEN_KEY, normalized)
        except StoreError as exc:
            log.warning("token.persist_failed", error=str(exc))
        self._token = normalized
        self._loaded = True
        log.info("token.updated")
        self._notify(normalized)
        return normalized

    def clear(self) -> None:
        try:
            self._store.delete(TOKEN_KEY)
        except StoreError as exc:
            log.warning("token.persist_failed", error=str(exc))
        self._token = None
        self._loaded = True
        log.info("token.cleared")
        self._notify(None)

    def subscribe(self, listener: TokenListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, token: str | None) -> None:
        for listener in list(self._listeners):
            listener(token)
