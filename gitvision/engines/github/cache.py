"""Time-bounded response memoization keyed by request URL."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

DEFAULT_TTL = 300.0  # seconds


class ResponseCache:
    """Payloads keyed by URL, each fresh for *ttl* seconds after ``set``.

    An entry whose age has reached the TTL is treated as absent. Safe to
    clear at any moment; a miss just means the next request goes upstream.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        payload, stored_at = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return payload

    def set(self, key: str, payload: Any) -> None:
        self._entries[key] = (payload, self._clock())

    def sweep_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, (_, ts) in self._entries.items() if now - ts >= self.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
