"""Retry state machine wrapped around a single GitHub GET.

States::

    FETCHING ──2xx──────────────▶ SUCCEEDED
        │  ──404──────────────▶ NOT_FOUND
        │  ──rate limited─────▶ BACKING_OFF (fixed backoff) ──▶ FETCHING
        │  ──5xx / network────▶ BACKING_OFF (short delay)   ──▶ FETCHING
        │                         └─ transient budget spent ──▶ SKIPPED
        └─ 401 / plain 403 ───▶ AuthError

Rate-limit backoffs and transient retries are counted separately, so each
ceiling can be tuned and tested on its own.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from gitvision.engines.github.errors import AuthError, NetworkError, RateLimitError
from gitvision.engines.github.http_client import GitHubResponse, HttpClient

log = structlog.get_logger("gitvision.github")

Sleep = Callable[[float], Awaitable[Any]]


class RetryState(str, enum.Enum):
    FETCHING = "fetching"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"


_TERMINAL = frozenset({RetryState.SUCCEEDED, RetryState.SKIPPED, RetryState.NOT_FOUND})


@dataclass(frozen=True)
class RetryPolicy:
    rate_limit_backoff: float = 30.0  # seconds
    max_rate_limit_retries: int = 20
    transient_retries: int = 3
    transient_delay: float = 1.0  # seconds


@dataclass
class FetchOutcome:
    """Where the state machine ended up for one request."""

    state: RetryState = RetryState.FETCHING
    response: GitHubResponse | None = None
    attempts: int = 0
    rate_limit_retries: int = 0
    transient_failures: int = 0
    status: int | None = None  # last HTTP status seen, None for network errors
    error: str | None = None

    @property
    def done(self) -> bool:
        return self.state in _TERMINAL

    @property
    def body(self) -> Any:
        return self.response.body if self.response is not None else None


class RateLimitHandler:
    """Drive :class:`HttpClient` requests through :class:`RetryState`."""

    def __init__(
        self,
        http: HttpClient,
        policy: RetryPolicy | None = None,
        *,
        sleep: Sleep | None = None,
    ) -> None:
        self.http = http
        self.policy = policy or RetryPolicy()
        self._sleep: Sleep = sleep or asyncio.sleep

    async def fetch(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        use_cache: bool = True,
    ) -> FetchOutcome:
        """Fetch *path* until it succeeds, is missing, or is given up on.

        Raises :class:`AuthError` on credential rejection and
        :class:`RateLimitError` once the backoff budget is spent.
        ``MissingCredentialError`` from the client propagates untouched.
        """
        outcome = FetchOutcome()
        delay = 0.0
        while not outcome.done:
            if outcome.state is RetryState.BACKING_OFF:
                await self._sleep(delay)
                outcome.state = RetryState.FETCHING
            outcome.attempts += 1
            try:
                response = await self.http.get(path, params, use_cache=use_cache)
            except NetworkError as exc:
                delay = self._on_transient(outcome, path, None, str(exc))
            else:
                delay = self._on_response(outcome, path, response)
        return outcome

    # ── transitions ────────────────────────────────────────────────────────

    def _on_response(self, outcome: FetchOutcome, path: str, response: GitHubResponse) -> float:
        outcome.status = response.status
        outcome.response = response

        if response.ok:
            outcome.state = RetryState.SUCCEEDED
            return 0.0

        if response.status == 404:
            outcome.state = RetryState.NOT_FOUND
            return 0.0

        if response.status in (403, 429) and self.is_rate_limited(response):
            wait = self.backoff_for(response)
            outcome.rate_limit_retries += 1
            if outcome.rate_limit_retries > self.policy.max_rate_limit_retries:
                log.error(
                    "github.rate_limit_exhausted",
                    path=path,
                    retries=outcome.rate_limit_retries - 1,
                )
                raise RateLimitError(wait)
            log.warning(
                "github.rate_limit",
                path=path,
                wait_seconds=wait,
                attempt=outcome.rate_limit_retries,
                max_retries=self.policy.max_rate_limit_retries,
            )
            outcome.state = RetryState.BACKING_OFF
            return wait

        if response.status in (401, 403):
            raise AuthError(response.status, response.text)

        return self._on_transient(outcome, path, response.status, f"HTTP {response.status}")

    def _on_transient(
        self, outcome: FetchOutcome, path: str, status: int | None, reason: str
    ) -> float:
        outcome.transient_failures += 1
        outcome.status = status
        outcome.error = reason
        if outcome.transient_failures >= self.policy.transient_retries:
            log.warning(
                "github.request_skipped",
                path=path,
                status=status,
                reason=reason,
                attempts=outcome.attempts,
            )
            outcome.state = RetryState.SKIPPED
            return 0.0
        log.warning(
            "github.transient_error",
            path=path,
            status=status,
            reason=reason,
            attempt=outcome.transient_failures,
            max_retries=self.policy.transient_retries,
        )
        outcome.state = RetryState.BACKING_OFF
        return self.policy.transient_delay

    # ── rate-limit detection ───────────────────────────────────────────────

    @staticmethod
    def is_rate_limited(response: GitHubResponse) -> bool:
        """Check if a 403/429 response is due to rate limiting."""
        remaining = _parse_header_int(response.headers.get("X-RateLimit-Remaining"))
        if remaining == 0:
            return True
        # GitHub also uses Retry-After for secondary rate limits
        if "Retry-After" in response.headers:
            return True
        return "rate limit" in response.text.lower()

    def backoff_for(self, response: GitHubResponse) -> float:
        """Honour ``Retry-After`` when GitHub sends one, else the fixed backoff."""
        retry_after = _parse_header_int(response.headers.get("Retry-After"))
        if retry_after is not None and retry_after > 0:
            return float(retry_after)
        return self.policy.rate_limit_backoff


def _parse_header_int(value: str | None) -> int | None:
    """Safely parse an integer header value."""
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None
