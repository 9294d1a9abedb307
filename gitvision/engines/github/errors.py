"""Failure taxonomy for GitHub access."""

from __future__ import annotations

from dataclasses import dataclass


class GitHubError(Exception):
    """Base class for everything that can go wrong talking to GitHub."""


class MissingCredentialError(GitHubError):
    """No token is configured; no request was sent."""

    def __init__(self, message: str = "GitHub token is not configured") -> None:
        super().__init__(message)


class AuthError(GitHubError):
    """401, or 403 without rate-limit semantics. The token must be replaced."""

    def __init__(self, status: int, message: str = "") -> None:
        self.status = status
        super().__init__(message or f"GitHub rejected the token (HTTP {status})")


class RateLimitError(GitHubError):
    """Raised when the rate-limit backoff budget is used up."""

    def __init__(self, retry_after: float) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after:g}s")


class NotFoundError(GitHubError):
    """404 on a single-resource fetch."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"not found: {path}")


class NetworkError(GitHubError):
    """Transport-level failure, no HTTP response was received."""


class UpstreamError(GitHubError):
    """A non-2xx status that survived the bounded retries."""

    def __init__(self, status: int | None, message: str = "") -> None:
        self.status = status
        super().__init__(message or f"GitHub request failed (HTTP {status})")


class MalformedPayloadError(GitHubError):
    """A response body did not match the expected schema."""


@dataclass(frozen=True)
class PartialFailure:
    """A sub-step that failed without aborting the surrounding operation."""

    stage: str  # languages / contributors / commit_detail / page / ...
    target: str  # repo full name, sha or request path
    reason: str
