"""GitHub access engine: cached, paginated, rate-limit-aware REST reads."""

from gitvision.engines.github.api import CommitQuery, GitHubAPI
from gitvision.engines.github.cache import ResponseCache
from gitvision.engines.github.enricher import EntityEnricher
from gitvision.engines.github.errors import (
    AuthError,
    GitHubError,
    MalformedPayloadError,
    MissingCredentialError,
    NetworkError,
    NotFoundError,
    PartialFailure,
    RateLimitError,
    UpstreamError,
)
from gitvision.engines.github.http_client import GitHubResponse, HttpClient
from gitvision.engines.github.paginator import PageResult, PaginatedFetcher
from gitvision.engines.github.rate_limit import (
    FetchOutcome,
    RateLimitHandler,
    RetryPolicy,
    RetryState,
)

__all__ = [
    "AuthError",
    "CommitQuery",
    "EntityEnricher",
    "FetchOutcome",
    "GitHubAPI",
    "GitHubError",
    "GitHubResponse",
    "HttpClient",
    "MalformedPayloadError",
    "MissingCredentialError",
    "NetworkError",
    "NotFoundError",
    "PageResult",
    "PaginatedFetcher",
    "PartialFailure",
    "RateLimitError",
    "RateLimitHandler",
    "ResponseCache",
    "RetryPolicy",
    "RetryState",
    "UpstreamError",
]
