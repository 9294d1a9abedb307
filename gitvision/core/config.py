"""Runtime settings read from ``GITVISION_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import structlog

log = structlog.get_logger("gitvision.config")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_STORE_PATH = Path("~/.config/gitvision/store.json")


def _env_float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("config.invalid_value", key=key, value=raw, default=default)
        return default


def _env_int(key: str, default: int) -> int:
    return int(_env_float(key, default))


@dataclass(frozen=True)
class Settings:
    """Tunables for the GitHub data layer.

    Defaults mirror GitHub's own limits: 100 items per page, a 5 minute
    response cache and a 30 second pause once the rate limit is hit.
    """

    api_base_url: str = DEFAULT_API_URL
    request_timeout: float = 30.0
    cache_ttl: float = 300.0
    cache_sweep_interval: float = 300.0
    page_size: int = 100
    max_pages: int = 20
    history_max_pages: int = 1000
    rate_limit_backoff: float = 30.0
    rate_limit_max_retries: int = 20
    transient_retries: int = 3
    transient_delay: float = 1.0
    enrich_concurrency: int = 10
    all_repos_limit: int = 10  # 0 = every held repository
    all_repos_delay: float = 0.3
    store_path: Path = field(default_factory=lambda: DEFAULT_STORE_PATH.expanduser())

    @classmethod
    def from_env(cls) -> Settings:
        store_path = os.environ.get("GITVISION_STORE_PATH")
        return cls(
            api_base_url=os.environ.get("GITVISION_API_URL", DEFAULT_API_URL).rstrip("/"),
            request_timeout=_env_float("GITVISION_REQUEST_TIMEOUT", 30.0),
            cache_ttl=_env_float("GITVISION_CACHE_TTL", 300.0),
            cache_sweep_interval=_env_float("GITVISION_CACHE_SWEEP_INTERVAL", 300.0),
            page_size=_env_int("GITVISION_PAGE_SIZE", 100),
            max_pages=_env_int("GITVISION_MAX_PAGES", 20),
            history_max_pages=_env_int("GITVISION_HISTORY_MAX_PAGES", 1000),
            rate_limit_backoff=_env_float("GITVISION_RATE_LIMIT_BACKOFF", 30.0),
            rate_limit_max_retries=_env_int("GITVISION_RATE_LIMIT_MAX_RETRIES", 20),
            transient_retries=_env_int("GITVISION_TRANSIENT_RETRIES", 3),
            transient_delay=_env_float("GITVISION_TRANSIENT_DELAY", 1.0),
            enrich_concurrency=_env_int("GITVISION_ENRICH_CONCURRENCY", 10),
            all_repos_limit=_env_int("GITVISION_ALL_REPOS_LIMIT", 10),
            all_repos_delay=_env_float("GITVISION_ALL_REPOS_DELAY", 0.3),
            store_path=(
                Path(store_path).expanduser()
                if store_path
                else DEFAULT_STORE_PATH.expanduser()
            ),
        )
