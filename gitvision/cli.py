"""CLI entry point: gitvision.

Subcommands:
    gitvision token set ghp_xxx           # Store a personal access token
    gitvision repos --period 3M           # Repository overview
    gitvision commits owner/repo          # Filtered commit listing
    gitvision analytics owner/repo        # Commit statistics
    gitvision user                        # Authenticated profile
    gitvision settings export -o f.json   # Preferences backup
    gitvision serve --port 8000           # REST API
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path

import click

from gitvision.core.config import Settings
from gitvision.core.logging import setup_logging
from gitvision.core.store import JsonFileStore, StoreError
from gitvision.engines.analytics.commits import SORT_KEYS, apply_filters, summarize
from gitvision.engines.analytics.models import CommitFilter
from gitvision.engines.analytics.repositories import (
    PERIOD_MONTHS,
    filter_repositories_by_period,
    language_breakdown,
    repository_totals,
)
from gitvision.services import ValidationError
from gitvision.services.github_data_service import GitHubDataService
from gitvision.services.preferences import (
    PreferencesStore,
    export_preferences,
    import_preferences,
)
from gitvision.services.token_store import TokenStore


def _store(settings: Settings) -> JsonFileStore:
    return JsonFileStore(settings.store_path)


def _build_service(settings: Settings) -> GitHubDataService:
    """Data service over the on-disk store; ``GITHUB_TOKEN`` seeds the token."""
    tokens = TokenStore(_store(settings), initial=os.environ.get("GITHUB_TOKEN"))
    return GitHubDataService(tokens, settings=settings)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _dump(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """GitVision: GitHub account analytics from the command line."""
    setup_logging("DEBUG" if verbose else os.environ.get("GITVISION_LOG_LEVEL", "WARNING"))
    ctx.obj = Settings.from_env()


# ── token ──


@main.group()
def token() -> None:
    """Manage the GitHub personal access token."""


@token.command("set")
@click.argument("value")
@click.pass_obj
def token_set(settings: Settings, value: str) -> None:
    """Validate and store a token (ghp_... or github_pat_...)."""
    try:
        TokenStore(_store(settings)).set(value)
    except ValidationError as e:
        _fail(str(e))
    click.echo(f"Token saved to {settings.store_path}")


@token.command("clear")
@click.pass_obj
def token_clear(settings: Settings) -> None:
    """Remove the stored token."""
    TokenStore(_store(settings)).clear()
    click.echo("Token removed")


@token.command("status")
@click.pass_obj
def token_status(settings: Settings) -> None:
    """Show whether a token is available."""
    if TokenStore(_store(settings)).get():
        click.echo(f"Token: configured ({settings.store_path})")
    elif os.environ.get("GITHUB_TOKEN"):
        click.echo("Token: from GITHUB_TOKEN")
    else:
        click.echo("Token: not configured")


# ── repositories ──


async def _load_repositories(settings: Settings) -> GitHubDataService:
    async with _build_service(settings) as svc:
        await svc.fetch_repositories()
    return svc


@main.command()
@click.option(
    "--period",
    type=click.Choice(list(PERIOD_MONTHS)),
    default="ALL",
    help="Only repositories active in this period",
)
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_obj
def repos(settings: Settings, period: str, as_json: bool) -> None:
    """List repositories with totals and language breakdown."""
    svc = asyncio.run(_load_repositories(settings))
    if svc.state.errors.repositories:
        _fail(svc.state.errors.repositories)

    selected = filter_repositories_by_period(svc.state.repositories, period)
    if as_json:
        _dump([r.model_dump(mode="json") for r in selected])
        return

    for repo in selected:
        click.echo(
            f"  {repo.full_name:40s}  "
            f"stars={repo.stargazers_count:5d}  "
            f"forks={repo.forks_count:4d}  "
            f"{repo.language or '-':12s}  "
            f"updated {repo.updated_at:%Y-%m-%d}"
        )
    totals = repository_totals(selected)
    click.echo(
        f"\n{totals.total_repos} repositories, {totals.total_stars} stars, "
        f"{totals.total_forks} forks, {totals.total_size_mb} MB"
    )
    for lang in language_breakdown(selected):
        click.echo(f"  {lang.language:12s} {lang.count:4d}  {lang.percentage:5.1f}%")


# ── commits ──


async def _load_commits(settings: Settings, repo: str, branch: str) -> GitHubDataService:
    async with _build_service(settings) as svc:
        await svc.fetch_commits(repo, branch)
    return svc


def _commit_filter_options(fn):
    fn = click.option("--branch", default="main", help="Branch to read")(fn)
    fn = click.option("--window", default="all", help="hour|day|week|month|year|all")(fn)
    fn = click.option("--author", default="all", help="Exact author name")(fn)
    fn = click.option("--search", default="", help="Substring in message/author/sha")(fn)
    return fn


@main.command()
@click.argument("repo")
@_commit_filter_options
@click.option("--sort", type=click.Choice(SORT_KEYS), default="date", help="Sort key")
@click.option("--limit", default=20, show_default=True, help="Max commits to print")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_obj
def commits(
    settings: Settings,
    repo: str,
    branch: str,
    window: str,
    author: str,
    search: str,
    sort: str,
    limit: int,
    as_json: bool,
) -> None:
    """List commits of REPO (owner/name)."""
    svc = asyncio.run(_load_commits(settings, repo, branch))
    if svc.state.errors.commits:
        _fail(svc.state.errors.commits)
    spec = CommitFilter(search=search, window=window, author=author, sort_by=sort)  # type: ignore[arg-type]
    try:
        selected = apply_filters(svc.state.commits, spec)
    except ValueError as e:
        _fail(str(e))

    if as_json:
        _dump([c.model_dump(mode="json") for c in selected[:limit]])
        return
    if not selected:
        click.echo("No commits found.")
        return
    for c in selected[:limit]:
        stats = f"+{c.stats.additions}/-{c.stats.deletions}" if c.stats else ""
        click.echo(
            f"  {c.sha[:7]}  {c.authored_at:%Y-%m-%d %H:%M}  "
            f"{c.author_name[:20]:20s}  {c.summary[:60]}  {stats}"
        )
    if len(selected) > limit:
        click.echo(f"  ... {len(selected) - limit} more")


@main.command()
@click.argument("repo")
@_commit_filter_options
@click.pass_obj
def analytics(
    settings: Settings, repo: str, branch: str, window: str, author: str, search: str
) -> None:
    """Commit statistics for REPO (owner/name)."""
    svc = asyncio.run(_load_commits(settings, repo, branch))
    if svc.state.errors.commits:
        _fail(svc.state.errors.commits)
    try:
        snap = summarize(
            svc.state.commits, CommitFilter(search=search, window=window, author=author)
        )
    except ValueError as e:
        _fail(str(e))

    click.echo(f"Commits: {snap.total_commits}")
    click.echo(f"Authors: {snap.total_authors}")
    click.echo(f"Lines: +{snap.total_additions} / -{snap.total_deletions}")
    click.echo(f"Avg commits/day: {snap.avg_commits_per_day:.2f}")
    click.echo(f"Most active author: {snap.most_active_author or '-'}")
    click.echo(f"Most active day: {snap.most_active_day or '-'}")
    if snap.commit_types:
        click.echo("\nTypes:")
        for kind, count in sorted(snap.commit_types.items(), key=lambda kv: -kv[1]):
            click.echo(f"  {kind:10s} {count}")


# ── user ──


async def _load_user(settings: Settings) -> GitHubDataService:
    async with _build_service(settings) as svc:
        await svc.fetch_user()
    return svc


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_obj
def user(settings: Settings, as_json: bool) -> None:
    """Show the authenticated user's profile."""
    svc = asyncio.run(_load_user(settings))
    if svc.state.errors.user or svc.state.user is None:
        _fail(svc.state.errors.user or "user profile unavailable")
    profile = svc.state.user
    if as_json:
        _dump(profile.model_dump(mode="json"))
        return
    click.echo(f"{profile.login} ({profile.name or '-'})")
    click.echo(f"  Repos: {profile.public_repos}  Gists: {profile.public_gists}")
    click.echo(f"  Followers: {profile.followers}  Following: {profile.following}")
    if profile.organizations:
        click.echo(f"  Orgs: {', '.join(o.login for o in profile.organizations)}")


# ── settings ──


@main.group("settings")
def settings_group() -> None:
    """Export or import display preferences."""


@settings_group.command("export")
@click.option("-o", "--output", default=None, help="Output file path (default: stdout)")
@click.pass_obj
def settings_export(settings: Settings, output: str | None) -> None:
    """Write preferences as JSON."""
    text = export_preferences(PreferencesStore(_store(settings)).load())
    if output is None:
        click.echo(text)
        return
    Path(output).write_text(text + "\n")
    click.echo(f"Settings written to {output}")


@settings_group.command("import")
@click.argument("settings_file", type=click.Path(exists=True))
@click.pass_obj
def settings_import(settings: Settings, settings_file: str) -> None:
    """Load preferences from a previously exported file."""
    try:
        prefs = import_preferences(Path(settings_file).read_text())
        PreferencesStore(_store(settings)).save(prefs)
    except (ValidationError, StoreError) as e:
        _fail(str(e))
    click.echo(f"Settings imported from {settings_file}")


# ── serve ──


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True)
def serve(host: str, port: int) -> None:
    """Run the REST API."""
    import uvicorn

    uvicorn.run("gitvision.api:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    main()
