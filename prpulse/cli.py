"""CLI entry point: prpulse.

Subcommands:
    prpulse once [--json]             # One refresh cycle, print a summary
    prpulse watch [--interval N]      # Keep refreshing, print on every change
    prpulse queries list|add|remove|move|duplicate
    prpulse validate                  # Check the token and print its login
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click

from prpulse.core.config import load_settings
from prpulse.core.logging import setup_logging
from prpulse.core.timefmt import short_time_ago
from prpulse.engines.reconciler.status import UnifiedStatus
from prpulse.exceptions import GitHubError, describe_error
from prpulse.models.pull_request import PullRequest
from prpulse.models.query import QueryConfiguration
from prpulse.models.state import Error, Loaded, RefreshState
from prpulse.scheduler import NO_CREDENTIAL_MESSAGE, RefreshScheduler
from prpulse.services.container import ServiceContainer, build_container
from prpulse.services.settings_store import JsonSettingsStore

_STATUS_ICONS = {
    UnifiedStatus.SUCCESS: "+",
    UnifiedStatus.FAILED: "!",
    UnifiedStatus.IN_PROGRESS: "~",
    UnifiedStatus.UNKNOWN: "?",
}


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """prpulse: GitHub pull request and CI status monitor."""
    setup_logging("DEBUG" if verbose else None)


# ── refresh ──


@main.command("once")
@click.option("--json", "as_json", is_flag=True, help="Emit machine-readable JSON")
def once(as_json: bool) -> None:
    """Run a single refresh cycle and print the results."""
    container = build_container()

    async def _run() -> RefreshState:
        try:
            await container.scheduler.refresh()
            return container.scheduler.state
        finally:
            await container.client.close()

    state = asyncio.run(_run())
    scheduler = container.scheduler

    if as_json:
        click.echo(json.dumps(_state_payload(scheduler, state), indent=2))
    else:
        _print_summary(scheduler, state)

    if isinstance(state, Error):
        sys.exit(1)


@main.command("watch")
@click.option("--interval", type=float, default=None, help="Seconds between refreshes")
def watch(interval: float | None) -> None:
    """Refresh continuously until interrupted."""
    if interval is not None and interval <= 0:
        raise click.BadParameter("must be positive", param_hint="--interval")
    container = build_container()

    try:
        asyncio.run(_watch(container, interval))
    except KeyboardInterrupt:
        click.echo("\nStopped.")


async def _watch(container: ServiceContainer, interval: float | None) -> None:
    scheduler = container.scheduler

    def _on_state(state: RefreshState) -> None:
        if not state.is_loading:
            _print_summary(scheduler, state)

    scheduler.subscribe(_on_state)
    try:
        await scheduler.start(interval)
        await asyncio.Event().wait()
    finally:
        await container.aclose()


@main.command("validate")
def validate() -> None:
    """Check the configured token and print the account it belongs to."""
    container = build_container()
    credential = container.secret_store.get_credential()
    if not credential:
        click.echo(f"Error: {NO_CREDENTIAL_MESSAGE}", err=True)
        sys.exit(1)

    async def _run() -> str:
        try:
            return await container.fetcher.validate_token(credential)
        finally:
            await container.client.close()

    try:
        login = asyncio.run(_run())
    except GitHubError as exc:
        click.echo(f"Error: {describe_error(exc)}", err=True)
        sys.exit(1)
    click.echo(f"Token is valid for {login}")


# ── queries ──


@main.group("queries")
def queries() -> None:
    """Manage saved search queries."""


def _store() -> JsonSettingsStore:
    settings = load_settings()
    return JsonSettingsStore(settings.settings_path, settings.refresh_interval)


@queries.command("list")
def queries_list() -> None:
    """List saved queries in display order."""
    store = _store()
    if not store.queries:
        click.echo("No queries configured.")
        return
    for index, query in enumerate(store.queries):
        flags = []
        if not query.include_in_failing_checks_count:
            flags.append("no-failing-count")
        if not query.include_in_pending_reviews_count:
            flags.append("no-review-count")
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        click.echo(f"  {index}: {query.title:24s}  {query.query}{suffix}")
    click.echo(f"\nRefresh interval: {store.refresh_interval:g}s")


@queries.command("add")
@click.argument("title")
@click.argument("query")
@click.option("--no-failing-count", is_flag=True, help="Exclude from failing-checks count")
@click.option("--no-review-count", is_flag=True, help="Exclude from pending-reviews count")
def queries_add(title: str, query: str, no_failing_count: bool, no_review_count: bool) -> None:
    """Append a query."""
    store = _store()
    store.add_query(
        QueryConfiguration(
            title=title,
            query=query,
            include_in_failing_checks_count=not no_failing_count,
            include_in_pending_reviews_count=not no_review_count,
        )
    )
    click.echo(f"Added '{title}' at position {len(store.queries) - 1}.")


@queries.command("remove")
@click.argument("index", type=int)
def queries_remove(index: int) -> None:
    """Remove the query at INDEX."""
    store = _store()
    if not 0 <= index < len(store.queries):
        click.echo(f"Error: no query at index {index}", err=True)
        sys.exit(1)
    title = store.queries[index].title
    store.remove_query(index)
    click.echo(f"Removed '{title}'.")


@queries.command("move")
@click.argument("source", type=int)
@click.argument("destination", type=int)
def queries_move(source: int, destination: int) -> None:
    """Move the query at SOURCE to DESTINATION."""
    store = _store()
    count = len(store.queries)
    if not (0 <= source < count and 0 <= destination < count):
        click.echo("Error: index out of range", err=True)
        sys.exit(1)
    store.move_query(source, destination)
    click.echo(f"Moved '{store.queries[destination].title}' to position {destination}.")


@queries.command("duplicate")
@click.argument("index", type=int)
def queries_duplicate(index: int) -> None:
    """Copy the query at INDEX, inserting it right after the original."""
    store = _store()
    if not 0 <= index < len(store.queries):
        click.echo(f"Error: no query at index {index}", err=True)
        sys.exit(1)
    store.duplicate_query(index)
    click.echo(f"Added '{store.queries[index + 1].title}' at position {index + 1}.")


# ── output ──


def _repo_label(pr: PullRequest) -> str:
    if pr.repository_owner is None or pr.repository_name is None:
        return pr.repository_url or "?"
    return f"{pr.repository_owner}/{pr.repository_name}"


def _print_summary(scheduler: RefreshScheduler, state: RefreshState) -> None:
    if isinstance(state, Error):
        click.echo(f"Error: {state.message}", err=True)
        return
    if not isinstance(state, Loaded):
        return

    for result in state.results:
        click.echo(f"{result.query.title} ({len(result.pull_requests)})")
        if not result.pull_requests:
            click.echo("  No pull requests")
        for pr in result.pull_requests:
            icon = _STATUS_ICONS[pr.check_status]
            repo = _repo_label(pr)
            draft = " [draft]" if pr.draft else ""
            click.echo(
                f"  [{icon}] {repo}#{pr.number} {pr.title}{draft}"
                f"  ({short_time_ago(pr.updated_at)})"
            )

    click.echo(f"\nPending actions: {scheduler.pending_actions_count}")
    if scheduler.last_refresh_time is not None:
        click.echo(f"Last refresh: {short_time_ago(scheduler.last_refresh_time)}")


def _state_payload(scheduler: RefreshScheduler, state: RefreshState) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "state": type(state).__name__.lower(),
        "error": state.error_message,
        "viewer": scheduler.current_user_login,
        "pending_actions": scheduler.pending_actions_count,
        "results": [],
    }
    for result in state.query_results:
        payload["results"].append(
            {
                "query_id": str(result.query.id),
                "title": result.query.title,
                "pull_requests": [
                    {
                        "number": pr.number,
                        "title": pr.title,
                        "url": pr.url,
                        "repository": _repo_label(pr),
                        "author": pr.author.login,
                        "draft": pr.draft,
                        "status": pr.check_status.value,
                        "mergeable": pr.mergeable.value,
                        "merge_state": pr.merge_state.value,
                        "needs_review": pr.needs_review,
                        "ready_to_merge": pr.is_ready_to_merge,
                        "updated_at": pr.updated_at.isoformat(),
                    }
                    for pr in result.pull_requests
                ],
            }
        )
    return payload


if __name__ == "__main__":
    main()
