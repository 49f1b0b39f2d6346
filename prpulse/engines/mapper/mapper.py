"""Raw GitHub payloads → domain models.

Every function here is pure: JSON in, frozen dataclasses out.  The GraphQL
search shape and the REST search/detail shapes converge on the same
:class:`PullRequest`, so nothing downstream needs to know which transport
produced a snapshot.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Any

from prpulse.core.github import decode_node_id, parse_workflow_run_id, repository_api_url
from prpulse.engines.reconciler.status import dedupe_check_runs
from prpulse.models.check import CheckRun, CommitStatus, WorkflowJob, WorkflowStep
from prpulse.models.pull_request import Mergeability, MergeState, PullRequest
from prpulse.models.user import GitHubUser

_MERGE_STATES = {state.value: state for state in MergeState}


# ── primitives ────────────────────────────────────────────────────────────


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 datetime string, returning None on failure."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _required_datetime(value: str | None, now: datetime) -> datetime:
    return parse_datetime(value) or now


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def _lower(value: str | None) -> str | None:
    return value.lower() if isinstance(value, str) else None


def _nodes(connection: dict[str, Any] | None) -> list[dict[str, Any]]:
    """``{nodes: [...]}`` with null nodes dropped."""
    if not connection:
        return []
    return [node for node in connection.get("nodes") or [] if node]


def map_merge_state(value: str | None) -> MergeState:
    return _MERGE_STATES.get((value or "").lower(), MergeState.UNKNOWN)


def map_graphql_mergeable(value: str | None) -> Mergeability:
    if value == "MERGEABLE":
        return Mergeability.MERGEABLE
    if value == "CONFLICTING":
        return Mergeability.CONFLICTED
    return Mergeability.UNKNOWN


def map_rest_mergeable(value: bool | None) -> Mergeability:
    if value is True:
        return Mergeability.MERGEABLE
    if value is False:
        return Mergeability.CONFLICTED
    return Mergeability.UNKNOWN


def map_user(raw: dict[str, Any] | None) -> GitHubUser | None:
    """REST user object or GraphQL actor/team node → :class:`GitHubUser`.

    GraphQL ids are opaque strings and go through :func:`decode_node_id`;
    REST ids are already integers.  Teams have a ``name`` but no ``login``.
    """
    if not raw:
        return None
    login = raw.get("login")
    user_type = raw.get("type") or "User"
    if not login and raw.get("name"):
        login = raw["name"]
        user_type = "Team"
    raw_id = raw.get("id")
    if isinstance(raw_id, int):
        user_id = raw_id
    elif isinstance(raw_id, str) and raw_id:
        user_id = decode_node_id(raw_id)
    else:
        user_id = 0
    return GitHubUser(login=login or "unknown", id=user_id, type=user_type)


def _users(raw: list[dict[str, Any]] | None) -> tuple[GitHubUser, ...]:
    users = (map_user(item) for item in raw or [])
    return tuple(user for user in users if user is not None)


# ── GraphQL ───────────────────────────────────────────────────────────────


def map_check_run_node(node: dict[str, Any]) -> CheckRun:
    suite = node.get("checkSuite") or {}
    app = suite.get("app") or {}
    workflow_run = suite.get("workflowRun") or {}
    details_url = node.get("detailsUrl")
    run_id = workflow_run.get("databaseId")
    if not isinstance(run_id, int):
        run_id = parse_workflow_run_id(details_url)
    return CheckRun(
        id=decode_node_id(node.get("id") or ""),
        name=node.get("name") or "",
        status=_lower(node.get("status")) or "queued",
        conclusion=_lower(node.get("conclusion")),
        started_at=parse_datetime(node.get("startedAt")),
        completed_at=parse_datetime(node.get("completedAt")),
        details_url=details_url,
        app_slug=app.get("slug"),
        workflow_run_id=run_id,
    )


def map_status_context(node: dict[str, Any], now: datetime | None = None) -> CommitStatus:
    now = _now(now)
    created_at = _required_datetime(node.get("createdAt"), now)
    return CommitStatus(
        id=decode_node_id(node.get("id") or ""),
        state=_lower(node.get("state")) or "pending",
        context=node.get("context") or "",
        created_at=created_at,
        # contexts carry no update stamp
        updated_at=now,
        description=node.get("description"),
        target_url=node.get("targetUrl"),
        creator=map_user(node.get("creator")),
    )


def map_search_node(node: dict[str, Any], now: datetime | None = None) -> PullRequest | None:
    """One ``search.nodes`` entry → :class:`PullRequest`.

    Returns None for null entries and for non-PR results (issues match
    the ``... on PullRequest`` fragment with an empty object).
    """
    if not node or "number" not in node:
        return None
    now = _now(now)

    repository = node.get("repository") or {}
    owner = (repository.get("owner") or {}).get("login") or ""
    name = repository.get("name") or ""

    author = map_user(node.get("author")) or GitHubUser(login="unknown")

    check_runs: list[CheckRun] = []
    statuses: list[CommitStatus] = []
    commits = _nodes(node.get("commits"))
    if commits:
        commit = commits[-1].get("commit") or {}
        for suite in _nodes(commit.get("checkSuites")):
            check_runs.extend(map_check_run_node(run) for run in _nodes(suite.get("checkRuns")))
        status = commit.get("status") or {}
        statuses = [map_status_context(ctx, now) for ctx in status.get("contexts") or [] if ctx]

    reviewers = [
        request.get("requestedReviewer") for request in _nodes(node.get("reviewRequests"))
    ]

    return PullRequest(
        id=decode_node_id(node.get("id") or ""),
        number=node["number"],
        title=node.get("title") or "",
        url=node.get("url") or "",
        author=author,
        created_at=_required_datetime(node.get("createdAt"), now),
        updated_at=_required_datetime(node.get("updatedAt"), now),
        repository_url=repository_api_url(owner, name),
        state=_lower(node.get("state")) or "open",
        draft=bool(node.get("isDraft")),
        head_sha=node.get("headRefOid"),
        mergeable=map_graphql_mergeable(node.get("mergeable")),
        merge_state=map_merge_state(node.get("mergeStateStatus")),
        requested_reviewers=_users(reviewers),
        assignees=_users(_nodes(node.get("assignees"))),
        check_runs=tuple(dedupe_check_runs(check_runs)),
        commit_statuses=tuple(statuses),
    )


# ── REST ──────────────────────────────────────────────────────────────────


def map_rest_issue(item: dict[str, Any], now: datetime | None = None) -> PullRequest:
    """``/search/issues`` item → :class:`PullRequest` without CI detail."""
    now = _now(now)
    return PullRequest(
        id=item["id"],
        number=item["number"],
        title=item.get("title") or "",
        url=item.get("html_url") or "",
        author=map_user(item.get("user")) or GitHubUser(login="unknown"),
        created_at=_required_datetime(item.get("created_at"), now),
        updated_at=_required_datetime(item.get("updated_at"), now),
        repository_url=item.get("repository_url") or "",
        state=_lower(item.get("state")) or "open",
        draft=bool(item.get("draft")),
    )


def apply_rest_details(pr: PullRequest, detail: dict[str, Any]) -> PullRequest:
    """Merge ``/repos/{o}/{r}/pulls/{n}`` into *pr*."""
    head = detail.get("head") or {}
    return dataclasses.replace(
        pr,
        head_sha=head.get("sha") or pr.head_sha,
        mergeable=map_rest_mergeable(detail.get("mergeable")),
        merge_state=map_merge_state(detail.get("mergeable_state")),
        requested_reviewers=_users(detail.get("requested_reviewers")),
        assignees=_users(detail.get("assignees")),
    )


def map_rest_check_run(raw: dict[str, Any]) -> CheckRun:
    details_url = raw.get("details_url")
    return CheckRun(
        id=raw["id"],
        name=raw.get("name") or "",
        status=_lower(raw.get("status")) or "queued",
        conclusion=_lower(raw.get("conclusion")),
        started_at=parse_datetime(raw.get("started_at")),
        completed_at=parse_datetime(raw.get("completed_at")),
        details_url=details_url,
        app_slug=(raw.get("app") or {}).get("slug"),
        workflow_run_id=parse_workflow_run_id(details_url),
    )


def map_rest_commit_status(raw: dict[str, Any], now: datetime | None = None) -> CommitStatus:
    now = _now(now)
    return CommitStatus(
        id=raw["id"],
        state=_lower(raw.get("state")) or "pending",
        context=raw.get("context") or "",
        created_at=_required_datetime(raw.get("created_at"), now),
        updated_at=_required_datetime(raw.get("updated_at"), now),
        description=raw.get("description"),
        target_url=raw.get("target_url"),
        creator=map_user(raw.get("creator")),
    )


def map_workflow_step(raw: dict[str, Any]) -> WorkflowStep:
    return WorkflowStep(
        number=raw.get("number") or 0,
        name=raw.get("name") or "",
        status=_lower(raw.get("status")) or "queued",
        conclusion=_lower(raw.get("conclusion")),
        started_at=parse_datetime(raw.get("started_at")),
        completed_at=parse_datetime(raw.get("completed_at")),
    )


def map_workflow_job(raw: dict[str, Any]) -> WorkflowJob:
    return WorkflowJob(
        id=raw["id"],
        run_id=raw.get("run_id") or 0,
        name=raw.get("name") or "",
        status=_lower(raw.get("status")) or "queued",
        conclusion=_lower(raw.get("conclusion")),
        started_at=parse_datetime(raw.get("started_at")),
        completed_at=parse_datetime(raw.get("completed_at")),
        html_url=raw.get("html_url"),
        steps=tuple(map_workflow_step(step) for step in raw.get("steps") or []),
    )
