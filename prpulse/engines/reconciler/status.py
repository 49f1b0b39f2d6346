"""Unified CI status: reconciling check runs, commit statuses and mergeability."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from prpulse.models.pull_request import PullRequest
    from prpulse.models.query import QueryResult


class UnifiedStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    UnifiedStatus.SUCCESS: "Passing",
    UnifiedStatus.FAILED: "Failed",
    UnifiedStatus.IN_PROGRESS: "In Progress",
    UnifiedStatus.UNKNOWN: "Unknown",
}


def reconcile(pr: PullRequest) -> UnifiedStatus:
    """Collapse every CI signal on *pr* into one status.

    First match wins:

    1. conflicted *and* dirty merge state → failed, regardless of CI
    2. no check runs and no commit statuses → unknown
    3. any failure → failed
    4. anything queued, running or pending → in progress
    5. everything present succeeded → success
    6. otherwise (neutral, cancelled, skipped, ...) → unknown
    """
    if pr.has_branch_conflict:
        return UnifiedStatus.FAILED
    if not pr.check_runs and not pr.commit_statuses:
        return UnifiedStatus.UNKNOWN
    if pr.has_failing_checks:
        return UnifiedStatus.FAILED
    if pr.has_in_progress_checks:
        return UnifiedStatus.IN_PROGRESS
    if pr.all_checks_successful:
        return UnifiedStatus.SUCCESS
    return UnifiedStatus.UNKNOWN


def needs_review(pr: PullRequest) -> bool:
    # Heuristic: someone is requested *and* someone is assigned.
    return bool(pr.requested_reviewers) and bool(pr.assignees)


_T = TypeVar("_T")


def dedupe_check_runs(runs: Iterable[_T]) -> list[_T]:
    """Keep one run per ``id``: last occurrence wins, first-seen position kept."""
    by_id: dict[int, _T] = {}
    for run in runs:
        by_id[run.id] = run  # type: ignore[attr-defined]
    return list(by_id.values())


def pending_actions_count(results: Iterable[QueryResult], current_user_login: str | None) -> int:
    """Count PRs that want the current user's attention.

    A PR counts once per result: either it needs review (and its query opts
    into review counting), or else it is authored by the user and is failing
    or conflicted (and its query opts into failing-check counting).
    """
    if not current_user_login:
        return 0

    count = 0
    for result in results:
        config = result.query
        for pr in result.pull_requests:
            if needs_review(pr) and config.include_in_pending_reviews_count:
                count += 1
            elif (
                pr.author.login == current_user_login
                and (pr.has_failing_checks or pr.has_branch_conflict)
                and config.include_in_failing_checks_count
            ):
                count += 1
    return count
