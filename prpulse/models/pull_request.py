"""Pull request snapshot model.

A :class:`PullRequest` is rebuilt from scratch on every refresh cycle and
never mutated afterwards; enrichment produces new instances via
:func:`dataclasses.replace`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime

from prpulse.core.github import parse_repository_url
from prpulse.engines.reconciler.status import UnifiedStatus, needs_review, reconcile
from prpulse.models.check import CheckRun, CommitStatus
from prpulse.models.user import GitHubUser


class Mergeability(str, enum.Enum):
    MERGEABLE = "mergeable"
    CONFLICTED = "conflicted"
    UNKNOWN = "unknown"


class MergeState(str, enum.Enum):
    """Lowercased ``mergeStateStatus`` / ``mergeable_state`` values."""

    BEHIND = "behind"
    BLOCKED = "blocked"
    CLEAN = "clean"
    DIRTY = "dirty"
    DRAFT = "draft"
    HAS_HOOKS = "has_hooks"
    UNSTABLE = "unstable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PullRequest:
    id: int
    number: int
    title: str
    url: str
    author: GitHubUser
    created_at: datetime
    updated_at: datetime
    repository_url: str
    state: str = "open"
    draft: bool = False
    head_sha: str | None = None
    mergeable: Mergeability = Mergeability.UNKNOWN
    merge_state: MergeState = MergeState.UNKNOWN
    requested_reviewers: tuple[GitHubUser, ...] = ()
    assignees: tuple[GitHubUser, ...] = ()
    check_runs: tuple[CheckRun, ...] = ()
    commit_statuses: tuple[CommitStatus, ...] = ()

    @property
    def repository_owner(self) -> str | None:
        parsed = parse_repository_url(self.repository_url)
        return parsed[0] if parsed else None

    @property
    def repository_name(self) -> str | None:
        parsed = parse_repository_url(self.repository_url)
        return parsed[1] if parsed else None

    @property
    def has_branch_conflict(self) -> bool:
        return self.mergeable is Mergeability.CONFLICTED and self.merge_state is MergeState.DIRTY

    @property
    def has_failing_checks(self) -> bool:
        return any(run.is_failed for run in self.check_runs) or any(
            status.is_failure for status in self.commit_statuses
        )

    @property
    def has_in_progress_checks(self) -> bool:
        return any(run.is_in_progress for run in self.check_runs) or any(
            status.is_pending for status in self.commit_statuses
        )

    @property
    def all_checks_successful(self) -> bool:
        if not self.check_runs and not self.commit_statuses:
            return False
        return all(run.is_successful for run in self.check_runs) and all(
            status.is_success for status in self.commit_statuses
        )

    @property
    def is_ready_to_merge(self) -> bool:
        """Not a draft, cleanly mergeable, and no check run is holding it back."""
        checks_ok = not self.check_runs or self.all_checks_successful
        return not self.draft and checks_ok and self.mergeable is Mergeability.MERGEABLE

    @property
    def needs_review(self) -> bool:
        return needs_review(self)

    @property
    def check_status(self) -> UnifiedStatus:
        return reconcile(self)
