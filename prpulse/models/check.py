"""CI signal models: check runs, workflow jobs, legacy commit statuses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from prpulse.models.user import GitHubUser

GITHUB_ACTIONS_SLUG = "github-actions"

_IN_PROGRESS = frozenset({"queued", "in_progress"})

# context prefix → friendlier label, first match wins
_CONTEXT_PREFIXES: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    ("circleci", (("ci/circleci:", "CircleCI:"), ("ci/circleci/", "CircleCI/"))),
    ("travis", (("continuous-integration/travis-ci/", "Travis CI/"),)),
    ("jenkins", (("continuous-integration/jenkins/", "Jenkins/"),)),
    ("buildkite", (("buildkite/", "Buildkite/"),)),
    ("appveyor", (("continuous-integration/appveyor/", "AppVeyor/"),)),
)


@dataclass(frozen=True)
class WorkflowStep:
    """A single step of a workflow job. Read-only execution record."""

    number: int
    name: str
    status: str
    conclusion: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.status == "completed"

    @property
    def is_successful(self) -> bool:
        return self.conclusion == "success"

    @property
    def is_failed(self) -> bool:
        return self.conclusion == "failure"

    @property
    def is_in_progress(self) -> bool:
        return self.status in _IN_PROGRESS


@dataclass(frozen=True)
class WorkflowJob:
    """A GitHub Actions job nested under the check run that reported it."""

    id: int
    run_id: int
    name: str
    status: str
    conclusion: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    html_url: str | None = None
    steps: tuple[WorkflowStep, ...] = ()

    @property
    def is_complete(self) -> bool:
        return self.status == "completed"

    @property
    def is_successful(self) -> bool:
        return self.conclusion == "success"

    @property
    def is_failed(self) -> bool:
        return self.conclusion == "failure"

    @property
    def is_in_progress(self) -> bool:
        return self.status in _IN_PROGRESS


@dataclass(frozen=True)
class CheckRun:
    """One check run on the PR head commit."""

    id: int
    name: str
    status: str
    conclusion: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    details_url: str | None = None
    app_slug: str | None = None
    workflow_run_id: int | None = None
    jobs: tuple[WorkflowJob, ...] = field(default=())

    @property
    def is_complete(self) -> bool:
        return self.status == "completed"

    @property
    def is_successful(self) -> bool:
        return self.conclusion == "success"

    @property
    def is_failed(self) -> bool:
        return self.conclusion == "failure"

    @property
    def is_in_progress(self) -> bool:
        return self.status in _IN_PROGRESS

    @property
    def is_github_actions(self) -> bool:
        return self.app_slug == GITHUB_ACTIONS_SLUG


@dataclass(frozen=True)
class CommitStatus:
    """Legacy commit status. Separate id namespace from :class:`CheckRun`."""

    id: int
    state: str
    context: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    target_url: str | None = None
    creator: GitHubUser | None = None

    @property
    def is_success(self) -> bool:
        return self.state == "success"

    @property
    def is_failure(self) -> bool:
        return self.state in ("failure", "error")

    @property
    def is_pending(self) -> bool:
        return self.state == "pending"

    @property
    def display_name(self) -> str:
        """Context label with well-known CI prefixes prettified.

        ``ci/circleci: build`` → ``CircleCI: build``
        """
        for marker, replacements in _CONTEXT_PREFIXES:
            if marker in self.context:
                name = self.context
                for old, new in replacements:
                    name = name.replace(old, new)
                return name
        return self.context
