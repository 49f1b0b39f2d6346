"""Domain models: one file per concern."""

from prpulse.models.check import CheckRun, CommitStatus, WorkflowJob, WorkflowStep
from prpulse.models.pull_request import Mergeability, MergeState, PullRequest
from prpulse.models.query import (
    QueryConfiguration,
    QueryResult,
    default_query,
    suggested_queries,
)
from prpulse.models.state import Error, Idle, Loaded, Loading, RefreshState
from prpulse.models.user import GitHubUser

__all__ = [
    "CheckRun",
    "CommitStatus",
    "Error",
    "GitHubUser",
    "Idle",
    "Loaded",
    "Loading",
    "MergeState",
    "Mergeability",
    "PullRequest",
    "QueryConfiguration",
    "QueryResult",
    "RefreshState",
    "WorkflowJob",
    "WorkflowStep",
    "default_query",
    "suggested_queries",
]
