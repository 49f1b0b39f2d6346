"""User-defined search queries and their per-cycle results."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from prpulse.models.pull_request import PullRequest


class QueryConfiguration(BaseModel):
    """One saved search. Persisted with camelCase keys; snake_case also accepted."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    query: str
    include_in_failing_checks_count: bool = Field(
        default=True, alias="includeInFailingChecksCount"
    )
    include_in_pending_reviews_count: bool = Field(
        default=True, alias="includeInPendingReviewsCount"
    )
    # Opaque to this package; round-tripped for the renderer.
    display_layout: tuple[Any, ...] = Field(default=(), alias="displayLayout")

    def updated(self, **changes: Any) -> QueryConfiguration:
        """Return a copy with *changes* applied (snake_case field names)."""
        return self.model_copy(update=changes)

    def duplicate(self) -> QueryConfiguration:
        """Copy under a fresh id with ``" (Copy)"`` appended to the title."""
        return self.model_copy(update={"id": uuid.uuid4(), "title": f"{self.title} (Copy)"})

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def default_query() -> QueryConfiguration:
    return QueryConfiguration(title="My Open PRs", query="is:open is:pr author:@me")


def suggested_queries() -> list[QueryConfiguration]:
    return [
        QueryConfiguration(title="My Open PRs", query="is:open is:pr author:@me"),
        QueryConfiguration(title="Review Requests", query="is:open is:pr review-requested:@me"),
        QueryConfiguration(title="My Recent PRs", query="is:pr author:@me sort:updated-desc"),
        QueryConfiguration(title="Team PRs", query="is:open is:pr user:YOUR_ORG"),
        QueryConfiguration(title="Draft PRs", query="is:open is:pr is:draft author:@me"),
    ]


@dataclass(frozen=True)
class QueryResult:
    """Pull requests returned for one query in one refresh cycle."""

    query: QueryConfiguration
    pull_requests: tuple[PullRequest, ...] = ()
