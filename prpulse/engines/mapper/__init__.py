"""Response mapper: GraphQL and REST payloads into domain snapshots."""

from prpulse.engines.mapper.mapper import (
    apply_rest_details,
    map_check_run_node,
    map_rest_check_run,
    map_rest_commit_status,
    map_rest_issue,
    map_search_node,
    map_status_context,
    map_user,
    map_workflow_job,
    map_workflow_step,
    parse_datetime,
)
from prpulse.engines.mapper.queries import SEARCH_PULL_REQUESTS

__all__ = [
    "SEARCH_PULL_REQUESTS",
    "apply_rest_details",
    "map_check_run_node",
    "map_rest_check_run",
    "map_rest_commit_status",
    "map_rest_issue",
    "map_search_node",
    "map_status_context",
    "map_user",
    "map_workflow_job",
    "map_workflow_step",
    "parse_datetime",
]
