"""Builders and a fake GitHub for prpulse tests. No network access."""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx

from prpulse.engines.gateway.github_client import GitHubClient
from prpulse.models.check import CheckRun, CommitStatus
from prpulse.models.pull_request import Mergeability, MergeState, PullRequest
from prpulse.models.query import QueryConfiguration
from prpulse.models.user import GitHubUser

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


# ── domain builders ───────────────────────────────────────────────────────


def make_pr(**overrides: Any) -> PullRequest:
    fields: dict[str, Any] = {
        "id": 1,
        "number": 1,
        "title": "Add feature",
        "url": "https://github.com/octo/repo/pull/1",
        "author": GitHubUser(login="alice", id=10),
        "created_at": NOW,
        "updated_at": NOW,
        "repository_url": "https://api.github.com/repos/octo/repo",
        "mergeable": Mergeability.MERGEABLE,
        "merge_state": MergeState.CLEAN,
    }
    fields.update(overrides)
    return PullRequest(**fields)


def make_run(id: int = 1, status: str = "completed", conclusion: str | None = "success", **kw) -> CheckRun:
    return CheckRun(id=id, name=kw.pop("name", f"check-{id}"), status=status, conclusion=conclusion, **kw)


def make_status(id: int = 1, state: str = "success", context: str = "ci/build") -> CommitStatus:
    return CommitStatus(id=id, state=state, context=context, created_at=NOW, updated_at=NOW)


def make_query(title: str = "Mine", query: str = "is:open is:pr author:@me", **kw) -> QueryConfiguration:
    return QueryConfiguration(title=title, query=query, **kw)


def node_id(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


# ── payload builders ──────────────────────────────────────────────────────


def graphql_pr_node(number: int = 1, **overrides: Any) -> dict[str, Any]:
    node: dict[str, Any] = {
        "id": node_id(f"PullRequest:{1000 + number}"),
        "number": number,
        "title": f"PR {number}",
        "url": f"https://github.com/octo/repo/pull/{number}",
        "state": "OPEN",
        "isDraft": False,
        "createdAt": "2025-02-28T10:00:00Z",
        "updatedAt": "2025-03-01T10:00:00Z",
        "mergeable": "MERGEABLE",
        "mergeStateStatus": "CLEAN",
        "author": {"login": "alice", "id": node_id("04:User10")},
        "repository": {"name": "repo", "owner": {"login": "octo"}},
        "headRefOid": f"sha{number}",
        "reviewRequests": {"nodes": []},
        "assignees": {"nodes": []},
        "commits": {"nodes": [{"commit": {"checkSuites": {"nodes": []}, "status": None}}]},
    }
    node.update(overrides)
    return node


def graphql_check_run(
    run_id: int,
    *,
    name: str = "build",
    status: str = "COMPLETED",
    conclusion: str | None = "SUCCESS",
    app: str = "github-actions",
    workflow_run: int | None = None,
) -> dict[str, Any]:
    return {
        "id": node_id(f"CheckRun:{run_id}"),
        "name": name,
        "status": status,
        "conclusion": conclusion,
        "startedAt": "2025-03-01T10:00:00Z",
        "completedAt": "2025-03-01T10:05:00Z",
        "detailsUrl": (
            f"https://github.com/octo/repo/actions/runs/{workflow_run}/job/{run_id}"
            if workflow_run
            else f"https://ci.example.com/builds/{run_id}"
        ),
        "checkSuite": {
            "app": {"slug": app},
            "workflowRun": {"databaseId": workflow_run} if workflow_run else None,
        },
    }


def with_check_suites(node: dict[str, Any], *suites: list[dict[str, Any]]) -> dict[str, Any]:
    node["commits"] = {
        "nodes": [
            {
                "commit": {
                    "checkSuites": {"nodes": [{"checkRuns": {"nodes": runs}} for runs in suites]},
                    "status": None,
                }
            }
        ]
    }
    return node


def rest_issue(number: int = 1, **overrides: Any) -> dict[str, Any]:
    item: dict[str, Any] = {
        "id": 5000 + number,
        "number": number,
        "title": f"PR {number}",
        "html_url": f"https://github.com/octo/repo/pull/{number}",
        "state": "open",
        "draft": False,
        "created_at": "2025-02-28T10:00:00Z",
        "updated_at": "2025-03-01T10:00:00Z",
        "user": {"login": "alice", "id": 10, "type": "User"},
        "repository_url": "https://api.github.com/repos/octo/repo",
        "pull_request": {"url": f"https://api.github.com/repos/octo/repo/pulls/{number}"},
    }
    item.update(overrides)
    return item


# ── fake GitHub ───────────────────────────────────────────────────────────

Handler = Callable[[httpx.Request], httpx.Response]


class FakeGitHub:
    """Route table for :class:`httpx.MockTransport` that records every request.

    Routes are keyed by ``(method, path)``; GraphQL requests can be answered
    per search string through :attr:`searches`.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler | httpx.Response | dict | list] = {}
        self.searches: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, response: Handler | httpx.Response | dict | list) -> None:
        self.routes[(method, path)] = response

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST" and request.url.path == "/graphql":
            body = json.loads(request.content)
            search = body["variables"]["searchQuery"]
            answer = self.searches.get(search)
            if answer is None:
                return httpx.Response(200, json={"data": {"search": {"nodes": []}}})
            if isinstance(answer, httpx.Response):
                return answer
            if callable(answer):
                return answer(request)
            return httpx.Response(200, json={"data": {"search": {"nodes": answer}}})

        answer = self.routes.get((request.method, request.url.path))
        if answer is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if isinstance(answer, httpx.Response):
            return answer
        if callable(answer):
            return answer(request)
        return httpx.Response(200, json=answer)

    def client(self) -> GitHubClient:
        return GitHubClient(transport=httpx.MockTransport(self.handler))


