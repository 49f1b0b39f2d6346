"""Tests for PullRequestFetcher and Enricher against a fake GitHub."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import httpx
import pytest

from helpers import (
    graphql_check_run,
    graphql_pr_node,
    make_query,
    rest_issue,
    with_check_suites,
)
from prpulse.engines.fetcher import PullRequestFetcher
from prpulse.exceptions import AuthError
from prpulse.models.pull_request import Mergeability, MergeState


def _jobs_payload(run_id: int) -> dict:
    return {
        "jobs": [
            {
                "id": run_id * 10,
                "run_id": run_id,
                "name": "build",
                "status": "completed",
                "conclusion": "success",
                "steps": [{"number": 1, "name": "checkout", "status": "completed", "conclusion": "success"}],
            }
        ]
    }


# ── GraphQL transport ─────────────────────────────────────────────────────


class TestFetchAllGraphQL:
    @pytest.mark.anyio
    async def test_results_follow_query_order(self, github):
        first, second = make_query("First", "q:first"), make_query("Second", "q:second")
        github.searches["q:first"] = [graphql_pr_node(1)]
        github.searches["q:second"] = [graphql_pr_node(2), graphql_pr_node(3)]

        async with github.client() as client:
            outcome = await PullRequestFetcher(client).fetch_all([first, second], "tok")

        assert outcome.viewer.login == "alice"
        assert [r.query.title for r in outcome.results] == ["First", "Second"]
        assert [pr.number for pr in outcome.results[1].pull_requests] == [2, 3]

    @pytest.mark.anyio
    async def test_order_survives_shuffled_completion(self, github):
        queries = [make_query(f"Q{i}", f"q:{i}") for i in range(4)]
        delays = {"q:0": 0.04, "q:1": 0.0, "q:2": 0.03, "q:3": 0.01}

        async with github.client() as client:
            fetcher = PullRequestFetcher(client)

            async def fake_search(query, credential, enricher=None):
                await asyncio.sleep(delays[query.query])
                return []

            with patch.object(fetcher, "search", side_effect=fake_search):
                outcome = await fetcher.fetch_all(queries, "tok")

        assert [r.query.id for r in outcome.results] == [q.id for q in queries]

    @pytest.mark.anyio
    async def test_shared_id_keeps_list_position(self, github):
        first = make_query("First", "q:slow")
        second = make_query("Second", "q:fast", id=first.id)

        async with github.client() as client:
            fetcher = PullRequestFetcher(client)

            async def fake_search(query, credential, enricher=None):
                if query.query == "q:slow":
                    await asyncio.sleep(0.05)
                return []

            with patch.object(fetcher, "search", side_effect=fake_search):
                outcome = await fetcher.fetch_all([first, second], "tok")

        assert [r.query.title for r in outcome.results] == ["First", "Second"]

    @pytest.mark.anyio
    async def test_failing_query_is_isolated(self, github):
        good, bad = make_query("Good", "q:good"), make_query("Bad", "q:bad")
        github.searches["q:good"] = [graphql_pr_node(1)]
        github.searches["q:bad"] = httpx.Response(
            200, json={"data": None, "errors": [{"message": "Invalid search"}]}
        )

        async with github.client() as client:
            outcome = await PullRequestFetcher(client).fetch_all([bad, good], "tok")

        assert [r.query.title for r in outcome.results] == ["Bad", "Good"]
        assert outcome.results[0].pull_requests == ()
        assert len(outcome.results[1].pull_requests) == 1

    @pytest.mark.anyio
    async def test_identity_failure_aborts_cycle(self, github):
        github.route("GET", "/user", httpx.Response(401, json={"message": "Bad credentials"}))

        async with github.client() as client:
            with pytest.raises(AuthError):
                await PullRequestFetcher(client).fetch_all([make_query()], "tok")

        assert github.calls("/graphql") == 0

    @pytest.mark.anyio
    async def test_workflow_jobs_only_for_actions_runs_with_run_id(self, github):
        node = with_check_suites(
            graphql_pr_node(1),
            [
                graphql_check_run(1, workflow_run=321),
                graphql_check_run(2, app="circleci", workflow_run=None),
                graphql_check_run(3, workflow_run=None),
            ],
        )
        github.searches["q"] = [node]
        github.route("GET", "/repos/octo/repo/actions/runs/321/jobs", _jobs_payload(321))

        async with github.client() as client:
            outcome = await PullRequestFetcher(client).fetch_all([make_query("Q", "q")], "tok")

        runs = outcome.results[0].pull_requests[0].check_runs
        assert [r.id for r in runs] == [1, 2, 3]
        assert [j.id for j in runs[0].jobs] == [3210]
        assert runs[0].jobs[0].steps[0].name == "checkout"
        assert runs[1].jobs == () and runs[2].jobs == ()
        job_calls = [r for r in github.requests if r.url.path.endswith("/jobs")]
        assert len(job_calls) == 1

    @pytest.mark.anyio
    async def test_workflow_job_failure_leaves_run_without_jobs(self, github):
        node = with_check_suites(graphql_pr_node(1), [graphql_check_run(1, workflow_run=321)])
        github.searches["q"] = [node]
        github.route(
            "GET", "/repos/octo/repo/actions/runs/321/jobs", httpx.Response(500, json={})
        )

        async with github.client() as client:
            outcome = await PullRequestFetcher(client).fetch_all([make_query("Q", "q")], "tok")

        (pr,) = outcome.results[0].pull_requests
        assert pr.check_runs[0].jobs == ()
        assert pr.check_runs[0].is_successful


# ── REST transport ────────────────────────────────────────────────────────


def _rest_routes(github) -> None:
    github.route("GET", "/search/issues", {"items": [rest_issue(1)]})
    github.route(
        "GET",
        "/repos/octo/repo/pulls/1",
        {
            "head": {"sha": "abc"},
            "mergeable": True,
            "mergeable_state": "clean",
            "requested_reviewers": [{"login": "bob", "id": 2}],
            "assignees": [],
        },
    )
    github.route(
        "GET",
        "/repos/octo/repo/commits/abc/check-runs",
        {
            "check_runs": [
                {
                    "id": 11,
                    "name": "test",
                    "status": "completed",
                    "conclusion": "success",
                    "details_url": "https://github.com/octo/repo/actions/runs/321/job/11",
                    "app": {"slug": "github-actions"},
                }
            ]
        },
    )
    github.route(
        "GET",
        "/repos/octo/repo/commits/abc/status",
        {
            "statuses": [
                {
                    "id": 8,
                    "state": "pending",
                    "context": "ci/jenkins",
                    "created_at": "2025-03-01T10:00:00Z",
                    "updated_at": "2025-03-01T10:01:00Z",
                }
            ]
        },
    )
    github.route("GET", "/repos/octo/repo/actions/runs/321/jobs", _jobs_payload(321))


class TestFetchAllRest:
    @pytest.mark.anyio
    async def test_enrichment(self, github):
        _rest_routes(github)

        async with github.client() as client:
            fetcher = PullRequestFetcher(client, transport="rest")
            outcome = await fetcher.fetch_all([make_query("Q", "is:pr")], "tok")

        search = next(r for r in github.requests if r.url.path == "/search/issues")
        assert search.url.params["q"] == "is:pr"
        assert search.url.params["sort"] == "updated"
        assert search.url.params["per_page"] == "50"

        (pr,) = outcome.results[0].pull_requests
        assert pr.head_sha == "abc"
        assert pr.mergeable is Mergeability.MERGEABLE
        assert pr.merge_state is MergeState.CLEAN
        assert [u.login for u in pr.requested_reviewers] == ["bob"]
        assert [r.id for r in pr.check_runs] == [11]
        assert pr.check_runs[0].workflow_run_id == 321
        assert len(pr.check_runs[0].jobs) == 1
        assert [s.context for s in pr.commit_statuses] == ["ci/jenkins"]
        assert pr.has_in_progress_checks
        assert github.calls("/graphql") == 0

    @pytest.mark.anyio
    async def test_check_run_failure_keeps_statuses(self, github):
        _rest_routes(github)
        github.route(
            "GET", "/repos/octo/repo/commits/abc/check-runs", httpx.Response(502, json={})
        )

        async with github.client() as client:
            fetcher = PullRequestFetcher(client, transport="rest")
            outcome = await fetcher.fetch_all([make_query("Q", "is:pr")], "tok")

        (pr,) = outcome.results[0].pull_requests
        assert pr.check_runs == ()
        assert len(pr.commit_statuses) == 1

    @pytest.mark.anyio
    async def test_details_failure_returns_bare_pr(self, github):
        _rest_routes(github)
        github.route("GET", "/repos/octo/repo/pulls/1", httpx.Response(404, json={}))

        async with github.client() as client:
            fetcher = PullRequestFetcher(client, transport="rest")
            outcome = await fetcher.fetch_all([make_query("Q", "is:pr")], "tok")

        (pr,) = outcome.results[0].pull_requests
        assert pr.head_sha is None
        assert pr.check_runs == ()
        assert github.calls("/repos/octo/repo/commits/abc/check-runs") == 0

    @pytest.mark.anyio
    async def test_unparseable_repository_skips_enrichment(self, github):
        github.route(
            "GET", "/search/issues", {"items": [rest_issue(1, repository_url="invalid-url")]}
        )

        async with github.client() as client:
            fetcher = PullRequestFetcher(client, transport="rest")
            outcome = await fetcher.fetch_all([make_query("Q", "is:pr")], "tok")

        (pr,) = outcome.results[0].pull_requests
        assert pr.repository_owner is None
        assert [r.url.path for r in github.requests] == ["/user", "/search/issues"]


# ── identity ──────────────────────────────────────────────────────────────


class TestValidateToken:
    @pytest.mark.anyio
    async def test_returns_login(self, github):
        async with github.client() as client:
            assert await PullRequestFetcher(client).validate_token("tok") == "alice"

    @pytest.mark.anyio
    async def test_propagates_auth_error(self, github):
        github.route("GET", "/user", httpx.Response(401, json={}))
        async with github.client() as client:
            with pytest.raises(AuthError):
                await PullRequestFetcher(client).validate_token("bad")
