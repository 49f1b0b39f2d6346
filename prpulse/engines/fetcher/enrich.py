"""Secondary per-PR fetches: REST details, CI signals and workflow jobs.

Every call here is best-effort.  A failed enrichment is logged and the PR
is returned without that detail; it never fails the PR or the query.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Any

import structlog

from prpulse.engines.gateway.github_client import GitHubClient
from prpulse.engines.mapper.mapper import (
    apply_rest_details,
    map_rest_check_run,
    map_rest_commit_status,
    map_workflow_job,
)
from prpulse.engines.reconciler.status import dedupe_check_runs
from prpulse.models.check import CheckRun
from prpulse.models.pull_request import PullRequest

log = structlog.get_logger("prpulse.fetcher")


class Enricher:
    """Bounded fan-out of secondary GitHub calls.

    The semaphore caps concurrent *HTTP calls*, not PRs, so nested fan-out
    (PR → check runs → jobs) can never deadlock on it.
    """

    def __init__(self, client: GitHubClient, concurrency: int = 8) -> None:
        self._client = client
        self._sem = asyncio.Semaphore(concurrency)

    async def enrich(
        self, prs: list[PullRequest], credential: str, *, rest: bool
    ) -> list[PullRequest]:
        """Enrich *prs* concurrently, preserving their order."""
        if not prs:
            return []

        async def _one(pr: PullRequest) -> PullRequest:
            if rest:
                pr = await self.enrich_rest(pr, credential)
            return await self.attach_workflow_jobs(pr, credential)

        return list(await asyncio.gather(*(_one(pr) for pr in prs)))

    async def enrich_rest(self, pr: PullRequest, credential: str) -> PullRequest:
        """Fill in what ``/search/issues`` leaves out.

        Pull details first (they carry the head SHA), then check runs and the
        combined commit status for that SHA.
        """
        owner, name = pr.repository_owner, pr.repository_name
        if owner is None or name is None:
            log.debug("fetcher.unparseable_repository", pr=pr.number, url=pr.repository_url)
            return pr

        try:
            detail = await self._get(f"/repos/{owner}/{name}/pulls/{pr.number}", credential)
        except Exception as exc:
            self._log_failure("details", owner, name, pr.number, exc)
            return pr
        pr = apply_rest_details(pr, detail)
        if not pr.head_sha:
            return pr

        runs_result, status_result = await asyncio.gather(
            self._get(f"/repos/{owner}/{name}/commits/{pr.head_sha}/check-runs", credential),
            self._get(f"/repos/{owner}/{name}/commits/{pr.head_sha}/status", credential),
            return_exceptions=True,
        )

        changes: dict[str, Any] = {}
        if isinstance(runs_result, BaseException):
            self._log_failure("check_runs", owner, name, pr.number, runs_result)
        else:
            runs = [map_rest_check_run(raw) for raw in runs_result.get("check_runs") or []]
            changes["check_runs"] = tuple(dedupe_check_runs(runs))
        if isinstance(status_result, BaseException):
            self._log_failure("statuses", owner, name, pr.number, status_result)
        else:
            statuses = status_result.get("statuses") or []
            changes["commit_statuses"] = tuple(map_rest_commit_status(raw) for raw in statuses)

        return dataclasses.replace(pr, **changes) if changes else pr

    async def attach_workflow_jobs(self, pr: PullRequest, credential: str) -> PullRequest:
        """Nest jobs and steps under every GitHub Actions run that has a run id."""
        owner, name = pr.repository_owner, pr.repository_name
        if owner is None or name is None:
            return pr
        targets = [
            run for run in pr.check_runs if run.is_github_actions and run.workflow_run_id
        ]
        if not targets:
            return pr

        async def _jobs(run: CheckRun) -> CheckRun:
            path = f"/repos/{owner}/{name}/actions/runs/{run.workflow_run_id}/jobs"
            try:
                payload = await self._get(path, credential)
            except Exception as exc:
                self._log_failure("workflow_jobs", owner, name, pr.number, exc)
                return run
            jobs = tuple(map_workflow_job(raw) for raw in payload.get("jobs") or [])
            return dataclasses.replace(run, jobs=jobs)

        enriched = {run.id: run for run in await asyncio.gather(*(_jobs(r) for r in targets))}
        runs = tuple(enriched.get(run.id, run) for run in pr.check_runs)
        return dataclasses.replace(pr, check_runs=runs)

    async def _get(self, path: str, credential: str) -> Any:
        async with self._sem:
            return await self._client.get(path, credential)

    @staticmethod
    def _log_failure(step: str, owner: str, name: str, number: int, exc: BaseException) -> None:
        log.warning(
            "fetcher.enrich_failed",
            step=step,
            repo=f"{owner}/{name}",
            pr=number,
            error=str(exc),
        )
