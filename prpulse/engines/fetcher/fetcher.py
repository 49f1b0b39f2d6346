"""Multi-query fetch orchestration: one refresh cycle's worth of GitHub calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import structlog

from prpulse.core.config import Settings
from prpulse.engines.fetcher.enrich import Enricher
from prpulse.engines.gateway.github_client import GitHubClient
from prpulse.engines.mapper.mapper import map_rest_issue, map_search_node, map_user
from prpulse.engines.mapper.queries import SEARCH_PULL_REQUESTS
from prpulse.exceptions import DecodingError
from prpulse.models.pull_request import PullRequest
from prpulse.models.query import QueryConfiguration, QueryResult
from prpulse.models.user import GitHubUser

log = structlog.get_logger("prpulse.fetcher")

_SEARCH_PAGE_SIZE = 50


@dataclass(frozen=True)
class FetchOutcome:
    """Everything one cycle produced: who we are and what each query found."""

    viewer: GitHubUser
    results: tuple[QueryResult, ...]


class PullRequestFetcher:
    """Runs every configured query concurrently and assembles ordered results.

    1. Fetch the authenticated user; failure aborts the cycle.
    2. Search each query (bounded fan-out), map, enrich.
    3. Wait for all queries, then restore the caller's query order.

    A failing query contributes an empty result instead of failing the cycle.
    """

    def __init__(
        self,
        client: GitHubClient,
        *,
        transport: str = "graphql",
        max_concurrency: int = 5,
        enrich_concurrency: int = 8,
    ) -> None:
        self._client = client
        self._transport = transport
        self._max_concurrency = max_concurrency
        self._enrich_concurrency = enrich_concurrency

    @classmethod
    def from_settings(cls, client: GitHubClient, settings: Settings) -> PullRequestFetcher:
        return cls(
            client,
            transport=settings.transport,
            max_concurrency=settings.max_concurrency,
            enrich_concurrency=settings.enrich_concurrency,
        )

    @property
    def transport(self) -> str:
        return self._transport

    # ── identity ───────────────────────────────────────────────────────────

    async def fetch_viewer(self, credential: str) -> GitHubUser:
        payload = await self._client.get("/user", credential)
        if not isinstance(payload, dict) or not payload.get("login"):
            raise DecodingError("unexpected /user payload")
        return map_user(payload)  # type: ignore[return-value]

    async def validate_token(self, credential: str) -> str:
        """Return the login the token belongs to, or raise the mapped error."""
        return (await self.fetch_viewer(credential)).login

    # ── search ─────────────────────────────────────────────────────────────

    async def search(
        self, query: QueryConfiguration, credential: str, enricher: Enricher | None = None
    ) -> list[PullRequest]:
        """Search one query through the configured transport and enrich the hits."""
        enricher = enricher or Enricher(self._client, self._enrich_concurrency)
        if self._transport == "rest":
            prs = await self._search_rest(query.query, credential)
            return await enricher.enrich(prs, credential, rest=True)
        prs = await self._search_graphql(query.query, credential)
        return await enricher.enrich(prs, credential, rest=False)

    async def _search_graphql(self, search_query: str, credential: str) -> list[PullRequest]:
        data = await self._client.graphql(
            SEARCH_PULL_REQUESTS, credential, {"searchQuery": search_query}
        )
        search = data.get("search")
        if not isinstance(search, dict):
            raise DecodingError("GraphQL response has no search object")
        prs = (map_search_node(node) for node in search.get("nodes") or [])
        return [pr for pr in prs if pr is not None]

    async def _search_rest(self, search_query: str, credential: str) -> list[PullRequest]:
        params: dict[str, Any] = {
            "q": search_query,
            "sort": "updated",
            "per_page": _SEARCH_PAGE_SIZE,
        }
        payload = await self._client.get("/search/issues", credential, params)
        if not isinstance(payload, dict):
            raise DecodingError("search response is not an object")
        return [map_rest_issue(item) for item in payload.get("items") or []]

    # ── cycle ──────────────────────────────────────────────────────────────

    async def fetch_all(
        self, queries: list[QueryConfiguration], credential: str
    ) -> FetchOutcome:
        viewer = await self.fetch_viewer(credential)

        sem = asyncio.Semaphore(self._max_concurrency)
        enricher = Enricher(self._client, self._enrich_concurrency)

        async def _run_one(index: int, query: QueryConfiguration) -> tuple[int, QueryResult]:
            async with sem:
                try:
                    prs = await self.search(query, credential, enricher)
                except Exception as exc:
                    log.error(
                        "fetcher.query_failed",
                        query_id=str(query.id),
                        title=query.title,
                        error=str(exc),
                    )
                    return index, QueryResult(query=query)
            return index, QueryResult(query=query, pull_requests=tuple(prs))

        # arrival order is arbitrary and ids may repeat; reorder by position
        indexed: list[tuple[int, QueryResult]] = []
        for next_done in asyncio.as_completed([_run_one(i, q) for i, q in enumerate(queries)]):
            indexed.append(await next_done)
        indexed.sort(key=lambda item: item[0])
        collected = [result for _, result in indexed]

        log.info(
            "fetcher.cycle_done",
            viewer=viewer.login,
            queries=len(collected),
            pull_requests=sum(len(r.pull_requests) for r in collected),
        )
        return FetchOutcome(viewer=viewer, results=tuple(collected))
