"""Async GitHub REST + GraphQL gateway with typed failure classification."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Union

import httpx
import structlog

from prpulse.core.config import Settings
from prpulse.exceptions import (
    AuthError,
    DecodingError,
    ForbiddenError,
    GraphQLError,
    HttpError,
    NotFoundError,
    RateLimitError,
    TransportError,
    TransportKind,
)

log = structlog.get_logger("prpulse.gateway")

_DEFAULT_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}

# OS-level messages that mean "no route at all" rather than "GitHub is down"
_NO_CONNECTIVITY_MARKERS = (
    "network is unreachable",
    "no route to host",
    "temporary failure in name resolution",
    "nodename nor servname provided",
)


@dataclass(frozen=True)
class RestRequest:
    path: str
    params: dict[str, Any] | None = None
    method: str = "GET"
    headers: dict[str, str] | None = None


@dataclass(frozen=True)
class GraphQLRequest:
    query: str
    variables: dict[str, Any] = field(default_factory=dict)


Request = Union[RestRequest, GraphQLRequest]


class GitHubClient:
    """Thin async wrapper around the GitHub REST and GraphQL APIs.

    The credential is passed on every call rather than bound at construction,
    so a token change takes effect on the next request without rebuilding the
    client.  Failures are raised as :mod:`prpulse.exceptions` types; nothing
    is retried here.
    """

    def __init__(
        self,
        *,
        api_url: str = "https://api.github.com",
        graphql_url: str | None = None,
        connect_timeout: float = 10.0,
        read_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._graphql_url = graphql_url or f"{api_url.rstrip('/')}/graphql"
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers=_DEFAULT_HEADERS,
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> GitHubClient:
        return cls(
            api_url=settings.api_url,
            graphql_url=settings.graphql_url,
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def execute(self, request: Request, credential: str) -> Any:
        """Send *request* and return decoded JSON.

        For a :class:`GraphQLRequest` the ``data`` object is returned; a
        non-empty ``errors`` array raises :class:`GraphQLError` even when
        ``data`` is also present.
        """
        if isinstance(request, GraphQLRequest):
            payload = {"query": request.query, "variables": request.variables}
            response = await self._send(
                "POST", self._graphql_url, credential, json=payload
            )
            return self._unwrap_graphql(self._decode(response))

        response = await self._send(
            request.method,
            request.path,
            credential,
            params=request.params,
            headers=request.headers,
        )
        return self._decode(response)

    async def get(
        self, path: str, credential: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Single-resource GET, returns parsed JSON."""
        return await self.execute(RestRequest(path, params=params), credential)

    async def graphql(
        self, query: str, credential: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.execute(GraphQLRequest(query, variables or {}), credential)

    # ── internal ───────────────────────────────────────────────────────────

    async def _send(
        self,
        method: str,
        url: str,
        credential: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        request_headers = {"Authorization": f"Bearer {credential}"}
        if headers:
            request_headers.update(headers)
        try:
            response = await self._client.request(
                method, url, params=params, headers=request_headers, json=json
            )
        except httpx.TimeoutException as exc:
            log.warning("gateway.timeout", method=method, url=url)
            raise TransportError(TransportKind.TIMEOUT, str(exc)) from exc
        except httpx.ConnectError as exc:
            kind = self._classify_connect_error(exc)
            log.warning("gateway.connect_failed", method=method, url=url, kind=kind.value)
            raise TransportError(kind, str(exc)) from exc
        except httpx.TransportError as exc:
            log.warning("gateway.transport_failed", method=method, url=url, error=str(exc))
            raise TransportError(TransportKind.OTHER, str(exc)) from exc

        self._raise_for_status(response, method, url)
        return response

    def _raise_for_status(self, response: httpx.Response, method: str, url: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        log.warning("gateway.request_failed", method=method, url=url, status=status)
        if status == 401:
            raise AuthError("bad credentials")
        if status == 403:
            if self._is_rate_limited(response):
                raise RateLimitError(self._get_rate_limit_wait(response))
            raise ForbiddenError("forbidden")
        if status == 404:
            raise NotFoundError(url)
        raise HttpError(status)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise DecodingError("response body is not JSON") from exc

    @staticmethod
    def _unwrap_graphql(body: Any) -> dict[str, Any]:
        if not isinstance(body, dict):
            raise DecodingError("GraphQL response is not an object")
        errors = body.get("errors") or []
        if errors:
            messages = [
                (err.get("message") if isinstance(err, dict) else None) or str(err)
                for err in errors
            ]
            raise GraphQLError(messages)
        data = body.get("data")
        if not isinstance(data, dict):
            raise DecodingError("GraphQL response has no data")
        return data

    @staticmethod
    def _classify_connect_error(exc: httpx.ConnectError) -> TransportKind:
        text = str(exc).lower()
        if any(marker in text for marker in _NO_CONNECTIVITY_MARKERS):
            return TransportKind.NO_CONNECTIVITY
        return TransportKind.HOST_UNREACHABLE

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        """Check if a 403 response is due to rate limiting."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            try:
                if int(remaining) == 0:
                    return True
            except (ValueError, TypeError):
                pass
        # secondary (abuse) limits only send Retry-After
        return "Retry-After" in response.headers

    @staticmethod
    def _get_rate_limit_wait(response: httpx.Response) -> int:
        """Seconds until the limit lifts, from Retry-After or X-RateLimit-Reset."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(int(retry_after), 1)
            except (ValueError, TypeError):
                pass
        reset_ts = response.headers.get("X-RateLimit-Reset")
        if reset_ts is not None:
            try:
                return max(int(reset_ts) - int(time.time()), 1)
            except (ValueError, TypeError):
                pass
        return 60
