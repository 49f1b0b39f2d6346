"""GitHub failure taxonomy and the user-facing sentence for each kind."""

from __future__ import annotations

import enum


class GitHubError(Exception):
    """Base for every failure surfaced by the gateway."""


class AuthError(GitHubError):
    """401: the token is missing, invalid or expired."""


class ForbiddenError(GitHubError):
    """403 that is not a rate limit."""


class RateLimitError(GitHubError):
    """Raised when GitHub rate limit is exhausted."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after}s")


class NotFoundError(GitHubError):
    pass


class HttpError(GitHubError):
    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"HTTP {status}")


class TransportKind(str, enum.Enum):
    NO_CONNECTIVITY = "no_connectivity"
    TIMEOUT = "timeout"
    HOST_UNREACHABLE = "host_unreachable"
    OTHER = "other"


class TransportError(GitHubError):
    """The request never produced an HTTP response."""

    def __init__(self, kind: TransportKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class GraphQLError(GitHubError):
    """The GraphQL envelope carried a non-empty ``errors`` array."""

    def __init__(self, messages: list[str]) -> None:
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class DecodingError(GitHubError):
    """The response body was not the JSON shape we expected."""


_TRANSPORT_MESSAGES = {
    TransportKind.NO_CONNECTIVITY: "No internet connection",
    TransportKind.TIMEOUT: "Request timed out. Please try again.",
    TransportKind.HOST_UNREACHABLE: "Cannot connect to GitHub. Check your network.",
    TransportKind.OTHER: "Network error. Please check your connection and try again.",
}

FALLBACK_MESSAGE = "Failed to fetch pull requests. Please try again."


def describe_error(exc: BaseException) -> str:
    """Map *exc* to the single sentence shown in the error state."""
    if isinstance(exc, AuthError):
        return "Invalid or expired GitHub token. Please check your token in Preferences."
    if isinstance(exc, RateLimitError):
        return "GitHub API rate limit exceeded. Please try again in a few minutes."
    if isinstance(exc, ForbiddenError):
        return "Access denied. Your token may need 'repo' scope to access pull requests."
    if isinstance(exc, NotFoundError):
        return (
            "API endpoint not found. This may indicate an issue with your token's permissions."
        )
    if isinstance(exc, HttpError):
        return f"GitHub API error (HTTP {exc.status}). Please try again or check your token."
    if isinstance(exc, TransportError):
        return _TRANSPORT_MESSAGES[exc.kind]
    if isinstance(exc, GraphQLError):
        return f"GitHub rejected the query: {'; '.join(exc.messages)}"
    if isinstance(exc, DecodingError):
        return "Invalid response from GitHub. Please try again."
    return FALLBACK_MESSAGE
