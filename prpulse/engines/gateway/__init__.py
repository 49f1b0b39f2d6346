"""Remote API gateway: authenticated REST and GraphQL calls to GitHub."""

from prpulse.engines.gateway.github_client import GitHubClient, GraphQLRequest, RestRequest

__all__ = [
    "GitHubClient",
    "GraphQLRequest",
    "RestRequest",
]
