"""Multi-query fetch orchestrator."""

from prpulse.engines.fetcher.enrich import Enricher
from prpulse.engines.fetcher.fetcher import FetchOutcome, PullRequestFetcher

__all__ = [
    "Enricher",
    "FetchOutcome",
    "PullRequestFetcher",
]
