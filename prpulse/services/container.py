"""Composition root: the one place that decides which implementations to use."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from prpulse.core.config import Settings, load_settings
from prpulse.engines.fetcher.fetcher import PullRequestFetcher
from prpulse.engines.gateway.github_client import GitHubClient
from prpulse.scheduler import RefreshScheduler
from prpulse.services.secret_store import EnvSecretStore, SecretStore
from prpulse.services.settings_store import JsonSettingsStore, MemorySettingsStore


@dataclass
class ServiceContainer:
    settings: Settings
    client: GitHubClient
    fetcher: PullRequestFetcher
    secret_store: SecretStore
    settings_store: MemorySettingsStore
    scheduler: RefreshScheduler

    async def aclose(self) -> None:
        await self.scheduler.stop()
        await self.client.close()


def build_container(
    settings: Settings | None = None,
    *,
    secret_store: SecretStore | None = None,
    settings_store: MemorySettingsStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ServiceContainer:
    """Wire the production graph; any piece can be swapped for a test double."""
    settings = settings or load_settings()
    client = GitHubClient.from_settings(settings, transport=transport)
    fetcher = PullRequestFetcher.from_settings(client, settings)
    secrets = secret_store or EnvSecretStore()
    store = settings_store or JsonSettingsStore(
        settings.settings_path, default_refresh_interval=settings.refresh_interval
    )
    scheduler = RefreshScheduler(fetcher, secrets, store)
    return ServiceContainer(
        settings=settings,
        client=client,
        fetcher=fetcher,
        secret_store=secrets,
        settings_store=store,
        scheduler=scheduler,
    )
