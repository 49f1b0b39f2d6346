"""Runtime configuration read from ``PRPULSE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger("prpulse.config")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_REFRESH_INTERVAL = 300.0

# Choices offered by the settings screen; any positive value is accepted.
REFRESH_INTERVAL_OPTIONS: tuple[tuple[str, float], ...] = (
    ("30 seconds", 30.0),
    ("1 minute", 60.0),
    ("2 minutes", 120.0),
    ("5 minutes", 300.0),
    ("60 minutes", 3600.0),
)

TRANSPORTS = ("graphql", "rest")


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    graphql_url: str = f"{DEFAULT_API_URL}/graphql"
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    max_concurrency: int = 5
    enrich_concurrency: int = 8
    transport: str = "graphql"
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    settings_path: Path = Path("~/.config/prpulse/settings.json").expanduser()


def _env_float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("config.invalid_value", key=key, value=raw, default=default)
        return default
    if value <= 0:
        logger.warning("config.non_positive_value", key=key, value=raw, default=default)
        return default
    return value


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("config.invalid_value", key=key, value=raw, default=default)
        return default
    if value <= 0:
        logger.warning("config.non_positive_value", key=key, value=raw, default=default)
        return default
    return value


def load_settings() -> Settings:
    """Build :class:`Settings` from the environment, falling back to defaults."""
    api_url = os.environ.get("PRPULSE_API_URL", DEFAULT_API_URL).rstrip("/")
    graphql_url = os.environ.get("PRPULSE_GRAPHQL_URL", f"{api_url}/graphql")

    transport = os.environ.get("PRPULSE_TRANSPORT", "graphql").lower()
    if transport not in TRANSPORTS:
        logger.warning("config.invalid_value", key="PRPULSE_TRANSPORT", value=transport, default="graphql")
        transport = "graphql"

    settings_path = Path(
        os.environ.get("PRPULSE_SETTINGS_PATH", "~/.config/prpulse/settings.json")
    ).expanduser()

    return Settings(
        api_url=api_url,
        graphql_url=graphql_url,
        connect_timeout=_env_float("PRPULSE_CONNECT_TIMEOUT", 10.0),
        read_timeout=_env_float("PRPULSE_READ_TIMEOUT", 30.0),
        max_concurrency=_env_int("PRPULSE_MAX_CONCURRENCY", 5),
        enrich_concurrency=_env_int("PRPULSE_ENRICH_CONCURRENCY", 8),
        transport=transport,
        refresh_interval=_env_float("PRPULSE_REFRESH_INTERVAL", DEFAULT_REFRESH_INTERVAL),
        settings_path=settings_path,
    )
