"""Tests for prpulse.core: id/URL helpers, time formatting, configuration, logging."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path

import pytest

from helpers import NOW, node_id
from prpulse.core.config import REFRESH_INTERVAL_OPTIONS, Settings, load_settings
from prpulse.core.github import (
    decode_node_id,
    parse_repository_url,
    parse_workflow_run_id,
    repository_api_url,
    stable_id_hash,
)
from prpulse.core.logging import _resolve_level, setup_logging
from prpulse.core.timefmt import short_time_ago

# ── repository URLs ───────────────────────────────────────────────────────


class TestParseRepositoryUrl:
    def test_plain(self):
        assert parse_repository_url("https://api.github.com/repos/octo/repo") == ("octo", "repo")

    def test_with_subpath(self):
        url = "https://api.github.com/repos/octo/repo/pulls/12"
        assert parse_repository_url(url) == ("octo", "repo")

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "invalid-url",
            "https://github.com/octo/repo",
            "http://api.github.com/repos/octo/repo",
            "https://api.github.com/repos/octo",
        ],
    )
    def test_malformed_is_absent(self, url):
        assert parse_repository_url(url) is None

    def test_round_trip_with_builder(self):
        assert parse_repository_url(repository_api_url("a-b", "c.d")) == ("a-b", "c.d")


# ── node ids ──────────────────────────────────────────────────────────────


class TestDecodeNodeId:
    def test_legacy_type_prefixed(self):
        assert decode_node_id(node_id("04:User583231")) == 583231

    def test_plain_prefix(self):
        assert decode_node_id(node_id("PullRequest:1001")) == 1001

    def test_unpadded_base64(self):
        token = node_id("CheckRun:77").rstrip("=")
        assert decode_node_id(token) == 77

    def test_modern_opaque_id_falls_back_to_hash(self):
        token = "PR_kwDOAbc123zM5xyz"
        assert decode_node_id(token) == stable_id_hash(token)

    def test_zero_is_never_returned(self):
        token = node_id("CheckRun:0")
        assert decode_node_id(token) != 0
        assert decode_node_id(token) == stable_id_hash(token)

    def test_distinct_undecodable_tokens_do_not_collide(self):
        assert decode_node_id("not base64 !!") != decode_node_id("also not base64 ??")

    def test_hash_is_deterministic_and_positive(self):
        value = stable_id_hash("abc")
        assert value == stable_id_hash("abc")
        assert 0 < value < 2**63

    def test_empty_token(self):
        assert decode_node_id("") == stable_id_hash("")
        assert decode_node_id("") > 0


class TestParseWorkflowRunId:
    def test_actions_job_url(self):
        url = "https://github.com/octo/repo/actions/runs/123456/job/789"
        assert parse_workflow_run_id(url) == 123456

    def test_none(self):
        assert parse_workflow_run_id(None) is None

    def test_no_runs_segment(self):
        assert parse_workflow_run_id("https://ci.example.com/builds/5") is None

    def test_non_numeric(self):
        assert parse_workflow_run_id("https://github.com/o/r/actions/runs/latest") is None


# ── short_time_ago ────────────────────────────────────────────────────────


class TestShortTimeAgo:
    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(seconds=30), "Just now"),
            (timedelta(minutes=1), "1 min ago"),
            (timedelta(minutes=5), "5 mins ago"),
            (timedelta(hours=1), "1 hour ago"),
            (timedelta(hours=23), "23 hours ago"),
            (timedelta(days=1), "1 day ago"),
            (timedelta(days=3), "3 days ago"),
            (timedelta(days=14), "2 weeks ago"),
            (timedelta(days=65), "2 months ago"),
            (timedelta(days=365), "1 year ago"),
            (timedelta(days=800), "2 years ago"),
        ],
    )
    def test_units(self, delta, expected):
        assert short_time_ago(NOW - delta, NOW) == expected

    def test_future_is_just_now(self):
        assert short_time_ago(NOW + timedelta(minutes=5), NOW) == "Just now"


# ── configuration ─────────────────────────────────────────────────────────


_ENV_KEYS = [
    "PRPULSE_API_URL",
    "PRPULSE_GRAPHQL_URL",
    "PRPULSE_CONNECT_TIMEOUT",
    "PRPULSE_READ_TIMEOUT",
    "PRPULSE_MAX_CONCURRENCY",
    "PRPULSE_ENRICH_CONCURRENCY",
    "PRPULSE_TRANSPORT",
    "PRPULSE_REFRESH_INTERVAL",
    "PRPULSE_SETTINGS_PATH",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestLoadSettings:
    def test_defaults(self, clean_env):
        settings = load_settings()
        assert settings.api_url == "https://api.github.com"
        assert settings.graphql_url == "https://api.github.com/graphql"
        assert settings.connect_timeout == 10.0
        assert settings.read_timeout == 30.0
        assert settings.max_concurrency == 5
        assert settings.enrich_concurrency == 8
        assert settings.transport == "graphql"
        assert settings.refresh_interval == 300.0

    def test_overrides(self, clean_env, tmp_path):
        clean_env.setenv("PRPULSE_API_URL", "https://ghe.example.com/api/v3/")
        clean_env.setenv("PRPULSE_TRANSPORT", "REST")
        clean_env.setenv("PRPULSE_MAX_CONCURRENCY", "2")
        clean_env.setenv("PRPULSE_REFRESH_INTERVAL", "60")
        clean_env.setenv("PRPULSE_SETTINGS_PATH", str(tmp_path / "s.json"))
        settings = load_settings()
        assert settings.api_url == "https://ghe.example.com/api/v3"
        assert settings.graphql_url == "https://ghe.example.com/api/v3/graphql"
        assert settings.transport == "rest"
        assert settings.max_concurrency == 2
        assert settings.refresh_interval == 60.0
        assert settings.settings_path == Path(tmp_path / "s.json")

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_invalid_numbers_fall_back(self, clean_env, value):
        clean_env.setenv("PRPULSE_READ_TIMEOUT", value)
        clean_env.setenv("PRPULSE_ENRICH_CONCURRENCY", value)
        settings = load_settings()
        assert settings.read_timeout == 30.0
        assert settings.enrich_concurrency == 8

    def test_unknown_transport_falls_back(self, clean_env):
        clean_env.setenv("PRPULSE_TRANSPORT", "carrier-pigeon")
        assert load_settings().transport == "graphql"

    def test_settings_is_frozen(self):
        with pytest.raises(AttributeError):
            Settings().api_url = "x"  # type: ignore[misc]

    def test_interval_options(self):
        assert [seconds for _, seconds in REFRESH_INTERVAL_OPTIONS] == [30, 60, 120, 300, 3600]


# ── logging ───────────────────────────────────────────────────────────────


class TestLogging:
    @pytest.mark.parametrize(
        "override, env, expected",
        [
            (None, None, "INFO"),
            (None, "debug", "DEBUG"),
            ("WARNING", "debug", "WARNING"),
            (None, "chatty", "INFO"),
        ],
    )
    def test_resolve_level(self, monkeypatch, override, env, expected):
        if env is None:
            monkeypatch.delenv("PRPULSE_LOG_LEVEL", raising=False)
        else:
            monkeypatch.setenv("PRPULSE_LOG_LEVEL", env)
        assert _resolve_level(override) == expected

    def test_setup_applies_level(self, monkeypatch):
        monkeypatch.setenv("PRPULSE_LOG_FORMAT", "json")
        setup_logging("ERROR")
        assert logging.getLogger("prpulse").level == logging.ERROR
        assert logging.getLogger("httpx").level == logging.WARNING
