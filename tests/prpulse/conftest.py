"""Shared fixtures for prpulse tests."""

import pytest

from helpers import FakeGitHub


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def github() -> FakeGitHub:
    fake = FakeGitHub()
    fake.route("GET", "/user", {"login": "alice", "id": 10, "type": "User"})
    return fake
