"""GitHub account reference."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GitHubUser:
    """A user, bot, or team reference as seen on a pull request."""

    login: str
    id: int = 0
    type: str = "User"
