"""Refresh state published by the scheduler.

Exactly one of :class:`Idle`, :class:`Loading`, :class:`Loaded` or
:class:`Error` holds at any time.
"""

from __future__ import annotations

from dataclasses import dataclass

from prpulse.models.query import QueryResult


class RefreshState:
    """Base of the four refresh states."""

    __slots__ = ()

    @property
    def is_loading(self) -> bool:
        return False

    @property
    def error_message(self) -> str | None:
        return None

    @property
    def query_results(self) -> tuple[QueryResult, ...]:
        return ()


@dataclass(frozen=True)
class Idle(RefreshState):
    pass


@dataclass(frozen=True)
class Loading(RefreshState):
    @property
    def is_loading(self) -> bool:
        return True


@dataclass(frozen=True)
class Loaded(RefreshState):
    results: tuple[QueryResult, ...]

    @property
    def query_results(self) -> tuple[QueryResult, ...]:
        return self.results


@dataclass(frozen=True)
class Error(RefreshState):
    message: str

    @property
    def error_message(self) -> str | None:
        return self.message
