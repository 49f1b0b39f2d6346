"""Query list and refresh interval persistence, with change notification."""

from __future__ import annotations

import enum
import json
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from prpulse.core.config import DEFAULT_REFRESH_INTERVAL
from prpulse.models.query import QueryConfiguration, default_query

log = structlog.get_logger("prpulse.settings")


class SettingsChange(str, enum.Enum):
    QUERIES = "queries"
    REFRESH_INTERVAL = "refresh_interval"


Listener = Callable[[SettingsChange], None]


class SettingsStore(Protocol):
    @property
    def queries(self) -> list[QueryConfiguration]: ...

    @property
    def refresh_interval(self) -> float: ...

    def subscribe(self, callback: Listener) -> Callable[[], None]: ...


class _SettingsFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    queries: list[QueryConfiguration] = Field(default_factory=lambda: [default_query()])
    refresh_interval: float = Field(
        default=DEFAULT_REFRESH_INTERVAL, alias="refreshInterval", gt=0
    )


class MemorySettingsStore:
    """In-process settings; every mutation notifies subscribers.

    Index-based operations silently ignore out-of-range indices.
    """

    def __init__(
        self,
        queries: list[QueryConfiguration] | None = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        self._queries: list[QueryConfiguration] = (
            list(queries) if queries is not None else [default_query()]
        )
        self._refresh_interval = refresh_interval
        self._listeners: list[Listener] = []

    # ── read ───────────────────────────────────────────────────────────────

    @property
    def queries(self) -> list[QueryConfiguration]:
        return list(self._queries)

    @property
    def refresh_interval(self) -> float:
        return self._refresh_interval

    # ── observers ──────────────────────────────────────────────────────────

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register *callback*; returns a function that unregisters it."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _notify(self, change: SettingsChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                log.exception("settings.listener_failed", change=change.value)

    def _commit(self, change: SettingsChange) -> None:
        self._persist()
        self._notify(change)

    def _persist(self) -> None:
        pass

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self._queries)

    # ── queries ────────────────────────────────────────────────────────────

    def set_queries(self, queries: list[QueryConfiguration]) -> None:
        self._queries = list(queries)
        self._commit(SettingsChange.QUERIES)

    def add_query(self, query: QueryConfiguration) -> None:
        self._queries.append(query)
        self._commit(SettingsChange.QUERIES)

    def remove_query(self, index: int) -> None:
        if not self._in_range(index):
            return
        del self._queries[index]
        self._commit(SettingsChange.QUERIES)

    def update_query(self, index: int, query: QueryConfiguration) -> None:
        if not self._in_range(index):
            return
        self._queries[index] = query
        self._commit(SettingsChange.QUERIES)

    def duplicate_query(self, index: int) -> None:
        if not self._in_range(index):
            return
        self._queries.insert(index + 1, self._queries[index].duplicate())
        self._commit(SettingsChange.QUERIES)

    def move_query(self, source: int, destination: int) -> None:
        if not self._in_range(source) or not self._in_range(destination):
            return
        if source == destination:
            return
        query = self._queries.pop(source)
        self._queries.insert(destination, query)
        self._commit(SettingsChange.QUERIES)

    def move_query_up(self, index: int) -> None:
        if 0 < index < len(self._queries):
            self.move_query(index, index - 1)

    def move_query_down(self, index: int) -> None:
        if 0 <= index < len(self._queries) - 1:
            self.move_query(index, index + 1)

    # ── interval ───────────────────────────────────────────────────────────

    def set_refresh_interval(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("refresh interval must be positive")
        self._refresh_interval = float(seconds)
        self._commit(SettingsChange.REFRESH_INTERVAL)

    def reset_to_defaults(self) -> None:
        """Restore the default query list and refresh interval."""
        self._queries = [default_query()]
        self._refresh_interval = DEFAULT_REFRESH_INTERVAL
        self._persist()
        self._notify(SettingsChange.QUERIES)
        self._notify(SettingsChange.REFRESH_INTERVAL)


class JsonSettingsStore(MemorySettingsStore):
    """Settings persisted to a JSON file.

    A missing or unreadable file yields the default query list; the file is
    only (re)written on the first mutation.
    """

    def __init__(self, path: Path, default_refresh_interval: float = DEFAULT_REFRESH_INTERVAL) -> None:
        self._path = Path(path)
        loaded = self._load(self._path, default_refresh_interval)
        super().__init__(loaded.queries, loaded.refresh_interval)

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def _load(path: Path, default_refresh_interval: float) -> _SettingsFile:
        fallback = _SettingsFile(refresh_interval=default_refresh_interval)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.info("settings.file_missing", path=str(path))
            return fallback
        except OSError as exc:
            log.warning("settings.file_unreadable", path=str(path), error=str(exc))
            return fallback

        try:
            data = json.loads(raw)
            if isinstance(data, dict) and "refreshInterval" not in data:
                data.setdefault("refresh_interval", default_refresh_interval)
            return _SettingsFile.model_validate(data)
        except (ValueError, ValidationError) as exc:
            log.warning("settings.file_invalid", path=str(path), error=str(exc))
            return fallback

    def _persist(self) -> None:
        payload = {
            "queries": [query.to_json_dict() for query in self._queries],
            "refreshInterval": self._refresh_interval,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".settings-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        log.debug("settings.saved", path=str(self._path), queries=len(self._queries))
