"""Refresh scheduler: owns the refresh state machine and the auto-refresh timer."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from prpulse.engines.fetcher.fetcher import PullRequestFetcher
from prpulse.engines.reconciler.status import pending_actions_count
from prpulse.exceptions import describe_error
from prpulse.models.pull_request import PullRequest
from prpulse.models.query import QueryResult
from prpulse.models.state import Error, Idle, Loaded, Loading, RefreshState
from prpulse.services.secret_store import SecretStore
from prpulse.services.settings_store import SettingsChange, SettingsStore

logger = structlog.get_logger("prpulse.scheduler")

NO_CREDENTIAL_MESSAGE = "No API key configured"
NO_QUERIES_MESSAGE = "No search queries configured"

StateListener = Callable[[RefreshState], None]


class RefreshTicker:
    """Sleeps *interval* seconds, calls *on_tick*, repeats until cancelled."""

    def __init__(self, on_tick: Callable[[], object], interval: float) -> None:
        self.on_tick = on_tick
        self.interval = interval

    async def loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.on_tick()
            except Exception:
                logger.exception("ticker.error", interval=self.interval)


class RefreshScheduler:
    """Single writer of :class:`RefreshState`.

    ``idle → loading → loaded | error``; a refresh requested while loading is
    rejected rather than queued.  Subscribers are called synchronously on
    every transition.
    """

    def __init__(
        self,
        fetcher: PullRequestFetcher,
        secret_store: SecretStore,
        settings_store: SettingsStore,
    ) -> None:
        self._fetcher = fetcher
        self._secrets = secret_store
        self._settings = settings_store

        self._state: RefreshState = Idle()
        self._current_user_login: str | None = None
        self._last_refresh_time: datetime | None = None
        self._cycle = 0

        self._listeners: list[StateListener] = []
        self._ticker: RefreshTicker | None = None
        self._ticker_task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[bool]] = set()
        self._unsubscribe_settings: Callable[[], None] | None = None

    # ── published state ────────────────────────────────────────────────────

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def current_user_login(self) -> str | None:
        return self._current_user_login

    @property
    def last_refresh_time(self) -> datetime | None:
        return self._last_refresh_time

    @property
    def query_results(self) -> tuple[QueryResult, ...]:
        return self._state.query_results

    @property
    def pull_requests(self) -> list[PullRequest]:
        return [pr for result in self.query_results for pr in result.pull_requests]

    @property
    def pending_actions_count(self) -> int:
        return pending_actions_count(self.query_results, self._current_user_login)

    @property
    def refresh_interval(self) -> float | None:
        return self._ticker.interval if self._ticker is not None else None

    def subscribe(self, callback: StateListener) -> Callable[[], None]:
        """Call *callback* with the new state on every transition."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _set_state(self, state: RefreshState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("scheduler.listener_failed", state=type(state).__name__)

    # ── refresh ────────────────────────────────────────────────────────────

    async def refresh(self) -> bool:
        """Run one cycle. Returns False when rejected because one is running.

        Everything up to the ``Loading`` transition is synchronous, so two
        concurrent callers can never both pass the guard.
        """
        if self._state.is_loading:
            logger.debug("scheduler.refresh_rejected")
            return False

        credential = self._secrets.get_credential()
        if not credential:
            self._set_state(Error(NO_CREDENTIAL_MESSAGE))
            return True

        self._set_state(Loading())

        queries = self._settings.queries
        if not queries:
            self._set_state(Error(NO_QUERIES_MESSAGE))
            return True

        self._cycle += 1
        try:
            with structlog.contextvars.bound_contextvars(cycle=self._cycle):
                outcome = await self._fetcher.fetch_all(queries, credential)
        except Exception as exc:
            message = describe_error(exc)
            logger.warning(
                "scheduler.refresh_failed",
                cycle=self._cycle,
                error_type=type(exc).__name__,
                error=str(exc),
                message=message,
            )
            self._set_state(Error(message))
            return True

        self._current_user_login = outcome.viewer.login
        self._last_refresh_time = datetime.now(timezone.utc)
        self._set_state(Loaded(outcome.results))
        logger.info(
            "scheduler.refreshed",
            cycle=self._cycle,
            queries=len(outcome.results),
            pending_actions=self.pending_actions_count,
        )
        return True

    def trigger_refresh(self) -> asyncio.Task[bool] | None:
        """Fire-and-forget :meth:`refresh`; no-op while a cycle is running."""
        if self._state.is_loading or any(not task.done() for task in self._inflight):
            logger.debug("scheduler.refresh_rejected")
            return None
        task = asyncio.create_task(self.refresh(), name="prpulse-refresh")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    # ── auto refresh ───────────────────────────────────────────────────────

    def start_auto_refresh(self, interval: float) -> None:
        """(Re)arm the ticker. Any previous ticker is cancelled first."""
        self.stop_auto_refresh()
        self._ticker = RefreshTicker(self.trigger_refresh, interval)
        self._ticker_task = asyncio.create_task(self._ticker.loop(), name="prpulse-ticker")
        logger.info("scheduler.auto_refresh_armed", interval=interval)

    def stop_auto_refresh(self) -> None:
        if self._ticker_task is not None:
            self._ticker_task.cancel()
        self._ticker_task = None
        self._ticker = None

    def _on_settings_change(self, change: SettingsChange) -> None:
        if change is SettingsChange.QUERIES:
            self.trigger_refresh()
        elif change is SettingsChange.REFRESH_INTERVAL and self._ticker is not None:
            self.start_auto_refresh(self._settings.refresh_interval)

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def start(self, interval: float | None = None) -> None:
        """Initial refresh, then auto-refresh at *interval* or the stored one."""
        if self._unsubscribe_settings is None:
            self._unsubscribe_settings = self._settings.subscribe(self._on_settings_change)
        interval = interval or self._settings.refresh_interval
        self.start_auto_refresh(interval)
        await self.refresh()
        logger.info("scheduler.started", interval=interval)

    async def stop(self) -> None:
        """Cancel the ticker, detach from settings, and wait for any running cycle."""
        ticker_task = self._ticker_task
        self.stop_auto_refresh()
        if self._unsubscribe_settings is not None:
            self._unsubscribe_settings()
            self._unsubscribe_settings = None
        pending = [t for t in (ticker_task, *self._inflight) if t is not None]
        await asyncio.gather(*pending, return_exceptions=True)
        logger.info("scheduler.stopped")
