from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

import httpx

from station_dashboard.clients.licor import ProviderError
from station_dashboard.core.config import TIME_RANGE_HOURS
from station_dashboard.models.weather import CompositeRecord, CustomRange, DashboardState

logger = logging.getLogger(__name__)

DEFAULT_TIME_RANGE_HOURS = 24


class StationDataSource(Protocol):
    def fetch_records(self, start: datetime, stop: datetime) -> list[CompositeRecord]: ...


class NoDataError(ProviderError):
    def __init__(self) -> None:
        super().__init__("No data returned from API")


class FetchInProgressError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("A station fetch is already in flight")


@dataclass(frozen=True)
class DashboardLoadResult:
    state: DashboardState
    skipped: bool


class DashboardStore:
    """Holds the current dashboard snapshot; snapshots are replaced, never edited."""

    def __init__(self, initial: DashboardState | None = None) -> None:
        self._lock = threading.Lock()
        self._state = initial or DashboardState()

    def get(self) -> DashboardState:
        with self._lock:
            return self._state

    def replace(self, state: DashboardState) -> None:
        with self._lock:
            self._state = state


class FetchGuard:
    """Allows a single provider fetch in flight at a time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class DashboardService:
    def __init__(
        self,
        *,
        source: StationDataSource,
        store: DashboardStore,
        guard: FetchGuard | None = None,
        clock: Callable[[], datetime] = _utcnow,
        default_hours: int = DEFAULT_TIME_RANGE_HOURS,
    ) -> None:
        self._source = source
        self._store = store
        self._guard = guard or FetchGuard()
        self._clock = clock
        self._default_hours = default_hours

    @property
    def state(self) -> DashboardState:
        return self._store.get()

    def live_window(self, hours: int) -> tuple[datetime, datetime]:
        stop = self._clock()
        return stop - timedelta(hours=hours), stop

    def fetch_records(self, start: datetime, stop: datetime) -> list[CompositeRecord]:
        """Fetch a window without touching the snapshot; raises when a fetch is in flight."""
        if not self._guard.try_acquire():
            raise FetchInProgressError()
        try:
            return self._source.fetch_records(start, stop)
        finally:
            self._guard.release()

    def load_live(self, hours: int | None = None) -> DashboardLoadResult:
        if hours is None:
            hours = self.state.time_range_hours
        start, stop = self.live_window(hours)
        return self._load(start, stop, time_range_hours=hours, custom_range=None)

    def load_custom(self, start: datetime, stop: datetime) -> DashboardLoadResult:
        return self._load(
            start,
            stop,
            time_range_hours=self.state.time_range_hours,
            custom_range=CustomRange(start=start, stop=stop),
        )

    def back_to_live(self) -> DashboardLoadResult:
        return self.load_live(self._default_hours)

    def tick(self) -> DashboardLoadResult:
        current = self.state
        if not current.is_live:
            return DashboardLoadResult(state=current, skipped=True)
        logger.info("Auto-refreshing live data", extra={"hours": current.time_range_hours})
        start, stop = self.live_window(current.time_range_hours)
        return self._load(
            start,
            stop,
            time_range_hours=current.time_range_hours,
            custom_range=None,
            live_only=True,
        )

    def _load(
        self,
        start: datetime,
        stop: datetime,
        *,
        time_range_hours: int,
        custom_range: CustomRange | None,
        live_only: bool = False,
    ) -> DashboardLoadResult:
        if not self._guard.try_acquire():
            logger.warning("Skipping load, a fetch is already in flight")
            return DashboardLoadResult(state=self.state, skipped=True)
        try:
            # A custom range may have been selected after the caller checked the mode.
            if live_only and not self.state.is_live:
                return DashboardLoadResult(state=self.state, skipped=True)
            base = replace(
                self.state, time_range_hours=time_range_hours, custom_range=custom_range
            )
            try:
                records = self._source.fetch_records(start, stop)
                if not records:
                    raise NoDataError()
            except (ProviderError, httpx.HTTPError) as e:
                logger.error("Failed to load station data: %s", e)
                state = replace(
                    base,
                    records=(),
                    error=str(e) or type(e).__name__,
                    failed_at=self._clock(),
                )
            else:
                state = replace(
                    base,
                    records=tuple(records),
                    error=None,
                    updated_at=self._clock(),
                    failed_at=None,
                )
            self._store.replace(state)
            return DashboardLoadResult(state=state, skipped=False)
        finally:
            self._guard.release()


def is_preset_range(hours: int) -> bool:
    return hours in TIME_RANGE_HOURS
