from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

import httpx
from fastapi import APIRouter, HTTPException, Query, status

from station_dashboard.api.deps import DashboardServiceDep
from station_dashboard.clients.licor import (
    ProviderError,
    ProviderNotConfiguredError,
    ProviderResponseError,
)
from station_dashboard.models.weather import CompositeRecord
from station_dashboard.schemas.weather import (
    CompositeRecordRead,
    CustomRangeRead,
    DashboardRefreshResponse,
    DashboardStateRead,
    WindRoseRead,
)
from station_dashboard.services.dashboard import DashboardService, FetchInProgressError
from station_dashboard.services.views import record_payload
from station_dashboard.services.windrose import OCTANT_LABELS, wind_rose_bins

router = APIRouter()

Hours = Annotated[int, Query(ge=1, le=24 * 7)]


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _resolve_window(
    service: DashboardService,
    hours: int,
    start: datetime | None,
    stop: datetime | None,
) -> tuple[datetime, datetime]:
    if start is None and stop is None:
        return service.live_window(hours)
    if start is None or stop is None:
        raise HTTPException(status_code=400, detail="'start' and 'stop' must be given together")
    start_dt, stop_dt = _to_utc(start), _to_utc(stop)
    if start_dt >= stop_dt:
        raise HTTPException(status_code=400, detail="'start' must be before 'stop'")
    return start_dt, stop_dt


def _fetch(service: DashboardService, start: datetime, stop: datetime) -> list[CompositeRecord]:
    try:
        return service.fetch_records(start, stop)
    except FetchInProgressError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="A station fetch is already in progress, retry shortly",
            headers={"Retry-After": "5"},
        ) from e
    except ProviderNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Weather station provider not configured",
        ) from e
    except ProviderResponseError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Weather station provider returned {e.status_code}",
        ) from e
    except (ProviderError, httpx.HTTPError) as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Weather station provider unavailable",
        ) from e


def _records_read(records) -> list[CompositeRecordRead]:
    return [CompositeRecordRead.model_validate(record_payload(r)) for r in records]


@router.get("/readings", response_model=list[CompositeRecordRead])
def list_readings(
    service: DashboardServiceDep,
    hours: Hours = 24,
    start: Annotated[datetime | None, Query()] = None,
    stop: Annotated[datetime | None, Query()] = None,
) -> list[CompositeRecordRead]:
    start_dt, stop_dt = _resolve_window(service, hours, start, stop)
    return _records_read(_fetch(service, start_dt, stop_dt))


@router.get("/windrose", response_model=WindRoseRead)
def wind_rose(
    service: DashboardServiceDep,
    hours: Hours = 24,
    start: Annotated[datetime | None, Query()] = None,
    stop: Annotated[datetime | None, Query()] = None,
) -> WindRoseRead:
    start_dt, stop_dt = _resolve_window(service, hours, start, stop)
    records = _fetch(service, start_dt, stop_dt)
    return WindRoseRead(labels=list(OCTANT_LABELS), bins=wind_rose_bins(records))


@router.get("/dashboard", response_model=DashboardStateRead)
def dashboard_state(service: DashboardServiceDep) -> DashboardStateRead:
    state = service.state
    custom = None
    if state.custom_range is not None:
        custom = CustomRangeRead(start=state.custom_range.start, stop=state.custom_range.stop)
    return DashboardStateRead(
        mode="live" if state.is_live else "custom",
        time_range_hours=state.time_range_hours,
        custom_range=custom,
        error=state.error,
        updated_at=state.updated_at,
        failed_at=state.failed_at,
        records=_records_read(state.records),
        wind_rose=WindRoseRead(labels=list(OCTANT_LABELS), bins=wind_rose_bins(state.records)),
    )


@router.post("/dashboard/refresh", response_model=DashboardRefreshResponse)
def refresh_dashboard(
    service: DashboardServiceDep,
    hours: Annotated[int | None, Query(ge=1, le=24 * 7)] = None,
) -> DashboardRefreshResponse:
    result = service.load_live(hours)
    return DashboardRefreshResponse(
        skipped=result.skipped,
        record_count=len(result.state.records),
        error=result.state.error,
        updated_at=result.state.updated_at,
        failed_at=result.state.failed_at,
    )


@router.get("/health", tags=["meta"])
def health(service: DashboardServiceDep) -> dict[str, str]:
    state = service.state
    return {"status": "degraded" if state.error else "ok"}
