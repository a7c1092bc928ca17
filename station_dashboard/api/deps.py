from __future__ import annotations

from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import Depends, Request

from station_dashboard.core.config import Settings
from station_dashboard.services.dashboard import (
    DashboardService,
    DashboardStore,
    FetchGuard,
    StationDataSource,
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_station_client(request: Request) -> StationDataSource:
    return request.app.state.station_client


def get_dashboard_store(request: Request) -> DashboardStore:
    return request.app.state.dashboard_store


def get_fetch_guard(request: Request) -> FetchGuard:
    return request.app.state.fetch_guard


def get_display_timezone(settings: Annotated[Settings, Depends(get_settings)]) -> ZoneInfo:
    return ZoneInfo(settings.display_timezone)


def get_dashboard_service(
    source: Annotated[StationDataSource, Depends(get_station_client)],
    store: Annotated[DashboardStore, Depends(get_dashboard_store)],
    guard: Annotated[FetchGuard, Depends(get_fetch_guard)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> DashboardService:
    return DashboardService(
        source=source,
        store=store,
        guard=guard,
        default_hours=settings.default_time_range_hours,
    )


DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
DisplayTimezone = Annotated[ZoneInfo, Depends(get_display_timezone)]
