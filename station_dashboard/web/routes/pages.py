from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from station_dashboard.api.deps import DashboardServiceDep, DisplayTimezone, get_settings
from station_dashboard.core.config import TIME_RANGE_HOURS, Settings
from station_dashboard.models.weather import DashboardState
from station_dashboard.services.dashboard import is_preset_range
from station_dashboard.services.views import (
    VARIABLES,
    format_range_bound,
    latest_conditions,
    thermometer,
    time_series,
    wind_rose,
)
from station_dashboard.web.templates import templates

logger = logging.getLogger(__name__)

router = APIRouter()

DATETIME_LOCAL_FORMAT = "%Y-%m-%dT%H:%M"


def _parse_local_datetime(value: str, tz: ZoneInfo) -> datetime:
    # <input type="datetime-local"> submits wall-clock time without an offset.
    dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt


def _render_dashboard(
    *,
    request: Request,
    state: DashboardState,
    settings: Settings,
    tz: ZoneInfo,
    error: str | None = None,
    status_code: int = 200,
):
    records = state.records
    now = datetime.now(tz=tz)
    custom_start = custom_stop = None
    if state.custom_range is not None:
        custom_start = state.custom_range.start.astimezone(tz).strftime(DATETIME_LOCAL_FORMAT)
        custom_stop = state.custom_range.stop.astimezone(tz).strftime(DATETIME_LOCAL_FORMAT)

    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "request": request,
            "title": "Weather Station Dashboard",
            "state": state,
            "time_ranges": TIME_RANGE_HOURS,
            "variables": VARIABLES,
            "conditions": latest_conditions(records, tz),
            "thermometer": thermometer(records),
            "charts": {
                "series": time_series(records),
                "wind_rose": wind_rose(records),
            },
            "custom_start": custom_start
            or (now - timedelta(hours=24)).strftime(DATETIME_LOCAL_FORMAT),
            "custom_stop": custom_stop or now.strftime(DATETIME_LOCAL_FORMAT),
            "range_label": (
                f"{format_range_bound(state.custom_range.start, tz)} to "
                f"{format_range_bound(state.custom_range.stop, tz)}"
                if state.custom_range is not None
                else None
            ),
            "auto_refresh_enabled": settings.auto_refresh_enabled,
            "refresh_seconds": max(1, int(settings.auto_refresh_interval_seconds)),
            "timezone": settings.display_timezone,
            "error": error,
        },
        status_code=status_code,
    )


def _render_error(*, request: Request, message: str):
    return templates.TemplateResponse(
        request,
        "error.html",
        {"request": request, "title": "Weather Station Dashboard", "error": message},
        status_code=503,
    )


@router.get("/", include_in_schema=False)
def dashboard(
    request: Request,
    service: DashboardServiceDep,
    settings: Annotated[Settings, Depends(get_settings)],
    tz: DisplayTimezone,
):
    state = service.state
    if state.updated_at is None and state.error is None:
        state = service.load_live(settings.default_time_range_hours).state
    if state.error:
        return _render_error(request=request, message=state.error)
    return _render_dashboard(request=request, state=state, settings=settings, tz=tz)


@router.get("/range", include_in_schema=False)
def select_range(
    service: DashboardServiceDep,
    hours: Annotated[int, Query(ge=1, le=24 * 7)],
):
    if not is_preset_range(hours):
        raise HTTPException(status_code=400, detail="Unsupported time range")
    service.load_live(hours)
    return RedirectResponse("/ui/", status_code=303)


@router.post("/custom", include_in_schema=False)
def apply_custom_range(
    request: Request,
    service: DashboardServiceDep,
    settings: Annotated[Settings, Depends(get_settings)],
    tz: DisplayTimezone,
    start: Annotated[str, Form(min_length=1, max_length=32)],
    stop: Annotated[str, Form(min_length=1, max_length=32)],
):
    try:
        start_dt = _parse_local_datetime(start, tz)
        stop_dt = _parse_local_datetime(stop, tz)
    except ValueError:
        return _render_dashboard(
            request=request,
            state=service.state,
            settings=settings,
            tz=tz,
            error="Invalid date/time (expected YYYY-MM-DDTHH:MM).",
            status_code=400,
        )
    if start_dt >= stop_dt:
        return _render_dashboard(
            request=request,
            state=service.state,
            settings=settings,
            tz=tz,
            error="Start must be before end.",
            status_code=400,
        )

    logger.info("Loading custom range", extra={"start": start_dt, "stop": stop_dt})
    service.load_custom(start_dt, stop_dt)
    return RedirectResponse("/ui/", status_code=303)


@router.get("/live", include_in_schema=False)
def back_to_live(service: DashboardServiceDep):
    service.back_to_live()
    return RedirectResponse("/ui/", status_code=303)
