from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CompositeRecordRead(BaseModel):
    timestamp: str
    instant: datetime | None = None

    air_temperature: float | None = None
    dew_point: float | None = None
    relative_humidity: float | None = None
    wind_speed: float | None = None
    gust_speed: float | None = None
    wind_direction: float | None = None
    pressure: float | None = None


class WindRoseRead(BaseModel):
    labels: list[str] = Field(min_length=8, max_length=8)
    bins: list[float] = Field(min_length=8, max_length=8)


class CustomRangeRead(BaseModel):
    start: datetime
    stop: datetime


class DashboardStateRead(BaseModel):
    mode: str
    time_range_hours: int = Field(ge=1)
    custom_range: CustomRangeRead | None = None
    error: str | None = None
    updated_at: datetime | None = None
    failed_at: datetime | None = None
    records: list[CompositeRecordRead] = Field(default_factory=list)
    wind_rose: WindRoseRead


class DashboardRefreshResponse(BaseModel):
    skipped: bool = False
    record_count: int = Field(ge=0)
    error: str | None = None
    updated_at: datetime | None = None
    failed_at: datetime | None = None
