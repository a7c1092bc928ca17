from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Quantity(str, Enum):
    AIR_TEMPERATURE = "air_temperature"
    DEW_POINT = "dew_point"
    RELATIVE_HUMIDITY = "relative_humidity"
    WIND_SPEED = "wind_speed"
    GUST_SPEED = "gust_speed"
    WIND_DIRECTION = "wind_direction"
    PRESSURE = "pressure"


@dataclass(frozen=True)
class RawReading:
    timestamp: str
    sensor_type: str
    value: str | None


@dataclass(frozen=True)
class Mapped:
    quantity: Quantity


@dataclass(frozen=True)
class Unmapped:
    label: str


NormalizedSensor = Mapped | Unmapped


@dataclass(frozen=True)
class CompositeRecord:
    timestamp: str
    instant: datetime | None = None

    air_temperature: float | None = None
    dew_point: float | None = None
    relative_humidity: float | None = None
    wind_speed: float | None = None
    gust_speed: float | None = None
    wind_direction: float | None = None
    pressure: float | None = None

    def value(self, quantity: Quantity) -> float | None:
        return getattr(self, quantity.value)


@dataclass(frozen=True)
class CustomRange:
    start: datetime
    stop: datetime


@dataclass(frozen=True)
class DashboardState:
    records: tuple[CompositeRecord, ...] = ()
    time_range_hours: int = 24
    custom_range: CustomRange | None = None
    error: str | None = None
    updated_at: datetime | None = None
    # updated_at is the last successful load; failed_at is set while `error` is.
    failed_at: datetime | None = None

    @property
    def is_live(self) -> bool:
        return self.custom_range is None

    @property
    def latest(self) -> CompositeRecord | None:
        return self.records[-1] if self.records else None
