"""Turn dashboard records into the rows, gauges and chart payloads the pages render."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from station_dashboard.models.weather import CompositeRecord, Quantity
from station_dashboard.services.windrose import OCTANT_COLORS, OCTANT_LABELS, wind_rose_bins

THERMOMETER_MIN_C = -20.0
THERMOMETER_MAX_C = 50.0

MISSING_VALUE = "--"


@dataclass(frozen=True)
class Variable:
    quantity: Quantity
    label: str
    unit: str
    title: str
    chart_label: str
    color: str


VARIABLES: tuple[Variable, ...] = (
    Variable(Quantity.AIR_TEMPERATURE, "Air Temp", "°C", "Air Temperature", "Air Temp (°C)", "#f87171"),
    Variable(Quantity.DEW_POINT, "Dew Point", "°C", "Dew Point", "Dew Point (°C)", "#fbbf24"),
    Variable(
        Quantity.RELATIVE_HUMIDITY,
        "Rel. Humidity",
        "%",
        "Relative Humidity",
        "Rel. Humidity (%)",
        "#60a5fa",
    ),
    Variable(Quantity.WIND_SPEED, "Wind Speed", "m/s", "Wind Speed", "Wind Speed (m/s)", "#34d399"),
    Variable(Quantity.GUST_SPEED, "Gust Speed", "m/s", "Gust Speed", "Gust Speed (m/s)", "#a78bfa"),
    Variable(
        Quantity.WIND_DIRECTION, "Wind Dir", "°", "Wind Direction", "Wind Dir (°)", "#f472b6"
    ),
    Variable(Quantity.PRESSURE, "Pressure", "mbar", "Pressure", "Pressure (mbar)", "#facc15"),
)


@dataclass(frozen=True)
class ConditionRow:
    label: str
    value: str
    unit: str
    timestamp: str


@dataclass(frozen=True)
class ThermometerGauge:
    temperature: float | None
    percent: float

    @property
    def display(self) -> str:
        if self.temperature is None:
            return MISSING_VALUE
        return f"{self.temperature:.1f}°C"


def format_value(value: float | None, *, digits: int = 2) -> str:
    if value is None:
        return MISSING_VALUE
    return f"{value:.{digits}f}"


def format_local_time(record: CompositeRecord, tz: ZoneInfo) -> str:
    if record.instant is None:
        return chart_label(record)
    return record.instant.astimezone(tz).strftime("%m/%d/%Y %H:%M:%S")


def chart_label(record: CompositeRecord) -> str:
    return record.timestamp.replace("T", " ")[:19]


def latest_conditions(records: Sequence[CompositeRecord], tz: ZoneInfo) -> list[ConditionRow]:
    if not records:
        return []
    latest = records[-1]
    when = format_local_time(latest, tz)
    return [
        ConditionRow(
            label=v.label,
            value=format_value(latest.value(v.quantity)),
            unit=v.unit,
            timestamp=when,
        )
        for v in VARIABLES
    ]


def thermometer(records: Sequence[CompositeRecord]) -> ThermometerGauge | None:
    if not records:
        return None
    temp = records[-1].air_temperature
    if temp is None:
        return ThermometerGauge(temperature=None, percent=0.0)
    span = THERMOMETER_MAX_C - THERMOMETER_MIN_C
    percent = max(0.0, min(1.0, (temp - THERMOMETER_MIN_C) / span))
    return ThermometerGauge(temperature=temp, percent=percent)


def time_series(records: Sequence[CompositeRecord]) -> list[dict[str, object]]:
    labels = [chart_label(r) for r in records]
    return [
        {
            "key": v.quantity.value,
            "title": v.title,
            "label": v.chart_label,
            "color": v.color,
            "labels": labels,
            "values": [r.value(v.quantity) for r in records],
        }
        for v in VARIABLES
    ]


def wind_rose(records: Sequence[CompositeRecord]) -> dict[str, object]:
    return {
        "label": "Wind Speed (m/s)",
        "labels": list(OCTANT_LABELS),
        "values": wind_rose_bins(records),
        "colors": list(OCTANT_COLORS),
    }


def record_payload(record: CompositeRecord) -> dict[str, object]:
    payload: dict[str, object] = {
        "timestamp": record.timestamp,
        "instant": (
            record.instant.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
            if record.instant is not None
            else None
        ),
    }
    for quantity in Quantity:
        payload[quantity.value] = record.value(quantity)
    return payload


def format_range_bound(dt: datetime, tz: ZoneInfo) -> str:
    return dt.astimezone(tz).strftime("%Y-%m-%d %H:%M")
