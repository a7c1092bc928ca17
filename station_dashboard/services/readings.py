"""Reshape per-sensor provider readings into per-timestamp records."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from station_dashboard.models.weather import (
    CompositeRecord,
    Mapped,
    NormalizedSensor,
    Quantity,
    RawReading,
    Unmapped,
)

logger = logging.getLogger(__name__)

# Labels are matched exactly; the provider's vocabulary is not fixed, so
# anything else is dropped rather than rejected.
SENSOR_TYPE_MAPPING: dict[str, Quantity] = {
    "Temperature": Quantity.AIR_TEMPERATURE,
    "Air Temperature": Quantity.AIR_TEMPERATURE,
    "Dew Point": Quantity.DEW_POINT,
    "RH": Quantity.RELATIVE_HUMIDITY,
    "Relative Humidity": Quantity.RELATIVE_HUMIDITY,
    "Wind Speed": Quantity.WIND_SPEED,
    "Gust": Quantity.GUST_SPEED,
    "Gust Speed": Quantity.GUST_SPEED,
    "Wind Direction": Quantity.WIND_DIRECTION,
    "Pressure": Quantity.PRESSURE,
}


def normalize_sensor_type(label: str) -> NormalizedSensor:
    quantity = SENSOR_TYPE_MAPPING.get(label)
    if quantity is None:
        return Unmapped(label)
    return Mapped(quantity)


def parse_value(raw: Any) -> float | None:
    """Parse a reading value; anything that is not a finite number is unknown."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_timestamp(value: str) -> datetime | None:
    # Provider emits "2025-06-01 14:05:00" (UTC) or ISO-8601 with a "Z" suffix.
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def extract_raw_readings(payload: Any) -> list[RawReading]:
    """Pull raw readings out of a provider response body.

    The body is expected to look like ``{"data": [{"timestamp": ...,
    "sensor_measurement_type": ..., "value": ...}, ...]}``. A body of any
    other shape yields no readings. Entries without a timestamp are skipped.
    """
    if not isinstance(payload, dict):
        logger.warning("Unexpected provider response shape", extra={"reason": "not an object"})
        return []
    data = payload.get("data")
    if not isinstance(data, list):
        logger.warning("Unexpected provider response shape", extra={"reason": "no data list"})
        return []

    readings: list[RawReading] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        timestamp = item.get("timestamp")
        if timestamp is None:
            continue
        sensor_type = item.get("sensor_measurement_type")
        value = item.get("value")
        readings.append(
            RawReading(
                timestamp=str(timestamp),
                sensor_type=sensor_type if isinstance(sensor_type, str) else "",
                value=None if value is None else str(value),
            )
        )
    return readings


def aggregate(readings: Iterable[RawReading]) -> list[CompositeRecord]:
    """Group readings by timestamp into chronologically ordered records.

    Later readings for the same timestamp and quantity overwrite earlier
    ones. Timestamps that cannot be parsed sort after all others, in the
    order they were first seen.
    """
    by_timestamp: dict[str, CompositeRecord] = {}
    unmapped: set[str] = set()

    for reading in readings:
        record = by_timestamp.get(reading.timestamp)
        if record is None:
            record = CompositeRecord(
                timestamp=reading.timestamp,
                instant=parse_timestamp(reading.timestamp),
            )
            by_timestamp[reading.timestamp] = record

        normalized = normalize_sensor_type(reading.sensor_type)
        if isinstance(normalized, Unmapped):
            unmapped.add(normalized.label)
            continue
        by_timestamp[reading.timestamp] = replace(
            record, **{normalized.quantity.value: parse_value(reading.value)}
        )

    if unmapped:
        logger.debug("Ignored unmapped sensor types: %s", ", ".join(sorted(unmapped)))

    return sorted(by_timestamp.values(), key=_chronological_key)


def aggregate_payload(payload: Any) -> list[CompositeRecord]:
    readings = extract_raw_readings(payload)
    records = aggregate(readings)
    logger.info(
        "Aggregated provider readings",
        extra={"reading_count": len(readings), "record_count": len(records)},
    )
    return records


def _chronological_key(record: CompositeRecord) -> tuple[bool, datetime]:
    if record.instant is None:
        return True, datetime.min.replace(tzinfo=timezone.utc)
    return False, record.instant
