from __future__ import annotations

import math
from collections.abc import Iterable

from station_dashboard.models.weather import CompositeRecord

OCTANT_LABELS: tuple[str, ...] = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
OCTANT_COLORS: tuple[str, ...] = (
    "#60a5fa",
    "#38bdf8",
    "#34d399",
    "#fbbf24",
    "#f87171",
    "#a78bfa",
    "#f472b6",
    "#facc15",
)

OCTANT_WIDTH_DEGREES = 360.0 / len(OCTANT_LABELS)


def octant_index(direction: float) -> int:
    # Octant 0 spans 337.5-22.5 degrees, so shift by half a width first.
    shifted = (direction + OCTANT_WIDTH_DEGREES / 2) % 360.0
    return int(math.floor(shifted / OCTANT_WIDTH_DEGREES)) % len(OCTANT_LABELS)


def wind_rose_bins(records: Iterable[CompositeRecord]) -> list[float]:
    """Sum wind speed per compass octant (N, NE, ..., NW)."""
    bins = [0.0] * len(OCTANT_LABELS)
    for record in records:
        if record.wind_direction is None or record.wind_speed is None:
            continue
        if record.wind_speed < 0:
            continue
        bins[octant_index(record.wind_direction)] += record.wind_speed
    return bins
