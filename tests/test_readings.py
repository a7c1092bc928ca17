from __future__ import annotations

import itertools
import random
from datetime import datetime, timezone

import pytest

from station_dashboard.models.weather import Mapped, Quantity, RawReading, Unmapped
from station_dashboard.services.readings import (
    aggregate,
    aggregate_payload,
    extract_raw_readings,
    normalize_sensor_type,
    parse_timestamp,
    parse_value,
)
from tests.fakes import SAMPLE_ROWS, provider_payload

T1 = "2025-06-01 12:00:00"
T2 = "2025-06-01 12:05:00"
T3 = "2025-06-01 12:10:00"


def _readings(rows) -> list[RawReading]:
    return [RawReading(timestamp=t, sensor_type=s, value=v) for t, s, v in rows]


@pytest.mark.parametrize(
    ("label", "quantity"),
    [
        ("Temperature", Quantity.AIR_TEMPERATURE),
        ("Air Temperature", Quantity.AIR_TEMPERATURE),
        ("Dew Point", Quantity.DEW_POINT),
        ("RH", Quantity.RELATIVE_HUMIDITY),
        ("Relative Humidity", Quantity.RELATIVE_HUMIDITY),
        ("Wind Speed", Quantity.WIND_SPEED),
        ("Gust", Quantity.GUST_SPEED),
        ("Gust Speed", Quantity.GUST_SPEED),
        ("Wind Direction", Quantity.WIND_DIRECTION),
        ("Pressure", Quantity.PRESSURE),
    ],
)
def test_known_labels_are_mapped(label: str, quantity: Quantity) -> None:
    assert normalize_sensor_type(label) == Mapped(quantity)


@pytest.mark.parametrize("label", ["Humidity", "temperature", "rh", "Battery", "", "Pressure "])
def test_unknown_labels_are_unmapped(label: str) -> None:
    assert normalize_sensor_type(label) == Unmapped(label)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("20", 20.0), ("-3.5", -3.5), (" 7.25 ", 7.25), (12, 12.0)],
)
def test_parse_value_numbers(raw, expected: float) -> None:
    assert parse_value(raw) == expected


@pytest.mark.parametrize("raw", ["", "n/a", "abc", "NaN", "inf", None, True])
def test_parse_value_unknown(raw) -> None:
    assert parse_value(raw) is None


def test_parse_timestamp_formats() -> None:
    expected = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert parse_timestamp("2025-06-01 12:00:00") == expected
    assert parse_timestamp("2025-06-01T12:00:00Z") == expected
    assert parse_timestamp("2025-06-01T07:00:00-05:00") == expected
    assert parse_timestamp("not a time") is None


def test_aggregate_groups_by_timestamp() -> None:
    records = aggregate(
        _readings(
            [
                (T1, "Temperature", "20"),
                (T1, "RH", "55"),
                (T2, "Temperature", "22"),
            ]
        )
    )

    assert [r.timestamp for r in records] == [T1, T2]
    first, second = records
    assert first.air_temperature == 20.0
    assert first.relative_humidity == 55.0
    assert first.dew_point is None
    assert first.wind_speed is None
    assert first.gust_speed is None
    assert first.wind_direction is None
    assert first.pressure is None
    assert second.air_temperature == 22.0
    assert second.relative_humidity is None


def test_aggregate_sorts_chronologically() -> None:
    records = aggregate(
        _readings(
            [
                (T3, "Temperature", "3"),
                (T1, "Temperature", "1"),
                (T2, "Temperature", "2"),
            ]
        )
    )
    assert [r.air_temperature for r in records] == [1.0, 2.0, 3.0]
    instants = [r.instant for r in records]
    assert instants == sorted(instants)


def test_aggregate_sorts_by_instant_not_string() -> None:
    records = aggregate(
        _readings(
            [
                ("2025-06-01T13:00:00+02:00", "Temperature", "late-string"),
                ("2025-06-01T12:00:00Z", "Temperature", "1"),
            ]
        )
    )
    # 13:00+02:00 is 11:00 UTC, so it comes first despite sorting later as text.
    assert [r.timestamp for r in records] == [
        "2025-06-01T13:00:00+02:00",
        "2025-06-01T12:00:00Z",
    ]


def test_aggregate_last_write_wins_for_duplicates() -> None:
    records = aggregate(
        _readings([(T1, "Temperature", "10"), (T1, "Temperature", "20")])
    )
    assert len(records) == 1
    assert records[0].air_temperature == 20.0


def test_aggregate_aliases_share_a_field() -> None:
    records = aggregate(
        _readings([(T1, "Gust", "4"), (T1, "Gust Speed", "5")])
    )
    assert records[0].gust_speed == 5.0


def test_aggregate_unparsable_value_overwrites_with_unknown() -> None:
    records = aggregate(
        _readings([(T1, "Pressure", "1010"), (T1, "Pressure", "ERR")])
    )
    assert records[0].pressure is None


def test_unparsable_value_keeps_rest_of_batch() -> None:
    records = aggregate(
        _readings([(T1, "Pressure", "ERR"), (T1, "Temperature", "18.5")])
    )
    assert records[0].pressure is None
    assert records[0].air_temperature == 18.5


def test_unmapped_labels_are_dropped() -> None:
    records = aggregate(
        _readings(
            [
                (T1, "Humidity", "40"),
                (T1, "Temperature", "15"),
                (T2, "Humidity", "45"),
            ]
        )
    )
    assert len(records) == 2
    assert records[0].air_temperature == 15.0
    assert records[0].relative_humidity is None
    # A timestamp with only unmapped readings still yields an all-unknown record.
    only_unmapped = records[1]
    assert only_unmapped.timestamp == T2
    assert all(only_unmapped.value(q) is None for q in Quantity)


def test_unparseable_timestamps_sort_last_in_first_seen_order() -> None:
    records = aggregate(
        _readings(
            [
                ("garbage-b", "Temperature", "1"),
                (T2, "Temperature", "2"),
                ("garbage-a", "Temperature", "3"),
                (T1, "Temperature", "4"),
            ]
        )
    )
    assert [r.timestamp for r in records] == [T1, T2, "garbage-b", "garbage-a"]


def test_aggregate_empty_input() -> None:
    assert aggregate([]) == []


def test_output_length_equals_distinct_timestamps() -> None:
    readings = _readings(SAMPLE_ROWS)
    records = aggregate(readings)
    assert len(records) == len({r.timestamp for r in readings})


def test_permutation_without_duplicates_gives_same_result() -> None:
    readings = _readings(SAMPLE_ROWS)
    keys = [(r.timestamp, r.sensor_type) for r in readings]
    assert len(keys) == len(set(keys))

    expected = aggregate(readings)
    rng = random.Random(7)
    for _ in range(20):
        shuffled = list(readings)
        rng.shuffle(shuffled)
        assert aggregate(shuffled) == expected


def test_permutation_with_duplicates_follows_input_order() -> None:
    first = RawReading(timestamp=T1, sensor_type="Temperature", value="10")
    second = RawReading(timestamp=T1, sensor_type="Temperature", value="20")
    other = RawReading(timestamp=T1, sensor_type="RH", value="50")

    results = {
        aggregate(list(order))[0].air_temperature
        for order in itertools.permutations([first, second, other])
    }
    assert results == {10.0, 20.0}
    assert aggregate([other, second, first])[0].air_temperature == 10.0
    assert aggregate([first, other, second])[0].air_temperature == 20.0


def test_extract_raw_readings_from_payload() -> None:
    readings = extract_raw_readings(
        provider_payload([(T1, "Temperature", 20.5), (T1, "RH", "55")])
    )
    assert readings == [
        RawReading(timestamp=T1, sensor_type="Temperature", value="20.5"),
        RawReading(timestamp=T1, sensor_type="RH", value="55"),
    ]


@pytest.mark.parametrize(
    "payload",
    [None, [], "data", 42, {}, {"data": None}, {"data": {"timestamp": T1}}, {"message": "x"}],
)
def test_malformed_payload_yields_no_records(payload) -> None:
    assert aggregate_payload(payload) == []


def test_malformed_entries_are_skipped() -> None:
    payload = {
        "data": [
            "junk",
            None,
            {"sensor_measurement_type": "Temperature", "value": "1"},
            {"timestamp": T1, "value": "2"},
            {"timestamp": T1, "sensor_measurement_type": "Temperature", "value": "3"},
        ]
    }
    records = aggregate_payload(payload)
    assert len(records) == 1
    assert records[0].air_temperature == 3.0


def test_records_are_immutable() -> None:
    record = aggregate(_readings([(T1, "Temperature", "1")]))[0]
    with pytest.raises(AttributeError):
        record.air_temperature = 2.0  # type: ignore[misc]
