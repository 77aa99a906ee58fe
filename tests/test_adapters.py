"""Tests for row keys and the store boundary adapters."""

from __future__ import annotations

import json

import pytest

from datastore.adapters import (
    FILLED_TABLE_COLUMN,
    flatten_summary,
    read_filled_table,
    read_group_streams,
    read_summary,
    write_raw_samples,
    write_summary,
)
from datastore.column_store import Cell, ColumnStoreTable
from datastore.keys import (
    decode_group_key,
    decode_sample_key,
    encode_group_key,
    encode_sample_key,
    group_prefix,
)
from models.records import UNDEFINED, GroupKey, GroupSummary
from models.schemas import ReasonCode
from services.aligner import align
from services.imputer import fill
from tests.conftest import KEY, make_stream, scenario_streams


def test_sample_key_round_trip_and_ordering() -> None:
    early = encode_sample_key(KEY, 9)
    late = encode_sample_key(KEY, 10)

    assert early == "SEA|2024-03-01|tug-07|0000000009"
    assert early < late
    assert decode_sample_key(late) == (KEY, 10)
    assert decode_group_key(encode_group_key(KEY)) == KEY


def test_key_components_may_not_contain_separator() -> None:
    with pytest.raises(ValueError):
        encode_group_key(GroupKey(site="SEA", day="2024|03", unit_id="x"))
    with pytest.raises(ValueError):
        group_prefix("", "2024-03-01")
    with pytest.raises(ValueError):
        decode_sample_key("SEA|2024-03-01|tug-07|abc")


def test_read_group_streams_groups_by_unit() -> None:
    table = ColumnStoreTable(name="raw")
    other = GroupKey(site="SEA", day="2024-03-01", unit_id="belt-02")
    for stream in scenario_streams() + [make_stream("rpm", [(5, 600)], other)]:
        write_raw_samples(table, stream)
    write_raw_samples(table, make_stream("rpm", [(5, 1)], GroupKey("SEA", "2024-03-02", "tug-07")))

    streams = read_group_streams(table, "SEA", "2024-03-01", ("gear", "rpm", "speed"))

    assert sorted(streams) == sorted([KEY, other])
    by_variable = {s.variable: s for s in streams[KEY]}
    assert [(s.timestamp, s.value) for s in by_variable["rpm"].samples] == [
        (0, 1000.0),
        (10, 1500.0),
    ]
    belt = {s.variable: len(s) for s in streams[other]}
    assert belt == {"gear": 0, "rpm": 1, "speed": 0}


def test_read_group_streams_limits_units_and_skips_bad_values() -> None:
    table = ColumnStoreTable(name="raw")
    for stream in scenario_streams():
        write_raw_samples(table, stream)
    table.put_cells([Cell(encode_sample_key(KEY, 20), "speed", "fast")])
    write_raw_samples(table, make_stream("rpm", [(5, 600)], GroupKey("SEA", "2024-03-01", "b")))

    streams = read_group_streams(table, "SEA", "2024-03-01", ("speed",), unit_ids=["tug-07"])

    assert list(streams) == [KEY]
    assert [s.timestamp for s in streams[KEY][0].samples] == [0, 10]


def test_flatten_summary_writes_one_column_per_field() -> None:
    summary = GroupSummary(
        key=KEY,
        quantity=0.5,
        elapsed_hours=0.0,
        mean_speed=4.0,
        derived_rate=UNDEFINED,
        row_count=1,
        reason=ReasonCode.degenerate_series,
    )

    cells = flatten_summary(summary)

    assert {cell.row_key for cell in cells} == {"SEA|2024-03-01|tug-07"}
    values = {cell.column: cell.value for cell in cells}
    assert values == {
        "quantity_gallons": 0.5,
        "elapsed_hours": 0.0,
        "mean_speed": 4.0,
        "derived_rate": "undefined",
        "row_count": 1,
        "reason": "degenerate_series",
    }


def test_summary_and_filled_table_read_back() -> None:
    table = ColumnStoreTable(name="summaries")
    filled = fill(align(scenario_streams() + [make_stream("fuel_level", [(10, 80.0)])]))
    summary = GroupSummary(
        key=KEY,
        quantity=0.002,
        elapsed_hours=0.01,
        mean_speed=31.0,
        derived_rate=0.2,
        row_count=2,
    )

    write_summary(table, summary, filled)

    assert read_summary(table, KEY) == summary
    assert read_filled_table(table, KEY) == filled
    stored = json.loads(table.get_row(encode_group_key(KEY))[FILLED_TABLE_COLUMN])  # type: ignore[index]
    assert stored["columns"]["fuel_level"] == [None, 80.0]


def test_read_missing_summary_returns_none() -> None:
    table = ColumnStoreTable(name="summaries")

    assert read_summary(table, KEY) is None
    assert read_filled_table(table, KEY) is None


def test_read_group_streams_skips_non_finite_values() -> None:
    table = ColumnStoreTable(name="raw")
    table.put_cells(
        [
            Cell(encode_sample_key(KEY, 0), "speed", 3.0),
            Cell(encode_sample_key(KEY, 10), "speed", float("nan")),
            Cell(encode_sample_key(KEY, 20), "speed", "inf"),
        ]
    )

    streams = read_group_streams(table, "SEA", "2024-03-01", ("speed",))

    assert [(s.timestamp, s.value) for s in streams[KEY][0].samples] == [(0, 3.0)]


def test_write_raw_samples_is_all_or_nothing(tmp_path) -> None:
    path = tmp_path / "raw.json"
    table = ColumnStoreTable(name="raw", persistence_path=path)

    with pytest.raises(ValueError):
        write_raw_samples(table, make_stream("rpm", [(1, 1.0), (-1, 2.0)]))

    assert table.row_count() == 0
    assert not path.exists()


def test_summary_rewrite_without_filled_table_clears_stored_one() -> None:
    table = ColumnStoreTable(name="summaries")
    filled = fill(align(scenario_streams()))
    summary = GroupSummary(
        key=KEY,
        quantity=0.002,
        elapsed_hours=0.01,
        mean_speed=31.0,
        derived_rate=0.2,
        row_count=2,
    )
    write_summary(table, summary, filled)

    write_summary(table, summary)

    assert read_filled_table(table, KEY) is None
    assert read_summary(table, KEY) == summary
