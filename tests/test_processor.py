from __future__ import annotations

import logging

import pytest

from datastore.adapters import FILLED_TABLE_COLUMN, read_filled_table, write_raw_samples
from datastore.column_store import ColumnStoreTable
from datastore.keys import encode_group_key
from models.records import UNDEFINED, GroupKey
from models.schemas import FuelModelParams, ProcessingStatus, ReasonCode
from services.aggregator import Aggregator
from services.processor import ProcessorService
from tests.conftest import KEY, make_stream, scenario_streams


@pytest.fixture()
def raw_table() -> ColumnStoreTable:
    return ColumnStoreTable(name="raw")


@pytest.fixture()
def processor(raw_table: ColumnStoreTable, params: FuelModelParams, tmp_path) -> ProcessorService:
    summary_table = ColumnStoreTable(name="summaries", persistence_path=tmp_path / "summaries.json")
    service = ProcessorService(
        raw_table=raw_table,
        summary_table=summary_table,
        aggregator=Aggregator(params),
        workers=2,
    )
    yield service
    service.shutdown()


def test_run_summarizes_and_persists_each_unit(
    processor: ProcessorService, raw_table: ColumnStoreTable
) -> None:
    single = GroupKey(site="SEA", day="2024-03-01", unit_id="belt-02")
    for stream in scenario_streams():
        write_raw_samples(raw_table, stream)
    for variable, value in (("gear", 1), ("rpm", 900), ("speed", 3)):
        write_raw_samples(raw_table, make_stream(variable, [(50, value)], single))

    result = processor.run("SEA", "2024-03-01")

    assert result.status == ProcessingStatus.processed
    assert result.failures == []
    assert [(s.unit_id, s.row_count) for s in result.summaries] == [("belt-02", 1), ("tug-07", 2)]
    assert result.summaries[0].derived_rate is None
    assert result.summaries[1].derived_rate == pytest.approx(0.7)
    assert result.processing_ms is not None

    stored = processor.fetch_summary("SEA", "2024-03-01", "tug-07")
    assert stored.quantity == pytest.approx(0.7 / 3600 * 10)
    assert processor.fetch_summary("SEA", "2024-03-01", "belt-02").derived_rate is UNDEFINED
    row = processor.summary_table.get_row(encode_group_key(KEY))
    assert row is not None and FILLED_TABLE_COLUMN not in row


def test_run_reports_missing_variable_without_failing(
    processor: ProcessorService, raw_table: ColumnStoreTable
) -> None:
    write_raw_samples(raw_table, make_stream("rpm", [(0, 1000), (10, 1200)]))

    result = processor.run("SEA", "2024-03-01")

    assert result.status == ProcessingStatus.processed
    assert result.summaries[0].reason == ReasonCode.missing_variable
    assert result.summaries[0].quantity_gallons == 0


def test_run_with_no_data_is_empty(processor: ProcessorService) -> None:
    result = processor.run("SEA", "2024-03-01")

    assert result.status == ProcessingStatus.processed
    assert result.summaries == []
    assert result.failures == []


def test_run_marks_partial_when_a_group_fails(
    processor: ProcessorService, raw_table: ColumnStoreTable, monkeypatch, caplog
) -> None:
    good = GroupKey(site="SEA", day="2024-03-01", unit_id="tug-01")
    for stream in scenario_streams() + scenario_streams(good):
        write_raw_samples(raw_table, stream)

    original = processor.aggregator.aggregate_group

    def flaky(key, streams):
        if key == KEY:
            raise RuntimeError("boom")
        return original(key, streams)

    monkeypatch.setattr(processor.aggregator, "aggregate_group", flaky)
    caplog.set_level(logging.ERROR)

    result = processor.run("SEA", "2024-03-01")

    assert result.status == ProcessingStatus.partial
    assert [s.unit_id for s in result.summaries] == ["tug-01"]
    assert result.failures[0].unit_id == "tug-07"
    assert result.failures[0].reason == ReasonCode.unexpected_error
    assert "boom" in result.failures[0].detail
    with pytest.raises(KeyError):
        processor.fetch_summary("SEA", "2024-03-01", "tug-07")


def test_run_marks_failed_when_every_group_fails(
    processor: ProcessorService, raw_table: ColumnStoreTable, monkeypatch
) -> None:
    for stream in scenario_streams():
        write_raw_samples(raw_table, stream)

    def broken(key, streams):
        raise RuntimeError("store returned garbage")

    monkeypatch.setattr(processor.aggregator, "aggregate_group", broken)

    result = processor.run("SEA", "2024-03-01")

    assert result.status == ProcessingStatus.failed
    assert result.summaries == []


def test_filled_table_is_stored_when_enabled(
    raw_table: ColumnStoreTable, params: FuelModelParams
) -> None:
    summary_table = ColumnStoreTable(name="summaries")
    service = ProcessorService(
        raw_table=raw_table,
        summary_table=summary_table,
        aggregator=Aggregator(params),
        workers=1,
        store_filled_table=True,
    )
    try:
        write_raw_samples(raw_table, make_stream("rpm", [(0, 1000), (10, 1500)]))
        write_raw_samples(raw_table, make_stream("gear", [(10, 2)]))
        write_raw_samples(raw_table, make_stream("speed", [(0, 30), (10, 32)]))

        service.run("SEA", "2024-03-01", unit_ids=["tug-07"])
    finally:
        service.shutdown()

    filled = read_filled_table(summary_table, KEY)
    assert filled is not None
    assert filled.column("gear") == (None, 2.0)


def test_repeated_runs_produce_identical_summaries(
    processor: ProcessorService, raw_table: ColumnStoreTable
) -> None:
    for stream in scenario_streams():
        write_raw_samples(raw_table, stream)

    first = processor.run("SEA", "2024-03-01")
    second = processor.run("SEA", "2024-03-01")

    assert first.summaries == second.summaries
