"""Boundary adapters between the column store and the aggregation core.

Raw samples live one row per (group, timestamp) with one column per variable.
Summaries live one row per group with one column per summary field, plus an
optional ``filled_table`` column holding the JSON form of the filled timeline.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from datastore.column_store import Cell, ColumnStoreTable
from datastore.keys import (
    decode_sample_key,
    encode_group_key,
    encode_sample_key,
    group_prefix,
)
from models.records import UNDEFINED, FilledTable, GroupKey, GroupSummary, SampleStream
from models.schemas import ReasonCode

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = (
    "quantity_gallons",
    "elapsed_hours",
    "mean_speed",
    "derived_rate",
    "row_count",
    "reason",
)
FILLED_TABLE_COLUMN = "filled_table"


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a sample value")
    parsed = float(value)
    if not math.isfinite(parsed):
        raise ValueError("non-finite sample value")
    return parsed


def read_group_streams(
    table: ColumnStoreTable,
    site: str,
    day: str,
    variables: Sequence[str],
    unit_ids: Optional[Sequence[str]] = None,
) -> Dict[GroupKey, List[SampleStream]]:
    """Collect raw cells into one stream per variable for every group found.

    Every requested variable gets a stream for every group, empty when the unit
    never reported it. Samples are returned in store order.
    """
    prefixes = (
        [group_prefix(site, day)]
        if unit_ids is None
        else [group_prefix(site, day, unit_id) for unit_id in unit_ids]
    )

    collected: Dict[GroupKey, Dict[str, list[tuple[int, float]]]] = {}
    for prefix in prefixes:
        for row_key, cells in table.scan(prefix=prefix, columns=variables):
            try:
                key, timestamp = decode_sample_key(row_key)
            except ValueError:
                logger.warning(
                    "Skipping row with malformed key", extra={"row_key": row_key}
                )
                continue
            per_variable = collected.setdefault(key, {name: [] for name in variables})
            for variable, raw in cells.items():
                try:
                    value = _to_float(raw)
                except (TypeError, ValueError):
                    logger.warning(
                        "Skipping non-numeric sample",
                        extra={
                            "row_key": row_key,
                            "variable": variable,
                            "reason": "invalid numeric value",
                            "invalid_value": raw,
                        },
                    )
                    continue
                per_variable[variable].append((timestamp, value))

    return {
        key: [
            SampleStream.from_pairs(key, variable, pairs)
            for variable, pairs in per_variable.items()
        ]
        for key, per_variable in collected.items()
    }


def write_raw_samples(table: ColumnStoreTable, stream: SampleStream) -> int:
    cells = [
        Cell(
            row_key=encode_sample_key(stream.key, sample.timestamp),
            column=stream.variable,
            value=sample.value,
        )
        for sample in stream.samples
    ]
    return table.put_cells(cells)


def flatten_summary(summary: GroupSummary, filled: Optional[FilledTable] = None) -> List[Cell]:
    row_key = encode_group_key(summary.key)
    derived_rate: Any = (
        UNDEFINED.value if summary.derived_rate is UNDEFINED else summary.derived_rate
    )
    values: Dict[str, Any] = {
        "quantity_gallons": summary.quantity,
        "elapsed_hours": summary.elapsed_hours,
        "mean_speed": summary.mean_speed,
        "derived_rate": derived_rate,
        "row_count": summary.row_count,
        "reason": summary.reason.value if summary.reason else None,
    }
    cells = [Cell(row_key=row_key, column=name, value=values[name]) for name in SUMMARY_COLUMNS]
    if filled is not None:
        cells.append(
            Cell(
                row_key=row_key,
                column=FILLED_TABLE_COLUMN,
                value=json.dumps(filled.to_dict(), sort_keys=True),
            )
        )
    return cells


def write_summary(
    table: ColumnStoreTable, summary: GroupSummary, filled: Optional[FilledTable] = None
) -> int:
    """Write the summary row; without a filled table any stored one is cleared."""
    written = table.put_cells(flatten_summary(summary, filled))
    if filled is None:
        table.delete_columns(encode_group_key(summary.key), (FILLED_TABLE_COLUMN,))
    return written


def read_summary(table: ColumnStoreTable, key: GroupKey) -> Optional[GroupSummary]:
    row = table.get_row(encode_group_key(key), columns=SUMMARY_COLUMNS)
    if not row:
        return None
    raw_rate = row.get("derived_rate")
    derived_rate = UNDEFINED if raw_rate in (None, UNDEFINED.value) else float(raw_rate)
    reason = row.get("reason")
    return GroupSummary(
        key=key,
        quantity=float(row.get("quantity_gallons", 0.0)),
        elapsed_hours=float(row.get("elapsed_hours", 0.0)),
        mean_speed=float(row.get("mean_speed", 0.0)),
        derived_rate=derived_rate,
        row_count=int(row.get("row_count", 0)),
        reason=ReasonCode(reason) if reason else None,
    )


def read_filled_table(table: ColumnStoreTable, key: GroupKey) -> Optional[FilledTable]:
    row = table.get_row(encode_group_key(key), columns=(FILLED_TABLE_COLUMN,))
    if not row:
        return None
    payload = json.loads(row[FILLED_TABLE_COLUMN])
    return FilledTable(
        key=key,
        timestamps=tuple(int(ts) for ts in payload["timestamps"]),
        columns={
            name: tuple(None if v is None else float(v) for v in values)
            for name, values in payload["columns"].items()
        },
    )

