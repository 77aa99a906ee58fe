"""Bulk loading of raw sample CSV exports into the raw sample table."""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, TextIO

from datastore.column_store import Cell, ColumnStoreTable
from datastore.keys import encode_sample_key
from models.records import GroupKey
from models.schemas import ProcessingError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("site", "day", "unit_id", "variable", "timestamp", "value")


@dataclass
class LoadResult:
    row_count: int = 0
    errors: List[ProcessingError] = field(default_factory=list)


def parse_timestamp(value: str) -> int:
    """Parse epoch seconds or ISO-8601 text into whole epoch seconds (naive means UTC)."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    try:
        return int(candidate)
    except ValueError:
        pass

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return int(parsed.timestamp())


def load_csv(table: ColumnStoreTable, stream: TextIO) -> LoadResult:
    """Write every valid CSV row as a raw sample cell; invalid rows are reported, not raised.

    A missing header or missing required columns raise ``ValueError`` since no
    row could be interpreted.
    """
    reader = csv.DictReader(stream)
    if not reader.fieldnames:
        raise ValueError("CSV file is missing a header row.")

    normalized = {name.lower().strip(): name for name in reader.fieldnames}
    missing = sorted(set(REQUIRED_COLUMNS) - normalized.keys())
    if missing:
        raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

    result = LoadResult()
    cells: List[Cell] = []
    for row_number, row in enumerate(reader, start=2):
        raw = {name: (row.get(normalized[name]) or "").strip() for name in REQUIRED_COLUMNS}

        empty = next((name for name in REQUIRED_COLUMNS if not raw[name]), None)
        if empty is not None:
            result.errors.append(ProcessingError(row_number=row_number, reason=f"missing {empty}"))
            continue

        try:
            timestamp = parse_timestamp(raw["timestamp"])
        except ValueError:
            result.errors.append(ProcessingError(row_number=row_number, reason="invalid timestamp"))
            continue

        try:
            value = float(raw["value"])
        except ValueError:
            result.errors.append(
                ProcessingError(row_number=row_number, reason="invalid numeric value")
            )
            continue

        if not math.isfinite(value):
            result.errors.append(
                ProcessingError(row_number=row_number, reason="invalid numeric value")
            )
            continue

        key = GroupKey(site=raw["site"], day=raw["day"], unit_id=raw["unit_id"])
        try:
            row_key = encode_sample_key(key, timestamp)
        except ValueError:
            result.errors.append(ProcessingError(row_number=row_number, reason="invalid row key"))
            continue

        cells.append(Cell(row_key=row_key, column=raw["variable"], value=value))
        result.row_count += 1

    table.put_cells(cells)
    logger.info(
        "Loaded raw samples",
        extra={"row_count": result.row_count, "failure_count": len(result.errors)},
    )
    return result
