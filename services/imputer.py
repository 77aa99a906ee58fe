"""Last-observation-carry-forward gap filling."""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from models.records import AlignedTable, FilledTable


def carry_forward(values: Sequence[Optional[float]]) -> Tuple[Optional[float], ...]:
    filled: list[Optional[float]] = []
    last: Optional[float] = None
    for value in values:
        if value is not None:
            last = value
        filled.append(last)
    return tuple(filled)


def fill(table: AlignedTable) -> FilledTable:
    """Fill each column independently; cells before a column's first value stay absent."""
    columns: Dict[str, Tuple[Optional[float], ...]] = {
        name: carry_forward(values) for name, values in table.columns.items()
    }
    return FilledTable(key=table.key, timestamps=table.timestamps, columns=columns)
