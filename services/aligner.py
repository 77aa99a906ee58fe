"""Outer-join of independently sampled variable streams."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from models.records import AlignedTable, SampleStream
from services.errors import InvalidInput


def align(streams: Iterable[SampleStream]) -> AlignedTable:
    """Join ``streams`` on the sorted union of their timestamps.

    Samples are sorted on ingest; when a timestamp repeats within a variable the
    last value seen in input order wins. Every variable becomes a column, even
    one with no samples, and a timestamp a variable did not report is ``None``
    for that variable. Columns are ordered by name so the result does not depend
    on the order the streams are passed in.
    """
    stream_list = list(streams)
    if not stream_list:
        raise InvalidInput("No streams supplied; there is no entity-group to align.")

    key = stream_list[0].key
    mismatched = sorted({str(s.key) for s in stream_list if s.key != key})
    if mismatched:
        raise InvalidInput(
            f"Streams for {key} mixed with other entity-groups: {', '.join(mismatched)}"
        )

    by_variable: Dict[str, Dict[int, float]] = {}
    for stream in stream_list:
        values = by_variable.setdefault(stream.variable, {})
        for sample in stream.samples:
            values[sample.timestamp] = sample.value

    axis: List[int] = sorted({ts for values in by_variable.values() for ts in values})

    columns: Dict[str, tuple[Optional[float], ...]] = {}
    for variable in sorted(by_variable):
        values = by_variable[variable]
        columns[variable] = tuple(values.get(ts) for ts in axis)

    return AlignedTable(key=key, timestamps=tuple(axis), columns=columns)
