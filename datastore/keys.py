"""Row-key conventions for the raw sample and summary tables."""

from __future__ import annotations

from typing import Optional, Tuple

from models.records import GroupKey

SEPARATOR = "|"
TIMESTAMP_WIDTH = 10


def _check(*parts: str) -> None:
    for part in parts:
        if not part or SEPARATOR in part:
            raise ValueError(f"Invalid row-key component {part!r}.")


def group_prefix(site: str, day: str, unit_id: Optional[str] = None) -> str:
    """Prefix selecting every raw row for a site and day, or for one unit of it."""
    _check(site, day)
    if unit_id is None:
        return f"{site}{SEPARATOR}{day}{SEPARATOR}"
    _check(unit_id)
    return f"{site}{SEPARATOR}{day}{SEPARATOR}{unit_id}{SEPARATOR}"


def encode_group_key(key: GroupKey) -> str:
    _check(key.site, key.day, key.unit_id)
    return SEPARATOR.join((key.site, key.day, key.unit_id))


def decode_group_key(row_key: str) -> GroupKey:
    parts = row_key.split(SEPARATOR)
    if len(parts) != 3:
        raise ValueError(f"Malformed group row key {row_key!r}.")
    return GroupKey(site=parts[0], day=parts[1], unit_id=parts[2])


def encode_sample_key(key: GroupKey, timestamp: int) -> str:
    # Zero padding keeps lexical key order chronological.
    if timestamp < 0:
        raise ValueError(f"Negative timestamp {timestamp} cannot be encoded.")
    return f"{encode_group_key(key)}{SEPARATOR}{timestamp:0{TIMESTAMP_WIDTH}d}"


def decode_sample_key(row_key: str) -> Tuple[GroupKey, int]:
    head, sep, tail = row_key.rpartition(SEPARATOR)
    if not sep:
        raise ValueError(f"Malformed sample row key {row_key!r}.")
    try:
        timestamp = int(tail)
    except ValueError as exc:
        raise ValueError(f"Malformed sample row key {row_key!r}.") from exc
    return decode_group_key(head), timestamp
