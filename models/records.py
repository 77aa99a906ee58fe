"""Domain records shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

from models.schemas import GroupFailureRecord, GroupSummaryRecord, ReasonCode


class Undefined(Enum):
    """Marker for a quantity that has no defined value, such as a rate over zero time."""

    undefined = "undefined"

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = Undefined.undefined


@dataclass(frozen=True, order=True)
class GroupKey:
    """Identifies one entity-group: a unit on a given day at a given site."""

    site: str
    day: str
    unit_id: str

    def __str__(self) -> str:
        return f"{self.site}/{self.day}/{self.unit_id}"


@dataclass(frozen=True, slots=True)
class Sample:
    """A single reading, timestamped in whole seconds since the epoch."""

    timestamp: int
    value: float


@dataclass(frozen=True)
class SampleStream:
    """One variable's raw readings for one entity-group, in source order."""

    key: GroupKey
    variable: str
    samples: Tuple[Sample, ...] = ()

    @classmethod
    def from_pairs(cls, key: GroupKey, variable: str, pairs: Any) -> "SampleStream":
        samples = tuple(Sample(timestamp=int(ts), value=float(value)) for ts, value in pairs)
        return cls(key=key, variable=variable, samples=samples)

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class _TimeTable:
    key: GroupKey
    timestamps: Tuple[int, ...]
    columns: Mapping[str, Tuple[Optional[float], ...]] = field(default_factory=dict)

    @property
    def variables(self) -> Tuple[str, ...]:
        return tuple(self.columns)

    def column(self, variable: str) -> Tuple[Optional[float], ...]:
        return self.columns[variable]

    def value(self, variable: str, timestamp: int) -> Optional[float]:
        """Return the cell for ``variable`` at ``timestamp``; ``None`` means absent."""
        index = self.timestamps.index(timestamp)
        return self.columns[variable][index]

    def rows(self) -> Iterator[Tuple[int, Dict[str, Optional[float]]]]:
        for index, timestamp in enumerate(self.timestamps):
            yield timestamp, {name: values[index] for name, values in self.columns.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamps": list(self.timestamps),
            "columns": {name: list(values) for name, values in self.columns.items()},
        }

    def __len__(self) -> int:
        return len(self.timestamps)


@dataclass(frozen=True)
class AlignedTable(_TimeTable):
    """Outer join of a group's streams on the union of their timestamps."""


@dataclass(frozen=True)
class FilledTable(_TimeTable):
    """Aligned table after carry-forward; leading gaps stay absent."""


@dataclass(frozen=True, slots=True)
class FuelRow:
    """Complete model input for one timestamp."""

    timestamp: int
    gear: float
    rpm: float
    speed: float


@dataclass(frozen=True, slots=True)
class RateSample:
    timestamp: int
    rate: float


@dataclass(frozen=True)
class FuelRateSeries:
    """Fuel rate per row of a group, in gallons per second."""

    key: GroupKey
    samples: Tuple[RateSample, ...] = ()


@dataclass(frozen=True)
class GroupSummary:
    """Aggregated fuel figures for one entity-group."""

    key: GroupKey
    quantity: float
    elapsed_hours: float
    mean_speed: float
    derived_rate: Union[float, Undefined]
    row_count: int = 0
    reason: Optional[ReasonCode] = None

    def to_record(self) -> GroupSummaryRecord:
        rate = None if self.derived_rate is UNDEFINED else self.derived_rate
        return GroupSummaryRecord(
            site=self.key.site,
            day=self.key.day,
            unit_id=self.key.unit_id,
            quantity_gallons=self.quantity,
            elapsed_hours=self.elapsed_hours,
            mean_speed=self.mean_speed,
            derived_rate=rate,
            row_count=self.row_count,
            reason=self.reason,
        )


@dataclass(frozen=True)
class GroupFailure:
    """A group whose pipeline raised; other groups are unaffected."""

    key: GroupKey
    reason: ReasonCode
    detail: str

    def to_record(self) -> GroupFailureRecord:
        return GroupFailureRecord(
            site=self.key.site,
            day=self.key.day,
            unit_id=self.key.unit_id,
            reason=self.reason,
            detail=self.detail,
        )
