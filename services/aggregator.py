"""Per-group fuel aggregation: align, fill, model, integrate."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence

from logging_config import group_context
from models.records import (
    UNDEFINED,
    FilledTable,
    FuelRateSeries,
    FuelRow,
    GroupFailure,
    GroupKey,
    GroupSummary,
    RateSample,
    SampleStream,
)
from models.schemas import FuelModelParams, ReasonCode
from services.aligner import align
from services.errors import FuelAggregationError, InvalidInput
from services.fuel_model import compute_components, gallons_per_hour_to_per_second
from services.imputer import fill
from services.integrator import elapsed_hours, integrate, mean

logger = logging.getLogger(__name__)

REQUIRED_VARIABLES = ("gear", "rpm", "speed")


@dataclass(frozen=True)
class GroupResult:
    """Summary of one group plus the filled table it was computed from."""

    summary: GroupSummary
    filled: Optional[FilledTable] = None
    rates: Optional[FuelRateSeries] = None


@dataclass
class AggregationReport:
    """Summaries and failures collected over a batch of groups."""

    summaries: List[GroupSummary] = field(default_factory=list)
    failures: List[GroupFailure] = field(default_factory=list)


def _empty_summary(key: GroupKey, reason: ReasonCode) -> GroupSummary:
    return GroupSummary(
        key=key,
        quantity=0.0,
        elapsed_hours=0.0,
        mean_speed=0.0,
        derived_rate=UNDEFINED,
        row_count=0,
        reason=reason,
    )


def complete_rows(table: FilledTable) -> List[FuelRow]:
    """Model inputs for every row where gear, rpm and speed all have values."""
    rows: List[FuelRow] = []
    gear, rpm, speed = (table.column(name) for name in REQUIRED_VARIABLES)
    for index, timestamp in enumerate(table.timestamps):
        if gear[index] is None or rpm[index] is None or speed[index] is None:
            continue
        rows.append(
            FuelRow(
                timestamp=timestamp,
                gear=gear[index],
                rpm=rpm[index],
                speed=speed[index],
            )
        )
    return rows


class Aggregator:
    """Pure aggregation component; holds only the model parameters."""

    def __init__(self, params: FuelModelParams) -> None:
        self.params = params

    def aggregate_group(self, key: GroupKey, streams: Iterable[SampleStream]) -> GroupResult:
        stream_list = list(streams)
        foreign = sorted({str(stream.key) for stream in stream_list if stream.key != key})
        if foreign:
            raise InvalidInput(
                f"Streams for {key} mixed with other entity-groups: {', '.join(foreign)}"
            )
        if not any(len(stream) for stream in stream_list):
            logger.info(
                "Group has no samples",
                extra=group_context(key, reason=ReasonCode.empty_group.value),
            )
            return GroupResult(summary=_empty_summary(key, ReasonCode.empty_group))

        aligned = align(stream_list)
        filled = fill(aligned)

        missing = [
            name
            for name in REQUIRED_VARIABLES
            if name not in filled.columns or all(v is None for v in filled.column(name))
        ]
        if missing:
            logger.warning(
                "Group lacks required variables: %s",
                ", ".join(missing),
                extra=group_context(key, reason=ReasonCode.missing_variable.value),
            )
            return GroupResult(
                summary=_empty_summary(key, ReasonCode.missing_variable), filled=filled
            )

        rows = complete_rows(filled)
        dropped = len(filled) - len(rows)
        if dropped:
            logger.debug(
                "Skipping rows before every variable has reported",
                extra=group_context(key, dropped_rows=dropped),
            )

        terms = compute_components(rows, self.params)
        anomalies = sum(1 for term in terms if term.anomaly)
        if anomalies:
            logger.warning(
                "Fuel rate replaced by idle floor on %d rows",
                anomalies,
                extra=group_context(key, reason=ReasonCode.numeric_anomaly.value),
            )

        per_second = gallons_per_hour_to_per_second([term.rate for term in terms])
        rates = FuelRateSeries(
            key=key,
            samples=tuple(
                RateSample(timestamp=term.timestamp, rate=rate)
                for term, rate in zip(terms, per_second)
            ),
        )

        quantity = integrate(rates.samples)
        hours = elapsed_hours(rates.samples)
        summary = GroupSummary(
            key=key,
            quantity=quantity,
            elapsed_hours=hours,
            mean_speed=mean([row.speed for row in rows if math.isfinite(row.speed)]),
            derived_rate=quantity / hours if hours > 0 else UNDEFINED,
            row_count=len(rows),
            reason=ReasonCode.degenerate_series if len(rows) < 2 else None,
        )
        logger.debug("Group summarized", extra=group_context(key, row_count=len(rows)))
        return GroupResult(summary=summary, filled=filled, rates=rates)

    def aggregate(
        self,
        raw_streams_by_group: Mapping[GroupKey, Iterable[SampleStream]],
        sort: bool = False,
    ) -> AggregationReport:
        report = AggregationReport()
        keys: Sequence[GroupKey] = (
            sorted(raw_streams_by_group) if sort else list(raw_streams_by_group)
        )
        for key in keys:
            outcome = self.run_isolated(key, raw_streams_by_group[key])
            if isinstance(outcome, GroupFailure):
                report.failures.append(outcome)
            else:
                report.summaries.append(outcome.summary)
        return report

    def run_isolated(
        self, key: GroupKey, streams: Iterable[SampleStream]
    ) -> GroupResult | GroupFailure:
        """Run one group, converting any fault into a failure record."""
        try:
            return self.aggregate_group(key, streams)
        except FuelAggregationError as exc:
            logger.warning(
                "Group rejected: %s", exc, extra=group_context(key, reason=exc.reason.value)
            )
            return GroupFailure(key=key, reason=exc.reason, detail=str(exc))
        except Exception as exc:  # pragma: no cover - defensive catch-all
            logger.exception(
                "Group failed unexpectedly",
                extra=group_context(key, reason=ReasonCode.unexpected_error.value),
            )
            return GroupFailure(key=key, reason=ReasonCode.unexpected_error, detail=str(exc))
