"""Batch orchestration: read a site-day from the store, aggregate, write summaries."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional, Sequence

from datastore.adapters import read_group_streams, read_summary, write_summary
from datastore.column_store import ColumnStoreTable, build_raw_table, build_summary_table
from logging_config import configure_logging
from models.records import GroupFailure, GroupKey, GroupSummary
from models.schemas import BatchResult, ProcessingStatus
from services.aggregator import REQUIRED_VARIABLES, Aggregator, GroupResult
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ProcessorService:
    """Coordinates store reads, parallel group aggregation and summary writes."""

    def __init__(
        self,
        raw_table: ColumnStoreTable,
        summary_table: ColumnStoreTable,
        aggregator: Aggregator,
        workers: int = 4,
        store_filled_table: bool = False,
    ) -> None:
        self.raw_table = raw_table
        self.summary_table = summary_table
        self.aggregator = aggregator
        self.store_filled_table = store_filled_table
        self.executor = ThreadPoolExecutor(max_workers=workers)

    def run(
        self, site: str, day: str, unit_ids: Optional[Sequence[str]] = None
    ) -> BatchResult:
        """Summarize every unit reported for ``site`` on ``day``."""
        start_time = time.perf_counter()
        started_at = datetime.now(timezone.utc)

        streams_by_group = read_group_streams(
            self.raw_table, site, day, REQUIRED_VARIABLES, unit_ids=unit_ids
        )
        keys = sorted(streams_by_group)
        futures = [
            self.executor.submit(self.aggregator.run_isolated, key, streams_by_group[key])
            for key in keys
        ]

        summaries: List[GroupSummary] = []
        failures: List[GroupFailure] = []
        for future in futures:
            outcome = future.result()
            if isinstance(outcome, GroupFailure):
                failures.append(outcome)
                continue
            self._store(outcome)
            summaries.append(outcome.summary)

        if failures and not summaries:
            status = ProcessingStatus.failed
        elif failures:
            status = ProcessingStatus.partial
        else:
            status = ProcessingStatus.processed

        processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Batch finished",
            extra={
                "site": site,
                "day": day,
                "status": status.value,
                "group_count": len(keys),
                "failure_count": len(failures),
                "processing_ms": processing_ms,
            },
        )
        return BatchResult(
            site=site,
            day=day,
            status=status,
            started_at=started_at,
            processed_at=datetime.now(timezone.utc),
            processing_ms=processing_ms,
            summaries=[summary.to_record() for summary in summaries],
            failures=[failure.to_record() for failure in failures],
        )

    def fetch_summary(self, site: str, day: str, unit_id: str) -> GroupSummary:
        """Retrieve a persisted summary from the summary table."""
        key = GroupKey(site=site, day=day, unit_id=unit_id)
        summary = read_summary(self.summary_table, key)
        if summary is None:
            raise KeyError(f"Summary for {key} not found.")
        return summary

    def shutdown(self) -> None:
        """Release executor resources."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _store(self, outcome: GroupResult) -> None:
        filled = outcome.filled if self.store_filled_table else None
        write_summary(self.summary_table, outcome.summary, filled)


@lru_cache
def build_default_processor(
    workers: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> ProcessorService:
    """Factory that wires the processor from settings."""
    settings = settings or get_settings()
    configure_logging(settings=settings)
    return ProcessorService(
        raw_table=build_raw_table(settings),
        summary_table=build_summary_table(settings),
        aggregator=Aggregator(settings.fuel_model_params()),
        workers=workers or settings.processor_workers,
        store_filled_table=settings.store_filled_table,
    )
