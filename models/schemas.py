"""Pydantic schemas for model parameters and persisted batch results."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessingStatus(str, Enum):
    """Outcome of a batch run over one site and day."""

    processed = "processed"
    partial = "partial"
    failed = "failed"


class ReasonCode(str, Enum):
    """Recorded reason for every recovered or reported anomaly."""

    invalid_input = "invalid_input"
    numeric_anomaly = "numeric_anomaly"
    empty_group = "empty_group"
    missing_variable = "missing_variable"
    degenerate_series = "degenerate_series"
    unexpected_error = "unexpected_error"


class FuelModelParams(BaseModel):
    """Fixed coefficients of the fuel-consumption model."""

    model_config = ConfigDict(frozen=True)

    alpha: float = Field(..., ge=0, description="Idle consumption floor in gallons per hour.")
    mass: float = Field(..., gt=0, description="Unit mass in kilograms.")
    gear_ratio: float = Field(..., gt=0)
    max_power: float = Field(..., gt=0, description="Power ceiling in horsepower.")
    efficiency_coefficient: float = Field(..., ge=0)
    acceleration_coefficient: float


class ProcessingError(BaseModel):
    """Details about an input row that failed validation or parsing."""

    row_number: int = Field(..., ge=1)
    reason: str


class GroupSummaryRecord(BaseModel):
    """Serialized form of a group summary as returned by a batch run."""

    site: str
    day: str
    unit_id: str
    quantity_gallons: float = Field(..., ge=0)
    elapsed_hours: float = Field(..., ge=0)
    mean_speed: float
    derived_rate: Optional[float] = Field(
        default=None, description="Gallons per hour; null when elapsed time is zero."
    )
    row_count: int = Field(..., ge=0)
    reason: Optional[ReasonCode] = None


class GroupFailureRecord(BaseModel):
    """A group that could not be summarized, with the reason recorded."""

    site: str
    day: str
    unit_id: str
    reason: ReasonCode
    detail: str


class BatchResult(BaseModel):
    """Full record of one processing run."""

    site: str
    day: str
    status: ProcessingStatus
    started_at: datetime
    processed_at: Optional[datetime] = None
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    summaries: List[GroupSummaryRecord] = Field(default_factory=list)
    failures: List[GroupFailureRecord] = Field(default_factory=list)
