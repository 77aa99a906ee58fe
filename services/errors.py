"""Exceptions raised by the fuel aggregation pipeline."""

from __future__ import annotations

from models.schemas import ReasonCode


class FuelAggregationError(Exception):
    """Base class; ``reason`` is the code recorded when the error is reported."""

    reason: ReasonCode = ReasonCode.unexpected_error


class InvalidInput(FuelAggregationError):
    """Streams handed to one alignment call do not share an entity-group key."""

    reason = ReasonCode.invalid_input
