"""Integration and simple reductions over rate series."""

from __future__ import annotations

from typing import Sequence

from models.records import RateSample

SECONDS_PER_HOUR = 3600.0


def integrate(series: Sequence[RateSample]) -> float:
    """Left Riemann sum of ``rate`` over elapsed seconds.

    Each sample's rate is held until the next timestamp, so the final sample
    contributes nothing. Fewer than two samples integrate to zero.
    """
    total = 0.0
    for current, following in zip(series, series[1:]):
        total += current.rate * (following.timestamp - current.timestamp)
    return total


def elapsed_hours(series: Sequence[RateSample]) -> float:
    if not series:
        return 0.0
    timestamps = [sample.timestamp for sample in series]
    return (max(timestamps) - min(timestamps)) / SECONDS_PER_HOUR


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)
