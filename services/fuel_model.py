"""Physical fuel-consumption model for ground-support units.

The model works row by row over a chronologically ordered, gap-free sequence of
:class:`~models.records.FuelRow` records and returns a rate in gallons per hour
for each row. Rows are compared with their predecessor to derive torque and
acceleration, so the first row has no delta and uses zero for both.

Any intermediate that is not a finite number (for example an acceleration over
zero elapsed seconds) is a numeric anomaly: the row's rate becomes ``alpha``
and the row is flagged, nothing is raised.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from models.records import FuelRow
from models.schemas import FuelModelParams

# Torque (lb-ft) times rpm over this constant gives horsepower.
ENGINE_CONSTANT = 5252.0
SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True, slots=True)
class FuelModelTerms:
    """Intermediate and final values of the model for one row."""

    timestamp: int
    torque: float
    power: float
    acceleration: float
    rate: float
    anomaly: bool = False


def _acceleration(previous: FuelRow, current: FuelRow) -> float:
    elapsed = previous.timestamp - current.timestamp
    if elapsed == 0:
        return math.nan
    return (previous.speed - current.speed) / elapsed


def compute_components(
    rows: Sequence[FuelRow], params: FuelModelParams
) -> List[FuelModelTerms]:
    terms: List[FuelModelTerms] = []
    previous: FuelRow | None = None

    for row in rows:
        if previous is None:
            torque_delta = 0.0
            acceleration = 0.0
        else:
            torque_delta = max(row.rpm - previous.rpm, 0.0)
            acceleration = _acceleration(previous, row)

        # Reverse gears may be coded negative; torque still cannot drop below zero.
        torque = max(torque_delta * row.gear * params.gear_ratio, 0.0)
        power = min(torque * row.rpm / ENGINE_CONSTANT, params.max_power)

        rate = (
            params.alpha
            + params.efficiency_coefficient * power
            + params.acceleration_coefficient
            * acceleration
            * params.mass
            / 1000.0
            * row.speed
        )

        anomaly = not all(math.isfinite(v) for v in (torque, power, acceleration, rate))
        if anomaly:
            rate = params.alpha
            torque = torque if math.isfinite(torque) else 0.0
            power = power if math.isfinite(power) else 0.0
        else:
            rate = max(rate, params.alpha)

        terms.append(
            FuelModelTerms(
                timestamp=row.timestamp,
                torque=torque,
                power=power,
                acceleration=acceleration,
                rate=rate,
                anomaly=anomaly,
            )
        )
        previous = row

    return terms


def compute_rate(rows: Sequence[FuelRow], params: FuelModelParams) -> List[float]:
    """Return the fuel rate in gallons per hour, one value per input row."""
    return [term.rate for term in compute_components(rows, params)]


def gallons_per_hour_to_per_second(rates: Sequence[float]) -> List[float]:
    """Convert model output to the per-second rates the integrator expects."""
    return [rate / SECONDS_PER_HOUR for rate in rates]
