from __future__ import annotations

from typing import Iterable, List

import pytest

from models.records import GroupKey, SampleStream
from models.schemas import FuelModelParams

KEY = GroupKey(site="SEA", day="2024-03-01", unit_id="tug-07")


@pytest.fixture()
def params() -> FuelModelParams:
    return FuelModelParams(
        alpha=0.7,
        mass=15000.0,
        gear_ratio=3.5,
        max_power=250.0,
        efficiency_coefficient=0.05,
        acceleration_coefficient=0.02,
    )


def make_stream(variable: str, pairs: Iterable[tuple[int, float]], key: GroupKey = KEY) -> SampleStream:
    return SampleStream.from_pairs(key, variable, pairs)


def scenario_streams(key: GroupKey = KEY) -> List[SampleStream]:
    return [
        make_stream("gear", [(0, 2), (10, 2)], key),
        make_stream("rpm", [(0, 1000), (10, 1500)], key),
        make_stream("speed", [(0, 30), (10, 32)], key),
    ]
