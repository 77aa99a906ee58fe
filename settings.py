from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from models.schemas import FuelModelParams


_RAW_TABLE_NAME_ENV = "RAW_TABLE_NAME"
_RAW_TABLE_PATH_ENV = "RAW_TABLE_PERSISTENCE_PATH"
_SUMMARY_TABLE_NAME_ENV = "SUMMARY_TABLE_NAME"
_SUMMARY_TABLE_PATH_ENV = "SUMMARY_TABLE_PERSISTENCE_PATH"
_WORKER_COUNT_ENV = "PROCESSOR_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_STORE_FILLED_ENV = "STORE_FILLED_TABLE"

# Demonstration defaults only; deployments are expected to set every one.
_FUEL_ENV_DEFAULTS = {
    "alpha": ("FUEL_ALPHA", 0.7),
    "mass": ("FUEL_MASS_KG", 15000.0),
    "gear_ratio": ("FUEL_GEAR_RATIO", 3.5),
    "max_power": ("FUEL_MAX_POWER", 250.0),
    "efficiency_coefficient": ("FUEL_EFFICIENCY_COEFFICIENT", 0.05),
    "acceleration_coefficient": ("FUEL_ACCELERATION_COEFFICIENT", 0.02),
}


@dataclass(frozen=True)
class Settings:
    raw_table_name: str
    raw_table_persistence_path: Optional[str]
    summary_table_name: str
    summary_table_persistence_path: Optional[str]
    processor_workers: int
    log_level: str
    store_filled_table: bool
    fuel_alpha: float
    fuel_mass: float
    fuel_gear_ratio: float
    fuel_max_power: float
    fuel_efficiency_coefficient: float
    fuel_acceleration_coefficient: float

    def fuel_model_params(self) -> FuelModelParams:
        return FuelModelParams(
            alpha=self.fuel_alpha,
            mass=self.fuel_mass,
            gear_ratio=self.fuel_gear_ratio,
            max_power=self.fuel_max_power,
            efficiency_coefficient=self.fuel_efficiency_coefficient,
            acceleration_coefficient=self.fuel_acceleration_coefficient,
        )


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_worker_count(default: int) -> int:
    value = os.getenv(_WORKER_COUNT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_fuel_param(field_name: str) -> float:
    env_name, default = _FUEL_ENV_DEFAULTS[field_name]
    return _read_positive_float(env_name, default)


@lru_cache
def get_settings() -> Settings:
    return Settings(
        raw_table_name=_read_str_env(_RAW_TABLE_NAME_ENV, "raw_samples"),
        raw_table_persistence_path=_read_optional_env(
            _RAW_TABLE_PATH_ENV, "./tmp/raw_samples.json"
        ),
        summary_table_name=_read_str_env(_SUMMARY_TABLE_NAME_ENV, "fuel_summaries"),
        summary_table_persistence_path=_read_optional_env(
            _SUMMARY_TABLE_PATH_ENV, "./tmp/fuel_summaries.json"
        ),
        processor_workers=_read_worker_count(4),
        log_level=_read_log_level("INFO"),
        store_filled_table=_read_bool_env(_STORE_FILLED_ENV, False),
        fuel_alpha=_read_fuel_param("alpha"),
        fuel_mass=_read_fuel_param("mass"),
        fuel_gear_ratio=_read_fuel_param("gear_ratio"),
        fuel_max_power=_read_fuel_param("max_power"),
        fuel_efficiency_coefficient=_read_fuel_param("efficiency_coefficient"),
        fuel_acceleration_coefficient=_read_fuel_param("acceleration_coefficient"),
    )
