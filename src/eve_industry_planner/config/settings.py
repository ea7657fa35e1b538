from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os


def _env(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None or value == "" else value


def _int(name: str, default: int) -> int:
    raw = _env(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError:
        return default


def _float(name: str, default: float) -> float:
    raw = _env(name, str(default)).strip()
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class PlannerSettings:
    max_recursion_depth: int = 10
    structure_material_reduction: float = 0.01
    invention_job_cost_rate: float = 0.02
    scc_surcharge_rate: float = 0.04
    sde_path: str = "database/eve_sde.db"
    language: str = "en"
    batch_workers: int = 4


@lru_cache(maxsize=1)
def get_settings() -> PlannerSettings:
    return PlannerSettings(
        max_recursion_depth=max(0, _int("PLANNER_MAX_RECURSION_DEPTH", default=10)),
        structure_material_reduction=_float("PLANNER_STRUCTURE_MATERIAL_REDUCTION", default=0.01),
        invention_job_cost_rate=_float("PLANNER_INVENTION_JOB_COST_RATE", default=0.02),
        scc_surcharge_rate=_float("PLANNER_SCC_SURCHARGE_RATE", default=0.04),
        sde_path=_env("PLANNER_SDE_PATH", "database/eve_sde.db"),
        language=_env("PLANNER_LANGUAGE", "en"),
        batch_workers=max(1, _int("PLANNER_BATCH_WORKERS", default=4)),
    )


def invention_job_cost_rate() -> float:
    return get_settings().invention_job_cost_rate
