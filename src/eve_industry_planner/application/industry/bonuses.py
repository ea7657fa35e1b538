from __future__ import annotations

import math
from typing import Any, Optional

from eve_industry_planner.domain.facility_profile import FacilityProfile

MAX_EFFICIENCY_LEVEL = 10

# Refineries: both hulls reduce reaction inputs by 2%; only the Tatara speeds reactions up.
ATHANOR_TYPE_ID = 35835
TATARA_TYPE_ID = 35836
REFINERY_MATERIAL_REDUCTION = 0.02
REFINERY_TIME_REDUCTION = {TATARA_TYPE_ID: 0.25}


def _num(v: Any) -> float:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(f) or math.isinf(f):
        return 0.0
    return f


def clamp_efficiency_level(level: Any) -> int:
    return max(0, min(int(_num(level)), MAX_EFFICIENCY_LEVEL))


def adjusted_quantity(
    base_quantity: Any,
    efficiency_level: Any,
    runs: Any,
    facility: Optional[FacilityProfile] = None,
    output_group_id: Optional[int] = None,
    rig_bonus_percent: float = 0.0,
    *,
    structure_reduction_rate: float = 0.01,
) -> int:
    """Material quantity needed for `runs` after ME, structure and rig bonuses.

    Bonuses multiply in a fixed order (blueprint ME, structure role bonus, rig
    bonus) and the result is rounded up once at the end. Each run always
    consumes at least one unit of a non-zero material.
    """

    base = _num(base_quantity)
    n_runs = max(0, int(_num(runs)))
    if base <= 0 or n_runs == 0:
        return 0

    me = clamp_efficiency_level(efficiency_level)
    after = n_runs * base * (1.0 - me / 100.0)

    if facility is not None and facility.has_structure:
        after *= 1.0 - _num(structure_reduction_rate)

    if facility is not None and facility.has_rigs and output_group_id is not None:
        # rig_bonus_percent is negative for a reduction (e.g. -4.2 == 4.2% less).
        after *= 1.0 + _num(rig_bonus_percent) / 100.0

    # Float noise (e.g. 90.00000000000001) must not push the ceiling up a unit.
    return max(n_runs, int(math.ceil(round(after, 9))))


def reaction_quantity(
    base_quantity: Any,
    runs: Any,
    facility: Optional[FacilityProfile] = None,
    rig_bonus_percent: float = 0.0,
) -> int:
    """Reaction input quantity for `runs`; formulas have no ME, only refinery and rig bonuses."""

    base = _num(base_quantity)
    n_runs = max(0, int(_num(runs)))
    if base <= 0 or n_runs == 0:
        return 0

    after = n_runs * base
    if facility is not None and facility.structure_type_id in (ATHANOR_TYPE_ID, TATARA_TYPE_ID):
        after *= 1.0 - REFINERY_MATERIAL_REDUCTION
    if facility is not None and facility.has_rigs:
        after *= 1.0 + _num(rig_bonus_percent) / 100.0

    return max(n_runs, int(math.ceil(round(after, 9))))


def reaction_time(
    base_time_seconds: Any,
    runs: Any,
    facility: Optional[FacilityProfile] = None,
    rig_time_bonus_percent: float = 0.0,
) -> int:
    """Total reaction time in seconds for `runs`, rounded up once."""

    per_run = max(0.0, _num(base_time_seconds))
    n_runs = max(0, int(_num(runs)))
    if facility is not None and facility.structure_type_id is not None:
        per_run *= 1.0 - REFINERY_TIME_REDUCTION.get(int(facility.structure_type_id), 0.0)
    if facility is not None and facility.has_rigs:
        per_run *= 1.0 + _num(rig_time_bonus_percent) / 100.0
    return int(math.ceil(round(per_run * n_runs, 9)))
