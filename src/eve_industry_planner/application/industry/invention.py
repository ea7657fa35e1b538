from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional

from eve_industry_planner.config.settings import invention_job_cost_rate
from eve_industry_planner.domain.invention import (
    CatalystChoice,
    DecryptorChoice,
    InventionJob,
    InventionOutcome,
    InventionSkills,
    NoDecryptor,
    SkillRequirement,
)

# Invented T2 blueprint copies start at ME 2 / TE 4 before decryptor modifiers.
BASE_INVENTED_ME = 2
BASE_INVENTED_TE = 4

# Caldari, Minmatar, Amarr, Gallente Encryption Methods.
ENCRYPTION_SKILL_IDS = frozenset({21790, 21791, 23087, 23121})


def _finite(v: Any, default: float = 0.0) -> float:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return default
    if math.isnan(f) or math.isinf(f):
        return default
    return f


def _skill_level(v: Any) -> int:
    return max(0, int(_finite(v)))


def evaluate_probability(
    base_probability: float,
    skills: InventionSkills | None,
    catalyst_multiplier: float = 1.0,
) -> float:
    """Invention success chance after skills and decryptor, clamped to [0, 1].

    p = base * (1 + encryption/40) * (1 + (datacore1 + datacore2)/30) * multiplier
    """

    skills = skills or InventionSkills()
    p = (
        _finite(base_probability)
        * (1.0 + _skill_level(skills.encryption) / 40.0)
        * (1.0 + (_skill_level(skills.datacore1) + _skill_level(skills.datacore2)) / 30.0)
        * _finite(catalyst_multiplier, 1.0)
    )
    return max(0.0, min(p, 1.0))


def material_cost_for(job: InventionJob, material_prices: Mapping[int, float] | None) -> float:
    prices = material_prices or {}
    total = 0.0
    for mat in job.materials:
        # Unpriced inputs are treated as free.
        total += _finite(prices.get(int(mat.material_id), 0.0)) * max(0, int(mat.base_quantity))
    return total


def evaluate_cost(
    job: InventionJob,
    material_prices: Mapping[int, float] | None,
    probability: float,
    catalyst: CatalystChoice | None = None,
    job_cost_rate: Optional[float] = None,
) -> InventionOutcome:
    catalyst = catalyst if catalyst is not None else NoDecryptor()
    rate = invention_job_cost_rate() if job_cost_rate is None else _finite(job_cost_rate)

    material_cost = material_cost_for(job, material_prices)
    catalyst_cost = max(0.0, _finite(catalyst.price))
    # Linear approximation of the installation fee, not the cost-index formula.
    job_cost = material_cost * rate
    total = material_cost + catalyst_cost + job_cost

    p = max(0.0, min(_finite(probability), 1.0))
    cost_per_success = total / p if p > 0 else 0.0

    me_mod = te_mod = runs_mod = 0
    if isinstance(catalyst, DecryptorChoice):
        me_mod = int(catalyst.decryptor.efficiency_modifier)
        te_mod = int(catalyst.decryptor.speed_modifier)
        runs_mod = int(catalyst.decryptor.output_count_modifier)

    output_runs = job.base_output_runs + runs_mod
    cost_per_output_unit = cost_per_success / output_runs if output_runs > 0 else cost_per_success

    return InventionOutcome(
        catalyst=catalyst,
        probability=p,
        material_cost=material_cost,
        catalyst_cost=catalyst_cost,
        job_cost=job_cost,
        total_per_attempt=total,
        cost_per_success=cost_per_success,
        output_runs_per_unit=output_runs,
        cost_per_output_unit=cost_per_output_unit,
        efficiency_modifier=me_mod,
        speed_modifier=te_mod,
        output_count_modifier=runs_mod,
        invented_efficiency_level=max(0, BASE_INVENTED_ME + me_mod),
        invented_speed_level=max(0, BASE_INVENTED_TE + te_mod),
    )


def _is_encryption_skill(req: SkillRequirement) -> bool:
    return int(req.skill_id) in ENCRYPTION_SKILL_IDS or "encryption" in str(req.name or "").lower()


def resolve_invention_skills(
    required_skills: Iterable[SkillRequirement],
    trained_levels: Mapping[int, int] | None,
) -> InventionSkills:
    """Map a job's required skills onto the encryption/datacore slots.

    The encryption slot takes the first required encryption skill; the next two
    remaining skills fill datacore1/datacore2 in order. Untrained skills are 0.
    """

    levels = trained_levels or {}

    def _lvl(skill_id: int) -> int:
        return _skill_level(levels.get(int(skill_id), 0))

    encryption = 0
    datacores: list[int] = []
    encryption_seen = False
    for req in required_skills or ():
        if not encryption_seen and _is_encryption_skill(req):
            encryption = _lvl(req.skill_id)
            encryption_seen = True
            continue
        datacores.append(_lvl(req.skill_id))

    datacores += [0, 0]
    return InventionSkills(encryption=encryption, datacore1=datacores[0], datacore2=datacores[1])
