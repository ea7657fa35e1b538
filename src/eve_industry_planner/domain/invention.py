from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from eve_industry_planner.domain.recipes import RecipeMaterial, RecipeProduct


@dataclass(frozen=True)
class Decryptor:
    id: int
    name: str
    probability_multiplier: float = 1.0
    efficiency_modifier: int = 0
    speed_modifier: int = 0
    output_count_modifier: int = 0


@dataclass(frozen=True)
class SkillRequirement:
    skill_id: int
    name: str
    level: int = 1


@dataclass(frozen=True)
class InventionSkills:
    encryption: int = 0
    datacore1: int = 0
    datacore2: int = 0

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "InventionSkills":
        data = data or {}

        def _lvl(key: str) -> int:
            try:
                return max(0, int(data.get(key) or 0))
            except (TypeError, ValueError):
                return 0

        return InventionSkills(
            encryption=_lvl("encryption"),
            datacore1=_lvl("datacore1"),
            datacore2=_lvl("datacore2"),
        )


@dataclass(frozen=True)
class InventionJob:
    base_probability: float
    materials: tuple[RecipeMaterial, ...] = ()
    candidate_outputs: tuple[RecipeProduct, ...] = ()
    required_skills: tuple[SkillRequirement, ...] = ()

    @property
    def base_output_runs(self) -> int:
        if not self.candidate_outputs:
            return 0
        return max(0, int(self.candidate_outputs[0].output_quantity))


@dataclass(frozen=True)
class NoDecryptor:
    name: str = "No Decryptor"

    @property
    def probability_multiplier(self) -> float:
        return 1.0

    @property
    def price(self) -> float:
        return 0.0


@dataclass(frozen=True)
class DecryptorChoice:
    decryptor: Decryptor
    price: float = 0.0

    @property
    def name(self) -> str:
        return self.decryptor.name

    @property
    def probability_multiplier(self) -> float:
        return float(self.decryptor.probability_multiplier)


CatalystChoice = Union[NoDecryptor, DecryptorChoice]


@dataclass(frozen=True)
class InventionOutcome:
    catalyst: CatalystChoice
    probability: float
    material_cost: float
    catalyst_cost: float
    job_cost: float
    total_per_attempt: float
    cost_per_success: float
    output_runs_per_unit: int
    cost_per_output_unit: float

    efficiency_modifier: int = 0
    speed_modifier: int = 0
    output_count_modifier: int = 0
    invented_efficiency_level: int = 0
    invented_speed_level: int = 0

    @property
    def name(self) -> str:
        return self.catalyst.name

    @property
    def decryptor_id(self) -> Optional[int]:
        if isinstance(self.catalyst, DecryptorChoice):
            return self.catalyst.decryptor.id
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decryptor_type_id": self.decryptor_id,
            "name": self.name,
            "probability": self.probability,
            "material_cost": self.material_cost,
            "decryptor_cost": self.catalyst_cost,
            "job_cost": self.job_cost,
            "total_cost_per_attempt": self.total_per_attempt,
            "cost_per_success": self.cost_per_success,
            "output_runs_per_unit": self.output_runs_per_unit,
            "cost_per_output_unit": self.cost_per_output_unit,
            "me_modifier": self.efficiency_modifier,
            "te_modifier": self.speed_modifier,
            "runs_modifier": self.output_count_modifier,
            "invented_me": self.invented_efficiency_level,
            "invented_te": self.invented_speed_level,
        }


@dataclass(frozen=True)
class DecryptorSearch:
    best: InventionOutcome
    no_catalyst: InventionOutcome
    all_options: tuple[InventionOutcome, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best": self.best.to_dict(),
            "no_decryptor": self.no_catalyst.to_dict(),
            "all_options": [o.to_dict() for o in self.all_options],
        }
