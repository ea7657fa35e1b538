from __future__ import annotations

import pytest

from eve_industry_planner.application.industry.invention import (
    evaluate_cost,
    evaluate_probability,
    resolve_invention_skills,
)
from eve_industry_planner.domain.invention import (
    Decryptor,
    DecryptorChoice,
    InventionJob,
    InventionSkills,
    NoDecryptor,
    SkillRequirement,
)
from eve_industry_planner.domain.recipes import RecipeMaterial, RecipeProduct

ATTAINMENT = Decryptor(34202, "Attainment Decryptor", 1.8, -1, 4, 4)


def _job(base_probability: float = 0.34, output_runs: int = 10) -> InventionJob:
    return InventionJob(
        base_probability=base_probability,
        materials=(RecipeMaterial(20171, 2), RecipeMaterial(20172, 2)),
        candidate_outputs=(RecipeProduct(1000, output_runs),),
    )


@pytest.mark.parametrize(
    "skills, multiplier, expected",
    [
        (InventionSkills(), 1.0, 0.34),
        (InventionSkills(encryption=5), 1.0, 0.3825),
        (InventionSkills(datacore1=5, datacore2=5), 1.0, 0.4533),
        (InventionSkills(encryption=5, datacore1=5, datacore2=5), 1.0, 0.51),
        (InventionSkills(encryption=5, datacore1=5, datacore2=5), 1.2, 0.612),
        (InventionSkills(encryption=3, datacore1=3, datacore2=3), 1.8, 0.7895),
        (InventionSkills(encryption=5, datacore1=5, datacore2=5), 0.6, 0.306),
    ],
)
def test_probability_formula(skills: InventionSkills, multiplier: float, expected: float) -> None:
    assert evaluate_probability(0.34, skills, multiplier) == pytest.approx(expected, abs=1e-3)


def test_probability_t2_scenario() -> None:
    skills = InventionSkills(encryption=5, datacore1=4, datacore2=4)
    assert evaluate_probability(0.3, skills) == pytest.approx(0.4275, abs=1e-4)


def test_probability_is_capped_at_one() -> None:
    maxed = InventionSkills(encryption=5, datacore1=5, datacore2=5)
    assert evaluate_probability(0.5, maxed, 1.8) == 1.0
    assert evaluate_probability(0.34, InventionSkills(encryption=1000, datacore1=1000, datacore2=1000)) == 1.0


def test_probability_never_negative() -> None:
    assert evaluate_probability(-0.2, InventionSkills(encryption=5)) == 0.0
    assert evaluate_probability(0.3, InventionSkills(encryption=-5)) == pytest.approx(0.3)


def test_missing_skills_count_as_zero() -> None:
    assert evaluate_probability(0.34, None) == pytest.approx(0.34)


@pytest.mark.parametrize("slot", ["encryption", "datacore1", "datacore2"])
def test_probability_is_monotone_in_each_skill(slot: str) -> None:
    values = [evaluate_probability(0.3, InventionSkills(**{slot: lvl})) for lvl in range(6)]
    assert values == sorted(values)
    assert values[0] < values[-1]


def test_cost_without_decryptor() -> None:
    prices = {20171: 100.0, 20172: 200.0}
    outcome = evaluate_cost(_job(), prices, 0.5, job_cost_rate=0.02)

    assert outcome.material_cost == pytest.approx(600.0)
    assert outcome.catalyst_cost == 0.0
    assert outcome.job_cost == pytest.approx(12.0)
    assert outcome.total_per_attempt == pytest.approx(612.0)
    assert outcome.cost_per_success == pytest.approx(1224.0)
    assert outcome.output_runs_per_unit == 10
    assert outcome.cost_per_output_unit == pytest.approx(122.4)
    assert outcome.invented_efficiency_level == 2
    assert outcome.invented_speed_level == 4
    assert outcome.decryptor_id is None
    assert outcome.name == "No Decryptor"


def test_cost_with_decryptor_applies_modifiers() -> None:
    prices = {20171: 100.0, 20172: 200.0}
    choice = DecryptorChoice(ATTAINMENT, price=500.0)
    outcome = evaluate_cost(_job(), prices, 0.75, choice, job_cost_rate=0.02)

    assert outcome.catalyst_cost == 500.0
    assert outcome.total_per_attempt == pytest.approx(1112.0)
    assert outcome.output_runs_per_unit == 14
    assert outcome.cost_per_output_unit == pytest.approx(1112.0 / 0.75 / 14)
    assert outcome.invented_efficiency_level == 1
    assert outcome.invented_speed_level == 8
    assert outcome.decryptor_id == 34202
    assert outcome.to_dict()["runs_modifier"] == 4


def test_invented_me_is_never_negative() -> None:
    outcome = evaluate_cost(_job(), {}, 0.5, DecryptorChoice(Decryptor(1, "Broken", 1.0, -5, -9, 0)))
    assert outcome.invented_efficiency_level == 0
    assert outcome.invented_speed_level == 0


def test_zero_probability_has_zero_cost_per_success() -> None:
    outcome = evaluate_cost(_job(), {20171: 100.0}, 0.0)
    assert outcome.cost_per_success == 0.0
    assert outcome.cost_per_output_unit == 0.0


def test_zero_output_runs_falls_back_to_cost_per_success() -> None:
    outcome = evaluate_cost(_job(output_runs=1), {20171: 100.0}, 0.5, DecryptorChoice(Decryptor(9, "Odd", 1.0, 0, 0, -1)))
    assert outcome.output_runs_per_unit == 0
    assert outcome.cost_per_output_unit == outcome.cost_per_success


def test_missing_prices_are_free() -> None:
    outcome = evaluate_cost(_job(), {20171: 100.0}, 0.5, job_cost_rate=0.0)
    assert outcome.material_cost == pytest.approx(200.0)


def test_job_cost_rate_defaults_to_settings(monkeypatch) -> None:
    monkeypatch.setattr("eve_industry_planner.application.industry.invention.invention_job_cost_rate", lambda: 0.1)
    outcome = evaluate_cost(_job(), {20171: 100.0, 20172: 100.0}, 1.0, NoDecryptor())
    assert outcome.job_cost == pytest.approx(40.0)


def test_resolve_skills_by_name_and_order() -> None:
    required = [
        SkillRequirement(11433, "High Energy Physics"),
        SkillRequirement(23087, "Amarr Encryption Methods"),
        SkillRequirement(11442, "Plasma Physics"),
    ]
    skills = resolve_invention_skills(required, {23087: 4, 11433: 5, 11442: 3})
    assert skills == InventionSkills(encryption=4, datacore1=5, datacore2=3)


def test_resolve_skills_untrained_default_zero() -> None:
    required = [SkillRequirement(99001, "Some Encryption Methods"), SkillRequirement(99002, "Science")]
    assert resolve_invention_skills(required, {}) == InventionSkills()
    assert resolve_invention_skills([], None) == InventionSkills()
