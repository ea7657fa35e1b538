from __future__ import annotations

import logging
from collections import Counter

import pytest

from eve_industry_planner.application.industry.bom import CATALOG_UNAVAILABLE
from eve_industry_planner.application.industry.bonuses import (
    ATHANOR_TYPE_ID,
    TATARA_TYPE_ID,
    reaction_quantity,
    reaction_time,
)
from eve_industry_planner.application.industry.reactions import FORMULA_NOT_FOUND, ReactionExpander
from eve_industry_planner.config.settings import PlannerSettings
from eve_industry_planner.domain.facility_profile import FacilityProfile
from eve_industry_planner.domain.recipes import RecipeMaterial, RecipeProduct
from eve_industry_planner.infrastructure.sde.rig_effects import reaction_security_multiplier
from eve_industry_planner.infrastructure.static_catalog import StaticCatalog

COMPOSITE = 5000
INTERMEDIATE = 6000
CADMIUM = 16633
COBALT = 16634
PLATINUM = 16635
REACTION_RIG = 46497
ME_RIG = 43920

COMPOSITE_FORMULA = 4000
INTERMEDIATE_FORMULA = 6001


def _catalog(**overrides) -> StaticCatalog:
    kwargs = dict(
        reactions={
            COMPOSITE_FORMULA: [RecipeMaterial(INTERMEDIATE, 100), RecipeMaterial(COBALT, 100)],
            INTERMEDIATE_FORMULA: [RecipeMaterial(CADMIUM, 100), RecipeMaterial(PLATINUM, 100)],
        },
        reaction_products={
            COMPOSITE_FORMULA: RecipeProduct(COMPOSITE, 200),
            INTERMEDIATE_FORMULA: RecipeProduct(INTERMEDIATE, 200),
        },
        reaction_times={COMPOSITE_FORMULA: 10800, INTERMEDIATE_FORMULA: 3600},
        names={COMPOSITE: "Test Composite", INTERMEDIATE: "Test Intermediate", COBALT: "Cobalt"},
        rigs={
            REACTION_RIG: {"group_id": 1888, "reaction_material_bonus": -2.0, "reaction_time_bonus": -20.0},
            ME_RIG: {"group_id": 1816, "material_bonus": -2.0},
        },
    )
    kwargs.update(overrides)
    return StaticCatalog(**kwargs)


def _expander(catalog: StaticCatalog | None = None, **settings) -> ReactionExpander:
    return ReactionExpander(catalog or _catalog(), PlannerSettings(**settings))


def test_reaction_quantity_ignores_efficiency_and_rounds_up() -> None:
    assert reaction_quantity(100, 1) == 100
    assert reaction_quantity(100, 10, FacilityProfile(structure_type_id=ATHANOR_TYPE_ID)) == 980
    # Engineering complexes give no reaction bonus.
    assert reaction_quantity(100, 10, FacilityProfile(structure_type_id=35825)) == 1000
    assert reaction_quantity(1, 5, FacilityProfile(structure_type_id=TATARA_TYPE_ID)) == 5
    assert reaction_quantity(0, 5) == 0


def test_reaction_time_bonuses() -> None:
    assert reaction_time(10800, 10) == 108000
    assert reaction_time(10800, 10, FacilityProfile(structure_type_id=TATARA_TYPE_ID)) == 81000
    assert reaction_time(10800, 10, FacilityProfile(structure_type_id=ATHANOR_TYPE_ID)) == 108000
    assert reaction_time(10800, 10, FacilityProfile(rigs=(REACTION_RIG,)), -22.0) == 84240


@pytest.mark.parametrize("sec, expected", [(1.0, 1.0), (0.3, 1.0), (0.0, 1.1), (-0.7, 1.1), (None, 1.0)])
def test_reaction_security_tiers(sec, expected: float) -> None:
    assert reaction_security_multiplier(sec) == expected


def test_intermediates_are_always_expanded() -> None:
    result = _expander().expand(COMPOSITE_FORMULA, 1)

    # 100 intermediate at 200 per run -> 1 run of the sub-formula.
    assert result.materials == {COBALT: 100, CADMIUM: 100, PLATINUM: 100}
    assert INTERMEDIATE not in result.materials
    assert result.product.name == "Test Composite"
    assert result.product.quantity == 200

    [component] = result.breakdown.intermediate_components
    assert component.quantity == 100
    assert component.recipe_id == INTERMEDIATE_FORMULA
    assert component.node.runs == 1
    assert component.node.product.quantity == 200
    assert result.breakdown.time_seconds == 10800
    assert component.node.time_seconds == 3600
    assert result.breakdown.flattened_materials() == result.materials


def test_tatara_reduces_inputs_and_time() -> None:
    tatara = FacilityProfile(structure_type_id=TATARA_TYPE_ID)
    result = _expander().expand(COMPOSITE_FORMULA, 10, tatara)

    # 980 intermediate -> 5 runs -> 500 * 0.98 of each moon material
    assert result.materials == {COBALT: 980, CADMIUM: 490, PLATINUM: 490}
    assert result.breakdown.intermediate_components[0].node.runs == 5
    assert result.breakdown.time_seconds == 81000
    assert result.breakdown.intermediate_components[0].node.time_seconds == 13500


def test_reaction_rigs_scale_with_security() -> None:
    highsec = FacilityProfile(structure_type_id=ATHANOR_TYPE_ID, rigs=(REACTION_RIG,), security_status=0.9)
    nullsec = FacilityProfile(structure_type_id=ATHANOR_TYPE_ID, rigs=(REACTION_RIG,), security_status=-0.3)
    expander = _expander()

    # 1000 * 0.98 * 0.98 = 960.4
    assert expander.expand(COMPOSITE_FORMULA, 10, highsec).materials[COBALT] == 961
    # 1000 * 0.98 * 0.978 = 958.44
    null = expander.expand(COMPOSITE_FORMULA, 10, nullsec)
    assert null.materials[COBALT] == 959
    # 10800 * 0.78 * 10
    assert null.breakdown.time_seconds == 84240


def test_engineering_rigs_do_not_affect_reactions() -> None:
    facility = FacilityProfile(structure_type_id=ATHANOR_TYPE_ID, rigs=(ME_RIG,), security_status=-0.3)
    result = _expander().expand(COMPOSITE_FORMULA, 10, facility)
    assert result.materials[COBALT] == 980


def test_unknown_formula() -> None:
    result = _expander().expand(424242, 1)

    assert not result.found
    assert result.error == FORMULA_NOT_FOUND
    assert result.materials == {}


def test_self_referencing_formula_stops_at_depth_guard(caplog) -> None:
    catalog = StaticCatalog(reactions={700: [RecipeMaterial(800, 1)]}, reaction_products={700: RecipeProduct(800, 1)})

    with caplog.at_level(logging.WARNING):
        result = _expander(catalog, max_recursion_depth=3).expand(700, 1)

    assert result.found
    assert result.materials == {}
    assert any("Max recursion depth" in r.getMessage() for r in caplog.records)


class _DanglingFormulaCatalog(StaticCatalog):
    def get_reaction_for_product(self, item_id: int):
        if int(item_id) == INTERMEDIATE:
            return 9999
        return super().get_reaction_for_product(item_id)


def test_intermediate_with_unusable_formula_contributes_nothing() -> None:
    base = _catalog()
    catalog = _DanglingFormulaCatalog(
        reactions={COMPOSITE_FORMULA: base.get_reaction_materials(COMPOSITE_FORMULA)},
        reaction_products={COMPOSITE_FORMULA: base.get_reaction_product(COMPOSITE_FORMULA)},
    )

    result = _expander(catalog).expand(COMPOSITE_FORMULA, 1)

    assert result.materials == {COBALT: 100}
    [component] = result.breakdown.intermediate_components
    assert component.error == FORMULA_NOT_FOUND
    assert component.node is None


class _FlakyTimeCatalog(StaticCatalog):
    def get_reaction_time(self, formula_id: int) -> int:
        raise TimeoutError("sde locked")

    def get_reaction_product(self, formula_id: int):
        if int(formula_id) == INTERMEDIATE_FORMULA:
            raise ConnectionError("db gone")
        return super().get_reaction_product(formula_id)


def test_collaborator_failures_are_recorded() -> None:
    base = _catalog()
    catalog = _FlakyTimeCatalog(
        reactions={k: base.get_reaction_materials(k) for k in (COMPOSITE_FORMULA, INTERMEDIATE_FORMULA)},
        reaction_products={
            COMPOSITE_FORMULA: base.get_reaction_product(COMPOSITE_FORMULA),
            INTERMEDIATE_FORMULA: base.get_reaction_product(INTERMEDIATE_FORMULA),
        },
    )

    result = _expander(catalog).expand(COMPOSITE_FORMULA, 1)

    assert result.materials == {COBALT: 100}
    assert result.breakdown.time_seconds == 0
    assert result.breakdown.intermediate_components[0].error == CATALOG_UNAVAILABLE
    assert {f.operation for f in result.failures} == {"get_reaction_time", "get_reaction_product"}


class _CountingCatalog(StaticCatalog):
    def __init__(self, **kw):
        super().__init__(**kw)
        self.material_calls: Counter[int] = Counter()

    def get_reaction_materials(self, formula_id: int):
        self.material_calls[int(formula_id)] += 1
        return super().get_reaction_materials(formula_id)


def test_memo_reuses_identical_subtrees() -> None:
    # 10 needs 20 and 30; both are reacted from 40.
    catalog = _CountingCatalog(
        reactions={
            10: [RecipeMaterial(20, 1), RecipeMaterial(30, 1)],
            21: [RecipeMaterial(40, 1)],
            31: [RecipeMaterial(40, 1)],
            41: [RecipeMaterial(CADMIUM, 5)],
        },
        reaction_products={
            10: RecipeProduct(11, 1),
            21: RecipeProduct(20, 1),
            31: RecipeProduct(30, 1),
            41: RecipeProduct(40, 1),
        },
    )

    result = _expander(catalog).expand(10, 1)

    assert result.materials == {CADMIUM: 10}
    assert catalog.material_calls[41] == 1
