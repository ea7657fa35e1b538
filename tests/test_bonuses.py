from __future__ import annotations

import pytest

from eve_industry_planner.application.industry.bonuses import adjusted_quantity, clamp_efficiency_level
from eve_industry_planner.domain.facility_profile import FacilityProfile

RAITARU = 35825
ME_RIG = 43920


def test_blueprint_me_only() -> None:
    assert adjusted_quantity(100, 10, 1) == 90


def test_structure_reduction_applies_to_all_runs() -> None:
    facility = FacilityProfile(structure_type_id=RAITARU)
    assert adjusted_quantity(100, 0, 5, facility=facility) == 495


def test_zero_base_quantity_contributes_nothing() -> None:
    assert adjusted_quantity(0, 10, 50) == 0
    assert adjusted_quantity(0, 0, 1, facility=FacilityProfile(structure_type_id=RAITARU)) == 0


@pytest.mark.parametrize("base", [1, 2, 3, 7, 100])
@pytest.mark.parametrize("me", [0, 5, 10])
@pytest.mark.parametrize("runs", [1, 2, 9, 50])
def test_never_less_than_runs(base: int, me: int, runs: int) -> None:
    facility = FacilityProfile(structure_type_id=RAITARU, rigs=(ME_RIG,), security_status=-0.5)
    qty = adjusted_quantity(base, me, runs, facility=facility, output_group_id=11, rig_bonus_percent=-4.2)
    assert qty >= runs


def test_rig_needs_both_rigs_and_a_known_group() -> None:
    with_rig = FacilityProfile(rigs=(ME_RIG,))
    without_rig = FacilityProfile()

    assert adjusted_quantity(100, 0, 1, facility=with_rig, output_group_id=11, rig_bonus_percent=-2.0) == 98
    assert adjusted_quantity(100, 0, 1, facility=with_rig, output_group_id=None, rig_bonus_percent=-2.0) == 100
    assert adjusted_quantity(100, 0, 1, facility=without_rig, output_group_id=11, rig_bonus_percent=-2.0) == 100


def test_bonuses_multiply_then_round_once() -> None:
    facility = FacilityProfile(structure_type_id=RAITARU, rigs=(ME_RIG,))
    # 10 * 100 * 0.9 * 0.99 * 0.979 = 872.289
    assert adjusted_quantity(100, 10, 10, facility=facility, output_group_id=11, rig_bonus_percent=-2.1) == 873


def test_structure_rate_is_configurable() -> None:
    facility = FacilityProfile(structure_type_id=RAITARU)
    assert adjusted_quantity(100, 0, 1, facility=facility, structure_reduction_rate=0.0) == 100
    assert adjusted_quantity(1000, 0, 1, facility=facility, structure_reduction_rate=0.05) == 950


def test_malformed_numbers_are_zero() -> None:
    assert adjusted_quantity("abc", 0, 1) == 0
    assert adjusted_quantity(100, None, 1) == 100
    assert adjusted_quantity(100, 0, "x") == 0
    assert adjusted_quantity(float("nan"), 0, 1) == 0


def test_efficiency_level_is_clamped() -> None:
    assert clamp_efficiency_level(15) == 10
    assert clamp_efficiency_level(-3) == 0
    assert adjusted_quantity(100, 15, 1) == 90
    assert adjusted_quantity(100, -5, 1) == 100
