from __future__ import annotations

from typing import Any, Iterable, Optional


_RIG_ATTR_TIME_REDUCTION = 2593
_RIG_ATTR_MATERIAL_REDUCTION = 2594
_RIG_ATTR_COST_REDUCTION = 2595

RIG_BONUS_ATTRIBUTE_IDS = (_RIG_ATTR_TIME_REDUCTION, _RIG_ATTR_MATERIAL_REDUCTION, _RIG_ATTR_COST_REDUCTION)

# Security tiers scale every rig bonus (dogma attributes 2355/2356/2357).
SECURITY_MULTIPLIER_HIGH_SEC = 1.0
SECURITY_MULTIPLIER_LOW_SEC = 1.9
SECURITY_MULTIPLIER_NULL_WH = 2.1

_DEFAULT_SECURITY_STATUS = 0.5

_MODULE_GROUPS = [
    11, 74, 212, 340, 478, 485, 543, 544, 545, 588, 646, 771, 772, 773, 774, 775, 776,
    777, 778, 779, 780, 781, 782, 783, 784, 785, 786, 787, 788, 789, 790,
]
_AMMO_GROUPS = [
    83, 84, 85, 86, 87, 88, 89, 90, 297, 385, 386, 387, 388, 389, 390, 479, 480, 481,
    482, 652, 653, 654, 655, 656, 657, 658, 659, 660, 661, 662, 663,
]
_DRONE_GROUPS = [100, 101, 157, 544]
_BASIC_SMALL_SHIP_GROUPS = [25, 324, 420, 463, 893, 1305]
_BASIC_MEDIUM_SHIP_GROUPS = [26, 358, 419, 540, 541, 543, 830, 831, 832, 833, 834]
_BASIC_LARGE_SHIP_GROUPS = [27, 380, 898, 900, 941]
_ADV_SMALL_SHIP_GROUPS = [237, 324, 831, 834, 893, 1283, 1305]
_ADV_MEDIUM_SHIP_GROUPS = [358, 540, 541, 543, 830, 832, 833, 894, 906, 963, 1283]
_ADV_LARGE_SHIP_GROUPS = [380, 898, 900, 941]
_ADV_COMPONENT_GROUPS = [334, 964]
_CAPITAL_COMPONENT_GROUPS = [873]
_STRUCTURE_GROUPS = [1312, 1404, 1406, 1657]

# Engineering rig group -> product groups it applies to (ME and TE variants share a list).
RIG_TO_PRODUCT_GROUPS: dict[int, frozenset[int]] = {
    1816: frozenset(_MODULE_GROUPS),
    1819: frozenset(_MODULE_GROUPS),
    1820: frozenset(_AMMO_GROUPS),
    1821: frozenset(_AMMO_GROUPS),
    1822: frozenset(_DRONE_GROUPS),
    1823: frozenset(_DRONE_GROUPS),
    1824: frozenset(_BASIC_SMALL_SHIP_GROUPS),
    1825: frozenset(_BASIC_SMALL_SHIP_GROUPS),
    1826: frozenset(_BASIC_MEDIUM_SHIP_GROUPS),
    1827: frozenset(_BASIC_MEDIUM_SHIP_GROUPS),
    1828: frozenset(_BASIC_LARGE_SHIP_GROUPS),
    1829: frozenset(_BASIC_LARGE_SHIP_GROUPS),
    1830: frozenset(_ADV_SMALL_SHIP_GROUPS),
    1831: frozenset(_ADV_SMALL_SHIP_GROUPS),
    1832: frozenset(_ADV_MEDIUM_SHIP_GROUPS),
    1833: frozenset(_ADV_MEDIUM_SHIP_GROUPS),
    1834: frozenset(_ADV_LARGE_SHIP_GROUPS),
    1835: frozenset(_ADV_LARGE_SHIP_GROUPS),
    1836: frozenset(_ADV_COMPONENT_GROUPS),
    1837: frozenset(_ADV_COMPONENT_GROUPS),
    1838: frozenset(_CAPITAL_COMPONENT_GROUPS),
    1839: frozenset(_CAPITAL_COMPONENT_GROUPS),
    1840: frozenset(_STRUCTURE_GROUPS),
    1841: frozenset(_STRUCTURE_GROUPS),
    # Large (L-Set) variants
    1843: frozenset(_MODULE_GROUPS),
    1844: frozenset(_MODULE_GROUPS),
    1845: frozenset(_AMMO_GROUPS),
    1846: frozenset(_AMMO_GROUPS),
}


def security_multiplier(security_status: Optional[float]) -> float:
    sec = _DEFAULT_SECURITY_STATUS if security_status is None else float(security_status)
    if sec >= 0.5:
        return SECURITY_MULTIPLIER_HIGH_SEC
    if sec > 0.0:
        return SECURITY_MULTIPLIER_LOW_SEC
    return SECURITY_MULTIPLIER_NULL_WH


def rig_affects_product(rig_group_id: Optional[int], product_group_id: Optional[int]) -> bool:
    if rig_group_id is None or product_group_id is None:
        return False
    return int(product_group_id) in RIG_TO_PRODUCT_GROUPS.get(int(rig_group_id), frozenset())


def rig_bonuses_from_attributes(attr_map: dict[int, float]) -> dict[str, float]:
    """Return raw percent bonuses; negative values are reductions (e.g. -2.0 == 2% less)."""

    def _get(aid: int) -> float:
        try:
            return float(attr_map.get(aid, 0.0) or 0.0)
        except (TypeError, ValueError):
            return 0.0

    return {
        "material_bonus": _get(_RIG_ATTR_MATERIAL_REDUCTION),
        "time_bonus": _get(_RIG_ATTR_TIME_REDUCTION),
        "cost_bonus": _get(_RIG_ATTR_COST_REDUCTION),
    }


def compute_rig_bonus_percent(
    *,
    rigs_payload: Iterable[dict[str, Any]],
    product_group_id: Optional[int],
    security_status: Optional[float],
    metric: str = "material",
) -> float:
    """Sum the applicable rigs' bonus for one metric, scaled by the security tier.

    Each payload row carries `group_id` and `material_bonus`/`time_bonus`/`cost_bonus`.
    Rigs whose group does not cover `product_group_id` contribute nothing.
    """

    if product_group_id is None:
        return 0.0

    key = f"{metric}_bonus"
    mult = security_multiplier(security_status)

    total = 0.0
    for rig in rigs_payload or []:
        if not isinstance(rig, dict):
            continue
        if not rig_affects_product(rig.get("group_id"), product_group_id):
            continue
        try:
            total += float(rig.get(key) or 0.0) * mult
        except (TypeError, ValueError):
            continue
    return total


# Refinery reaction rigs carry their own dogma attributes and apply to every
# reaction formula; the security tiers are flatter than for engineering rigs.
_REACTION_RIG_ATTR_TIME_REDUCTION = 2713
_REACTION_RIG_ATTR_MATERIAL_REDUCTION = 2714

REACTION_RIG_BONUS_ATTRIBUTE_IDS = (_REACTION_RIG_ATTR_TIME_REDUCTION, _REACTION_RIG_ATTR_MATERIAL_REDUCTION)

REACTION_SECURITY_MULTIPLIER_HIGH_LOW_SEC = 1.0
REACTION_SECURITY_MULTIPLIER_NULL_WH = 1.1


def reaction_security_multiplier(security_status: Optional[float]) -> float:
    sec = _DEFAULT_SECURITY_STATUS if security_status is None else float(security_status)
    if sec > 0.0:
        return REACTION_SECURITY_MULTIPLIER_HIGH_LOW_SEC
    return REACTION_SECURITY_MULTIPLIER_NULL_WH


def reaction_rig_bonuses_from_attributes(attr_map: dict[int, float]) -> dict[str, float]:
    def _get(aid: int) -> float:
        try:
            return float(attr_map.get(aid, 0.0) or 0.0)
        except (TypeError, ValueError):
            return 0.0

    return {
        "reaction_material_bonus": _get(_REACTION_RIG_ATTR_MATERIAL_REDUCTION),
        "reaction_time_bonus": _get(_REACTION_RIG_ATTR_TIME_REDUCTION),
    }


def compute_reaction_rig_bonus_percent(
    *,
    rigs_payload: Iterable[dict[str, Any]],
    security_status: Optional[float],
    metric: str = "material",
) -> float:
    """Sum `reaction_<metric>_bonus` over the rigs, scaled by the reaction security tier.

    Engineering rigs have no reaction attributes and so contribute nothing.
    """

    key = f"reaction_{metric}_bonus"
    mult = reaction_security_multiplier(security_status)

    total = 0.0
    for rig in rigs_payload or []:
        if not isinstance(rig, dict):
            continue
        try:
            total += float(rig.get(key) or 0.0) * mult
        except (TypeError, ValueError):
            continue
    return total
