from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

from eve_industry_planner.application.industry.bom import CATALOG_UNAVAILABLE
from eve_industry_planner.application.industry.bonuses import reaction_quantity, reaction_time
from eve_industry_planner.config.settings import PlannerSettings, get_settings
from eve_industry_planner.domain.facility_profile import FacilityProfile
from eve_industry_planner.domain.recipes import (
    AggregateMaterials,
    ExpansionResult,
    IntermediateComponent,
    MaterialLine,
    ProducedItem,
    ProductionNode,
    merge_materials,
)
from eve_industry_planner.infrastructure.catalog import CatalogGateway, ReactionLookup

FORMULA_NOT_FOUND = "reaction formula not found"


@dataclass
class _ReactionScope:
    gateway: CatalogGateway
    memo: Optional[dict[tuple, ExpansionResult]]


class ReactionExpander:
    """Recursive expansion of reaction formulas down to moon materials and gas.

    Intermediate reaction products are always expanded. A sub-formula runs
    often enough to cover the quantity needed, so it may overproduce
    (e.g. 100 units from a formula yielding 200 per run is one run).
    """

    def __init__(self, catalog: ReactionLookup, settings: PlannerSettings | None = None, *, memoize: bool = True):
        self._catalog = catalog
        self._settings = settings or get_settings()
        self._memoize = bool(memoize)

    @property
    def max_depth(self) -> int:
        return int(self._settings.max_recursion_depth)

    def expand(
        self,
        formula_id: int,
        runs: int,
        facility: Optional[FacilityProfile] = None,
        depth: int = 0,
    ) -> ExpansionResult:
        scope = _ReactionScope(gateway=CatalogGateway(self._catalog), memo={} if self._memoize else None)
        result = self._expand(scope, int(formula_id), runs, facility, int(depth))
        return replace(result, failures=scope.gateway.failures)

    def _expand(
        self,
        scope: _ReactionScope,
        formula_id: int,
        runs: int,
        facility: Optional[FacilityProfile],
        depth: int,
    ) -> ExpansionResult:
        if depth > self.max_depth:
            logging.warning(
                "Max recursion depth %s exceeded at reaction %s; abandoning this branch",
                self.max_depth,
                formula_id,
            )
            return ExpansionResult()

        n_runs = max(0, int(runs or 0))
        memo_key = (formula_id, n_runs, facility.identity() if facility is not None else None)
        if scope.memo is not None and memo_key in scope.memo:
            return scope.memo[memo_key]

        gw = scope.gateway
        product_res = gw.reaction_product(formula_id)
        product = product_res.value
        if product is None:
            return ExpansionResult(error=FORMULA_NOT_FOUND if product_res.ok else CATALOG_UNAVAILABLE)

        materials = gw.reaction_materials(formula_id).value

        rig_material_bonus = 0.0
        rig_time_bonus = 0.0
        if facility is not None and facility.has_rigs:
            rig_material_bonus = gw.reaction_rig_bonus(facility.rigs, facility.security_status, "material").value
            rig_time_bonus = gw.reaction_rig_bonus(facility.rigs, facility.security_status, "time").value

        aggregate: AggregateMaterials = {}
        raw_lines: list[MaterialLine] = []
        components: list[IntermediateComponent] = []

        for mat in materials:
            qty = reaction_quantity(mat.base_quantity, n_runs, facility, rig_material_bonus)
            if qty <= 0:
                continue

            name = gw.item_name(mat.material_id)
            sub_formula_id = gw.reaction_for_product(mat.material_id).value

            if sub_formula_id is None:
                aggregate[int(mat.material_id)] = aggregate.get(int(mat.material_id), 0) + qty
                raw_lines.append(MaterialLine(material_id=int(mat.material_id), name=name, quantity=qty))
                continue

            sub_product = gw.reaction_product(sub_formula_id).value
            per_run = int(sub_product.output_quantity) if sub_product is not None else 1
            sub_runs = int(math.ceil(qty / max(1, per_run)))

            sub = self._expand(scope, int(sub_formula_id), sub_runs, facility, depth + 1)
            if sub.error is not None:
                logging.warning(
                    "Reaction %s for material %s could not be expanded (%s); it contributes no materials",
                    sub_formula_id,
                    mat.material_id,
                    sub.error,
                )
            merge_materials(aggregate, sub.materials)
            components.append(
                IntermediateComponent(
                    material_id=int(mat.material_id),
                    name=name,
                    quantity=qty,
                    recipe_id=int(sub_formula_id),
                    recipe_name=gw.item_name(sub_formula_id),
                    efficiency_level=0,
                    sub_materials=dict(sub.materials),
                    node=sub.breakdown,
                    error=sub.error,
                )
            )

        produced = ProducedItem(
            type_id=int(product.output_id),
            name=gw.item_name(product.output_id),
            quantity=int(product.output_quantity) * n_runs,
        )
        node = ProductionNode(
            recipe_id=formula_id,
            recipe_name=gw.item_name(formula_id),
            runs=n_runs,
            efficiency_level=0,
            product=produced,
            raw_materials=tuple(raw_lines),
            intermediate_components=tuple(components),
            time_seconds=reaction_time(gw.reaction_time(formula_id).value, n_runs, facility, rig_time_bonus),
        )
        result = ExpansionResult(materials=aggregate, breakdown=node, product=produced)

        if scope.memo is not None:
            scope.memo[memo_key] = result
        return result
