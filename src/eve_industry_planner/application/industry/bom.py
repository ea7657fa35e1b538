from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Protocol, Union

from eve_industry_planner.application.industry.bonuses import adjusted_quantity, clamp_efficiency_level
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
from eve_industry_planner.infrastructure.catalog import CatalogGateway, CatalogLookup

RECIPE_NOT_FOUND = "recipe not found"
CATALOG_UNAVAILABLE = "catalog lookup failed"


class OwnerContext(Protocol):
    def efficiency_for(self, blueprint_type_id: int) -> int: ...


OwnerContextLike = Union[OwnerContext, Mapping[int, int], None]


def _efficiency_from_owner(owner: OwnerContextLike, recipe_id: int) -> int:
    if owner is None:
        return 0
    try:
        if isinstance(owner, Mapping):
            return clamp_efficiency_level(owner.get(int(recipe_id), 0))
        return clamp_efficiency_level(owner.efficiency_for(int(recipe_id)))
    except Exception:
        logging.warning("Owner context lookup failed for blueprint %s; assuming ME 0", recipe_id, exc_info=True)
        return 0


@dataclass(frozen=True)
class ExpansionRequest:
    recipe_id: int
    runs: int = 1
    efficiency_level: int = 0
    facility: Optional[FacilityProfile] = None
    owner_context: Any = None


@dataclass
class _RequestScope:
    gateway: CatalogGateway
    owner: OwnerContextLike
    memo: Optional[dict[tuple, ExpansionResult]]


class BomExpander:
    """Recursive bill-of-materials expansion.

    Every call to `expand` is one request with its own catalog gateway (for
    failure tracking) and, when enabled, its own memo table. Nothing mutable is
    shared between requests, so one expander can serve several threads.
    """

    def __init__(
        self,
        catalog: CatalogLookup,
        owned_blueprints: OwnerContextLike = None,
        settings: PlannerSettings | None = None,
        *,
        memoize: bool = True,
    ):
        self._catalog = catalog
        self._owned_blueprints = owned_blueprints
        self._settings = settings or get_settings()
        self._memoize = bool(memoize)

    @property
    def max_depth(self) -> int:
        return int(self._settings.max_recursion_depth)

    def expand(
        self,
        recipe_id: int,
        runs: int,
        efficiency_level: int,
        facility: Optional[FacilityProfile] = None,
        depth: int = 0,
        *,
        owner_context: OwnerContextLike = None,
    ) -> ExpansionResult:
        scope = _RequestScope(
            gateway=CatalogGateway(self._catalog),
            owner=owner_context if owner_context is not None else self._owned_blueprints,
            memo={} if self._memoize else None,
        )
        result = self._expand(scope, int(recipe_id), runs, efficiency_level, facility, int(depth))
        return replace(result, failures=scope.gateway.failures)

    def expand_many(
        self,
        requests: Iterable[ExpansionRequest],
        max_workers: int | None = None,
    ) -> list[ExpansionResult]:
        """Expand independent requests concurrently; results keep request order."""

        items = list(requests)
        if not items:
            return []
        workers = max(1, int(max_workers or self._settings.batch_workers))

        def _run(req: ExpansionRequest) -> ExpansionResult:
            return self.expand(
                req.recipe_id,
                req.runs,
                req.efficiency_level,
                req.facility,
                owner_context=req.owner_context,
            )

        with ThreadPoolExecutor(max_workers=min(workers, len(items))) as pool:
            return list(pool.map(_run, items))

    def _expand(
        self,
        scope: _RequestScope,
        recipe_id: int,
        runs: int,
        efficiency_level: int,
        facility: Optional[FacilityProfile],
        depth: int,
    ) -> ExpansionResult:
        if depth > self.max_depth:
            logging.warning(
                "Max recursion depth %s exceeded at blueprint %s; abandoning this branch",
                self.max_depth,
                recipe_id,
            )
            return ExpansionResult()

        n_runs = max(0, int(runs or 0))
        me = clamp_efficiency_level(efficiency_level)

        memo_key = (recipe_id, n_runs, me, facility.identity() if facility is not None else None)
        if scope.memo is not None and memo_key in scope.memo:
            return scope.memo[memo_key]

        gw = scope.gateway
        product_res = gw.recipe_product(recipe_id)
        product = product_res.value
        if product is None:
            return ExpansionResult(error=RECIPE_NOT_FOUND if product_res.ok else CATALOG_UNAVAILABLE)

        materials = gw.recipe_materials(recipe_id).value

        # Rig applicability depends on what this node produces; resolve once.
        output_group_id: Optional[int] = None
        rig_bonus = 0.0
        if facility is not None and facility.has_rigs:
            output_group_id = gw.item_group(product.output_id).value
            if output_group_id is not None:
                rig_bonus = gw.module_bonus(facility.rigs, output_group_id, facility.security_status).value

        aggregate: AggregateMaterials = {}
        raw_lines: list[MaterialLine] = []
        components: list[IntermediateComponent] = []

        for mat in materials:
            qty = adjusted_quantity(
                mat.base_quantity,
                me,
                n_runs,
                facility,
                output_group_id,
                rig_bonus,
                structure_reduction_rate=self._settings.structure_material_reduction,
            )
            if qty <= 0:
                continue

            name = gw.item_name(mat.material_id)
            sub_recipe_id = gw.recipe_for_product(mat.material_id).value

            if sub_recipe_id is not None:
                sub_me = _efficiency_from_owner(scope.owner, int(sub_recipe_id))
                sub = self._expand(scope, int(sub_recipe_id), qty, sub_me, facility, depth + 1)
                if sub.error is not None:
                    logging.warning(
                        "Blueprint %s for material %s could not be expanded (%s); it contributes no materials",
                        sub_recipe_id,
                        mat.material_id,
                        sub.error,
                    )
                # A material with a producing recipe is never raw, even when that recipe is unusable.
                merge_materials(aggregate, sub.materials)
                components.append(
                    IntermediateComponent(
                        material_id=int(mat.material_id),
                        name=name,
                        quantity=qty,
                        recipe_id=int(sub_recipe_id),
                        recipe_name=gw.item_name(sub_recipe_id),
                        efficiency_level=sub_me,
                        sub_materials=dict(sub.materials),
                        node=sub.breakdown,
                        error=sub.error,
                    )
                )
                continue

            aggregate[int(mat.material_id)] = aggregate.get(int(mat.material_id), 0) + qty
            raw_lines.append(MaterialLine(material_id=int(mat.material_id), name=name, quantity=qty))

        produced = ProducedItem(
            type_id=int(product.output_id),
            name=gw.item_name(product.output_id),
            quantity=int(product.output_quantity) * n_runs,
        )
        node = ProductionNode(
            recipe_id=recipe_id,
            recipe_name=gw.item_name(recipe_id),
            runs=n_runs,
            efficiency_level=me,
            product=produced,
            raw_materials=tuple(raw_lines),
            intermediate_components=tuple(components),
        )
        result = ExpansionResult(materials=aggregate, breakdown=node, product=produced)

        if scope.memo is not None:
            scope.memo[memo_key] = result
        return result
