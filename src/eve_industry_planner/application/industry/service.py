from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from eve_industry_planner.application.errors import ServiceError
from eve_industry_planner.application.industry.bom import BomExpander, ExpansionRequest, OwnerContextLike
from eve_industry_planner.application.industry.decryptor_optimizer import DecryptorOptimizer
from eve_industry_planner.application.industry.pricing import BlueprintPricing, MarketPrices
from eve_industry_planner.application.industry.reactions import ReactionExpander
from eve_industry_planner.config.settings import PlannerSettings, get_settings
from eve_industry_planner.domain.facility_profile import FacilityProfile
from eve_industry_planner.domain.invention import DecryptorSearch, InventionJob, InventionSkills
from eve_industry_planner.domain.recipes import ExpansionResult
from eve_industry_planner.infrastructure.catalog import CatalogGateway, CatalogLookup


def _positive_int(value: Any, *, name: str) -> int:
    try:
        i = int(value)
    except (TypeError, ValueError):
        raise ServiceError(f"{name} must be an integer", status_code=400)
    if i < 1:
        raise ServiceError(f"{name} must be at least 1", status_code=400)
    return i


class IndustryPlanningService:
    """Entry point for manufacturing, reaction and invention planning.

    Collaborators are injected: the catalog, the owner context used for
    sub-blueprint ME, and optionally pricing calculators (manufacturing and
    reaction cost indices differ) with market prices.
    """

    def __init__(
        self,
        catalog: CatalogLookup,
        *,
        owned_blueprints: OwnerContextLike = None,
        pricing: BlueprintPricing | None = None,
        reaction_pricing: BlueprintPricing | None = None,
        prices: MarketPrices | None = None,
        settings: PlannerSettings | None = None,
        accounting_level: int = 0,
        broker_relations_level: int = 0,
    ):
        self._catalog = catalog
        self._settings = settings or get_settings()
        self._pricing = pricing
        self._reaction_pricing = reaction_pricing
        self._prices = prices
        self._accounting_level = int(accounting_level or 0)
        self._broker_relations_level = int(broker_relations_level or 0)
        self._expander = BomExpander(catalog, owned_blueprints, self._settings)
        self._optimizer = DecryptorOptimizer(catalog, self._settings)
        self._reactions = ReactionExpander(catalog, self._settings)

    def expand(
        self,
        recipe_id: int,
        runs: int,
        efficiency_level: int,
        owner_context: OwnerContextLike = None,
        facility: Optional[FacilityProfile] = None,
    ) -> ExpansionResult:
        n_runs = _positive_int(runs, name="runs")
        result = self._expander.expand(
            int(recipe_id),
            n_runs,
            efficiency_level,
            facility,
            owner_context=owner_context,
        )
        if not result.found:
            logging.info("Blueprint %s could not be expanded: %s", recipe_id, result.error)
            return result

        if self._pricing is None or facility is None or facility.system_id is None:
            return result
        gateway = CatalogGateway(self._catalog)
        recipe_materials = gateway.recipe_materials(int(recipe_id)).value
        return self._with_pricing(self._pricing, recipe_materials, n_runs, facility, result, gateway)

    def expand_many(self, requests: list[ExpansionRequest], max_workers: int | None = None) -> list[ExpansionResult]:
        for req in requests:
            _positive_int(req.runs, name="runs")
        return self._expander.expand_many(requests, max_workers=max_workers)

    def expand_reaction(
        self,
        formula_id: int,
        runs: int,
        facility: Optional[FacilityProfile] = None,
    ) -> ExpansionResult:
        n_runs = _positive_int(runs, name="runs")
        result = self._reactions.expand(int(formula_id), n_runs, facility)
        if not result.found:
            logging.info("Reaction %s could not be expanded: %s", formula_id, result.error)
            return result

        if self._reaction_pricing is None or facility is None or facility.system_id is None:
            return result
        gateway = CatalogGateway(self._catalog)
        formula_materials = gateway.reaction_materials(int(formula_id)).value
        # Refineries have no job cost bonus.
        refinery = replace(facility, structure_cost_bonus=None)
        return self._with_pricing(self._reaction_pricing, formula_materials, n_runs, refinery, result, gateway)

    def _with_pricing(
        self,
        pricing: BlueprintPricing,
        recipe_materials: list,
        runs: int,
        facility: FacilityProfile,
        result: ExpansionResult,
        gateway: CatalogGateway,
    ) -> ExpansionResult:
        prices = self._prices or MarketPrices(adjusted={}, sell={}, buy={})

        report = pricing.price(
            result.materials,
            result.product,
            facility,
            runs,
            recipe_materials,
            prices.adjusted,
            prices.sell,
            prices.buy,
            accounting_level=self._accounting_level,
            broker_relations_level=self._broker_relations_level,
        )
        return replace(result, pricing=report, failures=result.failures + gateway.failures)

    def invention_job(self, blueprint_type_id: int) -> InventionJob:
        getter = getattr(self._catalog, "get_invention_job", None)
        job = getter(int(blueprint_type_id)) if callable(getter) else None
        if job is None:
            raise ServiceError(f"Blueprint {blueprint_type_id} has no invention activity", status_code=404)
        return job

    def find_best_decryptor(
        self,
        job: InventionJob,
        material_prices: Mapping[int, float] | None,
        skills: InventionSkills | None,
        facility: Optional[FacilityProfile] = None,
    ) -> DecryptorSearch:
        # The invention fee is a flat fraction of material cost, so the
        # facility does not change the ranking.
        if facility is not None:
            logging.debug("Facility %s ignored for decryptor ranking", facility.identity())
        return self._optimizer.find_best(job, material_prices, skills)
