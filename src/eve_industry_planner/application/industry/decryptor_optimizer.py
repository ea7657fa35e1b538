from __future__ import annotations

import logging
from typing import Mapping

from eve_industry_planner.application.industry.invention import _finite, evaluate_cost, evaluate_probability
from eve_industry_planner.config.settings import PlannerSettings, get_settings
from eve_industry_planner.domain.invention import (
    DecryptorChoice,
    DecryptorSearch,
    InventionJob,
    InventionOutcome,
    InventionSkills,
    NoDecryptor,
)
from eve_industry_planner.infrastructure.catalog import CatalogGateway, CatalogLookup


class DecryptorOptimizer:
    """Pick the decryptor (or none) with the lowest cost per invented run."""

    def __init__(self, catalog: CatalogLookup, settings: PlannerSettings | None = None):
        self._catalog = catalog
        self._settings = settings or get_settings()

    def find_best(
        self,
        job: InventionJob,
        material_prices: Mapping[int, float] | None,
        skills: InventionSkills | None,
    ) -> DecryptorSearch:
        prices = material_prices or {}
        rate = self._settings.invention_job_cost_rate

        def _outcome(choice) -> InventionOutcome:
            p = evaluate_probability(job.base_probability, skills, choice.probability_multiplier)
            return evaluate_cost(job, prices, p, choice, job_cost_rate=rate)

        baseline = _outcome(NoDecryptor())
        options: list[InventionOutcome] = [baseline]
        best = baseline

        catalysts = CatalogGateway(self._catalog).all_catalysts()
        if not catalysts.ok:
            logging.warning("Decryptor catalog unavailable; only the no-decryptor option is evaluated")

        for decryptor in catalysts.value:
            # Unpriced decryptors are costed at 0, which favours them.
            price = _finite(prices.get(int(decryptor.id)))
            outcome = _outcome(DecryptorChoice(decryptor=decryptor, price=price))
            options.append(outcome)
            if outcome.cost_per_output_unit < best.cost_per_output_unit:
                best = outcome

        return DecryptorSearch(best=best, no_catalyst=baseline, all_options=tuple(options))
