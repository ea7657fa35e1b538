from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

from eve_industry_planner.config.settings import PlannerSettings, get_settings
from eve_industry_planner.domain.facility_profile import FacilityProfile
from eve_industry_planner.domain.recipes import AggregateMaterials, ProducedItem, RecipeMaterial

# Percent rates, as the game client displays them.
BASE_BROKER_FEE_PERCENT = 3.0
BROKER_FEE_REDUCTION_PER_LEVEL = 0.3
BASE_SALES_TAX_PERCENT = 7.5
SALES_TAX_REDUCTION_PER_LEVEL = 11.0
NPC_STATION_FACILITY_TAX_PERCENT = 0.25


def _f(v: Any) -> float:
    try:
        return float(v or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _level(v: Any) -> int:
    try:
        return max(0, min(int(v or 0), 5))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class JobCostBreakdown:
    estimated_item_value: float = 0.0
    system_cost_index: float = 0.0
    job_gross_cost: float = 0.0
    structure_cost_bonus: float = 0.0
    job_base_cost: float = 0.0
    facility_tax_rate: float = 0.0
    facility_tax: float = 0.0
    scc_surcharge: float = 0.0
    total_job_cost: float = 0.0


@dataclass(frozen=True)
class TaxesBreakdown:
    broker_fee_rate: float
    material_broker_fee: float
    sales_tax_rate: float
    product_sales_tax: float
    product_broker_fee: float

    @property
    def total_taxes(self) -> float:
        return self.material_broker_fee + self.product_sales_tax + self.product_broker_fee


@dataclass(frozen=True)
class PricingReport:
    input_cost: float
    output_value: float
    job: JobCostBreakdown
    taxes: TaxesBreakdown
    total_costs: float
    profit: float
    profit_margin: float
    missing_prices: tuple[int, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_cost": self.input_cost,
            "output_value": self.output_value,
            "job_cost": asdict(self.job),
            "taxes": {**asdict(self.taxes), "total_taxes": self.taxes.total_taxes},
            "total_costs": self.total_costs,
            "profit": self.profit,
            "profit_margin": self.profit_margin,
            "missing_prices": list(self.missing_prices),
        }


class BlueprintPricing:
    """Cost/profit report for one manufacturing or reaction expansion.

    `cost_indices` maps solar system id -> system cost index for the activity
    (a fraction, e.g. 0.0512). Prices are caller-supplied; the report never
    fetches anything.
    """

    def __init__(self, cost_indices: Mapping[int, float] | None = None, settings: PlannerSettings | None = None):
        self._cost_indices = {int(k): _f(v) for k, v in (cost_indices or {}).items()}
        self._settings = settings or get_settings()

    def system_cost_index(self, system_id: Optional[int]) -> float:
        if system_id is None:
            return 0.0
        return self._cost_indices.get(int(system_id), 0.0)

    def job_cost(
        self,
        recipe_materials: Iterable[RecipeMaterial],
        runs: int,
        facility: Optional[FacilityProfile],
        adjusted_prices: Mapping[int, float] | None,
    ) -> JobCostBreakdown:
        """Manufacturing installation fee.

        EIV comes from the recipe's base quantities at ME 0 and adjusted
        prices. Gross cost is EIV x cost index, reduced by the structure cost
        bonus; facility tax and the SCC surcharge apply to EIV directly.
        """

        ci = self.system_cost_index(facility.system_id if facility is not None else None)
        if ci <= 0:
            return JobCostBreakdown()

        adjusted = adjusted_prices or {}
        eiv = 0.0
        for mat in recipe_materials or ():
            price = adjusted.get(int(mat.material_id))
            if price is None:
                # Items without an adjusted price are excluded from EIV.
                continue
            eiv += _f(price) * max(0, int(mat.base_quantity)) * max(0, int(runs))

        structure_bonus = 0.0
        facility_tax_rate = NPC_STATION_FACILITY_TAX_PERCENT
        if facility is not None:
            structure_bonus = _f(facility.structure_cost_bonus)
            if facility.facility_tax is not None:
                facility_tax_rate = _f(facility.facility_tax)
            elif facility.has_structure:
                facility_tax_rate = 0.0

        gross = eiv * ci
        base = gross * (1.0 - structure_bonus / 100.0)
        facility_tax = eiv * facility_tax_rate / 100.0
        scc = eiv * self._settings.scc_surcharge_rate

        return JobCostBreakdown(
            estimated_item_value=eiv,
            system_cost_index=ci,
            job_gross_cost=gross,
            structure_cost_bonus=structure_bonus,
            job_base_cost=base,
            facility_tax_rate=facility_tax_rate,
            facility_tax=facility_tax,
            scc_surcharge=scc,
            total_job_cost=max(0.0, base + facility_tax + scc),
        )

    @staticmethod
    def taxes(
        materials_cost: float,
        output_value: float,
        *,
        accounting_level: int = 0,
        broker_relations_level: int = 0,
    ) -> TaxesBreakdown:
        broker_rate = BASE_BROKER_FEE_PERCENT - _level(broker_relations_level) * BROKER_FEE_REDUCTION_PER_LEVEL
        sales_rate = BASE_SALES_TAX_PERCENT * (1.0 - _level(accounting_level) * SALES_TAX_REDUCTION_PER_LEVEL / 100.0)
        return TaxesBreakdown(
            broker_fee_rate=broker_rate,
            material_broker_fee=_f(materials_cost) * broker_rate / 100.0,
            sales_tax_rate=sales_rate,
            product_sales_tax=_f(output_value) * sales_rate / 100.0,
            product_broker_fee=_f(output_value) * broker_rate / 100.0,
        )

    def price(
        self,
        materials: AggregateMaterials,
        product: Optional[ProducedItem],
        facility: Optional[FacilityProfile] = None,
        runs: int = 1,
        recipe_materials: Iterable[RecipeMaterial] = (),
        adjusted_prices: Mapping[int, float] | None = None,
        sell_prices: Mapping[int, float] | None = None,
        buy_prices: Mapping[int, float] | None = None,
        *,
        accounting_level: int = 0,
        broker_relations_level: int = 0,
    ) -> PricingReport:
        buy = buy_prices or {}
        sell = sell_prices or {}

        missing: list[int] = []
        input_cost = 0.0
        for type_id, qty in (materials or {}).items():
            price = buy.get(int(type_id))
            if price is None:
                missing.append(int(type_id))
                continue
            input_cost += _f(price) * int(qty)
        if missing:
            logging.info("No buy price for %s material(s); counted as free: %s", len(missing), sorted(missing))

        output_value = 0.0
        if product is not None:
            output_value = _f(sell.get(int(product.type_id))) * int(product.quantity)

        job = self.job_cost(recipe_materials, runs, facility, adjusted_prices)
        taxes = self.taxes(
            input_cost,
            output_value,
            accounting_level=accounting_level,
            broker_relations_level=broker_relations_level,
        )

        total_costs = input_cost + job.total_job_cost + taxes.total_taxes
        profit = output_value - total_costs
        margin = (profit / output_value) * 100.0 if output_value > 0 else 0.0

        return PricingReport(
            input_cost=input_cost,
            output_value=output_value,
            job=job,
            taxes=taxes,
            total_costs=total_costs,
            profit=profit,
            profit_margin=margin,
            missing_prices=tuple(sorted(missing)),
        )


def _price_map(raw: Any) -> dict[int, float]:
    out: dict[int, float] = {}
    if not isinstance(raw, dict):
        return out
    for k, v in raw.items():
        try:
            out[int(k)] = float(v)
        except (TypeError, ValueError):
            continue
    return out


@dataclass(frozen=True)
class MarketPrices:
    """Caller-supplied price maps (type id -> ISK per unit)."""

    adjusted: Mapping[int, float]
    sell: Mapping[int, float]
    buy: Mapping[int, float]

    @staticmethod
    def from_dict(data: Dict[str, Any] | None) -> "MarketPrices":
        """Accepts {"adjusted": {...}, "sell": {...}, "buy": {...}}.

        A flat {type_id: price} map is used for all three.
        """

        data = data or {}
        if not any(k in data for k in ("adjusted", "sell", "buy")):
            flat = _price_map(data)
            return MarketPrices(adjusted=flat, sell=flat, buy=flat)
        return MarketPrices(
            adjusted=_price_map(data.get("adjusted")),
            sell=_price_map(data.get("sell")),
            buy=_price_map(data.get("buy")),
        )
