from __future__ import annotations

from typing import Callable, Mapping, Optional

import pandas as pd

from eve_industry_planner.domain.invention import DecryptorSearch
from eve_industry_planner.domain.recipes import ExpansionResult, ProductionNode

MATERIAL_COLUMNS = ["Type ID", "Material", "Quantity"]
BUILD_TREE_COLUMNS = ["Depth", "Blueprint", "Product", "Runs", "ME", "Quantity"]
DECRYPTOR_COLUMNS = [
    "Decryptor",
    "Probability",
    "Runs / BPC",
    "ME",
    "TE",
    "Cost / Attempt",
    "Cost / Success",
    "Cost / Run",
    "Best",
]


def materials_frame(
    result: ExpansionResult,
    name_for: Optional[Callable[[int], str]] = None,
    prices: Mapping[int, float] | None = None,
) -> pd.DataFrame:
    """Aggregate raw materials, largest quantity first."""

    rows = []
    for type_id, qty in result.materials.items():
        rows.append({
            "Type ID": int(type_id),
            "Material": name_for(int(type_id)) if name_for else f"Type {type_id}",
            "Quantity": int(qty),
        })
    df = pd.DataFrame(rows, columns=MATERIAL_COLUMNS)
    if df.empty:
        return df

    if prices:
        df["Unit Price"] = df["Type ID"].map(lambda t: prices.get(int(t)))
        df["Total (ISK)"] = df["Unit Price"].fillna(0.0) * df["Quantity"]

    return df.sort_values(["Quantity", "Type ID"], ascending=[False, True]).reset_index(drop=True)


def build_tree_frame(node: Optional[ProductionNode]) -> pd.DataFrame:
    """One row per production step, depth first."""

    rows: list[dict] = []

    def _walk(n: ProductionNode, depth: int) -> None:
        rows.append({
            "Depth": depth,
            "Blueprint": n.recipe_name,
            "Product": n.product.name,
            "Runs": n.runs,
            "ME": n.efficiency_level,
            "Quantity": n.product.quantity,
        })
        for comp in n.intermediate_components:
            if comp.node is not None:
                _walk(comp.node, depth + 1)

    if node is not None:
        _walk(node, 0)
    return pd.DataFrame(rows, columns=BUILD_TREE_COLUMNS)


def decryptor_frame(search: DecryptorSearch) -> pd.DataFrame:
    rows = []
    for opt in search.all_options:
        rows.append({
            "Decryptor": opt.name,
            "Probability": round(opt.probability * 100.0, 2),
            "Runs / BPC": opt.output_runs_per_unit,
            "ME": opt.invented_efficiency_level,
            "TE": opt.invented_speed_level,
            "Cost / Attempt": opt.total_per_attempt,
            "Cost / Success": opt.cost_per_success,
            "Cost / Run": opt.cost_per_output_unit,
            "Best": opt is search.best,
        })
    return pd.DataFrame(rows, columns=DECRYPTOR_COLUMNS)
