from __future__ import annotations

from typing import Any, Iterable

from eve_industry_planner.domain.recipes import RecipeMaterial, RecipeProduct
from eve_industry_planner.infrastructure.sde.models import Blueprints


def _parse_rows(rows: Any, *, value_key: str) -> list[tuple[int, Any]]:
    out: list[tuple[int, Any]] = []
    if not isinstance(rows, list):
        return out
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            type_id = int(row.get("typeID"))
        except (TypeError, ValueError):
            continue
        if type_id <= 0:
            continue
        out.append((type_id, row.get(value_key)))
    return out


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _invention_probability(invention: dict) -> float | None:
    prob = invention.get("probability")
    if prob is None:
        # Some SDE exports store invention chance on the product entry instead of
        # as a top-level invention.probability.
        for row in invention.get("products") or []:
            if isinstance(row, dict) and row.get("probability") is not None:
                prob = row.get("probability")
                break
    try:
        return float(prob) if prob is not None else None
    except (TypeError, ValueError):
        return None


def parse_blueprint_activities(bp: Any) -> dict[str, Any]:
    """Turn one `blueprints` row into manufacturing, invention and reaction recipe parts."""

    activities = bp.activities if isinstance(getattr(bp, "activities", None), dict) else {}
    manufacturing = activities.get("manufacturing") if isinstance(activities.get("manufacturing"), dict) else {}
    invention = activities.get("invention") if isinstance(activities.get("invention"), dict) else {}
    reaction = activities.get("reaction") if isinstance(activities.get("reaction"), dict) else {}

    mfg_materials = [
        RecipeMaterial(material_id=tid, base_quantity=max(0, _as_int(qty)))
        for tid, qty in _parse_rows(manufacturing.get("materials"), value_key="quantity")
    ]
    mfg_products = [
        RecipeProduct(output_id=tid, output_quantity=_as_int(qty))
        for tid, qty in _parse_rows(manufacturing.get("products"), value_key="quantity")
        if _as_int(qty) > 0
    ]

    inv_materials = [
        RecipeMaterial(material_id=tid, base_quantity=max(0, _as_int(qty)))
        for tid, qty in _parse_rows(invention.get("materials"), value_key="quantity")
    ]
    inv_products = [
        RecipeProduct(output_id=tid, output_quantity=_as_int(qty))
        for tid, qty in _parse_rows(invention.get("products"), value_key="quantity")
        if _as_int(qty) > 0
    ]
    inv_skills = [(tid, _as_int(lvl, 1)) for tid, lvl in _parse_rows(invention.get("skills"), value_key="level")]

    rx_materials = [
        RecipeMaterial(material_id=tid, base_quantity=max(0, _as_int(qty)))
        for tid, qty in _parse_rows(reaction.get("materials"), value_key="quantity")
    ]
    rx_products = [
        RecipeProduct(output_id=tid, output_quantity=_as_int(qty))
        for tid, qty in _parse_rows(reaction.get("products"), value_key="quantity")
        if _as_int(qty) > 0
    ]

    return {
        "blueprint_type_id": int(bp.blueprintTypeID),
        "max_production_limit": _as_int(getattr(bp, "maxProductionLimit", 0)),
        "manufacturing": {
            "time": manufacturing.get("time", 0),
            "materials": mfg_materials,
            "products": mfg_products,
        },
        "invention": {
            "time": invention.get("time", 0),
            "probability": _invention_probability(invention) if invention else None,
            "materials": inv_materials,
            "products": inv_products,
            "skills": inv_skills,
        },
        "reaction": {
            "time": _as_int(reaction.get("time", 0)),
            "materials": rx_materials,
            "products": rx_products,
        },
    }


def get_blueprint_activities(session: Any, blueprint_type_ids: Iterable[int] | None = None) -> dict[int, dict]:
    """Return parsed activities keyed by blueprint type id.

    If `blueprint_type_ids` is provided, only those blueprints are loaded.
    """

    q = session.query(Blueprints)
    if blueprint_type_ids is not None:
        ids = list({int(i) for i in blueprint_type_ids if i is not None})
        if not ids:
            return {}
        q = q.filter(Blueprints.blueprintTypeID.in_(ids))

    return {int(bp.blueprintTypeID): parse_blueprint_activities(bp) for bp in q.all()}


def index_blueprints_by_product(
    activities_by_blueprint: dict[int, dict],
    *,
    activity: str = "manufacturing",
) -> dict[int, int]:
    """Return product type_id -> blueprint type_id for one activity ("manufacturing" or "reaction").

    When several blueprints make the same product, prefer the largest output per
    run, then the lowest blueprint id, so the choice is stable.
    """

    candidates: dict[int, list[tuple[int, int]]] = {}
    for bp_type_id, parsed in (activities_by_blueprint or {}).items():
        for prod in (parsed.get(activity) or {}).get("products") or []:
            candidates.setdefault(int(prod.output_id), []).append((int(prod.output_quantity), int(bp_type_id)))

    out: dict[int, int] = {}
    for product_type_id, options in candidates.items():
        options.sort(key=lambda o: (-o[0], o[1]))
        out[product_type_id] = options[0][1]
    return out
