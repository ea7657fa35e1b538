from __future__ import annotations

import json
from typing import Any, Iterable

from eve_industry_planner.infrastructure.sde.models import TypeDogma


def _safe_json_loads(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return None
    return value


def get_dogma_attributes(
    session: Any,
    type_ids: Iterable[int],
    *,
    attribute_ids: Iterable[int] | None = None,
) -> dict[int, dict[int, float]]:
    """Return type_id -> {attributeID: value} (best-effort; not every type has a typeDogma row)."""

    ids = sorted({int(x) for x in type_ids if x is not None and int(x) > 0})
    if not ids:
        return {}
    wanted = {int(a) for a in attribute_ids} if attribute_ids is not None else None

    out: dict[int, dict[int, float]] = {}
    for row in session.query(TypeDogma).filter(TypeDogma.id.in_(ids)).all():
        attrs = _safe_json_loads(row.dogmaAttributes) or []
        if not isinstance(attrs, list):
            continue
        m: dict[int, float] = {}
        for a in attrs:
            if not isinstance(a, dict):
                continue
            aid = a.get("attributeID")
            val = a.get("value")
            if aid is None or val is None:
                continue
            try:
                aid_i = int(aid)
                val_f = float(val)
            except (TypeError, ValueError):
                continue
            if wanted is not None and aid_i not in wanted:
                continue
            m[aid_i] = val_f
        if m:
            out[int(row.id)] = m
    return out
