from __future__ import annotations

from typing import Any, Iterable

from eve_industry_planner.infrastructure.sde.localization import parse_localized
from eve_industry_planner.infrastructure.sde.models import Groups, Types


def get_type_data(session: Any, language: str, type_ids: Iterable[int]) -> dict[int, dict]:
    """Return name/group metadata for the given type IDs."""

    ids = sorted({int(i) for i in type_ids if i is not None})
    if not ids:
        return {}

    types_q = session.query(Types).filter(Types.id.in_(ids)).all()
    group_ids = {t.groupID for t in types_q if getattr(t, "groupID", None) is not None}
    group_data_map = {g.id: g for g in session.query(Groups).filter(Groups.id.in_(group_ids)).all()} if group_ids else {}

    result: dict[int, dict] = {}
    for t in types_q:
        group = group_data_map.get(t.groupID)
        result[int(t.id)] = {
            "type_id": int(t.id),
            "type_name": parse_localized(t.name, language, fallback=str(t.id)),
            "portion_size": getattr(t, "portionSize", None),
            "meta_group_id": getattr(t, "metaGroupID", None),
            "group_id": getattr(t, "groupID", None),
            "group_name": parse_localized(getattr(group, "name", None), language) if group else "",
            "category_id": getattr(group, "categoryID", None) if group else None,
        }

    return result


def get_type_ids_by_group(session: Any, group_id: int, *, published_only: bool = True) -> list[int]:
    q = session.query(Types.id).filter(Types.groupID == int(group_id))
    if published_only:
        q = q.filter(Types.published == True)  # noqa: E712
    return sorted(int(r[0]) for r in q.all() if r and r[0] is not None)
