from __future__ import annotations

from typing import Any

from eve_industry_planner.domain.invention import Decryptor
from eve_industry_planner.infrastructure.sde.dogma import get_dogma_attributes
from eve_industry_planner.infrastructure.sde.types import get_type_data, get_type_ids_by_group

# Dogma attribute IDs (confirmed in SDE dogmaAttributes table)
_ATTR_INVENTION_PROB_MULT = 1112
_ATTR_INVENTION_ME_MOD = 1113
_ATTR_INVENTION_TE_MOD = 1114
_ATTR_INVENTION_MAX_RUN_MOD = 1124

# Within the 'Decryptors' category (35), the classic T2 invention decryptors live in the
# 'Generic Decryptor' group. Other groups in the same category contain reverse-engineering
# decryptors and subsystem data interfaces.
T2_GENERIC_DECRYPTOR_GROUP_ID = 1304


def get_t2_invention_decryptors(sde_session: Any, *, language: str) -> list[Decryptor]:
    """Return decryptor items with invention modifiers, ordered by name.

    Types with none of the invention attributes are skipped; missing attributes
    default to neutral values.
    """

    if sde_session is None:
        return []

    type_ids = get_type_ids_by_group(sde_session, T2_GENERIC_DECRYPTOR_GROUP_ID)
    if not type_ids:
        return []

    attrs_by_type_id = get_dogma_attributes(
        sde_session,
        type_ids,
        attribute_ids=[
            _ATTR_INVENTION_PROB_MULT,
            _ATTR_INVENTION_ME_MOD,
            _ATTR_INVENTION_TE_MOD,
            _ATTR_INVENTION_MAX_RUN_MOD,
        ],
    )
    type_data = get_type_data(sde_session, language, type_ids)

    out: list[Decryptor] = []
    for tid in type_ids:
        m = attrs_by_type_id.get(int(tid))
        # If it has no relevant dogma attributes at all, it's not useful for invention.
        if not m:
            continue

        t = type_data.get(int(tid)) or {}
        out.append(
            Decryptor(
                id=int(tid),
                name=str(t.get("type_name") or tid),
                probability_multiplier=float(m.get(_ATTR_INVENTION_PROB_MULT, 1.0) or 1.0),
                efficiency_modifier=int(m.get(_ATTR_INVENTION_ME_MOD, 0.0) or 0.0),
                speed_modifier=int(m.get(_ATTR_INVENTION_TE_MOD, 0.0) or 0.0),
                output_count_modifier=int(m.get(_ATTR_INVENTION_MAX_RUN_MOD, 0.0) or 0.0),
            )
        )

    out.sort(key=lambda d: d.name)
    return out
