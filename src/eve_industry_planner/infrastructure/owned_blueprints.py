from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v or 0)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class OwnedBlueprint:
    blueprint_type_id: int
    me_percent: int = 0
    te_percent: int = 0
    is_blueprint_copy: bool = False
    runs: Optional[int] = None


class OwnedBlueprints:
    """Owner context for sub-recipe efficiency.

    Keeps the best owned blueprint per type (highest ME, then TE); manual
    overrides win over anything owned. Unknown blueprints resolve to ME 0.
    """

    def __init__(self, overrides: Mapping[int, int] | None = None):
        self._best: dict[int, OwnedBlueprint] = {}
        self._overrides = {int(k): _as_int(v) for k, v in (overrides or {}).items()}

    def consider(self, bp: OwnedBlueprint) -> None:
        tid = int(bp.blueprint_type_id)
        if tid <= 0:
            return
        cur = self._best.get(tid)
        if cur is None or (bp.me_percent, bp.te_percent) > (cur.me_percent, cur.te_percent):
            self._best[tid] = bp

    def set_override(self, blueprint_type_id: int, me_percent: int) -> None:
        self._overrides[int(blueprint_type_id)] = _as_int(me_percent)

    def efficiency_for(self, blueprint_type_id: int) -> int:
        tid = int(blueprint_type_id)
        if tid in self._overrides:
            return self._overrides[tid]
        bp = self._best.get(tid)
        return bp.me_percent if bp is not None else 0

    def get(self, blueprint_type_id: int) -> Optional[OwnedBlueprint]:
        return self._best.get(int(blueprint_type_id))

    def __len__(self) -> int:
        return len(self._best)

    @staticmethod
    def from_assets(rows: Iterable[Dict[str, Any]], overrides: Mapping[int, int] | None = None) -> "OwnedBlueprints":
        """Build from ESI-style blueprint rows.

        Accepts both snake_case (`type_id`, `material_efficiency`) and the
        camelCase keys the desktop client stored (`typeId`, `materialEfficiency`).
        A `quantity` of -2 marks a copy, as in the ESI blueprints endpoint.
        """

        owned = OwnedBlueprints(overrides)
        for row in rows or []:
            if not isinstance(row, dict):
                continue
            tid = _as_int(row.get("type_id", row.get("typeId")))
            if tid <= 0:
                continue
            runs = row.get("runs")
            owned.consider(
                OwnedBlueprint(
                    blueprint_type_id=tid,
                    me_percent=_as_int(row.get("material_efficiency", row.get("materialEfficiency"))),
                    te_percent=_as_int(row.get("time_efficiency", row.get("timeEfficiency"))),
                    is_blueprint_copy=_as_int(row.get("quantity")) == -2,
                    runs=_as_int(runs) if runs is not None and _as_int(runs) >= 0 else None,
                )
            )
        return owned
