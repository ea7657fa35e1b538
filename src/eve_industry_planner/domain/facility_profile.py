from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


def _opt_int(v: Any) -> Optional[int]:
    if v is None or v == "":
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _opt_float(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _rig_type_id(rig: Any) -> Optional[int]:
    # Saved facilities store rigs either as bare ids ("43920") or as {"typeId": 43920}.
    if isinstance(rig, dict):
        return _opt_int(rig.get("typeId", rig.get("type_id")))
    return _opt_int(rig)


@dataclass(frozen=True)
class FacilityProfile:
    structure_type_id: Optional[int] = None
    rigs: tuple[int, ...] = ()
    security_status: Optional[float] = None
    system_id: Optional[int] = None

    facility_tax: Optional[float] = None
    structure_cost_bonus: Optional[float] = None

    @property
    def has_structure(self) -> bool:
        return self.structure_type_id is not None

    @property
    def has_rigs(self) -> bool:
        return len(self.rigs) > 0

    def identity(self) -> tuple:
        return (
            self.structure_type_id,
            tuple(sorted(self.rigs)),
            self.security_status,
            self.system_id,
        )

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "FacilityProfile":
        rigs: list[int] = []
        for r in data.get("rigs") or []:
            tid = _rig_type_id(r)
            if tid is not None and tid != 0:
                rigs.append(tid)

        structure_type_id = _opt_int(data.get("structureTypeId", data.get("structure_type_id")))
        if data.get("facilityType") == "station":
            structure_type_id = None

        return FacilityProfile(
            structure_type_id=structure_type_id,
            rigs=tuple(rigs),
            security_status=_opt_float(data.get("securityStatus", data.get("security_status"))),
            system_id=_opt_int(data.get("systemId", data.get("system_id"))),
            facility_tax=_opt_float(data.get("facilityTax", data.get("facility_tax"))),
            structure_cost_bonus=_opt_float(data.get("structureCostBonus", data.get("structure_cost_bonus"))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "structure_type_id": self.structure_type_id,
            "rigs": list(self.rigs),
            "security_status": self.security_status,
            "system_id": self.system_id,
            "facility_tax": self.facility_tax,
            "structure_cost_bonus": self.structure_cost_bonus,
        }
