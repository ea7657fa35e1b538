from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from eve_industry_planner.application.errors import CollaboratorFailure


AggregateMaterials = Dict[int, int]


@dataclass(frozen=True)
class RecipeMaterial:
    material_id: int
    base_quantity: int


@dataclass(frozen=True)
class RecipeProduct:
    output_id: int
    output_quantity: int


@dataclass(frozen=True)
class ProducedItem:
    type_id: int
    name: str
    quantity: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type_id": self.type_id, "type_name": self.name, "quantity": self.quantity}


@dataclass(frozen=True)
class MaterialLine:
    material_id: int
    name: str
    quantity: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type_id": self.material_id, "type_name": self.name, "quantity": self.quantity}


@dataclass(frozen=True)
class IntermediateComponent:
    material_id: int
    name: str
    quantity: int
    recipe_id: int
    recipe_name: str
    efficiency_level: int
    sub_materials: AggregateMaterials
    node: Optional["ProductionNode"] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type_id": self.material_id,
            "type_name": self.name,
            "quantity": self.quantity,
            "blueprint_type_id": self.recipe_id,
            "blueprint_type_name": self.recipe_name,
            "me_level": self.efficiency_level,
            "sub_materials": dict(self.sub_materials),
            "breakdown": self.node.to_dict() if self.node is not None else None,
        }
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class ProductionNode:
    recipe_id: int
    recipe_name: str
    runs: int
    efficiency_level: int
    product: ProducedItem
    raw_materials: tuple[MaterialLine, ...] = ()
    intermediate_components: tuple[IntermediateComponent, ...] = ()
    time_seconds: Optional[int] = None

    def flattened_materials(self) -> AggregateMaterials:
        """Raw lines plus every intermediate's sub-materials, summed by id."""

        out: AggregateMaterials = {}
        for line in self.raw_materials:
            out[line.material_id] = out.get(line.material_id, 0) + line.quantity
        for comp in self.intermediate_components:
            sub = comp.node.flattened_materials() if comp.node is not None else comp.sub_materials
            for type_id, qty in sub.items():
                out[type_id] = out.get(type_id, 0) + qty
        return out

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "blueprint_type_id": self.recipe_id,
            "blueprint_type_name": self.recipe_name,
            "product_type_id": self.product.type_id,
            "product_type_name": self.product.name,
            "product_quantity": self.product.quantity,
            "runs": self.runs,
            "me_level": self.efficiency_level,
            "raw_materials": [m.to_dict() for m in self.raw_materials],
            "intermediate_components": [c.to_dict() for c in self.intermediate_components],
        }
        if self.time_seconds is not None:
            out["time_seconds"] = self.time_seconds
        return out


@dataclass(frozen=True)
class ExpansionResult:
    materials: AggregateMaterials = field(default_factory=dict)
    breakdown: Optional[ProductionNode] = None
    product: Optional[ProducedItem] = None
    error: Optional[str] = None
    failures: tuple[CollaboratorFailure, ...] = ()
    pricing: Any = None

    @property
    def found(self) -> bool:
        return self.product is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "materials": {int(k): int(v) for k, v in self.materials.items()},
            "breakdown": [self.breakdown.to_dict()] if self.breakdown is not None else [],
            "product": self.product.to_dict() if self.product is not None else None,
        }
        if self.error is not None:
            out["error"] = self.error
        if self.failures:
            out["failures"] = [f.to_dict() for f in self.failures]
        if self.pricing is not None:
            out["pricing"] = self.pricing.to_dict() if hasattr(self.pricing, "to_dict") else self.pricing
        return out


def merge_materials(into: AggregateMaterials, other: AggregateMaterials) -> None:
    for type_id, qty in other.items():
        into[int(type_id)] = into.get(int(type_id), 0) + int(qty)
