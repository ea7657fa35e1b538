from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from eve_industry_planner.domain.invention import Decryptor, InventionJob, SkillRequirement
from eve_industry_planner.domain.recipes import RecipeMaterial, RecipeProduct
from eve_industry_planner.infrastructure.sde.rig_effects import compute_reaction_rig_bonus_percent, compute_rig_bonus_percent


class StaticCatalog:
    """CatalogLookup and ReactionLookup backed by plain in-memory mappings.

    Useful for tests and for small hand-maintained recipe sets loaded from JSON.
    `rigs` maps rig type id -> {"group_id": ..., "material_bonus": ...}, the
    same payload shape SdeCatalog builds from dogma attributes (refinery rigs
    use `reaction_material_bonus` / `reaction_time_bonus`).
    """

    def __init__(
        self,
        *,
        recipes: Mapping[int, Iterable[RecipeMaterial]] | None = None,
        products: Mapping[int, RecipeProduct] | None = None,
        groups: Mapping[int, int] | None = None,
        names: Mapping[int, str] | None = None,
        decryptors: Iterable[Decryptor] | None = None,
        rigs: Mapping[int, Mapping[str, Any]] | None = None,
        inventions: Mapping[int, InventionJob] | None = None,
        reactions: Mapping[int, Iterable[RecipeMaterial]] | None = None,
        reaction_products: Mapping[int, RecipeProduct] | None = None,
        reaction_times: Mapping[int, int] | None = None,
    ):
        self._recipes = {int(k): list(v) for k, v in (recipes or {}).items()}
        self._products = {int(k): v for k, v in (products or {}).items()}
        self._groups = {int(k): int(v) for k, v in (groups or {}).items()}
        self._names = {int(k): str(v) for k, v in (names or {}).items()}
        self._decryptors = list(decryptors or [])
        self._rigs = {int(k): dict(v) for k, v in (rigs or {}).items()}
        self._inventions = {int(k): v for k, v in (inventions or {}).items()}
        self._reactions = {int(k): list(v) for k, v in (reactions or {}).items()}
        self._reaction_products = {int(k): v for k, v in (reaction_products or {}).items()}
        self._reaction_times = {int(k): int(v) for k, v in (reaction_times or {}).items()}

        # Reverse index; first recipe registered for a product wins.
        self._recipe_by_product: dict[int, int] = {}
        for recipe_id, product in self._products.items():
            self._recipe_by_product.setdefault(int(product.output_id), recipe_id)
        self._reaction_by_product: dict[int, int] = {}
        for formula_id, product in self._reaction_products.items():
            self._reaction_by_product.setdefault(int(product.output_id), formula_id)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "StaticCatalog":
        """Build from a JSON-friendly payload.

        Expected keys (all optional)::

            {
              "blueprints": {"<bp id>": {"product": [type_id, qty], "materials": {"<type id>": qty}}},
              "reactions": {"<formula id>": {"product": [type_id, qty], "materials": {..}, "time": seconds}},
              "groups": {"<type id>": group_id},
              "names": {"<type id>": "name"},
              "decryptors": [{"id": .., "name": .., "probability_multiplier": .., ...}],
              "rigs": {"<rig id>": {"group_id": .., "material_bonus": .., "reaction_material_bonus": ..}},
              "inventions": {"<bp id>": {"probability": .., "materials": {..}, "products": [[type_id, runs]],
                                         "skills": [[skill_id, level, "name"]]}}
            }
        """

        recipes, products, _ = _parse_recipes(data.get("blueprints") or {})
        reactions, reaction_products, reaction_times = _parse_recipes(data.get("reactions") or {})

        decryptors = [
            Decryptor(
                id=int(d["id"]),
                name=str(d.get("name") or d["id"]),
                probability_multiplier=float(d.get("probability_multiplier", 1.0)),
                efficiency_modifier=int(d.get("efficiency_modifier", 0)),
                speed_modifier=int(d.get("speed_modifier", 0)),
                output_count_modifier=int(d.get("output_count_modifier", 0)),
            )
            for d in (data.get("decryptors") or [])
            if isinstance(d, dict) and d.get("id") is not None
        ]

        return StaticCatalog(
            recipes=recipes,
            products=products,
            groups=data.get("groups") or {},
            names=data.get("names") or {},
            decryptors=decryptors,
            rigs=data.get("rigs") or {},
            inventions=_parse_inventions(data.get("inventions") or {}),
            reactions=reactions,
            reaction_products=reaction_products,
            reaction_times=reaction_times,
        )

    def get_recipe_materials(self, recipe_id: int) -> list[RecipeMaterial]:
        return list(self._recipes.get(int(recipe_id), []))

    def get_recipe_product(self, recipe_id: int) -> Optional[RecipeProduct]:
        return self._products.get(int(recipe_id))

    def get_recipe_for_product(self, item_id: int) -> Optional[int]:
        return self._recipe_by_product.get(int(item_id))

    def get_item_group(self, item_id: int) -> Optional[int]:
        return self._groups.get(int(item_id))

    def get_item_name(self, item_id: int) -> str:
        return self._names.get(int(item_id), f"Type {item_id}")

    def get_all_catalysts(self) -> list[Decryptor]:
        return list(self._decryptors)

    def get_module_bonus(
        self,
        module_ids: Iterable[int],
        target_group_id: Optional[int],
        security_status: Optional[float],
    ) -> float:
        payload = [self._rigs[int(m)] for m in module_ids if int(m) in self._rigs]
        return compute_rig_bonus_percent(
            rigs_payload=payload,
            product_group_id=target_group_id,
            security_status=security_status,
        )

    def get_invention_job(self, blueprint_type_id: int) -> Optional[InventionJob]:
        return self._inventions.get(int(blueprint_type_id))

    def get_reaction_materials(self, formula_id: int) -> list[RecipeMaterial]:
        return list(self._reactions.get(int(formula_id), []))

    def get_reaction_product(self, formula_id: int) -> Optional[RecipeProduct]:
        return self._reaction_products.get(int(formula_id))

    def get_reaction_for_product(self, item_id: int) -> Optional[int]:
        return self._reaction_by_product.get(int(item_id))

    def get_reaction_time(self, formula_id: int) -> int:
        return self._reaction_times.get(int(formula_id), 0)

    def get_reaction_rig_bonus(
        self,
        module_ids: Iterable[int],
        security_status: Optional[float],
        metric: str = "material",
    ) -> float:
        payload = [self._rigs[int(m)] for m in module_ids if int(m) in self._rigs]
        return compute_reaction_rig_bonus_percent(rigs_payload=payload, security_status=security_status, metric=metric)


def _parse_inventions(raw: Dict[str, Any]) -> dict[int, InventionJob]:
    out: dict[int, InventionJob] = {}
    for raw_id, inv in raw.items():
        if not isinstance(inv, dict):
            continue
        try:
            bp_id = int(raw_id)
        except (TypeError, ValueError):
            continue
        skills = []
        for row in inv.get("skills") or []:
            if not isinstance(row, (list, tuple)) or len(row) < 2:
                continue
            name = str(row[2]) if len(row) > 2 else f"Skill {row[0]}"
            skills.append(SkillRequirement(skill_id=int(row[0]), name=name, level=int(row[1])))
        out[bp_id] = InventionJob(
            base_probability=float(inv.get("probability") or 0.0),
            materials=tuple(
                RecipeMaterial(material_id=int(tid), base_quantity=int(qty))
                for tid, qty in (inv.get("materials") or {}).items()
            ),
            candidate_outputs=tuple(
                RecipeProduct(output_id=int(p[0]), output_quantity=int(p[1]))
                for p in (inv.get("products") or [])
                if isinstance(p, (list, tuple)) and len(p) == 2
            ),
            required_skills=tuple(skills),
        )
    return out


def _parse_recipes(
    raw: Dict[str, Any],
) -> tuple[dict[int, list[RecipeMaterial]], dict[int, RecipeProduct], dict[int, int]]:
    recipes: dict[int, list[RecipeMaterial]] = {}
    products: dict[int, RecipeProduct] = {}
    times: dict[int, int] = {}
    for raw_id, bp in raw.items():
        try:
            bp_id = int(raw_id)
        except (TypeError, ValueError):
            continue
        if not isinstance(bp, dict):
            continue
        product = bp.get("product")
        if isinstance(product, (list, tuple)) and len(product) == 2:
            products[bp_id] = RecipeProduct(output_id=int(product[0]), output_quantity=int(product[1]))
        recipes[bp_id] = [
            RecipeMaterial(material_id=int(tid), base_quantity=int(qty))
            for tid, qty in (bp.get("materials") or {}).items()
        ]
        if bp.get("time") is not None:
            times[bp_id] = int(bp["time"])
    return recipes, products, times
