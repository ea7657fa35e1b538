from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from eve_industry_planner.domain.invention import Decryptor, InventionJob, SkillRequirement
from eve_industry_planner.domain.recipes import RecipeMaterial, RecipeProduct
from eve_industry_planner.infrastructure.catalog_cache import CatalogCache
from eve_industry_planner.infrastructure.sde.blueprints import get_blueprint_activities, index_blueprints_by_product
from eve_industry_planner.infrastructure.sde.decryptors import get_t2_invention_decryptors
from eve_industry_planner.infrastructure.sde.dogma import get_dogma_attributes
from eve_industry_planner.infrastructure.sde.rig_effects import (
    REACTION_RIG_BONUS_ATTRIBUTE_IDS,
    RIG_BONUS_ATTRIBUTE_IDS,
    compute_reaction_rig_bonus_percent,
    compute_rig_bonus_percent,
    reaction_rig_bonuses_from_attributes,
    rig_bonuses_from_attributes,
)
from eve_industry_planner.infrastructure.sde.types import get_type_data


class SdeCatalog:
    """CatalogLookup and ReactionLookup over an SDE database.

    Takes a session factory rather than a session: every cache miss opens a
    short-lived session, so one catalog can serve concurrent expansions.
    """

    def __init__(self, session_factory: Callable[[], Any], *, language: str = "en", cache: CatalogCache | None = None):
        self._session_factory = session_factory
        self.language = str(language or "en")
        self.cache = cache if cache is not None else CatalogCache()

    def _with_session(self, fn: Callable[[Any], Any]) -> Any:
        session = self._session_factory()
        try:
            return fn(session)
        finally:
            session.close()

    def invalidate(self) -> None:
        self.cache.invalidate()

    def _activities(self) -> dict[int, dict]:
        def _load() -> dict[int, dict]:
            data = self._with_session(get_blueprint_activities)
            logging.info("Loaded %s blueprints from SDE", len(data))
            return data

        return self.cache.get_or_load(("activities",), _load, clone=False)

    def _product_index(self) -> dict[int, int]:
        return self.cache.get_or_load(("product_index",), lambda: index_blueprints_by_product(self._activities()), clone=False)

    def _reaction_index(self) -> dict[int, int]:
        return self.cache.get_or_load(
            ("reaction_index",),
            lambda: index_blueprints_by_product(self._activities(), activity="reaction"),
            clone=False,
        )

    def _type(self, type_id: int) -> dict:
        tid = int(type_id)
        return self.cache.get_or_load(
            ("type", tid, self.language),
            lambda: self._with_session(lambda s: get_type_data(s, self.language, [tid])).get(tid) or {},
            clone=False,
        )

    # CatalogLookup

    def get_recipe_materials(self, recipe_id: int) -> list[RecipeMaterial]:
        bp = self._activities().get(int(recipe_id))
        if not bp:
            return []
        return list(bp["manufacturing"]["materials"])

    def get_recipe_product(self, recipe_id: int) -> Optional[RecipeProduct]:
        bp = self._activities().get(int(recipe_id))
        if not bp:
            return None
        products = bp["manufacturing"]["products"]
        return products[0] if products else None

    def get_recipe_for_product(self, item_id: int) -> Optional[int]:
        return self._product_index().get(int(item_id))

    def get_item_group(self, item_id: int) -> Optional[int]:
        gid = self._type(item_id).get("group_id")
        return int(gid) if gid is not None else None

    def get_item_name(self, item_id: int) -> str:
        return str(self._type(item_id).get("type_name") or f"Type {item_id}")

    def get_all_catalysts(self) -> list[Decryptor]:
        return self.cache.get_or_load(
            ("decryptors", self.language),
            lambda: self._with_session(lambda s: get_t2_invention_decryptors(s, language=self.language)),
        )

    def get_module_bonus(
        self,
        module_ids: Iterable[int],
        target_group_id: Optional[int],
        security_status: Optional[float],
    ) -> float:
        payload = self._rigs_payload(module_ids)
        if not payload:
            return 0.0
        return compute_rig_bonus_percent(
            rigs_payload=payload,
            product_group_id=target_group_id,
            security_status=security_status,
            metric="material",
        )

    def _rigs_payload(self, module_ids: Iterable[int]) -> list[dict]:
        rig_key = tuple(sorted({int(x) for x in module_ids if x is not None and int(x) != 0}))
        if not rig_key:
            return []
        return self.cache.get_or_load(("rigs", rig_key), lambda: self._with_session(lambda s: self._load_rigs(s, rig_key)))

    def _load_rigs(self, session: Any, rig_ids: tuple[int, ...]) -> list[dict]:
        type_data = get_type_data(session, self.language, rig_ids)
        attrs = get_dogma_attributes(
            session,
            rig_ids,
            attribute_ids=RIG_BONUS_ATTRIBUTE_IDS + REACTION_RIG_BONUS_ATTRIBUTE_IDS,
        )
        out: list[dict] = []
        for tid in rig_ids:
            t = type_data.get(tid)
            if not t:
                logging.warning("Rig type %s not found in SDE; ignoring it", tid)
                continue
            rig_attrs = attrs.get(tid, {})
            out.append(
                {
                    "type_id": tid,
                    "group_id": t.get("group_id"),
                    **rig_bonuses_from_attributes(rig_attrs),
                    **reaction_rig_bonuses_from_attributes(rig_attrs),
                }
            )
        return out

    # ReactionLookup

    def _reaction(self, formula_id: int) -> dict:
        bp = self._activities().get(int(formula_id)) or {}
        return bp.get("reaction") or {}

    def get_reaction_materials(self, formula_id: int) -> list[RecipeMaterial]:
        return list(self._reaction(formula_id).get("materials") or [])

    def get_reaction_product(self, formula_id: int) -> Optional[RecipeProduct]:
        products = self._reaction(formula_id).get("products") or []
        return products[0] if products else None

    def get_reaction_for_product(self, item_id: int) -> Optional[int]:
        return self._reaction_index().get(int(item_id))

    def get_reaction_time(self, formula_id: int) -> int:
        return int(self._reaction(formula_id).get("time") or 0)

    def get_reaction_rig_bonus(
        self,
        module_ids: Iterable[int],
        security_status: Optional[float],
        metric: str = "material",
    ) -> float:
        payload = self._rigs_payload(module_ids)
        if not payload:
            return 0.0
        return compute_reaction_rig_bonus_percent(rigs_payload=payload, security_status=security_status, metric=metric)

    # Invention

    def get_invention_job(self, blueprint_type_id: int) -> Optional[InventionJob]:
        bp = self._activities().get(int(blueprint_type_id))
        invention = (bp or {}).get("invention") or {}
        if not invention.get("products"):
            return None

        skills = tuple(
            SkillRequirement(skill_id=int(tid), name=self.get_item_name(tid), level=int(lvl))
            for tid, lvl in invention.get("skills") or []
        )
        return InventionJob(
            base_probability=float(invention.get("probability") or 0.0),
            materials=tuple(invention.get("materials") or ()),
            candidate_outputs=tuple(invention.get("products") or ()),
            required_skills=skills,
        )
