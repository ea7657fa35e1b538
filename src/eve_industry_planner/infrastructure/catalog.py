from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence, TypeVar

from eve_industry_planner.application.errors import CollaboratorFailure, LookupResult
from eve_industry_planner.domain.invention import Decryptor
from eve_industry_planner.domain.recipes import RecipeMaterial, RecipeProduct

T = TypeVar("T")


class CatalogLookup(Protocol):
    """Read-only queries against the static reference data."""

    def get_recipe_materials(self, recipe_id: int) -> Sequence[RecipeMaterial]: ...

    def get_recipe_product(self, recipe_id: int) -> Optional[RecipeProduct]: ...

    def get_recipe_for_product(self, item_id: int) -> Optional[int]: ...

    def get_item_group(self, item_id: int) -> Optional[int]: ...

    def get_item_name(self, item_id: int) -> str: ...

    def get_all_catalysts(self) -> Sequence[Decryptor]: ...

    def get_module_bonus(
        self,
        module_ids: Iterable[int],
        target_group_id: Optional[int],
        security_status: Optional[float],
    ) -> float: ...


class ReactionLookup(Protocol):
    """Reaction formula queries (the SDE `reaction` activity)."""

    def get_reaction_materials(self, formula_id: int) -> Sequence[RecipeMaterial]: ...

    def get_reaction_product(self, formula_id: int) -> Optional[RecipeProduct]: ...

    def get_reaction_for_product(self, item_id: int) -> Optional[int]: ...

    def get_reaction_time(self, formula_id: int) -> int: ...

    def get_reaction_rig_bonus(
        self,
        module_ids: Iterable[int],
        security_status: Optional[float],
        metric: str = "material",
    ) -> float: ...

    def get_item_name(self, item_id: int) -> str: ...


class CatalogGateway:
    """Boundary around a CatalogLookup.

    Every call that raises is logged, replaced with a conservative default and
    recorded so the caller can tell an upstream failure from empty data.
    One gateway per request; the failure list is not shared.
    """

    def __init__(self, catalog: CatalogLookup | ReactionLookup):
        self._catalog = catalog
        self._failures: list[CollaboratorFailure] = []
        self._lock = threading.Lock()

    @property
    def failures(self) -> tuple[CollaboratorFailure, ...]:
        with self._lock:
            return tuple(self._failures)

    def _call(self, operation: str, args: tuple[Any, ...], default: T, fn: Callable[[], T]) -> LookupResult[T]:
        try:
            return LookupResult(fn())
        except Exception as e:
            logging.warning("Catalog lookup %s%s failed; using default: %s", operation, args, e, exc_info=True)
            failure = CollaboratorFailure(
                operation=operation,
                arguments=args,
                error_type=type(e).__name__,
                message=str(e),
            )
            with self._lock:
                self._failures.append(failure)
            return LookupResult(default, failure)

    def recipe_materials(self, recipe_id: int) -> LookupResult[list[RecipeMaterial]]:
        return self._call(
            "get_recipe_materials",
            (recipe_id,),
            [],
            lambda: list(self._catalog.get_recipe_materials(recipe_id) or []),
        )

    def recipe_product(self, recipe_id: int) -> LookupResult[Optional[RecipeProduct]]:
        return self._call("get_recipe_product", (recipe_id,), None, lambda: self._catalog.get_recipe_product(recipe_id))

    def recipe_for_product(self, item_id: int) -> LookupResult[Optional[int]]:
        return self._call(
            "get_recipe_for_product", (item_id,), None, lambda: self._catalog.get_recipe_for_product(item_id)
        )

    def item_group(self, item_id: int) -> LookupResult[Optional[int]]:
        return self._call("get_item_group", (item_id,), None, lambda: self._catalog.get_item_group(item_id))

    def item_name(self, item_id: int) -> str:
        # Display only; a failure here never matters to the totals.
        res = self._call("get_item_name", (item_id,), f"Type {item_id}", lambda: self._catalog.get_item_name(item_id))
        return res.value or f"Type {item_id}"

    def all_catalysts(self) -> LookupResult[list[Decryptor]]:
        return self._call("get_all_catalysts", (), [], lambda: list(self._catalog.get_all_catalysts() or []))

    def module_bonus(
        self,
        module_ids: Iterable[int],
        target_group_id: Optional[int],
        security_status: Optional[float],
    ) -> LookupResult[float]:
        ids = tuple(int(x) for x in module_ids)
        return self._call(
            "get_module_bonus",
            (ids, target_group_id, security_status),
            0.0,
            lambda: float(self._catalog.get_module_bonus(ids, target_group_id, security_status) or 0.0),
        )

    # Reactions

    def reaction_materials(self, formula_id: int) -> LookupResult[list[RecipeMaterial]]:
        return self._call(
            "get_reaction_materials",
            (formula_id,),
            [],
            lambda: list(self._catalog.get_reaction_materials(formula_id) or []),
        )

    def reaction_product(self, formula_id: int) -> LookupResult[Optional[RecipeProduct]]:
        return self._call(
            "get_reaction_product", (formula_id,), None, lambda: self._catalog.get_reaction_product(formula_id)
        )

    def reaction_for_product(self, item_id: int) -> LookupResult[Optional[int]]:
        return self._call(
            "get_reaction_for_product", (item_id,), None, lambda: self._catalog.get_reaction_for_product(item_id)
        )

    def reaction_time(self, formula_id: int) -> LookupResult[int]:
        return self._call(
            "get_reaction_time", (formula_id,), 0, lambda: int(self._catalog.get_reaction_time(formula_id) or 0)
        )

    def reaction_rig_bonus(
        self,
        module_ids: Iterable[int],
        security_status: Optional[float],
        metric: str = "material",
    ) -> LookupResult[float]:
        ids = tuple(int(x) for x in module_ids)
        return self._call(
            "get_reaction_rig_bonus",
            (ids, security_status, metric),
            0.0,
            lambda: float(self._catalog.get_reaction_rig_bonus(ids, security_status, metric) or 0.0),
        )
