"""
SteelCad - Parametric Engine
============================

Reconciles ideal child geometry from a composite's recipe with the manual
per-point offsets stored on its children.

    final point = ideal point (current params) + stored offset

Children are matched to ideal specs by their ``component_key``, never by
position in ``children``. Keys that a recipe no longer produces lose their
child; keys that are new get a fresh child.

Usage:
    engine = ParametricEngine()
    group = engine.create(RecipeType.BOXFRAME, {"start": [0, 0, 0], "end": [6000, 0, 0]}, store)
    store.update_element(group.id, {"params": {**group.params, "height": 4000}})
    engine.update(group, store)
"""

from typing import Any, Dict, List, Optional, Union

import numpy as np
from loguru import logger

from config.feature_flags import is_enabled
from modeling.element_store import ElementStore
from modeling.elements import Element, ElementKind
from modeling.geometry_utils import to_list
from modeling.recipes.base import OFFSET_POINTS, ChildSpec, Recipe, RecipeType, ideal_point
from modeling.recipes.box_frame import BoxFrameRecipe
from modeling.recipes.goal_post import GoalPostRecipe
from modeling.recipes.stairs import StairsRecipe
from modeling.result_types import OperationResult

RECIPES: Dict[RecipeType, Recipe] = {
    RecipeType.BOXFRAME: BoxFrameRecipe(),
    RecipeType.GOALPOST: GoalPostRecipe(),
    RecipeType.STAIRS: StairsRecipe(),
}

_missing = set(RecipeType) - set(RECIPES)
if _missing:
    raise RuntimeError(f"No recipe registered for: {sorted(t.value for t in _missing)}")


def get_recipe(recipe_type: Union[RecipeType, str, None]) -> Optional[Recipe]:
    if isinstance(recipe_type, RecipeType):
        return RECIPES[recipe_type]
    try:
        return RECIPES[RecipeType(recipe_type)]
    except ValueError:
        logger.warning(f"[RECIPE] Unknown recipe type: {recipe_type!r}")
        return None


class ParametricEngine:
    """Creates, regenerates and duplicates composites."""

    # -------------------------------------------------------------------------
    # Ideal geometry
    # -------------------------------------------------------------------------

    def recipe_for(self, group: Element) -> Optional[Recipe]:
        if not group.is_composite:
            return None
        return get_recipe(group.recipe)

    def generate(self, group: Element) -> Dict[str, ChildSpec]:
        recipe = self.recipe_for(group)
        if recipe is None:
            return {}
        return recipe.generate_child_data(group.params)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create(self, recipe_type: Union[RecipeType, str], params: Dict[str, Any],
               store: ElementStore, kind: str = ElementKind.GROUP) -> Optional[Element]:
        """Build a new composite and all of its children from ``params``."""
        recipe = get_recipe(recipe_type)
        if recipe is None:
            return None

        full_params = recipe.with_defaults(params)
        specs = recipe.generate_child_data(full_params)
        group = store.add_element(Element(
            id=store.generate_id(kind),
            kind=kind,
            name=recipe.name,
            recipe=recipe.recipe_type.value,
            params=full_params,
        ))

        child_ids = [self._add_child(store, group.id, key, spec).id for key, spec in specs.items()]
        store.update_element(group.id, {"children": child_ids})
        logger.info(f"[RECIPE] Created {recipe.name} '{group.id}' with {len(child_ids)} children")
        return group

    def _add_child(self, store: ElementStore, group_id: str, key: str, spec: ChildSpec) -> Element:
        kind = spec.get("kind", ElementKind.BEAM)
        record = {k: v for k, v in spec.items() if k != "kind"}
        record.update({
            "id": store.generate_id(kind),
            "kind": kind,
            "parentId": group_id,
            "componentKey": key,
        })
        return store.add_element(record)

    def recreate(self, group_data: Union[Element, Dict[str, Any]], store: ElementStore) -> Optional[Element]:
        """
        Build a fresh copy of a composite from its data (used for duplicates).
        New ids everywhere, same component keys, no offsets carried over.
        """
        if isinstance(group_data, Element):
            recipe_type, params, kind = group_data.recipe, group_data.params, group_data.kind
        else:
            recipe_type = group_data.get("recipe")
            params = group_data.get("params", {})
            kind = group_data.get("kind", ElementKind.GROUP)
        return self.create(recipe_type, dict(params), store, kind=kind)

    # -------------------------------------------------------------------------
    # Regeneration
    # -------------------------------------------------------------------------

    def update(self, group: Element, store: ElementStore) -> OperationResult:
        """
        Regenerate ``group`` from its current params.

        Returns SUCCESS with the ids of children whose geometry was written;
        WARNING lists dangling child ids.
        """
        recipe = self.recipe_for(group)
        if recipe is None:
            return OperationResult.error(f"'{group.id}' is not a parametric composite")

        specs = recipe.generate_child_data(group.params)
        by_key: Dict[str, Element] = {}
        dangling: List[str] = []
        for child_id in group.children:
            child = store.get_element(child_id)
            if child is None or not child.component_key:
                dangling.append(child_id)
                continue
            by_key[child.component_key] = child

        updated: List[str] = []
        children: List[str] = []
        for key, spec in specs.items():
            child = by_key.pop(key, None)
            if child is None:
                child = self._add_child(store, group.id, key, spec)
                logger.debug(f"[RECIPE] {group.id}: new child '{key}' -> {child.id}")
            else:
                store.update_element(child.id, self._child_patch(spec, child))
            children.append(child.id)
            updated.append(child.id)

        # keys the recipe no longer produces
        stale = [c.id for c in by_key.values()]
        if stale:
            store.update_element(group.id, {"children": children})
            store.delete_elements(stale)
            logger.info(f"[RECIPE] {group.id}: removed {len(stale)} stale child(ren)")
        elif children != group.children:
            store.update_element(group.id, {"children": children})

        if is_enabled("recipe_debug"):
            logger.debug(f"[RECIPE] {group.id} regenerated: {len(updated)} children")

        if dangling:
            return OperationResult.warning(
                updated, f"Regenerated {group.id} with {len(dangling)} dangling child id(s)",
                failed_items=dangling,
            )
        return OperationResult.success(updated, f"Regenerated {group.id}")

    def _child_patch(self, spec: ChildSpec, child: Element) -> Dict[str, Any]:
        patch = {k: v for k, v in spec.items() if k not in OFFSET_POINTS}
        for point in OFFSET_POINTS:
            ideal = ideal_point(spec, point)
            if ideal is not None:
                patch[point] = to_list(ideal + child.get_offset(point))
        return patch

    # -------------------------------------------------------------------------
    # Offsets
    # -------------------------------------------------------------------------

    def calculate_child_offset(self, group: Element, child: Element, point: str,
                               new_position) -> Optional[np.ndarray]:
        """
        ``new_position`` minus the ideal position of ``child.point`` under the
        group's current params. None if the point has no ideal position.
        """
        recipe = self.recipe_for(group)
        if recipe is None or not child.component_key:
            return None
        spec = recipe.generate_child_data(group.params).get(child.component_key)
        ideal = ideal_point(spec, point)
        if ideal is None:
            return None
        offset = np.asarray(new_position, dtype=float) - ideal
        return recipe.adjust_offset(child.component_key, point, offset)

    def child_point_patch(self, group: Element, child: Element, point: str,
                          new_position) -> Optional[Dict[str, Any]]:
        """
        Patch that moves ``child.point`` to ``new_position`` and records the
        offsets against the ideal geometry.

        ``mid`` translates start and end, so both offsets grow by the
        translation. Offsets go through the recipe's ``adjust_offset`` and the
        committed point is ideal + adjusted offset, so the element and its
        offsets always agree. None if the point has no ideal position.
        """
        recipe = self.recipe_for(group)
        if recipe is None or not child.component_key:
            return None
        spec = recipe.generate_child_data(group.params).get(child.component_key)
        target = np.asarray(new_position, dtype=float)

        if point == "mid":
            current = child.get_point("mid")
            if current is None:
                return None
            delta = target - current
            targets = {name: child.get_point(name) + delta for name in ("start", "end")}
        else:
            targets = {point: target}

        patch: Dict[str, Any] = {}
        for name, position in targets.items():
            offset = self.calculate_child_offset(group, child, name, position)
            if offset is None:
                return None
            ideal = ideal_point(spec, name)
            patch[name] = to_list(ideal + offset)
            patch[f"{name}Offset"] = to_list(offset)
        return patch
