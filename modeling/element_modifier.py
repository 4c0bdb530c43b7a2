"""
SteelCad - Element Modifier
===========================

User-level edits on elements. This is the seam where the three core pieces
meet:

 - a point drag on a parametric child first stores its offset against the
   ideal geometry (recipe engine), then commits the new position
 - every committed geometry change is announced as ``element:moved``, which
   the connection graph turns into a propagation pass
 - edits on a composite regenerate its children

Usage:
    modifier = ElementModifier(store, bus, engine)
    modifier.update_element_point("beam-3", "end", [1000, 500, 0])
"""

import copy
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
from loguru import logger

from modeling.element_store import ElementStore
from modeling.elements import POINT_FIELDS, Element, ElementKind
from modeling.events import ELEMENT_MOVED, EventBus
from modeling.geometry_utils import as_vec3, rotation_record, to_list
from modeling.grid import StructuralGrid
from modeling.recipes import ParametricEngine, get_recipe

# Felder, deren Aenderung eine Propagation ausloest
_GEOMETRY_KEYS = POINT_FIELDS + ("connection_points", "connectionPoints")

# Kontrollpunkte von Komposita, die beim Kopieren verschoben werden
_COMPOSITE_POINT_PARAMS = ("start", "end", "startPoint")


class ElementModifier:
    """Point edits, element updates, copies and type changes."""

    def __init__(self, store: ElementStore, event_bus: EventBus, engine: Optional[ParametricEngine] = None):
        if store is None:
            raise ValueError("ElementModifier requires an element store")
        if event_bus is None:
            raise ValueError("ElementModifier requires an event bus")
        self.store = store
        self.event_bus = event_bus
        self.engine = engine or ParametricEngine()

    # =========================================================================
    # Point edits
    # =========================================================================

    def update_element_point(self, element_id: str, point_type: str, new_position) -> Optional[Element]:
        """
        Move one named point of an element.

        For a parametric child the offset against the current ideal geometry
        is computed and stored *before* the new position is written.
        """
        element = self.store.get_element(element_id)
        if element is None:
            logger.warning(f"[MODIFIER] Unknown element '{element_id}'")
            return None
        if element.is_composite:
            return self.update_group_point(element_id, point_type, new_position)

        position = as_vec3(new_position)
        patch = element.point_patch(point_type, position) if position is not None else None
        if patch is None:
            logger.warning(f"[MODIFIER] '{element_id}' has no movable point '{point_type}'")
            return None

        if element.parent_id:
            parent = self.store.get_element(element.parent_id)
            if parent is not None:
                patch = self.engine.child_point_patch(parent, element, point_type, position) or patch

        self.store.update_element(element_id, patch)
        self._announce_move(element_id, point_type, element.get_point(point_type))
        return element

    def update_group_point(self, group_id: str, point_type: str, new_position) -> Optional[Element]:
        """Move a defining point of a composite and regenerate it."""
        group = self.store.get_element(group_id)
        if group is None or not group.is_composite:
            logger.warning(f"[MODIFIER] '{group_id}' is not a composite")
            return None
        recipe = get_recipe(group.recipe)
        if recipe is None:
            return None

        params = recipe.move_control_point(group.params, point_type, new_position)
        if params is None:
            logger.warning(f"[MODIFIER] {group_id}: '{point_type}' is not a control point")
            return None
        self.store.update_element(group_id, {"params": params})
        self.regenerate(group_id)
        return group

    # =========================================================================
    # Whole-element edits
    # =========================================================================

    def update_element(self, element_id: str, patch: Dict[str, Any]) -> Optional[Element]:
        """
        Merge ``patch``. Composites regenerate; leaf geometry changes are
        announced so connections follow.
        """
        element = self.store.update_element(element_id, patch)
        if element is None:
            return None

        if element.is_composite:
            self.regenerate(element_id)
        elif any(key in patch for key in _GEOMETRY_KEYS):
            self.event_bus.publish(ELEMENT_MOVED, {
                "elementId": element_id,
                "changed": {k: patch[k] for k in _GEOMETRY_KEYS if k in patch},
            })
        return element

    def regenerate(self, group_id: str) -> List[str]:
        group = self.store.get_element(group_id)
        if group is None:
            return []
        result = self.engine.update(group, self.store)
        if result.is_error:
            result.log("RECIPE")
            return []
        for child_id in result.value or []:
            self.event_bus.publish(ELEMENT_MOVED, {"elementId": child_id, "changed": None})
        return list(result.value or [])

    def delete_elements(self, element_ids: Iterable[str]) -> List[str]:
        """Delete elements (and composite children). Connections cascade via the bus."""
        return self.store.delete_elements(element_ids)

    # =========================================================================
    # Copy / type change
    # =========================================================================

    def copy_elements(self, element_ids: Iterable[str], source_point, destination_point,
                      num_copies: int = 1) -> List[Element]:
        """
        Array copies along ``destination_point - source_point``. Composites are
        rebuilt through their recipe; leaf copies start unconnected.
        """
        step = as_vec3(destination_point) - as_vec3(source_point)
        copies: List[Element] = []
        for element_id in list(element_ids):
            original = self.store.get_element(element_id)
            if original is None:
                continue
            for i in range(1, num_copies + 1):
                delta = step * i
                if original.is_composite:
                    new_group = self._copy_composite(original, delta)
                    if new_group is not None:
                        copies.append(new_group)
                else:
                    copies.append(self._copy_leaf(original, delta))
        logger.info(f"[MODIFIER] Copied {len(copies)} element(s)")
        return copies

    def _copy_composite(self, group: Element, delta: np.ndarray) -> Optional[Element]:
        data = group.to_dict()
        params = copy.deepcopy(group.params)
        for key in _COMPOSITE_POINT_PARAMS:
            if params.get(key) is not None:
                params[key] = to_list(as_vec3(params[key]) + delta)
        data["params"] = params
        return self.engine.recreate(data, self.store)

    def _copy_leaf(self, element: Element, delta: np.ndarray) -> Element:
        clone = element.copy()
        clone.id = self.store.generate_id(element.kind)
        clone.connections = {}
        clone.parent_id = None
        clone.component_key = None
        clone.apply_patch(element.translate(delta))
        return self.store.add_element(clone)

    def change_element_type(self, element_id: str, new_kind: str) -> Optional[Element]:
        """Convert between a linear member and a plate."""
        element = self.store.get_element(element_id)
        if element is None or element.kind == new_kind:
            return element

        if new_kind == ElementKind.PLATE and element.is_linear:
            patch = {
                "kind": ElementKind.PLATE,
                "origin": list(element.start),
                "width": 300.0, "height": 200.0, "thickness": 12.0,
                "rotation": rotation_record([0.0, 0.0, 0.0]),
                "start": None, "end": None, "profile": None,
            }
        elif new_kind in ElementKind.LINEAR and element.is_plate:
            origin = as_vec3(element.origin)
            patch = {
                "kind": new_kind,
                "start": to_list(origin),
                "end": to_list(origin + np.array([1000.0, 0.0, 0.0])),
                "profile": "HEA200",
                "orientation": 0.0,
                "origin": None, "width": None, "height": None, "thickness": None, "rotation": None,
            }
        elif new_kind in ElementKind.LINEAR and element.is_linear:
            patch = {"kind": new_kind}
        else:
            logger.warning(f"[MODIFIER] Cannot convert {element.kind} to {new_kind}")
            return None
        return self.store.update_element(element_id, patch)

    # =========================================================================
    # Grid attachments
    # =========================================================================

    def attach_to_grid(self, element_id: str, point_type: str, grid_id: str,
                       x_label: str, y_label: str, z_label: str) -> bool:
        element = self.store.get_element(element_id)
        if element is None or point_type not in POINT_FIELDS:
            return False
        attachments = copy.deepcopy(element.attachments)
        attachments[point_type] = {
            "type": "gridIntersection", "gridId": grid_id,
            "xLabel": x_label, "yLabel": y_label, "zLabel": z_label,
        }
        patch: Dict[str, Any] = {"attachments": attachments}
        if point_type not in element.offsets:
            patch[f"{point_type}Offset"] = [0.0, 0.0, 0.0]
        self.store.update_element(element_id, patch)
        return True

    def rebuild_from_grid(self, grid: StructuralGrid) -> int:
        """Re-place every point attached to ``grid``. Returns the number of elements updated."""
        updated = 0
        for element in self.store.get_all_elements():
            patch: Dict[str, Any] = {}
            for point, attachment in element.attachments.items():
                if attachment.get("gridId") != grid.id:
                    continue
                position = grid.position_at(attachment["xLabel"], attachment["yLabel"], attachment["zLabel"])
                if position is not None:
                    patch[point] = to_list(position + element.get_offset(point))
            if patch:
                self.update_element(element.id, patch)
                updated += 1
        logger.info(f"[MODIFIER] Grid {grid.id}: updated {updated} element(s)")
        return updated

    # =========================================================================

    def _announce_move(self, element_id: str, point_type: str, position: np.ndarray) -> None:
        self.event_bus.publish(ELEMENT_MOVED, {
            "elementId": element_id,
            "pointType": point_type,
            "newPosition": to_list(position),
            "changed": {point_type: to_list(position)},
        })
