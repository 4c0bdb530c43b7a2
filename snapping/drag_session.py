"""
SteelCad - Drag & Creation Sessions
===================================

Pointer-driven edit flows on top of the snap resolver:

 - DragSession: drag one named point of an element (start / move / end /
   cancel). On drop with connection mode on, the snapped target point is
   connected to the dragged point.
 - CreationSession: two clicks place a linear member or a parametric
   composite.

Both are UI-agnostic: the host passes picking rays and NDC pointers.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
from loguru import logger

from config.tolerances import Tolerances
from modeling.connection_graph import ConnectionGraph
from modeling.element_modifier import ElementModifier
from modeling.elements import Element, ElementKind
from modeling.geometry_utils import as_vec3, to_list
from modeling.recipes import ParametricEngine, RecipeType, get_recipe
from snapping.camera import Ray
from snapping.snap_resolver import SnapResolver, SnapResult

# Gegenueberliegender Punkt als Ursprung fuer das Achsen-Snapping
_STATIONARY_POINT = {"start": "end", "end": "start"}


class DragSession:
    """One point drag at a time."""

    def __init__(self, resolver: SnapResolver, modifier: ElementModifier, graph: ConnectionGraph):
        self.resolver = resolver
        self.modifier = modifier
        self.graph = graph
        self.store = modifier.store

        self.element_id: Optional[str] = None
        self.point_type: Optional[str] = None
        self.original_position: Optional[np.ndarray] = None
        self.last_snap: Optional[SnapResult] = None

    @property
    def is_dragging(self) -> bool:
        return self.element_id is not None

    def start(self, element_id: str, point_type: str) -> bool:
        element = self.store.get_element(element_id)
        if element is None:
            logger.warning(f"[DRAG] Unknown element '{element_id}'")
            return False

        position = self._current_position(element, point_type)
        if position is None:
            logger.warning(f"[DRAG] '{element_id}' has no point '{point_type}'")
            return False

        self.element_id = element_id
        self.point_type = point_type
        self.original_position = position
        self.last_snap = None

        self.resolver.activate()
        stationary = self._current_position(element, _STATIONARY_POINT.get(point_type, ""))
        if stationary is not None:
            self.resolver.start_axis_snap(stationary)
        logger.debug(f"[DRAG] Start {element_id}.{point_type} at {to_list(position)}")
        return True

    def move(self, ray: Ray, pointer: Tuple[float, float], fallback=None) -> Optional[SnapResult]:
        """
        Snap the dragged point and commit it. Returns the snap or None.

        Without a snap the point goes to ``fallback`` (a host supplied plane
        hit) or, if none is given, to where the ray crosses the view plane
        through the current position.
        """
        if not self.is_dragging:
            return None
        snap = self.resolver.resolve(ray, pointer, excluded_element_id=self.element_id)
        self.last_snap = snap
        if snap is not None:
            position = snap.position
        elif fallback is not None:
            position = as_vec3(fallback)
        else:
            position = self._view_plane_hit(ray)
        if position is not None:
            self._commit(position)
        return snap

    def move_to(self, position) -> None:
        """Move without snapping (host supplied position, e.g. a drag plane hit)."""
        if self.is_dragging:
            self.last_snap = None
            self._commit(as_vec3(position))

    def end(self) -> Optional[str]:
        """Finish the drag. Returns the id of a connection created on drop, if any."""
        if not self.is_dragging:
            return None
        connection_id = None
        snap = self.last_snap
        if self.resolver.connection_mode and snap is not None and snap.has_target:
            connection_id = self.graph.create_connection(
                self.element_id, self.point_type, snap.element_id, snap.point_id,
            )
            if connection_id is None:
                logger.warning(f"[DRAG] No connection created for {self.element_id}.{self.point_type}")
        self._reset()
        return connection_id

    def cancel(self) -> None:
        """Drop the drag state. Points already committed stay where they are."""
        if not self.is_dragging:
            return
        logger.debug(f"[DRAG] Cancelled {self.element_id}.{self.point_type}")
        self._reset()

    # -------------------------------------------------------------------------

    def _current_position(self, element: Element, point_type: str) -> Optional[np.ndarray]:
        if element.is_composite:
            recipe = get_recipe(element.recipe)
            if recipe is None:
                return None
            return dict(recipe.control_points(element.params)).get(point_type)
        return element.get_point(point_type)

    def _view_plane_hit(self, ray: Ray) -> Optional[np.ndarray]:
        element = self.store.get_element(self.element_id)
        current = self._current_position(element, self.point_type) if element is not None else None
        if current is None:
            return None
        return ray.at(float(np.dot(current - ray.origin, ray.direction)))

    def _commit(self, position: np.ndarray) -> None:
        self.modifier.update_element_point(self.element_id, self.point_type, position)

    def _reset(self) -> None:
        self.resolver.end_axis_snap()
        self.resolver.deactivate()
        self.element_id = None
        self.point_type = None
        self.original_position = None
        self.last_snap = None


class CreationSession:
    """
    Two-click placement.

    ``target`` is a recipe type (creates a composite through the engine) or a
    linear kind such as ``"beam"``. With ``chain`` the second point of one
    member starts the next one.
    """

    def __init__(self, resolver: SnapResolver, modifier: ElementModifier,
                 target: Union[RecipeType, str], params: Optional[Dict[str, Any]] = None,
                 chain: bool = False):
        self.resolver = resolver
        self.store = modifier.store
        self.engine: ParametricEngine = modifier.engine
        self.target = target
        self.params = dict(params or {})
        self.chain = chain
        self.points: List[np.ndarray] = []
        self.is_creating = False
        self.created: List[Element] = []

    def start(self) -> None:
        self.points = []
        self.is_creating = True
        self.resolver.activate()

    def cancel(self) -> None:
        self.points = []
        self.is_creating = False
        self.resolver.end_axis_snap()
        self.resolver.deactivate()

    def pick(self, ray: Ray, pointer: Tuple[float, float]) -> Optional[Element]:
        """Resolve a snap for the click; falls back to nothing if none is found."""
        snap = self.resolver.resolve(ray, pointer)
        if snap is None:
            return None
        return self.click(snap.position)

    def click(self, point) -> Optional[Element]:
        """Register one click. Returns the created element on the second one."""
        if not self.is_creating:
            return None
        self.points.append(as_vec3(point))
        if len(self.points) == 1:
            self.resolver.start_axis_snap(self.points[0])
            return None

        start, end = self.points[0], self.points[1]
        element = None
        if float(np.linalg.norm(end - start)) < Tolerances.CREATE_MIN_DISTANCE:
            logger.warning("[DRAG] Start and end point coincide, nothing created")
        else:
            element = self._create(start, end)
            if element is not None:
                self.created.append(element)

        self.resolver.end_axis_snap()
        if self.chain and element is not None:
            self.points = [end]
            self.resolver.start_axis_snap(end)
        else:
            self.cancel()
        return element

    def _create(self, start: np.ndarray, end: np.ndarray) -> Optional[Element]:
        recipe = get_recipe(self.target) if self._is_recipe_target() else None
        if recipe is not None:
            params = recipe.params_from_points(start, end, self.params)
            return self.engine.create(recipe.recipe_type, params, self.store)

        if self.target in ElementKind.LINEAR:
            record = {
                "kind": self.target,
                "start": to_list(start),
                "end": to_list(end),
                "profile": self.params.get("profile", "HEA200"),
                "material": self.params.get("material", "S355JR"),
            }
            element = self.store.add_element(record)
            logger.info(f"[DRAG] Created {element.kind} '{element.id}'")
            return element

        logger.error(f"[DRAG] Cannot create '{self.target}'")
        return None

    def _is_recipe_target(self) -> bool:
        if isinstance(self.target, RecipeType):
            return True
        return self.target in {t.value for t in RecipeType}
