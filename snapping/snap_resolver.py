"""
SteelCad - Snap Resolver
========================

Picks one snap target under the pointer out of competing geometric
candidates.

Candidate sources and priorities (lower wins):
    0  intersections of lines from different sources, connection points
    1  member endpoints, plate corners
    2  grid intersections, direct axis snaps
    3  grid lines, element edges

A candidate is accepted only within ``Tolerances.SNAP_WORLD`` of the picking
ray *and* ``Tolerances.SNAP_SCREEN`` of the pointer (NDC). Among accepted
candidates the lowest priority wins, ties go to the smaller screen distance.

With axis snapping active (``start_axis_snap``) the winner is projected onto
the world axis closest to the ray and escalated to priority 0; without a
winner the pointer snaps onto that axis directly.

The resolver never renders. It reports the result through the optional
``on_indicator(position, description)`` callback.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set, Tuple

import numpy as np
from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from modeling.connection_graph import ConnectionGraph
from modeling.element_store import ElementStore
from modeling.elements import ElementKind
from modeling.geometry_utils import (
    WORLD_AXES, as_vec3, closest_point_on_segment_to_ray,
    distance_sq_point_to_ray, line_line_intersection,
)
from modeling.grid import StructuralGrid
from snapping.camera import Ray


class SnapMode(Enum):
    GRID_LINES = "gridLines"
    GRID_INTERSECTIONS = "gridIntersections"
    ENDPOINTS = "endpoints"
    EDGES = "edges"
    CORNERS = "corners"
    AXIS = "axis"
    CONNECTIONS = "connections"


DEFAULT_SNAP_MODES = frozenset({SnapMode.GRID_LINES, SnapMode.ENDPOINTS})


class SnapSource:
    GRID = "grid"
    EDGE = "edge"
    ELEMENT = "element"
    CONNECTION = "connection"
    INTERSECTION = "intersection"
    AXIS = "axis"


class SnapPriority:
    INTERSECTION = 0
    CONNECTION = 0
    ENDPOINT = 1
    CORNER = 1
    GRID_INTERSECTION = 2
    AXIS = 2
    GRID_LINE = 3
    EDGE = 3


@dataclass
class PointCandidate:
    position: np.ndarray
    priority: int
    description: str
    source: str
    element_id: Optional[str] = None
    point_id: Optional[str] = None


@dataclass
class LineCandidate:
    start: np.ndarray
    end: np.ndarray
    priority: int
    description: str
    source: str
    element_id: Optional[str] = None


@dataclass
class SnapResult:
    position: np.ndarray
    description: str
    priority: int
    screen_distance: float = 0.0
    source: str = ""
    element_id: Optional[str] = None   # Ziel-Element (nur Punkt-Kandidaten)
    point_id: Optional[str] = None

    @property
    def has_target(self) -> bool:
        return bool(self.element_id and self.point_id)


GridProvider = Callable[[], Iterable[StructuralGrid]]
IndicatorCallback = Callable[[Optional[np.ndarray], str], None]


class SnapResolver:
    """
    Snap resolution against the element store, the connection graph and the
    structural grids.
    """

    def __init__(self, store: ElementStore, graph: Optional[ConnectionGraph] = None,
                 grids: Optional[GridProvider] = None,
                 on_indicator: Optional[IndicatorCallback] = None):
        self.store = store
        self.graph = graph
        self.grids = grids or (lambda: [])
        self.on_indicator = on_indicator

        self.snap_modes: Set[SnapMode] = set(DEFAULT_SNAP_MODES)
        self.is_active = False
        self.connection_mode = False
        self.axis_origin: Optional[np.ndarray] = None

    # =========================================================================
    # State
    # =========================================================================

    def activate(self) -> None:
        self.is_active = True

    def deactivate(self) -> None:
        self.is_active = False
        self._hide_indicator()

    def set_mode(self, mode: SnapMode, enabled: bool) -> None:
        if enabled:
            self.snap_modes.add(mode)
        else:
            self.snap_modes.discard(mode)

    def set_connection_mode(self, enabled: bool) -> None:
        self.connection_mode = bool(enabled)
        logger.debug(f"[SNAP] Connection mode: {self.connection_mode}")

    def start_axis_snap(self, origin) -> None:
        """Snap relative to the world axes through ``origin`` (only with AXIS mode on)."""
        if SnapMode.AXIS not in self.snap_modes:
            return
        self.axis_origin = as_vec3(origin)

    def end_axis_snap(self) -> None:
        self.axis_origin = None

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(self, ray: Ray, pointer: Tuple[float, float],
                enabled_modes: Optional[Iterable[SnapMode]] = None,
                excluded_element_id: Optional[str] = None) -> Optional[SnapResult]:
        """Best snap for ``ray`` / ``pointer`` or None."""
        if not self.is_active:
            self._hide_indicator()
            return None

        modes = set(enabled_modes) if enabled_modes is not None else self.snap_modes
        point_candidates = self.get_point_candidates(excluded_element_id, modes)
        line_candidates = self.get_line_candidates(excluded_element_id, modes)
        intersection_candidates = self.get_intersection_candidates(line_candidates)

        if is_enabled("snap_debug"):
            logger.debug(
                f"[SNAP] Candidates: {len(point_candidates)} points, {len(line_candidates)} lines, "
                f"{len(intersection_candidates)} intersections"
            )

        best: Optional[SnapResult] = None
        for candidate in point_candidates + intersection_candidates:
            best = self._consider(best, ray, pointer, candidate)
        for line in line_candidates:
            on_line, _ = closest_point_on_segment_to_ray(ray.origin, ray.direction, line.start, line.end)
            best = self._consider(best, ray, pointer, PointCandidate(
                on_line, line.priority, line.description, line.source, line.element_id,
            ))

        if SnapMode.AXIS in modes and self.axis_origin is not None:
            best = self._apply_axis(best, ray, pointer)

        if best is None:
            self._hide_indicator()
            return None
        if self.on_indicator:
            self.on_indicator(best.position, best.description)
        return best

    def _consider(self, best: Optional[SnapResult], ray: Ray, pointer: Tuple[float, float],
                  candidate: PointCandidate) -> Optional[SnapResult]:
        if candidate.priority > Tolerances.SNAP_MAX_PRIORITY:
            return best
        if best is not None and candidate.priority > best.priority:
            return best

        world_sq = distance_sq_point_to_ray(candidate.position, ray.origin, ray.direction)
        if world_sq > Tolerances.SNAP_WORLD ** 2:
            return best

        screen = self._screen_distance(ray, candidate.position, pointer)
        if screen > Tolerances.SNAP_SCREEN:
            return best

        if best is None or candidate.priority < best.priority or screen < best.screen_distance:
            return SnapResult(
                position=np.array(candidate.position, dtype=float),
                description=candidate.description,
                priority=candidate.priority,
                screen_distance=screen,
                source=candidate.source,
                element_id=candidate.element_id,
                point_id=candidate.point_id,
            )
        return best

    @staticmethod
    def _screen_distance(ray: Ray, point: np.ndarray, pointer: Tuple[float, float]) -> float:
        if ray.camera is None:
            return 0.0
        return ray.camera.screen_distance(point, pointer)

    # -------------------------------------------------------------------------
    # Axis
    # -------------------------------------------------------------------------

    def _closest_axis(self, ray: Ray) -> Tuple[str, np.ndarray, np.ndarray]:
        best = None
        for name, axis in WORLD_AXES.items():
            start = self.axis_origin - axis * Tolerances.AXIS_EXTENT
            end = self.axis_origin + axis * Tolerances.AXIS_EXTENT
            _, dist_sq = closest_point_on_segment_to_ray(ray.origin, ray.direction, start, end)
            if best is None or dist_sq < best[0]:
                best = (dist_sq, name, start, end)
        return best[1], best[2], best[3]

    def _apply_axis(self, best: Optional[SnapResult], ray: Ray,
                    pointer: Tuple[float, float]) -> Optional[SnapResult]:
        name, start, end = self._closest_axis(ray)

        if best is not None:
            axis_index = "XYZ".index(name)
            projected = self.axis_origin.copy()
            projected[axis_index] = best.position[axis_index]
            moved = float(np.linalg.norm(projected - best.position)) > Tolerances.COMPARE_POINT
            return SnapResult(
                position=projected,
                description=f"{best.description} (On {name} Axis)",
                priority=0,
                screen_distance=best.screen_distance,
                source=best.source,
                # projected away from the target: no longer a connection target
                element_id=None if moved else best.element_id,
                point_id=None if moved else best.point_id,
            )

        on_axis, _ = closest_point_on_segment_to_ray(ray.origin, ray.direction, start, end)
        return self._consider(None, ray, pointer, PointCandidate(
            on_axis, SnapPriority.AXIS, f"Axis {name}", SnapSource.AXIS,
        ))

    # =========================================================================
    # Candidates
    # =========================================================================

    def _linked_to_excluded(self, element_id: str, point_id: str, excluded_element_id: Optional[str]) -> bool:
        if self.graph is None or not excluded_element_id:
            return False
        return self.graph.is_point_connected_to_element(element_id, point_id, excluded_element_id)

    def get_point_candidates(self, excluded_element_id: Optional[str] = None,
                             modes: Optional[Set[SnapMode]] = None) -> List[PointCandidate]:
        modes = self.snap_modes if modes is None else modes
        candidates: List[PointCandidate] = []
        elements = [e for e in self.store.get_all_elements() if e.id != excluded_element_id]

        if SnapMode.ENDPOINTS in modes:
            for element in elements:
                if not element.is_linear:
                    continue
                for point_id, position in element.endpoints():
                    if self._linked_to_excluded(element.id, point_id, excluded_element_id):
                        continue
                    candidates.append(PointCandidate(
                        position, SnapPriority.ENDPOINT, "Endpoint", SnapSource.ELEMENT, element.id, point_id,
                    ))

        if SnapMode.CORNERS in modes:
            for element in elements:
                for corner in element.corners():
                    candidates.append(PointCandidate(
                        corner, SnapPriority.CORNER, "Corner", SnapSource.ELEMENT, element.id,
                    ))

        if SnapMode.GRID_INTERSECTIONS in modes:
            for grid in self.grids():
                for ix in grid.intersections():
                    candidates.append(PointCandidate(
                        ix.position, SnapPriority.GRID_INTERSECTION, "Grid Intersection", SnapSource.GRID,
                    ))

        if SnapMode.CONNECTIONS in modes:
            for element in elements:
                for cp in element.get_connection_points():
                    if self._linked_to_excluded(element.id, cp.id, excluded_element_id):
                        continue
                    candidates.append(PointCandidate(
                        cp.position, SnapPriority.CONNECTION, f"{cp.type} Connection Point",
                        SnapSource.CONNECTION, element.id, cp.id,
                    ))
        return candidates

    def get_line_candidates(self, excluded_element_id: Optional[str] = None,
                            modes: Optional[Set[SnapMode]] = None) -> List[LineCandidate]:
        modes = self.snap_modes if modes is None else modes
        candidates: List[LineCandidate] = []

        if SnapMode.GRID_LINES in modes:
            for grid in self.grids():
                for line in grid.lines():
                    candidates.append(LineCandidate(
                        line.start, line.end, SnapPriority.GRID_LINE, "Grid Line", SnapSource.GRID,
                    ))

        if SnapMode.EDGES in modes:
            for element in self.store.get_all_elements():
                if element.id == excluded_element_id or element.kind == ElementKind.GRID:
                    continue
                for a, b in element.edges():
                    candidates.append(LineCandidate(
                        a, b, SnapPriority.EDGE, "Edge", SnapSource.EDGE, element.id,
                    ))
        return candidates

    def get_intersection_candidates(self, lines: List[LineCandidate]) -> List[PointCandidate]:
        """Pairwise intersections of lines from different sources."""
        result: List[PointCandidate] = []
        for i, first in enumerate(lines):
            for second in lines[i + 1:]:
                if first.source == second.source:
                    continue
                point = line_line_intersection(first.start, first.end, second.start, second.end)
                if point is None:
                    continue
                result.append(PointCandidate(
                    point, SnapPriority.INTERSECTION,
                    f"Intersection: {first.description} / {second.description}",
                    SnapSource.INTERSECTION,
                ))
        return result

    # -------------------------------------------------------------------------

    def _hide_indicator(self) -> None:
        if self.on_indicator:
            self.on_indicator(None, "")
