"""
SteelCad - Stairs Recipe
========================

Multi-flight stairs built from an ordered segment list. Generation is a fold
over the segments that threads an immutable cursor (position, direction, up):

    cursor0 -> segment 1 -> (children, cursor1) -> segment 2 -> ...

Segment types:
 - flight:           two stringers plus one tread plate per step
 - landing_L:        one landing plate, outgoing direction turned +-90 deg
 - landing_straight: one landing plate, direction unchanged

Child keys are ``<segment id>_<key>`` (e.g. ``seg_1_tread_3``), so a child
keeps its identity as long as its segment id and local key survive.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from modeling.elements import ElementKind
from modeling.geometry_utils import look_at_rotation, normalize, rotate_about_axis, to_list
from modeling.recipes.base import ChildSpec, Recipe, RecipeType

Vec = Tuple[float, float, float]


class SegmentType(Enum):
    FLIGHT = "flight"
    LANDING_L = "landing_L"
    LANDING_STRAIGHT = "landing_straight"


@dataclass(frozen=True)
class Cursor:
    """Where the next segment starts and which way it faces."""
    position: Vec
    direction: Vec
    up: Vec = (0.0, 1.0, 0.0)

    @property
    def pos(self) -> np.ndarray:
        return np.array(self.position, dtype=float)

    @property
    def dir(self) -> np.ndarray:
        return np.array(self.direction, dtype=float)

    @property
    def up_vec(self) -> np.ndarray:
        return np.array(self.up, dtype=float)

    def moved(self, position: np.ndarray, direction: Optional[np.ndarray] = None) -> "Cursor":
        return Cursor(
            position=tuple(to_list(position)),
            direction=tuple(to_list(direction)) if direction is not None else self.direction,
            up=self.up,
        )


SegmentResult = Tuple[Dict[str, ChildSpec], Cursor]


def _plate(material: str, origin: np.ndarray, width: float, height: float,
           thickness: float, cursor: Cursor) -> ChildSpec:
    return {
        "kind": ElementKind.PLATE,
        "material": material,
        "origin": to_list(origin),
        "width": float(width),
        "height": float(height),
        "thickness": float(thickness),
        "rotation": look_at_rotation(cursor.dir, cursor.up_vec),
    }


# =============================================================================
# Segment generators
# =============================================================================

def generate_flight(segment: Dict[str, Any], cursor: Cursor, params: Dict[str, Any]) -> SegmentResult:
    seg = segment.get("params", {})
    step_count = int(seg.get("stepCount", 0))
    total_rise = float(seg.get("totalRise", 0.0))
    run = float(seg.get("run", 0.0))
    if step_count <= 0:
        logger.warning(f"[RECIPE] Flight '{segment.get('id')}' has no steps, skipping")
        return {}, cursor

    step_height = total_rise / step_count
    width = float(params.get("defaultWidth") or 1000.0)
    material = params.get("material") or "S355JR"
    profile = params.get("defaultStringerProfile") or "IPE160"
    thickness = float(params.get("defaultTreadThickness") or 30.0)

    pos, direction, up = cursor.pos, cursor.dir, cursor.up_vec
    right = normalize(np.cross(up, direction))
    if right is None:
        right = np.zeros(3)

    travel = direction * (step_count * run) + up * total_rise
    left_start = pos - right * (width / 2.0)
    right_start = pos + right * (width / 2.0)

    def stringer(a: np.ndarray) -> ChildSpec:
        return {
            "kind": ElementKind.BEAM,
            "profile": profile,
            "material": material,
            "orientation": 0.0,
            "start": to_list(a),
            "end": to_list(a + travel),
        }

    children: Dict[str, ChildSpec] = {
        "leftStringer": stringer(left_start),
        "rightStringer": stringer(right_start),
    }
    for i in range(step_count):
        center = pos + direction * (i * run + run / 2.0) + up * ((i + 1) * step_height)
        children[f"tread_{i}"] = _plate(material, center, width, run, thickness, cursor)

    return children, cursor.moved(pos + travel)


def generate_landing_l(segment: Dict[str, Any], cursor: Cursor, params: Dict[str, Any]) -> SegmentResult:
    seg = segment.get("params", {})
    width = float(seg.get("width") or params.get("defaultWidth") or 1000.0)
    depth = float(seg.get("depth") or 1200.0)
    turn = seg.get("turn", "left")

    pos, direction = cursor.pos, cursor.dir
    center = pos + direction * (depth / 2.0)
    children = {
        "landingPlate": _plate(
            params.get("material") or "S355JR", center, width, depth,
            float(params.get("defaultTreadThickness") or 30.0), cursor,
        ),
    }
    angle = math.pi / 2.0 if turn == "left" else -math.pi / 2.0
    new_direction = rotate_about_axis(direction, cursor.up_vec, angle)
    return children, cursor.moved(pos + direction * depth, new_direction)


def generate_landing_straight(segment: Dict[str, Any], cursor: Cursor, params: Dict[str, Any]) -> SegmentResult:
    seg = segment.get("params", {})
    length = float(seg.get("length") or 1200.0)
    width = float(params.get("defaultWidth") or 1000.0)

    pos, direction = cursor.pos, cursor.dir
    children = {
        "landingPlate": _plate(
            params.get("material") or "S355JR", pos + direction * (length / 2.0), width, length,
            float(params.get("defaultTreadThickness") or 30.0), cursor,
        ),
    }
    return children, cursor.moved(pos + direction * length)


SEGMENT_GENERATORS: Dict[SegmentType, Callable[[Dict[str, Any], Cursor, Dict[str, Any]], SegmentResult]] = {
    SegmentType.FLIGHT: generate_flight,
    SegmentType.LANDING_L: generate_landing_l,
    SegmentType.LANDING_STRAIGHT: generate_landing_straight,
}


# =============================================================================
# Recipe
# =============================================================================

DEFAULT_SEGMENTS = [
    {"type": "flight", "id": "seg_1", "params": {"stepCount": 14, "totalRise": 2800, "run": 280}},
]

# Zwei Laeufe mit Podest, fuer neu gezeichnete Treppen
CREATION_SEGMENTS = [
    {"type": "flight", "id": "seg_1", "params": {"stepCount": 8, "totalRise": 1600, "run": 280}},
    {"type": "landing_L", "id": "seg_2", "params": {"turn": "left", "width": 1000, "depth": 1200}},
    {"type": "flight", "id": "seg_3", "params": {"stepCount": 6, "totalRise": 1200, "run": 280}},
]


class StairsRecipe(Recipe):
    recipe_type = RecipeType.STAIRS
    name = "Stairs"
    DEFAULTS = {
        "defaultWidth": 1000.0,
        "defaultStringerProfile": "IPE160",
        "defaultTreadThickness": 30.0,
        "defaultRiserHeight": 200.0,
        "material": "S355JR",
        "startDirection": [0.0, 0.0, -1.0],
    }

    def initial_cursor(self, params: Dict[str, Any]) -> Cursor:
        start = params.get("start", params.get("startPoint", [0.0, 0.0, 0.0]))
        direction = normalize(np.asarray(params["startDirection"], dtype=float))
        if direction is None:
            direction = np.zeros(3)
        return Cursor(position=tuple(to_list(start)), direction=tuple(to_list(direction)))

    def generate_segments(self, segments: List[Dict[str, Any]], cursor: Cursor,
                          params: Dict[str, Any]) -> Tuple[Dict[str, ChildSpec], Cursor]:
        """Fold the segment list. Returns all children and the final cursor."""
        children: Dict[str, ChildSpec] = {}
        for segment in segments:
            try:
                segment_type = SegmentType(segment.get("type"))
            except ValueError:
                logger.warning(f"[RECIPE] Unknown stairs segment type: {segment.get('type')!r}")
                continue
            seg_children, cursor = SEGMENT_GENERATORS[segment_type](segment, cursor, params)
            for key, spec in seg_children.items():
                children[f"{segment.get('id')}_{key}"] = spec
        return children, cursor

    def generate_child_data(self, params: Dict[str, Any]) -> Dict[str, ChildSpec]:
        p = self.with_defaults(params)
        segments = p.get("segments") or DEFAULT_SEGMENTS
        children, end_cursor = self.generate_segments(segments, self.initial_cursor(p), p)
        if is_enabled("recipe_debug"):
            logger.debug(f"[RECIPE] Stairs: {len(children)} children, end at {end_cursor.position}")
        return children

    def params_from_points(self, start, end, params: Dict[str, Any]) -> Dict[str, Any]:
        merged = self.with_defaults(params)
        s = np.asarray(start, dtype=float)
        direction = normalize(np.asarray(end, dtype=float) - s, Tolerances.DIRECTION_MIN_LENGTH_SQ)
        merged["start"] = to_list(s)
        merged["startDirection"] = to_list(direction) if direction is not None else merged["startDirection"]
        if not merged.get("segments"):
            merged["segments"] = [dict(seg, params=dict(seg["params"])) for seg in CREATION_SEGMENTS]
        return merged

    def move_control_point(self, params: Dict[str, Any], point: str, position) -> Optional[Dict[str, Any]]:
        """``start`` relocates the stairs, ``end`` re-aims the first flight."""
        moved = dict(params)
        target = np.asarray(position, dtype=float)
        if point == "start":
            moved["start"] = to_list(target)
            return moved
        if point == "end":
            start = np.asarray(self.with_defaults(params).get("start", [0.0, 0.0, 0.0]), dtype=float)
            direction = normalize(target - start, Tolerances.DIRECTION_MIN_LENGTH_SQ)
            if direction is None:
                logger.warning("[RECIPE] Stairs end too close to start, direction unchanged")
                return None
            moved["startDirection"] = to_list(direction)
            return moved
        return None

    def control_points(self, params: Dict[str, Any]) -> List[Tuple[str, np.ndarray]]:
        p = self.with_defaults(params)
        cursor = self.initial_cursor(p)
        segments = p.get("segments") or DEFAULT_SEGMENTS
        _, end_cursor = self.generate_segments(segments, cursor, p)
        return [("start", cursor.pos), ("end", end_cursor.pos)]
