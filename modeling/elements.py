"""
SteelCad - Element Data Model
=============================

Element records held by the geometry store: linear members (beam, column,
brace, ...), plates, grids and composites (group/component) that own
parametrically generated children.

Classes:
 - ElementKind: Well-known kinds and their classification helpers
 - Element: Dataclass for one element record
 - ConnectionPoint: Named, resolvable location on an element

Usage:
    from modeling.elements import Element

    beam = Element(id="E1", kind="beam", start=[0, 0, 0], end=[1000, 0, 0])
    beam.get_point("mid")          # array([500., 0., 0.])
    beam.point_patch("end", [1000, 500, 0])   # {"end": [1000.0, 500.0, 0.0]}
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from modeling.geometry_utils import as_vec3, matrix_from_rotation_record, midpoint, to_list


class ElementKind:
    """Kind names used across the core. Kinds are free-form strings in records."""
    BEAM = "beam"
    COLUMN = "column"
    BRACE = "brace"
    MAIN_BEAM = "mainBeam"
    SECONDARY_BEAM = "secondaryBeam"
    PLATE = "plate"
    GRID = "grid"
    FOUNDATION = "foundation"
    CONNECTION = "connection"
    DETAIL = "detail"
    GROUP = "group"
    COMPONENT = "component"

    LINEAR = frozenset({BEAM, COLUMN, BRACE, MAIN_BEAM, SECONDARY_BEAM})
    COMPOSITE = frozenset({GROUP, COMPONENT})


# Punkte die direkt als Feld am Element liegen
POINT_FIELDS = ("start", "end", "origin")

# Camel-case record keys that differ from the dataclass field names
_RECORD_KEYS = {
    "parent_id": "parentId",
    "component_key": "componentKey",
    "connection_points": "connectionPoints",
}


@dataclass
class ConnectionPoint:
    """A named location on an element with the connection type it suggests."""
    id: str
    type: str
    position: np.ndarray

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "position": to_list(self.position)}


@dataclass
class Element:
    """
    One element record.

    Linear members use ``start``/``end``; plates use ``origin`` (box center),
    ``width``/``height``/``thickness`` and ``rotation``. Composites carry
    ``recipe`` and ``params`` and list their ``children`` ids; every child
    stores ``parent_id`` and a stable ``component_key``.

    ``offsets`` maps a point name to the manual offset (added to the ideal
    position on every regeneration). ``connections`` maps a point name to the
    reciprocal connection reference written by the connection graph.
    """
    id: str
    kind: str = ElementKind.BEAM
    name: str = ""

    # Geometrie
    start: Optional[List[float]] = None
    end: Optional[List[float]] = None
    origin: Optional[List[float]] = None
    width: Optional[float] = None
    height: Optional[float] = None
    thickness: Optional[float] = None
    rotation: Optional[Dict[str, Any]] = None
    orientation: float = 0.0

    profile: Optional[str] = None
    material: Optional[str] = None

    # Hierarchie
    parent_id: Optional[str] = None
    children: List[str] = field(default_factory=list)
    component_key: Optional[str] = None
    recipe: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)

    # Verbindungen / Offsets
    connections: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    offsets: Dict[str, List[float]] = field(default_factory=dict)
    connection_points: List[Dict[str, Any]] = field(default_factory=list)
    attachments: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    @property
    def is_linear(self) -> bool:
        return self.kind in ElementKind.LINEAR

    @property
    def is_composite(self) -> bool:
        return self.kind in ElementKind.COMPOSITE

    @property
    def is_plate(self) -> bool:
        return self.kind == ElementKind.PLATE

    # -------------------------------------------------------------------------
    # Connection points
    # -------------------------------------------------------------------------

    def get_point(self, point: str) -> Optional[np.ndarray]:
        """
        Resolve a named point to a world position.

        ``start``/``end``/``origin`` read the field, ``mid`` averages start
        and end, anything else must be a declared custom connection point.
        Unknown names resolve to None.
        """
        if point in POINT_FIELDS:
            return as_vec3(getattr(self, point))
        if point == "mid":
            a, b = as_vec3(self.start), as_vec3(self.end)
            if a is None or b is None:
                return None
            return midpoint(a, b)
        for cp in self.connection_points:
            if cp.get("id") == point:
                return as_vec3(cp.get("position"))
        return None

    def has_point(self, point: str) -> bool:
        return self.get_point(point) is not None

    def point_patch(self, point: str, position) -> Optional[Dict[str, Any]]:
        """
        Field patch that moves ``point`` to ``position``.

        Moving ``mid`` translates the whole member; moving a custom point
        rewrites its entry in ``connection_points``.
        """
        target = as_vec3(position)
        if target is None:
            return None
        if point in POINT_FIELDS:
            if getattr(self, point) is None:
                return None
            return {point: to_list(target)}
        if point == "mid":
            current = self.get_point("mid")
            if current is None:
                return None
            delta = target - current
            return {
                "start": to_list(as_vec3(self.start) + delta),
                "end": to_list(as_vec3(self.end) + delta),
            }
        points = copy.deepcopy(self.connection_points)
        for cp in points:
            if cp.get("id") == point:
                cp["position"] = to_list(target)
                return {"connection_points": points}
        return None

    def get_connection_points(self) -> List[ConnectionPoint]:
        """
        Declared connection points, or the default set for linear members
        (start/end as moment points, mid as a pinned point).
        """
        if self.connection_points:
            result = []
            for cp in self.connection_points:
                pos = as_vec3(cp.get("position"))
                if pos is None:
                    logger.warning(f"[ELEMENT] {self.id}: connection point '{cp.get('id')}' has no position")
                    continue
                result.append(ConnectionPoint(id=cp["id"], type=cp.get("type", "moment"), position=pos))
            return result

        if self.is_linear and self.start is not None and self.end is not None:
            return [
                ConnectionPoint("start", "moment", self.get_point("start")),
                ConnectionPoint("end", "moment", self.get_point("end")),
                ConnectionPoint("mid", "pinned", self.get_point("mid")),
            ]
        return []

    # -------------------------------------------------------------------------
    # Derived geometry (for snapping)
    # -------------------------------------------------------------------------

    def endpoints(self) -> List[Tuple[str, np.ndarray]]:
        if self.start is None or self.end is None:
            return []
        return [("start", as_vec3(self.start)), ("end", as_vec3(self.end))]

    def corners(self) -> List[np.ndarray]:
        """Eight box corners of a plate in world coordinates."""
        if not self.is_plate or self.origin is None:
            return []
        hw = (self.width or 0.0) / 2.0
        hh = (self.height or 0.0) / 2.0
        ht = (self.thickness or 0.0) / 2.0
        rot = matrix_from_rotation_record(self.rotation)
        center = as_vec3(self.origin)
        result = []
        for sx in (-1.0, 1.0):
            for sy in (-1.0, 1.0):
                for sz in (-1.0, 1.0):
                    result.append(center + rot @ np.array([sx * hw, sy * hh, sz * ht]))
        return result

    def edges(self) -> List[Tuple[np.ndarray, np.ndarray]]:
        """Axis segment of a linear member, or the twelve box edges of a plate."""
        if self.start is not None and self.end is not None:
            return [(as_vec3(self.start), as_vec3(self.end))]
        corners = self.corners()
        if not corners:
            return []
        result = []
        # corners are ordered by (sx, sy, sz) bits; edges differ in exactly one bit
        for i in range(8):
            for bit in (1, 2, 4):
                j = i ^ bit
                if j > i:
                    result.append((corners[i], corners[j]))
        return result

    # -------------------------------------------------------------------------
    # Offsets
    # -------------------------------------------------------------------------

    def get_offset(self, point: str) -> np.ndarray:
        offset = as_vec3(self.offsets.get(point))
        return offset if offset is not None else np.zeros(3)

    # -------------------------------------------------------------------------
    # Patching
    # -------------------------------------------------------------------------

    def apply_patch(self, patch: Dict[str, Any]) -> List[str]:
        """
        Write ``patch`` onto the record. Keys may be field names or record
        keys (``parentId``, ``startOffset`` ...). Returns the fields changed.
        """
        known = {f.name for f in fields(self)}
        changed = []
        for key, value in patch.items():
            name = _field_name(key)
            if name.endswith("Offset") and name[:-6] in known:
                if value is None:
                    self.offsets.pop(name[:-6], None)
                else:
                    self.offsets[name[:-6]] = to_list(value)
                changed.append("offsets")
                continue
            if name == "id" or name not in known:
                logger.warning(f"[ELEMENT] {self.id}: ignoring unknown field '{key}'")
                continue
            if name in POINT_FIELDS and value is not None:
                value = to_list(value)
            setattr(self, name, copy.deepcopy(value))
            changed.append(name)
        return changed

    def translate(self, delta) -> Dict[str, Any]:
        """Patch that moves every point of this element by ``delta``."""
        d = as_vec3(delta)
        patch: Dict[str, Any] = {}
        for name in POINT_FIELDS:
            p = as_vec3(getattr(self, name))
            if p is not None:
                patch[name] = to_list(p + d)
        if self.connection_points:
            points = copy.deepcopy(self.connection_points)
            for cp in points:
                pos = as_vec3(cp.get("position"))
                if pos is not None:
                    cp["position"] = to_list(pos + d)
            patch["connection_points"] = points
        return patch

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        Persisted record. Offsets are flattened to ``<point>Offset`` keys,
        empty optional fields are left out.
        """
        data: Dict[str, Any] = {"id": self.id, "kind": self.kind}
        for f in fields(self):
            if f.name in ("id", "kind", "offsets"):
                continue
            value = getattr(self, f.name)
            if value is None or value == [] or value == {} or value == "":
                continue
            data[_RECORD_KEYS.get(f.name, f.name)] = copy.deepcopy(value)
        for point, offset in self.offsets.items():
            data[f"{point}Offset"] = list(offset)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Element":
        if "id" not in data:
            raise ValueError("Element record needs an 'id'")
        element = cls(id=data["id"], kind=data.get("kind", ElementKind.BEAM))
        patch = {k: v for k, v in data.items() if k not in ("id", "kind")}
        element.apply_patch(patch)
        return element

    def copy(self) -> "Element":
        return copy.deepcopy(self)


def _field_name(key: str) -> str:
    for name, record_key in _RECORD_KEYS.items():
        if key == record_key:
            return name
    return key
