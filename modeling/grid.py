"""
SteelCad - Structural Grid

Rectangular structural grid: spacings accumulate into line coordinates,
levels are absolute. Produces grid lines (for line snapping), grid
intersections (for point snapping) and a ``grid`` element whose declared
connection points are the intersections, so beams can be connected to it.

Record format (as stored in the project):
    {
        "id": "grid-1",
        "origin": [0, 0, 0],
        "rotation": {"type": "Euler", "order": "XYZ", "values": [-90, 0, 0], "units": "degrees"},
        "xSpacings": [0, 6000, 6000], "xLabels": ["A", "B", "C"],
        "ySpacings": [0, 5000],       "yLabels": ["1", "2"],
        "zLevels": [0, 3000],         "zLabels": ["+0.00", "+3.00"],
        "xExtensions": [1000, 1000], ...
    }
"""

from dataclasses import dataclass, field
from itertools import accumulate
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from modeling.elements import Element, ElementKind
from modeling.geometry_utils import as_vec3, matrix_from_rotation_record, to_list


@dataclass
class GridLine:
    start: np.ndarray
    end: np.ndarray
    axis: str       # "X", "Y" or "Z": which coordinate the line is pinned by
    label: str


@dataclass
class GridIntersection:
    position: np.ndarray
    labels: Tuple[str, str, str]

    @property
    def point_id(self) -> str:
        return "/".join(self.labels)


def _labels(labels: List[str], count: int, prefix: str) -> List[str]:
    labels = list(labels or [])
    return [labels[i] if i < len(labels) else f"{prefix}{i + 1}" for i in range(count)]


@dataclass
class StructuralGrid:
    """Grid definition and its derived geometry."""
    id: str = "grid-1"
    origin: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: Optional[Dict[str, Any]] = None
    x_spacings: List[float] = field(default_factory=list)
    y_spacings: List[float] = field(default_factory=list)
    z_levels: List[float] = field(default_factory=lambda: [0.0])
    x_labels: List[str] = field(default_factory=list)
    y_labels: List[str] = field(default_factory=list)
    z_labels: List[str] = field(default_factory=list)
    x_extensions: Tuple[float, float] = (0.0, 0.0)
    y_extensions: Tuple[float, float] = (0.0, 0.0)
    z_extensions: Tuple[float, float] = (0.0, 0.0)

    # -------------------------------------------------------------------------
    # Coordinates
    # -------------------------------------------------------------------------

    @property
    def x_coords(self) -> List[float]:
        return list(accumulate(float(s) for s in self.x_spacings))

    @property
    def y_coords(self) -> List[float]:
        return list(accumulate(float(s) for s in self.y_spacings))

    @property
    def z_coords(self) -> List[float]:
        return [float(z) for z in self.z_levels]

    def to_world(self, local) -> np.ndarray:
        return as_vec3(self.origin) + matrix_from_rotation_record(self.rotation) @ as_vec3(local)

    def coordinates_by_label(self) -> Dict[str, Dict[str, float]]:
        return {
            "x": dict(zip(_labels(self.x_labels, len(self.x_coords), "X"), self.x_coords)),
            "y": dict(zip(_labels(self.y_labels, len(self.y_coords), "Y"), self.y_coords)),
            "z": dict(zip(_labels(self.z_labels, len(self.z_coords), "Z"), self.z_coords)),
        }

    def position_at(self, x_label: str, y_label: str, z_label: str) -> Optional[np.ndarray]:
        """World position of a labelled intersection, or None for unknown labels."""
        coords = self.coordinates_by_label()
        try:
            local = (coords["x"][x_label], coords["y"][y_label], coords["z"][z_label])
        except KeyError:
            logger.warning(f"[GRID] {self.id}: unknown intersection {x_label}/{y_label}/{z_label}")
            return None
        return self.to_world(local)

    # -------------------------------------------------------------------------
    # Derived geometry
    # -------------------------------------------------------------------------

    def _bounds(self, coords: List[float], ext: Tuple[float, float]) -> Tuple[float, float]:
        low = min(coords) if coords else 0.0
        high = max(coords) if coords else 0.0
        return low - ext[0], high + ext[1]

    def lines(self) -> List[GridLine]:
        """Lines on every level along both plan directions, plus verticals at each (x, y)."""
        xs, ys, zs = self.x_coords, self.y_coords, self.z_coords
        x_names = _labels(self.x_labels, len(xs), "X")
        y_names = _labels(self.y_labels, len(ys), "Y")
        min_x, max_x = self._bounds(xs, self.x_extensions)
        min_y, max_y = self._bounds(ys, self.y_extensions)
        min_z, max_z = self._bounds(zs, self.z_extensions)

        result: List[GridLine] = []
        for z in zs:
            for y, name in zip(ys, y_names):
                result.append(GridLine(self.to_world((min_x, y, z)), self.to_world((max_x, y, z)), "Y", name))
            for x, name in zip(xs, x_names):
                result.append(GridLine(self.to_world((x, min_y, z)), self.to_world((x, max_y, z)), "X", name))
        if max_z > min_z:
            for x, x_name in zip(xs, x_names):
                for y, y_name in zip(ys, y_names):
                    result.append(GridLine(
                        self.to_world((x, y, min_z)), self.to_world((x, y, max_z)), "Z", f"{x_name}-{y_name}"
                    ))
        return result

    def intersections(self) -> List[GridIntersection]:
        coords = self.coordinates_by_label()
        result = []
        for z_name, z in coords["z"].items():
            for x_name, x in coords["x"].items():
                for y_name, y in coords["y"].items():
                    result.append(GridIntersection(self.to_world((x, y, z)), (x_name, y_name, z_name)))
        return result

    def to_element(self) -> Element:
        """``grid`` element exposing every intersection as a connection point."""
        return Element(
            id=self.id,
            kind=ElementKind.GRID,
            origin=list(self.origin),
            connection_points=[
                {"id": ix.point_id, "type": "grid", "position": to_list(ix.position)}
                for ix in self.intersections()
            ],
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "origin": list(self.origin),
            "xSpacings": list(self.x_spacings),
            "ySpacings": list(self.y_spacings),
            "zLevels": list(self.z_levels),
            "xLabels": list(self.x_labels),
            "yLabels": list(self.y_labels),
            "zLabels": list(self.z_labels),
            "xExtensions": list(self.x_extensions),
            "yExtensions": list(self.y_extensions),
            "zExtensions": list(self.z_extensions),
        }
        if self.rotation:
            data["rotation"] = dict(self.rotation)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructuralGrid":
        return cls(
            id=data.get("id", "grid-1"),
            origin=list(data.get("origin", [0.0, 0.0, 0.0])),
            rotation=data.get("rotation"),
            x_spacings=list(data.get("xSpacings", [])),
            y_spacings=list(data.get("ySpacings", [])),
            z_levels=list(data.get("zLevels", [0.0])),
            x_labels=list(data.get("xLabels", [])),
            y_labels=list(data.get("yLabels", [])),
            z_labels=list(data.get("zLabels", [])),
            x_extensions=tuple(data.get("xExtensions", (0.0, 0.0))),
            y_extensions=tuple(data.get("yExtensions", (0.0, 0.0))),
            z_extensions=tuple(data.get("zExtensions", (0.0, 0.0))),
        )
