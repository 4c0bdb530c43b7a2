"""
SteelCad - Recipe Base Classes
==============================

Abstrakte Basisklasse fuer parametrische Rezepte.

A recipe turns the parameters of a composite into "ideal" child specs:

    generate_child_data(params) -> {component_key: child_spec}

The function is pure. Identical params always give identical specs and
nothing is read from or written to the store. Manual edits are kept as
per-point offsets on the children and handled by the engine.

Child spec keys:
    kind, profile, material, orientation, start, end       (linear members)
    kind, material, origin, width, height, thickness, rotation  (plates)
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

ChildSpec = Dict[str, Any]

# Punkte eines Kind-Rezepts, die einen Offset tragen koennen
OFFSET_POINTS = ("start", "end", "origin")


class RecipeType(Enum):
    """Composite recipes known to the engine."""
    BOXFRAME = "boxframe"
    GOALPOST = "goalpost"
    STAIRS = "stairs"


class Recipe(ABC):
    """
    Base class for composite recipes.

    Subclasses set ``recipe_type``, ``name`` and ``DEFAULTS`` and implement
    :meth:`generate_child_data`.
    """

    recipe_type: RecipeType
    name: str = ""
    DEFAULTS: Dict[str, Any] = {}

    def with_defaults(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Defaults overlaid with ``params``. Never mutates the input."""
        merged = dict(self.DEFAULTS)
        merged.update({k: v for k, v in params.items() if v is not None})
        return merged

    @abstractmethod
    def generate_child_data(self, params: Dict[str, Any]) -> Dict[str, ChildSpec]:
        """Ideal child specs for ``params``, keyed by stable component key."""

    def adjust_offset(self, component_key: str, point: str, offset: np.ndarray) -> np.ndarray:
        """Hook to restrict an offset before it is stored. Default: unchanged."""
        return offset

    def params_from_points(self, start, end, params: Dict[str, Any]) -> Dict[str, Any]:
        """Group params for a composite placed with two clicks."""
        merged = self.with_defaults(params)
        merged["start"] = [float(v) for v in start]
        merged["end"] = [float(v) for v in end]
        return merged

    def move_control_point(self, params: Dict[str, Any], point: str, position) -> Optional[Dict[str, Any]]:
        """Params after dragging control point ``point``; None if it is not one."""
        if point not in ("start", "end"):
            return None
        moved = dict(params)
        moved[point] = [float(v) for v in position]
        return moved

    def control_points(self, params: Dict[str, Any]) -> List[Tuple[str, np.ndarray]]:
        """Draggable defining points of the composite."""
        result = []
        for name in ("start", "end"):
            if params.get(name) is not None:
                result.append((name, np.asarray(params[name], dtype=float)))
        return result


def ideal_point(spec: Optional[ChildSpec], point: str) -> Optional[np.ndarray]:
    if not spec or spec.get(point) is None:
        return None
    return np.asarray(spec[point], dtype=float)
