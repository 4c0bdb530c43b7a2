"""
SteelCad - Goal Post Recipe

Two columns and one beam across their tops. A column's top may only be
stretched vertically, so offsets on a column ``end`` keep just their Y part.
"""

from typing import Any, Dict

import numpy as np

from modeling.elements import ElementKind
from modeling.geometry_utils import to_list
from modeling.recipes.base import ChildSpec, Recipe, RecipeType

_COLUMN_KEYS = ("column1", "column2")


class GoalPostRecipe(Recipe):
    recipe_type = RecipeType.GOALPOST
    name = "Goal Post"
    DEFAULTS = {
        "height": 3000.0,
        "columnProfile": "HEA160",
        "beamProfile": "IPE160",
        "material": "S355JR",
    }

    def generate_child_data(self, params: Dict[str, Any]) -> Dict[str, ChildSpec]:
        p = self.with_defaults(params)
        start = np.asarray(p["start"], dtype=float)
        end = np.asarray(p["end"], dtype=float)
        rise = np.array([0.0, float(p["height"]), 0.0])

        def column(base: np.ndarray) -> ChildSpec:
            return {
                "kind": ElementKind.COLUMN,
                "profile": p["columnProfile"],
                "material": p["material"],
                "orientation": 0.0,
                "start": to_list(base),
                "end": to_list(base + rise),
            }

        return {
            "column1": column(start),
            "column2": column(end),
            "beam": {
                "kind": ElementKind.BEAM,
                "profile": p["beamProfile"],
                "material": p["material"],
                "orientation": 0.0,
                "start": to_list(start + rise),
                "end": to_list(end + rise),
            },
        }

    def adjust_offset(self, component_key: str, point: str, offset: np.ndarray) -> np.ndarray:
        if component_key in _COLUMN_KEYS and point == "end":
            return np.array([0.0, float(offset[1]), 0.0])
        return offset
