"""
SteelCad - Box Frame Recipe

Two columns, a top beam and a bottom beam spanning start -> end.
Y is up.
"""

from typing import Any, Dict

import numpy as np

from modeling.elements import ElementKind
from modeling.geometry_utils import plan_orientation_deg, to_list
from modeling.recipes.base import ChildSpec, Recipe, RecipeType


class BoxFrameRecipe(Recipe):
    recipe_type = RecipeType.BOXFRAME
    name = "Box Frame"
    DEFAULTS = {
        "height": 3000.0,
        "columnProfile": "HEA160",
        "beamProfile": "IPE160",
        "material": "S355JR",
        "alignColumns": True,
    }

    def column_orientation(self, start: np.ndarray, end: np.ndarray, align: bool) -> float:
        if not align:
            return 0.0
        angle = plan_orientation_deg(start, end)
        return angle if angle is not None else 0.0

    def generate_child_data(self, params: Dict[str, Any]) -> Dict[str, ChildSpec]:
        p = self.with_defaults(params)
        start = np.asarray(p["start"], dtype=float)
        end = np.asarray(p["end"], dtype=float)
        rise = np.array([0.0, float(p["height"]), 0.0])
        orientation = self.column_orientation(start, end, bool(p["alignColumns"]))

        def member(kind, profile, a, b, orient=0.0) -> ChildSpec:
            return {
                "kind": kind,
                "profile": profile,
                "material": p["material"],
                "orientation": orient,
                "start": to_list(a),
                "end": to_list(b),
            }

        return {
            "column1": member(ElementKind.COLUMN, p["columnProfile"], start, start + rise, orientation),
            "column2": member(ElementKind.COLUMN, p["columnProfile"], end, end + rise, orientation),
            "topBeam": member(ElementKind.BEAM, p["beamProfile"], start + rise, end + rise),
            "bottomBeam": member(ElementKind.BEAM, p["beamProfile"], start, end),
        }
