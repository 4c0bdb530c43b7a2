"""
SteelCad - Parametric Recipes
=============================

Composite assemblies (box frame, goal post, stairs) generated from
parameters, with manual per-child offsets that survive regeneration.
"""

from .base import Recipe, RecipeType
from .engine import ParametricEngine, get_recipe, RECIPES
from .stairs import Cursor, SegmentType
