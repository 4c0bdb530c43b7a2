"""
SteelCad - Project
==================

One modeling session: event bus, element store, connection graph, recipe
engine, element modifier and the structural grids, wired together.

Persisted project dict:
    {
        "meta":        {app_name, version, schema_version, ...},
        "elements":    [element record, ...],
        "connections": [connection record, ...],
        "grids":       [grid record, ...],
    }

Elements are loaded before connections so that the graph can rebuild its
element index against existing records.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from config.version import SCHEMA_VERSION, get_version_info
from modeling.connection_graph import ConnectionGraph
from modeling.element_modifier import ElementModifier
from modeling.element_store import ElementStore
from modeling.events import EventBus
from modeling.grid import StructuralGrid
from modeling.recipes import ParametricEngine


class Project:
    """Container for all model state of one session."""

    def __init__(self, name: str = "Untitled"):
        self.name = name
        self.event_bus = EventBus()
        self.store = ElementStore(self.event_bus)
        self.graph = ConnectionGraph(self.store, self.event_bus)
        self.engine = ParametricEngine()
        self.modifier = ElementModifier(self.store, self.event_bus, self.engine)
        self.grids: Dict[str, StructuralGrid] = {}

    # -------------------------------------------------------------------------
    # Grids
    # -------------------------------------------------------------------------

    def add_grid(self, grid: StructuralGrid) -> StructuralGrid:
        """Register a grid and its ``grid`` element (for connections and snapping)."""
        if grid.id in self.grids:
            raise ValueError(f"Grid id already exists: {grid.id}")
        self.grids[grid.id] = grid
        self.store.add_element(grid.to_element())
        logger.info(f"[GRID] Added {grid.id}: {len(grid.intersections())} intersection(s)")
        return grid

    def update_grid(self, grid: StructuralGrid) -> int:
        """
        Replace a grid definition, refresh its element and re-place every
        attached element. Returns the number of elements moved.
        """
        if grid.id not in self.grids:
            logger.warning(f"[GRID] Unknown grid '{grid.id}'")
            return 0
        self.grids[grid.id] = grid
        element = grid.to_element()
        # connected members follow through the graph, attached ones are re-placed below
        self.modifier.update_element(grid.id, {
            "origin": element.origin,
            "connection_points": element.connection_points,
        })
        return self.modifier.rebuild_from_grid(grid)

    def get_grid(self, grid_id: str) -> Optional[StructuralGrid]:
        return self.grids.get(grid_id)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "meta": {**get_version_info(), "name": self.name},
            "elements": self.store.to_records(),
            "connections": self.graph.to_records(),
            "grids": [g.to_dict() for g in self.grids.values()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        meta = data.get("meta", {})
        project = cls(name=meta.get("name", "Untitled"))

        schema = meta.get("schema_version")
        if schema and schema != SCHEMA_VERSION:
            logger.warning(f"Project schema {schema} differs from {SCHEMA_VERSION}, loading anyway")

        for record in data.get("grids", []):
            grid = StructuralGrid.from_dict(record)
            project.grids[grid.id] = grid

        project.store.load_records(data.get("elements", []))
        # Grid-Elemente fehlen in aelteren Dateien
        for grid in project.grids.values():
            if not project.store.has_element(grid.id):
                project.store.add_element(grid.to_element())

        project.graph.load_records(data.get("connections", []))
        logger.info(
            f"Project '{project.name}' loaded: {len(project.store)} element(s), "
            f"{len(project.graph)} connection(s), {len(project.grids)} grid(s)"
        )
        return project

    def clear(self) -> None:
        self.graph.load_records([])
        self.store.clear()
        self.grids.clear()

    def element_ids(self) -> List[str]:
        return [e.id for e in self.store.get_all_elements()]
