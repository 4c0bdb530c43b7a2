"""
Tests fuer modeling/project.py

Persistence round trip and grid edits reaching connected or attached
members.
"""

import json

import pytest

from config.version import SCHEMA_VERSION
from modeling.elements import Element
from modeling.grid import StructuralGrid
from modeling.project import Project
from modeling.recipes import RecipeType


def make_grid(x_spacings=(0, 6000), y_spacings=(0, 5000)):
    return StructuralGrid(
        id="grid-1", x_spacings=list(x_spacings), y_spacings=list(y_spacings), z_levels=[0],
        x_labels=["A", "B"], y_labels=["1", "2"], z_labels=["0"],
    )


@pytest.fixture
def project():
    p = Project(name="Halle 3")
    p.add_grid(make_grid())
    p.store.add_element(Element(id="E1", kind="beam", start=[0, 0, 0], end=[6000, 0, 0]))
    p.store.add_element(Element(id="E2", kind="beam", start=[6000, 0, 0], end=[6000, 0, 5000]))
    return p


class TestGrids:

    def test_grid_is_an_element(self, project):
        assert project.store.get_element("grid-1").kind == "grid"
        assert project.get_grid("grid-1") is not None

    def test_duplicate_grid(self, project):
        with pytest.raises(ValueError):
            project.add_grid(make_grid())

    def test_update_unknown_grid(self, project):
        other = make_grid()
        other.id = "grid-9"
        assert project.update_grid(other) == 0

    def test_connected_member_follows_grid(self, project):
        conn_id = project.graph.create_connection("E1", "end", "grid-1", "B/1/0")
        assert conn_id is not None

        project.update_grid(make_grid(x_spacings=(0, 7000)))

        assert project.store.get_element("E1").end == [7000.0, 0.0, 0.0]
        assert project.store.get_element("E1").start == [0.0, 0.0, 0.0]

    def test_attached_member_is_replaced(self, project):
        assert project.modifier.attach_to_grid("E2", "end", "grid-1", "B", "2", "0")
        project.store.update_element("E2", {"endOffset": [0, 100, 0]})

        moved = project.update_grid(make_grid(y_spacings=(0, 6000)))

        assert moved == 1
        assert project.store.get_element("E2").end == [6000.0, 6100.0, 0.0]

    def test_attach_sets_zero_offset(self, project):
        project.modifier.attach_to_grid("E2", "end", "grid-1", "B", "2", "0")
        element = project.store.get_element("E2")
        assert element.attachments["end"]["type"] == "gridIntersection"
        assert element.offsets["end"] == [0.0, 0.0, 0.0]

    def test_attach_rejects_non_field_points(self, project):
        assert project.modifier.attach_to_grid("E1", "mid", "grid-1", "A", "1", "0") is False
        assert project.modifier.attach_to_grid("nope", "end", "grid-1", "A", "1", "0") is False


class TestPersistence:

    def test_round_trip_through_json(self, project):
        project.graph.create_connection("E1", "end", "E2", "start")
        project.engine.create(RecipeType.GOALPOST, {"start": [0, 0, 0], "end": [4000, 0, 0]}, project.store)

        data = json.loads(json.dumps(project.to_dict()))
        restored = Project.from_dict(data)

        assert data["meta"]["schema_version"] == SCHEMA_VERSION
        assert restored.name == "Halle 3"
        assert sorted(restored.element_ids()) == sorted(project.element_ids())
        assert restored.graph.are_elements_connected("E1", "E2")
        assert restored.get_grid("grid-1") == project.get_grid("grid-1")

    def test_restored_project_keeps_propagating(self, project):
        project.graph.create_connection("E1", "end", "E2", "start")
        restored = Project.from_dict(project.to_dict())

        restored.modifier.update_element_point("E1", "end", [6000, 0, 300])

        assert restored.store.get_element("E2").start == [6000.0, 0.0, 300.0]

    def test_missing_grid_element_is_added(self, project):
        data = project.to_dict()
        data["elements"] = [e for e in data["elements"] if e["kind"] != "grid"]

        restored = Project.from_dict(data)
        assert restored.store.get_element("grid-1").kind == "grid"

    def test_other_schema_still_loads(self, project):
        data = project.to_dict()
        data["meta"]["schema_version"] = "1.0"
        assert len(Project.from_dict(data).store) == len(project.store)

    def test_clear(self, project):
        project.graph.create_connection("E1", "end", "E2", "start")
        project.clear()
        assert len(project.store) == 0
        assert len(project.graph) == 0
        assert project.get_grid("grid-1") is None
