"""
Tests fuer modeling/element_modifier.py

Point edits announce ``element:moved``; copies, type changes and deletes.
"""

import pytest

from modeling.element_modifier import ElementModifier
from modeling.elements import Element, ElementKind
from modeling.events import ELEMENT_MOVED
from modeling.recipes import RecipeType


@pytest.fixture
def beam(store):
    return store.add_element(Element(
        id="E1", kind="beam", start=[0, 0, 0], end=[1000, 0, 0], profile="IPE200", material="S235JR",
    ))


class TestConstruction:

    def test_requires_store_and_bus(self, store, bus):
        with pytest.raises(ValueError):
            ElementModifier(None, bus)
        with pytest.raises(ValueError):
            ElementModifier(store, None)


class TestPointEdits:

    def test_move_announced(self, modifier, beam, recorder):
        events = recorder(ELEMENT_MOVED)
        modifier.update_element_point("E1", "end", [1000, 250, 0])

        assert beam.end == [1000.0, 250.0, 0.0]
        (name, data), = events
        assert data["elementId"] == "E1"
        assert data["pointType"] == "end"
        assert data["newPosition"] == [1000.0, 250.0, 0.0]

    def test_mid_moves_whole_member(self, modifier, beam):
        modifier.update_element_point("E1", "mid", [500, 0, 300])
        assert beam.start == [0.0, 0.0, 300.0]
        assert beam.end == [1000.0, 0.0, 300.0]

    def test_unknown_point_changes_nothing(self, modifier, beam, recorder):
        events = recorder(ELEMENT_MOVED)
        assert modifier.update_element_point("E1", "top", [0, 0, 0]) is None
        assert modifier.update_element_point("missing", "end", [0, 0, 0]) is None
        assert events == []

    def test_leaf_geometry_update_announced(self, modifier, beam, recorder):
        events = recorder(ELEMENT_MOVED)
        modifier.update_element("E1", {"name": "Pfette 1"})
        assert events == []

        modifier.update_element("E1", {"start": [0, 0, 100]})
        assert events[0][1]["changed"] == {"start": [0, 0, 100]}


class TestCopy:

    def test_array_copy_of_leaf(self, modifier, beam, graph, store):
        store.add_element(Element(id="E2", kind="beam", start=[1000, 0, 0], end=[2000, 0, 0]))
        graph.create_connection("E1", "end", "E2", "start")

        copies = modifier.copy_elements(["E1"], [0, 0, 0], [0, 0, 2000], num_copies=3)

        assert len(copies) == 3
        assert [c.start for c in copies] == [[0.0, 0.0, 2000.0], [0.0, 0.0, 4000.0], [0.0, 0.0, 6000.0]]
        assert all(c.connections == {} for c in copies)
        assert all(c.profile == "IPE200" for c in copies)
        assert len({c.id for c in copies} | {"E1"}) == 4
        assert graph.get_element_connections(copies[0].id) == []

    def test_copy_of_composite_goes_through_recipe(self, modifier, engine, store):
        group = engine.create(RecipeType.GOALPOST, {"start": [0, 0, 0], "end": [4000, 0, 0]}, store)

        new_group, = modifier.copy_elements([group.id], [0, 0, 0], [0, 0, 5000])

        assert new_group.params["start"] == [0.0, 0.0, 5000.0]
        assert new_group.params["end"] == [4000.0, 0.0, 5000.0]
        beam = next(c for c in store.get_children(new_group.id) if c.component_key == "beam")
        assert beam.start == [0.0, 3000.0, 5000.0]

    def test_unknown_ids_skipped(self, modifier):
        assert modifier.copy_elements(["ghost"], [0, 0, 0], [1, 0, 0]) == []


class TestChangeType:

    def test_linear_to_plate(self, modifier, beam):
        plate = modifier.change_element_type("E1", ElementKind.PLATE)

        assert plate.kind == "plate"
        assert plate.origin == [0.0, 0.0, 0.0]
        assert (plate.width, plate.height, plate.thickness) == (300.0, 200.0, 12.0)
        assert plate.rotation["values"] == [0.0, 0.0, 0.0]
        assert plate.start is None and plate.end is None

    def test_plate_to_linear(self, modifier, store):
        store.add_element(Element(id="P1", kind="plate", origin=[10, 20, 30], width=300, height=200, thickness=12))
        column = modifier.change_element_type("P1", ElementKind.COLUMN)

        assert column.kind == "column"
        assert column.start == [10.0, 20.0, 30.0]
        assert column.end == [1010.0, 20.0, 30.0]
        assert column.profile == "HEA200"
        assert column.origin is None

    def test_linear_to_linear_keeps_geometry(self, modifier, beam):
        brace = modifier.change_element_type("E1", ElementKind.BRACE)
        assert brace.kind == "brace"
        assert brace.end == [1000.0, 0.0, 0.0]
        assert brace.profile == "IPE200"

    def test_unsupported_conversion(self, modifier, beam):
        assert modifier.change_element_type("E1", ElementKind.GROUP) is None
        assert beam.kind == "beam"

    def test_same_kind_is_noop(self, modifier, beam):
        assert modifier.change_element_type("E1", ElementKind.BEAM) is beam


class TestDelete:

    def test_composite_delete_cascades(self, modifier, engine, store, graph):
        group = engine.create(RecipeType.BOXFRAME, {"start": [0, 0, 0], "end": [6000, 0, 0]}, store)
        store.add_element(Element(id="E9", kind="beam", start=[6000, 3000, 0], end=[9000, 3000, 0]))
        column = next(c for c in store.get_children(group.id) if c.component_key == "column2")
        graph.create_connection("E9", "start", column.id, "end")

        removed = modifier.delete_elements([group.id])

        assert len(removed) == 5
        assert len(store) == 1
        assert len(graph) == 0
        assert store.get_element("E9").connections == {}
