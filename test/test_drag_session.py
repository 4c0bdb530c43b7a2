"""
Tests fuer snapping/drag_session.py

Drag flow (snap, commit, connect on drop, cancel) and two-click creation.
"""

import numpy as np
import pytest

from modeling.elements import Element
from modeling.events import ELEMENT_MOVED, ELEMENT_UPDATED
from modeling.recipes import RecipeType
from snapping import CreationSession, DragSession, Ray, SnapMode, SnapResolver


def down_ray(x, y):
    return Ray(origin=[x, y, 1000.0], direction=[0.0, 0.0, -1.0])


@pytest.fixture
def resolver(store, graph):
    return SnapResolver(store, graph)


@pytest.fixture
def drag(resolver, modifier, graph):
    return DragSession(resolver, modifier, graph)


@pytest.fixture
def beams(store):
    store.add_element(Element(id="A", kind="beam", start=[0, 0, 0], end=[1000, 0, 0]))
    store.add_element(Element(id="B", kind="beam", start=[1020, 10, 0], end=[2000, 0, 0]))
    return store


class TestDragSession:

    def test_drop_on_endpoint_connects(self, drag, resolver, beams, graph):
        resolver.set_connection_mode(True)
        assert drag.start("A", "end")
        assert resolver.is_active

        snap = drag.move(down_ray(1015, 8), (0.0, 0.0))
        assert (snap.element_id, snap.point_id) == ("B", "start")
        assert beams.get_element("A").end == [1020.0, 10.0, 0.0]

        conn_id = drag.end()
        assert conn_id == "conn-001"
        assert graph.are_elements_connected("A", "B")
        assert not drag.is_dragging
        assert not resolver.is_active

    def test_no_connection_without_connection_mode(self, drag, beams, graph):
        drag.start("A", "end")
        drag.move(down_ray(1015, 8), (0.0, 0.0))
        assert drag.end() is None
        assert len(graph) == 0
        assert beams.get_element("A").end == [1020.0, 10.0, 0.0]

    def test_no_snap_commits_view_plane_hit(self, drag, beams):
        drag.start("A", "end")
        assert drag.move(down_ray(5000, 5000), (0.0, 0.0)) is None
        assert beams.get_element("A").end == [5000.0, 5000.0, 0.0]

    def test_no_snap_uses_host_fallback(self, drag, beams):
        drag.start("A", "end")
        drag.move(down_ray(5000, 5000), (0.0, 0.0), fallback=[3000, 0, 0])
        assert beams.get_element("A").end == [3000.0, 0.0, 0.0]

    def test_leaving_the_target_drops_the_connection(self, drag, resolver, beams, graph):
        resolver.set_connection_mode(True)
        drag.start("A", "end")
        assert drag.move(down_ray(1015, 8), (0.0, 0.0)) is not None
        assert drag.move(down_ray(5000, 5000), (0.0, 0.0)) is None
        assert drag.last_snap is None

        assert drag.end() is None
        assert len(graph) == 0

    def test_cancel_commits_nothing(self, drag, resolver, beams, recorder):
        drag.start("A", "end")
        drag.move_to([1000, 700, 0])
        events = recorder(ELEMENT_UPDATED, ELEMENT_MOVED)

        drag.cancel()

        assert events == []
        assert beams.get_element("A").end == [1000.0, 700.0, 0.0]
        assert not drag.is_dragging
        assert not resolver.is_active

    def test_drag_propagates_through_connection(self, drag, beams, graph):
        graph.create_connection("A", "end", "B", "start")
        drag.start("A", "end")
        drag.move_to([1000, 500, 0])
        drag.end()
        assert beams.get_element("B").start == [1000.0, 500.0, 0.0]

    def test_stationary_point_seeds_axis_snap(self, drag, resolver, beams):
        resolver.set_mode(SnapMode.AXIS, True)
        drag.start("A", "end")
        np.testing.assert_allclose(resolver.axis_origin, [0, 0, 0])
        drag.end()
        assert resolver.axis_origin is None

    def test_unknown_point(self, drag, beams):
        assert drag.start("A", "top") is False
        assert drag.start("missing", "end") is False
        assert not drag.is_dragging

    def test_composite_control_point(self, drag, store, engine):
        group = engine.create(RecipeType.BOXFRAME, {"start": [0, 0, 0], "end": [6000, 0, 0]}, store)
        assert drag.start(group.id, "end")
        drag.move_to([8000, 0, 0])
        drag.end()
        assert store.get_element(group.id).params["end"] == [8000.0, 0.0, 0.0]

    def test_calls_outside_drag_are_ignored(self, drag):
        assert drag.move(down_ray(0, 0), (0.0, 0.0)) is None
        assert drag.end() is None
        drag.cancel()


class TestCreationSession:

    def test_two_clicks_make_beam(self, resolver, modifier, store):
        session = CreationSession(resolver, modifier, "beam")
        session.start()

        assert session.click([0, 0, 0]) is None
        beam = session.click([3000, 0, 0])

        assert beam.kind == "beam"
        assert beam.start == [0.0, 0.0, 0.0]
        assert beam.end == [3000.0, 0.0, 0.0]
        assert (beam.profile, beam.material) == ("HEA200", "S355JR")
        assert session.is_creating is False

    def test_params_override_profile(self, resolver, modifier):
        session = CreationSession(resolver, modifier, "column", params={"profile": "HEB300"})
        session.start()
        session.click([0, 0, 0])
        assert session.click([0, 3000, 0]).profile == "HEB300"

    def test_chaining(self, resolver, modifier):
        session = CreationSession(resolver, modifier, "beam", chain=True)
        session.start()
        session.click([0, 0, 0])
        first = session.click([3000, 0, 0])
        second = session.click([3000, 0, 3000])

        assert second.start == first.end
        assert session.is_creating
        assert len(session.created) == 2

    def test_coincident_clicks_create_nothing(self, resolver, modifier, store):
        session = CreationSession(resolver, modifier, "beam")
        session.start()
        session.click([0, 0, 0])
        assert session.click([0.5, 0, 0]) is None
        assert len(store) == 0
        assert session.is_creating is False

    def test_box_frame(self, resolver, modifier, store):
        session = CreationSession(resolver, modifier, RecipeType.BOXFRAME)
        session.start()
        session.click([0, 0, 0])
        group = session.click([6000, 0, 0])

        assert group.recipe == "boxframe"
        assert len(store.get_children(group.id)) == 4

    def test_stairs_by_name(self, resolver, modifier, store):
        session = CreationSession(resolver, modifier, "stairs")
        session.start()
        session.click([0, 0, 0])
        group = session.click([0, 0, -3000])

        assert group.params["startDirection"] == [0.0, 0.0, -1.0]
        assert len(group.params["segments"]) == 3

    def test_unsupported_target(self, resolver, modifier, store):
        session = CreationSession(resolver, modifier, "plate")
        session.start()
        session.click([0, 0, 0])
        assert session.click([1000, 0, 0]) is None

    def test_pick_snaps_to_endpoint(self, resolver, modifier, store):
        store.add_element(Element(id="E1", kind="beam", start=[0, 0, 0], end=[0, 3000, 0]))
        session = CreationSession(resolver, modifier, "beam")
        session.start()

        session.pick(down_ray(4, -3), (0.0, 0.0))
        beam = session.click([2000, 0, 0])
        assert beam.start == [0.0, 0.0, 0.0]

    def test_first_click_starts_axis_snap(self, resolver, modifier):
        resolver.set_mode(SnapMode.AXIS, True)
        session = CreationSession(resolver, modifier, "beam")
        session.start()
        session.click([100, 0, 0])
        np.testing.assert_allclose(resolver.axis_origin, [100, 0, 0])

        session.cancel()
        assert resolver.axis_origin is None
        assert not resolver.is_active

    def test_click_before_start(self, resolver, modifier):
        session = CreationSession(resolver, modifier, "beam")
        assert session.click([0, 0, 0]) is None
