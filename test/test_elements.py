"""
Tests fuer modeling/elements.py

Connection-point resolution, point patches, offsets and record format.
"""

import numpy as np
import pytest

from modeling.elements import Element, ElementKind


@pytest.fixture
def beam():
    return Element(id="E1", kind="beam", start=[0, 0, 0], end=[1000, 0, 0], profile="HEA200")


class TestConnectionPoints:

    def test_named_points(self, beam):
        np.testing.assert_allclose(beam.get_point("start"), [0, 0, 0])
        np.testing.assert_allclose(beam.get_point("end"), [1000, 0, 0])
        np.testing.assert_allclose(beam.get_point("mid"), [500, 0, 0])

    def test_unknown_point_resolves_to_none(self, beam):
        """No silent fallback to start or origin."""
        assert beam.get_point("top") is None
        assert beam.has_point("top") is False

    def test_origin_missing_on_linear_member(self, beam):
        assert beam.get_point("origin") is None

    def test_custom_declared_point(self):
        plate = Element(
            id="P1", kind="plate", origin=[0, 0, 0], width=300, height=200, thickness=12,
            connection_points=[{"id": "hole1", "type": "bolted", "position": [50, 0, 0]}],
        )
        np.testing.assert_allclose(plate.get_point("hole1"), [50, 0, 0])
        points = plate.get_connection_points()
        assert [cp.id for cp in points] == ["hole1"]
        assert points[0].type == "bolted"

    def test_default_connection_points_for_linear_member(self, beam):
        points = {cp.id: cp for cp in beam.get_connection_points()}
        assert set(points) == {"start", "end", "mid"}
        assert points["start"].type == "moment"
        assert points["mid"].type == "pinned"

    def test_plate_without_declared_points_has_none(self):
        plate = Element(id="P1", kind="plate", origin=[0, 0, 0], width=300, height=200, thickness=12)
        assert plate.get_connection_points() == []


class TestPointPatch:

    def test_endpoint_patch(self, beam):
        assert beam.point_patch("end", [1000, 500, 0]) == {"end": [1000.0, 500.0, 0.0]}

    def test_mid_patch_translates_member(self, beam):
        patch = beam.point_patch("mid", [500, 100, 0])
        assert patch == {"start": [0.0, 100.0, 0.0], "end": [1000.0, 100.0, 0.0]}

    def test_unknown_point_patch_is_none(self, beam):
        assert beam.point_patch("top", [0, 0, 0]) is None

    def test_custom_point_patch_rewrites_entry(self):
        element = Element(id="D1", kind="detail",
                          connection_points=[{"id": "a", "type": "pinned", "position": [0, 0, 0]}])
        patch = element.point_patch("a", [1, 2, 3])
        assert patch["connection_points"][0]["position"] == [1.0, 2.0, 3.0]
        # original untouched until the patch is applied
        assert element.connection_points[0]["position"] == [0, 0, 0]


class TestPatchAndOffsets:

    def test_apply_patch_reports_changed_fields(self, beam):
        changed = beam.apply_patch({"end": [2000, 0, 0], "parentId": "group-1"})
        assert changed == ["end", "parent_id"]
        assert beam.parent_id == "group-1"

    def test_offset_keys(self, beam):
        beam.apply_patch({"endOffset": [0, 200, 0]})
        np.testing.assert_allclose(beam.get_offset("end"), [0, 200, 0])
        np.testing.assert_allclose(beam.get_offset("start"), [0, 0, 0])

        beam.apply_patch({"endOffset": None})
        assert "end" not in beam.offsets

    def test_unknown_field_is_ignored(self, beam):
        assert beam.apply_patch({"colour": "red"}) == []

    def test_translate(self, beam):
        patch = beam.translate([0, 0, 500])
        assert patch == {"start": [0.0, 0.0, 500.0], "end": [1000.0, 0.0, 500.0]}


class TestDerivedGeometry:

    def test_plate_corners_and_edges(self):
        plate = Element(id="P1", kind="plate", origin=[0, 0, 0], width=300, height=200, thickness=10)
        corners = plate.corners()
        assert len(corners) == 8
        np.testing.assert_allclose(np.max(corners, axis=0), [150, 100, 5])
        edges = plate.edges()
        assert len(edges) == 12
        for a, b in edges:
            # every box edge runs along exactly one local axis
            assert np.count_nonzero(np.abs(b - a) > 1e-9) == 1

    def test_linear_member_edge_is_its_axis(self, beam):
        (a, b), = beam.edges()
        np.testing.assert_allclose(a, [0, 0, 0])
        np.testing.assert_allclose(b, [1000, 0, 0])
        assert beam.corners() == []


class TestSerialization:

    def test_record_round_trip(self, beam):
        beam.apply_patch({"startOffset": [10, 0, 0], "componentKey": "topBeam"})
        record = beam.to_dict()
        assert record["startOffset"] == [10.0, 0.0, 0.0]
        assert record["componentKey"] == "topBeam"
        assert "offsets" not in record
        assert "children" not in record

        restored = Element.from_dict(record)
        assert restored.component_key == "topBeam"
        np.testing.assert_allclose(restored.get_offset("start"), [10, 0, 0])
        assert restored.end == [1000.0, 0.0, 0.0]

    def test_record_without_id_rejected(self):
        with pytest.raises(ValueError):
            Element.from_dict({"kind": "beam"})

    def test_kind_classification(self):
        assert Element(id="g", kind=ElementKind.GROUP).is_composite
        assert Element(id="c", kind=ElementKind.COLUMN).is_linear
        assert not Element(id="p", kind=ElementKind.PLATE).is_linear
