"""
Tests fuer modeling/element_store.py und modeling/events.py
"""

import pytest

from modeling.element_store import ElementStore
from modeling.elements import Element
from modeling.events import ELEMENT_ADDED, ELEMENT_DELETED, ELEMENT_MOVED, ELEMENT_UPDATED, EventBus


class TestEventBus:

    def test_publish_reaches_every_subscriber(self):
        bus = EventBus()
        seen = []
        bus.subscribe(ELEMENT_MOVED, lambda d: seen.append(("a", d["elementId"])))
        bus.subscribe(ELEMENT_MOVED, lambda d: seen.append(("b", d["elementId"])))
        bus.publish(ELEMENT_MOVED, {"elementId": "E1"})
        assert seen == [("a", "E1"), ("b", "E1")]

    def test_unsubscribe_callable(self):
        bus = EventBus()
        seen = []
        unsubscribe = bus.subscribe(ELEMENT_MOVED, seen.append)
        unsubscribe()
        bus.publish(ELEMENT_MOVED, {"elementId": "E1"})
        assert seen == []
        assert bus.subscriber_count(ELEMENT_MOVED) == 0

    def test_handler_errors_propagate(self):
        bus = EventBus()

        def broken(_):
            raise RuntimeError("boom")

        bus.subscribe(ELEMENT_MOVED, broken)
        with pytest.raises(RuntimeError):
            bus.publish(ELEMENT_MOVED, {})


class TestElementStore:

    def test_generated_ids(self, store):
        first = store.add_element({"kind": "beam", "start": [0, 0, 0], "end": [1, 0, 0]})
        second = store.add_element({"kind": "column", "start": [0, 0, 0], "end": [0, 1, 0]})
        assert first.id == "beam-1"
        assert second.id == "column-2"

    def test_duplicate_id_rejected(self, store):
        store.add_element(Element(id="E1"))
        with pytest.raises(ValueError):
            store.add_element(Element(id="E1"))

    def test_update_publishes_silent_flag(self, store, recorder):
        events = recorder(ELEMENT_UPDATED)
        store.add_element(Element(id="E1", start=[0, 0, 0], end=[1000, 0, 0]))

        store.update_element("E1", {"end": [1000, 10, 0]}, silent=True)
        store.update_element("E1", {"name": "B1"})

        assert [e[1]["silent"] for e in events] == [True, False]
        assert events[0][1]["changed"] == ["end"]
        assert store.get_element("E1").end == [1000.0, 10.0, 0.0]

    def test_update_unknown_element(self, store):
        assert store.update_element("nope", {"name": "x"}) is None

    def test_delete_cascades_to_children(self, store, recorder):
        events = recorder(ELEMENT_DELETED)
        store.add_element(Element(id="G1", kind="group", children=["C1", "C2"]))
        store.add_element(Element(id="C1", parent_id="G1"))
        store.add_element(Element(id="C2", parent_id="G1"))
        store.add_element(Element(id="X"))

        removed = store.delete_elements(["G1"])

        assert set(removed) == {"G1", "C1", "C2"}
        assert [e[1]["elementId"] for e in events] == removed
        assert store.has_element("X")
        assert len(store) == 1

    def test_deleting_child_detaches_from_parent(self, store):
        store.add_element(Element(id="G1", kind="group", children=["C1", "C2"]))
        store.add_element(Element(id="C1", parent_id="G1"))
        store.add_element(Element(id="C2", parent_id="G1"))

        store.delete_elements(["C1"])
        assert store.get_element("G1").children == ["C2"]

    def test_add_publishes(self, store, recorder):
        events = recorder(ELEMENT_ADDED)
        store.add_element(Element(id="E1"))
        assert events[0][1]["elementId"] == "E1"

    def test_load_reseeds_id_counter(self):
        store = ElementStore(EventBus())
        count = store.load_records([
            {"id": "beam-7", "kind": "beam"},
            {"id": "plate-3", "kind": "plate"},
            {"kind": "beam"},  # no id: skipped
        ])
        assert count == 2
        assert store.generate_id("beam") == "beam-8"

    def test_records_round_trip(self, store):
        store.add_element(Element(id="E1", start=[0, 0, 0], end=[1, 0, 0], offsets={"end": [0, 1, 0]}))
        other = ElementStore()
        other.load_records(store.to_records())
        assert other.get_element("E1").offsets == {"end": [0.0, 1.0, 0.0]}
