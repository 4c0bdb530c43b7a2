"""
SteelCad - Geometry Store
=========================

Authoritative element records behind a small accessor interface. The rest of
the core (connection graph, recipe engine, snap resolver) reads and writes
elements only through this class.

Every write publishes a notification on the bus:
 - ``element:added``   {elementId, elementData}
 - ``element:updated`` {elementId, elementData, changed, silent}
 - ``element:deleted`` {elementId, elementData}

Usage:
    from modeling.element_store import ElementStore
    from modeling.events import EventBus

    store = ElementStore(EventBus())
    beam = store.add_element({"kind": "beam", "start": [0, 0, 0], "end": [1000, 0, 0]})
    store.update_element(beam.id, {"end": [1000, 500, 0]})
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Union

from loguru import logger

from modeling.elements import Element
from modeling.events import ELEMENT_ADDED, ELEMENT_DELETED, ELEMENT_UPDATED, EventBus

_ID_SUFFIX = re.compile(r"(\d+)$")


class ElementStore:
    """
    In-memory element store.

    Element ids are ``<kind>-<n>`` with one counter for all kinds; the
    counter is re-seeded from the largest numeric suffix on load.
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        self._elements: Dict[str, Element] = {}
        self._next_id = 1
        self.event_bus = event_bus
        logger.debug("[STORE] Initialized")

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get_element(self, element_id: str) -> Optional[Element]:
        return self._elements.get(element_id)

    def get_all_elements(self) -> List[Element]:
        return list(self._elements.values())

    def has_element(self, element_id: str) -> bool:
        return element_id in self._elements

    def get_children(self, element_id: str) -> List[Element]:
        parent = self._elements.get(element_id)
        if parent is None:
            return []
        return [self._elements[c] for c in parent.children if c in self._elements]

    def __len__(self) -> int:
        return len(self._elements)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def generate_id(self, kind: str) -> str:
        element_id = f"{kind}-{self._next_id}"
        self._next_id += 1
        return element_id

    def add_element(self, data: Union[Element, Dict[str, Any]]) -> Element:
        """
        Insert an element. A missing id is generated; an existing id is
        rejected with ``ValueError``.
        """
        if isinstance(data, Element):
            element = data
        else:
            record = dict(data)
            if not record.get("id"):
                record["id"] = self.generate_id(record.get("kind", "element"))
            element = Element.from_dict(record)

        if element.id in self._elements:
            raise ValueError(f"Element id already exists: {element.id}")

        self._elements[element.id] = element
        self._reseed(element.id)
        logger.debug(f"[STORE] Added {element.kind} '{element.id}'")
        self._publish(ELEMENT_ADDED, {"elementId": element.id, "elementData": element})
        return element

    def update_element(self, element_id: str, patch: Dict[str, Any], silent: bool = False) -> Optional[Element]:
        """
        Merge ``patch`` into the element and publish ``element:updated``.

        ``silent`` marks constraint writes so passive listeners can tell them
        apart from user edits. Returns the element, or None if unknown.
        """
        element = self._elements.get(element_id)
        if element is None:
            logger.warning(f"[STORE] update_element: unknown element '{element_id}'")
            return None

        changed = element.apply_patch(patch)
        self._publish(ELEMENT_UPDATED, {
            "elementId": element_id,
            "elementData": element,
            "changed": changed,
            "silent": silent,
        })
        return element

    def delete_elements(self, element_ids: Iterable[str]) -> List[str]:
        """
        Delete elements; composites take their children with them.
        Returns the ids actually removed.
        """
        removed: List[str] = []
        for element_id in list(element_ids):
            self._delete_recursive(element_id, removed)
        if removed:
            logger.info(f"[STORE] Deleted {len(removed)} element(s)")
        return removed

    def _delete_recursive(self, element_id: str, removed: List[str]) -> None:
        element = self._elements.get(element_id)
        if element is None:
            return
        for child_id in list(element.children):
            self._delete_recursive(child_id, removed)

        del self._elements[element_id]
        removed.append(element_id)

        # detach from parent
        parent = self._elements.get(element.parent_id) if element.parent_id else None
        if parent is not None and element_id in parent.children:
            parent.children.remove(element_id)

        self._publish(ELEMENT_DELETED, {"elementId": element_id, "elementData": element})

    def clear(self) -> None:
        self._elements.clear()
        self._next_id = 1

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_records(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._elements.values()]

    def load_records(self, records: Iterable[Dict[str, Any]]) -> int:
        """Replace the contents with ``records`` without publishing per element."""
        self.clear()
        count = 0
        for record in records:
            try:
                element = Element.from_dict(record)
            except ValueError as e:
                logger.warning(f"[STORE] Skipping element record: {e}")
                continue
            self._elements[element.id] = element
            self._reseed(element.id)
            count += 1
        logger.info(f"[STORE] Loaded {count} element(s), next id {self._next_id}")
        return count

    # -------------------------------------------------------------------------

    def _reseed(self, element_id: str) -> None:
        match = _ID_SUFFIX.search(element_id)
        if match:
            self._next_id = max(self._next_id, int(match.group(1)) + 1)

    def _publish(self, event_name: str, data: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event_name, data)
