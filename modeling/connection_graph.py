"""
SteelCad - Connection Graph
===========================

Directional coincidence constraints between element points.

The graph owns its connections and a per-element index; nothing here is a
process-wide singleton. Position changes propagate through the connections
in one explicit pass guarded by a single in-flight flag, so cyclic
topologies terminate: a move arriving while a pass is running is dropped.

Constraint writes use the store's silent update path. They publish
``element:updated`` with ``silent=True`` and never ``element:moved``, which
is the only event that starts a propagation pass.

Usage:
    graph = ConnectionGraph(store, bus)
    conn_id = graph.create_connection("E1", "end", "E2", "start")
    store.update_element("E1", {"end": [1000, 500, 0]})
    report = graph.handle_element_moved("E1")
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Union

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from modeling.connection_calculators import get_calculator
from modeling.connection_types import (
    CONNECTION_TYPES, Connection, ConnectionConstraint, ConnectionEnd, ConnectionType,
    Directionality, Role, get_element_priority, parse_connection_type,
)
from modeling.element_store import ElementStore
from modeling.elements import ConnectionPoint, Element, ElementKind
from modeling.events import (
    CONNECTION_CREATED, CONNECTION_DELETED, CONNECTION_UPDATED,
    ELEMENT_DELETED, ELEMENT_MOVED, EventBus,
)
from modeling.result_types import OperationResult

# Glieder fuer die "Ende an Ende" Regel
_FRAME_KINDS = frozenset({ElementKind.BEAM, ElementKind.COLUMN, ElementKind.MAIN_BEAM, ElementKind.SECONDARY_BEAM})
_END_POINTS = frozenset({"start", "end"})


class ConnectionGraph:
    """
    Manager for point-to-point connections.

    Handles creation (with type, directionality and role inference),
    deletion (single, batch, per element, per type, cascading from element
    deletion), type changes and move propagation.
    """

    def __init__(self, store: ElementStore, event_bus: EventBus,
                 records: Optional[Iterable[Dict[str, Any]]] = None):
        if store is None:
            raise ValueError("ConnectionGraph requires an element store")
        if event_bus is None:
            raise ValueError("ConnectionGraph requires an event bus")

        self.store = store
        self.event_bus = event_bus
        self._connections: Dict[str, Connection] = {}
        self._element_index: Dict[str, List[str]] = {}  # element_id -> connection_ids
        self._next_id = 1
        self._propagating = False

        self._unsubscribers = [
            event_bus.subscribe(ELEMENT_MOVED, self._on_element_moved),
            event_bus.subscribe(ELEMENT_DELETED, self._on_element_deleted),
        ]

        if records:
            self.load_records(records)
        logger.debug("[CONNECTION] Graph initialized")

    def detach(self) -> None:
        """Stop listening to the bus."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # =========================================================================
    # Creation
    # =========================================================================

    def create_connection(
        self,
        source_element_id: str,
        source_point: str,
        target_element_id: str,
        target_point: str,
        connection_type: Union[ConnectionType, str, None] = None,
    ) -> Optional[str]:
        """
        Connect ``source_element_id.source_point`` to
        ``target_element_id.target_point``.

        Returns the new connection id, the existing id if the two points are
        already connected, or None if validation fails.
        """
        source = self.store.get_element(source_element_id)
        target = self.store.get_element(target_element_id)
        if source is None or target is None:
            logger.error(
                f"[CONNECTION] Cannot create connection: element not found "
                f"({source_element_id if source is None else target_element_id})"
            )
            return None

        if source_element_id == target_element_id:
            logger.error(f"[CONNECTION] Cannot connect element '{source_element_id}' to itself")
            return None

        for element, point in ((source, source_point), (target, target_point)):
            if not element.has_point(point):
                logger.error(f"[CONNECTION] Cannot create connection: '{element.id}' has no point '{point}'")
                return None

        existing = self.find_connection(source_element_id, source_point, target_element_id, target_point)
        if existing is not None:
            logger.info(f"[CONNECTION] Points already connected by {existing.id}")
            return existing.id

        if connection_type is None:
            resolved_type = self.determine_connection_type(source, target, source_point, target_point)
        else:
            resolved_type = parse_connection_type(connection_type)
            if resolved_type is None:
                return None

        directionality = self.determine_directionality(source, target, resolved_type)
        connection = Connection(
            id=self._generate_id(),
            type=resolved_type,
            directionality=directionality,
            source=ConnectionEnd(
                source_element_id, source_point,
                self.get_element_role(source, target, directionality, "source"),
            ),
            target=ConnectionEnd(
                target_element_id, target_point,
                self.get_element_role(source, target, directionality, "target"),
            ),
            constraint=ConnectionConstraint.for_type(resolved_type, directionality),
        )

        self._connections[connection.id] = connection
        self._add_to_element_index(source_element_id, connection.id)
        self._add_to_element_index(target_element_id, connection.id)
        self._write_element_reference(connection, connection.source)
        self._write_element_reference(connection, connection.target)

        if is_enabled("connection_auto_apply"):
            self._apply_constraint(connection)

        self.event_bus.publish(CONNECTION_CREATED, {"connection": connection})
        logger.info(
            f"[CONNECTION] Created {connection.id}: {source_element_id}.{source_point} -> "
            f"{target_element_id}.{target_point} ({resolved_type.value}, {directionality.value})"
        )
        return connection.id

    def _generate_id(self) -> str:
        connection_id = f"conn-{self._next_id:03d}"
        self._next_id += 1
        return connection_id

    # =========================================================================
    # Inference
    # =========================================================================

    def determine_connection_type(self, source: Element, target: Element,
                                  source_point: str, target_point: str) -> ConnectionType:
        kinds = {source.kind, target.kind}

        if ElementKind.GRID in kinds:
            return ConnectionType.GRID

        if source.kind in _FRAME_KINDS and target.kind in _FRAME_KINDS:
            if source_point in _END_POINTS and target_point in _END_POINTS:
                return ConnectionType.MOMENT
            if "mid" in (source_point, target_point):
                return ConnectionType.PINNED

        if ElementKind.FOUNDATION in kinds:
            return ConnectionType.RIGID

        if ElementKind.BRACE in kinds:
            return ConnectionType.PINNED

        return ConnectionType.MOMENT

    def determine_directionality(self, source: Element, target: Element,
                                 connection_type: ConnectionType) -> Directionality:
        if CONNECTION_TYPES[connection_type].default_directionality == Directionality.ONE_WAY:
            return Directionality.ONE_WAY
        diff = abs(get_element_priority(source.kind) - get_element_priority(target.kind))
        if diff > Tolerances.CONNECTION_PRIORITY_THRESHOLD:
            return Directionality.ONE_WAY
        return Directionality.TWO_WAY

    def get_element_role(self, source: Element, target: Element,
                         directionality: Directionality, side: str) -> Role:
        """Role of ``side`` ("source" or "target"). Ties make the target lead."""
        if directionality == Directionality.TWO_WAY:
            return Role.PEER
        source_leads = get_element_priority(source.kind) > get_element_priority(target.kind)
        if side == "source":
            return Role.LEADER if source_leads else Role.FOLLOWER
        return Role.FOLLOWER if source_leads else Role.LEADER

    # =========================================================================
    # Propagation
    # =========================================================================

    def handle_element_moved(self, element_id: str, changed_fields: Optional[Dict[str, Any]] = None) -> OperationResult:
        """
        Propagate a move of ``element_id`` across its connections.

        For every connection that should propagate, the moved side leads and
        the other side follows for the duration of the apply; stored roles are
        restored afterwards. Reentrant calls are dropped.
        """
        connections = self.get_element_connections(element_id)
        if not connections:
            return OperationResult.empty("No connections", reason="unconnected")

        if self._propagating:
            if is_enabled("connection_debug"):
                logger.debug(f"[CONNECTION] Propagation in progress, dropping move of {element_id}")
            return OperationResult.empty("Propagation in progress", reason="reentrant")

        logger.debug(f"[CONNECTION] {element_id} moved, checking {len(connections)} connection(s)")
        applied: List[str] = []
        skipped: List[str] = []

        self._propagating = True
        try:
            for connection in connections:
                if not self.should_propagate(connection, element_id):
                    continue
                with self._moved_side_leads(connection, element_id):
                    ok = self._apply_constraint(connection)
                (applied if ok else skipped).append(connection.id)
        finally:
            self._propagating = False

        if skipped:
            return OperationResult.warning(
                applied,
                f"Propagated {len(applied)}, skipped {len(skipped)} connection(s)",
                warnings=[f"{conn_id} could not be applied" for conn_id in skipped],
                failed_items=skipped,
            ).log("CONNECTION")
        if applied:
            return OperationResult.success(applied, f"Propagated {len(applied)} connection(s)")
        return OperationResult.empty("Nothing to propagate", reason="no leading side moved")

    @property
    def is_propagating(self) -> bool:
        return self._propagating

    def should_propagate(self, connection: Connection, changed_element_id: str) -> bool:
        if connection.type == ConnectionType.MOMENT:
            return True
        if connection.directionality == Directionality.TWO_WAY:
            return True
        end = connection.end_for(changed_element_id)
        return end is not None and end.role == Role.LEADER

    @contextmanager
    def _moved_side_leads(self, connection: Connection, moved_element_id: str):
        original = (connection.source.role, connection.target.role)
        if connection.source.element_id == moved_element_id:
            connection.source.role, connection.target.role = Role.LEADER, Role.FOLLOWER
        elif connection.target.element_id == moved_element_id:
            connection.source.role, connection.target.role = Role.FOLLOWER, Role.LEADER
        try:
            yield connection
        finally:
            connection.source.role, connection.target.role = original

    def _apply_constraint(self, connection: Connection) -> bool:
        """Run the type's calculator and write the patches silently. False on any failure."""
        calculator = get_calculator(connection.type)
        if calculator is None:
            logger.warning(f"[CONNECTION] No calculator for type {connection.type}")
            return False

        source = self.store.get_element(connection.source.element_id)
        target = self.store.get_element(connection.target.element_id)
        if source is None or target is None:
            logger.warning(f"[CONNECTION] Elements not found for {connection.id}, skipping")
            return False

        try:
            patch = calculator(source, target, connection)
            if patch is None:
                return False
            if patch.source:
                self.update_element_silently(connection.source.element_id, patch.source)
            if patch.target:
                self.update_element_silently(connection.target.element_id, patch.target)
        except Exception as e:
            logger.error(f"[CONNECTION] Error applying {connection.id}: {e}")
            return False
        return True

    def update_element_silently(self, element_id: str, patch: Dict[str, Any]) -> None:
        """Constraint write: updates geometry, notifies with ``silent=True``, never re-propagates."""
        self.store.update_element(element_id, patch, silent=True)

    # =========================================================================
    # Type changes
    # =========================================================================

    def update_connection_type(self, connection_id: str, new_type: Union[ConnectionType, str]) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.warning(f"[CONNECTION] Connection {connection_id} not found")
            return False
        resolved = parse_connection_type(new_type)
        if resolved is None:
            return False

        connection.type = resolved
        connection.constraint = ConnectionConstraint.for_type(resolved, connection.directionality)
        connection.touch()
        self._write_element_reference(connection, connection.source)
        self._write_element_reference(connection, connection.target)
        self._apply_constraint(connection)

        self.event_bus.publish(CONNECTION_UPDATED, {"connectionId": connection_id, "connection": connection})
        logger.info(f"[CONNECTION] {connection_id} type -> {resolved.value}")
        return True

    # =========================================================================
    # Deletion
    # =========================================================================

    def delete_connection(self, connection_id: str) -> bool:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            logger.warning(f"[CONNECTION] Connection {connection_id} not found for deletion")
            return False

        self._remove_from_element_index(connection.source.element_id, connection_id)
        self._remove_from_element_index(connection.target.element_id, connection_id)
        self._remove_element_reference(connection.source.element_id, connection.source.point, connection_id)
        self._remove_element_reference(connection.target.element_id, connection.target.point, connection_id)

        self.event_bus.publish(CONNECTION_DELETED, {"connectionId": connection_id, "connection": connection})
        logger.debug(f"[CONNECTION] Deleted {connection_id}")
        return True

    def delete_connections(self, connection_ids: Iterable[str]) -> List[Dict[str, Any]]:
        return [
            {"connectionId": conn_id, "success": self.delete_connection(conn_id)}
            for conn_id in list(connection_ids)
        ]

    def delete_element_connections(self, element_id: str) -> List[Dict[str, Any]]:
        return self.delete_connections(list(self._element_index.get(element_id, [])))

    def delete_connections_by_type(self, connection_type: Union[ConnectionType, str]) -> List[Dict[str, Any]]:
        resolved = parse_connection_type(connection_type)
        if resolved is None:
            return []
        ids = [c.id for c in self._connections.values() if c.type == resolved]
        return self.delete_connections(ids)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def get_all_connections(self) -> List[Connection]:
        return list(self._connections.values())

    def get_element_connections(self, element_id: str) -> List[Connection]:
        return [
            self._connections[c] for c in self._element_index.get(element_id, [])
            if c in self._connections
        ]

    def get_element_connection_points(self, element_id: str) -> List[ConnectionPoint]:
        element = self.store.get_element(element_id)
        if element is None:
            return []
        return element.get_connection_points()

    def find_connection(self, element_a: str, point_a: str, element_b: str, point_b: str) -> Optional[Connection]:
        for connection in self.get_element_connections(element_a):
            if connection.links(element_a, point_a, element_b, point_b):
                return connection
        return None

    def are_elements_connected(self, element_a: str, element_b: str) -> bool:
        return any(c.involves_element(element_b) for c in self.get_element_connections(element_a))

    def is_point_connected(self, element_id: str, point: str) -> bool:
        return any(
            c.end_for(element_id).point == point
            for c in self.get_element_connections(element_id)
        )

    def is_point_connected_to_element(self, element_id: str, point: str, other_element_id: str) -> bool:
        """True if ``element_id.point`` is linked to any point of ``other_element_id``."""
        for connection in self.get_element_connections(element_id):
            end = connection.end_for(element_id)
            other = connection.other_end(element_id)
            if end.point == point and other.element_id == other_element_id:
                return True
        return False

    def __len__(self) -> int:
        return len(self._connections)

    # =========================================================================
    # Persistence
    # =========================================================================

    def to_records(self) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self._connections.values()]

    def load_records(self, records: Iterable[Dict[str, Any]]) -> int:
        """
        Replace all connections with ``records`` and rebuild the element
        index. The id sequence continues after the largest id found.
        """
        self._connections.clear()
        self._element_index.clear()
        self._next_id = 1

        for record in records:
            try:
                connection = Connection.from_dict(record)
            except (KeyError, ValueError) as e:
                logger.warning(f"[CONNECTION] Skipping malformed record {record.get('id', '?')}: {e}")
                continue
            self._connections[connection.id] = connection
            self._add_to_element_index(connection.source.element_id, connection.id)
            self._add_to_element_index(connection.target.element_id, connection.id)
            self._reseed(connection.id)

        logger.info(f"[CONNECTION] Loaded {len(self._connections)} connection(s), next id {self._next_id}")
        return len(self._connections)

    def _reseed(self, connection_id: str) -> None:
        try:
            number = int(connection_id.rsplit("-", 1)[1])
        except (IndexError, ValueError):
            return
        self._next_id = max(self._next_id, number + 1)

    # =========================================================================
    # Index helpers
    # =========================================================================

    def _add_to_element_index(self, element_id: str, connection_id: str) -> None:
        ids = self._element_index.setdefault(element_id, [])
        if connection_id not in ids:
            ids.append(connection_id)

    def _remove_from_element_index(self, element_id: str, connection_id: str) -> None:
        ids = self._element_index.get(element_id)
        if ids and connection_id in ids:
            ids.remove(connection_id)
            if not ids:
                del self._element_index[element_id]

    def _write_element_reference(self, connection: Connection, end: ConnectionEnd) -> None:
        element = self.store.get_element(end.element_id)
        if element is None:
            return
        other = connection.other_end(end.element_id)
        references = dict(element.connections)
        references[end.point] = {
            "type": "elementConnection",
            "targetElementId": other.element_id,
            "targetPoint": other.point,
            "connectionType": connection.type.value,
            "connectionId": connection.id,
            "role": end.role.value,
        }
        self.store.update_element(end.element_id, {"connections": references}, silent=True)

    def _remove_element_reference(self, element_id: str, point: str, connection_id: str) -> None:
        element = self.store.get_element(element_id)
        if element is None or point not in element.connections:
            return
        # another connection may have taken over this point
        if element.connections[point].get("connectionId") != connection_id:
            return
        remaining = next(
            (c for c in self.get_element_connections(element_id) if c.end_for(element_id).point == point),
            None,
        )
        if remaining is not None:
            self._write_element_reference(remaining, remaining.end_for(element_id))
            return
        references = dict(element.connections)
        del references[point]
        self.store.update_element(element_id, {"connections": references}, silent=True)

    # =========================================================================
    # Bus handlers
    # =========================================================================

    def _on_element_moved(self, data: Dict[str, Any]) -> None:
        element_id = data.get("elementId")
        if element_id:
            self.handle_element_moved(element_id, data.get("changed"))

    def _on_element_deleted(self, data: Dict[str, Any]) -> None:
        element_id = data.get("elementId")
        if element_id and element_id in self._element_index:
            results = self.delete_element_connections(element_id)
            logger.debug(f"[CONNECTION] Cascade: removed {len(results)} connection(s) of {element_id}")
