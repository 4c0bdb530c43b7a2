"""
SteelCad - Connection Calculators

One calculator per ConnectionType. A calculator reads the current positions
of both connected points and returns a field patch per side:

    follower point  <- leader point
    peer / peer     -> both to the midpoint

Every type except MOMENT currently shares the rigid-coincidence behavior;
SPRING goes through PINNED, which itself is MOMENT.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from loguru import logger

from config.feature_flags import is_enabled
from modeling.connection_types import Connection, ConnectionType, Role
from modeling.elements import Element
from modeling.geometry_utils import midpoint


@dataclass
class ConstraintPatch:
    """Field patches for the two sides of a connection. Empty dict = untouched."""
    source: Dict[str, Any] = field(default_factory=dict)
    target: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.source and not self.target


Calculator = Callable[[Element, Element, Connection], Optional[ConstraintPatch]]


def calculate_moment(source: Element, target: Element, connection: Connection) -> Optional[ConstraintPatch]:
    """Rigid coincidence. Returns None if a point cannot be resolved."""
    source_pos = source.get_point(connection.source.point)
    target_pos = target.get_point(connection.target.point)
    if source_pos is None or target_pos is None:
        logger.warning(
            f"[CONNECTION] {connection.id}: cannot resolve "
            f"{source.id}.{connection.source.point} / {target.id}.{connection.target.point}"
        )
        return None

    if connection.source.role == Role.FOLLOWER:
        patch = ConstraintPatch(source=source.point_patch(connection.source.point, target_pos) or {})
    elif connection.target.role == Role.FOLLOWER:
        patch = ConstraintPatch(target=target.point_patch(connection.target.point, source_pos) or {})
    else:
        mid = midpoint(source_pos, target_pos)
        patch = ConstraintPatch(
            source=source.point_patch(connection.source.point, mid) or {},
            target=target.point_patch(connection.target.point, mid) or {},
        )

    if is_enabled("connection_debug"):
        logger.debug(f"[CONNECTION] {connection.id} patch: source={patch.source} target={patch.target}")
    return patch


def calculate_pinned(source: Element, target: Element, connection: Connection) -> Optional[ConstraintPatch]:
    # Gelenk: gleiche Position, Rotation frei (Rotation wird nicht modelliert)
    return calculate_moment(source, target, connection)


def calculate_spring(source: Element, target: Element, connection: Connection) -> Optional[ConstraintPatch]:
    return calculate_pinned(source, target, connection)


CALCULATORS: Dict[ConnectionType, Calculator] = {
    ConnectionType.MOMENT: calculate_moment,
    ConnectionType.PINNED: calculate_pinned,
    ConnectionType.SURFACE: calculate_moment,
    ConnectionType.EDGE: calculate_moment,
    ConnectionType.GRID: calculate_moment,
    ConnectionType.RIGID: calculate_moment,
    ConnectionType.BOLTED: calculate_moment,
    ConnectionType.WELDED: calculate_moment,
    ConnectionType.SLIDING: calculate_moment,
    ConnectionType.SPRING: calculate_spring,
}

_missing = set(ConnectionType) - set(CALCULATORS)
if _missing:
    raise RuntimeError(f"No calculator registered for: {sorted(t.value for t in _missing)}")


def get_calculator(connection_type: ConnectionType) -> Optional[Calculator]:
    return CALCULATORS.get(connection_type)
