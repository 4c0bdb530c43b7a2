"""
SteelCad - Connection Types
===========================

Closed set of connection types with their behavior table, plus the
connection record itself.

A connection links a named point on one element (source) to a named point
on another (target). Directionality decides who moves:
 - ONE_WAY: the follower snaps to the leader
 - TWO_WAY: both sides are peers and converge to their midpoint

Persisted record (camelCase):
    {id, type, directionality,
     source: {elementId, point, role}, target: {elementId, point, role},
     constraint: {type, rigid, transfersMoment, freedoms, sharedTransform?},
     metadata: {created, modified, createdBy}}
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger


class ConnectionType(Enum):
    """Named connection behaviors."""
    MOMENT = "moment"
    PINNED = "pinned"
    SURFACE = "surface"
    EDGE = "edge"
    GRID = "grid"
    RIGID = "rigid"
    BOLTED = "bolted"
    WELDED = "welded"
    SLIDING = "sliding"
    SPRING = "spring"


class Directionality(Enum):
    ONE_WAY = "one_way"
    TWO_WAY = "two_way"


class Role(Enum):
    LEADER = "leader"
    FOLLOWER = "follower"
    PEER = "peer"


@dataclass(frozen=True)
class ConnectionTypeInfo:
    """Static description of one connection type."""
    name: str
    rigid: bool
    transfers_moment: bool
    default_directionality: Directionality
    description: str = ""


CONNECTION_TYPES: Dict[ConnectionType, ConnectionTypeInfo] = {
    ConnectionType.MOMENT: ConnectionTypeInfo(
        "Moment Connection", True, True, Directionality.TWO_WAY,
        "Fixed connection transferring forces and moments"),
    ConnectionType.PINNED: ConnectionTypeInfo(
        "Pinned Connection", False, False, Directionality.TWO_WAY,
        "Hinge: transfers forces, free rotation"),
    ConnectionType.SURFACE: ConnectionTypeInfo(
        "Surface Attachment", False, False, Directionality.ONE_WAY,
        "Point constrained to a surface"),
    ConnectionType.EDGE: ConnectionTypeInfo(
        "Edge Attachment", False, False, Directionality.ONE_WAY,
        "Point constrained to an edge"),
    ConnectionType.GRID: ConnectionTypeInfo(
        "Grid Attachment", True, False, Directionality.ONE_WAY,
        "Point follows a grid intersection"),
    ConnectionType.RIGID: ConnectionTypeInfo(
        "Rigid Connection", True, True, Directionality.TWO_WAY,
        "No degrees of freedom"),
    ConnectionType.BOLTED: ConnectionTypeInfo(
        "Bolted Connection", True, False, Directionality.TWO_WAY,
        "Rigid position, limited moment transfer"),
    ConnectionType.WELDED: ConnectionTypeInfo(
        "Welded Connection", True, True, Directionality.TWO_WAY,
        "Full moment transfer"),
    ConnectionType.SLIDING: ConnectionTypeInfo(
        "Sliding Connection", False, False, Directionality.ONE_WAY,
        "Movement along a defined path"),
    ConnectionType.SPRING: ConnectionTypeInfo(
        "Spring Connection", False, False, Directionality.TWO_WAY,
        "Flexible connection"),
}

# Element hierarchy: higher value leads in one-way connections
ELEMENT_PRIORITIES: Dict[str, int] = {
    "grid": 1000,
    "foundation": 900,
    "column": 800,
    "mainBeam": 700,
    "secondaryBeam": 600,
    "beam": 600,
    "brace": 500,
    "connection": 400,
    "detail": 300,
}
DEFAULT_ELEMENT_PRIORITY = 500


def get_element_priority(kind: str) -> int:
    return ELEMENT_PRIORITIES.get(kind, DEFAULT_ELEMENT_PRIORITY)


def parse_connection_type(value: Any) -> Optional[ConnectionType]:
    """Accept an enum member or its string value. Unknown values log and return None."""
    if isinstance(value, ConnectionType):
        return value
    try:
        return ConnectionType(value)
    except ValueError:
        logger.warning(f"[CONNECTION] Unknown connection type: {value!r}")
        return None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Records
# =============================================================================

@dataclass
class ConnectionConstraint:
    """Constraint descriptor derived from the type table."""
    type: ConnectionType
    rigid: bool
    transfers_moment: bool
    freedoms: List[str] = field(default_factory=list)
    shared_transform: bool = False

    @classmethod
    def for_type(cls, connection_type: ConnectionType, directionality: Directionality) -> "ConnectionConstraint":
        info = CONNECTION_TYPES[connection_type]
        return cls(
            type=connection_type,
            rigid=info.rigid,
            transfers_moment=info.transfers_moment,
            shared_transform=directionality == Directionality.TWO_WAY and info.rigid,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type.value,
            "rigid": self.rigid,
            "transfersMoment": self.transfers_moment,
            "freedoms": list(self.freedoms),
        }
        if self.shared_transform:
            data["sharedTransform"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionConstraint":
        return cls(
            type=ConnectionType(data["type"]),
            rigid=bool(data.get("rigid", False)),
            transfers_moment=bool(data.get("transfersMoment", False)),
            freedoms=list(data.get("freedoms", [])),
            shared_transform=bool(data.get("sharedTransform", False)),
        )


@dataclass
class ConnectionEnd:
    """One side of a connection."""
    element_id: str
    point: str
    role: Role = Role.PEER

    def to_dict(self) -> Dict[str, str]:
        return {"elementId": self.element_id, "point": self.point, "role": self.role.value}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "ConnectionEnd":
        return cls(
            element_id=data["elementId"],
            point=data["point"],
            role=Role(data.get("role", "peer")),
        )


@dataclass
class Connection:
    """
    Coincidence constraint between two element points.

    Attributes:
        id: ``conn-NNN``
        type: Behavior (see CONNECTION_TYPES)
        directionality: ONE_WAY or TWO_WAY
        source / target: The two connected points with their stored roles
        constraint: Descriptor derived from type and directionality
        metadata: created / modified timestamps, createdBy
    """
    id: str
    type: ConnectionType
    directionality: Directionality
    source: ConnectionEnd
    target: ConnectionEnd
    constraint: ConnectionConstraint
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.metadata:
            stamp = _now()
            self.metadata = {"created": stamp, "modified": stamp, "createdBy": "user"}

    def involves_element(self, element_id: str) -> bool:
        return self.source.element_id == element_id or self.target.element_id == element_id

    def end_for(self, element_id: str) -> Optional[ConnectionEnd]:
        if self.source.element_id == element_id:
            return self.source
        if self.target.element_id == element_id:
            return self.target
        return None

    def other_end(self, element_id: str) -> Optional[ConnectionEnd]:
        if self.source.element_id == element_id:
            return self.target
        if self.target.element_id == element_id:
            return self.source
        return None

    def links(self, element_a: str, point_a: str, element_b: str, point_b: str) -> bool:
        """True if this connection joins the two points, in either orientation."""
        a = (self.source.element_id, self.source.point)
        b = (self.target.element_id, self.target.point)
        return {a, b} == {(element_a, point_a), (element_b, point_b)}

    def touch(self) -> None:
        self.metadata["modified"] = _now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "directionality": self.directionality.value,
            "source": self.source.to_dict(),
            "target": self.target.to_dict(),
            "constraint": self.constraint.to_dict(),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connection":
        connection_type = ConnectionType(data["type"])
        directionality = Directionality(data.get("directionality", "two_way"))
        constraint_data = data.get("constraint")
        constraint = (
            ConnectionConstraint.from_dict(constraint_data)
            if constraint_data else ConnectionConstraint.for_type(connection_type, directionality)
        )
        metadata = dict(data.get("metadata") or {})
        # older records used lastModified
        if "lastModified" in metadata and "modified" not in metadata:
            metadata["modified"] = metadata.pop("lastModified")
        return cls(
            id=data["id"],
            type=connection_type,
            directionality=directionality,
            source=ConnectionEnd.from_dict(data["source"]),
            target=ConnectionEnd.from_dict(data["target"]),
            constraint=constraint,
            metadata=metadata,
        )
