"""Data models for dependency graphs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NodeKind(str, Enum):
    """Kind of a tree node."""

    ROOT = "root"
    CONTAINER = "container"
    MEASURE = "measure"
    CALCULATED_COLUMN = "calculatedColumn"
    COLUMN = "column"
    PARTITION = "partition"
    OTHER = "other"

    @property
    def is_leaf_kind(self) -> bool:
        return self not in (NodeKind.ROOT, NodeKind.CONTAINER)


class EdgeKind(str, Enum):
    """Kind of a non-hierarchical edge between two leaves."""

    RELATIONSHIP = "relationship"
    MEASURE_DEPENDENCY = "measureDependency"
    CALCULATED_COLUMN_DEPENDENCY = "calculatedColumnDependency"


# Host object types that name a whole table rather than an object inside one
CONTAINER_LEVEL_KINDS = frozenset({"TABLE", "CALC_TABLE", "CALCULATED_TABLE", "CALCULATEDTABLE"})

# Host object type spellings -> leaf kind
_LEAF_KIND_ALIASES = {
    "MEASURE": NodeKind.MEASURE,
    "CALC_COLUMN": NodeKind.CALCULATED_COLUMN,
    "CALCULATED_COLUMN": NodeKind.CALCULATED_COLUMN,
    "CALCULATEDCOLUMN": NodeKind.CALCULATED_COLUMN,
    "COLUMN": NodeKind.COLUMN,
    "DATA_COLUMN": NodeKind.COLUMN,
    "PARTITION": NodeKind.PARTITION,
}


def is_container_level(raw_kind: str | None) -> bool:
    """True when a host object type refers to a whole container."""
    if not raw_kind:
        return False
    return raw_kind.strip().upper().replace(" ", "_") in CONTAINER_LEVEL_KINDS


def normalize_leaf_kind(raw_kind: str | None) -> NodeKind:
    """Map a host object type string onto a leaf ``NodeKind``.

    Accepts both the host's upper-case spelling (``CALC_COLUMN``) and the
    camel-case values of ``NodeKind`` itself (``calculatedColumn``).
    """
    if not raw_kind:
        return NodeKind.OTHER
    value = raw_kind.strip()
    for kind in NodeKind:
        if kind.is_leaf_kind and kind.value == value:
            return kind
    return _LEAF_KIND_ALIASES.get(value.upper().replace(" ", "_"), NodeKind.OTHER)


@dataclass(frozen=True)
class Node:
    """A node of the container hierarchy."""

    id: str
    name: str
    parent_id: str | None
    kind: NodeKind

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass(frozen=True)
class RelationshipInfo:
    """Host attributes of a relationship edge."""

    relationship_id: str
    is_active: bool | None = None
    cross_filter_behavior: str | None = None
    from_cardinality: str | None = None
    to_cardinality: str | None = None


@dataclass(frozen=True)
class Edge:
    """A directed dependency between two leaves.

    Identity is ``(source_id, target_id, kind)``; relationship metadata rides
    along without taking part in equality.
    """

    source_id: str
    target_id: str
    kind: EdgeKind
    relationship: RelationshipInfo | None = field(default=None, compare=False)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.source_id, self.target_id, self.kind.value)


@dataclass(frozen=True)
class DependencyRecord:
    """One row of the host's calculation dependency listing."""

    container: str
    object: str
    kind: str
    ref_container: str | None = None
    ref_object: str | None = None
    ref_kind: str | None = None

    @property
    def has_reference(self) -> bool:
        return bool(self.ref_container) and bool(self.ref_object)


@dataclass(frozen=True)
class RelationshipRecord:
    """One side of a relationship: the column it references on that side."""

    relationship_id: str
    container: str
    object: str
    ref_container: str
    ref_object: str
    is_active: bool | None = None
    cross_filter_behavior: str | None = None
    from_cardinality: str | None = None
    to_cardinality: str | None = None


@dataclass(frozen=True)
class DetailRow:
    """A row for an external tabular view of the edges."""

    source_id: str
    target_id: str
    kind: EdgeKind
    source_container: str
    target_container: str
    source_object: str
    target_object: str
    relationship: RelationshipInfo | None = None

    def to_dict(self) -> dict:
        data = {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "kind": self.kind.value,
            "source_container": self.source_container,
            "target_container": self.target_container,
            "source_object": self.source_object,
            "target_object": self.target_object,
        }
        if self.relationship is not None:
            data["relationship"] = {
                "relationship_id": self.relationship.relationship_id,
                "is_active": self.relationship.is_active,
                "cross_filter_behavior": self.relationship.cross_filter_behavior,
                "from_cardinality": self.relationship.from_cardinality,
                "to_cardinality": self.relationship.to_cardinality,
            }
        return data
