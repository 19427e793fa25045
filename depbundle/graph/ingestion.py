"""Turn raw dependency and relationship records into nodes and edges."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from ..config import IngestionConfig
from ..errors import Diagnostic, IngestionError, InvalidEdgeError
from ..models import (
    DependencyRecord,
    DetailRow,
    Edge,
    EdgeKind,
    Node,
    NodeKind,
    RelationshipInfo,
    RelationshipRecord,
    is_container_level,
    normalize_leaf_kind,
)

logger = logging.getLogger(__name__)

# Subject kinds that produce a dependency edge to what they reference
_DEPENDENCY_EDGE_KINDS = {
    NodeKind.MEASURE: EdgeKind.MEASURE_DEPENDENCY,
    NodeKind.CALCULATED_COLUMN: EdgeKind.CALCULATED_COLUMN_DEPENDENCY,
}

# Kinds a later, more specific sighting of the same object may replace
_WEAK_LEAF_KINDS = (NodeKind.COLUMN, NodeKind.OTHER)


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable result of one ingestion cycle."""

    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]
    detail_rows: tuple[DetailRow, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    excluded: int = 0
    container_references: int = 0
    version: str = ""
    _by_id: dict[str, Node] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        self._by_id.update((n.id, n) for n in self.nodes)

    def get(self, node_id: str) -> Node | None:
        return self._by_id.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    @property
    def leaves(self) -> list[Node]:
        return [n for n in self.nodes if n.kind.is_leaf_kind]

    @property
    def containers(self) -> list[Node]:
        return [n for n in self.nodes if n.kind == NodeKind.CONTAINER]

    def container_of(self, node_id: str) -> str | None:
        """Name of the container that holds a leaf."""
        node = self._by_id.get(node_id)
        if node is None or node.parent_id is None:
            return None
        parent = self._by_id.get(node.parent_id)
        if parent is None or parent.kind != NodeKind.CONTAINER:
            return None
        return parent.name

    def errors(self, category: str | None = None) -> list[Diagnostic]:
        return [d for d in self.diagnostics if category is None or d.category == category]


def fingerprint(nodes: Iterable[Node], edges: Iterable[Edge]) -> str:
    """Content hash of a node and edge set, independent of input order."""
    payload = {
        "nodes": sorted([n.id, n.name, n.parent_id or "", n.kind.value] for n in nodes),
        "edges": sorted(list(e.key) for e in edges),
    }
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


class _GraphBuilder:
    """Accumulates nodes and edges for a single ingestion cycle."""

    def __init__(self, config: IngestionConfig):
        self.config = config
        self.denylist = config.compiled_denylist()
        self.root = Node(id=config.root_name, name=config.root_name, parent_id=None, kind=NodeKind.ROOT)
        self.nodes: dict[str, Node] = {self.root.id: self.root}
        self.claims: dict[str, tuple[str, ...]] = {self.root.id: ("root",)}
        self.leaf_parts: dict[str, tuple[str, str]] = {}  # leaf id -> (container, object)
        self.edges: dict[tuple[str, str, str], Edge] = {}
        self.diagnostics: list[Diagnostic] = []
        self.excluded = 0
        self.container_references = 0

    def join(self, *parts: str) -> str:
        return self.config.delimiter.join(parts)

    def is_denied(self, *names: str | None) -> bool:
        return any(name and pattern.search(name) for name in names for pattern in self.denylist)

    def report(self, exc: IngestionError | InvalidEdgeError) -> None:
        logger.warning("%s: %s", exc.rule, exc.message)
        self.diagnostics.append(Diagnostic.from_error(exc))

    def _claim(self, node_id: str, identity: tuple[str, ...]) -> None:
        owner = self.claims.get(node_id)
        if owner is None:
            self.claims[node_id] = identity
        elif owner != identity:
            raise IngestionError(
                f"Id '{node_id}' is produced by both {'/'.join(owner)} and {'/'.join(identity)}",
                rule="duplicate-id",
                subject=node_id,
            )

    def add_container(self, name: str) -> str:
        node_id = self.join(self.root.id, name)
        self._claim(node_id, ("container", name))
        if node_id not in self.nodes:
            self.nodes[node_id] = Node(id=node_id, name=name, parent_id=self.root.id, kind=NodeKind.CONTAINER)
        return node_id

    def add_leaf(self, container: str, name: str, kind: NodeKind) -> str:
        container_id = self.add_container(container)
        node_id = self.join(container_id, name)
        self._claim(node_id, ("leaf", container, name))
        existing = self.nodes.get(node_id)
        if existing is None or (existing.kind in _WEAK_LEAF_KINDS and kind not in _WEAK_LEAF_KINDS):
            self.nodes[node_id] = Node(id=node_id, name=name, parent_id=container_id, kind=kind)
            self.leaf_parts[node_id] = (container, name)
        return node_id

    def add_edge(self, source_id: str, target_id: str, kind: EdgeKind, info: RelationshipInfo | None = None) -> None:
        if source_id == target_id:
            raise InvalidEdgeError(
                f"{kind.value} edge references itself",
                rule="self-loop",
                subject=source_id,
            )
        edge = Edge(source_id=source_id, target_id=target_id, kind=kind, relationship=info)
        self.edges.setdefault(edge.key, edge)

    # -- dependency records -------------------------------------------------

    def add_dependency(self, record: DependencyRecord) -> None:
        if not record.container or not record.object:
            raise IngestionError(
                "Dependency record is missing its container or object name",
                rule="incomplete-record",
                subject=f"{record.container or '?'}/{record.object or '?'}",
            )
        if self.is_denied(record.container, record.object):
            logger.debug("Excluding denylisted record %s/%s", record.container, record.object)
            self.excluded += 1
            return

        subject_id: str | None = None
        subject_kind: NodeKind | None = None
        if is_container_level(record.kind):
            self.add_container(record.container)
        else:
            subject_kind = normalize_leaf_kind(record.kind)
            subject_id = self.add_leaf(record.container, record.object, subject_kind)

        if not record.has_reference:
            return
        if self.is_denied(record.ref_container, record.ref_object):
            logger.debug("Excluding denylisted reference %s/%s", record.ref_container, record.ref_object)
            self.excluded += 1
            return

        if is_container_level(record.ref_kind):
            self.add_container(record.ref_container)
            self.container_references += 1
            return

        target_id = self.add_leaf(record.ref_container, record.ref_object, normalize_leaf_kind(record.ref_kind))
        edge_kind = _DEPENDENCY_EDGE_KINDS.get(subject_kind) if subject_kind else None
        if subject_id is not None and edge_kind is not None:
            self.add_edge(subject_id, target_id, edge_kind)

    # -- relationship records -----------------------------------------------

    def add_relationship(self, relationship_id: str, rows: Sequence[RelationshipRecord]) -> None:
        if any(self.is_denied(r.container, r.object, r.ref_container, r.ref_object) for r in rows):
            logger.debug("Excluding denylisted relationship %s", relationship_id)
            self.excluded += 1
            return
        if len(rows) != 2:
            raise IngestionError(
                f"Relationship has {len(rows)} rows, expected 2",
                rule="relationship-group-size",
                subject=relationship_id,
            )
        for row in rows:
            if not row.ref_container or not row.ref_object:
                raise IngestionError(
                    "Relationship row is missing its referenced column",
                    rule="incomplete-record",
                    subject=relationship_id,
                )

        # First discovered row is the source side, second the target side
        first, second = rows
        source_id = self.add_leaf(first.ref_container, first.ref_object, NodeKind.COLUMN)
        target_id = self.add_leaf(second.ref_container, second.ref_object, NodeKind.COLUMN)
        info = RelationshipInfo(
            relationship_id=relationship_id,
            is_active=first.is_active if first.is_active is not None else second.is_active,
            cross_filter_behavior=first.cross_filter_behavior or second.cross_filter_behavior,
            from_cardinality=first.from_cardinality or second.from_cardinality,
            to_cardinality=first.to_cardinality or second.to_cardinality,
        )
        self.add_edge(source_id, target_id, EdgeKind.RELATIONSHIP, info)

    # -- result ---------------------------------------------------------------

    def resolved_edges(self) -> list[Edge]:
        """Edges whose endpoints both resolve to leaves; the rest are reported."""
        edges = []
        for edge in self.edges.values():
            try:
                for endpoint in (edge.source_id, edge.target_id):
                    node = self.nodes.get(endpoint)
                    if node is None or not node.kind.is_leaf_kind:
                        raise IngestionError(
                            f"Edge endpoint '{endpoint}' does not resolve to a leaf",
                            rule="unresolved-endpoint",
                            subject=f"{edge.source_id} -> {edge.target_id}",
                        )
            except IngestionError as exc:
                self.report(exc)
                continue
            edges.append(edge)
        return edges

    def detail_row(self, edge: Edge) -> DetailRow:
        source_container, source_object = self.leaf_parts[edge.source_id]
        target_container, target_object = self.leaf_parts[edge.target_id]
        return DetailRow(
            source_id=edge.source_id,
            target_id=edge.target_id,
            kind=edge.kind,
            source_container=source_container,
            target_container=target_container,
            source_object=source_object,
            target_object=target_object,
            relationship=edge.relationship,
        )


def group_relationships(records: Iterable[RelationshipRecord]) -> dict[str, list[RelationshipRecord]]:
    """Group relationship rows by id, keeping discovery order of groups and rows."""
    groups: dict[str, list[RelationshipRecord]] = {}
    for record in records:
        groups.setdefault(record.relationship_id, []).append(record)
    return groups


def ingest(
    dependencies: Iterable[DependencyRecord],
    relationships: Iterable[RelationshipRecord] = (),
    config: IngestionConfig | None = None,
) -> GraphSnapshot:
    """Build a deduplicated node and edge set from raw records.

    Per-record problems are collected as diagnostics and the rest of the input
    is still ingested. Denylisted records are dropped silently and counted in
    ``excluded``.
    """
    builder = _GraphBuilder(config or IngestionConfig())

    for record in dependencies:
        try:
            builder.add_dependency(record)
        except (IngestionError, InvalidEdgeError) as exc:
            builder.report(exc)

    for relationship_id, rows in group_relationships(relationships).items():
        try:
            if not relationship_id:
                raise IngestionError(
                    f"{len(rows)} relationship rows have no relationship id",
                    rule="incomplete-record",
                )
            builder.add_relationship(relationship_id, rows)
        except (IngestionError, InvalidEdgeError) as exc:
            builder.report(exc)

    edges = builder.resolved_edges()
    nodes = list(builder.nodes.values())
    if builder.excluded:
        builder.diagnostics.append(
            Diagnostic(
                level="info",
                rule="denylisted",
                category="excluded",
                message=f"{builder.excluded} record(s) excluded by the denylist",
            )
        )
    logger.debug(
        "Ingested %d nodes, %d edges (%d excluded, %d diagnostics)",
        len(nodes),
        len(edges),
        builder.excluded,
        len(builder.diagnostics),
    )
    return GraphSnapshot(
        nodes=tuple(nodes),
        edges=tuple(edges),
        detail_rows=tuple(builder.detail_row(e) for e in edges),
        diagnostics=tuple(builder.diagnostics),
        excluded=builder.excluded,
        container_references=builder.container_references,
        version=fingerprint(nodes, edges),
    )
