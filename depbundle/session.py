"""Interaction layer: owns the filter state and the derived geometry.

A ``Session`` runs ingestion, tree building and layout once per ingestion
cycle, keeps bundles cached per ``(tree_version, tension)``, and recomputes
visibility on demand. Interaction events only ever touch ``FilterState`` or
the tension; they never re-run layout.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .config import Config
from .errors import Diagnostic, StructuralError
from .graph.bundling import BundleCache, BundlePath
from .graph.ingestion import GraphSnapshot, ingest
from .graph.layout import LayoutPosition, radial_layout
from .graph.tree import Tree
from .highlight import ALL, FilterState, Visuals, compute_visuals, make_detail_predicate
from .models import DependencyRecord, DetailRow, EdgeKind, RelationshipRecord
from .records import load_dependency_records, load_relationship_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeView:
    id: str
    name: str
    kind: str
    angle: float
    radius: float
    opacity: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "angle": self.angle,
            "radius": self.radius,
            "opacity": self.opacity,
        }


@dataclass(frozen=True)
class EdgeView:
    source_id: str
    target_id: str
    kind: str
    control_points: tuple[LayoutPosition, ...]
    opacity: float
    direction: str

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "kind": self.kind,
            "control_points": [p.to_dict() for p in self.control_points],
            "opacity": self.opacity,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class Dataset:
    """Geometry plus visibility, ready for a renderer."""

    version: str | None
    stale: bool
    tension: float
    nodes: tuple[NodeView, ...] = ()
    edges: tuple[EdgeView, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    state: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "stale": self.stale,
            "tension": self.tension,
            "state": self.state,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


class Session:
    def __init__(self, config: Config | None = None):
        self.config = config or Config()
        self.state = FilterState()
        self.tension = self.config.bundling.tension
        self.snapshot: GraphSnapshot | None = None
        self.tree: Tree | None = None
        self.positions: dict[str, LayoutPosition] = {}
        self.stale = False
        self.structural: list[Diagnostic] = []
        self.stats: Counter[str] = Counter()
        self._bundles = BundleCache()

    @classmethod
    def from_files(cls, dependencies: Path, relationships: Path | None = None, config: Config | None = None) -> "Session":
        """Create a session from exported record files."""
        session = cls(config)
        rels = load_relationship_records(relationships) if relationships else []
        session.load(load_dependency_records(dependencies), rels)
        return session

    # -- ingestion cycle --------------------------------------------------------

    def load(
        self,
        dependencies: Iterable[DependencyRecord],
        relationships: Iterable[RelationshipRecord] = (),
    ) -> bool:
        """Ingest raw records and rebuild the tree if they changed anything."""
        snapshot = ingest(dependencies, relationships, self.config.ingestion)
        return self.apply(snapshot)

    def apply(self, snapshot: GraphSnapshot) -> bool:
        """Adopt a snapshot.

        Returns False when its nodes do not form a tree; the previous tree,
        layout and bundles are then kept and marked stale.
        """
        current = self.snapshot
        if current is not None and self.tree is not None and not self.stale and snapshot.version == current.version:
            logger.debug("Snapshot %s unchanged; keeping layout", snapshot.version)
            self.snapshot = snapshot
            return True

        try:
            tree = Tree.build(snapshot.nodes, version=snapshot.version)
        except StructuralError as exc:
            logger.error("Keeping previous tree: %s", exc.message)
            self.structural = [Diagnostic.from_error(exc)]
            self.stale = self.tree is not None
            return False

        self.snapshot = snapshot
        self.tree = tree
        self.positions = radial_layout(tree, outer_radius=self.config.layout.outer_radius)
        self.stats["layout_builds"] += 1
        self.stale = False
        self.structural = []
        return True

    # -- interaction events -------------------------------------------------------

    def set_hover(self, node_id: str | None) -> None:
        self.state = self.state.with_hover(node_id)

    def set_category_selection(self, kinds=ALL, containers=ALL, objects=ALL) -> None:
        self.state = self.state.with_categories(kinds, containers, objects)

    def set_focused_node(self, node_id: str | None) -> None:
        self.state = self.state.with_focus(node_id)

    def clear_focused_node(self) -> None:
        self.state = self.state.with_focus(None)

    def set_tension(self, tension: float) -> None:
        if not 0.0 <= tension <= 1.0:
            raise ValueError("tension must be between 0 and 1")
        self.tension = tension

    # -- derived output ---------------------------------------------------------

    @property
    def diagnostics(self) -> list[Diagnostic]:
        found: list[Diagnostic] = []
        if self.snapshot is not None:
            found.extend(self.snapshot.diagnostics)
        found.extend(self._bundles.diagnostics)
        found.extend(self.structural)
        return found

    def visuals(self) -> Visuals:
        if self.snapshot is None:
            return Visuals()
        return compute_visuals(self.snapshot.nodes, self.snapshot.edges, self.state, self.config.opacity)

    def bundles(self) -> tuple[BundlePath, ...]:
        if self.snapshot is None or self.tree is None:
            return ()
        return self._bundles.bundles(self.tree, self.snapshot.edges, self.positions, self.tension)

    def dataset(self) -> Dataset:
        bundles = self.bundles()
        visuals = self.visuals()
        nodes: list[NodeView] = []
        edges: list[EdgeView] = []
        if self.snapshot is not None:
            for node in self.snapshot.nodes:
                pos = self.positions[node.id]
                nodes.append(
                    NodeView(
                        id=node.id,
                        name=node.name,
                        kind=node.kind.value,
                        angle=pos.angle,
                        radius=pos.radius,
                        opacity=visuals.node_opacity.get(node.id, self.config.opacity.full),
                    )
                )
            for bundle in bundles:
                key = bundle.edge.key
                edges.append(
                    EdgeView(
                        source_id=bundle.edge.source_id,
                        target_id=bundle.edge.target_id,
                        kind=bundle.edge.kind.value,
                        control_points=bundle.control_points,
                        opacity=visuals.edge_opacity[key],
                        direction=visuals.edge_direction[key],
                    )
                )
        return Dataset(
            version=self.snapshot.version if self.snapshot else None,
            stale=self.stale,
            tension=self.tension,
            nodes=tuple(nodes),
            edges=tuple(edges),
            diagnostics=tuple(self.diagnostics),
            state=self.state.to_dict(),
        )

    def detail_predicate(
        self,
        source_id: str,
        target_id: str,
        kind: EdgeKind | str,
        source_container: str,
        target_container: str,
    ) -> bool:
        nodes = self.snapshot.nodes if self.snapshot else ()
        return make_detail_predicate(nodes, self.state)(
            source_id, target_id, kind, source_container, target_container
        )

    def detail_rows(self) -> list[DetailRow]:
        """Detail rows of the current snapshot that pass the detail predicate."""
        if self.snapshot is None:
            return []
        predicate = make_detail_predicate(self.snapshot.nodes, self.state)
        return [
            row
            for row in self.snapshot.detail_rows
            if predicate(row.source_id, row.target_id, row.kind, row.source_container, row.target_container)
        ]
