"""Filter and highlight state machine.

Everything here is a pure function of the node set, the edge set and a
``FilterState``. Precedence, highest first:

1. hover - edges touching the hovered node are opaque and tagged
   inbound/outbound, everything else is dimmed;
2. category selection - edges matching the kind/container/object selection
   get the matched opacity, the rest the unmatched opacity; nodes stay opaque;
3. default - every edge at the default opacity, every node opaque.

The detail predicate ignores hover and honours the focused node instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Iterable, Literal, Union

from .config import OpacityConfig
from .models import Edge, EdgeKind, Node, NodeKind

Direction = Literal["inbound", "outbound", "none"]


class _All(Enum):
    ALL = "ALL"

    def __repr__(self) -> str:
        return "ALL"


ALL = _All.ALL

Selection = Union[frozenset, _All]


def selection(values: Iterable[str] | _All | None) -> Selection:
    """Normalise a selection: ``None`` or ``ALL`` selects everything."""
    if values is None or values is ALL:
        return ALL
    return frozenset(values)


def _selected(sel: Selection, value: str | None) -> bool:
    if sel is ALL:
        return True
    return value is not None and value in sel


@dataclass(frozen=True)
class FilterState:
    """The interaction state: category selections, hover and focus."""

    selected_kinds: Selection = ALL
    selected_containers: Selection = ALL
    selected_objects: Selection = ALL
    hovered_node_id: str | None = None
    focused_node_id: str | None = None

    @property
    def category_active(self) -> bool:
        return not (
            self.selected_kinds is ALL and self.selected_containers is ALL and self.selected_objects is ALL
        )

    def with_hover(self, node_id: str | None) -> "FilterState":
        return replace(self, hovered_node_id=node_id)

    def with_focus(self, node_id: str | None) -> "FilterState":
        return replace(self, focused_node_id=node_id)

    def with_categories(
        self,
        kinds: Iterable[str] | _All | None = ALL,
        containers: Iterable[str] | _All | None = ALL,
        objects: Iterable[str] | _All | None = ALL,
    ) -> "FilterState":
        return replace(
            self,
            selected_kinds=selection(kinds),
            selected_containers=selection(containers),
            selected_objects=selection(objects),
        )

    def to_dict(self) -> dict:
        def dump(sel: Selection):
            return "ALL" if sel is ALL else sorted(sel)

        return {
            "selected_kinds": dump(self.selected_kinds),
            "selected_containers": dump(self.selected_containers),
            "selected_objects": dump(self.selected_objects),
            "hovered_node_id": self.hovered_node_id,
            "focused_node_id": self.focused_node_id,
        }


@dataclass(frozen=True)
class Visuals:
    node_opacity: dict[str, float] = field(default_factory=dict)
    edge_opacity: dict[tuple[str, str, str], float] = field(default_factory=dict)
    edge_direction: dict[tuple[str, str, str], Direction] = field(default_factory=dict)


class _Endpoints:
    """Container and object name lookup for edge endpoints."""

    def __init__(self, nodes: Iterable[Node]):
        self.by_id = {n.id: n for n in nodes}

    def object_of(self, node_id: str) -> str | None:
        node = self.by_id.get(node_id)
        return node.name if node is not None else None

    def container_of(self, node_id: str) -> str | None:
        node = self.by_id.get(node_id)
        if node is None or node.parent_id is None:
            return None
        parent = self.by_id.get(node.parent_id)
        if parent is None or parent.kind != NodeKind.CONTAINER:
            return None
        return parent.name


def _kind_value(kind: EdgeKind | str) -> str:
    return kind.value if isinstance(kind, EdgeKind) else str(kind)


def _endpoint_selected(state: FilterState, container: str | None, obj: str | None) -> bool:
    return _selected(state.selected_containers, container) and _selected(state.selected_objects, obj)


def edge_matches(state: FilterState, edge: Edge, endpoints: _Endpoints) -> bool:
    """Category match: kind selected and at least one endpoint selected."""
    if not _selected(state.selected_kinds, edge.kind.value):
        return False
    return any(
        _endpoint_selected(state, endpoints.container_of(n), endpoints.object_of(n))
        for n in (edge.source_id, edge.target_id)
    )


def compute_visuals(
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    state: FilterState,
    opacity: OpacityConfig | None = None,
) -> Visuals:
    """Per-node and per-edge opacity for the current state."""
    opacity = opacity or OpacityConfig()
    nodes = list(nodes)
    edges = list(edges)
    visuals = Visuals()

    hovered = state.hovered_node_id
    if hovered is not None:
        connected = {hovered}
        for edge in edges:
            key = edge.key
            if edge.source_id == hovered:
                visuals.edge_direction[key] = "outbound"
            elif edge.target_id == hovered:
                visuals.edge_direction[key] = "inbound"
            else:
                visuals.edge_direction[key] = "none"
                visuals.edge_opacity[key] = opacity.dimmed_edge
                continue
            visuals.edge_opacity[key] = opacity.full
            connected.update((edge.source_id, edge.target_id))
        for node in nodes:
            visuals.node_opacity[node.id] = opacity.full if node.id in connected else opacity.dimmed_node
        return visuals

    for node in nodes:
        visuals.node_opacity[node.id] = opacity.full

    if state.category_active:
        endpoints = _Endpoints(nodes)
        for edge in edges:
            matched = edge_matches(state, edge, endpoints)
            visuals.edge_opacity[edge.key] = opacity.matched_edge if matched else opacity.unmatched_edge
            visuals.edge_direction[edge.key] = "none"
    else:
        for edge in edges:
            visuals.edge_opacity[edge.key] = opacity.default_edge
            visuals.edge_direction[edge.key] = "none"
    return visuals


DetailPredicate = Callable[[str, str, Union[EdgeKind, str], str, str], bool]


def make_detail_predicate(nodes: Iterable[Node], state: FilterState) -> DetailPredicate:
    """Predicate for external detail rows.

    ``predicate(source_id, target_id, kind, source_container, target_container)``
    is true when the kind is selected, at least one endpoint's container and
    object are selected, and, with a focused node, one endpoint is that node.
    """
    endpoints = _Endpoints(nodes)

    def predicate(
        source_id: str,
        target_id: str,
        kind: EdgeKind | str,
        source_container: str,
        target_container: str,
    ) -> bool:
        if not _selected(state.selected_kinds, _kind_value(kind)):
            return False
        if not (
            _endpoint_selected(state, source_container, endpoints.object_of(source_id))
            or _endpoint_selected(state, target_container, endpoints.object_of(target_id))
        ):
            return False
        focused = state.focused_node_id
        if focused is not None and focused not in (source_id, target_id):
            return False
        return True

    return predicate
