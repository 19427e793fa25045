"""Strict rooted tree over the node set, with ancestor queries."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from ..errors import StructuralError
from ..models import Node

logger = logging.getLogger(__name__)


class Tree:
    """Read-only parent/child adjacency built once per ingestion cycle.

    Children are ordered by ``(name, id)`` so that leaf order, and with it the
    radial layout, is identical across rebuilds of the same input.
    """

    def __init__(self, nodes: dict[str, Node], children: dict[str, tuple[str, ...]], root_id: str, version: str = ""):
        self.nodes = nodes
        self.children = children
        self.root_id = root_id
        self.version = version
        self._depth: dict[str, int] = {}
        self._ancestors: dict[str, tuple[str, ...]] = {}

        queue = deque([(root_id, (root_id,))])
        while queue:
            node_id, path = queue.popleft()
            self._ancestors[node_id] = path
            self._depth[node_id] = len(path) - 1
            for child in children.get(node_id, ()):
                queue.append((child, path + (child,)))

    @classmethod
    def build(cls, nodes: Iterable[Node], version: str = "") -> "Tree":
        """Assemble nodes into a tree.

        Raises:
            StructuralError: duplicate ids, zero or several roots, a missing
                parent, or a cycle.
        """
        by_id: dict[str, Node] = {}
        for node in nodes:
            if node.id in by_id:
                raise StructuralError(f"Duplicate node id '{node.id}'", rule="duplicate-id", subject=node.id)
            by_id[node.id] = node

        roots = [n.id for n in by_id.values() if n.parent_id is None]
        if not roots:
            raise StructuralError("Node set has no root", rule="missing-root")
        if len(roots) > 1:
            raise StructuralError(
                f"Node set has {len(roots)} roots: {', '.join(sorted(roots))}",
                rule="multiple-roots",
                subject=sorted(roots)[0],
            )

        grouped: dict[str, list[Node]] = {}
        for node in by_id.values():
            if node.parent_id is None:
                continue
            if node.parent_id not in by_id:
                raise StructuralError(
                    f"Parent '{node.parent_id}' of '{node.id}' does not exist",
                    rule="missing-parent",
                    subject=node.id,
                )
            grouped.setdefault(node.parent_id, []).append(node)

        children = {
            parent: tuple(n.id for n in sorted(kids, key=lambda n: (n.name, n.id)))
            for parent, kids in grouped.items()
        }

        tree = cls(by_id, children, roots[0], version=version)
        unreachable = set(by_id) - set(tree._ancestors)
        if unreachable:
            cycle = _find_cycle(by_id, min(unreachable))
            raise StructuralError(
                f"Cycle in parent links: {' -> '.join(cycle)}",
                rule="cycle",
                subject=cycle[0],
            )

        logger.debug("Built tree %s with %d nodes", version or "<unversioned>", len(by_id))
        return tree

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def _require(self, node_id: str) -> None:
        if node_id not in self.nodes:
            raise KeyError(f"Unknown node id '{node_id}'")

    def children_of(self, node_id: str) -> tuple[str, ...]:
        self._require(node_id)
        return self.children.get(node_id, ())

    def is_leaf(self, node_id: str) -> bool:
        return not self.children_of(node_id)

    def depth_of(self, node_id: str) -> int:
        self._require(node_id)
        return self._depth[node_id]

    @property
    def max_depth(self) -> int:
        return max(self._depth.values(), default=0)

    def ancestors_of(self, node_id: str) -> list[str]:
        """Path from the root down to ``node_id``, both inclusive."""
        self._require(node_id)
        return list(self._ancestors[node_id])

    def lowest_common_ancestor(self, a: str, b: str) -> str:
        """Deepest node shared by both ancestor paths."""
        path_a = self.ancestors_of(a)
        path_b = self.ancestors_of(b)
        lca = self.root_id
        for x, y in zip(path_a, path_b):
            if x != y:
                break
            lca = x
        return lca

    def path_between(self, a: str, b: str) -> list[str]:
        """Nodes from ``a`` up to the common ancestor and down to ``b``."""
        path_a = self.ancestors_of(a)
        path_b = self.ancestors_of(b)
        lca = self.lowest_common_ancestor(a, b)
        up = path_a[path_a.index(lca):]
        down = path_b[path_b.index(lca) + 1:]
        return list(reversed(up)) + down

    def walk(self) -> list[str]:
        """All node ids in depth-first pre-order, respecting child order."""
        order: list[str] = []
        stack = [self.root_id]
        while stack:
            node_id = stack.pop()
            order.append(node_id)
            stack.extend(reversed(self.children.get(node_id, ())))
        return order

    def leaves(self) -> list[str]:
        """Leaf ids in depth-first order."""
        return [n for n in self.walk() if not self.children.get(n)]


def _find_cycle(nodes: dict[str, Node], start: str) -> list[str]:
    """Follow parent links from ``start`` until a node repeats."""
    seen: list[str] = []
    current: str | None = start
    while current is not None and current not in seen:
        seen.append(current)
        current = nodes[current].parent_id
    if current is None:
        return seen
    cycle = seen[seen.index(current):]
    return cycle + [current]
