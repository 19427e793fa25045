"""Cluster-style radial layout of a tree.

Leaves sit on the outer circle at equal angular spacing in depth-first order;
each internal node sits at the mean angle of its children, at a radius
proportional to its depth.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .tree import Tree

TAU = 2 * math.pi


@dataclass(frozen=True)
class LayoutPosition:
    angle: float  # radians, [0, 2*pi)
    radius: float

    def to_cartesian(self) -> tuple[float, float]:
        return (self.radius * math.cos(self.angle), self.radius * math.sin(self.angle))

    @classmethod
    def from_cartesian(cls, x: float, y: float) -> "LayoutPosition":
        return cls(angle=math.atan2(y, x) % TAU, radius=math.hypot(x, y))

    def to_dict(self) -> dict[str, float]:
        return {"angle": self.angle, "radius": self.radius}


def radial_layout(tree: Tree, *, outer_radius: float = 1.0) -> dict[str, LayoutPosition]:
    """Assign every node of ``tree`` an angle and a radius."""
    leaves = tree.leaves()
    step = TAU / len(leaves) if leaves else 0.0
    max_depth = tree.max_depth
    ring = outer_radius / max_depth if max_depth else 0.0

    angles: dict[str, float] = {leaf: i * step for i, leaf in enumerate(leaves)}

    # Children before parents, so every child's angle is known
    for node_id in reversed(tree.walk()):
        kids = tree.children.get(node_id, ())
        if kids:
            angles[node_id] = sum(angles[k] for k in kids) / len(kids)

    positions: dict[str, LayoutPosition] = {}
    for node_id, angle in angles.items():
        if tree.children.get(node_id) or node_id == tree.root_id:
            radius = tree.depth_of(node_id) * ring
        else:
            radius = outer_radius if max_depth else 0.0
        positions[node_id] = LayoutPosition(angle=angle, radius=radius)
    return positions
