"""Hierarchical edge bundling.

Each edge is routed from its source leaf up to the lowest common ancestor and
back down to its target leaf. The positions of the nodes along that route
become the control points of a B-spline; ``tension`` straightens the interior
control points toward the chord between the endpoints (Holten 2006).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..errors import Diagnostic, InvalidEdgeError
from ..models import Edge
from .layout import LayoutPosition
from .tree import Tree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BundlePath:
    edge: Edge
    node_path: tuple[str, ...]
    control_points: tuple[LayoutPosition, ...]


def node_path(tree: Tree, edge: Edge) -> tuple[str, ...]:
    """Tree route of an edge: source, ancestors up to the LCA, descendants down to target."""
    if edge.source_id == edge.target_id:
        raise InvalidEdgeError("Edge endpoints are identical", rule="self-loop", subject=edge.source_id)
    for endpoint in (edge.source_id, edge.target_id):
        if endpoint not in tree:
            raise InvalidEdgeError(
                f"Edge endpoint '{endpoint}' is not in the tree",
                rule="degenerate-path",
                subject=f"{edge.source_id} -> {edge.target_id}",
            )
    path = tree.path_between(edge.source_id, edge.target_id)
    if len(path) < 2:
        raise InvalidEdgeError(
            f"Edge path has {len(path)} point(s)",
            rule="degenerate-path",
            subject=f"{edge.source_id} -> {edge.target_id}",
        )
    return tuple(path)


def control_points(points: Sequence[LayoutPosition], tension: float) -> tuple[LayoutPosition, ...]:
    """Straighten a route by ``tension``.

    ``tension <= 0`` keeps only the endpoints (a straight chord);
    ``tension >= 1`` keeps every route point unchanged.
    """
    if len(points) < 2:
        raise ValueError("a route needs at least two points")
    if tension <= 0:
        return (points[0], points[-1])
    if tension >= 1:
        return tuple(points)

    n = len(points) - 1
    x0, y0 = points[0].to_cartesian()
    xn, yn = points[-1].to_cartesian()
    out = [points[0]]
    for i, point in enumerate(points[1:-1], start=1):
        x, y = point.to_cartesian()
        frac = i / n
        out.append(
            LayoutPosition.from_cartesian(
                tension * x + (1 - tension) * (x0 + (xn - x0) * frac),
                tension * y + (1 - tension) * (y0 + (yn - y0) * frac),
            )
        )
    out.append(points[-1])
    return tuple(out)


def basis_curve(points: Sequence[LayoutPosition], samples_per_segment: int = 8) -> list[tuple[float, float]]:
    """Sample a clamped uniform cubic B-spline through the control points.

    Returns Cartesian ``(x, y)`` pairs starting at the first control point and
    ending at the last.
    """
    if not points:
        return []
    cart = [p.to_cartesian() for p in points]
    padded = [cart[0], cart[0]] + cart + [cart[-1], cart[-1]]
    samples = max(1, samples_per_segment)

    out: list[tuple[float, float]] = []
    segments = len(padded) - 3
    for s in range(segments):
        p0, p1, p2, p3 = padded[s : s + 4]
        last = s == segments - 1
        for k in range(samples + (1 if last else 0)):
            u = k / samples
            b0 = (1 - u) ** 3 / 6
            b1 = (3 * u**3 - 6 * u**2 + 4) / 6
            b2 = (-3 * u**3 + 3 * u**2 + 3 * u + 1) / 6
            b3 = u**3 / 6
            out.append(
                (
                    b0 * p0[0] + b1 * p1[0] + b2 * p2[0] + b3 * p3[0],
                    b0 * p0[1] + b1 * p1[1] + b2 * p2[1] + b3 * p3[1],
                )
            )
    return out


class BundleCache:
    """Bundles for one tree version.

    Node routes depend only on the tree and are built once per version;
    control points are cached for the most recent ``max_tensions`` tensions.
    A new version clears both.
    """

    def __init__(self, max_tensions: int = 4):
        self.max_tensions = max(1, max_tensions)
        self.version: str | None = None
        self._routes: dict[tuple[str, str, str], tuple[str, ...]] = {}
        self._route_edges: dict[tuple[str, str, str], Edge] = {}
        self._invalid: list[Diagnostic] = []
        self._bundles: dict[float, tuple[BundlePath, ...]] = {}
        self.stats: Counter[str] = Counter()

    def invalidate(self) -> None:
        self.version = None
        self._routes.clear()
        self._route_edges.clear()
        self._invalid.clear()
        self._bundles.clear()

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return list(self._invalid)

    def _build_routes(self, tree: Tree, edges: Iterable[Edge]) -> None:
        self.stats["route_builds"] += 1
        for edge in edges:
            try:
                self._routes[edge.key] = node_path(tree, edge)
                self._route_edges[edge.key] = edge
            except InvalidEdgeError as exc:
                logger.warning("Excluding edge: %s", exc.message)
                self._invalid.append(Diagnostic.from_error(exc))

    def bundles(
        self,
        tree: Tree,
        edges: Iterable[Edge],
        positions: dict[str, LayoutPosition],
        tension: float,
    ) -> tuple[BundlePath, ...]:
        """Bundled paths for ``edges``, reusing earlier work where possible."""
        if tree.version != self.version or not tree.version:
            self.invalidate()
            self.version = tree.version
            self._build_routes(tree, edges)

        cached = self._bundles.pop(tension, None)
        if cached is not None:
            self.stats["curve_hits"] += 1
            self._bundles[tension] = cached
            return cached

        self.stats["curve_builds"] += 1
        logger.debug("Computing %d bundles at tension %.3f", len(self._routes), tension)
        result = tuple(
            BundlePath(
                edge=self._route_edges[key],
                node_path=route,
                control_points=control_points([positions[n] for n in route], tension),
            )
            for key, route in self._routes.items()
        )
        self._bundles[tension] = result
        while len(self._bundles) > self.max_tensions:
            # Least recently used tension first
            self._bundles.pop(next(iter(self._bundles)))
        return result
