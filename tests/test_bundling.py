import pytest

from depbundle.errors import InvalidEdgeError
from depbundle.graph.bundling import BundleCache, basis_curve, control_points, node_path
from depbundle.graph.ingestion import GraphSnapshot
from depbundle.graph.layout import LayoutPosition, radial_layout
from depbundle.graph.tree import Tree
from depbundle.models import Edge, EdgeKind


@pytest.fixture
def scenario_tree(scenario_a: GraphSnapshot) -> Tree:
    return Tree.build(scenario_a.nodes, version=scenario_a.version)


def test_node_path_goes_through_lca(scenario_a: GraphSnapshot, scenario_tree: Tree) -> None:
    assert node_path(scenario_tree, scenario_a.edges[0]) == (
        "Model.Sales.Amount",
        "Model.Sales",
        "Model",
        "Model.Date",
        "Model.Date.OrderDate",
    )


def test_node_path_rejects_self_loop(scenario_tree: Tree) -> None:
    edge = Edge("Model.Sales.Amount", "Model.Sales.Amount", EdgeKind.MEASURE_DEPENDENCY)
    with pytest.raises(InvalidEdgeError) as exc:
        node_path(scenario_tree, edge)
    assert exc.value.rule == "self-loop"


def test_node_path_rejects_unknown_endpoint(scenario_tree: Tree) -> None:
    edge = Edge("Model.Sales.Amount", "Model.Sales.Missing", EdgeKind.MEASURE_DEPENDENCY)
    with pytest.raises(InvalidEdgeError) as exc:
        node_path(scenario_tree, edge)
    assert exc.value.rule == "degenerate-path"


def test_tension_zero_is_a_straight_chord(scenario_a: GraphSnapshot, scenario_tree: Tree) -> None:
    positions = radial_layout(scenario_tree)
    route = [positions[n] for n in node_path(scenario_tree, scenario_a.edges[0])]
    points = control_points(route, 0.0)
    assert points == (route[0], route[-1])


def test_tension_one_keeps_the_route(scenario_a: GraphSnapshot, scenario_tree: Tree) -> None:
    positions = radial_layout(scenario_tree)
    route = [positions[n] for n in node_path(scenario_tree, scenario_a.edges[0])]
    assert control_points(route, 1.0) == tuple(route)


def test_intermediate_tension_pulls_toward_chord() -> None:
    route = [
        LayoutPosition.from_cartesian(1.0, 0.0),
        LayoutPosition.from_cartesian(0.0, 1.0),
        LayoutPosition.from_cartesian(-1.0, 0.0),
    ]
    points = control_points(route, 0.5)
    assert len(points) == 3
    assert points[0] == route[0]
    assert points[-1] == route[-1]
    x, y = points[1].to_cartesian()
    assert x == pytest.approx(0.0, abs=1e-9)
    assert y == pytest.approx(0.5)


def test_control_points_need_two_points() -> None:
    with pytest.raises(ValueError):
        control_points([LayoutPosition(0.0, 1.0)], 0.5)


def test_basis_curve_is_clamped_to_endpoints() -> None:
    route = [
        LayoutPosition.from_cartesian(1.0, 0.0),
        LayoutPosition.from_cartesian(0.0, 0.0),
        LayoutPosition.from_cartesian(-1.0, 0.0),
    ]
    samples = basis_curve(route, samples_per_segment=4)
    assert len(samples) == 4 * (len(route) + 1) + 1
    assert samples[0] == pytest.approx((1.0, 0.0))
    assert samples[-1] == pytest.approx((-1.0, 0.0))
    assert basis_curve([]) == []


def test_cache_reuses_routes_and_curves(tree: Tree, snapshot: GraphSnapshot) -> None:
    positions = radial_layout(tree)
    cache = BundleCache()

    first = cache.bundles(tree, snapshot.edges, positions, 0.85)
    again = cache.bundles(tree, snapshot.edges, positions, 0.85)
    assert again is first
    assert len(first) == len(snapshot.edges)
    assert cache.stats == {"route_builds": 1, "curve_builds": 1, "curve_hits": 1}

    straight = cache.bundles(tree, snapshot.edges, positions, 0.0)
    assert all(len(b.control_points) == 2 for b in straight)
    assert cache.stats["route_builds"] == 1
    assert cache.stats["curve_builds"] == 2

    # Same tension, new tree version: everything is rebuilt
    rebuilt = Tree.build(snapshot.nodes, version="other")
    cache.bundles(rebuilt, snapshot.edges, positions, 0.85)
    assert cache.version == "other"
    assert cache.stats["route_builds"] == 2
    assert cache.stats["curve_builds"] == 3


def test_cache_excludes_degenerate_edges(tree: Tree, snapshot: GraphSnapshot) -> None:
    positions = radial_layout(tree)
    bad = Edge("Model.Sales.Amount", "Model.Ghost.Column", EdgeKind.MEASURE_DEPENDENCY)
    cache = BundleCache()

    bundles = cache.bundles(tree, list(snapshot.edges) + [bad], positions, 0.5)

    assert len(bundles) == len(snapshot.edges)
    assert [d.rule for d in cache.diagnostics] == ["degenerate-path"]
    assert cache.diagnostics[0].level == "warning"


def test_recomputation_is_idempotent(tree: Tree, snapshot: GraphSnapshot) -> None:
    positions = radial_layout(tree)
    first = BundleCache().bundles(tree, snapshot.edges, positions, 0.6)
    second = BundleCache().bundles(tree, snapshot.edges, positions, 0.6)
    assert first is not second
    assert first == second


def test_cache_keeps_recent_tensions_only(tree: Tree, snapshot: GraphSnapshot) -> None:
    positions = radial_layout(tree)
    cache = BundleCache(max_tensions=2)

    cache.bundles(tree, snapshot.edges, positions, 0.1)
    cache.bundles(tree, snapshot.edges, positions, 0.2)
    cache.bundles(tree, snapshot.edges, positions, 0.1)
    cache.bundles(tree, snapshot.edges, positions, 0.3)
    assert cache.stats["curve_builds"] == 3

    # 0.1 was used more recently than 0.2, so 0.2 was evicted
    cache.bundles(tree, snapshot.edges, positions, 0.1)
    assert cache.stats["curve_builds"] == 3
    cache.bundles(tree, snapshot.edges, positions, 0.2)
    assert cache.stats["curve_builds"] == 4
    assert cache.stats["route_builds"] == 1
