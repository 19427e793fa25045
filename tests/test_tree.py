import pytest

from depbundle.errors import StructuralError
from depbundle.graph.ingestion import GraphSnapshot
from depbundle.graph.tree import Tree
from depbundle.models import Node, NodeKind


def _node(node_id: str, parent: str | None, kind: NodeKind = NodeKind.COLUMN) -> Node:
    return Node(id=node_id, name=node_id.rsplit(".", 1)[-1], parent_id=parent, kind=kind)


def test_path_through_root(scenario_a: GraphSnapshot) -> None:
    tree = Tree.build(scenario_a.nodes)
    assert tree.lowest_common_ancestor("Model.Sales.Amount", "Model.Date.OrderDate") == "Model"
    assert tree.path_between("Model.Sales.Amount", "Model.Date.OrderDate") == [
        "Model.Sales.Amount",
        "Model.Sales",
        "Model",
        "Model.Date",
        "Model.Date.OrderDate",
    ]


def test_lca_is_symmetric(tree: Tree) -> None:
    ids = list(tree.nodes)
    for a in ids:
        for b in ids:
            assert tree.lowest_common_ancestor(a, b) == tree.lowest_common_ancestor(b, a)


def test_lca_with_itself(tree: Tree) -> None:
    for node_id in tree.nodes:
        assert tree.lowest_common_ancestor(node_id, node_id) == node_id


def test_lca_within_one_container(tree: Tree) -> None:
    assert tree.lowest_common_ancestor("Model.Sales.Margin", "Model.Sales.Amount") == "Model.Sales"
    assert tree.path_between("Model.Sales.Margin", "Model.Sales.Amount") == [
        "Model.Sales.Margin",
        "Model.Sales",
        "Model.Sales.Amount",
    ]


def test_lca_of_ancestor_and_descendant(tree: Tree) -> None:
    assert tree.lowest_common_ancestor("Model.Sales", "Model.Sales.Margin") == "Model.Sales"


def test_ancestors_and_depth(tree: Tree) -> None:
    assert tree.ancestors_of("Model.Product.Price") == ["Model", "Model.Product", "Model.Product.Price"]
    assert tree.depth_of("Model") == 0
    assert tree.depth_of("Model.Product") == 1
    assert tree.depth_of("Model.Product.Price") == 2
    assert tree.max_depth == 2


def test_unknown_node(tree: Tree) -> None:
    with pytest.raises(KeyError):
        tree.ancestors_of("Model.Nowhere")


def test_children_sorted_by_name(tree: Tree) -> None:
    assert tree.children_of("Model") == ("Model.Date", "Model.Product", "Model.Sales")
    assert tree.leaves()[:3] == ["Model.Date.Date", "Model.Product.Price", "Model.Product.ProductKey"]
    assert tree.walk()[0] == "Model"
    assert len(tree.walk()) == len(tree)


def test_child_order_independent_of_input_order(snapshot: GraphSnapshot) -> None:
    forward = Tree.build(snapshot.nodes)
    backward = Tree.build(reversed(snapshot.nodes))
    assert forward.leaves() == backward.leaves()


def test_duplicate_id() -> None:
    nodes = [_node("R", None, NodeKind.ROOT), _node("R.a", "R"), _node("R.a", "R")]
    with pytest.raises(StructuralError) as exc:
        Tree.build(nodes)
    assert exc.value.rule == "duplicate-id"
    assert exc.value.category == "structural"


def test_missing_root() -> None:
    nodes = [_node("a", "b"), _node("b", "a")]
    with pytest.raises(StructuralError) as exc:
        Tree.build(nodes)
    assert exc.value.rule == "missing-root"


def test_multiple_roots() -> None:
    nodes = [_node("R", None, NodeKind.ROOT), _node("S", None, NodeKind.ROOT)]
    with pytest.raises(StructuralError) as exc:
        Tree.build(nodes)
    assert exc.value.rule == "multiple-roots"


def test_missing_parent() -> None:
    nodes = [_node("R", None, NodeKind.ROOT), _node("R.x.y", "R.x")]
    with pytest.raises(StructuralError) as exc:
        Tree.build(nodes)
    assert exc.value.rule == "missing-parent"
    assert exc.value.subject == "R.x.y"


def test_cycle_detected() -> None:
    nodes = [_node("R", None, NodeKind.ROOT), _node("R.a", "R.b"), _node("R.b", "R.a")]
    with pytest.raises(StructuralError) as exc:
        Tree.build(nodes)
    assert exc.value.rule == "cycle"
    assert "R.a" in exc.value.message
    assert "R.b" in exc.value.message
