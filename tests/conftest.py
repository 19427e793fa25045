"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from depbundle.graph.ingestion import GraphSnapshot, ingest
from depbundle.graph.tree import Tree
from depbundle.models import DependencyRecord, RelationshipRecord
from depbundle.session import Session

DATE_HELPER = "LocalDateTable_1a2b3c4d-0000-1111-2222-333344445555"


def dep(container, obj, kind, ref_container=None, ref_object=None, ref_kind=None) -> DependencyRecord:
    return DependencyRecord(container, obj, kind, ref_container, ref_object, ref_kind)


def rel_pair(rel_id: str, source: tuple[str, str], target: tuple[str, str], **attrs) -> list[RelationshipRecord]:
    """The two rows the host reports for one relationship, source side first."""
    return [
        RelationshipRecord(rel_id, source[0], rel_id, source[0], source[1], **attrs),
        RelationshipRecord(rel_id, target[0], rel_id, target[0], target[1], **attrs),
    ]


@pytest.fixture
def dependency_records() -> list[DependencyRecord]:
    return [
        dep("Sales", "Total Sales", "MEASURE", "Sales", "Amount", "COLUMN"),
        dep("Sales", "Margin", "MEASURE", "Sales", "Total Sales", "MEASURE"),
        dep("Sales", "Line Total", "CALC_COLUMN", "Product", "Price", "COLUMN"),
        dep("Sales", "Line Total", "CALC_COLUMN", "Sales", "Quantity", "COLUMN"),
        dep("Sales", "Total Sales", "MEASURE", "Product", "Product", "TABLE"),
        dep(DATE_HELPER, "Year", "CALC_COLUMN", DATE_HELPER, "Date", "COLUMN"),
    ]


@pytest.fixture
def relationship_records() -> list[RelationshipRecord]:
    attrs = {
        "is_active": True,
        "cross_filter_behavior": "OneDirection",
        "from_cardinality": "Many",
        "to_cardinality": "One",
    }
    return rel_pair("rel-1", ("Sales", "ProductKey"), ("Product", "ProductKey"), **attrs) + rel_pair(
        "rel-2", ("Sales", "OrderDate"), ("Date", "Date"), **attrs
    )


@pytest.fixture
def snapshot(dependency_records, relationship_records) -> GraphSnapshot:
    return ingest(dependency_records, relationship_records)


@pytest.fixture
def tree(snapshot: GraphSnapshot) -> Tree:
    return Tree.build(snapshot.nodes, version=snapshot.version)


@pytest.fixture
def session(dependency_records, relationship_records) -> Session:
    s = Session()
    assert s.load(dependency_records, relationship_records)
    return s


@pytest.fixture
def scenario_a() -> GraphSnapshot:
    """Two containers, one relationship between their leaves."""
    return ingest([], rel_pair("r1", ("Sales", "Amount"), ("Date", "OrderDate")))


@pytest.fixture
def export_dir(tmp_path: Path) -> Path:
    """A directory holding a CSV dependency export and a JSON relationship export."""
    directory = tmp_path / "export"
    directory.mkdir()
    (directory / "dependencies.csv").write_text(
        "\n".join(
            [
                "[TABLE],[OBJECT],[OBJECT_TYPE],[REFERENCED_TABLE],[REFERENCED_OBJECT],[REFERENCED_OBJECT_TYPE]",
                "Sales,Total Sales,MEASURE,Sales,Amount,COLUMN",
                "Sales,Margin,MEASURE,Sales,Total Sales,MEASURE",
                f"{DATE_HELPER},Year,CALC_COLUMN,{DATE_HELPER},Date,COLUMN",
                "",
            ]
        ),
        encoding="utf-8",
    )
    (directory / "relationships.json").write_text(
        """[
  {"RELATIONSHIP_ID": "7", "TABLE": "Sales", "OBJECT": "r7", "REFERENCED_TABLE": "Sales",
   "REFERENCED_OBJECT": "OrderDate", "IS_ACTIVE": "true", "CROSS_FILTERING_BEHAVIOR": "OneDirection",
   "FROM_CARDINALITY": "Many", "TO_CARDINALITY": "One"},
  {"RELATIONSHIP_ID": "7", "TABLE": "Date", "OBJECT": "r7", "REFERENCED_TABLE": "Date",
   "REFERENCED_OBJECT": "Date", "IS_ACTIVE": "true", "CROSS_FILTERING_BEHAVIOR": "OneDirection",
   "FROM_CARDINALITY": "Many", "TO_CARDINALITY": "One"}
]
""",
        encoding="utf-8",
    )
    return directory
