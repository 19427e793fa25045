"""Read raw dependency and relationship records from exported files.

Exports come either as JSON (a list of objects) or CSV (one header row). Column
names are matched loosely: ``REFERENCED_TABLE``, ``[REFERENCED_TABLE]``,
``ref_container`` and ``refContainer`` all land in the same field.
"""

from __future__ import annotations

import csv
import json
import re
from pathlib import Path
from typing import Any, Iterable

from .models import DependencyRecord, RelationshipRecord

_DEPENDENCY_FIELDS = {
    "container": ("container", "table"),
    "object": ("object", "objectname", "name"),
    "kind": ("kind", "objecttype", "type"),
    "ref_container": ("refcontainer", "referencedtable", "referencedcontainer"),
    "ref_object": ("refobject", "referencedobject"),
    "ref_kind": ("refkind", "referencedobjecttype", "referencedkind"),
}

_RELATIONSHIP_FIELDS = {
    "relationship_id": ("relationshipid", "relationship", "id"),
    "container": ("container", "table"),
    "object": ("object", "objectname", "name"),
    "ref_container": ("refcontainer", "referencedtable", "referencedcontainer"),
    "ref_object": ("refobject", "referencedobject"),
    "is_active": ("isactive", "active"),
    "cross_filter_behavior": ("crossfilterbehavior", "crossfilteringbehavior"),
    "from_cardinality": ("fromcardinality",),
    "to_cardinality": ("tocardinality",),
}


def _normalize_key(key: str) -> str:
    return re.sub(r"[^a-z0-9]", "", key.lower())


def _pick(row: dict[str, Any], aliases: tuple[str, ...]) -> Any:
    for alias in aliases:
        if alias in row:
            return row[alias]
    return None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_bool(value: Any) -> bool | None:
    """Parse the loose boolean spellings found in exports."""
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes", "y"):
        return True
    if text in ("false", "0", "no", "n"):
        return False
    return None


def _read_rows(path: Path) -> list[dict[str, Any]]:
    if path.suffix.lower() == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            # Accept {"rows": [...]} as well as a bare list
            data = data.get("rows", [])
        if not isinstance(data, list):
            raise ValueError(f"{path.name}: expected a list of records")
        rows = [r for r in data if isinstance(r, dict)]
    elif path.suffix.lower() == ".csv":
        with open(path, encoding="utf-8-sig", newline="") as f:
            rows = list(csv.DictReader(f))
    else:
        raise ValueError(f"{path.name}: unsupported record file type (use .json or .csv)")

    return [{_normalize_key(k): v for k, v in row.items() if k is not None} for row in rows]


def dependency_records_from_rows(rows: Iterable[dict[str, Any]]) -> list[DependencyRecord]:
    records = []
    for row in rows:
        fields = {name: _text(_pick(row, aliases)) for name, aliases in _DEPENDENCY_FIELDS.items()}
        records.append(
            DependencyRecord(
                container=fields["container"] or "",
                object=fields["object"] or "",
                kind=fields["kind"] or "",
                ref_container=fields["ref_container"],
                ref_object=fields["ref_object"],
                ref_kind=fields["ref_kind"],
            )
        )
    return records


def relationship_records_from_rows(rows: Iterable[dict[str, Any]]) -> list[RelationshipRecord]:
    records = []
    for row in rows:
        fields = {name: _pick(row, aliases) for name, aliases in _RELATIONSHIP_FIELDS.items()}
        records.append(
            RelationshipRecord(
                relationship_id=_text(fields["relationship_id"]) or "",
                container=_text(fields["container"]) or "",
                object=_text(fields["object"]) or "",
                ref_container=_text(fields["ref_container"]) or "",
                ref_object=_text(fields["ref_object"]) or "",
                is_active=parse_bool(fields["is_active"]),
                cross_filter_behavior=_text(fields["cross_filter_behavior"]),
                from_cardinality=_text(fields["from_cardinality"]),
                to_cardinality=_text(fields["to_cardinality"]),
            )
        )
    return records


def load_dependency_records(path: Path) -> list[DependencyRecord]:
    """Load dependency records from a JSON or CSV export."""
    return dependency_records_from_rows(_read_rows(path))


def load_relationship_records(path: Path) -> list[RelationshipRecord]:
    """Load relationship records from a JSON or CSV export."""
    return relationship_records_from_rows(_read_rows(path))
