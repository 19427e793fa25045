"""Detail command - list the detail rows that pass the current selection."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import Config
from ..session import Session
from .layout_cmd import apply_selection


def run_detail(
    dependencies: Path,
    relationships: Path | None = None,
    *,
    config: Config | None = None,
    focus: str | None = None,
    kinds: Sequence[str] = (),
    containers: Sequence[str] = (),
    objects: Sequence[str] = (),
    output_json: bool = False,
) -> int:
    console = Console(stderr=True)

    session = Session.from_files(dependencies, relationships, config)
    apply_selection(session, kinds=kinds, containers=containers, objects=objects, focus=focus)
    rows = session.detail_rows()

    if output_json:
        print(json.dumps([r.to_dict() for r in rows], indent=2))
        return 0

    t = Table(title=f"Matching dependencies ({len(rows)})", show_header=True, header_style="bold")
    t.add_column("Source", style="cyan", no_wrap=True)
    t.add_column("Target", style="cyan", no_wrap=True)
    t.add_column("Kind")
    t.add_column("Active")
    for row in rows:
        active = ""
        if row.relationship is not None and row.relationship.is_active is not None:
            active = "yes" if row.relationship.is_active else "no"
        t.add_row(
            escape(f"{row.source_container}[{row.source_object}]"),
            escape(f"{row.target_container}[{row.target_object}]"),
            row.kind.value,
            active,
        )
    Console().print(t)

    if focus and session.snapshot is not None and focus not in session.snapshot:
        console.print(f"Focused node '{focus}' is not in the graph", style="yellow")
    return 0
