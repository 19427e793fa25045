"""Check command - report ingestion, structural and edge diagnostics."""

from __future__ import annotations

import json
from collections import defaultdict
from pathlib import Path

from rich.console import Console

from ..config import Config
from ..errors import Diagnostic
from ..session import Session

CATEGORY_ORDER = ["structural", "ingestion", "invalid-edge", "excluded"]
CATEGORY_TITLES = {
    "structural": "Tree structure",
    "ingestion": "Ingestion",
    "invalid-edge": "Invalid edges",
    "excluded": "Excluded records",
}


def run_check(
    dependencies: Path,
    relationships: Path | None = None,
    *,
    config: Config | None = None,
    fail_on: str = "error",
    output_json: bool = False,
) -> int:
    """Ingest a record export and report every diagnostic.

    Returns:
        Exit code (0 = success, 1 = findings at or above ``fail_on``)
    """
    console = Console(stderr=True)
    console.print(f"Loading records from {dependencies}...", style="dim")

    session = Session.from_files(dependencies, relationships, config)
    # Bundling reports degenerate edges, so compute it once
    session.bundles()
    results = session.diagnostics

    level_order = {"error": 0, "warning": 1, "info": 2}
    results.sort(key=lambda d: (level_order.get(d.level, 99), d.rule, d.subject or ""))

    counts = {"error": 0, "warning": 0, "info": 0}
    for d in results:
        counts[d.level] = counts.get(d.level, 0) + 1

    snapshot = session.snapshot
    summary = {
        "nodes": len(snapshot.nodes) if snapshot else 0,
        "edges": len(snapshot.edges) if snapshot else 0,
        "excluded": snapshot.excluded if snapshot else 0,
        "container_references": snapshot.container_references if snapshot else 0,
        "errors": counts["error"],
        "warnings": counts["warning"],
        "info": counts["info"],
    }

    if output_json:
        output = {
            "errors": [d.to_dict() for d in results if d.level == "error"],
            "warnings": [d.to_dict() for d in results if d.level == "warning"],
            "info": [d.to_dict() for d in results if d.level == "info"],
            "summary": summary,
        }
        print(json.dumps(output, indent=2))
    else:
        _print_grouped(console, results, summary)

    if fail_on == "warning":
        if counts["error"] > 0 or counts["warning"] > 0:
            return 1
    elif counts["error"] > 0:
        return 1
    return 0


def _print_grouped(console: Console, results: list[Diagnostic], summary: dict) -> None:
    by_category: dict[str, list[Diagnostic]] = defaultdict(list)
    for d in results:
        by_category[d.category].append(d)

    for category in CATEGORY_ORDER:
        found = by_category.get(category, [])
        errors = sum(1 for d in found if d.level == "error")
        warnings = sum(1 for d in found if d.level == "warning")

        if errors:
            status, status_style = "✗", "bold red"
        elif warnings:
            status, status_style = "⚠", "yellow"
        else:
            status, status_style = "✓", "bold green"

        console.print()
        console.print(f"{status} {CATEGORY_TITLES[category]}", style=status_style)
        for d in found:
            if d.level == "error":
                prefix, style = "ERROR", "bold red"
            elif d.level == "warning":
                prefix, style = "WARN", "yellow"
            else:
                prefix, style = "INFO", "dim"
            subject = f"{d.subject} - " if d.subject else ""
            console.print(f"    {prefix}: [{d.rule}] {subject}{d.message}", style=style, markup=False)

    console.print()
    console.print(
        f"{summary['nodes']} nodes, {summary['edges']} edges, {summary['excluded']} excluded; "
        f"{summary['errors']} error(s), {summary['warnings']} warning(s)",
        style="dim",
    )
