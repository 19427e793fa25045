"""Layout command - bundled radial layout and visibility for a record export."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import Config
from ..highlight import ALL
from ..session import Dataset, Session


def apply_selection(
    session: Session,
    *,
    kinds: Sequence[str] = (),
    containers: Sequence[str] = (),
    objects: Sequence[str] = (),
    hover: str | None = None,
    focus: str | None = None,
) -> None:
    """Translate CLI options into interaction events; empty means ALL."""
    session.set_category_selection(
        kinds=kinds or ALL,
        containers=containers or ALL,
        objects=objects or ALL,
    )
    session.set_hover(hover)
    session.set_focused_node(focus)


def run_layout(
    dependencies: Path,
    relationships: Path | None = None,
    *,
    config: Config | None = None,
    fmt: str = "json",
    out: Path | None = None,
    tension: float | None = None,
    hover: str | None = None,
    focus: str | None = None,
    kinds: Sequence[str] = (),
    containers: Sequence[str] = (),
    objects: Sequence[str] = (),
) -> int:
    """Output the geometry/visibility dataset or a summary of it."""
    console = Console(stderr=True)

    session = Session.from_files(dependencies, relationships, config)
    if tension is not None:
        session.set_tension(tension)
    apply_selection(session, kinds=kinds, containers=containers, objects=objects, hover=hover, focus=focus)

    dataset = session.dataset()
    payload = _summarize(session, dataset)

    if fmt == "rich":
        if out:
            rich_console = Console(record=True)
            _print_rich(payload, console=rich_console)
            out.write_text(rich_console.export_text(), encoding="utf-8")
            console.print(f"Wrote layout summary to {out}", style="green")
        else:
            _print_rich(payload, console=Console())
        return 0

    text: str
    if fmt == "md":
        text = _to_markdown(payload)
    else:
        text = json.dumps(dataset.to_dict(), indent=2, sort_keys=True) + "\n"

    if out:
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote layout output to {out}", style="green")
    else:
        print(text, end="" if text.endswith("\n") else "\n")

    return 0


def _summarize(session: Session, dataset: Dataset) -> dict:
    snapshot = session.snapshot
    edges_by_kind = Counter(e.kind for e in dataset.edges)
    visible = sum(1 for e in dataset.edges if e.opacity >= session.config.opacity.matched_edge)

    containers = []
    if snapshot is not None:
        leaves_per_container = Counter(snapshot.container_of(n.id) for n in snapshot.leaves)
        out_deg: Counter[str] = Counter()
        in_deg: Counter[str] = Counter()
        for edge in snapshot.edges:
            out_deg[snapshot.container_of(edge.source_id) or ""] += 1
            in_deg[snapshot.container_of(edge.target_id) or ""] += 1
        for node in sorted(snapshot.containers, key=lambda n: n.name):
            containers.append(
                {
                    "name": node.name,
                    "leaves": leaves_per_container.get(node.name, 0),
                    "edges_out": out_deg.get(node.name, 0),
                    "edges_in": in_deg.get(node.name, 0),
                }
            )

    return {
        "title": "Dependency bundle layout",
        "version": dataset.version,
        "stale": dataset.stale,
        "tension": dataset.tension,
        "node_count": len(dataset.nodes),
        "leaf_count": len(snapshot.leaves) if snapshot else 0,
        "edge_count": len(dataset.edges),
        "visible_edge_count": visible,
        "excluded": snapshot.excluded if snapshot else 0,
        "edges_by_kind": dict(sorted(edges_by_kind.items())),
        "containers": containers,
        "diagnostic_count": len(dataset.diagnostics),
    }


def _to_markdown(payload: dict) -> str:
    lines: list[str] = []
    lines.append(f"## {payload['title']}")
    lines.append("")
    lines.append(f"- Version: `{payload['version']}`" + (" (stale)" if payload["stale"] else ""))
    lines.append(f"- Nodes: {payload['node_count']} ({payload['leaf_count']} leaves)")
    lines.append(f"- Edges: {payload['edge_count']} ({payload['visible_edge_count']} highlighted)")
    lines.append(f"- Tension: {payload['tension']:.2f}")
    lines.append(f"- Excluded records: {payload['excluded']}")
    lines.append(f"- Diagnostics: {payload['diagnostic_count']}")
    lines.append("")

    lines.append("### Edges by kind")
    lines.append("")
    lines.append("| Kind | Edges |")
    lines.append("|---|---:|")
    for kind, count in payload["edges_by_kind"].items():
        lines.append(f"| `{kind}` | {count} |")
    lines.append("")

    lines.append("### Containers")
    lines.append("")
    lines.append("| Container | Leaves | Out | In |")
    lines.append("|---|---:|---:|---:|")
    for row in payload["containers"]:
        lines.append(f"| `{row['name']}` | {row['leaves']} | {row['edges_out']} | {row['edges_in']} |")
    lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def _print_rich(payload: dict, *, console: Console) -> None:
    console.print(f"[bold]{payload['title']}[/bold]")
    stale = "  [yellow](stale)[/yellow]" if payload["stale"] else ""
    console.print(f"Version: {payload['version']}{stale}")
    console.print(
        f"Nodes: {payload['node_count']}  Edges: {payload['edge_count']}  "
        f"Highlighted: {payload['visible_edge_count']}  Tension: {payload['tension']:.2f}"
    )
    console.print()

    t = Table(title="Edges by kind", show_header=True, header_style="bold")
    t.add_column("Kind", style="cyan", no_wrap=True)
    t.add_column("Edges", justify="right")
    for kind, count in payload["edges_by_kind"].items():
        t.add_row(kind, str(count))
    console.print(t)
    console.print()

    t = Table(title="Containers", show_header=True, header_style="bold")
    t.add_column("Container", style="cyan", no_wrap=True)
    t.add_column("Leaves", justify="right")
    t.add_column("Out", justify="right")
    t.add_column("In", justify="right")
    for row in payload["containers"]:
        t.add_row(escape(row["name"]), str(row["leaves"]), str(row["edges_out"]), str(row["edges_in"]))
    console.print(t)
