"""Watch command - re-ingest record exports as they change."""

from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..config import Config
from ..records import load_dependency_records, load_relationship_records
from ..session import Session
from ..watcher import find_record_files, run_watch_loop


def reload_session(session: Session, directory: Path) -> str:
    """Run one ingestion cycle from the exports in ``directory``; return a status line."""
    deps_path, rels_path = find_record_files(directory)
    if deps_path is None:
        return "no dependency export found"

    rels = load_relationship_records(rels_path) if rels_path else []
    ok = session.load(load_dependency_records(deps_path), rels)
    snapshot = session.snapshot
    if snapshot is None:
        return "no valid tree yet"

    edges = len(session.bundles())
    status = f"version {snapshot.version}: {len(snapshot.nodes)} nodes, {edges} edges"
    if snapshot.excluded:
        status += f", {snapshot.excluded} excluded"
    if not ok:
        status += " [stale: " + "; ".join(d.message for d in session.structural) + "]"
    return status


def try_reload(session: Session, directory: Path) -> str:
    """Like ``reload_session``, but unreadable exports become a status line."""
    try:
        return reload_session(session, directory)
    except (OSError, ValueError, csv.Error) as exc:
        return f"could not read exports: {exc}"


def run_watch(directory: Path, *, config: Config | None = None) -> None:
    """
    Watch ``directory`` for record export changes and re-ingest on each one.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)
    session = Session(config)
    cycles = 0

    def report(status: str) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{timestamp}[/dim] {escape(status)}", highlight=False)

    console.print(f"[bold]Watching[/bold] {directory}")
    report(try_reload(session, directory))
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")

    def on_change(paths: list[Path]) -> None:
        nonlocal cycles
        cycles += 1
        report(try_reload(session, directory))

    run_watch_loop(directory, on_change)
    console.print()
    console.print(f"[bold]Stopped.[/bold] Ran {cycles} ingestion cycle(s).")
