"""CLI entrypoint for depbundle."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import Config, find_config, load_config

RECORD_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)

_selection_options = [
    click.option("--kind", "kinds", multiple=True, metavar="KIND", help="Select an edge kind (repeatable; default all)"),
    click.option(
        "--container", "containers", multiple=True, metavar="NAME", help="Select a container (repeatable; default all)"
    ),
    click.option("--object", "objects", multiple=True, metavar="NAME", help="Select an object (repeatable; default all)"),
    click.option("--focus", type=str, default=None, metavar="NODE_ID", help="Restrict detail rows to one node"),
]


def selection_options(func):
    for option in reversed(_selection_options):
        func = option(func)
    return func


@click.group()
@click.version_option(__version__, prog_name="depbundle")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to depbundle.toml (defaults to the nearest one above the working directory)",
)
@click.option("--verbose", "-V", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """depbundle - bundled radial layouts of model dependencies.

    Reads exported dependency and relationship records, rebuilds the
    root/container/object tree, lays it out radially and bundles every
    dependency edge through the tree.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="[%X]",
    )
    ctx.ensure_object(dict)
    if config_path is None:
        config_path = find_config(Path.cwd())
    try:
        ctx.obj["config"] = load_config(config_path) if config_path else Config()
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration {config_path}: {exc}") from exc


@cli.command()
@click.argument("dependencies", type=RECORD_FILE)
@click.argument("relationships", type=RECORD_FILE, required=False)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "md", "rich"]),
    default="json",
    show_default=True,
    help="Output format",
)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.option("--tension", type=click.FloatRange(0.0, 1.0), default=None, help="Bundling tension (0 = straight)")
@click.option("--hover", type=str, default=None, metavar="NODE_ID", help="Highlight the edges of one node")
@selection_options
@click.pass_context
def layout(
    ctx: click.Context,
    dependencies: Path,
    relationships: Path | None,
    fmt: str,
    out: Path | None,
    tension: float | None,
    hover: str | None,
    kinds: tuple[str, ...],
    containers: tuple[str, ...],
    objects: tuple[str, ...],
    focus: str | None,
) -> None:
    """Compute node positions, bundled edges and visibility.

    Examples:

        depbundle layout deps.csv rels.csv --format md

        depbundle layout deps.json --kind measureDependency --hover Model.Sales.Amount
    """
    from .commands.layout_cmd import run_layout

    try:
        exit_code = run_layout(
            dependencies,
            relationships,
            config=ctx.obj["config"],
            fmt=fmt,
            out=out,
            tension=tension,
            hover=hover,
            focus=focus,
            kinds=kinds,
            containers=containers,
            objects=objects,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    sys.exit(exit_code)


@cli.command()
@click.argument("dependencies", type=RECORD_FILE)
@click.argument("relationships", type=RECORD_FILE, required=False)
@click.option(
    "--fail-on",
    type=click.Choice(["error", "warning"]),
    default="error",
    help="Exit with error if this level or higher found",
)
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def check(ctx: click.Context, dependencies: Path, relationships: Path | None, fail_on: str, output_json: bool) -> None:
    """Report ingestion, tree and edge diagnostics."""
    from .commands.check_cmd import run_check

    try:
        exit_code = run_check(
            dependencies,
            relationships,
            config=ctx.obj["config"],
            fail_on=fail_on,
            output_json=output_json,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    sys.exit(exit_code)


@cli.command()
@click.argument("dependencies", type=RECORD_FILE)
@click.argument("relationships", type=RECORD_FILE, required=False)
@selection_options
@click.option("--json", "output_json", is_flag=True, help="Output rows as JSON")
@click.pass_context
def detail(
    ctx: click.Context,
    dependencies: Path,
    relationships: Path | None,
    kinds: tuple[str, ...],
    containers: tuple[str, ...],
    objects: tuple[str, ...],
    focus: str | None,
    output_json: bool,
) -> None:
    """List dependency rows matching the selection and focused node."""
    from .commands.detail_cmd import run_detail

    try:
        exit_code = run_detail(
            dependencies,
            relationships,
            config=ctx.obj["config"],
            focus=focus,
            kinds=kinds,
            containers=containers,
            objects=objects,
            output_json=output_json,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    sys.exit(exit_code)


@cli.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=".",
)
@click.pass_context
def watch(ctx: click.Context, directory: Path) -> None:
    """Re-ingest record exports in DIRECTORY whenever they change.

    Looks for dependencies.(json|csv) and relationships.(json|csv). When a new
    export does not form a valid tree the previous layout is kept and
    reported as stale.

    Press Ctrl+C to stop.
    """
    from .commands.watch_cmd import run_watch

    run_watch(directory.resolve(), config=ctx.obj["config"])


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
