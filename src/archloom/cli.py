"""Archloom CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click

from archloom import __version__
from archloom.errors import ConfigurationError, ExtractionError

if TYPE_CHECKING:
    from archloom.graph.model import Edge, ProjectedEdge


@click.group()
@click.version_option(version=__version__, prog_name="archloom")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Archloom - architecture rules for import graphs."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(2)


def _extract(project: Path | None) -> list[Edge]:
    from archloom.extraction.graph_extractor import extract_graph

    try:
        return extract_graph(project or Path.cwd())
    except (ExtractionError, ConfigurationError) as exc:
        _fail(str(exc))


def _project(
    edges: list[Edge], slices: str | None, *, external: bool = False
) -> list[ProjectedEdge]:
    from archloom.graph.projection import IdentityProjection, PatternProjection, project_edges

    if slices is None:
        return project_edges(edges, IdentityProjection(include_external=external))
    try:
        projection = PatternProjection.from_slice_pattern(slices)
    except ConfigurationError as exc:
        _fail(str(exc))
    return project_edges(edges, projection)


_PROJECT_OPTION = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
_SLICES_OPTION = click.option(
    "--slices",
    default=None,
    help="Slice pattern with one '(**)' placeholder, e.g. 'src/(**)/'.",
)


@main.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 if error-severity violations found.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to archloom.yml (overrides --project).",
)
@click.option(
    "--rules",
    "rules_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to rules.yml (default: from archloom.yml).",
)
@_PROJECT_OPTION
def lint(
    *,
    fmt: str | None,
    strict: bool,
    config_path: Path | None,
    rules_path: Path | None,
    project: Path | None,
) -> None:
    """Run architecture rules against the project's import graph.

    Exit codes: 0 = clean or violations without --strict,
    1 = error-severity violations with --strict, 2 = configuration error.
    """
    from archloom.linter import LintError
    from archloom.linter import format_json as _format_json
    from archloom.linter import format_porcelain as _format_porcelain
    from archloom.linter import format_rich as _format_rich
    from archloom.linter import lint as run_lint

    locator = config_path or project or Path.cwd()

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_lint(locator, rules_path=rules_path)
    except (LintError, ExtractionError) as exc:
        _fail(str(exc))

    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if strict and result.errors:
        sys.exit(1)


@main.command()
@_PROJECT_OPTION
@_SLICES_OPTION
@click.option(
    "--max-length",
    type=click.IntRange(min=2),
    default=None,
    help="Only report cycles up to this many edges.",
)
def cycles(*, project: Path | None, slices: str | None, max_length: int | None) -> None:
    """List import cycles between files, or between slices with --slices."""
    from rich.console import Console
    from rich.table import Table

    from archloom.graph.cycles import cycle_labels, find_cycles

    projected = _project(_extract(project), slices)
    found = find_cycles(projected, max_length=max_length)

    console = Console()
    if not found:
        console.print("[green]✓[/green] No cycles found")
        return

    table = Table(title=f"Cycles ({len(found)})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("length", justify="right")
    table.add_column("cycle", style="cyan")
    for idx, cycle in enumerate(found, start=1):
        table.add_row(str(idx), str(len(cycle)), " → ".join(cycle_labels(cycle)))
    console.print(table)


@main.command()
@_PROJECT_OPTION
@_SLICES_OPTION
@click.option("--external", is_flag=True, help="Include edges to external modules.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def graph(*, project: Path | None, slices: str | None, external: bool, as_json: bool) -> None:
    """Print the projected import graph."""
    projected = _project(_extract(project), slices, external=external)

    if as_json:
        payload = [
            {
                "source": edge.source_label,
                "target": edge.target_label,
                "imports": len(edge.cumulated_edges),
            }
            for edge in projected
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    for edge in projected:
        count = len(edge.cumulated_edges)
        click.echo(f"{edge.source_label} → {edge.target_label} ({count} imports)")


@main.command("export-diagram")
@_PROJECT_OPTION
@click.option(
    "--slices",
    required=True,
    help="Slice pattern with one '(**)' placeholder, e.g. 'src/(**)/'.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the diagram to a file instead of stdout.",
)
def export_diagram(*, project: Path | None, slices: str, output: Path | None) -> None:
    """Render the sliced import graph as a PlantUML component diagram."""
    from archloom.rules.diagram import export_diagram as _export_diagram

    text = _export_diagram(_project(_extract(project), slices))
    if output is None:
        click.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    click.echo(f"Diagram written to {output}")
