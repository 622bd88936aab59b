"""dialogueforge CLI - typer application entry point."""

from __future__ import annotations

import asyncio
import atexit
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from dialogueforge.observability import close_file_logging, configure_logging, get_logger

if TYPE_CHECKING:
    from dialogueforge.config import ForgeConfig
    from dialogueforge.models.graph import Graph
    from dialogueforge.runtime.events import RunnerEvent

app = typer.Typer(
    name="dforge",
    help="dialogueforge: branching dialogue graphs, playback and compilation.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

DEFAULT_LOGS_DIR = Path("logs")

_SEVERITY_STYLE = {
    "pass": "[green]✓[/green]",
    "warn": "[yellow]![/yellow]",
    "fail": "[red]✗[/red]",
}


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_enabled: Annotated[
        bool,
        typer.Option(
            "--log",
            help="Enable file logging to ./logs/debug.jsonl.",
        ),
    ] = False,
) -> None:
    """dialogueforge: branching dialogue graphs, playback and compilation."""
    if log_enabled:
        configure_logging(verbosity=verbose, log_to_file=True, log_dir=DEFAULT_LOGS_DIR)
        atexit.register(close_file_logging)
    else:
        configure_logging(verbosity=verbose)


# =============================================================================
# Helpers
# =============================================================================


def _load_config() -> ForgeConfig:
    from dialogueforge.config import ForgeConfigError, load_forge_config

    try:
        return load_forge_config(Path.cwd())
    except ForgeConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _load_graph(path: Path) -> Graph:
    """Read a graph JSON file, exiting with a message on bad input."""
    from dialogueforge.models.graph import Graph

    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)
    try:
        return Graph.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error:[/red] Invalid graph file {path}:")
        console.print(str(e))
        raise typer.Exit(1) from e


def _load_graph_dir(graphs_dir: Path | None) -> dict[int, Graph]:
    """Load every ``*.json`` graph in a directory, keyed by graph id."""
    if graphs_dir is None:
        return {}
    if not graphs_dir.is_dir():
        console.print(f"[red]Error:[/red] Not a directory: {graphs_dir}")
        raise typer.Exit(1)
    graphs: dict[int, Graph] = {}
    for path in sorted(graphs_dir.glob("*.json")):
        graph = _load_graph(path)
        graphs[graph.id] = graph
    log.debug("graphs_loaded", directory=str(graphs_dir), count=len(graphs))
    return graphs


def _print_event(event: RunnerEvent) -> None:
    from dialogueforge.runtime.events import (
        ChoicesEvent,
        EndEvent,
        ErrorEvent,
        LineEvent,
        SetVariablesEvent,
    )

    if isinstance(event, LineEvent):
        if event.speaker:
            console.print(f"[bold]{event.speaker}:[/bold] {event.content}")
        else:
            console.print(event.content)
    elif isinstance(event, ChoicesEvent):
        for index, choice in enumerate(event.choices, start=1):
            console.print(f"  [cyan]{index}.[/cyan] {choice.text} [dim]({choice.id})[/dim]")
    elif isinstance(event, SetVariablesEvent):
        updates = ", ".join(f"{k}={v}" for k, v in event.updates.items())
        console.print(f"[dim]set {updates}[/dim]")
    elif isinstance(event, EndEvent):
        console.print("[green]END[/green]")
    elif isinstance(event, ErrorEvent):
        console.print(f"[red]ERROR {event.code}:[/red] {event.message}")


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from dialogueforge import __version__

    console.print(f"dialogueforge v{__version__}")


@app.command()
def validate(
    graph_file: Annotated[Path, typer.Argument(help="Graph JSON file to check.")],
) -> None:
    """Run structural checks on a graph."""
    from dialogueforge.graph.validation import validate_graph

    graph = _load_graph(graph_file)
    report = validate_graph(graph)

    table = Table(title=f"Graph {graph.id}: {graph.title or graph_file.name}")
    table.add_column("", width=2)
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    for check in report.checks:
        table.add_row(_SEVERITY_STYLE[check.severity], check.name, check.message)
    console.print(table)
    console.print(report.summary)

    if report.has_failures:
        raise typer.Exit(1)


@app.command("export-yarn")
def export_yarn(
    graph_file: Annotated[Path, typer.Argument(help="Graph JSON file to convert.")],
    output_dir: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory for the .yarn file."),
    ] = Path(),
) -> None:
    """Convert a graph into a Yarn script."""
    from dialogueforge.export import ExportContext, get_exporter

    graph = _load_graph(graph_file)
    output_file = get_exporter("yarn").export(ExportContext(graph=graph), output_dir)
    console.print(f"[green]✓[/green] Wrote [cyan]{output_file}[/cyan]")


@app.command("import-yarn")
def import_yarn(
    yarn_file: Annotated[Path, typer.Argument(help="Yarn script to read.")],
    output_dir: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory for the graph JSON file."),
    ] = Path(),
    title: Annotated[
        str | None,
        typer.Option("--title", help="Graph title (default from forge.yaml)."),
    ] = None,
    graph_id: Annotated[int, typer.Option("--id", help="Graph id to assign.")] = 0,
) -> None:
    """Convert a Yarn script into graph JSON."""
    from dialogueforge.export import ExportContext, get_exporter
    from dialogueforge.yarn.parser import parse

    if not yarn_file.exists():
        console.print(f"[red]Error:[/red] File not found: {yarn_file}")
        raise typer.Exit(1)

    config = _load_config()
    graph = parse(
        yarn_file.read_text(encoding="utf-8"),
        graph_id=graph_id,
        title=title or config.yarn.default_title,
    )
    if not graph.nodes:
        console.print(f"[red]Error:[/red] No nodes found in {yarn_file}")
        raise typer.Exit(1)

    output_file = get_exporter("graph").export(ExportContext(graph=graph), output_dir)
    console.print(f"[green]✓[/green] Imported {len(graph.nodes)} nodes to [cyan]{output_file}[/cyan]")


@app.command("compile")
def compile_command(
    root_file: Annotated[Path, typer.Argument(help="Root graph JSON file.")],
    graphs_dir: Annotated[
        Path | None,
        typer.Option("--graphs", "-g", help="Directory of storylet graph JSON files."),
    ] = None,
    output_dir: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory for composition.json."),
    ] = Path(),
    no_storylets: Annotated[
        bool,
        typer.Option("--no-storylets", help="Compile the root graph only."),
    ] = False,
    allow_missing: Annotated[
        bool,
        typer.Option("--allow-missing", help="Warn instead of failing on missing graphs."),
    ] = False,
) -> None:
    """Compile a graph (and its storylets) into a composition."""
    from dialogueforge.compiler import compile_composition, dict_resolver
    from dialogueforge.export import ExportContext, get_exporter
    from dialogueforge.graph.errors import MissingReferencedGraphError

    config = _load_config()
    root = _load_graph(root_file)
    graphs = _load_graph_dir(graphs_dir)
    resolve = config.compiler.resolve_storylets and not no_storylets
    fail_fast = config.compiler.fail_on_missing_graph and not allow_missing

    try:
        with structlog.contextvars.bound_contextvars(root_graph_id=root.id):
            result = asyncio.run(
                compile_composition(
                    root,
                    resolver=dict_resolver(graphs) if graphs_dir is not None else None,
                    resolve_storylets=resolve,
                    fail_on_missing_graph=fail_fast,
                )
            )
    except MissingReferencedGraphError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from e

    for diagnostic in result.diagnostics:
        style = "red" if diagnostic.level == "error" else "yellow"
        console.print(f"  [{style}]{diagnostic.code}[/{style}] {diagnostic.message}")

    output_file = get_exporter("composition").export(
        ExportContext(graph=root, composition=result.composition), output_dir
    )
    console.print(
        f"[green]✓[/green] Compiled {len(result.composition.graphs)} graphs, "
        f"{len(result.composition.cues)} cues to [cyan]{output_file}[/cyan]"
    )


@app.command()
def play(
    root_file: Annotated[Path, typer.Argument(help="Root graph JSON file.")],
    graphs_dir: Annotated[
        Path | None,
        typer.Option("--graphs", "-g", help="Directory of storylet graph JSON files."),
    ] = None,
    choose: Annotated[
        list[str] | None,
        typer.Option("--choose", "-c", help="Choice ids to select, in order."),
    ] = None,
    show_variables: Annotated[
        bool,
        typer.Option("--variables", help="Print the final variable snapshot."),
    ] = False,
) -> None:
    """Play a graph non-interactively, selecting the given choices in order.

    Lines advance automatically. Playback stops at the end, on an error, or
    when choices are offered and no scripted choice is left.
    """
    from dialogueforge.runtime.runner import GraphRunner, RunnerStatus

    config = _load_config()
    root = _load_graph(root_file)
    runner = GraphRunner(
        root,
        _load_graph_dir(graphs_dir),
        max_call_stack_depth=config.runner.max_call_stack_depth,
        max_steps=config.runner.max_steps,
    )
    pending = list(choose or [])

    with structlog.contextvars.bound_contextvars(root_graph_id=root.id):
        events = runner.step()
        while True:
            for event in events:
                _print_event(event)
            status = runner.status
            if status == RunnerStatus.WAITING_FOR_ADVANCE:
                events = runner.advance()
            elif status == RunnerStatus.WAITING_FOR_CHOICE and pending:
                choice_id = pending.pop(0)
                console.print(f"[dim]> {choice_id}[/dim]")
                events = runner.select_choice(choice_id)
            else:
                break

    if show_variables:
        snapshot: dict[str, Any] = runner.get_variable_snapshot()
        console.print_json(data=snapshot)

    if runner.status == RunnerStatus.ERROR:
        raise typer.Exit(1)
