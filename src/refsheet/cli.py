"""Typer CLI entry point for refsheet."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from refsheet import __version__
from refsheet.config import DEFAULT_OUTPUT, load_config
from refsheet.exceptions import ConfigError, RefsheetError
from refsheet.indexer import BuildReport, DeclKind, IndexBuilder
from refsheet.indexer.table import HEADER, read_table

app = typer.Typer(
    name="refsheet",
    help="refsheet: index the functions, types and methods of a Rust source tree.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

_CARGO_RERUN_PATHS = ("src", "build.rs")


def _error_exit(message: str, hint: str | None = None) -> None:
    """Print a styled error and exit."""
    console.print(f"[bold red]Error:[/bold red] {message}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
    raise typer.Exit(code=1)


def _print_report(report: BuildReport, full: bool) -> None:
    table = Table(title="refsheet index", border_style="cyan", header_style="bold cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("Mode", "full rebuild" if full else "incremental")
    table.add_row("Files scanned", str(report.files_scanned))
    if report.files_failed:
        table.add_row("Files failed", f"[yellow]{report.files_failed}[/yellow]")
    else:
        table.add_row("Files failed", "0")
    if report.traversal_errors:
        table.add_row("Traversal errors", f"[yellow]{report.traversal_errors}[/yellow]")
    table.add_row("Entries found", str(report.entries_found))
    table.add_row("Prior entries", str(report.prior_entries))
    table.add_row("Entries written", str(report.entries_written))
    table.add_row("Output", str(report.output))

    console.print()
    console.print(table)
    if report.partial:
        console.print("[yellow]Index written with partial results; see warnings above.[/yellow]")


@app.command()
def build(
    full: Annotated[
        bool, typer.Option("--full", help="Rebuild from scratch instead of merging")
    ] = False,
    root: Annotated[
        Path | None, typer.Option("--root", "-r", help="Directory to scan")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Index table to write")
    ] = None,
    exclude: Annotated[
        list[str] | None,
        typer.Option("--exclude", "-x", help="Path segment to skip (repeatable)"),
    ] = None,
    follow_links: Annotated[
        bool | None,
        typer.Option("--follow-links/--no-follow-links", help="Follow symbolic links"),
    ] = None,
    workers: Annotated[
        int | None, typer.Option("--workers", "-j", help="Extraction threads")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
) -> None:
    """Scan a source tree and write the declaration index."""
    try:
        config = load_config(Path.cwd())
        if root is not None:
            config.root = root
        if output is not None:
            config.output = output
        if exclude:
            config.exclude = list(exclude)
        if follow_links is not None:
            config.follow_links = follow_links
        if workers is not None:
            config.workers = workers
        if verbose:
            config.log_level = "DEBUG"
        config.validate()

        report = IndexBuilder(config).build(full=full)
    except RefsheetError as exc:
        _error_exit(str(exc))
        return

    _print_report(report, full)
    console.print(f"[green]Done![/green] Index written to {report.output}")


@app.command()
def show(
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Index table to read")
    ] = None,
    kind: Annotated[
        str | None, typer.Option("--kind", "-k", help="Only show this item type")
    ] = None,
) -> None:
    """Print the persisted index."""
    try:
        path = output or load_config(Path.cwd()).output
        wanted: DeclKind | None = None
        if kind is not None:
            try:
                wanted = DeclKind.parse(kind)
            except ValueError:
                valid = ", ".join(k.value for k in DeclKind)
                _error_exit(f"Unknown item type '{kind}'.", hint=f"Valid: {valid}")
                return

        if not path.is_file():
            _error_exit(f"No index at {path}.", hint="Run 'refsheet build' first.")
            return

        entries = [e for e in read_table(path) if wanted is None or e.kind is wanted]
    except RefsheetError as exc:
        _error_exit(str(exc))
        return

    table = Table(title=str(path), border_style="cyan", header_style="bold cyan")
    for column in HEADER:
        table.add_column(column)
    for entry in entries:
        table.add_row(*entry.row())
    console.print(table)
    console.print(f"[dim]{len(entries)} entries[/dim]")


@app.command(name="cargo-hook")
def cargo_hook() -> None:
    """Full rebuild into $OUT_DIR, for use from a Cargo build script."""
    try:
        out_dir = os.environ.get("OUT_DIR")
        if not out_dir:
            raise ConfigError("OUT_DIR is not set; run this from a Cargo build script")
        config = load_config(Path.cwd())
        config.output = Path(out_dir) / DEFAULT_OUTPUT
        IndexBuilder(config).build(full=True)
    except RefsheetError as exc:
        _error_exit(str(exc))
        return

    for rerun in _CARGO_RERUN_PATHS:
        typer.echo(f"cargo:rerun-if-changed={rerun}")


@app.command()
def version() -> None:
    """Print the refsheet version."""
    console.print(f"refsheet {__version__}")
