"""CLI for treewatch."""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from . import session as watch
from .display import display_report, display_session
from .errors import DirectoryNotFoundError, WatcherError
from .similarity import score_files
from .snapshot import load_manifest


app = typer.Typer(help="""\
Detect what changed in a directory between two points in time.
Run 'begin' to snapshot a directory, change it freely, then run 'end'
to list created, deleted, renamed, moved and rewritten files.""")

console = Console()


def _fail(message: str) -> None:
    """Print an error and exit with status 1."""
    console.print(f"[red]✗[/red] {message}")
    raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging for all commands."""
    level = logging.DEBUG if verbose or os.environ.get("DEBUG") else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def begin(
    directory: Path = typer.Argument(Path("."), help="Directory to watch (default: current directory)"),
    ignore: Optional[List[str]] = typer.Option(None, "--ignore", "-i", help="Extra ignore substring (repeatable)"),
    tick_source: Optional[str] = typer.Option(
        None, "--tick-source", help="File identity source: auto, birthtime, inode or xattr"
    ),
):
    """Snapshot a directory so later changes can be reported.

    Examples:
        treewatch begin                      # Watch current directory
        treewatch begin project -i .cache    # Also ignore paths containing .cache
    """
    try:
        session = watch.begin(directory, ignore, tick_source=tick_source)
    except (WatcherError, ValueError) as e:
        _fail(str(e))

    console.print(f"[green]✓[/green] Watching {session.root} ({len(session.manifest.files)} files)")
    console.print("[dim]Run 'treewatch end' to see what changed[/dim]")


@app.command()
def end(
    directory: Path = typer.Argument(Path("."), help="Watched directory (default: current directory)"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    exit_code: bool = typer.Option(False, "--exit-code", help="Exit with status 1 if anything changed"),
):
    """Report what changed since 'begin'.

    Examples:
        treewatch end                 # Table of changes
        treewatch end --json          # Machine-readable report
    """
    try:
        report = watch.end(directory)
    except (WatcherError, ValueError) as e:
        _fail(str(e))

    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        display_report(report, console, root=directory)

    if exit_code and report.has_changed:
        raise typer.Exit(1)


@app.command()
def status(
    directory: Path = typer.Argument(Path("."), help="Watched directory (default: current directory)"),
):
    """Show whether a directory is being watched."""
    if not directory.is_dir():
        _fail(str(DirectoryNotFoundError(directory)))

    try:
        manifest = load_manifest(directory)
    except WatcherError as e:
        _fail(str(e))

    display_session(manifest, directory, console)


@app.command()
def score(
    first: Path = typer.Argument(..., help="First text file"),
    second: Path = typer.Argument(..., help="Second text file"),
):
    """Print the token similarity of two text files (0-100)."""
    for path in (first, second):
        if not path.is_file():
            _fail(f"File not found: {path}")

    console.print(f"{score_files(first, second):.0f}%")


if __name__ == "__main__":
    app()
