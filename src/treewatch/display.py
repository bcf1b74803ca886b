"""Display logic for change reports and sessions."""

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from .core import ChangeReport, SnapshotManifest
from .utils import format_timestamp


def display_report(report: ChangeReport, console: Console, root: Optional[Path] = None) -> None:
    """Display a change report as a table.

    Args:
        report: Report returned by end()
        console: Rich console for output
        root: Watched directory, shown in the header
    """
    if root is not None:
        console.print(f"\n[bold]Directory:[/bold] {root}")

    if not report.has_changed:
        console.print("[green]✓ No changes[/green]")
        return

    counts = report.summary
    parts = [f"{count} {kind}" for kind, count in counts.items() if count]
    console.print(f"[yellow]Changes:[/yellow] {', '.join(parts)}")

    table = Table(title=f"\nChanged Paths ({sum(counts.values())})")
    table.add_column("Change")
    table.add_column("Path", style="cyan")
    table.add_column("Details")

    for path in report.created:
        table.add_row("[green]+ created[/green]", path, "")

    for path in report.deleted:
        table.add_row("[red]- deleted[/red]", path, "")

    for item in report.renamed:
        label = "[blue]→ moved[/blue]" if item.moved else "[blue]→ renamed[/blue]"
        details = f"from {item.prev_path}"
        if item.similarity < 100:
            details += f" [dim]({item.similarity:.0f}% similar)[/dim]"
        table.add_row(label, item.path, details)

    for item in report.rewritten:
        table.add_row("[yellow]~ rewritten[/yellow]", item.path, f"{item.match:.0f}% match")

    console.print(table)


def display_session(manifest: Optional[SnapshotManifest], root: Path, console: Console) -> None:
    """Display the state of a watch session."""
    console.print(f"\n[bold]Directory:[/bold] {root}")

    if manifest is None:
        console.print("[dim]Not watched (no snapshot)[/dim]")
        return

    began = format_timestamp(manifest.created_at)
    if manifest.is_active:
        console.print(f"[green]● Watching[/green] since {began}")
    else:
        console.print(f"[dim]○ Ended {format_timestamp(manifest.ended_at)}[/dim] (began {began})")

    console.print(f"  Files tracked: {len(manifest.files)}")
    console.print(f"  Tick source:   {manifest.tick_source}")
    if manifest.ignore:
        console.print(f"  Extra ignores: {', '.join(manifest.ignore)}")
