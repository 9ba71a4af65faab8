"""Console rendering and progress helpers for mdbulk CLI."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .editor.batch import ORIGINAL_SUFFIX, is_modified
from .models import DriveItem
from .orchestrator.models import DownloadOutcome, DownloadSummary, DownloadTask
from .utils.events import EventEmitter


console = Console(highlight=False)
error_console = Console(stderr=True, highlight=False)


def echo(message: str) -> None:
    console.print(message)


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def _relative(path: Any) -> str:
    try:
        return os.path.relpath(path)
    except ValueError:
        return str(path)


def render_error(message: str) -> None:
    error_console.print(Text(f"ERROR: {message}", style="red"))


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, escape(rendered))

    panel = Panel(
        table,
        title="[bold green]mdbulk[/bold green]",
        subtitle="[dim]OneDrive download[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_profile(profile: Mapping[str, Any]) -> None:
    name = profile.get("displayName") or "-"
    mail = profile.get("mail") or profile.get("userPrincipalName") or "-"
    echo(f"Logged in as: [yellow]{escape(str(name))}[/yellow] [grey50]({escape(str(mail))})[/grey50]")


def render_drive_item(item: DriveItem, canonical_path: str) -> None:
    table = Table.grid(padding=(0, 1))
    table.add_column(style="bold", justify="right")
    table.add_column(style="yellow")
    table.add_row("Name:", escape(item.name))
    table.add_row("Id:", item.id)
    table.add_row("URL:", escape(item.web_url or "-"))
    table.add_row("DriveId:", item.drive_id or "-")
    console.print(table)
    echo(f"\nroot path updated: [yellow]{escape(canonical_path)}[/yellow]")


def render_verify_table(rows: Sequence[Mapping[str, Any]], fields: Sequence[str]) -> int:
    """
    Render verified rows; modified cells show the old value struck through.

    Returns:
        Number of modified rows
    """
    table = Table(show_lines=False)
    table.add_column("", width=1)
    table.add_column("path", style="cyan")
    for field in fields:
        table.add_column(field)

    modified = 0
    for row in rows:
        changed = is_modified(row)
        modified += int(changed)
        cells: List[Any] = ["*" if changed else "", escape(str(row.get("path", "")))]
        for field in fields:
            value = str(row.get(field) or "")
            original_key = field + ORIGINAL_SUFFIX
            original = str(row.get(original_key) or "")
            if original_key in row and original != value:
                cell = Text()
                if original:
                    cell.append(original, style="red strike")
                if original and value:
                    cell.append("\n")
                if value:
                    cell.append(value, style="green")
                cells.append(cell)
            else:
                cells.append(escape(value))
        table.add_row(*cells)

    console.print(table)
    echo(f"{modified} of {len(rows)} row(s) modified")
    return modified


class DownloadProgressDisplay:
    """Event-based console display for recursive downloads."""

    def attach(self, events: EventEmitter) -> EventEmitter:
        events.on("file_saved", self.on_file_saved)
        events.on("folder_listed", self.on_folder_listed)
        events.on("item_skipped", self.on_item_skipped)
        return events

    def on_file_saved(self, task: DownloadTask, size: int) -> None:
        kb = f"{size / 1024:.2f}"
        echo(f"{kb:>8}kb - {escape(_relative(task.destination))}")

    def on_folder_listed(self, task: DownloadTask, child_count: int) -> None:
        echo(f"[dim]{escape(task.rel_path)}/ ({child_count} items)[/dim]")

    def on_item_skipped(self, task: DownloadTask) -> None:
        echo(f"[yellow]skipped[/yellow] {escape(task.rel_path)} (neither file nor folder)")

    def on_finish(self, outcome: DownloadOutcome) -> None:
        summary: Optional[DownloadSummary] = outcome.summary
        if summary is None:
            echo(
                f"[green]Saved:[/green] {escape(_relative(outcome.destination))} "
                f"({_human_size(outcome.bytes_written)})"
            )
            return
        echo(
            f"[green]Downloaded[/green] {summary.files} file(s) from {summary.folders} folder(s), "
            f"{_human_size(summary.bytes_written)}"
            + (f", {summary.skipped} skipped" if summary.skipped else "")
        )
