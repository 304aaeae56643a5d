"""Console rendering and progress helpers for fastdrop CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .models import UploadEntry, UploadState

console = Console()


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]fastdrop[/bold green]",
        subtitle="[dim]file uploader[/dim]",
        border_style="blue",
    )
    console.print(panel)


class UploadProgressDisplay:
    """Event-based console display; subscribe its handlers to engine events."""

    def __init__(self, show_bars: bool = True):
        self._tasks: Dict[str, TaskID] = {}
        self._finished: set[str] = set()
        self._progress: Optional[Progress] = None
        if show_bars:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold cyan]{task.fields[filename]}", justify="left"),
                BarColumn(bar_width=42),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                expand=False,
                console=console,
            )

    def __enter__(self) -> "UploadProgressDisplay":
        if self._progress is not None:
            self._progress.start()
        return self

    def __exit__(self, *args) -> None:
        if self._progress is not None:
            self._progress.stop()

    def on_entry_added(self, entry: UploadEntry) -> None:
        if self._progress is None or entry.entry_id in self._tasks:
            return
        self._tasks[entry.entry_id] = self._progress.add_task(
            "upload",
            filename=entry.display_name[:60],
            total=100,
        )

    def on_entry_updated(self, entry: UploadEntry) -> None:
        task_id = self._tasks.get(entry.entry_id)
        if self._progress is not None and task_id is not None:
            self._progress.update(task_id, completed=entry.progress)

        if not entry.state.terminal or entry.entry_id in self._finished:
            return
        self._finished.add(entry.entry_id)
        if entry.state is UploadState.SUCCESS:
            console.print(f"[green]Uploaded:[/green] {entry.display_name} [bold]{entry.result_url}[/bold]")
        else:
            console.print(f"[red]Failed:[/red] {entry.display_name} - {entry.error_message}")
