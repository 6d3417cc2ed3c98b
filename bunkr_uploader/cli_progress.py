"""Console rendering and progress helpers for the uploader CLI."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .models import CHUNK_THRESHOLD

console = Console()
err_console = Console(stderr=True)


def _echo(message: str) -> None:
    console.print(message, highlight=False)


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
        title="[bold green]bunkr-up[/bold green]",
        subtitle="[dim]bunkr uploader CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_missing_path(path: Path) -> None:
    err_console.print(f"[yellow]Path does not exist, skipping: {escape(str(path))}[/yellow]", highlight=False)


def render_file_list(files: Sequence[Path]) -> None:
    """List the files about to be uploaded."""
    _echo("You are uploading: ")
    for path in files:
        _echo(str(path))
    _echo(f"[bold yellow]Total files: {len(files)}[/bold yellow]")


class RunProgressDisplay:
    """Event-based console display for an upload run."""

    def __init__(self, chunk_threshold: int = CHUNK_THRESHOLD):
        self._chunk_threshold = chunk_threshold
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None

    def _start_bar(self, name: str, total: int) -> None:
        self._progress = Progress(
            TextColumn("[bold cyan]{task.fields[filename]}", justify="left"),
            BarColumn(bar_width=40, complete_style="green"),
            DownloadColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            expand=False,
            console=console,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("upload", filename=name[:60], total=max(total, 1))

    def _stop_bar(self) -> None:
        if self._progress is None:
            return
        self._progress.stop()
        self._progress = None
        self._task_id = None

    def on_file_start(self, candidate: Any) -> None:
        name = getattr(candidate, "name", "file")
        size = int(getattr(candidate, "size", 0) or 0)
        if size >= self._chunk_threshold:
            self._start_bar(name, size)
            return
        _echo(f"[cyan]Uploading:[/cyan] {name} ({_human_size(size)})")

    def on_file_progress(self, file_path: Path, file_progress: Any) -> None:
        if self._progress is None or self._task_id is None:
            return
        uploaded = int(getattr(file_progress, "bytes_uploaded", 0) or 0)
        total = int(getattr(file_progress, "total_bytes", 0) or 0)
        self._progress.update(self._task_id, completed=uploaded, total=max(total, 1))

    def on_chunk_fail(self, failure: Any) -> None:
        index = getattr(failure, "chunk_index", "?")
        reason = getattr(failure, "reason", "")
        _echo(f"[red]✗[/red] chunk {index}: {reason}")

    def on_file_complete(self, result: Any) -> None:
        self._stop_bar()
        _echo(f"[green]{getattr(result, 'filename', 'file')} ✔[/green]")

    def on_file_fail(self, result: Any) -> None:
        self._stop_bar()
        name = getattr(result, "filename", "file")
        error = getattr(result, "error", None)
        suffix = f" - {error}" if error else ""
        _echo(f"[red]✗ Failed to upload {name}{suffix}[/red]")

    def on_file_skip(self, result: Any) -> None:
        name = getattr(result, "filename", "file")
        _echo(f"[yellow]{name} Skipped, due to file already has been uploaded.[/yellow]")

    def on_rate_limited(self, result: Any) -> None:
        _echo("[bold]You have been rate limited, Please try again after sometime.[/bold]")

    def on_ledger_warning(self, message: str) -> None:
        err_console.print(f"[yellow]Warning: {escape(message)}[/yellow]", highlight=False)

    def on_finish(self, run_result: Any) -> None:
        self._stop_bar()
        for index, url in enumerate(getattr(run_result, "urls", []), start=1):
            _echo(f"{index}: [yellow]{url}[/yellow]")
        _echo(f"[bold green]Success: {run_result.uploaded_files}[/bold green]")
        _echo(f"[bold yellow]Skipped: {run_result.skipped_files}[/bold yellow]")
        _echo(f"[bold red]Failed: {run_result.failed_files}[/bold red]")
