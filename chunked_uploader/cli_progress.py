"""Console rendering and progress helpers for the chunk-up CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .models import FileDescriptor, FileResult, OverallProgress, ProgressSnapshot, UploadStatus

console = Console()


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
        title="[bold green]chunk-up[/bold green]",
        subtitle="[dim]signed URL uploader[/dim]",
        border_style="blue",
    )
    console.print(panel)


class BatchUploadProgressDisplay:
    """One progress bar per file, fed by ProgressSnapshot callbacks."""

    def __init__(self, files: Sequence[FileDescriptor]):
        self._files = {file.index: file for file in files}
        self._tasks: Dict[int, TaskID] = {}
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[filename]}", justify="left"),
            BarColumn(bar_width=36),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("{task.fields[parts]}"),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            expand=False,
            console=console,
        )
        self._overall: Optional[OverallProgress] = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    def start(self) -> None:
        for index, file in self._files.items():
            self._tasks[index] = self._progress.add_task(
                "upload",
                filename=file.path.name[:48],
                parts="",
                total=max(file.size, 1),
            )
        self._progress.start()

    def stop(self) -> None:
        self._progress.stop()

    def on_progress(self, snapshot: ProgressSnapshot) -> None:
        task_id = self._tasks.get(snapshot.file_index)
        if task_id is None:
            return

        parts = f"{snapshot.uploaded_parts}/{snapshot.total_parts}" if snapshot.total_parts > 1 else ""
        if snapshot.status == UploadStatus.FAILED:
            parts = "[red]failed[/red]"
        elif snapshot.status == UploadStatus.COMPLETED:
            parts = "[green]done[/green]"

        self._progress.update(
            task_id,
            completed=snapshot.uploaded_bytes,
            total=max(snapshot.total_bytes, 1),
            parts=parts,
        )

    def on_overall_progress(self, overall: OverallProgress) -> None:
        self._overall = overall

    @property
    def overall(self) -> Optional[OverallProgress]:
        return self._overall


def render_results(
    files: Sequence[FileDescriptor],
    results: Sequence[FileResult],
    overall: Optional[OverallProgress] = None,
) -> None:
    """Print one row per file with its key or failure reason."""
    table = Table(title="Upload results", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("File", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    table.add_column("Key / Error")
    table.add_column("Thumbnail")

    for file, result in zip(files, results):
        status = "[green]completed[/green]" if result.success else "[red]failed[/red]"
        detail = result.key if result.success else (result.error or "-")
        table.add_row(
            str(file.index),
            file.path.name,
            _human_size(file.size),
            status,
            detail or "-",
            result.thumbnail_key or "-",
        )

    console.print(table)
    if overall is not None:
        console.print(
            f"[bold]Overall:[/bold] {overall.percent}% "
            f"({_human_size(overall.uploaded_bytes)}/{_human_size(overall.total_bytes)})"
        )
