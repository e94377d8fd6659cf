"""Progress tracking with Rich progress bars."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, final

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from imghost.exceptions import StateError
from imghost.models.upload import Link, UploadItem, UploadStatus

if TYPE_CHECKING:
    from imghost.processors.upload_queue import UploadQueue

STATUS_STYLES = {
    UploadStatus.QUEUED: ("dim", "Queued"),
    UploadStatus.UPLOADING: ("blue", "Uploading"),
    UploadStatus.DONE: ("green", "Uploaded"),
    UploadStatus.ERROR: ("red", "Failed"),
}


@final
class QueueProgressTracker:
    """Renders upload queue state on the terminal.

    Implements the queue observer interface: one progress bar per item,
    plus a line when the batch settles.
    """

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the tracker.

        Args:
            console: Rich console instance. If None, creates a new one.
        """
        self.console = console or Console()
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        )
        self.queue: UploadQueue | None = None
        self.settled_batches = 0
        self._tasks: dict[int, TaskID] = {}

    def attach(self, queue: UploadQueue) -> None:
        """Register as the observer of ``queue``."""
        self.queue = queue
        queue.observer = self

    @contextmanager
    def live(self) -> Iterator[QueueProgressTracker]:
        """Context manager keeping the progress display on screen."""
        with self.progress:
            yield self

    def _label(self, item_id: int) -> str:
        if self.queue is not None:
            try:
                return self.queue.get(item_id).name
            except StateError:
                pass
        return f"item {item_id}"

    def on_item_state_changed(
        self,
        item_id: int,
        status: UploadStatus,
        progress: int,
        link: Link | None,
        error: str | None,
    ) -> None:
        style, label = STATUS_STYLES[status]
        description = f"[{style}]{label:<9}[/{style}] {self._label(item_id)}"

        task_id = self._tasks.get(item_id)
        if task_id is None:
            task_id = self.progress.add_task(description, total=100)
            self._tasks[item_id] = task_id
        self.progress.update(task_id, completed=progress, description=description)

        if status is UploadStatus.DONE and link is not None:
            self.progress.console.print(f"[green]✓[/green] {link.path} → {link.raw}")
        elif status is UploadStatus.ERROR:
            self.progress.console.print(f"[red]✗ {self._label(item_id)}: {escape(error or '')}[/red]")

    def on_batch_settled(self) -> None:
        self.settled_batches += 1
        self.progress.console.print("[bold]All uploads settled.[/bold]")

    def display_upload_summary(self, items: list[UploadItem]) -> None:
        """Display a table of every item with its link or error.

        Args:
            items: Queue items to list
        """
        table = Table(title="Upload Summary")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("File")
        table.add_column("Status")
        table.add_column("Result", overflow="fold")

        for item in items:
            style, label = STATUS_STYLES[item.status]
            if item.link is not None:
                result = item.link.markdown
            else:
                result = item.error or ""
            table.add_row(str(item.id), Text(item.name), f"[{style}]{label}[/{style}]", Text(result))

        self.console.print("\n")
        self.console.print(table)

    def display_error(self, message: str, exception: Exception | None = None) -> None:
        """Display an error message with optional exception details.

        Args:
            message: Error message to display
            exception: Optional exception for additional context
        """
        self.console.print(f"[red]Error: {escape(message)}[/red]")
        if exception:
            self.console.print(f"[dim]Details: {escape(str(exception))}[/dim]")

    def display_warning(self, message: str) -> None:
        self.console.print(f"[yellow]Warning: {message}[/yellow]")
