"""
Manages a Rich progress display showing segment progress for each episode.
"""

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from ani_dl.hls.fetcher import BatchCallback


class ProgressManager:
    """One progress bar per HLS download, advanced after every segment batch."""

    def __init__(self, console: Console):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._tasks: dict[str, TaskID] = {}

    def callback_for(self, label: str) -> BatchCallback:
        """Returns a batch callback that drives the bar labelled `label`."""

        def on_batch(done: int, total: int) -> None:
            task_id = self._tasks.get(label)
            if task_id is None:
                task_id = self.progress.add_task(f"[cyan]{label}[/cyan]", total=total)
                self._tasks[label] = task_id
            self.progress.update(task_id, completed=done, total=total)

        return on_batch

    async def __aenter__(self):
        self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.progress.stop()
        return False
