"""CLI progress display for sync operations.

This module provides a Rich-based progress display fed by the ticks a
:class:`~s3workspace.sync.SyncEngine` emits during pull and push.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .sync.progress import SyncPhase, SyncProgress

_DESCRIPTIONS = {
    SyncPhase.DOWNLOAD: "Downloading",
    SyncPhase.UPLOAD: "Uploading",
}


class SyncProgressDisplay:
    """Rich-based progress display for sync operations.

    One bar is created per phase on its first tick. Use it as a context
    manager and pass :meth:`handle_progress` to ``engine.subscribe()`` or
    as the ``progress_callback`` of pull()/push().
    """

    def __init__(self) -> None:
        """Initialize the progress display."""
        self._progress: Optional[Progress] = None
        self._tasks: dict[SyncPhase, TaskID] = {}

    def handle_progress(self, progress: SyncProgress) -> None:
        """Update the bar for the tick's phase.

        Args:
            progress: Tick emitted by the engine
        """
        if self._progress is None:
            return

        task_id = self._tasks.get(progress.phase)
        if task_id is None:
            task_id = self._progress.add_task(
                _DESCRIPTIONS[progress.phase],
                total=progress.total,
                current_file="",
            )
            self._tasks[progress.phase] = task_id

        self._progress.update(
            task_id,
            total=progress.total,
            completed=progress.current,
            current_file=progress.current_file or "",
        )

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TextColumn("[cyan]{task.fields[current_file]}"),
            TimeElapsedColumn(),
            refresh_per_second=4,
        )
        self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            for phase, task_id in self._tasks.items():
                self._progress.update(
                    task_id, description=f"{_DESCRIPTIONS[phase]} complete"
                )
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._tasks = {}
