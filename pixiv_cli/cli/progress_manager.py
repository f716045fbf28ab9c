"""
Manages a Rich progress display for the images of the artwork being downloaded.
The display is only live while an artwork's batch runs, so range prompts can read
from the terminal in between.
"""

import logging

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

log = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 48


class ProgressManager:
    """Shows one bar per artwork and routes messages through logging or the console."""

    def __init__(self, console: Console, quiet: bool = False):
        self.console = console
        self.quiet = quiet
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._running = False

    def log_message(self, message: str, level: str = "info"):
        """Prints a message, or sends it to the logger when quiet."""
        if self.quiet:
            getattr(log, "info" if level == "success" else level, log.info)(message)
            return
        style = {"warning": "yellow", "error": "red", "success": "green"}.get(level)
        self.console.print(f"[{style}]{message}[/{style}]" if style else message)

    def start_illust(self, illust_id: str, title: str, total: int) -> TaskID:
        if len(title) > MAX_DESCRIPTION_LENGTH:
            title = title[: MAX_DESCRIPTION_LENGTH - 1] + "…"
        if not self.quiet and not self._running:
            self.progress.start()
            self._running = True
        return self.progress.add_task(
            f"[cyan]{illust_id}[/cyan] {escape(title)}", total=total, visible=not self.quiet
        )

    def advance(self, task_id: TaskID, index: int, total: int):
        self.progress.update(task_id, completed=index, total=total)

    def finish_illust(self, task_id: TaskID):
        try:
            self.progress.remove_task(task_id)
        except KeyError:
            pass
        if self._running and not self.progress.tasks:
            self.progress.stop()
            self._running = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._running:
            self.progress.stop()
            self._running = False
