"""Progress bars and colored messages on stderr through ``rich``."""

from __future__ import annotations

import os
from typing import Any, Dict, List

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

from .base import Reporter, TaskRecord, TaskStatus, format_stats

_STATUS_ICON = {
    TaskStatus.SUCCESS: "[green]✔[/]",
    TaskStatus.FAILED: "[red]✖[/]",
    TaskStatus.SKIPPED: "[dim]→[/]",
}

_LEVEL_STYLE = {
    "info": "[green]INFO[/]",
    "warning": "[yellow]WARN[/]",
    "error": "[bold red]ERROR[/]",
}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


class RichReporter(Reporter):
    """One progress row per task, entry name shown beside the bar.

    With ``ASSETPAK_PROGRESS_TRANSIENT=1`` rows vanish when done and the
    completion lines are printed together once the last task ends.
    """

    def __init__(self, console: Console | None = None):
        super().__init__()
        self.console = console or Console(stderr=True, highlight=False)
        self.transient = _env_flag("ASSETPAK_PROGRESS_TRANSIENT")
        self.progress: Progress | None = None
        self._rows: Dict[str, TaskID] = {}
        self._done: List[str] = []

    def _progress(self) -> Progress:
        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(spinner_name="dots"),
                TextColumn("{task.description}"),
                BarColumn(bar_width=None),
                MofNCompleteColumn(),
                TextColumn("[dim]{task.fields[item]}"),
                TimeElapsedColumn(),
                console=self.console,
                transient=self.transient,
                expand=True,
            )
            self.progress.start()
        return self.progress

    def on_task_start(self, rec: TaskRecord) -> None:
        if rec.total is None:
            self.console.rule(escape(rec.name))
            return
        self._rows[rec.task_id] = self._progress().add_task(
            rec.name, total=rec.total, item=""
        )

    def on_task_progress(self, rec: TaskRecord) -> None:
        row = self._rows.get(rec.task_id)
        if row is not None and self.progress is not None:
            self.progress.update(
                row, completed=rec.completed, item=escape(rec.current_item)
            )

    def on_task_end(self, rec: TaskRecord) -> None:
        row = self._rows.pop(rec.task_id, None)
        if row is not None and self.progress is not None:
            self.progress.update(row, completed=rec.completed, item="")
        line = (
            f"{_STATUS_ICON.get(rec.status, '')} {escape(rec.name)} "
            f"{rec.progress_text} ({rec.duration:.2f}s){escape(format_stats(rec.meta))}"
        )
        if self.transient:
            self._done.append(line)
        else:
            self.console.print(line)
        if self.active_tasks == 0:
            self.flush()

    def emit_message(self, level: str, message: str, fields: Dict[str, Any]) -> None:
        if level.startswith("verbose"):
            label = f"[cyan]VERB{level[len('verbose'):]}[/]"
        else:
            label = _LEVEL_STYLE.get(level, level.upper())
        self.console.print(f"{label}: {escape(message)}")

    def section(self, title: str) -> None:
        self.console.rule(escape(title))

    def flush(self) -> None:
        if self.progress is not None:
            try:
                self.progress.stop()
            finally:
                self.progress = None
                self._rows.clear()
        if self._done:
            self.console.print("\n".join(self._done))
            self._done.clear()
