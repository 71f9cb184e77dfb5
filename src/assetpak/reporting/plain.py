"""Line oriented reporter for terminals and CI logs (stderr)."""

from __future__ import annotations

import sys
from typing import Any, Dict, TextIO

from .base import Reporter, TaskRecord, TaskStatus, format_stats, get_verbosity

_ICONS = {
    TaskStatus.SUCCESS: "✔",
    TaskStatus.FAILED: "✖",
    TaskStatus.SKIPPED: "→",
}

# level -> (ANSI color, label)
_LABELS = {
    "info": ("32", "INFO"),
    "warning": ("33", "WARN"),
    "error": ("31", "ERROR"),
}


class PlainReporter(Reporter):
    def __init__(self, stream: TextIO | None = None, use_color: bool | None = None):
        super().__init__()
        self.stream = stream or sys.stderr
        if use_color is None:
            use_color = getattr(self.stream, "isatty", lambda: False)()
        self.use_color = use_color

    def _paint(self, color: str, text: str) -> str:
        return f"\x1b[{color}m{text}\x1b[0m" if self.use_color else text

    def _line(self, text: str) -> None:
        self.stream.write(text + "\n")

    def on_task_progress(self, rec: TaskRecord) -> None:
        # One line per entry only at -v; big asset trees would flood the log.
        if get_verbosity() >= 1:
            item = rec.current_item or f"#{rec.completed}"
            self._line(f"   · {rec.name}: {item} ({rec.progress_text})")

    def on_task_end(self, rec: TaskRecord) -> None:
        counts = f" {rec.progress_text}" if rec.total is not None else ""
        self._line(
            f" {_ICONS.get(rec.status, '?')} {rec.name}{counts} "
            f"({rec.duration:.2f}s){format_stats(rec.meta)}"
        )

    def emit_message(self, level: str, message: str, fields: Dict[str, Any]) -> None:
        if level.startswith("verbose"):
            color, label = "36", f"VERB{level[len('verbose'):]}"
        else:
            color, label = _LABELS.get(level, ("0", level.upper()))
        self._line(f"{self._paint(color, label)}: {message}")

    def section(self, title: str) -> None:
        self._line(f"\n[{title}]")
