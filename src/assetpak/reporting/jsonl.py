"""Machine-readable reporter: one JSON object per line on stdout.

Events: ``task_start``, ``task_progress``, ``task_end``, ``status``,
``section`` and ``summary``. A status line of the form
``"<Kind> summary: k=v k=v"`` additionally produces a ``summary`` record
with the key/value pairs split out.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Dict, TextIO

from .base import Reporter, TaskRecord

_SUMMARY_KINDS = frozenset(
    {"pack", "plan", "write", "manifest", "inspect", "validate", "diff"}
)


def parse_summary(message: str) -> tuple[str, Dict[str, str]] | None:
    head, sep, body = message.partition(":")
    words = head.strip().lower().split()
    if not sep or len(words) != 2 or words[1] != "summary":
        return None
    if words[0] not in _SUMMARY_KINDS:
        return None
    pairs = dict(tok.split("=", 1) for tok in body.split() if "=" in tok)
    return words[0], pairs


class JsonLinesReporter(Reporter):
    def __init__(self, stream: TextIO | None = None):
        super().__init__()
        self.stream = stream or sys.stdout

    def _emit(self, event: str, **payload: Any) -> None:
        payload["event"] = event
        self.stream.write(json.dumps(payload, sort_keys=True, default=str) + "\n")

    def on_task_start(self, rec: TaskRecord) -> None:
        self._emit("task_start", id=rec.task_id, name=rec.name, total=rec.total, **rec.meta)

    def on_task_progress(self, rec: TaskRecord) -> None:
        self._emit(
            "task_progress",
            id=rec.task_id,
            completed=rec.completed,
            current_item=rec.current_item,
        )

    def on_task_end(self, rec: TaskRecord) -> None:
        self._emit(
            "task_end",
            id=rec.task_id,
            status=rec.status.name.lower(),
            completed=rec.completed,
            total=rec.total,
            duration_seconds=round(rec.duration, 6),
            **rec.meta,
        )

    def emit_message(self, level: str, message: str, fields: Dict[str, Any]) -> None:
        summary = parse_summary(message)
        if summary is not None:
            kind, pairs = summary
            self._emit(
                "summary", summary_type=kind, level=level, raw=message, **pairs, **fields
            )
        self._emit("status", message=message, level=level, **fields)

    def section(self, title: str) -> None:
        self._emit("section", title=title)
