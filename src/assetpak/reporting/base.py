"""Reporter contract shared by every output backend.

Packing code drives reporters through tasks (``start_task`` / ``advance`` /
``end_task``) and one-line messages. The base class owns the task
bookkeeping; concrete reporters only render the resulting events through
the ``on_*`` hooks and :meth:`Reporter.emit_message`.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterator, Optional

__all__ = [
    "TaskStatus",
    "TaskRecord",
    "Reporter",
    "STAT_KEYS",
    "format_bytes",
    "format_stats",
    "set_reporter",
    "get_reporter",
    "set_verbosity",
    "get_verbosity",
    "section",
    "task",
]

# Task meta keys rendered in completion lines, in display order.
STAT_KEYS = ("entries", "compressed", "bytes", "stored", "planned")
_BYTE_KEYS = frozenset({"bytes", "stored", "planned"})


class TaskStatus(Enum):
    RUNNING = auto()
    SUCCESS = auto()
    FAILED = auto()
    SKIPPED = auto()


@dataclass(slots=True)
class TaskRecord:
    task_id: str
    name: str
    total: Optional[int] = None
    completed: int = 0
    status: TaskStatus = TaskStatus.RUNNING
    start_time: float = field(default_factory=time.monotonic)
    end_time: float | None = None
    current_item: str = ""
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time

    @property
    def progress_text(self) -> str:
        return f"{self.completed}/{self.total if self.total is not None else '?'}"


def format_bytes(n: int) -> str:
    """``1536`` -> ``"1.5 KiB"``; exact for values under 1 KiB."""
    size = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024 or unit == "GiB":
            return f"{n} B" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{n} B"  # pragma: no cover


def format_stats(meta: Dict[str, Any]) -> str:
    stats = []
    for key in STAT_KEYS:
        if key not in meta:
            continue
        value = meta[key]
        if key in _BYTE_KEYS and isinstance(value, int):
            value = format_bytes(value)
        stats.append(f"{key}={value}")
    return f" [{' '.join(stats)}]" if stats else ""


_VERBOSITY: int = 0  # set by the CLI (-v repeats)


def set_verbosity(level: int) -> None:
    global _VERBOSITY
    _VERBOSITY = max(0, level)


def get_verbosity() -> int:
    return _VERBOSITY


class Reporter:
    def __init__(self) -> None:
        self._tasks: Dict[str, TaskRecord] = {}

    # Task protocol, called by library code ---------------------------------

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        rec = TaskRecord(task_id, name, total, meta=dict(meta))
        self._tasks[task_id] = rec
        self.on_task_start(rec)

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        rec = self._tasks.get(task_id)
        if rec is None:
            return
        rec.completed += step
        rec.current_item = meta.pop("current_item", "") or ""
        rec.meta.update(meta)
        self.on_task_progress(rec)

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        rec = self._tasks.pop(task_id, None)
        if rec is None:
            return
        rec.status = status
        rec.end_time = time.monotonic()
        rec.current_item = ""
        rec.meta.update(final_meta)
        self.on_task_end(rec)

    @property
    def active_tasks(self) -> int:
        return len(self._tasks)

    # Messages ---------------------------------------------------------------

    def status(self, message: str, **fields: Any) -> None:
        self.emit_message("info", message, fields)

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self.emit_message(f"verbose{level}", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.emit_message("warning", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self.emit_message("error", message, fields)

    def section(self, title: str) -> None:
        pass

    def flush(self) -> None:
        pass

    # Rendering hooks --------------------------------------------------------

    def on_task_start(self, rec: TaskRecord) -> None:
        pass

    def on_task_progress(self, rec: TaskRecord) -> None:
        pass

    def on_task_end(self, rec: TaskRecord) -> None:
        pass

    def emit_message(self, level: str, message: str, fields: Dict[str, Any]) -> None:
        pass


_ACTIVE_REPORTER: Reporter | None = None


def set_reporter(rep: Reporter) -> None:
    global _ACTIVE_REPORTER
    _ACTIVE_REPORTER = rep


def get_reporter() -> Reporter:
    """Active reporter; library callers get a silent one unless the CLI set one."""
    global _ACTIVE_REPORTER
    if _ACTIVE_REPORTER is None:
        from .silent import SilentReporter  # local import to avoid cycle

        _ACTIVE_REPORTER = SilentReporter()
    return _ACTIVE_REPORTER


@contextmanager
def section(title: str) -> Iterator[Reporter]:
    rep = get_reporter()
    rep.section(title)
    yield rep


@contextmanager
def task(
    task_id: str, name: str, total: int | None = None, **meta: Any
) -> Iterator[Reporter]:
    rep = get_reporter()
    rep.start_task(task_id, name, total, **meta)
    try:
        yield rep
    except BaseException:
        rep.end_task(task_id, TaskStatus.FAILED)
        raise
    rep.end_task(task_id, TaskStatus.SUCCESS)
