"""Progress and message reporting for the packer and the CLI.

Library code reports through :func:`get_reporter`; until the CLI installs a
concrete reporter the active one is a :class:`SilentReporter`.
"""

from .base import (
    Reporter,
    TaskRecord,
    TaskStatus,
    format_bytes,
    format_stats,
    get_reporter,
    get_verbosity,
    section,
    set_reporter,
    set_verbosity,
    task,
)
from .jsonl import JsonLinesReporter
from .plain import PlainReporter
from .rich_reporter import RichReporter
from .silent import SilentReporter

REPORTERS = {
    "plain": PlainReporter,
    "rich": RichReporter,
    "json": JsonLinesReporter,
    "silent": SilentReporter,
}

__all__ = [
    "REPORTERS",
    "Reporter",
    "TaskRecord",
    "TaskStatus",
    "format_bytes",
    "format_stats",
    "get_reporter",
    "get_verbosity",
    "section",
    "set_reporter",
    "set_verbosity",
    "task",
    "JsonLinesReporter",
    "PlainReporter",
    "RichReporter",
    "SilentReporter",
]
