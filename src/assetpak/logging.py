"""Logging glue between the stdlib ``logging`` module and reporters.

Library modules log through ``get_logger()`` (the ``assetpak`` logger or a
child of it) and never install handlers. The CLI calls
:func:`configure_logging`, which forwards records to the active reporter so
log lines and progress output share one stream and one format.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from .reporting import get_reporter

ROOT_LOGGER = "assetpak"

__all__ = [
    "ROOT_LOGGER",
    "get_logger",
    "configure_logging",
    "section",
    "step",
]


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class ReporterHandler(logging.Handler):
    """Maps record levels onto reporter calls.

    WARNING and above are always shown; INFO needs ``-v`` and DEBUG ``-vv``
    (the reporter applies the verbosity gate).
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = self.format(record)
            rep = get_reporter()
            if record.levelno >= logging.ERROR:
                rep.error(text, logger=record.name)
            elif record.levelno >= logging.WARNING:
                rep.warning(text, logger=record.name)
            else:
                level = 1 if record.levelno >= logging.INFO else 2
                rep.verbose(text, level=level)
        except Exception:
            self.handleError(record)


def configure_logging(verbosity: int = 0) -> None:
    root = get_logger()
    for existing in list(root.handlers):
        if isinstance(existing, ReporterHandler):
            root.removeHandler(existing)
    handler = ReporterHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbosity >= 2 else logging.INFO)
    root.propagate = False


def step(message: str) -> None:
    """One progress line outside any task, e.g. ``-> inspecting x.pak``."""
    get_reporter().status(f"  -> {message}")


@contextmanager
def section(title: str) -> Iterator[logging.Logger]:
    logger = get_logger()
    get_reporter().section(title)
    logger.debug("begin %s", title)
    try:
        yield logger
    finally:
        logger.debug("end %s", title)
