from __future__ import annotations

from .base import Reporter


class SilentReporter(Reporter):
    """Tracks tasks but renders nothing; the default for library callers."""
