"""Structured diff between two archives.

Compares indexes entry by entry (added, removed, changed) and reports which
fields of a changed entry differ. Entry bytes are compared through the stored
crc32, so no entry data is decoded. The result is JSON-serialisable with a
stable shape for the CLI and external tools.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from .errors import io_failure
from .packing.inspector import read_index

__all__ = ["diff_archives"]

_COMPARED_FIELDS = ("uncompressed_length", "crc32", "compression", "stored_length")


def _load(path: Path):
    try:
        with path.open("rb") as f:
            return read_index(f)
    except OSError as exc:
        raise io_failure(exc, "read", path) from exc


def diff_archives(left: str | Path, right: str | Path) -> Dict[str, Any]:
    a = _load(Path(left))
    b = _load(Path(right))
    added = sorted(set(b.by_path) - set(a.by_path))
    removed = sorted(set(a.by_path) - set(b.by_path))
    changed: List[Dict[str, Any]] = []
    for path in sorted(set(a.by_path) & set(b.by_path)):
        ea, eb = a.by_path[path], b.by_path[path]
        fields = {
            name: {"left": getattr(ea, name), "right": getattr(eb, name)}
            for name in _COMPARED_FIELDS
            if getattr(ea, name) != getattr(eb, name)
        }
        if fields:
            changed.append(
                {
                    "path": path,
                    "content_changed": (
                        ea.crc32 != eb.crc32
                        or ea.uncompressed_length != eb.uncompressed_length
                    ),
                    "fields": fields,
                }
            )
    count = len(added) + len(removed) + len(changed)
    return {
        "left": str(left),
        "right": str(right),
        "added": added,
        "removed": removed,
        "changed": changed,
        "summary": {
            "count": count,
            "added": len(added),
            "removed": len(removed),
            "changed": len(changed),
            "content_changed": sum(1 for c in changed if c["content_changed"]),
        },
    }
