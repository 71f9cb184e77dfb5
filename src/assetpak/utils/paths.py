"""Logical path rules and safe filesystem resolution."""

from __future__ import annotations
from pathlib import Path
import unicodedata

from ..errors import E_INVALID_PATH, InvalidLogicalPath

__all__ = [
    "IGNORED_FILE_NAMES",
    "normalize_logical_path",
    "is_ignored_name",
    "relative_logical_path",
    "safe_file_path",
    "under_prefix",
]

# OS droppings never packed and never listed by the folder backend.
IGNORED_FILE_NAMES = frozenset({".DS_Store", "Thumbs.db", "desktop.ini"})


def _invalid(raw: str, reason: str) -> InvalidLogicalPath:
    return InvalidLogicalPath(
        code=E_INVALID_PATH,
        message=f"Invalid logical path {raw!r}: {reason}",
        context={"path": raw},
    )


def normalize_logical_path(raw: str) -> str:
    """Return the canonical form of ``raw``.

    Separators become ``/``, text is NFC-normalized, empty and ``.`` segments
    are dropped. Absolute paths, drive prefixes and ``..`` segments are
    rejected with :class:`InvalidLogicalPath`.
    """
    if not isinstance(raw, str):
        raise _invalid(repr(raw), "must be a string")
    if "\x00" in raw:
        raise _invalid(raw, "contains NUL")
    text = unicodedata.normalize("NFC", raw.replace("\\", "/"))
    if text.startswith("/"):
        raise _invalid(raw, "must be relative")
    segments = []
    for segment in text.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise _invalid(raw, "must not contain '..'")
        segments.append(segment)
    if not segments:
        raise _invalid(raw, "is empty")
    first = segments[0]
    if len(first) >= 2 and first[1] == ":" and first[0].isalpha():
        raise _invalid(raw, "must not carry a drive prefix")
    return "/".join(segments)


def is_ignored_name(name: str) -> bool:
    return name in IGNORED_FILE_NAMES


def relative_logical_path(root: Path, file_path: Path) -> str:
    return normalize_logical_path(file_path.relative_to(root).as_posix())


def safe_file_path(base_dir: Path, file_path: str) -> Path:
    base_dir = base_dir.resolve()
    resolved = (base_dir / file_path).resolve()
    resolved.relative_to(base_dir)  # raises ValueError if escapes
    return resolved


def under_prefix(path: str, prefix: str) -> bool:
    """Directory-prefix match: ``textures`` matches ``textures/a.png``."""
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")
