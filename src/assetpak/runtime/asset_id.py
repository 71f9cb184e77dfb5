"""Compact asset identifiers derived from logical paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath

__all__ = ["AssetId", "AssetRef", "fnv1a64"]

_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


def fnv1a64(data: bytes) -> int:
    h = _FNV_OFFSET
    for b in data:
        h = ((h ^ b) * _FNV_PRIME) & _MASK64
    return h


def _canonical(path: str | PurePath) -> str:
    return str(path).replace("\\", "/")


@dataclass(frozen=True, slots=True, order=True)
class AssetId:
    """FNV-1a 64 hash of a logical path; stable across runs and platforms."""

    value: int = 0

    @classmethod
    def from_str(cls, text: str) -> "AssetId":
        return cls(fnv1a64(text.encode("utf-8")))

    @classmethod
    def from_path(cls, path: str | PurePath) -> "AssetId":
        return cls.from_str(_canonical(path))

    def __str__(self) -> str:
        return f"{self.value:016x}"


@dataclass(slots=True)
class AssetRef:
    path: str = ""
    id: AssetId = field(default_factory=lambda: AssetId.from_str(""))

    @classmethod
    def from_str(cls, text: str) -> "AssetRef":
        return cls(path=text, id=AssetId.from_str(text))

    @classmethod
    def from_path(cls, path: str | PurePath) -> "AssetRef":
        return cls.from_str(_canonical(path))

    def update_id(self) -> None:
        """Recompute ``id`` after ``path`` was edited in place."""
        self.id = AssetId.from_str(self.path)
