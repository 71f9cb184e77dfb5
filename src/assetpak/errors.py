"""Error definitions for assetpak.

Every failure carries a stable ``code`` so the CLI and reporters can render
or serialise it without string matching on messages.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

E_SOURCE_NOT_FOUND = "E_SOURCE_NOT_FOUND"
E_DUPLICATE_PATH = "E_DUPLICATE_PATH"
E_IO = "E_IO"
E_CORRUPT = "E_CORRUPT"
E_MAGIC = "E_MAGIC"
E_TRUNCATED = "E_TRUNCATED"
E_BOUNDS = "E_BOUNDS"
E_BAD_INDEX = "E_BAD_INDEX"
E_VERSION = "E_VERSION"
E_NOT_FOUND = "E_NOT_FOUND"
E_INVALID_PATH = "E_INVALID_PATH"
E_DECOMPRESS = "E_DECOMPRESS"
E_SIZE_MISMATCH = "E_SIZE_MISMATCH"
E_CRC_MISMATCH = "E_CRC_MISMATCH"
E_CONFIG = "E_CONFIG"
E_STATE = "E_STATE"
E_INTERNAL = "E_INTERNAL"


@dataclass
class AssetPakError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" + (
            f" | ctx={self.context}" if self.context else ""
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


# Packer errors ---------------------------------------------------------------


class SourceNotFound(AssetPakError):
    pass


class DuplicatePath(AssetPakError):
    pass


class IoFailure(AssetPakError):
    pass


# Archive format errors -------------------------------------------------------


class CorruptArchive(AssetPakError):
    pass


class UnsupportedVersion(AssetPakError):
    pass


# Runtime errors --------------------------------------------------------------


class AssetNotFound(AssetPakError):
    pass


class AssetCorrupt(CorruptArchive):
    """An entry that is structurally valid but fails to decode."""


class InvalidLogicalPath(AssetPakError, ValueError):
    pass


class ConfigError(AssetPakError):
    pass


class LoaderStateError(AssetPakError):
    pass


def io_failure(
    exc: OSError, action: str, path: Any, **context: Any
) -> IoFailure:
    return IoFailure(
        code=E_IO,
        message=f"{action} failed for {path}: {exc.strerror or exc}",
        context={"path": str(path), "errno": exc.errno, **context},
    )


def corrupt(
    code: str, message: str, context: Optional[Dict[str, Any]] = None
) -> CorruptArchive:
    return CorruptArchive(code=code, message=message, context=context)


def not_found(path: str, source: Any = None) -> AssetNotFound:
    ctx: Dict[str, Any] = {"path": path}
    if source is not None:
        ctx["source"] = str(source)
    return AssetNotFound(
        code=E_NOT_FOUND, message=f"No such asset: {path!r}", context=ctx
    )


__all__ = [
    "AssetPakError",
    "SourceNotFound",
    "DuplicatePath",
    "IoFailure",
    "CorruptArchive",
    "UnsupportedVersion",
    "AssetNotFound",
    "AssetCorrupt",
    "InvalidLogicalPath",
    "ConfigError",
    "LoaderStateError",
    "io_failure",
    "corrupt",
    "not_found",
    "E_SOURCE_NOT_FOUND",
    "E_DUPLICATE_PATH",
    "E_IO",
    "E_CORRUPT",
    "E_MAGIC",
    "E_TRUNCATED",
    "E_BOUNDS",
    "E_BAD_INDEX",
    "E_VERSION",
    "E_NOT_FOUND",
    "E_INVALID_PATH",
    "E_DECOMPRESS",
    "E_SIZE_MISMATCH",
    "E_CRC_MISMATCH",
    "E_CONFIG",
    "E_STATE",
    "E_INTERNAL",
]
