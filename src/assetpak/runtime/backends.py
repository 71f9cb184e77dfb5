"""Storage backends serving asset bytes by logical path.

Every backend satisfies the :class:`Backend` protocol (``list``, ``open``,
``close``). The variant is picked once, at construction time, by the caller:

* :class:`FolderBackend`: a live directory tree (development).
* :class:`ArchiveBackend`: a standalone archive file read with seek + read.
* :class:`EmbeddedBackend`: archive bytes already in memory; no I/O.

For one source tree all three return identical bytes for every path.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Protocol, runtime_checkable
import io
import os
import threading

from ..errors import (
    AssetNotFound,
    InvalidLogicalPath,
    LoaderStateError,
    SourceNotFound,
    corrupt,
    io_failure,
    not_found,
    E_SOURCE_NOT_FOUND,
    E_STATE,
    E_TRUNCATED,
)
from ..logging import get_logger
from ..packing.compression import decode_entry
from ..packing.inspector import (
    ArchiveIndex,
    check_archive_size,
    check_entry_bounds,
    parse_index_bytes,
    read_header,
    read_index,
)
from ..packing.constants import HEADER_SIZE
from ..utils.paths import (
    is_ignored_name,
    normalize_logical_path,
    relative_logical_path,
    safe_file_path,
)

__all__ = [
    "Backend",
    "FolderBackend",
    "ArchiveBackend",
    "EmbeddedBackend",
    "open_first_available",
]


@runtime_checkable
class Backend(Protocol):
    def list(self) -> List[str]: ...

    def open(self, path: str) -> bytes: ...

    def close(self) -> None: ...


def request_path(path: str, source: object) -> str:
    try:
        return normalize_logical_path(path)
    except InvalidLogicalPath as exc:
        raise AssetNotFound(
            code=exc.code,
            message=exc.message,
            context={"source": str(source), **(exc.context or {})},
        ) from exc


def _missing_source(path: Path, what: str) -> SourceNotFound:
    return SourceNotFound(
        code=E_SOURCE_NOT_FOUND,
        message=f"{what} not found: {path}",
        context={"path": str(path)},
    )


class FolderBackend:
    """Reads assets straight from a directory; nothing is cached."""

    def __init__(self, root: str | Path):
        root = Path(root)
        if not root.is_dir():
            raise _missing_source(root, "Asset directory")
        self.root = root.resolve()
        get_logger("runtime").info("Serving assets from folder %s", self.root)

    def __repr__(self) -> str:
        return f"FolderBackend({str(self.root)!r})"

    def _scan(self) -> Dict[str, Path]:
        """Logical path -> file for every servable file under the root.

        When several names normalize to one logical path the name already in
        canonical form wins, else the first in walk order.
        """
        found: Dict[str, Path] = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            for name in sorted(filenames):
                if is_ignored_name(name):
                    continue
                file_path = Path(dirpath) / name
                if not file_path.is_file():
                    continue
                try:
                    file_path.resolve().relative_to(self.root)
                    logical = relative_logical_path(self.root, file_path)
                except (ValueError, InvalidLogicalPath):
                    continue
                canonical = file_path.relative_to(self.root).as_posix() == logical
                if logical not in found or canonical:
                    found[logical] = file_path
        return found

    def list(self) -> List[str]:
        return sorted(self._scan())

    def _file_for(self, logical: str) -> Path:
        """On-disk file serving ``logical``.

        A name stored as NFD or containing a backslash only matches its
        logical path after normalization; such files are found by walking
        the tree.
        """
        if is_ignored_name(logical.rsplit("/", 1)[-1]):
            raise not_found(logical, self.root)
        try:
            direct = safe_file_path(self.root, logical)
        except ValueError:
            # Symlink escaping the root; treated as absent.
            raise not_found(logical, self.root) from None
        if direct.is_file():
            return direct
        file_path = self._scan().get(logical)
        if file_path is None:
            raise not_found(logical, self.root)
        return file_path

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        try:
            return self._file_for(normalize_logical_path(path)).is_file()
        except (AssetNotFound, InvalidLogicalPath):
            return False

    def open(self, path: str) -> bytes:
        logical = request_path(path, self.root)
        file_path = self._file_for(logical)
        try:
            return file_path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise not_found(logical, self.root) from None
        except OSError as exc:
            raise io_failure(exc, "read", file_path, asset=logical) from exc

    def close(self) -> None:
        pass


class _IndexedArchive:
    """Index lookups shared by the archive and embedded backends."""

    index: ArchiveIndex
    source: str

    def list(self) -> List[str]:
        return sorted(self.index.by_path)

    def __contains__(self, path: object) -> bool:
        return path in self.index

    def __len__(self) -> int:
        return len(self.index)

    def _entry(self, path: str):
        logical = request_path(path, self.source)
        entry = self.index.lookup(logical)
        if entry is None:
            raise not_found(logical, self.source)
        check_entry_bounds(entry, self.index.header.data_size)
        return entry


class ArchiveBackend(_IndexedArchive):
    """Serves entries from an archive file kept open for the backend's life.

    The index is read and validated up front. ``open`` seeks and reads under
    a lock held only for the read; decompression happens outside it.
    """

    def __init__(self, path: str | Path):
        path = Path(path)
        self.path = path
        self.source = str(path)
        self._lock = threading.Lock()
        try:
            self._file: Optional[BinaryIO] = path.open("rb")
        except FileNotFoundError:
            raise _missing_source(path, "Archive") from None
        except OSError as exc:
            raise io_failure(exc, "open", path) from exc
        try:
            self.index = read_index(self._file)
            check_archive_size(self.index, os.fstat(self._file.fileno()).st_size)
        except OSError as exc:
            self._file.close()
            raise io_failure(exc, "read", path) from exc
        except BaseException:
            self._file.close()
            raise
        get_logger("runtime").info(
            "Opened archive %s (%d entries, %d data bytes)",
            path,
            len(self.index),
            self.index.header.data_size,
        )

    def __repr__(self) -> str:
        return f"ArchiveBackend({self.source!r})"

    def __enter__(self) -> "ArchiveBackend":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._file is None

    def open(self, path: str) -> bytes:
        entry = self._entry(path)
        start = self.index.data_start + entry.offset
        with self._lock:
            f = self._file
            if f is None:
                raise LoaderStateError(
                    code=E_STATE,
                    message=f"{self!r} is closed",
                    context={"path": entry.path},
                )
            try:
                f.seek(start)
                raw = f.read(entry.stored_length)
            except OSError as exc:
                raise io_failure(exc, "read", self.path, asset=entry.path) from exc
        if len(raw) != entry.stored_length:
            raise corrupt(
                E_TRUNCATED,
                f"Short read for {entry.path!r}: {len(raw)}/{entry.stored_length} bytes",
                {"path": entry.path, "source": self.source},
            )
        return decode_entry(entry, raw)

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None


class EmbeddedBackend(_IndexedArchive):
    """Serves entries from archive bytes already held in memory.

    The region is borrowed, never copied; after construction only
    ``AssetNotFound`` and decode errors are possible.
    """

    def __init__(self, data: bytes | bytearray | memoryview, *, name: str = "<embedded>"):
        self._view = memoryview(data).cast("B")
        self.source = name
        header = read_header(io.BytesIO(self._view[:HEADER_SIZE]))
        index_end = HEADER_SIZE + header.index_size
        if len(self._view) < index_end:
            raise corrupt(
                E_TRUNCATED,
                f"Embedded archive {name} ends inside its index",
                {"available": len(self._view), "index_end": index_end},
            )
        self.index = parse_index_bytes(
            header, bytes(self._view[HEADER_SIZE:index_end])
        )
        check_archive_size(self.index, len(self._view))
        get_logger("runtime").info(
            "Reading embedded assets %s (%d bytes, %d entries)",
            name,
            len(self._view),
            len(self.index),
        )

    @classmethod
    def from_resource(cls, package: str, resource: str) -> "EmbeddedBackend":
        """Load archive bytes shipped as package data."""
        try:
            data = resources.files(package).joinpath(resource).read_bytes()
        except (FileNotFoundError, ModuleNotFoundError) as exc:
            raise SourceNotFound(
                code=E_SOURCE_NOT_FOUND,
                message=f"Embedded archive {package}:{resource} not found",
                context={"package": package, "resource": resource},
            ) from exc
        return cls(data, name=f"{package}:{resource}")

    def __repr__(self) -> str:
        return f"EmbeddedBackend({self.source!r})"

    def open(self, path: str) -> bytes:
        entry = self._entry(path)
        start = self.index.data_start + entry.offset
        raw = bytes(self._view[start : start + entry.stored_length])
        return decode_entry(entry, raw)

    def close(self) -> None:
        pass


def open_first_available(
    candidates: Iterable[str | Path],
    embedded: bytes | bytearray | memoryview | None = None,
) -> Backend:
    """Open the first candidate that exists, else fall back to ``embedded``.

    Directories become a :class:`FolderBackend`, files an
    :class:`ArchiveBackend`. Raises :class:`SourceNotFound` when nothing is
    available.
    """
    logger = get_logger("runtime")
    tried = []
    for candidate in candidates:
        path = Path(candidate)
        tried.append(str(path))
        if path.is_dir():
            logger.info("Asset path %s found (folder)", path)
            return FolderBackend(path)
        if path.is_file():
            logger.info("Asset path %s found (archive)", path)
            return ArchiveBackend(path)
        logger.info("Asset path %s not found", path)
    if embedded is not None:
        logger.info("External asset loading failed; using embedded assets")
        return EmbeddedBackend(embedded)
    raise SourceNotFound(
        code=E_SOURCE_NOT_FOUND,
        message="No asset source available",
        context={"candidates": tried},
    )
