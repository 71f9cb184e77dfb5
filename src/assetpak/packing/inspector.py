"""Archive decoding and inspection utilities.

Public functions:
- read_header(stream) -> ArchiveHeader
- read_index(stream) -> ArchiveIndex
- inspect_archive(path) -> dict
- validate_archive(path) -> list[str]

The header and index are decoded from a stream without touching entry data,
so backends can serve single entries by offset + length afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, List
import hashlib
import io
import os

from ..errors import (
    AssetPakError,
    CorruptArchive,
    UnsupportedVersion,
    InvalidLogicalPath,
    corrupt,
    io_failure,
    E_BAD_INDEX,
    E_BOUNDS,
    E_MAGIC,
    E_TRUNCATED,
    E_VERSION,
)
from ..utils.paths import normalize_logical_path
from .compression import crc32, decode_entry
from .constants import (
    COMPRESSION_NAMES,
    COMPRESSION_NONE,
    HEADER_SIZE,
    INDEX_RECORD_SIZE,
    MAGIC,
    SUPPORTED_VERSIONS,
)
from .packers import (
    ArchiveHeader,
    IndexEntry,
    unpack_header,
    unpack_index_record_fixed,
)

__all__ = [
    "ArchiveIndex",
    "read_header",
    "read_index",
    "parse_index_bytes",
    "check_entry_bounds",
    "check_archive_size",
    "archive_digest",
    "inspect_archive",
    "validate_archive",
]


@dataclass(slots=True)
class ArchiveIndex:
    header: ArchiveHeader
    entries: List[IndexEntry]
    by_path: Dict[str, IndexEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.by_path:
            self.by_path = {e.path: e for e in self.entries}

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self.entries)

    def __contains__(self, path: object) -> bool:
        return path in self.by_path

    def lookup(self, path: str) -> IndexEntry | None:
        return self.by_path.get(path)

    def paths(self) -> List[str]:
        return [e.path for e in self.entries]

    @property
    def data_start(self) -> int:
        return self.header.data_start


def _read_exact(stream: BinaryIO, size: int, label: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise corrupt(
            E_TRUNCATED,
            f"Truncated archive while reading {label}: wanted {size} got {len(data)}",
            {"section": label},
        )
    return data


def read_header(stream: BinaryIO) -> ArchiveHeader:
    raw = _read_exact(stream, HEADER_SIZE, "header")
    header = unpack_header(raw)
    if header.magic != MAGIC:
        raise corrupt(
            E_MAGIC,
            "Not an asset archive (bad magic)",
            {"magic": header.magic.hex()},
        )
    if header.version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersion(
            code=E_VERSION,
            message=(
                f"Archive format version {header.version} is not supported "
                f"(supported: {sorted(SUPPORTED_VERSIONS)})"
            ),
            context={"version": header.version},
        )
    return header


def check_entry_bounds(entry: IndexEntry, data_size: int) -> None:
    if entry.offset < 0 or entry.end > data_size:
        raise corrupt(
            E_BOUNDS,
            f"Entry {entry.path!r} spans {entry.offset}+{entry.stored_length} "
            f"outside data region of {data_size} bytes",
            {
                "path": entry.path,
                "offset": entry.offset,
                "stored_length": entry.stored_length,
                "data_size": data_size,
            },
        )


def parse_index_bytes(header: ArchiveHeader, raw: bytes) -> ArchiveIndex:
    entries: List[IndexEntry] = []
    seen: set[str] = set()
    pos = 0
    for i in range(header.entry_count):
        if pos + INDEX_RECORD_SIZE > len(raw):
            raise corrupt(
                E_BAD_INDEX,
                f"Index record {i} overruns index region",
                {"record": i, "index_size": len(raw)},
            )
        path_len, kind, _reserved, offset, stored, size, crc = (
            unpack_index_record_fixed(raw[pos : pos + INDEX_RECORD_SIZE])
        )
        pos += INDEX_RECORD_SIZE
        if pos + path_len > len(raw):
            raise corrupt(
                E_BAD_INDEX,
                f"Index record {i} path overruns index region",
                {"record": i},
            )
        try:
            raw_path = raw[pos : pos + path_len].decode("utf-8")
            path = normalize_logical_path(raw_path)
        except (UnicodeDecodeError, InvalidLogicalPath) as exc:
            raise corrupt(
                E_BAD_INDEX, f"Index record {i} has an invalid path", {"record": i}
            ) from exc
        pos += path_len
        if path != raw_path:
            raise corrupt(
                E_BAD_INDEX,
                f"Index record {i} path {raw_path!r} is not normalized",
                {"record": i},
            )
        if path in seen:
            raise corrupt(
                E_BAD_INDEX, f"Duplicate index path {path!r}", {"path": path}
            )
        seen.add(path)
        if kind not in COMPRESSION_NAMES:
            raise corrupt(
                E_BAD_INDEX,
                f"Entry {path!r} uses unknown compression kind {kind}",
                {"path": path, "compression": kind},
            )
        entry = IndexEntry(path, offset, stored, size, kind, crc)
        check_entry_bounds(entry, header.data_size)
        if kind == COMPRESSION_NONE and stored != size:
            raise corrupt(
                E_BAD_INDEX,
                f"Uncompressed entry {path!r} declares {stored} stored "
                f"but {size} decoded bytes",
                {"path": path},
            )
        entries.append(entry)
    if pos != len(raw):
        raise corrupt(
            E_BAD_INDEX,
            f"Index region has {len(raw) - pos} trailing bytes",
            {"index_size": len(raw), "consumed": pos},
        )
    return ArchiveIndex(header=header, entries=entries)


def read_index(stream: BinaryIO) -> ArchiveIndex:
    """Decode header + index from ``stream`` positioned at the archive start."""
    header = read_header(stream)
    raw = _read_exact(stream, header.index_size, "index")
    return parse_index_bytes(header, raw)


def _stream_size(stream: BinaryIO) -> int:
    here = stream.tell()
    end = stream.seek(0, os.SEEK_END)
    stream.seek(here)
    return end


def check_archive_size(index: ArchiveIndex, available: int) -> None:
    if available < index.header.total_size:
        raise corrupt(
            E_TRUNCATED,
            f"Archive is {available} bytes, header declares {index.header.total_size}",
            {"available": available, "declared": index.header.total_size},
        )


def inspect_archive(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    try:
        with p.open("rb") as f:
            index = read_index(f)
            file_size = _stream_size(f)
    except OSError as exc:
        raise io_failure(exc, "inspect", p) from exc
    header = index.header
    compressed = sum(1 for e in index if e.compression != COMPRESSION_NONE)
    return {
        "file_size": file_size,
        "header": {
            "magic_ok": header.magic == MAGIC,
            "version": header.version,
            "flags": header.flags,
            "entry_count": header.entry_count,
            "index_size": header.index_size,
            "data_size": header.data_size,
            "data_start": header.data_start,
        },
        "size_ok": file_size == header.total_size,
        "counts": {
            "entries": len(index),
            "compressed": compressed,
            "stored_bytes": sum(e.stored_length for e in index),
            "uncompressed_bytes": sum(e.uncompressed_length for e in index),
        },
        "entries": [e.to_dict() for e in index],
    }


def validate_archive(path: str | Path) -> List[str]:
    """Structural + content check. Returns a list of human readable issues."""
    p = Path(path)
    issues: List[str] = []
    try:
        data = p.read_bytes()
    except OSError as exc:
        raise io_failure(exc, "read", p) from exc
    try:
        index = read_index(io.BytesIO(data))
    except (CorruptArchive, UnsupportedVersion) as exc:
        return [str(exc)]
    header = index.header
    if len(data) < header.total_size:
        issues.append(
            f"File truncated: {len(data)} bytes, header declares {header.total_size}"
        )
        return issues
    if len(data) > header.total_size:
        issues.append(f"{len(data) - header.total_size} trailing bytes after data")
    paths = index.paths()
    if paths != sorted(paths):
        issues.append("Index entries are not sorted by path")
    cursor = 0
    for entry in sorted(index, key=lambda e: e.offset):
        if entry.offset < cursor:
            issues.append(f"Entry {entry.path!r} overlaps previous entry")
        cursor = max(cursor, entry.end)
        start = header.data_start + entry.offset
        try:
            decode_entry(entry, data[start : start + entry.stored_length])
        except AssetPakError as exc:
            issues.append(str(exc))
    return issues


def archive_digest(data: bytes) -> Dict[str, Any]:
    return {
        "crc32": f"{crc32(data):08x}",
        "sha256": hashlib.sha256(data).hexdigest(),
    }
