"""Record packers for the archive header and index.

Pure functions producing / consuming fixed binary records. Sizes are checked
against the constants module so the planner and writer can rely on them.
"""

from __future__ import annotations

from dataclasses import dataclass
import struct

from .constants import (
    MAGIC,
    FORMAT_VERSION,
    HEADER_FORMAT,
    HEADER_SIZE,
    INDEX_RECORD_FORMAT,
    INDEX_RECORD_SIZE,
    MAX_PATH_BYTES,
    COMPRESSION_NAMES,
)

__all__ = [
    "ArchiveHeader",
    "IndexEntry",
    "pack_header",
    "unpack_header",
    "pack_index_record",
    "unpack_index_record_fixed",
    "encode_path",
    "index_record_size",
]


@dataclass(frozen=True, slots=True)
class ArchiveHeader:
    magic: bytes
    version: int
    flags: int
    entry_count: int
    index_size: int
    data_size: int

    @property
    def data_start(self) -> int:
        return HEADER_SIZE + self.index_size

    @property
    def total_size(self) -> int:
        return HEADER_SIZE + self.index_size + self.data_size


@dataclass(frozen=True, slots=True)
class IndexEntry:
    path: str
    offset: int
    stored_length: int
    uncompressed_length: int
    compression: int
    crc32: int

    @property
    def end(self) -> int:
        return self.offset + self.stored_length

    @property
    def compression_name(self) -> str:
        return COMPRESSION_NAMES.get(self.compression, f"unknown({self.compression})")

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "offset": self.offset,
            "stored_length": self.stored_length,
            "uncompressed_length": self.uncompressed_length,
            "compression": self.compression_name,
            "crc32": f"{self.crc32:08x}",
        }


def pack_header(
    entry_count: int,
    index_size: int,
    data_size: int,
    *,
    version: int = FORMAT_VERSION,
    flags: int = 0,
) -> bytes:
    data = struct.pack(
        HEADER_FORMAT, MAGIC, version, flags, entry_count, index_size, data_size
    )
    if len(data) != HEADER_SIZE:  # pragma: no cover
        raise RuntimeError("Header size mismatch")
    return data


def unpack_header(raw: bytes) -> ArchiveHeader:
    return ArchiveHeader(*struct.unpack_from(HEADER_FORMAT, raw, 0))


def encode_path(path: str) -> bytes:
    data = path.encode("utf-8")
    if len(data) > MAX_PATH_BYTES:
        raise ValueError(f"Logical path too long ({len(data)} bytes): {path[:64]}...")
    return data


def index_record_size(path: str) -> int:
    return INDEX_RECORD_SIZE + len(encode_path(path))


def pack_index_record(entry: IndexEntry) -> bytes:
    path_bytes = encode_path(entry.path)
    return (
        struct.pack(
            INDEX_RECORD_FORMAT,
            len(path_bytes),
            entry.compression,
            0,
            entry.offset,
            entry.stored_length,
            entry.uncompressed_length,
            entry.crc32 & 0xFFFFFFFF,
        )
        + path_bytes
    )


def unpack_index_record_fixed(raw: bytes) -> tuple[int, int, int, int, int, int, int]:
    """Return ``(path_length, compression, reserved, offset, stored, size, crc)``."""
    return struct.unpack_from(INDEX_RECORD_FORMAT, raw, 0)
