"""Per-entry compression codecs and the packer's compression policy."""

from __future__ import annotations

from pathlib import PurePosixPath
import lzma
import zlib

from ..errors import (
    AssetCorrupt,
    E_CRC_MISMATCH,
    E_DECOMPRESS,
    E_SIZE_MISMATCH,
)
from .constants import (
    COMPRESSION_KINDS,
    COMPRESSION_LZMA,
    COMPRESSION_NONE,
    COMPRESSION_ZLIB,
    COMPRESSIBLE_EXTENSIONS,
    PRECOMPRESSED_EXTENSIONS,
)
from .packers import IndexEntry

__all__ = [
    "POLICIES",
    "compress",
    "decompress",
    "choose_compression",
    "decode_entry",
    "crc32",
]

POLICIES = ("auto", "none", "zlib", "lzma")


def crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


def compress(data: bytes, kind: int, level: int) -> bytes:
    if kind == COMPRESSION_NONE:
        return data
    if kind == COMPRESSION_ZLIB:
        return zlib.compress(data, level)
    if kind == COMPRESSION_LZMA:
        return lzma.compress(data, format=lzma.FORMAT_XZ, preset=min(level, 9))
    raise ValueError(f"Unknown compression kind {kind}")


def decompress(data: bytes, kind: int, expected_size: int) -> bytes:
    if kind == COMPRESSION_NONE:
        return data
    if kind == COMPRESSION_ZLIB:
        d = zlib.decompressobj()
        # Cap output one byte past the declared size so bombs stop early.
        out = d.decompress(data, expected_size + 1)
        if not d.eof or d.unused_data:
            raise zlib.error("stream incomplete or has trailing data")
        return out
    if kind == COMPRESSION_LZMA:
        d = lzma.LZMADecompressor(format=lzma.FORMAT_XZ)
        out = d.decompress(data, max_length=expected_size + 1)
        if not d.eof or d.unused_data:
            raise lzma.LZMAError("stream incomplete or has trailing data")
        return out
    raise ValueError(f"Unknown compression kind {kind}")


def _policy_kind(path: str, policy: str) -> int | None:
    """Codec to try for ``path``; ``None`` means try zlib and keep if smaller."""
    if policy == "none":
        return COMPRESSION_NONE
    if policy in ("zlib", "lzma"):
        return COMPRESSION_KINDS[policy]
    if policy != "auto":
        raise ValueError(f"Unknown compression policy {policy!r}")
    suffix = PurePosixPath(path).suffix.lower()
    if suffix in PRECOMPRESSED_EXTENSIONS:
        return COMPRESSION_NONE
    if suffix in COMPRESSIBLE_EXTENSIONS:
        return COMPRESSION_ZLIB
    return None


def choose_compression(
    path: str, data: bytes, policy: str, level: int
) -> tuple[int, bytes]:
    """Return ``(compression_kind, stored_bytes)`` for one entry.

    A codec whose output is not smaller than the input falls back to
    ``none`` so stored data never grows.
    """
    kind = _policy_kind(path, policy)
    if kind == COMPRESSION_NONE or not data:
        return COMPRESSION_NONE, data
    if kind is None:
        kind = COMPRESSION_ZLIB
    packed = compress(data, kind, level)
    if len(packed) >= len(data):
        return COMPRESSION_NONE, data
    return kind, packed


def decode_entry(entry: IndexEntry, raw: bytes) -> bytes:
    """Turn an entry's stored bytes back into the original file content."""
    try:
        data = decompress(raw, entry.compression, entry.uncompressed_length)
    except (zlib.error, lzma.LZMAError, ValueError) as exc:
        raise AssetCorrupt(
            code=E_DECOMPRESS,
            message=f"Failed to decompress {entry.path!r}: {exc}",
            context={"path": entry.path, "compression": entry.compression_name},
        ) from exc
    if len(data) != entry.uncompressed_length:
        raise AssetCorrupt(
            code=E_SIZE_MISMATCH,
            message=(
                f"Entry {entry.path!r} decoded to {len(data)} bytes, "
                f"expected {entry.uncompressed_length}"
            ),
            context={"path": entry.path},
        )
    actual = crc32(data)
    if actual != entry.crc32:
        raise AssetCorrupt(
            code=E_CRC_MISMATCH,
            message=f"CRC mismatch for {entry.path!r}",
            context={
                "path": entry.path,
                "expected": f"{entry.crc32:08x}",
                "actual": f"{actual:08x}",
            },
        )
    return data
