import struct

import pytest

from assetpak.errors import (
    AssetCorrupt,
    CorruptArchive,
    SourceNotFound,
    UnsupportedVersion,
)
from assetpak.packing.constants import HEADER_SIZE
from assetpak.runtime.backends import ArchiveBackend, EmbeddedBackend
from tree_helper import EXAMPLE_TREE, make_tree, pack

# First index record starts right after the header; offset is at +4,
# stored_length at +12.
FIRST_OFFSET = HEADER_SIZE + 4
FIRST_STORED = HEADER_SIZE + 12


def _archive(tmp_path, **options) -> bytearray:
    src = make_tree(tmp_path / "src", EXAMPLE_TREE)
    return bytearray(pack(src, tmp_path / "good.pak", **options).read_bytes())


def _open_both(tmp_path, data: bytes):
    bad = tmp_path / "bad.pak"
    bad.write_bytes(data)
    yield lambda: ArchiveBackend(bad)
    yield lambda: EmbeddedBackend(bytes(data))


def test_entry_offset_out_of_bounds(tmp_path):
    data = _archive(tmp_path)
    struct.pack_into("<Q", data, FIRST_OFFSET, 10**9)
    for opener in _open_both(tmp_path, data):
        with pytest.raises(CorruptArchive) as ei:
            opener()
        assert ei.value.code == "E_BOUNDS"


def test_entry_length_out_of_bounds(tmp_path):
    data = _archive(tmp_path, compression="none")
    struct.pack_into("<Q", data, FIRST_STORED, 2**63)
    for opener in _open_both(tmp_path, data):
        with pytest.raises(CorruptArchive):
            opener()


def test_bad_magic(tmp_path):
    data = _archive(tmp_path)
    data[:8] = b"NOTAPAK!"
    for opener in _open_both(tmp_path, data):
        with pytest.raises(CorruptArchive) as ei:
            opener()
        assert ei.value.code == "E_MAGIC"


def test_unsupported_version(tmp_path):
    data = _archive(tmp_path)
    struct.pack_into("<H", data, 8, 99)
    for opener in _open_both(tmp_path, data):
        with pytest.raises(UnsupportedVersion) as ei:
            opener()
        assert ei.value.context == {"version": 99}


def test_truncated_archive(tmp_path):
    data = _archive(tmp_path)
    for cut in (10, HEADER_SIZE + 5, len(data) - 1):
        for opener in _open_both(tmp_path, data[:cut]):
            with pytest.raises(CorruptArchive) as ei:
                opener()
            assert ei.value.code in ("E_TRUNCATED", "E_BAD_INDEX")


def test_flipped_data_byte_fails_on_load(tmp_path):
    data = _archive(tmp_path, compression="none")
    data[-1] ^= 0xFF  # last byte of dir/b.bin
    backend = EmbeddedBackend(bytes(data))
    assert backend.open("a.txt") == b"hello"
    with pytest.raises(AssetCorrupt) as ei:
        backend.open("dir/b.bin")
    assert ei.value.code == "E_CRC_MISMATCH"
    assert isinstance(ei.value, CorruptArchive)


def test_damaged_compressed_stream(tmp_path):
    src = make_tree(tmp_path / "src", {"big.txt": b"compress me " * 500})
    data = bytearray(pack(src, tmp_path / "z.pak", compression="zlib").read_bytes())
    backend = EmbeddedBackend(bytes(data))
    start = backend.index.data_start
    data[start + 4 : start + 12] = b"\x00" * 8
    with pytest.raises(AssetCorrupt):
        EmbeddedBackend(bytes(data)).open("big.txt")


def test_missing_archive_file(tmp_path):
    with pytest.raises(SourceNotFound):
        ArchiveBackend(tmp_path / "missing.pak")
