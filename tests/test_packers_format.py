import struct

from assetpak.packing.constants import (
    FORMAT_VERSION,
    HEADER_SIZE,
    INDEX_RECORD_SIZE,
    MAGIC,
)
from assetpak.packing.packers import (
    IndexEntry,
    index_record_size,
    pack_header,
    pack_index_record,
    unpack_header,
    unpack_index_record_fixed,
)


def test_header_layout():
    raw = pack_header(3, 120, 4096)
    assert len(raw) == HEADER_SIZE == 32
    assert raw[:8] == MAGIC
    assert struct.unpack_from("<H", raw, 8)[0] == FORMAT_VERSION
    h = unpack_header(raw)
    assert (h.entry_count, h.index_size, h.data_size) == (3, 120, 4096)
    assert h.data_start == HEADER_SIZE + 120
    assert h.total_size == HEADER_SIZE + 120 + 4096


def test_index_record_layout():
    entry = IndexEntry("dir/b.bin", 16, 10, 12, 1, 0xDEADBEEF)
    raw = pack_index_record(entry)
    assert len(raw) == index_record_size("dir/b.bin") == INDEX_RECORD_SIZE + 9
    fixed = unpack_index_record_fixed(raw[:INDEX_RECORD_SIZE])
    assert fixed == (9, 1, 0, 16, 10, 12, 0xDEADBEEF)
    assert raw[INDEX_RECORD_SIZE:] == b"dir/b.bin"
    assert entry.end == 26
    assert entry.compression_name == "zlib"
