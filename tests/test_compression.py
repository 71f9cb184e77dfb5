import os

import pytest

from assetpak.errors import AssetCorrupt
from assetpak.packing.compression import choose_compression, compress, crc32, decode_entry
from assetpak.packing.constants import COMPRESSION_LZMA, COMPRESSION_NONE, COMPRESSION_ZLIB
from assetpak.packing.packers import IndexEntry

TEXT = b"the quick brown fox jumps over the lazy dog\n" * 50


def test_auto_policy_by_extension():
    assert choose_compression("a.txt", TEXT, "auto", 6)[0] == COMPRESSION_ZLIB
    assert choose_compression("a.png", TEXT, "auto", 6) == (COMPRESSION_NONE, TEXT)
    assert choose_compression("a.unknown", TEXT, "auto", 6)[0] == COMPRESSION_ZLIB


def test_incompressible_data_is_stored_raw():
    noise = os.urandom(2048)
    assert choose_compression("a.txt", noise, "lzma", 6) == (COMPRESSION_NONE, noise)
    assert choose_compression("a.txt", b"", "zlib", 6) == (COMPRESSION_NONE, b"")


def test_unknown_policy():
    with pytest.raises(ValueError):
        choose_compression("a.txt", TEXT, "brotli", 6)


@pytest.mark.parametrize("kind", [COMPRESSION_ZLIB, COMPRESSION_LZMA])
def test_decode_entry_checks(kind):
    stored = compress(TEXT, kind, 6)
    good = IndexEntry("a.txt", 0, len(stored), len(TEXT), kind, crc32(TEXT))
    assert decode_entry(good, stored) == TEXT
    short = IndexEntry("a.txt", 0, len(stored), len(TEXT) - 1, kind, crc32(TEXT))
    with pytest.raises(AssetCorrupt):
        decode_entry(short, stored)
    bad_crc = IndexEntry("a.txt", 0, len(stored), len(TEXT), kind, crc32(TEXT) ^ 1)
    with pytest.raises(AssetCorrupt) as ei:
        decode_entry(bad_crc, stored)
    assert ei.value.code == "E_CRC_MISMATCH"
    with pytest.raises(AssetCorrupt) as ei:
        decode_entry(good, stored[:-4])
    assert ei.value.code == "E_DECOMPRESS"
