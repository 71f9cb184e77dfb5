import pytest

from assetpak.packing.constants import COMPRESSION_NONE
from assetpak.runtime.backends import ArchiveBackend, EmbeddedBackend
from tree_helper import EXAMPLE_TREE, MIXED_TREE, make_tree, pack


@pytest.mark.parametrize("policy", ["auto", "none", "zlib", "lzma"])
def test_roundtrip_every_entry(tmp_path, policy):
    src = make_tree(tmp_path / "src", MIXED_TREE)
    out = pack(src, tmp_path / "assets.pak", compression=policy)
    with ArchiveBackend(out) as backend:
        assert backend.list() == sorted(MIXED_TREE)
        for rel, data in MIXED_TREE.items():
            assert backend.open(rel) == data
        kinds = {e.compression for e in backend.index}
    if policy == "none":
        assert kinds == {COMPRESSION_NONE}
    else:
        assert kinds - {COMPRESSION_NONE}, "expected some compressed entries"


def test_auto_policy_keeps_precompressed_raw(tmp_path):
    src = make_tree(tmp_path / "src", MIXED_TREE)
    out = pack(src, tmp_path / "assets.pak")
    with ArchiveBackend(out) as backend:
        assert backend.index.lookup("textures/hero.png").compression == COMPRESSION_NONE
        assert backend.index.lookup("readme.txt").compression != COMPRESSION_NONE
        assert backend.index.lookup("empty.txt").stored_length == 0
        assert backend.open("empty.txt") == b""


def test_example_scenario(tmp_path):
    src = make_tree(tmp_path / "src", EXAMPLE_TREE)
    out = pack(src, tmp_path / "example.pak")
    backend = EmbeddedBackend(out.read_bytes())
    assert backend.list() == ["a.txt", "dir/b.bin"]
    assert backend.open("a.txt") == b"hello"
    assert backend.open("dir/b.bin") == EXAMPLE_TREE["dir/b.bin"]
    assert backend.open("dir\\b.bin") == EXAMPLE_TREE["dir/b.bin"]


def test_junk_files_are_not_packed(tmp_path):
    src = make_tree(
        tmp_path / "src",
        {"a.txt": b"a", ".DS_Store": b"junk", "dir/Thumbs.db": b"junk"},
    )
    out = pack(src, tmp_path / "a.pak")
    with ArchiveBackend(out) as backend:
        assert backend.list() == ["a.txt"]


def test_output_inside_source_is_not_packed(tmp_path):
    src = make_tree(tmp_path / "src", EXAMPLE_TREE)
    out = src / "build" / "self.pak"
    pack(src, out)
    pack(src, out)  # second run sees the first archive on disk
    with ArchiveBackend(out) as backend:
        assert backend.list() == ["a.txt", "dir/b.bin"]


def test_empty_source_tree(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    out = pack(src, tmp_path / "empty.pak")
    assert len(out.read_bytes()) == 32
    with ArchiveBackend(out) as backend:
        assert backend.list() == []


def test_pack_directory_shorthand(tmp_path):
    from assetpak.api import pack_directory

    src = make_tree(tmp_path / "src", EXAMPLE_TREE)
    result = pack_directory(src, tmp_path / "out.pak", compression="zlib", jobs=2)
    assert result.entry_count == 2
    assert result.output_file.stat().st_size == result.bytes_written
    with ArchiveBackend(result.output_file) as backend:
        assert backend.open("a.txt") == b"hello"
