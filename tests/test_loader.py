import pytest

from assetpak.errors import (
    AssetNotFound,
    InvalidLogicalPath,
    LoaderStateError,
    SourceNotFound,
)
from assetpak.runtime.asset_id import AssetRef
from assetpak.runtime.backends import (
    ArchiveBackend,
    EmbeddedBackend,
    FolderBackend,
    open_first_available,
)
from assetpak.runtime.cache import DecodeCache
from assetpak.runtime.loader import AssetLoader
from tree_helper import EXAMPLE_TREE, MIXED_TREE, make_tree, pack


@pytest.fixture()
def tree(tmp_path):
    src = make_tree(tmp_path / "src", MIXED_TREE)
    out = pack(src, tmp_path / "assets.pak")
    return src, out


def test_example_scenario_through_every_backend(tmp_path):
    src = make_tree(tmp_path / "src", EXAMPLE_TREE)
    out = pack(src, tmp_path / "example.pak")
    for backend in (
        FolderBackend(src),
        ArchiveBackend(out),
        EmbeddedBackend(out.read_bytes()),
    ):
        with AssetLoader(backend) as loader:
            assert loader.list() == ["a.txt", "dir/b.bin"]
            assert loader.load("a.txt") == b"hello"
            assert loader.load_text("a.txt") == "hello"
            assert loader.load("dir/b.bin") == EXAMPLE_TREE["dir/b.bin"]
            with pytest.raises(AssetNotFound):
                loader.load("missing")


@pytest.mark.parametrize("cache", [True, False])
def test_missing_and_invalid_paths(tree, cache):
    _, out = tree
    with AssetLoader(ArchiveBackend(out), cache=cache) as loader:
        for path in ("nope.txt", "../readme.txt", "/readme.txt", ""):
            with pytest.raises(AssetNotFound):
                loader.load(path)
            assert not loader.exists(path)
        if cache:
            assert len(loader.cache) == 0


def test_list_prefix_is_directory_based(tmp_path):
    src = make_tree(
        tmp_path / "src",
        {"tex/a.png": b"a", "tex/sub/b.png": b"b", "texture.txt": b"t"},
    )
    loader = AssetLoader(FolderBackend(src), cache=False)
    assert loader.list("tex") == ["tex/a.png", "tex/sub/b.png"]
    assert loader.list("tex/") == ["tex/a.png", "tex/sub/b.png"]
    assert loader.list("tex/sub") == ["tex/sub/b.png"]
    assert loader.list("") == ["tex/a.png", "tex/sub/b.png", "texture.txt"]
    assert loader.list("nothing") == []
    assert loader.list(".") == loader.list("/") == loader.list("")


@pytest.mark.parametrize("prefix", ["..", "../src", "/tex", "tex/../.."])
def test_list_rejects_traversal_prefix(tmp_path, prefix):
    src = make_tree(tmp_path / "src", {"tex/a.png": b"a"})
    loader = AssetLoader(FolderBackend(src), cache=False)
    with pytest.raises(InvalidLogicalPath):
        loader.list(prefix)


def test_exists(tree):
    src, out = tree
    for backend in (FolderBackend(src), EmbeddedBackend(out.read_bytes())):
        loader = AssetLoader(backend)
        assert loader.exists("readme.txt")
        assert loader.exists("textures\\hero.png")
        assert not loader.exists("textures")


def test_cache_serves_repeat_loads(tree):
    _, out = tree
    cache = DecodeCache()
    with AssetLoader(ArchiveBackend(out), cache=cache) as loader:
        first = loader.load("readme.txt")
        assert loader.load("./readme.txt") is first
        assert cache.stats()["hits"] == 1
    assert len(cache) == 0  # close() clears


def test_reload_picks_up_folder_edits(tmp_path):
    src = make_tree(tmp_path / "src", {"a.txt": b"one"})
    loader = AssetLoader(FolderBackend(src), cache=True)
    assert loader.load("a.txt") == b"one"
    (src / "a.txt").write_bytes(b"two")
    assert loader.load("a.txt") == b"one"
    loader.reload()
    assert loader.load("a.txt") == b"two"


def test_reload_can_swap_folder(tmp_path):
    a = make_tree(tmp_path / "a", {"x.txt": b"from a"})
    b = make_tree(tmp_path / "b", {"x.txt": b"from b"})
    loader = AssetLoader(FolderBackend(a))
    assert loader.load("x.txt") == b"from a"
    loader.reload(FolderBackend(b))
    assert loader.load("x.txt") == b"from b"


def test_reload_rejected_for_archives(tree):
    src, out = tree
    with AssetLoader(ArchiveBackend(out)) as loader:
        with pytest.raises(LoaderStateError):
            loader.reload()
    loader = AssetLoader(FolderBackend(src))
    with pytest.raises(LoaderStateError):
        loader.reload(EmbeddedBackend(out.read_bytes()))
    assert isinstance(loader.backend, FolderBackend)


def test_closed_archive_backend_refuses_reads(tree):
    _, out = tree
    backend = ArchiveBackend(out)
    loader = AssetLoader(backend, cache=False)
    loader.close()
    assert backend.closed
    with pytest.raises(LoaderStateError) as ei:
        loader.load("readme.txt")
    assert ei.value.code == "E_STATE"


def test_open_first_available(tree, tmp_path):
    src, out = tree
    missing = tmp_path / "missing"
    assert isinstance(open_first_available([missing, src]), FolderBackend)
    backend = open_first_available([missing, out, src])
    assert isinstance(backend, ArchiveBackend)
    backend.close()
    fallback = open_first_available([missing], embedded=out.read_bytes())
    assert isinstance(fallback, EmbeddedBackend)
    assert fallback.open("readme.txt") == MIXED_TREE["readme.txt"]
    with pytest.raises(SourceNotFound) as ei:
        open_first_available([missing])
    assert ei.value.context == {"candidates": [str(missing)]}


def test_asset_ref_requests(tree):
    _, out = tree
    ref = AssetRef.from_str("config/game.json")
    with AssetLoader(ArchiveBackend(out)) as loader:
        assert loader.load(ref) == MIXED_TREE["config/game.json"]
        assert loader.load_text(ref).startswith('{"title"')
        assert loader.exists(ref)
        assert not loader.exists(AssetRef.from_str("config/missing.json"))
        with pytest.raises(AssetNotFound):
            loader.load(AssetRef.from_path("config\\missing.json"))
