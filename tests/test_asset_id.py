from pathlib import PureWindowsPath

from assetpak.runtime.asset_id import AssetId, AssetRef, fnv1a64


def test_fnv1a64_reference_values():
    assert fnv1a64(b"") == 0xCBF29CE484222325
    assert fnv1a64(b"a") == 0xAF63DC4C8601EC8C
    assert fnv1a64(b"foobar") == 0x85944171F73967E8


def test_asset_id_from_path_uses_forward_slashes():
    a = AssetId.from_path(PureWindowsPath("textures\\hero.png"))
    b = AssetId.from_str("textures/hero.png")
    assert a == b
    assert str(a) == f"{a.value:016x}"
    assert len(str(a)) == 16


def test_asset_ref_update_id():
    ref = AssetRef.from_str("a.txt")
    assert ref.id == AssetId.from_str("a.txt")
    ref.path = "b.txt"
    ref.update_id()
    assert ref.id == AssetId.from_str("b.txt")
    assert AssetRef().id == AssetId.from_str("")
