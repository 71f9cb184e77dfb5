"""Shared helpers: build small asset trees and archives on disk."""

from __future__ import annotations

import random
from pathlib import Path

from assetpak.api import BuildOptions, build_archive

EXAMPLE_BIN = bytes(random.Random(1234).getrandbits(8) for _ in range(1000))

EXAMPLE_TREE = {
    "a.txt": b"hello",
    "dir/b.bin": EXAMPLE_BIN,
}

MIXED_TREE = {
    "readme.txt": b"asset pack readme\n" * 40,
    "config/game.json": b'{"title": "demo", "levels": [1, 2, 3]}\n' * 20,
    "textures/hero.png": bytes(range(256)) * 4,
    "textures/tiles/grass.png": b"\x89PNG" + bytes(500),
    "sounds/jump.wav": b"RIFF" + b"\x00\x01" * 2000,
    "blob.dat": bytes(random.Random(7).getrandbits(8) for _ in range(3000)),
    "empty.txt": b"",
    "unicode/caf\u00e9.txt": "caf\u00e9".encode("utf-8"),
}


def make_tree(root: Path, files: dict[str, bytes]) -> Path:
    for rel, data in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
    return root


def pack(
    root: Path, out: Path, manifest: Path | None = None, **options
) -> Path:
    build_archive(
        BuildOptions(source_dir=root, output_path=out, manifest_path=manifest, **options)
    )
    return out
