"""Binary layout constants for the asset archive format (version 1).

Layout (little endian)::

    header   HEADER_FORMAT            magic, version, flags, entry_count,
                                      index_size, data_size
    index    entry_count records      INDEX_RECORD_FORMAT + UTF-8 path bytes
    data     data_size bytes          entries back to back, path order
"""

from __future__ import annotations

import struct

MAGIC = b"ASSETPAK"
FORMAT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({FORMAT_VERSION})

HEADER_FORMAT = "<8sHHIQQ"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 32

# path_length, compression, reserved, offset, stored_length,
# uncompressed_length, crc32
INDEX_RECORD_FORMAT = "<HBBQQQI"
INDEX_RECORD_SIZE = struct.calcsize(INDEX_RECORD_FORMAT)  # 32

MAX_PATH_BYTES = 0xFFFF
MAX_ENTRY_COUNT = 0xFFFFFFFF

COMPRESSION_NONE = 0
COMPRESSION_ZLIB = 1
COMPRESSION_LZMA = 2

COMPRESSION_NAMES = {
    COMPRESSION_NONE: "none",
    COMPRESSION_ZLIB: "zlib",
    COMPRESSION_LZMA: "lzma",
}
COMPRESSION_KINDS = {name: kind for kind, name in COMPRESSION_NAMES.items()}

DEFAULT_COMPRESSION_LEVEL = 6

# Formats that are already compressed; deflating them again wastes time.
PRECOMPRESSED_EXTENSIONS = frozenset(
    {
        ".png",
        ".jpg",
        ".jpeg",
        ".webp",
        ".gif",
        ".ktx2",
        ".basis",
        ".ogg",
        ".oga",
        ".opus",
        ".mp3",
        ".m4a",
        ".aac",
        ".flac",
        ".mp4",
        ".webm",
        ".zip",
        ".gz",
        ".xz",
        ".bz2",
        ".7z",
        ".zst",
        ".woff",
        ".woff2",
    }
)

# Formats known to shrink well under zlib.
COMPRESSIBLE_EXTENSIONS = frozenset(
    {
        ".txt",
        ".md",
        ".json",
        ".yaml",
        ".yml",
        ".toml",
        ".ini",
        ".cfg",
        ".xml",
        ".csv",
        ".svg",
        ".html",
        ".css",
        ".js",
        ".lua",
        ".py",
        ".glsl",
        ".wgsl",
        ".hlsl",
        ".vert",
        ".frag",
        ".comp",
        ".obj",
        ".mtl",
        ".gltf",
        ".fnt",
        ".atlas",
        ".ttf",
        ".otf",
        ".wav",
        ".bmp",
        ".tga",
        ".dds",
        ".ron",
        ".tmx",
        ".tsx",
    }
)

__all__ = [
    "MAGIC",
    "FORMAT_VERSION",
    "SUPPORTED_VERSIONS",
    "HEADER_FORMAT",
    "HEADER_SIZE",
    "INDEX_RECORD_FORMAT",
    "INDEX_RECORD_SIZE",
    "MAX_PATH_BYTES",
    "MAX_ENTRY_COUNT",
    "COMPRESSION_NONE",
    "COMPRESSION_ZLIB",
    "COMPRESSION_LZMA",
    "COMPRESSION_NAMES",
    "COMPRESSION_KINDS",
    "DEFAULT_COMPRESSION_LEVEL",
    "PRECOMPRESSED_EXTENSIONS",
    "COMPRESSIBLE_EXTENSIONS",
]
