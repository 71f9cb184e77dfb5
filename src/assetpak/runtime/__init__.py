from .asset_id import AssetId, AssetRef
from .backends import (
    Backend,
    FolderBackend,
    ArchiveBackend,
    EmbeddedBackend,
    open_first_available,
)
from .cache import DecodeCache
from .loader import AssetLoader
from .config import LoaderConfig, load_config, open_backend, open_loader

__all__ = [
    "AssetId",
    "AssetRef",
    "Backend",
    "FolderBackend",
    "ArchiveBackend",
    "EmbeddedBackend",
    "open_first_available",
    "DecodeCache",
    "AssetLoader",
    "LoaderConfig",
    "load_config",
    "open_backend",
    "open_loader",
]
