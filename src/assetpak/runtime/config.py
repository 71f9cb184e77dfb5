"""Loader configuration (JSON/YAML) and construction of a configured loader.

A config file is a mapping::

    kind: archive            # folder | archive | embedded | auto
    source: assets.pak       # path, "package:resource", or a list for auto
    cache: true              # optional; defaults by kind

Relative paths resolve against the directory holding the config file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence
import json

import yaml

from ..errors import ConfigError, E_CONFIG, io_failure
from ..logging import get_logger
from .backends import (
    ArchiveBackend,
    Backend,
    EmbeddedBackend,
    FolderBackend,
    open_first_available,
)
from .loader import AssetLoader

__all__ = [
    "LOADER_KINDS",
    "LoaderConfig",
    "load_config",
    "open_backend",
    "open_loader",
]

LOADER_KINDS = ("folder", "archive", "embedded", "auto")

Source = str | Path | bytes | bytearray | memoryview | Sequence[str | Path]


def _config_error(message: str, **context: Any) -> ConfigError:
    return ConfigError(code=E_CONFIG, message=message, context=context or None)


@dataclass(slots=True)
class LoaderConfig:
    kind: str
    source: Source
    cache: bool | None = None
    # auto only: bytes used when no candidate path exists
    embedded: bytes | None = None

    def __post_init__(self) -> None:
        if self.kind not in LOADER_KINDS:
            raise _config_error(
                f"Unknown loader kind {self.kind!r} (choose from {LOADER_KINDS})",
                kind=self.kind,
            )
        if self.cache is not None and not isinstance(self.cache, bool):
            raise _config_error("cache must be a boolean", cache=self.cache)
        if self.kind in ("folder", "archive") and not isinstance(
            self.source, (str, Path)
        ):
            raise _config_error(
                f"{self.kind} source must be a path", source=repr(self.source)
            )
        if self.kind == "embedded" and not isinstance(
            self.source, (str, bytes, bytearray, memoryview)
        ):
            raise _config_error(
                "embedded source must be bytes or 'package:resource'",
                source=repr(self.source),
            )
        if self.kind == "auto":
            if isinstance(self.source, (str, Path)):
                self.source = [self.source]
            if not isinstance(self.source, (list, tuple)) or not self.source:
                raise _config_error(
                    "auto source must be a non-empty list of paths",
                    source=repr(self.source),
                )

    def cache_enabled(self, backend: Backend) -> bool:
        """Explicit setting wins; otherwise folders stay uncached."""
        if self.cache is not None:
            return self.cache
        return not isinstance(backend, FolderBackend)


def _resolve(base: Path, value: Any, key: str) -> Path:
    if not isinstance(value, str) or not value:
        raise _config_error(f"{key} must be a non-empty string", value=repr(value))
    p = Path(value)
    return p if p.is_absolute() else base / p


def load_config(path: str | Path) -> LoaderConfig:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise _config_error(f"Config file not found: {p}", path=str(p)) from None
    except OSError as exc:
        raise io_failure(exc, "read", p) from exc
    try:
        if p.suffix.lower() in {".yaml", ".yml"}:
            data: Any = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise _config_error(f"Cannot parse {p.name}: {exc}", path=str(p)) from exc
    if not isinstance(data, dict):
        raise _config_error("Root of loader config must be an object", path=str(p))
    unknown = sorted(set(data) - {"kind", "source", "cache"})
    if unknown:
        raise _config_error(f"Unknown config keys: {unknown}", path=str(p))
    kind = data.get("kind")
    source = data.get("source")
    base = p.parent
    if kind in ("folder", "archive"):
        source = _resolve(base, source, "source")
    elif kind == "auto":
        items = source if isinstance(source, list) else [source]
        source = [_resolve(base, item, "source") for item in items]
    elif kind == "embedded" and (not isinstance(source, str) or ":" not in source):
        raise _config_error(
            "embedded source must be 'package:resource' in config files",
            path=str(p),
        )
    get_logger("runtime").debug("Loaded loader config %s (kind=%s)", p, kind)
    return LoaderConfig(kind=kind, source=source, cache=data.get("cache"))


def open_backend(config: LoaderConfig) -> Backend:
    src = config.source
    if config.kind == "folder":
        return FolderBackend(src)  # type: ignore[arg-type]
    if config.kind == "archive":
        return ArchiveBackend(src)  # type: ignore[arg-type]
    if config.kind == "embedded":
        if isinstance(src, str):
            package, _, resource = src.partition(":")
            if not package or not resource:
                raise _config_error(
                    "embedded source must be 'package:resource'", source=src
                )
            return EmbeddedBackend.from_resource(package, resource)
        return EmbeddedBackend(src)  # type: ignore[arg-type]
    return open_first_available(src, config.embedded)  # type: ignore[arg-type]


def open_loader(config: LoaderConfig) -> AssetLoader:
    backend = open_backend(config)
    return AssetLoader(backend, cache=config.cache_enabled(backend))
