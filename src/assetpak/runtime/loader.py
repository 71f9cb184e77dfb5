"""Asset loader: the single access point game code uses for asset bytes.

The loader owns one backend, picked by the caller at construction, and an
optional :class:`DecodeCache`. Callers never see which backend is active.
"""

from __future__ import annotations

from typing import List, Optional
import threading

from ..errors import E_STATE, LoaderStateError
from ..logging import get_logger
from ..utils.paths import normalize_logical_path, under_prefix
from .asset_id import AssetRef
from .backends import Backend, FolderBackend, request_path
from .cache import DecodeCache

__all__ = ["AssetLoader"]


class AssetLoader:
    """Thread-safe, backend-agnostic asset access.

    ``cache`` may be ``True`` (new :class:`DecodeCache`), ``False`` (every
    call goes to the backend) or an existing cache instance.
    """

    def __init__(self, backend: Backend, *, cache: bool | DecodeCache = True):
        self._backend = backend
        self._swap_lock = threading.Lock()
        if isinstance(cache, DecodeCache):
            self._cache: Optional[DecodeCache] = cache
        else:
            self._cache = DecodeCache() if cache else None
        get_logger("runtime").info(
            "Asset loader ready: %r (cache %s)",
            backend,
            "on" if self._cache is not None else "off",
        )

    def __repr__(self) -> str:
        return f"AssetLoader({self._backend!r})"

    def __enter__(self) -> "AssetLoader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def cache(self) -> Optional[DecodeCache]:
        return self._cache

    def load(self, path: str | AssetRef) -> bytes:
        """Return the raw bytes of ``path`` (a logical path or an :class:`AssetRef`).

        Raises ``AssetNotFound`` for unknown or invalid paths and
        ``CorruptArchive`` / ``AssetCorrupt`` / ``IoFailure`` as reported by
        the backend. Errors are never retried.
        """
        backend = self._backend
        logical = request_path(_path_of(path), backend)
        if self._cache is None:
            return backend.open(logical)
        return self._cache.get_or_load(logical, backend.open)

    def load_text(self, path: str | AssetRef, encoding: str = "utf-8") -> str:
        return self.load(path).decode(encoding)

    def exists(self, path: str | AssetRef) -> bool:
        try:
            logical = normalize_logical_path(_path_of(path))
        except ValueError:
            return False
        if self._cache is not None and logical in self._cache:
            return True
        backend = self._backend
        if hasattr(backend, "__contains__"):
            return logical in backend  # type: ignore[operator]
        return logical in backend.list()

    def list(self, prefix: str = "") -> List[str]:
        """Sorted logical paths under ``prefix`` (directory semantics)."""
        if prefix.strip("/") in ("", "."):
            prefix = ""
        else:
            prefix = normalize_logical_path(prefix)
        return [p for p in self._backend.list() if under_prefix(p, prefix)]

    def reload(self, backend: Backend | None = None) -> None:
        """Drop cached bytes and optionally swap in another folder backend.

        Only folder-backed loaders can reload; archives are immutable while
        the program runs.
        """
        with self._swap_lock:
            current = self._backend
            if not isinstance(current, FolderBackend):
                raise LoaderStateError(
                    code=E_STATE,
                    message=f"reload requires a folder backend, not {current!r}",
                    context={"backend": repr(current)},
                )
            if backend is not None and not isinstance(backend, FolderBackend):
                raise LoaderStateError(
                    code=E_STATE,
                    message=f"cannot swap in non-folder backend {backend!r}",
                    context={"backend": repr(backend)},
                )
            if backend is not None and backend is not current:
                self._backend = backend
                current.close()
            if self._cache is not None:
                self._cache.clear()
        get_logger("runtime").info("Reloaded assets from %r", self._backend)

    def close(self) -> None:
        if self._cache is not None:
            self._cache.clear()
        self._backend.close()


def _path_of(path: str | AssetRef) -> str:
    return path.path if isinstance(path, AssetRef) else path
