"""Decode cache: at most one decode per logical path, shared by all callers.

Each path maps to a :class:`concurrent.futures.Future`. The first caller for a
path becomes the owner, decodes outside any lock and resolves the future;
concurrent callers for the same path block on that future. The dictionary
lock is held for bookkeeping only, so decodes of different paths overlap.

A failed decode is not cached: waiters see the owner's exception and the
entry is dropped so the next call retries. There is no eviction.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Callable, Dict
import threading

from ..logging import get_logger

__all__ = ["DecodeCache"]


class DecodeCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Future] = {}
        self._hits = 0
        self._misses = 0
        self._decodes = 0

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for f in self._entries.values() if _resolved(f))

    def __contains__(self, path: object) -> bool:
        with self._lock:
            fut = self._entries.get(path)  # type: ignore[arg-type]
        return fut is not None and _resolved(fut)

    def get_or_load(self, path: str, load_fn: Callable[[str], bytes]) -> bytes:
        """Return the cached bytes for ``path``, decoding them on first use."""
        with self._lock:
            fut = self._entries.get(path)
            if fut is None:
                fut = Future()
                self._entries[path] = fut
                self._misses += 1
                owner = True
            else:
                self._hits += 1
                owner = False
        if not owner:
            return fut.result()
        try:
            data = load_fn(path)
        except BaseException as exc:
            with self._lock:
                if self._entries.get(path) is fut:
                    del self._entries[path]
            fut.set_exception(exc)
            raise
        with self._lock:
            self._decodes += 1
        fut.set_result(data)
        get_logger("runtime").debug("Cached %s (%d bytes)", path, len(data))
        return data

    def clear(self) -> None:
        """Drop every entry; decodes still in flight finish for their callers."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            done = [f for f in self._entries.values() if _resolved(f)]
            return {
                "hits": self._hits,
                "misses": self._misses,
                "decodes": self._decodes,
                "entries": len(done),
                "bytes": sum(len(f.result()) for f in done),
            }


def _resolved(fut: Future) -> bool:
    return fut.done() and fut.exception() is None
