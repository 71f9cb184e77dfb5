"""Build planning: collect source files into entries, then compute the layout.

Two phases, mirroring the writer's contract:

1. :func:`collect_entries` walks the source tree, normalizes logical paths,
   reads and (optionally) compresses each file into a :class:`BuildPlan`.
2. :func:`compute_archive_plan` assigns every entry its data offset and
   computes the index and file sizes into an immutable :class:`ArchivePlan`.

The writer consumes the plan and never does its own layout math.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple
import os

from ..errors import (
    DuplicatePath,
    SourceNotFound,
    io_failure,
    E_DUPLICATE_PATH,
    E_SOURCE_NOT_FOUND,
)
from ..logging import get_logger
from ..reporting import TaskStatus, get_reporter
from ..utils.paths import is_ignored_name, relative_logical_path
from .compression import POLICIES, choose_compression, crc32
from .constants import (
    COMPRESSION_NAMES,
    COMPRESSION_NONE,
    DEFAULT_COMPRESSION_LEVEL,
    FORMAT_VERSION,
    HEADER_SIZE,
    MAX_ENTRY_COUNT,
)
from .packers import IndexEntry, index_record_size

__all__ = [
    "SourceFile",
    "PlannedEntry",
    "BuildPlan",
    "ArchivePlan",
    "discover_sources",
    "collect_entries",
    "compute_archive_plan",
    "to_plan_dict",
]


@dataclass(frozen=True, slots=True)
class SourceFile:
    logical_path: str
    file_path: Path


@dataclass(slots=True)
class PlannedEntry:
    path: str
    source: Path
    stored: bytes
    uncompressed_length: int
    compression: int
    crc32: int

    @property
    def stored_length(self) -> int:
        return len(self.stored)


@dataclass(slots=True)
class BuildPlan:
    source_dir: Path
    entries: List[PlannedEntry]
    compression_policy: str
    compression_level: int
    skipped: List[str] = field(default_factory=list)

    @property
    def total_uncompressed(self) -> int:
        return sum(e.uncompressed_length for e in self.entries)

    @property
    def total_stored(self) -> int:
        return sum(e.stored_length for e in self.entries)


@dataclass(frozen=True, slots=True)
class ArchivePlan:
    version: int
    index_offset: int
    index_size: int
    data_offset: int
    data_size: int
    file_size: int
    entries: Tuple[IndexEntry, ...]


def _check_source_dir(source_dir: Path) -> Path:
    if not source_dir.is_dir():
        raise SourceNotFound(
            code=E_SOURCE_NOT_FOUND,
            message=f"Source directory not found: {source_dir}",
            context={"path": str(source_dir)},
        )
    return source_dir.resolve()


def discover_sources(
    source_dir: Path, exclude: Iterable[Path] = ()
) -> Tuple[List[SourceFile], List[str]]:
    """Enumerate regular files under ``source_dir`` in logical path order.

    Returns ``(sources, skipped)``. Raises :class:`DuplicatePath` when two
    files normalize to the same logical path.
    """
    logger = get_logger("packing")
    root = _check_source_dir(source_dir)
    excluded = {Path(p).resolve() for p in exclude}
    by_path: Dict[str, Path] = {}
    skipped: List[str] = []

    def _on_error(exc: OSError) -> None:
        raise io_failure(exc, "scan", exc.filename or root)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for name in sorted(filenames):
            file_path = Path(dirpath) / name
            rel = file_path.relative_to(root).as_posix()
            if is_ignored_name(name):
                logger.debug("Skipping ignored file %s", rel)
                skipped.append(rel)
                continue
            if not file_path.is_file():
                skipped.append(rel)
                continue
            resolved = file_path.resolve()
            if resolved in excluded:
                continue
            try:
                resolved.relative_to(root)
            except ValueError:
                logger.warning("Skipping %s: resolves outside the source root", rel)
                skipped.append(rel)
                continue
            logical = relative_logical_path(root, file_path)
            previous = by_path.get(logical)
            if previous is not None:
                raise DuplicatePath(
                    code=E_DUPLICATE_PATH,
                    message=f"Two files map to logical path {logical!r}",
                    context={
                        "path": logical,
                        "first": str(previous),
                        "second": str(file_path),
                    },
                )
            by_path[logical] = file_path
    sources = [SourceFile(p, by_path[p]) for p in sorted(by_path)]
    return sources, skipped


def _plan_entry(src: SourceFile, policy: str, level: int) -> PlannedEntry:
    try:
        data = src.file_path.read_bytes()
    except OSError as exc:
        raise io_failure(exc, "read", src.file_path) from exc
    kind, stored = choose_compression(src.logical_path, data, policy, level)
    return PlannedEntry(
        path=src.logical_path,
        source=src.file_path,
        stored=stored,
        uncompressed_length=len(data),
        compression=kind,
        crc32=crc32(data),
    )


def collect_entries(
    source_dir: Path,
    *,
    compression: str = "auto",
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    jobs: int = 1,
    exclude: Iterable[Path] = (),
) -> BuildPlan:
    logger = get_logger("packing")
    if compression not in POLICIES:
        raise ValueError(
            f"Unknown compression policy {compression!r} (choose from {POLICIES})"
        )
    if not 0 <= compression_level <= 9:
        raise ValueError("compression_level must be within 0..9")
    sources, skipped = discover_sources(Path(source_dir), exclude)
    if len(sources) > MAX_ENTRY_COUNT:  # pragma: no cover
        raise ValueError(f"Too many entries: {len(sources)}")
    rep = get_reporter()
    rep.start_task("collect.entries", "Collect entries", total=len(sources))
    entries: List[PlannedEntry] = []
    try:
        if jobs > 1 and len(sources) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as pool:
                # map() yields in submission order, keeping output path-sorted.
                for entry in pool.map(
                    lambda s: _plan_entry(s, compression, compression_level),
                    sources,
                ):
                    entries.append(entry)
                    rep.advance("collect.entries", current_item=entry.path)
        else:
            for src in sources:
                entries.append(_plan_entry(src, compression, compression_level))
                rep.advance("collect.entries", current_item=src.logical_path)
    except Exception:
        rep.end_task("collect.entries", TaskStatus.FAILED)
        raise
    build = BuildPlan(
        source_dir=Path(source_dir),
        entries=entries,
        compression_policy=compression,
        compression_level=compression_level,
        skipped=skipped,
    )
    rep.end_task(
        "collect.entries",
        entries=len(entries),
        bytes=build.total_stored,
    )
    logger.debug(
        "Collected %d entries (%d bytes stored, %d uncompressed, %d skipped)",
        len(entries),
        build.total_stored,
        build.total_uncompressed,
        len(skipped),
    )
    return build


def compute_archive_plan(build: BuildPlan) -> ArchivePlan:
    index_size = 0
    data_cursor = 0
    planned: List[IndexEntry] = []
    for e in build.entries:
        planned.append(
            IndexEntry(
                path=e.path,
                offset=data_cursor,
                stored_length=e.stored_length,
                uncompressed_length=e.uncompressed_length,
                compression=e.compression,
                crc32=e.crc32,
            )
        )
        index_size += index_record_size(e.path)
        data_cursor += e.stored_length
    data_offset = HEADER_SIZE + index_size
    return ArchivePlan(
        version=FORMAT_VERSION,
        index_offset=HEADER_SIZE,
        index_size=index_size,
        data_offset=data_offset,
        data_size=data_cursor,
        file_size=data_offset + data_cursor,
        entries=tuple(planned),
    )


def to_plan_dict(plan: ArchivePlan) -> Dict[str, Any]:
    return {
        "version": plan.version,
        "file_size": plan.file_size,
        "regions": [
            {"name": "header", "offset": 0, "size": HEADER_SIZE},
            {"name": "index", "offset": plan.index_offset, "size": plan.index_size},
            {"name": "data", "offset": plan.data_offset, "size": plan.data_size},
        ],
        "entries": [e.to_dict() for e in plan.entries],
        "counts": {
            "entries": len(plan.entries),
            "compressed": sum(
                1 for e in plan.entries if e.compression != COMPRESSION_NONE
            ),
            "by_compression": {
                name: sum(1 for e in plan.entries if e.compression == kind)
                for kind, name in COMPRESSION_NAMES.items()
            },
        },
    }
