"""High-level API for assetpak.

Packing entry points (build, dry-run plan, inspect, validate) plus the
runtime loader factory re-exported for convenience.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .errors import io_failure
from .logging import get_logger
from .manifest import build_manifest
from .packing.constants import DEFAULT_COMPRESSION_LEVEL
from .packing.inspector import (
    archive_digest,
    inspect_archive as _inspect_archive_impl,
    validate_archive as _validate_archive_impl,
)
from .packing.planner import (
    ArchivePlan,
    collect_entries,
    compute_archive_plan,
    to_plan_dict,
)
from .packing.writer import write_archive
from .reporting import get_reporter, task
from .runtime.config import LoaderConfig, load_config, open_loader
from .runtime.loader import AssetLoader

__all__ = [
    "BuildOptions",
    "BuildResult",
    "build_archive",
    "pack_directory",
    "plan_dry_run",
    "inspect_archive",
    "validate_archive",
    "ArchivePlan",
    "AssetLoader",
    "LoaderConfig",
    "load_config",
    "open_loader",
]


@dataclass(slots=True)
class BuildOptions:
    source_dir: Path
    output_path: Path
    # auto | none | zlib | lzma
    compression: str = "auto"
    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    # Worker threads for read + compress; output is identical for any value
    jobs: int = 1
    # Optional path; when provided a manifest JSON is emitted alongside
    manifest_path: Path | None = None


@dataclass(slots=True)
class BuildResult:
    output_file: Path
    bytes_written: int
    entry_count: int
    skipped: List[str] = field(default_factory=list)


def build_archive(options: BuildOptions) -> BuildResult:
    """Pack ``options.source_dir`` into a single archive file.

    Any failure aborts the build and leaves no partial output behind.
    """
    logger = get_logger()
    rep = get_reporter()
    source_dir = Path(options.source_dir)
    output_path = Path(options.output_path)
    # An output placed inside the source tree must not pack itself.
    exclude = [output_path]
    if options.manifest_path is not None:
        exclude.append(Path(options.manifest_path))
    build = collect_entries(
        source_dir,
        compression=options.compression,
        compression_level=options.compression_level,
        jobs=options.jobs,
        exclude=exclude,
    )
    with task("plan.layout", "Compute layout plan"):
        plan = compute_archive_plan(build)
    compressed = sum(1 for e in build.entries if e.compression)
    rep.status(
        "Plan summary: "
        + f"entries={len(plan.entries)} compressed={compressed} "
        + f"index_size={plan.index_size} data_size={plan.data_size} "
        + f"file_size={plan.file_size}"
    )
    bytes_written = write_archive(build, plan, output_path)
    if options.manifest_path is not None:
        with task("manifest.emit", "Emit manifest"):
            try:
                digest = archive_digest(output_path.read_bytes())
            except OSError as exc:
                raise io_failure(exc, "read", output_path) from exc
            build_manifest(
                plan,
                Path(options.manifest_path),
                source_dir=source_dir.as_posix(),
                compression_policy=options.compression,
                archive_crc32=digest["crc32"],
                archive_sha256=digest["sha256"],
                skipped=build.skipped,
            )
            logger.info(
                "Emitted manifest: %s (crc32=%s sha256=%s)",
                Path(options.manifest_path).name,
                digest["crc32"],
                digest["sha256"][:12],
            )
            rep.status(
                "Manifest summary: "
                + f"crc32={digest['crc32']} sha256={digest['sha256'][:12]}"
            )
    logger.info(
        "Built archive: %s (%d bytes, entries=%d, %d bytes before compression)",
        output_path.name,
        bytes_written,
        len(plan.entries),
        build.total_uncompressed,
    )
    rep.status(
        "Pack summary: file="
        + f"{output_path.name} bytes={bytes_written} entries={len(plan.entries)} "
        + f"stored={build.total_stored} uncompressed={build.total_uncompressed} "
        + f"skipped={len(build.skipped)}"
    )
    return BuildResult(
        output_file=output_path,
        bytes_written=bytes_written,
        entry_count=len(plan.entries),
        skipped=list(build.skipped),
    )


def pack_directory(
    source_dir: str | Path, output_path: str | Path, **options
) -> BuildResult:
    """Shorthand for :func:`build_archive` with keyword options."""
    return build_archive(
        BuildOptions(source_dir=Path(source_dir), output_path=Path(output_path), **options)
    )


def plan_dry_run(
    source_dir: str | Path,
    compression: str = "auto",
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    jobs: int = 1,
) -> tuple[ArchivePlan, dict]:
    """Compute the archive layout for a directory without writing output.

    Returns ``(ArchivePlan, plan_dict)`` where ``plan_dict`` is
    JSON-serialisable.
    """
    build = collect_entries(
        Path(source_dir),
        compression=compression,
        compression_level=compression_level,
        jobs=jobs,
    )
    plan = compute_archive_plan(build)
    return plan, to_plan_dict(plan)


def inspect_archive(path: str | Path) -> dict:
    return _inspect_archive_impl(path)


def validate_archive(path: str | Path) -> list[str]:
    return _validate_archive_impl(path)
