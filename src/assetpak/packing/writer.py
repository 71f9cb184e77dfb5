"""Binary writer emitting an archive from a BuildPlan + ArchivePlan.

The writer consumes the immutable :class:`ArchivePlan`; every section's
position and size is checked against it, so the plan stays the single source
of truth for offsets.

Output is atomic: bytes go to a temporary file next to the destination which
replaces the destination only after a successful flush + fsync. On any
failure the temporary file is removed and the destination is untouched.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator
import os
import tempfile

from ..errors import io_failure
from ..logging import get_logger, section
from ..reporting import TaskStatus, get_reporter
from .packers import IndexEntry, pack_header, pack_index_record
from .planner import ArchivePlan, BuildPlan

__all__ = ["write_archive", "atomic_output"]


@contextmanager
def atomic_output(output_path: Path) -> Iterator[BinaryIO]:
    """Yield a temp file that is renamed over ``output_path`` on success."""
    output_path = Path(output_path)
    parent = output_path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=parent
        )
    except OSError as exc:
        raise io_failure(exc, "create", output_path) from exc
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, output_path)
    except BaseException as exc:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        if isinstance(exc, OSError):
            raise io_failure(exc, "write", output_path) from exc
        raise


def _expect_position(f: BinaryIO, expected: int, label: str) -> None:
    pos = f.tell()
    if pos != expected:
        raise RuntimeError(
            f"Writer position {pos} differs from planned {label} offset {expected}"
        )


def _write_index(f: BinaryIO, plan: ArchivePlan) -> None:
    _expect_position(f, plan.index_offset, "index")
    rep = get_reporter()
    rep.start_task("write.index", "Index", total=len(plan.entries))
    for entry in plan.entries:
        f.write(pack_index_record(entry))
        rep.advance("write.index", current_item=entry.path)
    written = f.tell() - plan.index_offset
    if written != plan.index_size:
        rep.end_task("write.index", TaskStatus.FAILED)
        raise RuntimeError(
            f"Index size mismatch: plan={plan.index_size} written={written}"
        )
    rep.end_task("write.index", entries=len(plan.entries), bytes=written)


def _write_data(f: BinaryIO, build: BuildPlan, plan: ArchivePlan) -> None:
    _expect_position(f, plan.data_offset, "data")
    rep = get_reporter()
    rep.start_task("write.data", "Entry data", total=len(build.entries))
    for planned, src in zip(plan.entries, build.entries):
        _check_entry(planned, src.path, src.stored_length)
        _expect_position(f, plan.data_offset + planned.offset, planned.path)
        f.write(src.stored)
        rep.advance("write.data", current_item=planned.path)
    written = f.tell() - plan.data_offset
    if written != plan.data_size:
        rep.end_task("write.data", TaskStatus.FAILED)
        raise RuntimeError(
            f"Data size mismatch: plan={plan.data_size} written={written}"
        )
    rep.end_task("write.data", bytes=written, planned=plan.data_size)


def _check_entry(planned: IndexEntry, path: str, stored_length: int) -> None:
    if planned.path != path or planned.stored_length != stored_length:
        raise RuntimeError(
            f"Plan/build mismatch at {path!r}: planned {planned.path!r} "
            f"({planned.stored_length} bytes) vs {stored_length} bytes"
        )


def write_archive(build: BuildPlan, plan: ArchivePlan, output_path: Path) -> int:
    """Write an archive strictly following ``plan``. Returns bytes written."""
    logger = get_logger("packing")
    output_path = Path(output_path)
    if len(plan.entries) != len(build.entries):
        raise RuntimeError(
            f"Entry count mismatch: plan={len(plan.entries)} build={len(build.entries)}"
        )
    with section(f"Write archive {output_path.name}"):
        with atomic_output(output_path) as f:
            f.write(
                pack_header(
                    len(plan.entries),
                    plan.index_size,
                    plan.data_size,
                    version=plan.version,
                )
            )
            _write_index(f, plan)
            _write_data(f, build, plan)
            size = f.tell()
            if size != plan.file_size:
                raise RuntimeError(
                    f"File size mismatch vs plan: plan={plan.file_size} actual={size}"
                )
    logger.info(
        "Wrote archive %s size=%d bytes entries=%d",
        output_path.name,
        size,
        len(plan.entries),
    )
    return size
