"""Build manifest: an optional JSON summary written next to an archive.

Only produced when requested (``BuildOptions.manifest_path`` or
``assetpak pack --emit-manifest``). Keys are sorted and the entry table
follows index order, so two manifests of identical builds are identical.
"""

from __future__ import annotations

from pathlib import Path
import json
from typing import Any

from .packing.constants import COMPRESSION_NAMES, COMPRESSION_NONE
from .packing.planner import ArchivePlan, to_plan_dict

__all__ = ["build_manifest", "manifest_dict"]

MANIFEST_VERSION = 1


def manifest_dict(
    plan: ArchivePlan,
    *,
    source_dir: str | None = None,
    compression_policy: str | None = None,
    archive_crc32: str | None = None,
    archive_sha256: str | None = None,
    skipped: list[str] | None = None,
) -> dict[str, Any]:
    plan_dict = to_plan_dict(plan)
    stored = sum(e.stored_length for e in plan.entries)
    uncompressed = sum(e.uncompressed_length for e in plan.entries)
    d: dict[str, Any] = {
        "manifest_version": MANIFEST_VERSION,
        "format_version": plan.version,
        "file_size": plan.file_size,
        "regions": plan_dict["regions"],
        "counts": {
            "entries": len(plan.entries),
            "compressed": sum(
                1 for e in plan.entries if e.compression != COMPRESSION_NONE
            ),
            "stored_bytes": stored,
            "uncompressed_bytes": uncompressed,
        },
        "compression": {
            "policy": compression_policy,
            "kinds": sorted(
                {COMPRESSION_NAMES[e.compression] for e in plan.entries}
            ),
        },
        "entries": plan_dict["entries"],
        "crc32": archive_crc32,
        "sha256": archive_sha256,
    }
    if source_dir is not None:
        d["source_dir"] = source_dir
    if skipped:
        d["skipped"] = skipped
    return d


def build_manifest(plan: ArchivePlan, output_path: Path, **fields: Any) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = manifest_dict(plan, **fields)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")
    return output_path
