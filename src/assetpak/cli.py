"""Command line interface for assetpak."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .api import (
    BuildOptions,
    build_archive,
    inspect_archive,
    plan_dry_run,
    validate_archive,
)
from .diff import diff_archives
from .errors import AssetPakError
from .logging import configure_logging, step
from .packing.compression import POLICIES
from .packing.constants import DEFAULT_COMPRESSION_LEVEL
from .reporting import REPORTERS, get_reporter, set_reporter, set_verbosity
from .runtime.backends import open_first_available
from .runtime.loader import AssetLoader


def _pack_cmd(args: argparse.Namespace) -> int:
    opts = BuildOptions(
        source_dir=args.source,
        output_path=args.output,
        compression=args.compression,
        compression_level=args.level,
        jobs=args.jobs,
        manifest_path=args.emit_manifest,
    )
    build_archive(opts)
    return 0


def _plan_cmd(args: argparse.Namespace) -> int:
    plan, plan_dict = plan_dry_run(
        args.source, compression=args.compression, jobs=args.jobs
    )
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(plan_dict, indent=2, sort_keys=True))
    else:
        rep.status(
            f"Plan summary: entries={len(plan.entries)} "
            + f"index_size={plan.index_size} data_size={plan.data_size} "
            + f"file_size={plan.file_size}"
        )
    return 0


def _inspect_cmd(args: argparse.Namespace) -> int:
    step(f"inspecting {args.archive}")
    info = inspect_archive(args.archive)
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(info, indent=2, sort_keys=True))
        return 0
    header = info["header"]
    counts = info["counts"]
    rep.status(
        "Inspect summary: "
        + f"version={header['version']} entries={counts['entries']} "
        + f"compressed={counts['compressed']} file_size={info['file_size']} "
        + f"size_ok={info['size_ok']}"
    )
    for entry in info["entries"]:
        print(
            f"{entry['path']}\t{entry['uncompressed_length']}\t"
            f"{entry['stored_length']}\t{entry['compression']}"
        )
    return 0


def _validate_cmd(args: argparse.Namespace) -> int:
    step(f"validating {args.archive}")
    issues = validate_archive(args.archive)
    rep = get_reporter()
    for issue in issues:
        rep.error(issue)
    rep.status(
        f"Validate summary: issues={len(issues)} file={args.archive.name}"
    )
    return 1 if issues else 0


def _list_cmd(args: argparse.Namespace) -> int:
    with AssetLoader(open_first_available([args.source]), cache=False) as loader:
        for path in loader.list(args.prefix):
            print(path)
    return 0


def _cat_cmd(args: argparse.Namespace) -> int:
    with AssetLoader(open_first_available([args.source]), cache=False) as loader:
        data = loader.load(args.path)
    out = sys.stdout.buffer
    out.write(data)
    out.flush()
    return 0


def _diff_cmd(args: argparse.Namespace) -> int:
    step("diffing archives")
    result = diff_archives(args.left, args.right)
    rep = get_reporter()
    rep.section("Diff results")
    summary = result.get("summary", {})
    diff_count = summary.get("count")
    rep.status(
        "Diff summary: count="
        + f"{diff_count} left={args.left.name} right={args.right.name}",
    )
    # Full machine-readable diff still goes to stdout.
    print(json.dumps(result, indent=2, sort_keys=True))
    return 1 if diff_count else 0


def _add_compression_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--compression",
        choices=POLICIES,
        default="auto",
        help="Per-entry compression policy (default: auto)",
    )
    p.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Worker threads for read + compress (output is unchanged)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="assetpak", description="Game asset archive packer and reader"
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=sorted(REPORTERS),
        default="plain",
        help="Select reporter backend: plain (default), rich, json (JSONL events), silent",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    pk = sub.add_parser("pack", help="Pack a directory into an archive")
    pk.add_argument("source", type=Path)
    pk.add_argument("output", type=Path)
    _add_compression_args(pk)
    pk.add_argument(
        "--level",
        type=int,
        choices=range(10),
        metavar="{0..9}",
        default=DEFAULT_COMPRESSION_LEVEL,
        help="Compression level (default: %(default)s)",
    )
    pk.add_argument(
        "--emit-manifest",
        dest="emit_manifest",
        type=Path,
        help="Optional path to write manifest JSON (opt-in)",
    )
    pk.set_defaults(func=_pack_cmd)

    pl = sub.add_parser("plan", help="Compute archive layout (dry run, no write)")
    pl.add_argument("source", type=Path)
    _add_compression_args(pl)
    pl.add_argument("--json", action="store_true", help="Emit JSON plan")
    pl.set_defaults(func=_plan_cmd)

    i = sub.add_parser("inspect", help="Inspect an archive")
    i.add_argument("archive", type=Path)
    i.add_argument("--json", action="store_true", help="Emit JSON report")
    i.set_defaults(func=_inspect_cmd)

    v = sub.add_parser("validate", help="Validate an archive (decodes every entry)")
    v.add_argument("archive", type=Path)
    v.set_defaults(func=_validate_cmd)

    ls = sub.add_parser("list", help="List assets in a folder or archive")
    ls.add_argument("source", type=Path)
    ls.add_argument("prefix", nargs="?", default="")
    ls.set_defaults(func=_list_cmd)

    c = sub.add_parser("cat", help="Write one asset's bytes to stdout")
    c.add_argument("source", type=Path)
    c.add_argument("path")
    c.set_defaults(func=_cat_cmd)

    d = sub.add_parser("diff", help="Diff two archives")
    d.add_argument("left", type=Path)
    d.add_argument("right", type=Path)
    d.set_defaults(func=_diff_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    requested = args.reporter
    if requested == "rich" and not sys.stderr.isatty():
        requested = "plain"
    set_reporter(REPORTERS[requested]())
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    rep = get_reporter()
    try:
        return args.func(args)
    except AssetPakError as exc:
        rep.error(
            str(exc), kind=type(exc).__name__, code=exc.code, context=exc.context or {}
        )
        return 2
    finally:
        rep.flush()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
