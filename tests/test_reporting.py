import io
import json
import logging

from assetpak.logging import configure_logging, get_logger
from assetpak.reporting import (
    JsonLinesReporter,
    PlainReporter,
    TaskStatus,
    format_bytes,
    format_stats,
    set_reporter,
    set_verbosity,
    task,
)


def test_format_helpers():
    assert format_bytes(512) == "512 B"
    assert format_bytes(1536) == "1.5 KiB"
    assert format_bytes(3 * 1024 * 1024) == "3.0 MiB"
    assert format_stats({"entries": 2, "bytes": 2048, "other": 1}) == (
        " [entries=2 bytes=2.0 KiB]"
    )
    assert format_stats({}) == ""


def test_plain_reporter_task_lines():
    out = io.StringIO()
    rep = PlainReporter(stream=out, use_color=False)
    rep.start_task("collect.entries", "Collect entries", total=2)
    rep.advance("collect.entries", current_item="a.txt")
    rep.advance("collect.entries", current_item="b.txt")
    rep.end_task("collect.entries", entries=2)
    rep.start_task("write.data", "Entry data", total=1)
    rep.end_task("write.data", TaskStatus.FAILED)
    lines = out.getvalue().splitlines()
    assert len(lines) == 2  # per-item lines need -v
    assert lines[0].startswith(" ✔ Collect entries 2/2")
    assert lines[0].endswith("[entries=2]")
    assert lines[1].startswith(" ✖ Entry data 0/1")


def test_plain_reporter_verbose_items():
    out = io.StringIO()
    rep = PlainReporter(stream=out, use_color=False)
    set_verbosity(1)
    rep.start_task("t", "Index", total=1)
    rep.advance("t", current_item="dir/b.bin")
    rep.verbose("detail", level=2)
    rep.verbose("shown", level=1)
    assert "   · Index: dir/b.bin (1/1)" in out.getvalue()
    assert "VERB1: shown" in out.getvalue()
    assert "detail" not in out.getvalue()


def test_jsonl_reporter_summary_records():
    out = io.StringIO()
    rep = JsonLinesReporter(stream=out)
    rep.status("Pack summary: file=a.pak bytes=64 entries=2")
    rep.status("Not a summary: x=1")
    events = [json.loads(line) for line in out.getvalue().splitlines()]
    summary = events[0]
    assert summary["event"] == "summary"
    assert summary["summary_type"] == "pack"
    assert (summary["file"], summary["bytes"], summary["entries"]) == ("a.pak", "64", "2")
    assert [e["event"] for e in events[1:]] == ["status", "status"]


def test_task_context_marks_failure():
    out = io.StringIO()
    set_reporter(JsonLinesReporter(stream=out))
    try:
        with task("plan.layout", "Compute layout plan"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    end = json.loads(out.getvalue().splitlines()[-1])
    assert end["event"] == "task_end"
    assert end["status"] == "failed"


def test_logging_routes_into_reporter():
    out = io.StringIO()
    set_reporter(PlainReporter(stream=out, use_color=False))
    configure_logging(0)
    get_logger("packing").warning("Skipping %s", "x.txt")
    get_logger("runtime").info("hidden without -v")
    assert out.getvalue() == "WARN: Skipping x.txt\n"
    assert get_logger().level == logging.INFO
