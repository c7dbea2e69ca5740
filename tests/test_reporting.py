import json
from pathlib import Path

import pytest

from rpgle_lint.models import FileResult, Finding, LintRun
from rpgle_lint.reporting import (
    filter_run,
    render_structured,
    render_text,
    sort_findings,
    summarize,
    write_report,
)


def _finding(rule_id: str, line: int, severity: str = "error", category: str = "expressions") -> Finding:
    return Finding(
        rule_id=rule_id,
        line=line,
        excerpt="x == 1",
        message=f"{rule_id} message",
        suggested_fix="fix it",
        severity=severity,
        category=category,
    )


def _run() -> LintRun:
    return LintRun(
        files=(
            FileResult(
                path="src/order.rpgle",
                findings=(
                    _finding("expr.not-equal", 7),
                    _finding("expr.double-equals", 7),
                    _finding("bif.occur-two-args", 2, severity="warning", category="builtins"),
                ),
            ),
            FileResult(path="src/clean.rpgle", findings=()),
        )
    )


def test_sort_findings_orders_by_line_then_rule_id():
    ordered = sort_findings(_run().files[0].findings)

    assert [(item.line, item.rule_id) for item in ordered] == [
        (2, "bif.occur-two-args"),
        (7, "expr.double-equals"),
        (7, "expr.not-equal"),
    ]


def test_render_text_lines_and_summary():
    text = render_text(_run())

    lines = text.splitlines()
    assert lines[0] == (
        "src/order.rpgle:2: [bif.occur-two-args] bif.occur-two-args message (suggested: fix it)"
    )
    assert lines[1].startswith("src/order.rpgle:7: [expr.double-equals]")
    assert lines[2].startswith("src/order.rpgle:7: [expr.not-equal]")
    assert lines[3] == ""
    assert lines[4] == "3 finding(s) in 2 file(s): 2 error(s), 1 warning(s)"
    assert lines[5:] == ["  builtins: 1", "  expressions: 2"]


def test_render_text_without_findings_is_only_a_summary():
    text = render_text(LintRun(files=(FileResult(path="a.rpgle", findings=()),)))

    assert text == "0 finding(s) in 1 file(s): 0 error(s), 0 warning(s)\n"


def test_structured_report_is_deterministic():
    first = render_structured(_run())
    second = render_structured(_run())

    assert first == second
    payload = json.loads(first)
    assert [item["path"] for item in payload["files"]] == ["src/order.rpgle", "src/clean.rpgle"]
    assert [item["line"] for item in payload["files"][0]["findings"]] == [2, 7, 7]
    assert payload["summary"]["by_category"] == {"builtins": 1, "expressions": 2}
    assert payload["summary"]["by_rule"]["expr.not-equal"] == 1
    assert "generated_at" not in payload["summary"]


def test_filter_run_applies_threshold():
    run = _run()

    errors_only = filter_run(run, "error")

    assert [item.rule_id for item in errors_only.files[0].findings] == [
        "expr.not-equal",
        "expr.double-equals",
    ]
    assert filter_run(run, "warning") == run
    assert summarize(errors_only)["warnings"] == 0


def test_filter_run_rejects_unknown_threshold():
    with pytest.raises(ValueError):
        filter_run(_run(), "info")


def test_write_report_to_file_and_stdout(tmp_path: Path, capsys):
    target = tmp_path / "out" / "report.txt"

    write_report("hello\n", target)
    write_report("world\n")

    assert target.read_text(encoding="utf-8") == "hello\n"
    assert capsys.readouterr().out == "world\n"
