import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from rpgle_lint.cli import main

ROOT = Path(__file__).resolve().parents[1]


def _project(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    (src / "nested").mkdir(parents=True)
    (src / "build").mkdir()
    (src / "order.rpgle").write_text("dcl-s errorInfo qualified;\n%sorta(numbers);\n", encoding="utf-8")
    (src / "nested" / "clean.sqlrpgle").write_text("dcl-s n int(10);\nn = 1;\n", encoding="utf-8")
    (src / "nested" / "notes.txt").write_text("x == 1;\n", encoding="utf-8")
    (src / "build" / "generated.rpgle").write_text("x == 1;\n", encoding="utf-8")
    return src


def test_check_reports_findings_and_exits_one(tmp_path: Path, capsys):
    src = _project(tmp_path)

    code = main(["check", str(src)])

    out = capsys.readouterr().out
    assert code == 1
    assert f"{src / 'order.rpgle'}:1: [decl.standalone-qualified]" in out
    assert f"{src / 'order.rpgle'}:2: [bif.nonexistent]" in out
    assert "generated.rpgle" not in out
    assert "notes.txt" not in out
    assert "2 finding(s) in 2 file(s)" in out


def test_check_clean_file_exits_zero(tmp_path: Path, capsys):
    src = _project(tmp_path)

    code = main(["check", str(src / "nested" / "clean.sqlrpgle")])

    assert code == 0
    assert "0 finding(s) in 1 file(s)" in capsys.readouterr().out


def test_warnings_alone_exit_zero_and_threshold_hides_them(tmp_path: Path, capsys):
    source = tmp_path / "occur.rpgle"
    source.write_text("x = %occur(salesData : 3);\n", encoding="utf-8")

    assert main(["check", str(source)]) == 0
    assert "[bif.occur-two-args]" in capsys.readouterr().out

    assert main(["check", str(source), "--severity-threshold", "error"]) == 0
    assert "[bif.occur-two-args]" not in capsys.readouterr().out


def test_disable_flag_suppresses_rule(tmp_path: Path, capsys):
    src = _project(tmp_path)

    code = main(
        [
            "check",
            str(src / "order.rpgle"),
            "--disable",
            "decl.standalone-qualified",
            "--disable",
            "bif.nonexistent",
        ]
    )

    assert code == 0
    assert "0 finding(s)" in capsys.readouterr().out


def test_structured_output_to_file_with_workers(tmp_path: Path, capsys):
    src = _project(tmp_path)
    report = tmp_path / "report.json"

    code = main(
        ["check", str(src), "--format", "structured", "--output", str(report), "--workers", "3"]
    )

    assert code == 1
    assert capsys.readouterr().out == ""
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert [Path(item["path"]).name for item in payload["files"]] == ["clean.sqlrpgle", "order.rpgle"]
    assert payload["summary"]["errors"] == 2


def test_unreadable_file_does_not_abort_the_run(tmp_path: Path, capsys):
    src = _project(tmp_path)
    binary = src / "binary.rpgle"
    binary.write_bytes(b"\xff\xfe\x00bad")

    code = main(["check", str(tmp_path / "missing.rpgle"), str(binary), str(src / "order.rpgle")])

    out = capsys.readouterr().out
    assert code == 1
    assert out.count("[input.unreadable]") == 2
    assert "[bif.nonexistent]" in out


@pytest.mark.parametrize(
    "argv",
    [
        ["check", "x.rpgle", "--config", "absent.json"],
        ["check", "x.rpgle", "--disable", "no.such-rule"],
        ["check", "x.rpgle", "--workers", "0"],
        ["check", "x.rpgle", "--format", "xml"],
        ["explain", "no.such-rule"],
    ],
)
def test_usage_and_config_errors_exit_two(argv, capsys):
    with pytest.raises(SystemExit) as exc:
        main(argv)

    assert exc.value.code == 2


def test_config_file_and_flags_are_merged(tmp_path: Path, capsys):
    src = _project(tmp_path)
    config = tmp_path / "config.json"
    config.write_text(
        json.dumps({"disabled_rules": ["bif.nonexistent"], "format": "structured"}),
        encoding="utf-8",
    )

    code = main(["check", str(src / "order.rpgle"), "--config", str(config), "--format", "text"])

    out = capsys.readouterr().out
    assert code == 1
    assert "[decl.standalone-qualified]" in out
    assert "[bif.nonexistent]" not in out


def test_rules_and_explain_commands(capsys):
    assert main(["rules"]) == 0
    listing = capsys.readouterr().out
    assert "expr.ternary" in listing
    assert "scan.unterminated-block" in listing

    assert main(["rules", "--format", "structured"]) == 0
    catalogue = json.loads(capsys.readouterr().out)
    assert any(item["id"] == "ctl.else-if" for item in catalogue)

    assert main(["explain", "decl.invalid-int-length"]) == 0
    explanation = capsys.readouterr().out
    assert "Incorrect:" in explanation
    assert "int(4)" in explanation
    assert "int(10)" in explanation


def test_console_module_entry_point(tmp_path: Path):
    source = tmp_path / "prog.rpgle"
    source.write_text("if total == 0;\nendif;\n", encoding="utf-8")

    env = os.environ.copy()
    env["PYTHONPATH"] = str(ROOT / "src")

    result = subprocess.run(
        [sys.executable, "-m", "rpgle_lint.cli", "check", str(source)],
        cwd=ROOT,
        text=True,
        capture_output=True,
        env=env,
    )

    assert result.returncode == 1
    assert "[expr.double-equals]" in result.stdout
    assert result.stderr == ""
