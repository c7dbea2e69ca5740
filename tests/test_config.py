import json
from pathlib import Path

import pytest

from rpgle_lint.config import ConfigError, load_config, load_rule_set
from rpgle_lint.engine import lint_source
from rpgle_lint.rules import default_registry

ROOT = Path(__file__).resolve().parents[1]


def _write(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_example_config_and_rule_set_load():
    config = load_config(ROOT / "configs" / "rpgle-lint.example.json")
    registry = load_rule_set(ROOT / "configs" / "rules.example.json")

    assert config.workers == 4
    assert config.disabled_rules == ("expr.string-plus-literals",)
    assert registry.get("bif.occur-two-args").severity == "error"
    assert "bif.not-found-sentinel" not in registry
    assert "bif.disputed-name" not in registry
    assert registry.get("local.dsply-opcode").category == "house-style"


def test_missing_keys_fall_back_to_defaults(tmp_path: Path):
    config = load_config(_write(tmp_path / "config.json", {}))

    assert config.severity_threshold == "warning"
    assert config.format == "text"
    assert config.workers == 1
    assert ".rpgle" in config.include_exts


@pytest.mark.parametrize(
    "payload",
    [
        {"severity_threshold": "info"},
        {"format": "xml"},
        {"workers": 0},
        {"workers": "4"},
        {"disabled_rules": "expr.ternary"},
        {"unknown": True},
        [],
    ],
)
def test_invalid_config_is_rejected(tmp_path: Path, payload):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path / "config.json", payload))


def test_missing_and_malformed_files_are_config_errors(tmp_path: Path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.json")
    with pytest.raises(ConfigError):
        load_config(broken)
    with pytest.raises(ConfigError):
        load_rule_set(broken)


@pytest.mark.parametrize(
    "entry",
    [
        {"id": "expr.ternary", "severity": "fatal"},
        {"id": "expr.ternary", "colour": "red"},
        {"id": "local.bad-regex", "category": "x", "severity": "error", "message": "m", "pattern": "("},
        {"id": "local.incomplete", "category": "x", "severity": "error"},
        {"id": "local.scope", "category": "x", "severity": "error", "message": "m", "pattern": "x", "scope": "block"},
        {"id": "scan.unbalanced-quote", "pattern": "'"},
        {"severity": "error"},
    ],
)
def test_invalid_rule_set_entries_are_rejected(tmp_path: Path, entry):
    with pytest.raises(ConfigError):
        load_rule_set(_write(tmp_path / "rules.json", [entry]))


def test_rule_set_adds_pattern_rule_that_runs(tmp_path: Path):
    path = _write(
        tmp_path / "rules.json",
        [
            {
                "id": "local.dsply-opcode",
                "category": "house-style",
                "severity": "warning",
                "message": "dsply is for debugging only",
                "pattern": "^\\s*dsply\\b",
            }
        ],
    )
    registry = load_rule_set(path)

    findings = lint_source("dcl-s x int(10);\ndsply 'hi';", registry)

    assert [(item.rule_id, item.line, item.severity) for item in findings] == [
        ("local.dsply-opcode", 2, "warning")
    ]


def test_rule_set_can_replace_built_in_pattern(tmp_path: Path):
    path = _write(tmp_path / "rules.json", [{"id": "expr.double-equals", "pattern": "==="}])
    registry = load_rule_set(path)

    assert registry.ids() == default_registry().ids()
    assert not lint_source("if a == b;\nendif;", registry)
    assert [item.rule_id for item in lint_source("if a === b;\nendif;", registry)] == [
        "expr.double-equals"
    ]
