from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from rpgle_lint.models import SEVERITIES, LintConfig, Rule
from rpgle_lint.rules import RuleRegistry, default_registry
from rpgle_lint.rules.base import pattern_matcher

REPORT_FORMATS = ("text", "structured")

CONFIG_KEYS = {
    "rule_set",
    "severity_threshold",
    "format",
    "output",
    "disabled_rules",
    "workers",
    "include_exts",
    "exclude_dirs",
}

OVERRIDE_KEYS = {
    "id",
    "severity",
    "message",
    "suggested_fix",
    "enabled",
    "pattern",
    "ignore_case",
    "source",
}
NEW_RULE_KEYS = OVERRIDE_KEYS | {"category", "scope", "include_sql"}
NEW_RULE_REQUIRED = ("id", "category", "severity", "message", "pattern")
PATTERN_SOURCES = ("code", "text")
PATTERN_SCOPES = ("statement", "directive")


class ConfigError(ValueError):
    pass


def load_config(path: str | Path) -> LintConfig:
    raw = _read_json(path, "Config")
    if not isinstance(raw, dict):
        raise ConfigError("Config must be a JSON object")

    unknown = sorted(set(raw) - CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    defaults = LintConfig()
    threshold = str(raw.get("severity_threshold", defaults.severity_threshold))
    if threshold not in SEVERITIES:
        raise ConfigError(f"'severity_threshold' must be one of: {', '.join(SEVERITIES)}")

    report_format = str(raw.get("format", defaults.format))
    if report_format not in REPORT_FORMATS:
        raise ConfigError(f"'format' must be one of: {', '.join(REPORT_FORMATS)}")

    workers = raw.get("workers", defaults.workers)
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise ConfigError("'workers' must be a positive integer")

    include_exts = raw.get("include_exts")
    exclude_dirs = raw.get("exclude_dirs")

    return LintConfig(
        rule_set=_optional_str(raw.get("rule_set")),
        severity_threshold=threshold,
        format=report_format,
        output=_optional_str(raw.get("output")),
        disabled_rules=tuple(_ensure_string_list(raw.get("disabled_rules"), "disabled_rules")),
        workers=workers,
        include_exts=(
            tuple(ext.lower() for ext in _ensure_string_list(include_exts, "include_exts"))
            if include_exts is not None
            else defaults.include_exts
        ),
        exclude_dirs=(
            tuple(_ensure_string_list(exclude_dirs, "exclude_dirs"))
            if exclude_dirs is not None
            else defaults.exclude_dirs
        ),
    )


def load_rule_set(path: str | Path, base: RuleRegistry | None = None) -> RuleRegistry:
    """Applies a JSON rule-set file on top of ``base`` (the built-in catalogue by default).

    Entries naming a known rule override its severity, message, fix or pattern,
    or disable it with ``"enabled": false``; other entries add pattern rules.
    """
    registry = default_registry() if base is None else base
    raw = _read_json(path, "Rule-set")
    if not isinstance(raw, list):
        raise ConfigError("Rule-set file must contain a list")

    changed: list[Rule] = []
    disabled: list[str] = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict):
            raise ConfigError("Each rule-set entry must be an object")
        rule_id = str(item.get("id", "")).strip()
        if not rule_id:
            raise ConfigError("Rule-set entry is missing 'id'")
        if rule_id in seen:
            raise ConfigError(f"Rule {rule_id} appears more than once in the rule set")
        seen.add(rule_id)

        existing = registry.get(rule_id)
        rule = _override_rule(existing, item) if existing else _new_rule(rule_id, item)
        if item.get("enabled", True) is False:
            disabled.append(rule_id)
        else:
            changed.append(rule)

    return registry.with_rules(changed).without(disabled)


def _override_rule(rule: Rule, item: dict[str, Any]) -> Rule:
    unknown = sorted(set(item) - OVERRIDE_KEYS)
    if unknown:
        raise ConfigError(f"Rule {rule.id} has unknown keys: {', '.join(unknown)}")

    changes: dict[str, Any] = {}
    if "severity" in item:
        changes["severity"] = _severity(rule.id, item["severity"])
    for key in ("message", "suggested_fix"):
        if key in item:
            changes[key] = str(item[key])
    if "pattern" in item:
        if rule.scope == "diagnostic":
            raise ConfigError(f"Rule {rule.id} is reported by the scanner and takes no pattern")
        changes["matcher"] = _matcher(rule.id, item)
    elif "ignore_case" in item or "source" in item:
        raise ConfigError(f"Rule {rule.id}: 'ignore_case' and 'source' need a 'pattern'")
    return rule.with_changes(**changes)


def _new_rule(rule_id: str, item: dict[str, Any]) -> Rule:
    unknown = sorted(set(item) - NEW_RULE_KEYS)
    if unknown:
        raise ConfigError(f"Rule {rule_id} has unknown keys: {', '.join(unknown)}")
    missing = [key for key in NEW_RULE_REQUIRED if key not in item]
    if missing:
        raise ConfigError(f"Rule {rule_id} is missing keys: {', '.join(missing)}")

    scope = str(item.get("scope", "statement"))
    if scope not in PATTERN_SCOPES:
        raise ConfigError(f"Rule {rule_id}: 'scope' must be one of: {', '.join(PATTERN_SCOPES)}")

    return Rule(
        id=rule_id,
        category=str(item["category"]),
        severity=_severity(rule_id, item["severity"]),
        message=str(item["message"]),
        suggested_fix=str(item.get("suggested_fix", "")),
        matcher=_matcher(rule_id, item),
        scope=scope,
        include_sql=bool(item.get("include_sql", False)),
    )


def _matcher(rule_id: str, item: dict[str, Any]):
    source = str(item.get("source", "code"))
    if source not in PATTERN_SOURCES:
        raise ConfigError(f"Rule {rule_id}: 'source' must be one of: {', '.join(PATTERN_SOURCES)}")
    try:
        return pattern_matcher(
            str(item["pattern"]),
            source=source,
            ignore_case=bool(item.get("ignore_case", True)),
        )
    except re.error as exc:
        raise ConfigError(f"Rule {rule_id} has an invalid pattern: {exc}") from exc


def _severity(rule_id: str, value: object) -> str:
    severity = str(value).strip().lower()
    if severity not in SEVERITIES:
        raise ConfigError(
            f"Rule {rule_id} has invalid severity '{value}' (expected: {', '.join(SEVERITIES)})"
        )
    return severity


def _read_json(path: str | Path, label: str) -> Any:
    json_path = Path(path)
    if not json_path.exists():
        raise ConfigError(f"{label} file not found: {json_path}")
    try:
        with json_path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{label} file is not valid JSON: {json_path}: {exc}") from exc


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _ensure_string_list(value: object, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of strings")
    return [str(item) for item in value]
