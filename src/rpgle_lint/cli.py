from __future__ import annotations

import argparse
import json

from loguru import logger

from rpgle_lint.config import REPORT_FORMATS, ConfigError, load_config, load_rule_set
from rpgle_lint.logging_config import configure_logging
from rpgle_lint.models import SEVERITIES, LintConfig, Rule
from rpgle_lint.pipeline import lint_paths
from rpgle_lint.reporting import filter_run, render_structured, render_text, write_report
from rpgle_lint.rules import RuleRegistry, default_registry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpgle-lint",
        description="Static checker for common mistakes in free-format RPGLE source",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Lint RPGLE files or directories")
    check_parser.add_argument("paths", nargs="+", metavar="PATH")
    check_parser.add_argument("--config", default=None)
    check_parser.add_argument("--rule-set", default=None)
    check_parser.add_argument("--severity-threshold", choices=SEVERITIES, default=None)
    check_parser.add_argument("--format", choices=REPORT_FORMATS, default=None)
    check_parser.add_argument("--output", default=None)
    check_parser.add_argument("--disable", action="append", default=[], metavar="RULE_ID")
    check_parser.add_argument("--workers", type=int, default=None)
    check_parser.add_argument("--verbose", action="store_true")

    rules_parser = subparsers.add_parser("rules", help="List the rule catalogue")
    rules_parser.add_argument("--rule-set", default=None)
    rules_parser.add_argument("--format", choices=REPORT_FORMATS, default="text")

    explain_parser = subparsers.add_parser("explain", help="Show one rule with its examples")
    explain_parser.add_argument("rule_id", metavar="RULE_ID")
    explain_parser.add_argument("--rule-set", default=None)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if getattr(args, "verbose", False) else "WARNING", force=True)

    if args.command == "check":
        try:
            config = _resolve_config(args)
            registry = _build_registry(config.rule_set, config.disabled_rules)
        except ConfigError as exc:
            parser.error(str(exc))
            return 2

        logger.debug("Running {} rule(s) with {} worker(s)", len(registry), config.workers)
        run = lint_paths(
            args.paths,
            registry,
            workers=config.workers,
            include_exts=config.include_exts,
            exclude_dirs=config.exclude_dirs,
        )
        run = filter_run(run, config.severity_threshold)
        report = render_structured(run) if config.format == "structured" else render_text(run)
        write_report(report, config.output)
        return 1 if run.has_errors else 0

    if args.command == "rules":
        try:
            registry = _build_registry(args.rule_set, ())
        except ConfigError as exc:
            parser.error(str(exc))
            return 2

        if args.format == "structured":
            payload = [_rule_to_dict(rule) for rule in registry]
            print(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=True))
        else:
            for rule in registry:
                print(f"{rule.id:<34} {rule.severity:<8} {rule.category:<15} {rule.message}")
        return 0

    if args.command == "explain":
        try:
            registry = _build_registry(args.rule_set, ())
        except ConfigError as exc:
            parser.error(str(exc))
            return 2

        rule = registry.get(args.rule_id)
        if rule is None:
            parser.error(f"Unknown rule id: {args.rule_id}")
            return 2
        print(_explain(rule))
        return 0

    parser.error(f"Unsupported command: {args.command}")
    return 2


def _resolve_config(args: argparse.Namespace) -> LintConfig:
    config = load_config(args.config) if args.config else LintConfig()
    workers = args.workers if args.workers is not None else config.workers
    if workers < 1:
        raise ConfigError("--workers must be at least 1")
    return LintConfig(
        rule_set=args.rule_set or config.rule_set,
        severity_threshold=args.severity_threshold or config.severity_threshold,
        format=args.format or config.format,
        output=args.output or config.output,
        disabled_rules=config.disabled_rules + tuple(args.disable),
        workers=workers,
        include_exts=config.include_exts,
        exclude_dirs=config.exclude_dirs,
    )


def _build_registry(rule_set: str | None, disabled: tuple[str, ...]) -> RuleRegistry:
    registry = load_rule_set(rule_set) if rule_set else default_registry()
    unknown = sorted(rule_id for rule_id in disabled if rule_id not in registry)
    if unknown:
        raise ConfigError(f"Unknown rule ids: {', '.join(unknown)}")
    return registry.without(disabled)


def _rule_to_dict(rule: Rule) -> dict:
    return {
        "id": rule.id,
        "category": rule.category,
        "severity": rule.severity,
        "message": rule.message,
        "suggested_fix": rule.suggested_fix,
        "scope": rule.scope,
        "example_bad": rule.example_bad,
        "example_good": rule.example_good,
    }


def _explain(rule: Rule) -> str:
    lines = [
        f"{rule.id} ({rule.category}, {rule.severity})",
        "",
        rule.message,
        f"Suggested fix: {rule.suggested_fix}",
    ]
    if rule.example_bad:
        lines.extend(["", "Incorrect:", _indent(rule.example_bad)])
    if rule.example_good:
        lines.extend(["", "Correct:", _indent(rule.example_good)])
    return "\n".join(lines)


def _indent(snippet: str) -> str:
    return "\n".join(f"    {line}" for line in snippet.splitlines())


if __name__ == "__main__":
    raise SystemExit(main())
