from __future__ import annotations

import json
import sys
from collections import Counter
from pathlib import Path

from rpgle_lint.models import SEVERITY_RANK, FileResult, Finding, LintRun, sort_findings

__all__ = [
    "filter_run",
    "render_structured",
    "render_text",
    "sort_findings",
    "summarize",
    "write_report",
]


def filter_run(run: LintRun, threshold: str) -> LintRun:
    if threshold not in SEVERITY_RANK:
        raise ValueError(f"Unknown severity threshold: {threshold}")
    minimum = SEVERITY_RANK[threshold]
    return LintRun(
        files=tuple(
            FileResult(
                path=item.path,
                findings=tuple(
                    finding
                    for finding in item.findings
                    if SEVERITY_RANK[finding.severity] >= minimum
                ),
                error=item.error,
            )
            for item in run.files
        )
    )


def summarize(run: LintRun) -> dict:
    findings = [finding for item in run.files for finding in item.findings]
    severities = Counter(finding.severity for finding in findings)
    return {
        "files": len(run.files),
        "files_with_findings": sum(1 for item in run.files if item.findings),
        "findings": len(findings),
        "errors": severities.get("error", 0),
        "warnings": severities.get("warning", 0),
        "by_category": dict(sorted(Counter(f.category for f in findings).items())),
        "by_rule": dict(sorted(Counter(f.rule_id for f in findings).items())),
    }


def render_text(run: LintRun) -> str:
    lines: list[str] = []
    for item in run.files:
        for finding in sort_findings(item.findings):
            lines.append(_format_finding(item.path, finding))

    summary = summarize(run)
    if lines:
        lines.append("")
    lines.append(
        f"{summary['findings']} finding(s) in {summary['files']} file(s): "
        f"{summary['errors']} error(s), {summary['warnings']} warning(s)"
    )
    for category, count in summary["by_category"].items():
        lines.append(f"  {category}: {count}")
    return "\n".join(lines) + "\n"


def render_structured(run: LintRun) -> str:
    payload = {
        "files": [
            {
                "path": item.path,
                "error": item.error,
                "findings": [finding.to_dict() for finding in sort_findings(item.findings)],
            }
            for item in run.files
        ],
        "summary": summarize(run),
    }
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=True) + "\n"


def write_report(text: str, output: str | Path | None = None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        handle.write(text)


def _format_finding(path: str, finding: Finding) -> str:
    return (
        f"{path}:{finding.line}: [{finding.rule_id}] {finding.message} "
        f"(suggested: {finding.suggested_fix})"
    )
