from __future__ import annotations

from loguru import logger

from rpgle_lint.declarations import declaration_parts, parse_declaration
from rpgle_lint.models import Finding, LogicalStatement, ProcedureContext, sort_findings
from rpgle_lint.rules import RuleRegistry, default_registry
from rpgle_lint.rules.diagnostics import RULE_ERROR
from rpgle_lint.scanner import scan_source


def lint_source(source: str, registry: RuleRegistry | None = None) -> list[Finding]:
    if registry is None:
        registry = default_registry()
    result = scan_source(source)

    findings: list[Finding] = []
    for issue in result.issues:
        rule = registry.get(issue.rule_id)
        if rule is None:
            continue
        findings.append(rule.finding(issue.line, issue.excerpt, message=issue.detail))

    stack = [ProcedureContext()]
    for statement in result.statements:
        findings.extend(evaluate_statement(statement, stack[-1], registry))
        _advance(stack, statement)

    # Deduplicate repeated matches of one rule on the same line.
    deduped: dict[Finding, None] = {}
    for item in findings:
        deduped.setdefault(item, None)

    return sort_findings(deduped)


def evaluate_statement(
    statement: LogicalStatement,
    context: ProcedureContext,
    registry: RuleRegistry,
) -> list[Finding]:
    findings: list[Finding] = []
    for rule in registry:
        try:
            findings.extend(rule.evaluate(statement, context))
        except Exception as exc:
            logger.warning(
                "Rule {} failed on line {}: {}: {}",
                rule.id,
                statement.start_line,
                type(exc).__name__,
                exc,
            )
            error_rule = registry.get(RULE_ERROR)
            if error_rule is None:
                continue
            findings.append(
                error_rule.finding(
                    statement.start_line,
                    statement.line_text(statement.start_line),
                    message=f"rule {rule.id} raised {type(exc).__name__}: {exc}",
                )
            )
    return findings


def _advance(stack: list[ProcedureContext], statement: LogicalStatement) -> None:
    if statement.kind != "statement":
        return

    context = stack[-1]
    if statement.is_sql:
        context.root.sql_statements += 1

    opcode = statement.opcode
    if opcode == "dcl-proc":
        parts = declaration_parts(statement)
        stack.append(
            ProcedureContext(
                name=parts.name if parts else None,
                parent=context,
                start_line=statement.start_line,
            )
        )
        return
    if opcode == "end-proc":
        if len(stack) > 1:
            stack.pop()
        return

    declaration = parse_declaration(statement)
    if declaration is not None:
        context.declare(declaration)
    elif statement.is_executable:
        context.mark_code(statement.start_line)
