from __future__ import annotations

import re
from typing import Iterator

from rpgle_lint.declarations import declaration_parts
from rpgle_lint.models import Hit, LogicalStatement, ProcedureContext, Rule
from rpgle_lint.rules.base import attribute_matcher

RETURN_TYPE_PATTERN = (
    r"\b(char|varchar|graph|vargraph|ucs2|varucs2|int|uns|packed|zoned|bindec|float"
    r"|ind|date|time|timestamp|pointer|like|likeds|likerec)\b"
)

_RETURN_TYPE_RE = re.compile(RETURN_TYPE_PATTERN, re.IGNORECASE)
_RETURN_VALUE_RE = re.compile(r"\s*return\b\s*[^\s;]", re.IGNORECASE)


def _procedure_body(block: LogicalStatement) -> Iterator[LogicalStatement]:
    depth = len(block.blocks) + 1
    for child in block.children:
        if len(child.blocks) >= depth and "dcl-proc" not in child.blocks[depth:]:
            yield child


def _missing_return_type(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    returns_value: LogicalStatement | None = None
    for child in _procedure_body(statement):
        if child.opcode == "dcl-pi":
            parts = declaration_parts(child)
            if parts is not None and _RETURN_TYPE_RE.search(parts.attributes):
                return
        elif returns_value is None and _RETURN_VALUE_RE.match(child.code):
            returns_value = child
    if returns_value is not None:
        yield Hit(line=returns_value.start_line)


def _interface_name_mismatch(
    statement: LogicalStatement, context: ProcedureContext
) -> Iterator[Hit]:
    if statement.opcode != "dcl-pi" or context.name is None:
        return
    parts = declaration_parts(statement)
    if parts is None or parts.name.startswith("*"):
        return
    if parts.name.lower() != context.name.lower():
        yield Hit(
            line=statement.start_line,
            message=(
                f"dcl-pi {parts.name} does not match its procedure name {context.name}"
            ),
            suggested_fix=f"dcl-pi *n ...; or dcl-pi {context.name} ...;",
        )


def _nested_procedure(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    if statement.opcode == "dcl-proc" and "dcl-proc" in statement.blocks:
        yield Hit(line=statement.start_line)


RULES = (
    Rule(
        id="proc.return-type-on-proc",
        category="procedures",
        severity="error",
        message="the return type belongs on dcl-pi, not on dcl-proc",
        suggested_fix="dcl-proc name; dcl-pi *n returnType; ... end-pi;",
        matcher=attribute_matcher(RETURN_TYPE_PATTERN, keywords=("dcl-proc",)),
        example_bad="dcl-proc getTotal int(10);\n  return 1;\nend-proc;",
        example_good="dcl-proc getTotal;\n  dcl-pi *n int(10) end-pi;\n  return 1;\nend-proc;",
    ),
    Rule(
        id="proc.missing-return-type",
        category="procedures",
        severity="error",
        message="procedure returns a value but its dcl-pi declares no return type",
        suggested_fix="dcl-pi *n returnType; ... end-pi;",
        matcher=_missing_return_type,
        scope="block",
        block_kinds=("dcl-proc",),
        example_bad="dcl-proc isValid;\n  return *on;\nend-proc;",
        example_good="dcl-proc isValid;\n  dcl-pi *n ind end-pi;\n  return *on;\nend-proc;",
    ),
    Rule(
        id="proc.pi-name-mismatch",
        category="procedures",
        severity="error",
        message="dcl-pi name must match the procedure name or be *n",
        suggested_fix="dcl-pi *n ...;",
        matcher=_interface_name_mismatch,
        example_bad="dcl-proc getTotal;\n  dcl-pi getSum int(10) end-pi;\n  return 1;\nend-proc;",
        example_good="dcl-proc getTotal;\n  dcl-pi *n int(10) end-pi;\n  return 1;\nend-proc;",
    ),
    Rule(
        id="proc.nested-procedure",
        category="procedures",
        severity="error",
        message="procedures cannot be nested",
        suggested_fix="end-proc; before starting the next dcl-proc",
        matcher=_nested_procedure,
        example_bad="dcl-proc outer;\n  dcl-proc inner;\n  end-proc;\nend-proc;",
        example_good="dcl-proc outer;\nend-proc;\n\ndcl-proc inner;\nend-proc;",
    ),
    Rule(
        id="proc.const-and-value",
        category="procedures",
        severity="error",
        message="a parameter is passed either const or value, not both",
        suggested_fix="keep only const (read-only reference) or value (copy)",
        matcher=attribute_matcher(
            r"^(?=[\s\S]*\bconst\b(?!\s*\())(?=[\s\S]*\bvalue\b)",
            keywords=("parameter",),
            enclosing=("dcl-pi", "dcl-pr"),
        ),
        example_bad="dcl-pr calc int(10);\n  amount packed(9 : 2) const value;\nend-pr;",
        example_good="dcl-pr calc int(10);\n  amount packed(9 : 2) const;\nend-pr;",
    ),
)
