from __future__ import annotations

import re
from typing import Iterator

from rpgle_lint.models import Hit, LogicalStatement, ProcedureContext, Rule
from rpgle_lint.rules.base import pattern_matcher

_FREE_RE = re.compile(r"\*\*free\b", re.IGNORECASE)


def _free_not_first(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    if _FREE_RE.match(statement.code) and statement.start_line != 1:
        yield Hit(line=statement.start_line)


def _control_options_late(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    if statement.opcode != "ctl-opt":
        return
    if not context.is_module:
        yield Hit(line=statement.start_line, message="ctl-opt is not allowed inside a procedure")
    elif context.code_seen or statement.preceding_declaration_count > 0:
        yield Hit(line=statement.start_line)


RULES = (
    Rule(
        id="struct.free-not-first",
        category="structure",
        severity="error",
        message="**free must be on the first line of the source",
        suggested_fix="move **free to line 1, column 1",
        matcher=_free_not_first,
        scope="directive",
        example_bad="// order entry\n**free\ndcl-s x int(10);",
        example_good="**free\n// order entry\ndcl-s x int(10);",
    ),
    Rule(
        id="struct.ctl-opt-after-code",
        category="structure",
        severity="error",
        message="ctl-opt must come before any declaration or executable statement",
        suggested_fix="move ctl-opt to the top of the source, after **free",
        matcher=_control_options_late,
        example_bad="dcl-s x int(10);\nctl-opt dftactgrp(*no);",
        example_good="ctl-opt dftactgrp(*no);\ndcl-s x int(10);",
    ),
    Rule(
        id="struct.copy-semicolon",
        category="structure",
        severity="error",
        message="/copy and /include directives do not end with a semicolon",
        suggested_fix="/copy library/file,member",
        matcher=pattern_matcher(r"^/(copy|include)\b.*;\s*$"),
        scope="directive",
        example_bad="/copy qrpglesrc,protos;",
        example_good="/copy qrpglesrc,protos",
    ),
)
