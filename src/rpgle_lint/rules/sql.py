from __future__ import annotations

import re
from typing import Iterator

from rpgle_lint.models import Hit, LogicalStatement, ProcedureContext, Rule
from rpgle_lint.rules.base import hit_at, pattern_matcher

# Declarations that can never be a scalar host variable.
NON_HOST_KINDS = {"dcl-ds", "dcl-f", "dcl-pr", "dcl-c"}

_INTO_RE = re.compile(
    r"\binto\s+([\s\S]*?)(?=\b(?:from|where|for|with|using|order|group|fetch|values)\b|$)",
    re.IGNORECASE,
)
_PREVIOUS_WORD_RE = re.compile(r"(\w+)\s*$")
_COMPARISON_RE = re.compile(
    r"(<>|<=|>=|=|<|>)\s*([a-z_#@$][\w#@$]*)(?![\w#@$])(?!\s*[.(])", re.IGNORECASE
)
_ARGUMENT_LIST_RE = re.compile(r"\b(?:values|call\s+[\w#@$.]+)\s*\(", re.IGNORECASE)
_NAME_RE = re.compile(r"[a-z_#@$][\w#@$]*", re.IGNORECASE)
_SET_OPTION_RE = re.compile(r"\s*exec\s+sql\s+set\s+option\b", re.IGNORECASE)


def _missing_colon(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    if not statement.is_sql:
        return
    code = statement.code
    for found in _INTO_RE.finditer(code):
        previous = _PREVIOUS_WORD_RE.search(code, 0, found.start())
        if previous and previous.group(1).lower() in {"insert", "merge"}:
            continue
        offset = found.start(1)
        for item in found.group(1).split(","):
            name = item.strip()
            if name and not name.startswith(":"):
                yield hit_at(
                    statement,
                    offset + item.find(name),
                    message=f"host variable '{name}' needs a leading colon",
                    suggested_fix=f":{name}",
                )
            offset += len(item) + 1

    for found in _COMPARISON_RE.finditer(code):
        declaration = context.lookup(found.group(2))
        if declaration is None or declaration.kind in NON_HOST_KINDS:
            continue
        yield hit_at(
            statement,
            found.start(2),
            message=f"RPG variable '{found.group(2)}' is used in SQL without a leading colon",
            suggested_fix=f"{found.group(1)} :{found.group(2)}",
        )

    for found in _ARGUMENT_LIST_RE.finditer(code):
        for offset, item in _argument_items(code, found.end()):
            name = item.strip()
            if not _NAME_RE.fullmatch(name):
                continue
            declaration = context.lookup(name)
            if declaration is None or declaration.kind in NON_HOST_KINDS:
                continue
            yield hit_at(
                statement,
                offset + item.find(name),
                message=f"RPG variable '{name}' is used in SQL without a leading colon",
                suggested_fix=f":{name}",
            )


def _argument_items(code: str, start: int) -> Iterator[tuple[int, str]]:
    """Yields (offset, text) for each top-level item of the list opened just before ``start``."""
    depth = 0
    item_start = start
    for index in range(start, len(code)):
        char = code[index]
        if char == "(":
            depth += 1
        elif char == ")":
            if depth == 0:
                yield item_start, code[item_start:index]
                return
            depth -= 1
        elif char == "," and depth == 0:
            yield item_start, code[item_start:index]
            item_start = index + 1
    yield item_start, code[item_start:]


def _status_fix(found: re.Match) -> str:
    if found.group(0).lower().startswith("sqlstate"):
        return "sqlstate is char(5): sqlstate = '02000'"
    return "sqlcode is numeric: sqlcode = 100"


def _set_option_not_first(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    if _SET_OPTION_RE.match(statement.code) and context.root.sql_statements > 0:
        yield Hit(line=statement.start_line)


RULES = (
    Rule(
        id="sql.host-variable-colon",
        category="sql",
        severity="error",
        message="host variables in embedded SQL need a leading colon",
        suggested_fix=":variable",
        matcher=_missing_colon,
        include_sql=True,
        example_bad=(
            "dcl-s custId int(10);\ndcl-s custName char(50);\n"
            "exec sql select name into custName from customers where id = custId;"
        ),
        example_good=(
            "dcl-s custId int(10);\ndcl-s custName char(50);\n"
            "exec sql select name into :custName from customers where id = :custId;"
        ),
    ),
    Rule(
        id="sql.status-type-mismatch",
        category="sql",
        severity="error",
        message="sqlstate is character and sqlcode is numeric",
        suggested_fix="sqlstate = '02000' / sqlcode = 100",
        matcher=pattern_matcher(
            r"\bsqlstate\s*(=|<>)\s*\d|\bsqlcode\s*(=|<>|<=|>=|<|>)\s*'", fix=_status_fix
        ),
        example_bad="if sqlcode = '100';\n  done = *on;\nendif;",
        example_good="if sqlcode = 100;\n  done = *on;\nendif;",
    ),
    Rule(
        id="sql.set-option-not-first",
        category="sql",
        severity="error",
        message="exec sql set option must be the first SQL statement in the source",
        suggested_fix="move exec sql set option ...; above every other exec sql",
        matcher=_set_option_not_first,
        include_sql=True,
        example_bad="exec sql delete from audit;\nexec sql set option commit = *none;",
        example_good="exec sql set option commit = *none;\nexec sql delete from audit;",
    ),
)
