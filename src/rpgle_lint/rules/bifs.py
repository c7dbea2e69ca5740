from __future__ import annotations

import re
from typing import Iterator

from rpgle_lint.models import Hit, LogicalStatement, ProcedureContext, Rule
from rpgle_lint.rules.base import bif_calls, hit_at, pattern_matcher

NONEXISTENT_BIFS = {
    "sorta": "sorta array; (SORTA is an operation code)",
    "occurs": "%occur(ds)",
    "dealloc": "dealloc ptr; (DEALLOC is an operation code)",
    "varchar": "%char(value)",
    "move": "a plain assignment (target = source) or evalr",
    "length": "%len(value)",
    "strlen": "%len(value)",
    "substring": "%subst(value : start : length)",
    "substr": "%subst(value : start : length)",
    "sizeof": "%size(value)",
    "tostring": "%char(value)",
    "string": "%char(value)",
    "concat": "the + operator",
    "isnumeric": "%check('0123456789' : value) = 0",
    "today": "%date()",
    "now": "%timestamp()",
    "contains": "%scan(search : value) > 0",
    "indexof": "%scan(search : value)",
    "toupper": "%upper(value) or %xlate(lower : upper : value)",
    "tolower": "%lower(value) or %xlate(upper : lower : value)",
    "round": "eval(h) target = expression;",
    "isblank": "value = *blanks",
}

# Missing on some releases, so these are reported as warnings only.
DISPUTED_BIFS = {
    "checkr": "%check(chars : %trimr(value)) or a backwards loop",
    "tlookup": "%lookup(value : array)",
}

SEARCH_BIFS = {
    "scan",
    "scanr",
    "check",
    "checkr",
    "lookup",
    "lookuplt",
    "lookuple",
    "lookupge",
    "lookupgt",
    "tlookup",
}

DURATION_BIFS = {"date": "%days", "timestamp": "%days", "time": "%minutes"}

_NOT_FOUND_COMPARISON_RE = re.compile(
    r"\s*(=\s*-\s*1|<>\s*-\s*1|>\s*-\s*1|<\s*0\b|>=\s*0\b)", re.IGNORECASE
)
_NAME_RE = re.compile(r"[a-z_#@$][\w#@$]*$", re.IGNORECASE)
_DATE_PLUS_NUMBER_RE = re.compile(
    r"(?<![\w#@$.%*])([a-z_#@$][\w#@$]*)\s*([+-])(=)?\s*(\d+)(?![\w.(])", re.IGNORECASE
)


def _nonexistent(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    for call in bif_calls(statement.code):
        if call.name in NONEXISTENT_BIFS:
            yield hit_at(
                statement,
                call.start,
                message=f"%{call.name} is not an RPGLE built-in function",
                suggested_fix=NONEXISTENT_BIFS[call.name],
            )


def _equal_on_array(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    for call in bif_calls(statement.code):
        if call.name != "equal" or not call.arguments or not _NAME_RE.match(call.arguments[0]):
            continue
        declaration = context.lookup(call.arguments[0])
        if declaration is not None and declaration.is_array:
            yield hit_at(
                statement,
                call.start,
                suggested_fix=f"%lookup(value : {call.arguments[0]}) > 0",
            )


def _occur_two_arguments(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    for call in bif_calls(statement.code):
        if call.name == "occur" and len(call.arguments) == 2:
            yield hit_at(
                statement,
                call.start,
                suggested_fix=f"%occur({call.arguments[0]}) = {call.arguments[1]};",
            )


def _disputed_name(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    for call in bif_calls(statement.code):
        if call.name in DISPUTED_BIFS:
            yield hit_at(
                statement,
                call.start,
                message=f"%{call.name} is not available on every release; confirm it compiles",
                suggested_fix=DISPUTED_BIFS[call.name],
            )


def _substring_from_zero(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    for call in bif_calls(statement.code):
        if call.name == "subst" and len(call.arguments) >= 2 and call.arguments[1] == "0":
            yield hit_at(statement, call.start)


def _not_found_sentinel(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    code = statement.code
    for call in bif_calls(code):
        if call.name not in SEARCH_BIFS:
            continue
        if _NOT_FOUND_COMPARISON_RE.match(code, call.end):
            yield hit_at(
                statement,
                call.start,
                message=f"%{call.name} returns 0 when nothing is found, never a negative value",
            )


def _elem_on_scalar(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    for call in bif_calls(statement.code):
        if call.name != "elem" or len(call.arguments) != 1 or not _NAME_RE.match(call.arguments[0]):
            continue
        declaration = context.lookup(call.arguments[0])
        if declaration is None or declaration.is_array:
            continue
        yield hit_at(
            statement,
            call.start,
            message=f"%elem needs an array, but '{declaration.name}' is not one",
            suggested_fix=f"%len({declaration.name}) for its length or %size({declaration.name}) for its storage size",
        )


def _comma_separators(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    for call in bif_calls(statement.code):
        if "," in call.separators:
            yield hit_at(
                statement,
                call.start,
                suggested_fix=f"%{call.name}({' : '.join(call.arguments)})",
            )


def _date_arithmetic(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    if not statement.is_executable:
        return
    for found in _DATE_PLUS_NUMBER_RE.finditer(statement.code):
        declaration = context.lookup(found.group(1))
        if declaration is None or declaration.data_type not in DURATION_BIFS:
            continue
        duration = DURATION_BIFS[declaration.data_type]
        operator = found.group(2) + (found.group(3) or "")
        yield hit_at(
            statement,
            found.start(),
            suggested_fix=f"{declaration.name} {operator} {duration}({found.group(4)})",
        )


RULES = (
    Rule(
        id="bif.nonexistent",
        category="builtins",
        severity="error",
        message="built-in function does not exist",
        suggested_fix="use the matching operation code or built-in function",
        matcher=_nonexistent,
        example_bad="%sorta(numbers);",
        example_good="sorta numbers;",
    ),
    Rule(
        id="bif.equal-on-array",
        category="builtins",
        severity="error",
        message="%equal reports the result of the last SETLL/LOOKUP; it does not search arrays",
        suggested_fix="%lookup(value : array) > 0",
        matcher=_equal_on_array,
        example_bad="dcl-s codes char(3) dim(10);\ndcl-s found ind;\nfound = %equal(codes);",
        example_good="dcl-s codes char(3) dim(10);\ndcl-s found ind;\nfound = %lookup('ABC' : codes) > 0;",
    ),
    Rule(
        id="bif.occur-two-args",
        category="builtins",
        severity="warning",
        message="%occur takes only the data structure; set the occurrence by assigning to it",
        suggested_fix="%occur(ds) = n;",
        matcher=_occur_two_arguments,
        example_bad="x = %occur(salesData : 3);",
        example_good="%occur(salesData) = 3;",
    ),
    Rule(
        id="bif.disputed-name",
        category="builtins",
        severity="warning",
        message="built-in function is not available on every release",
        suggested_fix="confirm the function exists on the target release",
        matcher=_disputed_name,
        example_bad="n = %checkr(' ' : name);",
        example_good="n = %check(' ' : name);",
    ),
    Rule(
        id="bif.subst-zero-start",
        category="builtins",
        severity="error",
        message="%subst start position is 1-based",
        suggested_fix="start at position 1: %subst(value : 1 : length)",
        matcher=_substring_from_zero,
        example_bad="part = %subst(name : 0 : 3);",
        example_good="part = %subst(name : 1 : 3);",
    ),
    Rule(
        id="bif.not-found-sentinel",
        category="builtins",
        severity="warning",
        message="search built-in functions return 0 when nothing is found",
        suggested_fix="compare against 0: %scan(search : value) = 0 / > 0",
        matcher=_not_found_sentinel,
        example_bad="if %scan('@' : email) = -1;\n  valid = *off;\nendif;",
        example_good="if %scan('@' : email) = 0;\n  valid = *off;\nendif;",
    ),
    Rule(
        id="bif.elem-on-scalar",
        category="builtins",
        severity="error",
        message="%elem is only valid for arrays, tables and multiple-occurrence data structures",
        suggested_fix="%len(value) or %size(value)",
        matcher=_elem_on_scalar,
        example_bad="dcl-s name varchar(50);\ndcl-s n int(10);\nn = %elem(name);",
        example_good="dcl-s names varchar(50) dim(20);\ndcl-s n int(10);\nn = %elem(names);",
    ),
    Rule(
        id="bif.quoted-format-code",
        category="builtins",
        severity="error",
        message="date/time format codes are special values, not strings",
        suggested_fix="%char(value : *iso)",
        matcher=pattern_matcher(
            r"%(char|date|time|timestamp|dec)\s*\([^;]*?'\*(iso|usa|eur|jis|ymd|mdy|dmy|cymd|cmdy|cdmy|jul|longjul|hms)0?[-/.,&]?'",
            source="text",
        ),
        example_bad="text = %char(orderDate : '*ISO');",
        example_good="text = %char(orderDate : *iso);",
    ),
    Rule(
        id="bif.comma-separators",
        category="builtins",
        severity="error",
        message="built-in function arguments are separated by colons, not commas",
        suggested_fix="%bif(arg1 : arg2)",
        matcher=_comma_separators,
        example_bad="part = %subst(name, 1, 3);",
        example_good="part = %subst(name : 1 : 3);",
    ),
    Rule(
        id="bif.date-arithmetic",
        category="builtins",
        severity="error",
        message="dates and times cannot be added to plain numbers",
        suggested_fix="date + %days(n)",
        matcher=_date_arithmetic,
        example_bad="dcl-s dueDate date;\ndueDate = dueDate + 30;",
        example_good="dcl-s dueDate date;\ndueDate = dueDate + %days(30);",
    ),
)
