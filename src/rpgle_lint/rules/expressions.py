from __future__ import annotations

import re

from rpgle_lint.models import Rule
from rpgle_lint.rules.base import pattern_matcher

LOGICAL_OPERATORS = {"&&": "and", "||": "or", "!": "not"}
BOOLEAN_LITERALS = {"true": "*on", "false": "*off"}
METHOD_CALLS = {
    "length": "%len(value)",
    "size": "%size(value) or %elem(array)",
    "trim": "%trim(value)",
    "trimstart": "%triml(value)",
    "trimend": "%trimr(value)",
    "toupper": "%upper(value)",
    "touppercase": "%upper(value)",
    "tolower": "%lower(value)",
    "tolowercase": "%lower(value)",
    "substring": "%subst(value : start : length)",
    "indexof": "%scan(search : value)",
    "contains": "%scan(search : value) > 0",
    "equals": "value1 = value2",
    "tostring": "%char(value)",
    "replace": "%scanrpl(from : to : value)",
    "split": "%split(value : separators)",
}


def _logical_fix(found: re.Match) -> str:
    return LOGICAL_OPERATORS[found.group(0)]


def _boolean_fix(found: re.Match) -> str:
    return BOOLEAN_LITERALS[found.group(1).lower()]


def _method_fix(found: re.Match) -> str:
    return METHOD_CALLS[found.group(1).lower()]


RULES = (
    Rule(
        id="expr.ternary",
        category="expressions",
        severity="error",
        message="RPGLE has no ternary ?: operator",
        suggested_fix="if condition; target = a; else; target = b; endif;",
        matcher=pattern_matcher(r"\S\s*\?[^?]*:"),
        example_bad="status = count > 0 ? 'ACTIVE' : 'EMPTY';",
        example_good="if count > 0;\n  status = 'ACTIVE';\nelse;\n  status = 'EMPTY';\nendif;",
    ),
    Rule(
        id="expr.string-plus-literals",
        category="expressions",
        severity="warning",
        message="two string literals joined with +",
        suggested_fix="write one literal, or concatenate variables with + and %trim()",
        matcher=pattern_matcher(r"''\s*\+\s*''"),
        example_bad="msg = 'Order ' + 'not found';",
        example_good="msg = 'Order not found';",
    ),
    Rule(
        id="expr.double-equals",
        category="expressions",
        severity="error",
        message="== is not an RPGLE operator",
        suggested_fix="=",
        matcher=pattern_matcher(r"=="),
        example_bad="if total == 0;\nendif;",
        example_good="if total = 0;\nendif;",
    ),
    Rule(
        id="expr.not-equal",
        category="expressions",
        severity="error",
        message="!= is not an RPGLE operator",
        suggested_fix="<>",
        matcher=pattern_matcher(r"!="),
        example_bad="if status != 'A';\nendif;",
        example_good="if status <> 'A';\nendif;",
    ),
    Rule(
        id="expr.logical-symbols",
        category="expressions",
        severity="error",
        message="logical operators are words in RPGLE",
        suggested_fix="and / or / not",
        matcher=pattern_matcher(r"&&|\|\||!(?!=)", fix=_logical_fix),
        example_bad="if a > 0 && b > 0;\nendif;",
        example_good="if a > 0 and b > 0;\nendif;",
    ),
    Rule(
        id="expr.increment-operator",
        category="expressions",
        severity="error",
        message="++ and -- do not exist in RPGLE",
        suggested_fix="count += 1;",
        matcher=pattern_matcher(r"\+\+|--"),
        example_bad="count++;",
        example_good="count += 1;",
    ),
    Rule(
        id="expr.double-quoted-string",
        category="expressions",
        severity="error",
        message="string literals are delimited by apostrophes",
        suggested_fix="'text'",
        matcher=pattern_matcher(r'"'),
        example_bad='msg = "Hello";',
        example_good="msg = 'Hello';",
    ),
    Rule(
        id="expr.boolean-literal",
        category="expressions",
        severity="error",
        message="true/false are not RPGLE literals",
        suggested_fix="*on / *off",
        matcher=pattern_matcher(r"(?<![\w*#@$])(true|false)\b", fix=_boolean_fix),
        example_bad="found = true;",
        example_good="found = *on;",
    ),
    Rule(
        id="expr.null-keyword",
        category="expressions",
        severity="error",
        message="null is written *null in RPGLE",
        suggested_fix="*null",
        matcher=pattern_matcher(r"(?<![\w*%#@$])(null|nullptr|nil)\b"),
        example_bad="if ptr = null;\nendif;",
        example_good="if ptr = *null;\nendif;",
    ),
    Rule(
        id="expr.modulo-operator",
        category="expressions",
        severity="error",
        message="% is not a modulo operator",
        suggested_fix="%rem(dividend : divisor)",
        matcher=pattern_matcher(r"%(?![a-z])"),
        example_bad="r = x % 2;",
        example_good="r = %rem(x : 2);",
    ),
    Rule(
        id="expr.caret-power",
        category="expressions",
        severity="error",
        message="^ is not an exponent operator",
        suggested_fix="base ** exponent",
        matcher=pattern_matcher(r"\^"),
        example_bad="area = side ^ 2;",
        example_good="area = side ** 2;",
    ),
    Rule(
        id="expr.brackets",
        category="expressions",
        severity="error",
        message="RPGLE indexes arrays with parentheses and declares them with dim()",
        suggested_fix="array(index) / dim(n)",
        matcher=pattern_matcher(r"\["),
        example_bad="total = total + amounts[i];",
        example_good="total = total + amounts(i);",
    ),
    Rule(
        id="expr.method-call",
        category="expressions",
        severity="error",
        message="RPGLE variables have no methods",
        suggested_fix="use the equivalent built-in function",
        matcher=pattern_matcher(
            r"\.\s*(" + "|".join(sorted(METHOD_CALLS, key=len, reverse=True)) + r")\s*\(",
            fix=_method_fix,
        ),
        example_bad="size = name.length();",
        example_good="size = %len(name);",
    ),
    Rule(
        id="expr.colon-assign",
        category="expressions",
        severity="error",
        message=":= is not an assignment operator",
        suggested_fix="target = value;",
        matcher=pattern_matcher(r":="),
        example_bad="total := 0;",
        example_good="total = 0;",
    ),
)
