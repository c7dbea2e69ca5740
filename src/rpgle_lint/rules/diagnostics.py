"""Rules reported by the scanner, the engine and the file pipeline rather than by a matcher."""

from __future__ import annotations

from rpgle_lint.models import Rule

UNTERMINATED_BLOCK = "scan.unterminated-block"
UNBALANCED_QUOTE = "scan.unbalanced-quote"
UNMATCHED_TERMINATOR = "scan.unmatched-terminator"
UNTERMINATED_STATEMENT = "scan.unterminated-statement"
RULE_ERROR = "internal.rule-error"
UNREADABLE_INPUT = "input.unreadable"

RULES = (
    Rule(
        id=UNTERMINATED_BLOCK,
        category="scan",
        severity="error",
        message="block has no matching terminator",
        suggested_fix="close the block with its terminator (endmon, endif, enddo, end-proc, ...)",
        scope="diagnostic",
        example_bad="dcl-proc run;\n  monitor;\n    x = 1;\nend-proc;",
        example_good=(
            "dcl-proc run;\n  monitor;\n    x = 1;\n  on-error;\n    x = 0;\n  endmon;\nend-proc;"
        ),
    ),
    Rule(
        id=UNBALANCED_QUOTE,
        category="scan",
        severity="error",
        message="string literal is not closed",
        suggested_fix="close the literal with ' (write '' for an embedded quote)",
        scope="diagnostic",
        example_bad="msg = 'Hello;",
        example_good="msg = 'Hello';",
    ),
    Rule(
        id=UNMATCHED_TERMINATOR,
        category="scan",
        severity="error",
        message="terminator does not close any open block",
        suggested_fix="remove the terminator or add the block it closes",
        scope="diagnostic",
        example_bad="x = 1;\nendif;",
        example_good="if x = 1;\nendif;",
    ),
    Rule(
        id=UNTERMINATED_STATEMENT,
        category="scan",
        severity="error",
        message="statement is not terminated by ';'",
        suggested_fix="end the statement with ;",
        scope="diagnostic",
        example_bad="x = 1",
        example_good="x = 1;",
    ),
    Rule(
        id=RULE_ERROR,
        category="internal",
        severity="error",
        message="a rule failed while checking this statement",
        suggested_fix="report the failing rule; other rules still ran",
        scope="diagnostic",
    ),
    Rule(
        id=UNREADABLE_INPUT,
        category="input",
        severity="error",
        message="source file could not be read",
        suggested_fix="check the path, permissions and encoding (UTF-8)",
        scope="diagnostic",
    ),
)
