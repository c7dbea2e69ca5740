from __future__ import annotations

from typing import Iterator

from rpgle_lint.models import Hit, LogicalStatement, ProcedureContext, Rule
from rpgle_lint.rules.base import pattern_matcher


def _monitor_without_handler(
    statement: LogicalStatement, context: ProcedureContext
) -> Iterator[Hit]:
    depth = len(statement.blocks) + 1
    if any(
        len(child.blocks) == depth and child.opcode == "on-error" for child in statement.children
    ):
        return
    yield Hit(line=statement.start_line)


RULES = (
    Rule(
        id="err.monitor-without-on-error",
        category="error-handling",
        severity="error",
        message="monitor group has no on-error clause",
        suggested_fix="monitor; ... on-error; ... endmon;",
        matcher=_monitor_without_handler,
        scope="block",
        block_kinds=("monitor",),
        example_bad="monitor;\n  x = 1;\nendmon;",
        example_good="monitor;\n  x = 1;\non-error;\n  x = 0;\nendmon;",
    ),
    Rule(
        id="err.quoted-status-code",
        category="error-handling",
        severity="error",
        message="on-error status codes are numeric, not strings",
        suggested_fix="on-error 00907;",
        matcher=pattern_matcher(r"^\s*on-error\s+'", opcodes=("on-error",)),
        example_bad="monitor;\n  x = 1;\non-error '00907';\n  x = 0;\nendmon;",
        example_good="monitor;\n  x = 1;\non-error 00907;\n  x = 0;\nendmon;",
    ),
    Rule(
        id="err.throw-statement",
        category="error-handling",
        severity="error",
        message="RPGLE has no throw/raise statement",
        suggested_fix="snd-msg *escape %msg(msgId : msgFile : data);",
        matcher=pattern_matcher(
            r"^\s*(throw|raise)\b(?!\s*(?:\*\*|[-+*/])?=)", opcodes=("throw", "raise")
        ),
        example_bad="throw 'Invalid order';",
        example_good="snd-msg *escape %msg('CPF9898' : 'QCPFMSG' : 'Invalid order');",
    ),
)
