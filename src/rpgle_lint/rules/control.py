from __future__ import annotations

import re
from typing import Iterator

from rpgle_lint.models import Hit, LogicalStatement, ProcedureContext, Rule
from rpgle_lint.rules.base import pattern_matcher

LOOP_BLOCKS = {"dow", "dou", "for", "for-each"}

WRONG_TERMINATORS = {
    "end-if": "endif",
    "endwhile": "enddo",
    "end-while": "enddo",
    "endloop": "enddo",
    "end-do": "enddo",
    "end-for": "endfor",
    "endforeach": "endfor",
    "end-for-each": "endfor",
    "end-select": "endsl",
    "endselect": "endsl",
    "endswitch": "endsl",
    "end-switch": "endsl",
    "end-mon": "endmon",
    "endmonitor": "endmon",
    "end-monitor": "endmon",
    "endtry": "endmon",
    "end-sr": "endsr",
    "endproc": "end-proc",
    "endds": "end-ds",
    "endpr": "end-pr",
    "endpi": "end-pi",
}

LOOP_CONTROL = {"break": "leave;", "continue": "iter;"}

_BARE_WORD_RE = re.compile(r"[\w-]+(\s+[\w#@$]+)?")


def _loop_control_fix(found: re.Match) -> str:
    return LOOP_CONTROL[found.group(1).lower()]


def _wrong_terminator(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    replacement = WRONG_TERMINATORS.get(statement.opcode)
    if replacement and _BARE_WORD_RE.fullmatch(statement.code.strip()):
        yield Hit(
            line=statement.start_line,
            message=f"'{statement.opcode}' is not an RPGLE operation code",
            suggested_fix=f"{replacement};",
        )


def _on_error_outside_monitor(
    statement: LogicalStatement, context: ProcedureContext
) -> Iterator[Hit]:
    if statement.opcode == "on-error" and statement.enclosing != "monitor":
        yield Hit(line=statement.start_line)


def _leave_outside_loop(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    opcode = statement.opcode
    if opcode in {"leave", "iter"} and not LOOP_BLOCKS.intersection(statement.blocks):
        yield Hit(line=statement.start_line, message=f"{opcode} is only valid inside a loop")
    elif opcode == "leavesr" and "begsr" not in statement.blocks:
        yield Hit(
            line=statement.start_line,
            message="leavesr is only valid inside a subroutine",
            suggested_fix="use return to leave a procedure",
        )


def _select_without_when(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    depth = len(statement.blocks) + 1
    for child in statement.children:
        if len(child.blocks) == depth and child.opcode in {"when", "when-is", "when-in"}:
            return
    yield Hit(line=statement.start_line)


RULES = (
    Rule(
        id="ctl.else-if",
        category="control-flow",
        severity="error",
        message="else takes no condition",
        suggested_fix="elseif condition;",
        matcher=pattern_matcher(r"^else\s+if\b", opcodes=("else",)),
        example_bad="if a = 1;\n  b = 1;\nelse if a = 2;\n  b = 2;\nendif;",
        example_good="if a = 1;\n  b = 1;\nelseif a = 2;\n  b = 2;\nendif;",
    ),
    Rule(
        id="ctl.generic-end",
        category="control-flow",
        severity="error",
        message="free-format blocks need their specific terminator",
        suggested_fix="endif / enddo / endfor / endsl / endmon / endsr",
        matcher=pattern_matcher(r"^end\s*$", opcodes=("end",)),
        example_bad="if a = 1;\n  b = 1;\nend;",
        example_good="if a = 1;\n  b = 1;\nendif;",
    ),
    Rule(
        id="ctl.wrong-terminator",
        category="control-flow",
        severity="error",
        message="block terminator is misspelt",
        suggested_fix="endif / enddo / endfor / endsl / endmon",
        matcher=_wrong_terminator,
        example_bad="dow more;\n  more = *off;\nendwhile;",
        example_good="dow more;\n  more = *off;\nenddo;",
    ),
    Rule(
        id="ctl.while-loop",
        category="control-flow",
        severity="error",
        message="RPGLE has no while statement",
        suggested_fix="dow condition; ... enddo;",
        matcher=pattern_matcher(r"^(while|do\s+while)\b", opcodes=("while", "do")),
        example_bad="while more;\n  more = *off;\nenddo;",
        example_good="dow more;\n  more = *off;\nenddo;",
    ),
    Rule(
        id="ctl.c-style-for",
        category="control-flow",
        severity="error",
        message="for loops are not written C-style",
        suggested_fix="for i = 1 to limit; ... endfor;",
        matcher=pattern_matcher(r"^for\s*\(", opcodes=("for",)),
        example_bad="for (i = 1; i <= 10; i += 1);",
        example_good="for i = 1 to 10;\n  total += i;\nendfor;",
    ),
    Rule(
        id="ctl.break-continue",
        category="control-flow",
        severity="error",
        message="break/continue do not exist in RPGLE",
        suggested_fix="leave; / iter;",
        matcher=pattern_matcher(
            r"^(break|continue)\s*$", opcodes=("break", "continue"), fix=_loop_control_fix
        ),
        example_bad="dow more;\n  break;\nenddo;",
        example_good="dow more;\n  leave;\nenddo;",
    ),
    Rule(
        id="ctl.switch-case",
        category="control-flow",
        severity="error",
        message="RPGLE has no switch/case statement",
        suggested_fix="select; when condition; ... other; ... endsl;",
        matcher=pattern_matcher(
            r"^(switch|case|default)\b(?!\s*(?:\*\*|[-+*/])?=)", opcodes=("switch", "case", "default")
        ),
        example_bad="switch status;",
        example_good="select;\n  when status = 'A';\n    x = 1;\n  other;\n    x = 0;\nendsl;",
    ),
    Rule(
        id="ctl.if-then",
        category="control-flow",
        severity="error",
        message="conditions are not followed by then",
        suggested_fix="if condition;",
        matcher=pattern_matcher(r"\bthen\s*$", opcodes=("if", "elseif", "when", "dow", "dou")),
        example_bad="if total > 0 then;\n  x = 1;\nendif;",
        example_good="if total > 0;\n  x = 1;\nendif;",
    ),
    Rule(
        id="ctl.braces",
        category="control-flow",
        severity="error",
        message="RPGLE blocks are not delimited by braces",
        suggested_fix="close the block with its terminator (endif, enddo, ...)",
        matcher=pattern_matcher(r"[{}]"),
        example_bad="if total > 0 {\n  x = 1;\n}",
        example_good="if total > 0;\n  x = 1;\nendif;",
    ),
    Rule(
        id="ctl.on-error-outside-monitor",
        category="control-flow",
        severity="error",
        message="on-error must be directly inside a monitor group",
        suggested_fix="monitor; ... on-error; ... endmon;",
        matcher=_on_error_outside_monitor,
        example_bad="x = 1;\non-error;\n  x = 0;",
        example_good="monitor;\n  x = 1;\non-error;\n  x = 0;\nendmon;",
    ),
    Rule(
        id="ctl.try-catch",
        category="control-flow",
        severity="error",
        message="RPGLE has no try/catch",
        suggested_fix="monitor; ... on-error; ... endmon;",
        matcher=pattern_matcher(
            r"^(try|catch|finally)\b(?!\s*(?:\*\*|[-+*/])?=)", opcodes=("try", "catch", "finally")
        ),
        example_bad="try;\n  x = 1;\ncatch;\n  x = 0;",
        example_good="monitor;\n  x = 1;\non-error;\n  x = 0;\nendmon;",
    ),
    Rule(
        id="ctl.leave-outside-loop",
        category="control-flow",
        severity="error",
        message="loop control used outside a loop",
        suggested_fix="use leave/iter only inside dow, dou, for or for-each",
        matcher=_leave_outside_loop,
        example_bad="if done;\n  leave;\nendif;",
        example_good="dow not done;\n  if done;\n    leave;\n  endif;\nenddo;",
    ),
    Rule(
        id="ctl.select-without-when",
        category="control-flow",
        severity="warning",
        message="select group has no when clause",
        suggested_fix="select; when condition; ... endsl;",
        matcher=_select_without_when,
        scope="block",
        block_kinds=("select",),
        example_bad="select;\n  other;\n    x = 0;\nendsl;",
        example_good="select;\n  when x = 1;\n    y = 1;\n  other;\n    y = 0;\nendsl;",
    ),
)
