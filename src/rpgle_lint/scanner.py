from __future__ import annotations

import re
from dataclasses import dataclass, field

from rpgle_lint.models import LogicalStatement, ScanIssue, ScanResult
from rpgle_lint.rules.diagnostics import (
    UNBALANCED_QUOTE,
    UNMATCHED_TERMINATOR,
    UNTERMINATED_BLOCK,
    UNTERMINATED_STATEMENT,
)

BLOCK_OPENERS = {
    "dcl-proc",
    "dcl-ds",
    "dcl-pr",
    "dcl-pi",
    "monitor",
    "if",
    "dow",
    "dou",
    "for",
    "for-each",
    "select",
    "begsr",
}

BLOCK_TERMINATORS = {
    "end-proc": ("dcl-proc",),
    "end-ds": ("dcl-ds",),
    "end-pr": ("dcl-pr",),
    "end-pi": ("dcl-pi",),
    "endmon": ("monitor",),
    "endif": ("if",),
    "enddo": ("dow", "dou"),
    "endfor": ("for", "for-each"),
    "endsl": ("select",),
    "endsr": ("begsr",),
}

_INLINE_END_RE = re.compile(r"\bend-(ds|pr|pi)\b(\s+[\w#@$]+)?\s*$", re.IGNORECASE)
_LIKE_DS_RE = re.compile(r"\blike(ds|rec)\s*\(", re.IGNORECASE)
_DATA_MARKER_RE = re.compile(r"\*\*(?!free\b)", re.IGNORECASE)


@dataclass
class _OpenBlock:
    kind: str
    statement: LogicalStatement
    first_index: int


@dataclass
class _Buffer:
    raw: list[str] = field(default_factory=list)
    masked: list[str] = field(default_factory=list)
    start_line: int | None = None

    def add(self, char: str, line_no: int, *, masked: bool = False) -> None:
        if self.start_line is None:
            if char.isspace():
                return
            self.start_line = line_no
        self.raw.append(char)
        if not masked:
            self.masked.append(char)

    def newline(self) -> None:
        if self.start_line is not None:
            self.raw.append("\n")
            self.masked.append("\n")

    @property
    def empty(self) -> bool:
        return self.start_line is None

    def reset(self) -> None:
        self.raw.clear()
        self.masked.clear()
        self.start_line = None


class Scanner:
    """Splits free-format RPGLE source into logical statements."""

    def __init__(self, source: str):
        self.lines = source.splitlines()
        self.statements: list[LogicalStatement] = []
        self.issues: list[ScanIssue] = []
        self.stack: list[_OpenBlock] = []
        self.declaration_counts: list[int] = [0]

    def scan(self) -> ScanResult:
        buffer = _Buffer()
        in_literal = False
        literal_line = 0

        for line_no, line in enumerate(self.lines, start=1):
            if buffer.empty and not in_literal:
                stripped = line.strip()
                if _is_data_marker(stripped):
                    break
                if stripped.startswith("**") or (
                    stripped.startswith("/") and not stripped.startswith("//")
                ):
                    code = _strip_directive_comment(stripped)
                    self._emit(stripped, code, line_no, line_no, kind="directive")
                    if code.lower().startswith("/eof"):
                        break
                    continue

            index = 0
            while index < len(line):
                char = line[index]
                if in_literal:
                    buffer.add(char, line_no, masked=True)
                    if char == "'":
                        if line.startswith("''", index):
                            buffer.add("'", line_no, masked=True)
                            index += 2
                            continue
                        in_literal = False
                        buffer.masked.append("'")
                    index += 1
                    continue

                if char == "'":
                    in_literal = True
                    literal_line = line_no
                    buffer.add(char, line_no)
                elif char == "/" and line.startswith("//", index):
                    break
                elif char == ";":
                    if not buffer.empty:
                        self._finish(buffer, line_no)
                    buffer.reset()
                else:
                    buffer.add(char, line_no)
                index += 1

            if in_literal:
                if line.rstrip().endswith(("+", "-")):
                    buffer.newline()
                    continue
                self.issues.append(
                    ScanIssue(
                        rule_id=UNBALANCED_QUOTE,
                        line=literal_line,
                        excerpt=self._source_line(literal_line),
                        detail="string literal is not closed before the end of the line",
                    )
                )
                in_literal = False
                buffer.masked.append("'")
            buffer.newline()

        if not buffer.empty:
            line_no = self._last_line(buffer)
            self.issues.append(
                ScanIssue(
                    rule_id=UNTERMINATED_STATEMENT,
                    line=buffer.start_line or line_no,
                    excerpt=self._source_line(buffer.start_line or line_no),
                    detail="statement is not terminated by ';'",
                )
            )
            self._finish(buffer, line_no)

        while self.stack:
            self._report_unterminated(self.stack.pop())

        return ScanResult(statements=tuple(self.statements), issues=tuple(self.issues))

    def _finish(self, buffer: _Buffer, end_line: int) -> None:
        text = "".join(buffer.raw).rstrip()
        code = "".join(buffer.masked).rstrip()
        start_line = buffer.start_line or end_line
        end_line = start_line + text.count("\n")
        self._emit(text, code, start_line, end_line, kind="statement")

    def _emit(self, text: str, code: str, start_line: int, end_line: int, *, kind: str) -> None:
        statement = LogicalStatement(
            text=text,
            code=code,
            start_line=start_line,
            end_line=end_line,
            preceding_declaration_count=self.declaration_counts[-1],
            kind=kind,
            blocks=tuple(item.kind for item in self.stack),
        )
        self.statements.append(statement)
        if kind != "statement":
            return

        if statement.is_declaration:
            self.declaration_counts[-1] += 1

        opcode = statement.opcode
        if opcode in BLOCK_TERMINATORS:
            self._close(opcode, statement)
        elif opcode in BLOCK_OPENERS and _opens_block(opcode, statement.code):
            self.stack.append(
                _OpenBlock(kind=opcode, statement=statement, first_index=len(self.statements) - 1)
            )
            if opcode == "dcl-proc":
                self.declaration_counts.append(0)

    def _close(self, terminator: str, statement: LogicalStatement) -> None:
        kinds = BLOCK_TERMINATORS[terminator]
        depth = len(self.stack) - 1
        while depth >= 0 and self.stack[depth].kind not in kinds:
            depth -= 1

        if depth < 0:
            self.issues.append(
                ScanIssue(
                    rule_id=UNMATCHED_TERMINATOR,
                    line=statement.start_line,
                    excerpt=statement.line_text(statement.start_line),
                    detail=f"'{terminator}' does not close any open block",
                )
            )
            return

        while len(self.stack) - 1 > depth:
            self._report_unterminated(self.stack.pop())

        block = self.stack.pop()
        if block.kind == "dcl-proc":
            self._leave_procedure()

        children = tuple(
            item for item in self.statements[block.first_index :] if item.kind == "statement"
        )
        self.statements.append(
            LogicalStatement(
                text="\n".join(self.lines[block.statement.start_line - 1 : statement.end_line]),
                code="\n".join(item.code for item in children),
                start_line=block.statement.start_line,
                end_line=statement.end_line,
                preceding_declaration_count=block.statement.preceding_declaration_count,
                kind="block",
                blocks=block.statement.blocks,
                children=children,
            )
        )

    def _report_unterminated(self, block: _OpenBlock) -> None:
        if block.kind == "dcl-proc":
            self._leave_procedure()
        opener = block.statement
        self.issues.append(
            ScanIssue(
                rule_id=UNTERMINATED_BLOCK,
                line=opener.start_line,
                excerpt=opener.line_text(opener.start_line),
                detail=f"'{block.kind}' block has no matching terminator",
            )
        )

    def _leave_procedure(self) -> None:
        if len(self.declaration_counts) > 1:
            self.declaration_counts.pop()

    def _source_line(self, line_no: int) -> str:
        if 1 <= line_no <= len(self.lines):
            return self.lines[line_no - 1].strip()[:300]
        return ""

    def _last_line(self, buffer: _Buffer) -> int:
        text = "".join(buffer.raw).rstrip()
        return (buffer.start_line or 1) + text.count("\n")


def scan_source(source: str) -> ScanResult:
    return Scanner(source).scan()


def _opens_block(opcode: str, code: str) -> bool:
    if opcode in {"dcl-ds", "dcl-pr", "dcl-pi"} and _INLINE_END_RE.search(code):
        return False
    if opcode == "dcl-ds" and _LIKE_DS_RE.search(code):
        return False
    return True


def _is_data_marker(stripped: str) -> bool:
    if stripped.lower().startswith("**ctdata"):
        return True
    return stripped.startswith("**") and bool(_DATA_MARKER_RE.match(stripped)) and (
        len(stripped) == 2 or stripped[2].isspace()
    )


def _strip_directive_comment(stripped: str) -> str:
    in_literal = False
    for index in range(1, len(stripped)):
        char = stripped[index]
        if char == "'":
            in_literal = not in_literal
        elif not in_literal and stripped.startswith("//", index):
            return stripped[:index].rstrip()
    return stripped
