from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from rpgle_lint.declarations import declaration_parts
from rpgle_lint.models import Hit, LogicalStatement, Matcher, ProcedureContext

FixBuilder = Callable[[re.Match], str]

_BIF_RE = re.compile(r"%([a-z][a-z0-9]*)\s*(\()?", re.IGNORECASE)


@dataclass(frozen=True)
class BifCall:
    name: str
    start: int
    end: int
    arguments: tuple[str, ...]
    separators: tuple[str, ...]


def pattern_matcher(
    pattern: str,
    *,
    source: str = "code",
    opcodes: Iterable[str] = (),
    ignore_case: bool = True,
    fix: FixBuilder | None = None,
) -> Matcher:
    regex = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    allowed = frozenset(opcodes)

    def match(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
        if allowed and statement.opcode not in allowed:
            return
        haystack = statement.text if source == "text" else statement.code
        for found in regex.finditer(haystack):
            yield Hit(
                line=statement.line_at(found.start(), haystack),
                suggested_fix=fix(found) if fix else None,
            )

    return match


def attribute_matcher(
    pattern: str,
    *,
    keywords: Iterable[str] = (),
    enclosing: Iterable[str] = (),
    fix: FixBuilder | None = None,
) -> Matcher:
    """Matches against the keyword text that follows a declared name."""
    regex = re.compile(pattern, re.IGNORECASE)
    allowed = frozenset(keywords)
    parents = frozenset(enclosing)

    def match(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
        if parents and statement.enclosing not in parents:
            return
        parts = declaration_parts(statement)
        if parts is None or (allowed and parts.keyword not in allowed):
            return
        for found in regex.finditer(parts.attributes):
            yield Hit(
                line=statement.line_at(parts.offset + found.start()),
                suggested_fix=fix(found) if fix else None,
            )

    return match


def bif_calls(code: str) -> Iterator[BifCall]:
    """Yields every %bif in the masked code with its top-level arguments."""
    for found in _BIF_RE.finditer(code):
        name = found.group(1).lower()
        if not found.group(2):
            yield BifCall(name=name, start=found.start(), end=found.end(), arguments=(), separators=())
            continue

        depth = 0
        arguments: list[str] = []
        separators: list[str] = []
        current: list[str] = []
        index = found.end()
        while index < len(code):
            char = code[index]
            if char == "(":
                depth += 1
            elif char == ")":
                if depth == 0:
                    break
                depth -= 1
            elif depth == 0 and char in ":,":
                arguments.append("".join(current).strip())
                separators.append(char)
                current = []
                index += 1
                continue
            current.append(char)
            index += 1

        arguments.append("".join(current).strip())
        yield BifCall(
            name=name,
            start=found.start(),
            end=min(index + 1, len(code)),
            arguments=tuple(arguments),
            separators=tuple(separators),
        )


def identifiers(code: str) -> Iterator[re.Match]:
    return re.finditer(r"(?<![\w#@$%*.])([a-z_#@$][\w#@$]*)", code, re.IGNORECASE)


def hit_at(statement: LogicalStatement, offset: int, **kwargs: str) -> Hit:
    return Hit(line=statement.line_at(offset), **kwargs)
