from __future__ import annotations

import re
from dataclasses import dataclass

from rpgle_lint.models import DECLARATION_OPCODES, Declaration, LogicalStatement

_KEYWORD_DECLARATION_RE = re.compile(
    r"\s*(dcl-[a-z]+)\s+([\w#@$*]+)\s*", re.IGNORECASE
)
_SUBFIELD_RE = re.compile(r"\s*([\w#@$]+)\s*", re.IGNORECASE)

PROCEDURE_OPCODES = {"dcl-proc"}


@dataclass(frozen=True)
class DeclarationParts:
    keyword: str
    name: str
    attributes: str
    offset: int


def declaration_parts(statement: LogicalStatement) -> DeclarationParts | None:
    """Splits a declaration into keyword, name and the keyword/type text after the name.

    ``offset`` is the position of the attributes inside ``statement.code`` so
    that matches against them can be mapped back to a source line.
    """
    if statement.kind != "statement":
        return None

    opcode = statement.opcode
    if opcode in DECLARATION_OPCODES or opcode in PROCEDURE_OPCODES:
        match = _KEYWORD_DECLARATION_RE.match(statement.code)
        if not match:
            return None
        return DeclarationParts(
            keyword=match.group(1).lower(),
            name=match.group(2),
            attributes=statement.code[match.end() :],
            offset=match.end(),
        )

    if statement.is_declaration:
        match = _SUBFIELD_RE.match(statement.code)
        if not match:
            return None
        kind = "parameter" if statement.enclosing in {"dcl-pi", "dcl-pr"} else "subfield"
        return DeclarationParts(
            keyword=kind,
            name=match.group(1),
            attributes=statement.code[match.end() :],
            offset=match.end(),
        )

    return None


def parse_declaration(statement: LogicalStatement) -> Declaration | None:
    parts = declaration_parts(statement)
    if parts is None or parts.keyword in PROCEDURE_OPCODES or parts.keyword == "dcl-pi":
        return None
    if parts.name.startswith("*"):
        return None
    if parts.keyword == "parameter" and statement.enclosing == "dcl-pr":
        return None
    return Declaration(
        name=parts.name,
        kind=parts.keyword,
        line=statement.start_line,
        attributes=" ".join(parts.attributes.lower().split()),
    )
