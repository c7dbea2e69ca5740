from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Iterable

SEVERITY_RANK = {"warning": 1, "error": 2}
SEVERITIES = tuple(SEVERITY_RANK)

RULE_SCOPES = ("statement", "directive", "block", "diagnostic")

DECLARATION_OPCODES = {
    "dcl-s",
    "dcl-c",
    "dcl-ds",
    "dcl-f",
    "dcl-pr",
    "dcl-pi",
    "dcl-subf",
    "dcl-parm",
}
DECLARATION_BLOCKS = {"dcl-ds", "dcl-pr", "dcl-pi"}
NON_EXECUTABLE_OPCODES = DECLARATION_OPCODES | {
    "ctl-opt",
    "dcl-proc",
    "end-proc",
    "end-ds",
    "end-pr",
    "end-pi",
}

_OPCODE_RE = re.compile(r"\s*([a-z0-9_#@$*/-]+)", re.IGNORECASE)
_SQL_RE = re.compile(r"\s*exec\s+sql\b", re.IGNORECASE)
_TYPE_RE = re.compile(r"([a-z0-9-]+)")


@dataclass(frozen=True)
class LogicalStatement:
    text: str
    start_line: int
    end_line: int
    preceding_declaration_count: int = 0
    code: str = ""
    kind: str = "statement"
    blocks: tuple[str, ...] = ()
    children: tuple[LogicalStatement, ...] = ()

    def __post_init__(self) -> None:
        if self.start_line > self.end_line:
            raise ValueError(
                f"statement starts after it ends: {self.start_line} > {self.end_line}"
            )
        if not self.code:
            object.__setattr__(self, "code", self.text)

    @property
    def opcode(self) -> str:
        match = _OPCODE_RE.match(self.code)
        return match.group(1).lower() if match else ""

    @property
    def enclosing(self) -> str | None:
        return self.blocks[-1] if self.blocks else None

    @property
    def is_sql(self) -> bool:
        return bool(_SQL_RE.match(self.code))

    @property
    def is_declaration(self) -> bool:
        if self.kind != "statement":
            return False
        opcode = self.opcode
        if opcode in DECLARATION_OPCODES:
            return True
        return self.enclosing in DECLARATION_BLOCKS and opcode not in NON_EXECUTABLE_OPCODES

    @property
    def is_executable(self) -> bool:
        if self.kind != "statement" or self.is_declaration:
            return False
        return self.opcode not in NON_EXECUTABLE_OPCODES

    def line_at(self, offset: int, source: str | None = None) -> int:
        haystack = self.code if source is None else source
        return self.start_line + haystack.count("\n", 0, offset)

    def line_text(self, line: int) -> str:
        lines = self.text.splitlines()
        index = line - self.start_line
        if 0 <= index < len(lines):
            return lines[index].strip()
        return lines[0].strip() if lines else ""


@dataclass(frozen=True)
class Finding:
    rule_id: str
    line: int
    excerpt: str
    message: str
    suggested_fix: str
    severity: str = "error"
    category: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Hit:
    line: int
    message: str | None = None
    suggested_fix: str | None = None


Matcher = Callable[[LogicalStatement, "ProcedureContext"], Iterable[Hit]]


def _never(statement: LogicalStatement, context: ProcedureContext) -> Iterable[Hit]:
    return ()


@dataclass(frozen=True)
class Rule:
    id: str
    category: str
    severity: str
    message: str
    suggested_fix: str
    matcher: Matcher = field(default=_never, compare=False, repr=False)
    scope: str = "statement"
    block_kinds: tuple[str, ...] = ()
    include_sql: bool = False
    example_bad: str | None = None
    example_good: str | None = None

    def __post_init__(self) -> None:
        if self.severity not in SEVERITY_RANK:
            raise ValueError(f"Rule {self.id} has unknown severity: {self.severity}")
        if self.scope not in RULE_SCOPES:
            raise ValueError(f"Rule {self.id} has unknown scope: {self.scope}")

    def applies_to(self, statement: LogicalStatement) -> bool:
        if self.scope == "statement":
            return statement.kind == "statement" and (self.include_sql or not statement.is_sql)
        if self.scope == "directive":
            return statement.kind == "directive"
        if self.scope == "block":
            return statement.kind == "block" and statement.opcode in self.block_kinds
        return False

    def evaluate(self, statement: LogicalStatement, context: ProcedureContext) -> list[Finding]:
        if not self.applies_to(statement):
            return []
        return [
            self.finding(
                hit.line,
                statement.line_text(hit.line),
                message=hit.message,
                suggested_fix=hit.suggested_fix,
            )
            for hit in self.matcher(statement, context)
        ]

    def finding(
        self,
        line: int,
        excerpt: str,
        *,
        message: str | None = None,
        suggested_fix: str | None = None,
    ) -> Finding:
        return Finding(
            rule_id=self.id,
            line=line,
            excerpt=excerpt[:300],
            message=message or self.message,
            suggested_fix=suggested_fix or self.suggested_fix,
            severity=self.severity,
            category=self.category,
        )

    def with_changes(self, **changes: Any) -> Rule:
        return replace(self, **changes)


@dataclass(frozen=True)
class Declaration:
    name: str
    kind: str
    line: int
    attributes: str

    @property
    def data_type(self) -> str:
        match = _TYPE_RE.match(self.attributes)
        return match.group(1) if match else ""

    @property
    def is_template(self) -> bool:
        return re.search(r"\btemplate\b", self.attributes) is not None

    @property
    def is_array(self) -> bool:
        return re.search(r"\b(dim|occurs)\s*\(", self.attributes) is not None

    @property
    def is_pointer(self) -> bool:
        return self.data_type == "pointer"


@dataclass
class ProcedureContext:
    name: str | None = None
    parent: ProcedureContext | None = None
    start_line: int = 0
    code_seen: bool = False
    first_code_line: int | None = None
    declared: dict[str, Declaration] = field(default_factory=dict)
    sql_statements: int = 0

    @property
    def root(self) -> ProcedureContext:
        context = self
        while context.parent is not None:
            context = context.parent
        return context

    @property
    def is_module(self) -> bool:
        return self.parent is None

    def declare(self, declaration: Declaration) -> None:
        self.declared.setdefault(declaration.name.lower(), declaration)

    def lookup(self, name: str) -> Declaration | None:
        key = name.lower()
        context: ProcedureContext | None = self
        while context is not None:
            if key in context.declared:
                return context.declared[key]
            context = context.parent
        return None

    def mark_code(self, line: int) -> None:
        if not self.code_seen:
            self.code_seen = True
            self.first_code_line = line


@dataclass(frozen=True)
class ScanIssue:
    rule_id: str
    line: int
    excerpt: str
    detail: str


@dataclass(frozen=True)
class ScanResult:
    statements: tuple[LogicalStatement, ...]
    issues: tuple[ScanIssue, ...]


@dataclass(frozen=True)
class FileResult:
    path: str
    findings: tuple[Finding, ...]
    error: str | None = None

    @property
    def has_errors(self) -> bool:
        return any(item.severity == "error" for item in self.findings)


@dataclass(frozen=True)
class LintRun:
    files: tuple[FileResult, ...]

    @property
    def findings_count(self) -> int:
        return sum(len(item.findings) for item in self.files)

    @property
    def has_errors(self) -> bool:
        return any(item.has_errors for item in self.files)


@dataclass(frozen=True)
class LintConfig:
    rule_set: str | None = None
    severity_threshold: str = "warning"
    format: str = "text"
    output: str | None = None
    disabled_rules: tuple[str, ...] = ()
    workers: int = 1
    include_exts: tuple[str, ...] = (".rpgle", ".sqlrpgle", ".rpgleinc")
    exclude_dirs: tuple[str, ...] = (
        ".git",
        ".venv",
        "node_modules",
        "build",
        "dist",
        "__pycache__",
    )


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    return sorted(findings, key=lambda item: (item.line, item.rule_id))
