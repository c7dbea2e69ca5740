from __future__ import annotations

import re
from typing import Iterator

from rpgle_lint.declarations import declaration_parts
from rpgle_lint.models import Hit, LogicalStatement, ProcedureContext, Rule
from rpgle_lint.rules.base import attribute_matcher, hit_at, identifiers

VALID_INTEGER_LENGTHS = (3, 5, 10, 20)

LATE_DECLARATION_OPCODES = {"dcl-s", "dcl-c", "dcl-ds", "dcl-f", "dcl-pr", "dcl-pi"}

FOREIGN_TYPES = {
    "string": "varchar(n)",
    "text": "varchar(n)",
    "boolean": "ind",
    "bool": "ind",
    "integer": "int(10)",
    "long": "int(20)",
    "short": "int(5)",
    "byte": "int(3) or char(1)",
    "double": "float(8)",
    "decimal": "packed(digits : decimals)",
    "number": "packed(digits : decimals) or int(10)",
}

_SIZE_FUNCTION_RE = re.compile(r"%(size|elem|len)\s*\(\s*$", re.IGNORECASE)
_BASED_RE = re.compile(r"\bbased\b(\s*\(\s*([\w#@$.]*)\s*\))?", re.IGNORECASE)


def nearest_integer_length(digits: int) -> int:
    return min(VALID_INTEGER_LENGTHS, key=lambda length: (abs(length - digits), -length))


def _integer_length_fix(found: re.Match) -> str:
    return f"{found.group(1).lower()}({nearest_integer_length(int(found.group(2)))})"


def _foreign_type_fix(found: re.Match) -> str:
    return FOREIGN_TYPES[found.group(1).lower()]


def _declared_after_code(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    if statement.opcode in LATE_DECLARATION_OPCODES and context.code_seen:
        yield Hit(
            line=statement.start_line,
            message=(
                f"{statement.opcode} appears after executable code "
                f"(first executable statement at line {context.first_code_line})"
            ),
        )


def _template_used_directly(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    if not statement.is_executable:
        return
    code = statement.code
    for found in identifiers(code):
        declaration = context.lookup(found.group(1))
        if declaration is None or not declaration.is_template:
            continue
        if _SIZE_FUNCTION_RE.search(code[: found.start()]):
            continue
        yield hit_at(
            statement,
            found.start(),
            message=f"'{declaration.name}' is a template and has no storage",
            suggested_fix=f"dcl-ds work likeds({declaration.name}); then use work instead",
        )


def _based_without_pointer(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    parts = declaration_parts(statement)
    if parts is None:
        return
    for found in _BASED_RE.finditer(parts.attributes):
        line = statement.line_at(parts.offset + found.start())
        pointer = found.group(2)
        if not pointer:
            yield Hit(line=line, message="based keyword is missing its basing pointer")
            continue
        # Qualified subfields (ds.ptr) are not tracked by name.
        if "." in pointer:
            continue
        declaration = context.lookup(pointer)
        if declaration is None or declaration.is_pointer or declaration.data_type in {"", "like"}:
            continue
        yield Hit(
            line=line,
            message=(
                f"basing pointer '{pointer}' is declared as "
                f"{declaration.data_type}, not as a pointer"
            ),
            suggested_fix=f"dcl-s {pointer} pointer;",
        )


def _psds_template(statement: LogicalStatement, context: ProcedureContext) -> Iterator[Hit]:
    parts = declaration_parts(statement)
    if parts is None or parts.keyword != "dcl-ds":
        return
    words = set(re.findall(r"[a-z-]+", parts.attributes.lower()))
    if {"psds", "template"} <= words:
        yield Hit(line=statement.start_line)


def _subfield_declared_with_dcl_s(
    statement: LogicalStatement, context: ProcedureContext
) -> Iterator[Hit]:
    if statement.opcode == "dcl-s" and statement.enclosing == "dcl-ds":
        yield Hit(line=statement.start_line)


RULES = (
    Rule(
        id="decl.standalone-qualified",
        category="declarations",
        severity="error",
        message="qualified is only valid on a data structure, not on dcl-s",
        suggested_fix="dcl-ds name qualified; ...subfields... end-ds;",
        matcher=attribute_matcher(r"\bqualified\b", keywords=("dcl-s",)),
        example_bad="dcl-s errorInfo qualified;",
        example_good="dcl-ds errorInfo qualified;\n  code char(7);\n  text varchar(132);\nend-ds;",
    ),
    Rule(
        id="decl.after-code",
        category="declarations",
        severity="error",
        message="declaration appears after executable code",
        suggested_fix="move all declarations to the top of the procedure, before the first executable statement",
        matcher=_declared_after_code,
        example_bad=(
            "dcl-proc calc;\n"
            "  dcl-s total int(10);\n"
            "  total = 0;\n"
            "  dcl-s count int(10);\n"
            "  count = 1;\n"
            "end-proc;"
        ),
        example_good=(
            "dcl-proc calc;\n"
            "  dcl-s total int(10);\n"
            "  dcl-s count int(10);\n"
            "  total = 0;\n"
            "  count = 1;\n"
            "end-proc;"
        ),
    ),
    Rule(
        id="decl.invalid-int-length",
        category="declarations",
        severity="error",
        message="integer length must be 3, 5, 10 or 20 digits",
        suggested_fix="int(10)",
        matcher=attribute_matcher(
            r"(?<![%\w*-])(int|uns)\s*\(\s*(?!(?:3|5|10|20)\s*\))(\d+)\s*\)",
            fix=_integer_length_fix,
        ),
        example_bad="dcl-s counter int(4);",
        example_good="dcl-s counter int(10);",
    ),
    Rule(
        id="decl.char-without-length",
        category="declarations",
        severity="error",
        message="character and decimal types need an explicit length",
        suggested_fix="char(10), varchar(50), packed(9 : 2)",
        matcher=attribute_matcher(
            r"(?<![%\w*-])(char|varchar|graph|vargraph|ucs2|varucs2|packed|zoned|bindec)\b(?!\s*\()"
        ),
        example_bad="dcl-s customerName varchar;",
        example_good="dcl-s customerName varchar(50);",
    ),
    Rule(
        id="decl.zero-length",
        category="declarations",
        severity="error",
        message="lengths and dimensions must be at least 1",
        suggested_fix="use a length or dim() of 1 or more",
        matcher=attribute_matcher(
            r"(?<![%\w*-])(char|varchar|graph|ucs2|packed|zoned|int|uns|bindec|dim)\s*\(\s*0\s*[:)]"
        ),
        example_bad="dcl-s items char(10) dim(0);",
        example_good="dcl-s items char(10) dim(10);",
    ),
    Rule(
        id="decl.template-used-directly",
        category="declarations",
        severity="error",
        message="a template has no storage and cannot be used in calculations",
        suggested_fix="declare a variable with likeds()/like() and use that variable",
        matcher=_template_used_directly,
        example_bad=(
            "dcl-ds customer_t qualified template;\n"
            "  id int(10);\n"
            "end-ds;\n"
            "customer_t.id = 5;"
        ),
        example_good=(
            "dcl-ds customer_t qualified template;\n"
            "  id int(10);\n"
            "end-ds;\n"
            "dcl-ds customer likeds(customer_t);\n"
            "customer.id = 5;"
        ),
    ),
    Rule(
        id="decl.based-without-pointer",
        category="declarations",
        severity="error",
        message="based variable has no usable basing pointer",
        suggested_fix="dcl-s ptr pointer; then based(ptr)",
        matcher=_based_without_pointer,
        example_bad="dcl-s buffer char(100) based;",
        example_good="dcl-s bufPtr pointer;\ndcl-s buffer char(100) based(bufPtr);",
    ),
    Rule(
        id="decl.numeric-inz-literal",
        category="declarations",
        severity="error",
        message="numeric field initialised with a character literal",
        suggested_fix="inz(0)",
        matcher=attribute_matcher(
            r"^(int|uns|packed|zoned|bindec|float)\b[\s\S]*?\binz\s*\(\s*'"
        ),
        example_bad="dcl-s quantity int(10) inz('0');",
        example_good="dcl-s quantity int(10) inz(0);",
    ),
    Rule(
        id="decl.const-with-type",
        category="declarations",
        severity="error",
        message="named constants take no data type",
        suggested_fix="dcl-c NAME value; or dcl-c NAME const(value);",
        matcher=attribute_matcher(
            r"^(int|uns|char|varchar|packed|zoned|ind|date|time|timestamp|float|pointer)\b",
            keywords=("dcl-c",),
        ),
        example_bad="dcl-c MAX_ITEMS int(10) 100;",
        example_good="dcl-c MAX_ITEMS 100;",
    ),
    Rule(
        id="decl.foreign-type",
        category="declarations",
        severity="error",
        message="data type does not exist in RPGLE",
        suggested_fix="use an RPGLE type such as varchar(n), ind, int(10) or packed(p : s)",
        matcher=attribute_matcher(
            r"^(string|text|boolean|bool|integer|long|short|byte|double|decimal|number)\b",
            keywords=("dcl-s", "dcl-subf", "dcl-parm", "dcl-pr", "dcl-pi", "subfield", "parameter"),
            fix=_foreign_type_fix,
        ),
        example_bad="dcl-s isValid boolean;",
        example_good="dcl-s isValid ind;",
    ),
    Rule(
        id="decl.ind-length",
        category="declarations",
        severity="error",
        message="ind takes no length",
        suggested_fix="ind",
        matcher=attribute_matcher(r"(?<![%\w*-])ind\s*\("),
        example_bad="dcl-s flag ind(1);",
        example_good="dcl-s flag ind;",
    ),
    Rule(
        id="decl.date-length",
        category="declarations",
        severity="error",
        message="date and time types take a format, not a length",
        suggested_fix="date(*iso) or time(*hms)",
        matcher=attribute_matcher(r"(?<![%\w*-])(date|time)\s*\(\s*\d"),
        example_bad="dcl-s orderDate date(10);",
        example_good="dcl-s orderDate date(*iso);",
    ),
    Rule(
        id="decl.varying-keyword",
        category="declarations",
        severity="error",
        message="varying is a fixed-form keyword",
        suggested_fix="varchar(n)",
        matcher=attribute_matcher(r"\bvarying\b"),
        example_bad="dcl-s comment char(200) varying;",
        example_good="dcl-s comment varchar(200);",
    ),
    Rule(
        id="decl.likeds-on-standalone",
        category="declarations",
        severity="error",
        message="likeds/likerec define a data structure and need dcl-ds",
        suggested_fix="dcl-ds name likeds(template);",
        matcher=attribute_matcher(r"\blike(ds|rec)\s*\(", keywords=("dcl-s",)),
        example_bad="dcl-s order likeds(order_t);",
        example_good="dcl-ds order likeds(order_t);",
    ),
    Rule(
        id="decl.psds-template",
        category="declarations",
        severity="error",
        message="psds and template are mutually exclusive keywords",
        suggested_fix="drop template: dcl-ds pgmStatus psds qualified; ... end-ds;",
        matcher=_psds_template,
        example_bad="dcl-ds pgmStatus psds template qualified;\n  pgmName *proc;\nend-ds;",
        example_good="dcl-ds pgmStatus psds qualified;\n  pgmName *proc;\nend-ds;",
    ),
    Rule(
        id="decl.psds-on-standalone",
        category="declarations",
        severity="error",
        message="psds is only valid on a data structure",
        suggested_fix="dcl-ds name psds qualified; ...subfields... end-ds;",
        matcher=attribute_matcher(r"\bpsds\b", keywords=("dcl-s",)),
        example_bad="dcl-s status psds;",
        example_good="dcl-ds status psds qualified;\n  jobName char(10) pos(244);\nend-ds;",
    ),
    Rule(
        id="decl.subfield-dcl-s",
        category="declarations",
        severity="error",
        message="subfields are not declared with dcl-s",
        suggested_fix="write the subfield as 'name type;' or 'dcl-subf name type;'",
        matcher=_subfield_declared_with_dcl_s,
        example_bad="dcl-ds customer qualified;\n  dcl-s id int(10);\nend-ds;",
        example_good="dcl-ds customer qualified;\n  id int(10);\nend-ds;",
    ),
    Rule(
        id="decl.overlay-on-standalone",
        category="declarations",
        severity="error",
        message="overlay is only valid on data structure subfields",
        suggested_fix="declare both fields as subfields of one dcl-ds",
        matcher=attribute_matcher(r"\boverlay\s*\(", keywords=("dcl-s",)),
        example_bad="dcl-s part char(5) overlay(whole);",
        example_good="dcl-ds record;\n  whole char(10);\n  part char(5) overlay(whole);\nend-ds;",
    ),
)
