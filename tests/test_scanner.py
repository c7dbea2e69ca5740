from rpgle_lint.rules import default_registry
from rpgle_lint.rules.diagnostics import (
    UNBALANCED_QUOTE,
    UNMATCHED_TERMINATOR,
    UNTERMINATED_BLOCK,
    UNTERMINATED_STATEMENT,
)
from rpgle_lint.scanner import scan_source


def _statements(source: str):
    return [item for item in scan_source(source).statements if item.kind == "statement"]


def test_statements_are_split_on_semicolons_with_line_numbers():
    result = scan_source("dcl-s a int(10);\na = 1; b = 2;\nc =\n  3;\n")

    statements = [item for item in result.statements if item.kind == "statement"]
    assert [item.text for item in statements] == ["dcl-s a int(10)", "a = 1", "b = 2", "c =\n  3"]
    assert [(item.start_line, item.end_line) for item in statements] == [
        (1, 1),
        (2, 2),
        (2, 2),
        (3, 4),
    ]
    assert not result.issues


def test_comments_are_stripped_and_literals_masked():
    statements = _statements("msg = 'a;b // not a comment'; // trailing; comment\nx = 1;")

    assert len(statements) == 2
    assert statements[0].text == "msg = 'a;b // not a comment'"
    assert statements[0].code == "msg = ''"
    assert statements[1].text == "x = 1"


def test_doubled_quote_is_an_escaped_quote():
    result = scan_source("msg = 'It''s done';")

    statements = [item for item in result.statements if item.kind == "statement"]
    assert statements[0].text == "msg = 'It''s done'"
    assert statements[0].code == "msg = ''"
    assert not result.issues


def test_literal_continued_with_plus_spans_lines():
    result = scan_source("msg = 'first part +\n  second part';\nx = 1;")

    statements = [item for item in result.statements if item.kind == "statement"]
    assert statements[0].start_line == 1
    assert statements[0].end_line == 2
    assert statements[1].start_line == 3
    assert not result.issues


def test_unbalanced_quote_is_reported_and_scanning_continues():
    result = scan_source("msg = 'Hello;\nx = 1;")

    assert [issue.rule_id for issue in result.issues] == ["scan.unbalanced-quote"]
    assert result.issues[0].line == 1
    statements = [item for item in result.statements if item.kind == "statement"]
    assert statements[-1].code.strip().endswith("x = 1")


def test_directives_are_single_line_statements():
    result = scan_source("**free\n/copy qrpglesrc,protos\ndcl-s a int(10);")

    kinds = [(item.kind, item.start_line) for item in result.statements]
    assert kinds == [("directive", 1), ("directive", 2), ("statement", 3)]


def test_directive_code_drops_trailing_comment():
    result = scan_source("/copy qrpglesrc,protos; // prototypes\n/include '/home/a.rpgleinc'")

    directives = [(item.text, item.code) for item in result.statements]
    assert directives == [
        ("/copy qrpglesrc,protos; // prototypes", "/copy qrpglesrc,protos;"),
        ("/include '/home/a.rpgleinc'", "/include '/home/a.rpgleinc'"),
    ]


def test_compile_time_data_ends_the_scan():
    result = scan_source("dcl-s a char(3) dim(2) ctdata;\n**ctdata a\nABC\nDEF;")

    assert len(result.statements) == 1
    assert not result.issues


def test_nested_blocks_produce_block_statements_with_children():
    source = (
        "dcl-proc run;\n"
        "  if a = 1;\n"
        "    dow more;\n"
        "      more = *off;\n"
        "    enddo;\n"
        "  endif;\n"
        "end-proc;\n"
    )
    result = scan_source(source)

    blocks = [item for item in result.statements if item.kind == "block"]
    assert [item.opcode for item in blocks] == ["dow", "if", "dcl-proc"]
    assert [(item.start_line, item.end_line) for item in blocks] == [(3, 5), (2, 6), (1, 7)]
    assignment = next(item for item in result.statements if item.text == "more = *off")
    assert assignment.blocks == ("dcl-proc", "if", "dow")
    assert not result.issues


def test_terminator_closes_nearest_matching_block_and_reports_skipped_ones():
    result = scan_source("dcl-proc run;\n  monitor;\n    x = 1;\nend-proc;")

    assert [(issue.rule_id, issue.line) for issue in result.issues] == [
        ("scan.unterminated-block", 2)
    ]
    assert [item.opcode for item in result.statements if item.kind == "block"] == ["dcl-proc"]


def test_unmatched_terminator_and_open_blocks_at_end_of_input():
    result = scan_source("endif;\nif a = 1;\n  a = 2;\n")

    assert [(issue.rule_id, issue.line) for issue in result.issues] == [
        ("scan.unmatched-terminator", 1),
        ("scan.unterminated-block", 2),
    ]


def test_missing_final_semicolon_is_reported():
    result = scan_source("x = 1;\ny = 2")

    assert [(issue.rule_id, issue.line) for issue in result.issues] == [
        ("scan.unterminated-statement", 2)
    ]
    assert result.statements[-1].text == "y = 2"


def test_inline_and_like_data_structures_open_no_block():
    result = scan_source(
        "dcl-ds order likeds(order_t);\n"
        "dcl-pi *n int(10) end-pi;\n"
        "dcl-ds empty end-ds;\n"
    )

    assert not result.issues
    assert all(item.kind == "statement" for item in result.statements)


def test_preceding_declaration_count_is_per_procedure():
    source = (
        "dcl-s a int(10);\n"
        "dcl-s b int(10);\n"
        "dcl-proc run;\n"
        "  dcl-s c int(10);\n"
        "  c = 1;\n"
        "end-proc;\n"
    )
    statements = _statements(source)

    counts = {item.text.strip(): item.preceding_declaration_count for item in statements}
    assert counts["dcl-s b int(10)"] == 1
    assert counts["dcl-s c int(10)"] == 0
    assert counts["c = 1"] == 1


def test_scan_issue_ids_are_registered_diagnostics():
    result = scan_source("dcl-proc run;\n  if x;\n  endsl;\n  msg = 'open\nend-proc;\nx = 1")
    registry = default_registry()

    found = {issue.rule_id for issue in result.issues}
    assert found <= {UNTERMINATED_BLOCK, UNBALANCED_QUOTE, UNMATCHED_TERMINATOR, UNTERMINATED_STATEMENT}
    assert all(registry.get(rule_id).scope == "diagnostic" for rule_id in found)
    assert UNMATCHED_TERMINATOR in found
