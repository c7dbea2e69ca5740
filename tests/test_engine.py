from rpgle_lint.engine import lint_source
from rpgle_lint.models import Hit, Rule
from rpgle_lint.rules import default_registry


def test_declarations_after_code_are_counted_once_each():
    source = (
        "dcl-proc calc;\n"
        "  dcl-s total int(10);\n"
        "  total = 0;\n"
        "  dcl-s count int(10);\n"
        "  count = total + 1;\n"
        "end-proc;\n"
    )

    findings = [item for item in lint_source(source) if item.rule_id == "decl.after-code"]

    assert len(findings) == 1
    assert findings[0].line == 4
    assert "line 3" in findings[0].message


def test_each_procedure_has_its_own_code_seen_state():
    source = (
        "dcl-proc first;\n"
        "  dcl-s a int(10);\n"
        "  a = 1;\n"
        "end-proc;\n"
        "dcl-proc second;\n"
        "  dcl-s b int(10);\n"
        "  b = 2;\n"
        "end-proc;\n"
    )

    assert not [item for item in lint_source(source) if item.rule_id == "decl.after-code"]


def test_monitor_closed_by_wrong_terminator_is_one_finding():
    source = "dcl-proc run;\n  monitor;\n    x = 1;\n  on-error;\n    x = 0;\nend-proc;"

    findings = lint_source(source)

    assert [(item.rule_id, item.line) for item in findings] == [("scan.unterminated-block", 2)]


def test_two_mistakes_are_reported_in_line_order():
    findings = lint_source("dcl-s errorInfo qualified;\n%sorta(numbers);\n")

    assert [(item.rule_id, item.line) for item in findings] == [
        ("decl.standalone-qualified", 1),
        ("bif.nonexistent", 2),
    ]
    assert findings[0].excerpt == "dcl-s errorInfo qualified"
    assert findings[1].suggested_fix.startswith("sorta array;")


def test_clean_source_has_no_findings():
    source = (
        "**free\n"
        "ctl-opt dftactgrp(*no) actgrp(*new);\n"
        "\n"
        "dcl-s total packed(9 : 2) inz(0);\n"
        "dcl-s name varchar(50);\n"
        "dcl-s i int(10);\n"
        "\n"
        "for i = 1 to 10;\n"
        "  total += i;\n"
        "endfor;\n"
        "name = %trim(name) + ' done';\n"
        "monitor;\n"
        "  total = total / i;\n"
        "on-error;\n"
        "  total = 0;\n"
        "endmon;\n"
        "*inlr = *on;\n"
        "return;\n"
    )

    assert lint_source(source) == []


def test_failing_rule_is_isolated():
    def explode(statement, context):
        raise RuntimeError("boom")

    broken = Rule(
        id="local.broken",
        category="local",
        severity="error",
        message="never shown",
        suggested_fix="none",
        matcher=explode,
    )
    registry = default_registry().with_rules([broken])

    findings = lint_source("dcl-s errorInfo qualified;", registry)

    assert [item.rule_id for item in findings] == [
        "decl.standalone-qualified",
        "internal.rule-error",
    ]
    assert "local.broken" in findings[1].message
    assert "RuntimeError" in findings[1].message


def test_template_declared_globally_is_seen_inside_procedures():
    source = (
        "dcl-ds order_t qualified template;\n"
        "  id int(10);\n"
        "end-ds;\n"
        "dcl-proc run;\n"
        "  order_t.id = 1;\n"
        "end-proc;\n"
    )

    findings = [item for item in lint_source(source) if item.rule_id == "decl.template-used-directly"]

    assert [item.line for item in findings] == [5]


def test_template_is_allowed_inside_size_functions():
    source = (
        "dcl-ds order_t qualified template;\n"
        "  id int(10);\n"
        "end-ds;\n"
        "dcl-s n int(10);\n"
        "n = %size(order_t);\n"
    )

    assert "decl.template-used-directly" not in {item.rule_id for item in lint_source(source)}


def test_disabled_diagnostic_is_not_reported():
    registry = default_registry().without(["scan.unterminated-statement"])

    assert lint_source("x = 1", registry) == []


def test_rule_hits_can_tailor_message_and_fix():
    rule = Rule(
        id="local.tailored",
        category="local",
        severity="warning",
        message="default message",
        suggested_fix="default fix",
        matcher=lambda statement, context: [Hit(line=statement.start_line, suggested_fix="custom")],
    )
    registry = default_registry().with_rules([rule])

    findings = [item for item in lint_source("x = 1;", registry) if item.rule_id == "local.tailored"]

    assert [(item.message, item.suggested_fix, item.severity) for item in findings] == [
        ("default message", "custom", "warning")
    ]


def test_sql_set_option_is_accepted_when_first():
    source = (
        "exec sql set option commit = *none;\n"
        "exec sql delete from audit;\n"
        "dcl-proc purge;\n"
        "  exec sql set option commit = *none;\n"
        "end-proc;\n"
    )

    findings = [item for item in lint_source(source) if item.rule_id == "sql.set-option-not-first"]

    assert [item.line for item in findings] == [4]
