from __future__ import annotations

from typing import Any

import pytest

from tests.support.harness import ParseError, parse_source
from pipeshell.tree import is_token, node_position, tree_children, tree_label


def shape(node: Any) -> Any:
    """Compact nested-tuple rendering of an AST for structural assertions."""
    if is_token(node):
        return f"{node.type}:{node.value}"

    return (tree_label(node), *[shape(ch) for ch in tree_children(node)])


def _call(name: str, *args: Any) -> tuple:
    return ("call", f"NAME:{name}", ("args", *args))


SHAPE_CASES = [
    pytest.param(
        "$x = 1",
        ("assign", "VARIABLE:x", "NUMBER:1"),
        id="assign",
    ),
    pytest.param(
        "1 + 2 * 3",
        ("add", "NUMBER:1", "PLUS:+", ("mul", "NUMBER:2", "STAR:*", "NUMBER:3")),
        id="arith-precedence",
    ),
    pytest.param(
        "(1 + 2) * 3",
        ("mul", ("group", ("add", "NUMBER:1", "PLUS:+", "NUMBER:2")), "STAR:*", "NUMBER:3"),
        id="group-overrides-precedence",
    ),
    pytest.param(
        "1, 2 + 3",
        ("comma_list", "NUMBER:1", ("add", "NUMBER:2", "PLUS:+", "NUMBER:3")),
        id="comma-binds-loosest",
    ),
    pytest.param(
        "$x -gt 1 -and $y",
        (
            "logical",
            ("compare", "VARIABLE:x", "COMPARE:gt", "NUMBER:1"),
            "LOGICAL:and",
            "VARIABLE:y",
        ),
        id="logical-over-compare",
    ),
    pytest.param(
        "-not $x",
        ("unary", "NOT:not", "VARIABLE:x"),
        id="unary-not-word",
    ),
    pytest.param(
        "$o.Name.First",
        ("member", ("member", "VARIABLE:o", "NAME:Name"), "NAME:First"),
        id="member-chain",
    ),
    pytest.param(
        "Get-A | Get-B",
        ("pipeline", _call("Get-A"), _call("Get-B")),
        id="pipeline-of-calls",
    ),
    pytest.param(
        "Where-Object -Property Name -Value x",
        _call(
            "Where-Object",
            ("namedarg", "PARAM:Property", "STRING:Name"),
            ("namedarg", "PARAM:Value", "STRING:x"),
        ),
        id="named-args-barewords",
    ),
    pytest.param(
        "Sort-Object -Descending",
        _call("Sort-Object", ("namedarg", "PARAM:Descending")),
        id="switch-arg",
    ),
    pytest.param(
        "Write-Output a, b",
        _call("Write-Output", ("comma_list", "STRING:a", "STRING:b")),
        id="command-comma-arg",
    ),
    pytest.param(
        "Write-Output -5",
        _call("Write-Output", ("unary", "MINUS:-", "NUMBER:5")),
        id="command-negative-number",
    ),
    pytest.param(
        "function F($a, $b = 2) { $a }",
        (
            "fndef",
            "NAME:F",
            ("paramlist", ("param", "VARIABLE:a"), ("param", "VARIABLE:b", "NUMBER:2")),
            ("block", "VARIABLE:a"),
        ),
        id="fndef-paren-params",
    ),
    pytest.param(
        "function F { param($a) $a }",
        (
            "fndef",
            "NAME:F",
            ("paramlist", ("param", "VARIABLE:a")),
            ("block", "VARIABLE:a"),
        ),
        id="fndef-param-block",
    ),
    pytest.param(
        "if ($x) { 1 } elseif ($y) { 2 } else { 3 }",
        (
            "ifstmt",
            "VARIABLE:x",
            ("block", "NUMBER:1"),
            ("ifstmt", "VARIABLE:y", ("block", "NUMBER:2"), ("block", "NUMBER:3")),
        ),
        id="if-elseif-else",
    ),
    pytest.param(
        "if ($x) { 1 }\nelse { 2 }",
        ("ifstmt", "VARIABLE:x", ("block", "NUMBER:1"), ("block", "NUMBER:2")),
        id="else-on-next-line",
    ),
    pytest.param(
        "@{a = 1; b = 'x'}",
        ("record", ("pair", "KEY:a", "NUMBER:1"), ("pair", "KEY:b", "STRING:x")),
        id="record-literal",
    ),
    pytest.param(
        "@(1; 2)",
        ("array", "NUMBER:1", "NUMBER:2"),
        id="array-of-statements",
    ),
    pytest.param(
        '"x $(1)"',
        ("string_interp", "TEXT:x ", ("interp_expr", "NUMBER:1")),
        id="string-subexpression",
    ),
    pytest.param(
        "{ $_ }",
        ("scriptblock", ("block", "VARIABLE:_")),
        id="scriptblock",
    ),
    pytest.param(
        "& { 1 } 2",
        ("invoke", ("scriptblock", ("block", "NUMBER:1")), ("args", "NUMBER:2")),
        id="invoke-block",
    ),
    pytest.param(
        "return",
        ("returnstmt",),
        id="bare-return",
    ),
]

PARSE_ERROR_CASES = [
    pytest.param("@{a 1}", "Expected '=' after record key", id="record-missing-equals"),
    pytest.param("if $x { 1 }", "Expected '(' after if", id="if-missing-paren"),
    pytest.param("function { }", "Expected function name", id="function-missing-name"),
    pytest.param("(1", "Expected ')'", id="unclosed-group"),
    pytest.param("1 +", "Unexpected end of input", id="dangling-operator"),
    pytest.param("()", "Empty parentheses", id="empty-group"),
    pytest.param(
        "function F($a) { param($b) }",
        "Function already declares parameters",
        id="double-param-declaration",
    ),
    pytest.param("1 2", "Unexpected token NUMBER", id="juxtaposed-expressions"),
    pytest.param("$o.", "Expected property name", id="member-missing-name"),
]


@pytest.mark.parametrize("source, expected", SHAPE_CASES)
def test_statement_shapes(source: str, expected: tuple) -> None:
    program = parse_source(source)
    statements = tree_children(program)

    assert tree_label(program) == "program"
    assert len(statements) == 1
    assert shape(statements[0]) == expected


@pytest.mark.parametrize("source, message", PARSE_ERROR_CASES)
def test_parse_errors(source: str, message: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_source(source)

    assert message in str(exc_info.value)
    assert exc_info.value.line is not None


def test_statement_separators() -> None:
    program = parse_source("$a = 1; $b = 2\n\n$c = 3")
    assert [tree_label(stmt) for stmt in tree_children(program)] == ["assign"] * 3


def test_statement_positions() -> None:
    program = parse_source("$a = 1\n  $b = 2")
    second = tree_children(program)[1]
    assert node_position(second) == (2, 3)


def test_pipeline_may_continue_after_newline() -> None:
    program = parse_source("1, 2 |\n  Write-Output")
    (stmt,) = tree_children(program)
    assert tree_label(stmt) == "pipeline"


def test_subexpression_positions_are_absolute() -> None:
    program = parse_source('$a = 1\n"v: $($b)"')
    interp = tree_children(program)[1]
    sub = tree_children(interp)[1]
    variable = tree_children(sub)[0]
    assert (variable.line, variable.column) == (2, 7)
