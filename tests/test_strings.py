from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import UndefinedVariable, run_runtime_case

SCENARIOS = [
    pytest.param(
        '$name = "World"; "Hello $name"',
        ("string", "Hello World"),
        None,
        id="interp-variable",
    ),
    pytest.param(
        "'Hello $name'",
        ("string", "Hello $name"),
        None,
        id="single-quotes-verbatim",
    ),
    pytest.param('"Sum: $(1 + 2)"', ("string", "Sum: 3"), None, id="interp-subexpression"),
    pytest.param(
        '$x = 3; "$($x * 2) items"',
        ("string", "6 items"),
        None,
        id="subexpression-reads-scope",
    ),
    pytest.param(
        '$o = @{N = "x"}; "v=$($o.N)"',
        ("string", "v=x"),
        None,
        id="subexpression-member",
    ),
    pytest.param(
        '$a = 1, 2, 3; "items: $a"',
        ("string", "items: 1 2 3"),
        None,
        id="list-joins-with-spaces",
    ),
    pytest.param(
        '"$(Write-Output 1 2)"',
        ("string", "1 2"),
        None,
        id="subexpression-command-output",
    ),
    pytest.param('"flag: $true"', ("string", "flag: True"), None, id="interp-boolean"),
    pytest.param('"null:[$null]"', ("string", "null:[]"), None, id="interp-null"),
    pytest.param('$n = 2; "$n$n"', ("string", "22"), None, id="adjacent-variables"),
    pytest.param(
        '$global:g = "G"; "$global:g"',
        ("string", "G"),
        None,
        id="interp-qualified",
    ),
    pytest.param('"$("inner")"', ("string", "inner"), None, id="quotes-inside-subexpression"),
    pytest.param('"a`tb"', ("string", "a\tb"), None, id="backtick-escape"),
    pytest.param('"He said ""hi"""', ("string", 'He said "hi"'), None, id="doubled-quotes"),
    pytest.param('"$missing"', None, UndefinedVariable, id="interp-undefined"),
    pytest.param(
        'Write-Output "x$(1)y"',
        ("string", "x1y"),
        None,
        id="interp-as-command-arg",
    ),
    pytest.param('"Total: " + 5', ("string", "Total: 5"), None, id="concat-number"),
    pytest.param(
        dedent(
            """\
            $first = "Ada"
            $last = "Lovelace"
            "$first $last"
        """
        ),
        ("string", "Ada Lovelace"),
        None,
        id="multi-line-script",
    ),
    pytest.param(
        '$r = @{Name = "n"}; "$r"',
        ("string", "@{Name=n}"),
        None,
        id="interp-record-display",
    ),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_strings(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)
