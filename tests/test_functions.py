from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    CommandNotFound,
    DivisionByZero,
    Interpreter,
    ParameterBindingError,
    RecursionLimitExceeded,
    TypeMismatch,
    plain,
    run_runtime_case,
)

SCENARIOS = [
    pytest.param(
        "function Add($a, $b) { return $a + $b }; Add 5 10",
        ("number", 15),
        None,
        id="explicit-return",
    ),
    pytest.param(
        "function F { $x = 1; $x = 2; $x }; F",
        ("number", 2),
        None,
        id="implicit-return-last-statement",
    ),
    pytest.param("function F { }; F", ("null", None), None, id="empty-body-null"),
    pytest.param("function F { return; 5 }; F", ("null", None), None, id="bare-return-null"),
    pytest.param("function F { return 1; 2 }; F", ("number", 1), None, id="return-short-circuits"),
    pytest.param(
        "function F { if ($true) { return 'early' }; 'late' }; F",
        ("string", "early"),
        None,
        id="return-from-nested-if",
    ),
    pytest.param(
        "function G($a, $b = 10) { $a + $b }; G 5",
        ("number", 15),
        None,
        id="default-used",
    ),
    pytest.param(
        "function G($a, $b = 10) { $a + $b }; G 5 1",
        ("number", 6),
        None,
        id="default-overridden",
    ),
    pytest.param(
        "function G($a, $b = $a * 2) { $b }; G 4",
        ("number", 8),
        None,
        id="default-sees-earlier-param",
    ),
    pytest.param(
        "function H($a, $b) { $b -eq $null }; H 1",
        ("bool", True),
        None,
        id="missing-arg-binds-null",
    ),
    pytest.param(
        "function Sub($a, $b) { $a - $b }; Sub -b 1 -a 10",
        ("number", 9),
        None,
        id="named-args",
    ),
    pytest.param(
        "function Sub($a, $b) { $a - $b }; Sub -B 1 10",
        ("number", 9),
        None,
        id="named-then-positional",
    ),
    pytest.param(
        "function F($a) { $a }; F -zzz 1",
        None,
        ParameterBindingError,
        id="unknown-named-arg",
    ),
    pytest.param(
        "function F($a) { $args }; F 1 2 3",
        ("list", [2, 3]),
        None,
        id="extra-args",
    ),
    pytest.param(
        "function F { param($x = 3) $x * $x }; F",
        ("number", 9),
        None,
        id="param-block",
    ),
    pytest.param(
        dedent(
            """\
            function Fact($n) {
                if ($n -le 1) { return 1 }
                return $n * (Fact ($n - 1))
            }
            Fact 5
        """
        ),
        ("number", 120),
        None,
        id="recursion",
    ),
    pytest.param(
        "$v = 1; function F($v) { $v }; F ($v + 1)",
        ("number", 2),
        None,
        id="args-evaluated-in-caller",
    ),
    pytest.param(
        "function Greet { 'hi' }; greet",
        ("string", "hi"),
        None,
        id="call-case-insensitive",
    ),
    pytest.param(
        "function Write-Output { 'mine' }; Write-Output 1",
        ("string", "mine"),
        None,
        id="function-shadows-stage",
    ),
    pytest.param(
        "function Double { $input | ForEach-Object { $_ * 2 } }; 1, 2, 3 | Double",
        ("list", [2, 4, 6]),
        None,
        id="function-as-pipeline-stage",
    ),
    pytest.param(
        "function Outer { function Inner { 1 }; Inner }; Outer; Inner",
        None,
        CommandNotFound,
        id="nested-function-is-local",
    ),
    pytest.param("Get-Nothing", None, CommandNotFound, id="unknown-command"),
    pytest.param("$b = { $_ + 1 }; & $b 4", ("number", 5), None, id="invoke-block"),
    pytest.param("& { $args } 1 2 3", ("list", [2, 3]), None, id="invoke-block-args"),
    pytest.param("& 'Write-Output' 7", ("number", 7), None, id="invoke-by-name"),
    pytest.param(
        "function Sq($n) { $n * $n }; $f = 'Sq'; & $f 3",
        ("number", 9),
        None,
        id="invoke-function-name-in-variable",
    ),
    pytest.param("& 5", None, TypeMismatch, id="invoke-non-callable"),
    pytest.param(
        "function F { 1 / 0 }; F",
        None,
        DivisionByZero,
        id="error-propagates-out-of-call",
    ),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_functions(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def test_runaway_recursion_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PIPESHELL_MAX_CALL_DEPTH", "40")

    with pytest.raises(RecursionLimitExceeded) as exc_info:
        Interpreter().evaluate_line("function Loop { Loop }; Loop")

    assert exc_info.value.limit == 40


def test_default_depth_allows_deep_recursion() -> None:
    interp = Interpreter()
    source = "function Down($n) { if ($n -le 0) { return 0 }; Down ($n - 1) }; Down 200"
    assert plain(interp.evaluate_line(source)) == 0


def test_call_depth_resets_after_error() -> None:
    interp = Interpreter()

    with pytest.raises(DivisionByZero):
        interp.evaluate_line("function Bad { $x = 1; 1 / 0 }; Bad")

    assert interp.ctx.call_depth == 0
    assert interp.scope.depth == 1
