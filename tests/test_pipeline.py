from __future__ import annotations

from textwrap import dedent
from typing import List, Tuple

import pytest

from tests.support.harness import (
    CommandNotFound,
    DivisionByZero,
    Interpreter,
    InvalidPropertyAccess,
    UndefinedVariable,
    plain,
    run_runtime_case,
)
from pipeshell.runtime import PsNumber, PsValue, StageContext, StageRegistry, register_stage

SCENARIOS = [
    pytest.param(
        "@(1,2,3,4,5) | Where-Object { $_ -gt 2 }",
        ("list", [3, 4, 5]),
        None,
        id="filter-stage",
    ),
    pytest.param("@(5, 3, 9) | { $_ }", ("list", [5, 3, 9]), None, id="identity-block-keeps-order"),
    pytest.param(
        "@(1, 2) | ForEach-Object { $_ * 10 }",
        ("list", [10, 20]),
        None,
        id="array-literal-unrolled",
    ),
    pytest.param("1, 2, 3 | Write-Output", ("list", [1, 2, 3]), None, id="comma-list-unrolled"),
    pytest.param("5 | ForEach-Object { $_ + 1 }", ("list", [6]), None, id="scalar-seed"),
    pytest.param("1, 2 | $_ * 3", ("list", [3, 6]), None, id="expression-stage-per-item"),
    pytest.param(
        "1, 2 | { $_ + 1 } | { $_ * 2 }",
        ("list", [4, 6]),
        None,
        id="chained-blocks",
    ),
    pytest.param("{ 1 } | Write-Output", ("list", ["<scriptblock>"]), None, id="leading-block-is-value"),
    pytest.param("@() | { 1 }", ("list", []), None, id="block-on-empty-collection"),
    pytest.param("@() | ForEach-Object { $_ }", ("list", []), None, id="empty-input"),
    pytest.param(
        "1 | ForEach-Object { @(1, 2) }",
        ("list", [[1, 2]]),
        None,
        id="nested-list-flattens-one-level",
    ),
    pytest.param(
        "function One { 42 }; 1, 2 | One",
        ("list", [42]),
        None,
        id="scalar-stage-result",
    ),
    pytest.param(
        "function Nothing { }; 1 | Nothing",
        ("list", [None]),
        None,
        id="null-stage-result",
    ),
    pytest.param(
        "$r = 3, 1, 2 | Sort-Object; $r",
        ("list", [1, 2, 3]),
        None,
        id="assign-pipeline-result",
    ),
    pytest.param(
        "Write-Output (1, 2 | ForEach-Object { $_ + 1 })",
        ("list", [2, 3]),
        None,
        id="pipeline-as-argument",
    ),
    pytest.param(
        dedent(
            """\
            1, 2, 3 |
                Where-Object { $_ -ne 2 } |
                ForEach-Object { $_ * $_ }
        """
        ),
        ("list", [1, 9]),
        None,
        id="multi-line-pipeline",
    ),
    pytest.param(
        "1, 0, 2 | ForEach-Object { 10 / $_ }",
        None,
        DivisionByZero,
        id="per-item-error-aborts",
    ),
    pytest.param("1 | Nope-Stage", None, CommandNotFound, id="unknown-stage"),
    pytest.param(
        "1, 2 | ForEach-Object { $_.Name }",
        None,
        InvalidPropertyAccess,
        id="member-on-number-in-stage",
    ),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_pipeline(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def test_failing_stage_stops_later_stages() -> None:
    interp = Interpreter()
    interp.evaluate_line("function Mark { $global:touched = 1; $input }")

    with pytest.raises(DivisionByZero):
        interp.evaluate_line("1, 0, 2 | ForEach-Object { 10 / $_ } | Mark")

    with pytest.raises(UndefinedVariable):
        interp.evaluate_line("$touched")


def test_failing_item_stops_later_items() -> None:
    interp = Interpreter()

    with pytest.raises(DivisionByZero):
        interp.evaluate_line("$seen = 0; 1, 0, 2 | ForEach-Object { $seen = $seen + 1; 10 / $_ }")

    assert plain(interp.evaluate_line("$seen")) == 2


def _recording_registry() -> Tuple[StageRegistry, List[tuple]]:
    registry = StageRegistry()
    calls: List[tuple] = []

    @register_stage("Collect", registry=registry)
    def collect(ctx: StageContext) -> PsValue:
        calls.append(([plain(v) for v in ctx.input], [plain(v) for v in ctx.args], ctx.piped))
        return PsNumber(float(len(ctx.input)))

    return registry, calls


def test_stage_runs_once_with_whole_collection() -> None:
    registry, calls = _recording_registry()

    result = Interpreter(registry=registry).evaluate_line("1, 2, 3 | Collect")

    assert calls == [([1, 2, 3], [], True)]
    assert plain(result) == [3]


def test_leading_stage_gets_empty_input() -> None:
    registry, calls = _recording_registry()

    result = Interpreter(registry=registry).evaluate_line("Collect 5 6 | Collect")

    assert calls == [([], [5, 6], False), ([0], [], True)]
    assert plain(result) == [1]


def test_injected_registry_replaces_builtin_stages() -> None:
    registry, _ = _recording_registry()

    with pytest.raises(CommandNotFound):
        Interpreter(registry=registry).evaluate_line("Write-Output 1")
