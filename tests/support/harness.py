from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Tuple

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from pipeshell.lexer_rd import LexError, Lexer
from pipeshell.parser_rd import ParseError, parse_source
from pipeshell.runner import Interpreter, run as run_program
from pipeshell.types import (
    CommandNotFound,
    DivisionByZero,
    InvalidOperation,
    InvalidPropertyAccess,
    ParameterBindingError,
    PipeshellRuntimeError,
    PsBlock,
    PsBool,
    PsFunction,
    PsList,
    PsNull,
    PsNumber,
    PsRecord,
    PsString,
    RecursionLimitExceeded,
    ReturnOutsideFunction,
    TypeMismatch,
    UndefinedVariable,
)

RuntimeExpectation = Optional[Tuple[str, object]]

KEYWORDS = Lexer.KEYWORDS


def plain(value: object) -> object:
    """Convert a runtime value into plain Python data for comparisons."""
    match value:
        case PsNull():
            return None
        case PsBool(value=b):
            return b
        case PsNumber(value=n):
            return n
        case PsString(value=s):
            return s
        case PsList(items=items):
            return [plain(item) for item in items]
        case PsRecord(slots=slots):
            return {k: plain(v) for k, v in slots.items()}
        case PsFunction(name=name):
            return f"<function {name}>"
        case PsBlock():
            return "<scriptblock>"
        case _:
            raise AssertionError(f"not a runtime value: {value!r}")


def verify_result(value: object, kind: str, expected: object) -> None:
    """Assert runtime result shape/value compatibility with an expectation."""
    match kind:
        case "string":
            assert isinstance(
                value, PsString
            ), f"expected PsString, got {type(value).__name__}"
            assert (
                value.value == expected
            ), f"expected {expected!r}, got {value.value!r}"
            return
        case "number":
            assert isinstance(
                value, PsNumber
            ), f"expected number, got {type(value).__name__}"
            assert (
                abs(value.value - float(expected)) <= 1e-9
            ), f"expected {expected}, got {value.value}"
            return
        case "bool":
            assert isinstance(
                value, PsBool
            ), f"expected PsBool, got {type(value).__name__}"
            assert value.value is expected, f"expected {expected}, got {value.value}"
            return
        case "null":
            assert isinstance(
                value, PsNull
            ), f"expected PsNull, got {type(value).__name__}"
            return
        case "list":
            assert isinstance(
                value, PsList
            ), f"expected PsList, got {type(value).__name__}"
            assert plain(value) == expected, f"expected {expected!r}, got {plain(value)!r}"
            return
        case "record":
            assert isinstance(
                value, PsRecord
            ), f"expected PsRecord, got {type(value).__name__}"
            assert plain(value) == expected, f"expected {expected!r}, got {plain(value)!r}"
            return
        case "block":
            assert isinstance(
                value, PsBlock
            ), f"expected PsBlock, got {type(value).__name__}"
            return
        case _:
            raise AssertionError(f"unknown expectation kind {kind!r}")


def run_runtime_case(
    source: str,
    expectation: RuntimeExpectation,
    expected_exc: Optional[type],
) -> None:
    """Execute one runtime scenario with optional expected exception."""
    if expected_exc is not None:
        with pytest.raises(expected_exc):
            run_program(source)
        return

    result = run_program(source)
    if expectation is not None:
        verify_result(result, expectation[0], expectation[1])


__all__ = [
    "CommandNotFound",
    "DivisionByZero",
    "Interpreter",
    "InvalidOperation",
    "InvalidPropertyAccess",
    "KEYWORDS",
    "LexError",
    "ParameterBindingError",
    "ParseError",
    "PipeshellRuntimeError",
    "RecursionLimitExceeded",
    "ReturnOutsideFunction",
    "TypeMismatch",
    "UndefinedVariable",
    "parse_source",
    "plain",
    "run_program",
    "run_runtime_case",
    "verify_result",
]
