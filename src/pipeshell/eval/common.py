from __future__ import annotations

from typing import Callable

from lark import Token

from ..runtime import Context, PsNumber, PsString, PsValue, PipeshellRuntimeError
from ..tree import Node, node_position
from ..utils import display_string, unroll

EvalFunc = Callable[[Node, Context], PsValue]

def maybe_attach_location(exc: PipeshellRuntimeError, node: Node) -> None:
    """Record the innermost node position that saw the error; outer nodes leave it alone."""
    if exc.line is not None:
        return

    line, column = node_position(node)
    if line is None:
        return

    exc.line = line
    exc.column = column

def token_number(tok: Token) -> PsNumber:
    return PsNumber(float(tok.value))

def token_string(tok: Token) -> PsString:
    return PsString(str(tok.value))

def interpolate(value: PsValue) -> str:
    """Text of a value inside a double-quoted string; lists join with spaces."""
    return " ".join(display_string(item) for item in unroll(value))

# Statements that produce no output of their own.
SILENT_STATEMENTS = frozenset({"assign", "fndef"})
