from __future__ import annotations

import math
from typing import List, Optional

from lark import Token

from ..runtime import Context, PsBool, PsNumber, PsString, PsValue, PipeshellRuntimeError, TypeMismatch
from ..tree import Node, Tree, tree_children
from ..types import DivisionByZero
from ..utils import compare_values, display_string, to_boolean, to_number, type_name, values_equal
from .common import EvalFunc

_ARITH_NAMES = {
    '+': 'addition',
    '-': 'subtraction',
    '*': 'multiplication',
    '/': 'division',
    '%': 'modulo',
}

def require_number(value: PsValue, operation: str) -> float:
    n = to_number(value)
    if n is None:
        raise TypeMismatch(operation, "Number", type_name(value))
    return n

def eval_unary(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsValue:
    op, operand_node = tree_children(node)
    operand = eval_func(operand_node, ctx)

    if op.type == 'MINUS':
        return PsNumber(-require_number(operand, "negation"))

    return PsBool(not to_boolean(operand))

def apply_arith(op: str, lhs: PsValue, rhs: PsValue) -> PsValue:
    if op == '+' and (isinstance(lhs, PsString) or isinstance(rhs, PsString)):
        return PsString(display_string(lhs) + display_string(rhs))

    operation = _ARITH_NAMES[op]
    a = require_number(lhs, operation)
    b = require_number(rhs, operation)

    match op:
        case '+':
            return PsNumber(a + b)
        case '-':
            return PsNumber(a - b)
        case '*':
            return PsNumber(a * b)
        case '/':
            if b == 0:
                raise DivisionByZero(operation)
            return PsNumber(a / b)
        case '%':
            if b == 0:
                raise DivisionByZero(operation)
            return PsNumber(math.fmod(a, b))

    raise PipeshellRuntimeError(f"Unknown operator {op}")

def eval_infix(children: List[Node], ctx: Context, eval_func: EvalFunc) -> PsValue:
    """Left-associative `operand (op operand)*` chains for 'add' and 'mul'."""
    acc = eval_func(children[0], ctx)

    for i in range(1, len(children), 2):
        op: Token = children[i]
        rhs = eval_func(children[i + 1], ctx)
        acc = apply_arith(str(op.value), acc, rhs)

    return acc

def compare(op: str, lhs: PsValue, rhs: PsValue) -> bool:
    match op:
        case 'eq':
            return values_equal(lhs, rhs)
        case 'ne':
            return not values_equal(lhs, rhs)

    order = compare_values(lhs, rhs)

    match op:
        case 'gt':
            return order > 0
        case 'lt':
            return order < 0
        case 'ge':
            return order >= 0
        case 'le':
            return order <= 0

    raise PipeshellRuntimeError(f"Unknown comparison operator -{op}")

def eval_compare(children: List[Node], ctx: Context, eval_func: EvalFunc) -> PsBool:
    acc: Optional[PsValue] = eval_func(children[0], ctx)

    for i in range(1, len(children), 2):
        op: Token = children[i]
        rhs = eval_func(children[i + 1], ctx)
        acc = PsBool(compare(str(op.value).lower(), acc, rhs))

    assert isinstance(acc, PsBool)
    return acc

def eval_logical(children: List[Node], ctx: Context, eval_func: EvalFunc) -> PsBool:
    """-and / -or, left to right, short-circuiting."""
    result = to_boolean(eval_func(children[0], ctx))

    for i in range(1, len(children), 2):
        op = str(children[i].value).lower()

        if op == 'and' and not result:
            continue
        if op == 'or' and result:
            continue

        result = to_boolean(eval_func(children[i + 1], ctx))

    return PsBool(result)
