from __future__ import annotations

from typing import Callable, Optional
from lark import Token

from .runtime import (
    Context,
    PsNull,
    PsValue,
    PipeshellRuntimeError,
    StageRegistry,
    init_stdlib,
)

from .tree import Node, Tree, is_token

from .eval.bind import eval_assign, eval_variable
from .eval.blocks import eval_program, eval_scriptblock
from .eval.calls import eval_call, eval_invoke
from .eval.common import maybe_attach_location, token_number, token_string
from .eval.control import eval_if_stmt, eval_return_stmt
from .eval.expr import eval_compare, eval_infix, eval_logical, eval_unary
from .eval.fn import eval_fndef
from .eval.literals import eval_keyword_literal, eval_string_interp
from .eval.objects import eval_array, eval_comma_list, eval_member, eval_record
from .eval.pipeline import eval_pipeline

EvalFunc = Callable[[Node, Context], PsValue]

# ---------------- Public API ----------------

def eval_expr(ast: Node, ctx: Optional[Context]=None, source: Optional[str]=None,
              registry: Optional[StageRegistry]=None) -> PsValue:
    init_stdlib()

    if ctx is None:
        ctx = Context(registry=registry, source=source)
    elif source is not None:
        ctx.source = source

    return eval_node(ast, ctx)

# ---------------- Core evaluator ----------------

def eval_node(n: Node, ctx: Context) -> PsValue:
    try:
        return _eval_node_inner(n, ctx)
    except PipeshellRuntimeError as e:
        maybe_attach_location(e, n)
        raise


def _eval_node_inner(n: Node, ctx: Context) -> PsValue:
    if is_token(n):
        return _eval_token(n, ctx)

    handler = _NODE_DISPATCH.get(n.data)
    if handler is not None:
        return handler(n, ctx)

    raise PipeshellRuntimeError(f"Unsupported node {n.data}")

# ---------------- Tokens ----------------

def _eval_token(t: Token, ctx: Context) -> PsValue:
    handler = _TOKEN_DISPATCH.get(t.type)
    if handler:
        return handler(t, ctx)

    raise PipeshellRuntimeError(f"Unhandled token {t.type}:{t.value}")

# ---------------- Grouping / dispatch ----------------

def _eval_group(n: Tree, ctx: Context) -> PsValue:
    child = n.children[0] if n.children else None
    if child is None:
        return PsNull()

    return eval_node(child, ctx)

_NODE_DISPATCH: dict[str, Callable[[Tree, Context], PsValue]] = {
    'program': lambda n, ctx: eval_program(n, ctx, eval_node),
    'assign': lambda n, ctx: eval_assign(n, ctx, eval_node),
    'fndef': eval_fndef,
    'ifstmt': lambda n, ctx: eval_if_stmt(n, ctx, eval_node),
    'returnstmt': lambda n, ctx: eval_return_stmt(n, ctx, eval_node),
    'pipeline': lambda n, ctx: eval_pipeline(n, ctx, eval_node),
    'add': lambda n, ctx: eval_infix(n.children, ctx, eval_node),
    'mul': lambda n, ctx: eval_infix(n.children, ctx, eval_node),
    'compare': lambda n, ctx: eval_compare(n.children, ctx, eval_node),
    'logical': lambda n, ctx: eval_logical(n.children, ctx, eval_node),
    'unary': lambda n, ctx: eval_unary(n, ctx, eval_node),
    'string_interp': lambda n, ctx: eval_string_interp(n, ctx, eval_node),
    'member': lambda n, ctx: eval_member(n, ctx, eval_node),
    'record': lambda n, ctx: eval_record(n, ctx, eval_node),
    'array': lambda n, ctx: eval_array(n, ctx, eval_node),
    'comma_list': lambda n, ctx: eval_comma_list(n, ctx, eval_node),
    'scriptblock': lambda n, _: eval_scriptblock(n),
    'call': lambda n, ctx: eval_call(n, ctx, eval_node),
    'invoke': lambda n, ctx: eval_invoke(n, ctx, eval_node),
    'group': _eval_group,
}

_TOKEN_DISPATCH: dict[str, Callable[[Token, Context], PsValue]] = {
    'NUMBER': lambda t, _: token_number(t),
    'STRING': lambda t, _: token_string(t),
    'VARIABLE': lambda t, ctx: eval_variable(str(t.value), ctx),
    'TRUE': lambda t, _: eval_keyword_literal(t),
    'FALSE': lambda t, _: eval_keyword_literal(t),
    'NULL': lambda t, _: eval_keyword_literal(t),
}

__all__ = ["eval_expr", "eval_node"]
