from __future__ import annotations

from typing import List, Optional

from ..runtime import Context, PsBlock, PsList, PsNull, PsValue
from ..tree import Node, Tree, child_by_label, tree_children
from ..types import ReturnOutsideFunction, ReturnSignal
from .common import EvalFunc

def eval_statements(stmts: List[Node], ctx: Context, eval_func: EvalFunc) -> PsValue:
    """Run statements in order against the live scope; the last value wins."""
    result: PsValue = PsNull()

    for stmt in stmts:
        result = eval_func(stmt, ctx)

    return result

def eval_program(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsValue:
    try:
        return eval_statements(tree_children(node), ctx, eval_func)
    except ReturnSignal:
        raise ReturnOutsideFunction() from None

def eval_scriptblock(node: Tree) -> PsBlock:
    body = child_by_label(node, 'block')
    assert body is not None, "scriptblock without a body"
    return PsBlock(body)

def execute_block(block: PsBlock, implicit_input: PsValue, ctx: Context, eval_func: EvalFunc,
                  args: Optional[List[PsValue]]=None) -> PsValue:
    """Run a deferred block in a fresh frame with `_` bound to the input."""
    with ctx.scope.frame():
        ctx.scope.define('_', implicit_input)
        if args is not None:
            ctx.scope.define('args', PsList(list(args)))

        return eval_statements(tree_children(block.body), ctx, eval_func)
