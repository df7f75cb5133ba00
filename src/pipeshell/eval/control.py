from __future__ import annotations

from ..runtime import Context, PsNull, PsValue
from ..tree import Tree, tree_children, tree_label
from ..types import ReturnOutsideFunction, ReturnSignal
from ..utils import to_boolean
from .blocks import eval_statements
from .common import EvalFunc

def eval_if_stmt(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsValue:
    """Branches run in the current frame; an `elseif` chain sits nested in the else slot."""
    cond, then_body, *rest = tree_children(node)

    if to_boolean(eval_func(cond, ctx)):
        return eval_statements(tree_children(then_body), ctx, eval_func)

    if not rest:
        return PsNull()

    else_node = rest[0]
    if tree_label(else_node) == 'ifstmt':
        return eval_func(else_node, ctx)

    return eval_statements(tree_children(else_node), ctx, eval_func)

def eval_return_stmt(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsValue:
    if ctx.call_depth == 0:
        raise ReturnOutsideFunction()

    children = tree_children(node)
    value = eval_func(children[0], ctx) if children else PsNull()
    raise ReturnSignal(value)
