from __future__ import annotations

from ..runtime import Context, PsNull, PsValue
from ..tree import Tree, tree_children
from ..types import UndefinedVariable
from .common import EvalFunc

def eval_assign(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsValue:
    """`$name = rhs`: evaluate, then write through the scope stack. Produces no output."""
    target, rhs = tree_children(node)
    value = eval_func(rhs, ctx)
    ctx.scope.write(str(target.value), value)
    return PsNull()

def eval_variable(name: str, ctx: Context) -> PsValue:
    value = ctx.scope.read(name)
    if value is None:
        raise UndefinedVariable(name)

    return value
