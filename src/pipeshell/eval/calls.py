from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from ..runtime import (
    Context, PsBlock, PsBool, PsFunction, PsNull, PsString, PsValue,
    Stage, StageContext, TypeMismatch,
)
from ..tree import Tree, child_by_label, is_token, tree_children, tree_label
from ..types import CommandNotFound
from ..utils import collapse_output, type_name, unroll
from .blocks import execute_block
from .common import EvalFunc
from .fn import call_function

logger = logging.getLogger("pipeshell.calls")

# ---------- Resolution ----------

@dataclass
class UserFunction:
    fn: PsFunction

@dataclass
class BuiltinStage:
    stage: Stage

@dataclass
class NotFound:
    name: str

Resolution = Union[UserFunction, BuiltinStage, NotFound]

def _lookup_function(name: str, ctx: Context) -> Optional[Resolution]:
    value = ctx.scope.read(name)
    if isinstance(value, PsFunction):
        return UserFunction(value)
    return None

def _lookup_stage(name: str, ctx: Context) -> Optional[Resolution]:
    stage = ctx.registry.resolve(name)
    if stage is not None:
        return BuiltinStage(stage)
    return None

_PROVIDERS = (_lookup_function, _lookup_stage)

def resolve_call(name: str, ctx: Context) -> Resolution:
    """Functions bound in scope win over registered stages."""
    for provider in _PROVIDERS:
        found = provider(name, ctx)
        if found is not None:
            return found

    return NotFound(name)

# ---------- Arguments ----------

def eval_args(args_node: Optional[Tree], ctx: Context, eval_func: EvalFunc) -> Tuple[List[PsValue], Dict[str, PsValue]]:
    """Evaluate call arguments in the caller's scope, in source order."""
    positional: List[PsValue] = []
    named: Dict[str, PsValue] = {}

    for arg in tree_children(args_node):
        if tree_label(arg) == 'namedarg':
            param, *value = tree_children(arg)
            named[str(param.value)] = eval_func(value[0], ctx) if value else PsBool(True)
        else:
            positional.append(eval_func(arg, ctx))

    return positional, named

def stage_context(ctx: Context, eval_func: EvalFunc, items: List[PsValue],
                  args: List[PsValue], named: Dict[str, PsValue], piped: bool) -> StageContext:
    def run_block(block: PsBlock, item: PsValue) -> PsValue:
        return execute_block(block, item, ctx, eval_func)

    return StageContext(input=items, args=args, named=named, run_block=run_block, piped=piped)

# ---------- Calls ----------

def _call_parts(node: Tree) -> Tuple[str, Optional[Tree]]:
    name_tok = tree_children(node)[0]
    return str(name_tok.value), child_by_label(node, 'args')

def invoke_resolved(resolved: Resolution, ctx: Context, eval_func: EvalFunc,
                    positional: List[PsValue], named: Dict[str, PsValue],
                    pipeline_input: Optional[List[PsValue]]=None, piped: bool=False) -> PsValue:
    """Run a resolved call; pipeline_input is None outside a pipeline."""
    match resolved:
        case UserFunction(fn=fn):
            return call_function(fn, positional, ctx, eval_func, named=named, pipeline_input=pipeline_input)
        case BuiltinStage(stage=stage):
            sctx = stage_context(ctx, eval_func, list(pipeline_input or []), positional, named, piped)
            logger.debug("Invoking stage %s with %d input items", stage.name, len(sctx.input))
            return stage.invoke(sctx)
        case NotFound(name=name):
            raise CommandNotFound(name)

    raise TypeError(f"Unknown resolution {resolved!r}")

def eval_call(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsValue:
    """A call outside a pipeline; a stage's output collection is collapsed."""
    name, args_node = _call_parts(node)
    resolved = resolve_call(name, ctx)

    if isinstance(resolved, NotFound):
        raise CommandNotFound(name)

    positional, named = eval_args(args_node, ctx, eval_func)
    result = invoke_resolved(resolved, ctx, eval_func, positional, named)

    if isinstance(resolved, BuiltinStage):
        return collapse_output(unroll(result))

    return result

def eval_call_stage(node: Tree, items: List[PsValue], ctx: Context, eval_func: EvalFunc,
                    piped: bool=True) -> PsValue:
    """A call used as a pipeline stage: invoked once with the whole collection."""
    name, args_node = _call_parts(node)
    resolved = resolve_call(name, ctx)

    if isinstance(resolved, NotFound):
        raise CommandNotFound(name)

    positional, named = eval_args(args_node, ctx, eval_func)
    return invoke_resolved(resolved, ctx, eval_func, positional, named, pipeline_input=items, piped=piped)

def eval_invoke(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsValue:
    """`& target args`: run a block, a function value, or a command named by a string."""
    target_node = tree_children(node)[0]
    args_node = child_by_label(node, 'args')

    target: PsValue
    if is_token(target_node) and target_node.type == 'STRING':
        target = PsString(str(target_node.value))
    else:
        target = eval_func(target_node, ctx)

    positional, named = eval_args(args_node, ctx, eval_func)

    match target:
        case PsBlock():
            implicit = positional[0] if positional else PsNull()
            return execute_block(target, implicit, ctx, eval_func, args=positional[1:])
        case PsFunction():
            return call_function(target, positional, ctx, eval_func, named=named)
        case PsString(value=name):
            resolved = resolve_call(name, ctx)
            result = invoke_resolved(resolved, ctx, eval_func, positional, named)
            if isinstance(resolved, BuiltinStage):
                return collapse_output(unroll(result))
            return result

    raise TypeMismatch("invocation", "ScriptBlock", type_name(target))

__all__ = [
    "BuiltinStage",
    "NotFound",
    "Resolution",
    "UserFunction",
    "eval_args",
    "eval_call",
    "eval_call_stage",
    "eval_invoke",
    "resolve_call",
]
