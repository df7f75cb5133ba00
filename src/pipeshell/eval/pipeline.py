from __future__ import annotations

import logging
from typing import List

from ..runtime import Context, PsList, PsValue, PipeshellRuntimeError
from ..tree import Node, Tree, tree_children, tree_label
from ..utils import unroll
from .blocks import eval_scriptblock, execute_block
from .calls import eval_call_stage
from .common import EvalFunc, maybe_attach_location

logger = logging.getLogger("pipeshell.pipeline")

def _run_call_stage(stage: Node, items: List[PsValue], first: bool, ctx: Context, eval_func: EvalFunc) -> List[PsValue]:
    result = eval_call_stage(stage, items, ctx, eval_func, piped=not first)
    return unroll(result)

def _run_block_stage(stage: Node, items: List[PsValue], first: bool, ctx: Context, eval_func: EvalFunc) -> List[PsValue]:
    block = eval_scriptblock(stage)

    if first:
        return [block]

    return [execute_block(block, item, ctx, eval_func) for item in items]

def _run_expr_stage(stage: Node, items: List[PsValue], first: bool, ctx: Context, eval_func: EvalFunc) -> List[PsValue]:
    if first:
        return unroll(eval_func(stage, ctx))

    out: List[PsValue] = []
    for item in items:
        with ctx.scope.frame():
            ctx.scope.define('_', item)
            out.append(eval_func(stage, ctx))

    return out

def execute_pipeline(stages: List[Node], ctx: Context, eval_func: EvalFunc) -> List[PsValue]:
    """
    Thread a collection through the stages in order.

    A call stage runs once over the whole collection and its result replaces
    it (a List flattens one level). A block stage runs once per item. Any
    other expression is evaluated once as the first stage, else once per item
    with `_` bound. Errors abort the rest of the pipeline.
    """
    items: List[PsValue] = []

    for idx, stage in enumerate(stages):
        first = idx == 0
        label = tree_label(stage)

        if label == 'call':
            runner = _run_call_stage
        elif label == 'scriptblock':
            runner = _run_block_stage
        else:
            runner = _run_expr_stage

        logger.debug("Stage %d (%s) receives %d items", idx, label or 'token', len(items))
        try:
            items = runner(stage, items, first, ctx, eval_func)
        except PipeshellRuntimeError as exc:
            maybe_attach_location(exc, stage)
            raise

    return items

def eval_pipeline(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsList:
    return PsList(execute_pipeline(tree_children(node), ctx, eval_func))
