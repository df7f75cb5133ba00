from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..runtime import Context, PsFunction, PsList, PsNull, PsParam, PsValue
from ..tree import Tree, tree_children
from ..types import ParameterBindingError, RecursionLimitExceeded, ReturnSignal
from ..utils import max_call_depth
from .blocks import eval_statements
from .common import EvalFunc

logger = logging.getLogger("pipeshell.fn")

def eval_fndef(node: Tree, ctx: Context) -> PsValue:
    """Bind a new Function value in the frame where the definition runs."""
    name_tok, paramlist, body = tree_children(node)
    params: List[PsParam] = []

    for param in tree_children(paramlist):
        var, *default = tree_children(param)
        params.append(PsParam(str(var.value), default[0] if default else None))

    fn = PsFunction(str(name_tok.value), params, body)
    ctx.scope.define(fn.name, fn)
    logger.debug("Defined function %s(%s)", fn.name, ", ".join(p.name for p in params))
    return PsNull()

def _bind_named(fn: PsFunction, named: Dict[str, PsValue]) -> Dict[str, PsValue]:
    by_param: Dict[str, PsValue] = {}

    for key, value in named.items():
        folded = key.casefold()
        param = next((p for p in fn.params if p.name.casefold() == folded), None)
        if param is None:
            raise ParameterBindingError(fn.name, key)
        by_param[param.name.casefold()] = value

    return by_param

def call_function(fn: PsFunction, positional: List[PsValue], ctx: Context, eval_func: EvalFunc,
                  named: Optional[Dict[str, PsValue]]=None,
                  pipeline_input: Optional[List[PsValue]]=None) -> PsValue:
    """
    Call a user function with already-evaluated arguments.

    Named arguments bind first; remaining parameters take positional values
    in order, then their default (evaluated in the callee frame), then Null.
    Unconsumed positional values become `$args`; pipeline input becomes
    `$input`. The callee frame is isolated and always popped.
    """
    limit = max_call_depth()
    if ctx.call_depth >= limit:
        raise RecursionLimitExceeded(limit)

    by_param = _bind_named(fn, named or {})
    logger.debug("Calling %s with %d positional and %d named arguments",
                 fn.name, len(positional), len(by_param))

    ctx.call_depth += 1
    try:
        with ctx.scope.frame(isolated=True):
            remaining = list(positional)

            for param in fn.params:
                key = param.name.casefold()
                if key in by_param:
                    value = by_param[key]
                elif remaining:
                    value = remaining.pop(0)
                elif param.default is not None:
                    value = eval_func(param.default, ctx)
                else:
                    value = PsNull()
                ctx.scope.define(param.name, value)

            ctx.scope.define('args', PsList(remaining))
            if pipeline_input is not None:
                ctx.scope.define('input', PsList(list(pipeline_input)))

            try:
                return eval_statements(tree_children(fn.body), ctx, eval_func)
            except ReturnSignal as signal:
                return signal.value
    except RecursionError:
        raise RecursionLimitExceeded(limit) from None
    finally:
        ctx.call_depth -= 1
