from __future__ import annotations

from lark import Token

from ..runtime import Context, PsBool, PsNull, PsString, PsValue, PipeshellRuntimeError
from ..tree import Tree, is_token, tree_children, tree_label
from .blocks import eval_statements
from .common import EvalFunc, interpolate

def eval_keyword_literal(tok: Token) -> PsValue:
    match tok.type:
        case 'TRUE':
            return PsBool(True)
        case 'FALSE':
            return PsBool(False)
        case 'NULL':
            return PsNull()

    raise PipeshellRuntimeError(f"Unknown literal {tok.value!r}")

def eval_string_interp(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsString:
    parts: list[str] = []

    for part in tree_children(node):
        if is_token(part):
            if part.type == 'TEXT':
                parts.append(str(part.value))
            else:
                parts.append(interpolate(eval_func(part, ctx)))
            continue

        if tree_label(part) == 'interp_expr':
            value = eval_statements(tree_children(part), ctx, eval_func)
            parts.append(interpolate(value))
            continue

        raise PipeshellRuntimeError("Unexpected node in string interpolation literal")

    return PsString("".join(parts))
