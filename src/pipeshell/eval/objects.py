from __future__ import annotations

from typing import List

from ..runtime import Context, PsList, PsRecord, PsValue
from ..tree import Tree, tree_children, tree_label
from ..types import InvalidPropertyAccess
from ..utils import type_name, unroll
from .common import EvalFunc, SILENT_STATEMENTS

def eval_record(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsRecord:
    """@{ k = v; ... }: left to right, a repeated key keeps its first spelling and last value."""
    record = PsRecord()

    for pair in tree_children(node):
        key, value_node = tree_children(pair)
        record.set(str(key.value), eval_func(value_node, ctx))

    return record

def eval_member(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsValue:
    base_node, name_tok = tree_children(node)
    base = eval_func(base_node, ctx)
    name = str(name_tok.value)

    if not isinstance(base, PsRecord):
        raise InvalidPropertyAccess(name, "not-a-record", type_name(base))

    value = base.get(name)
    if value is None:
        raise InvalidPropertyAccess(name, "missing")

    return value

def eval_array(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsList:
    """@( stmts ): every statement's value is collected, lists unrolled one level."""
    items: List[PsValue] = []

    for stmt in tree_children(node):
        value = eval_func(stmt, ctx)
        if tree_label(stmt) in SILENT_STATEMENTS:
            continue
        items.extend(unroll(value))

    return PsList(items)

def eval_comma_list(node: Tree, ctx: Context, eval_func: EvalFunc) -> PsList:
    return PsList([eval_func(ch, ctx) for ch in tree_children(node)])
