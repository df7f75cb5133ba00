"""Built-in pipeline stages registered via pipeshell.runtime."""

from __future__ import annotations

import logging
from functools import cmp_to_key
from typing import Dict, List, Optional

from .runtime import (
    register_stage, StageContext,
    PsNull, PsNumber, PsString, PsList, PsRecord, PsBlock, PsValue, TypeMismatch,
)
from .utils import (
    compare_values,
    display_string,
    get_property,
    to_boolean,
    to_number,
    type_name,
    unroll,
    values_equal,
)

logger = logging.getLogger("pipeshell.stdlib")

def _property_names(value: Optional[PsValue]) -> List[str]:
    if value is None:
        return []

    return [display_string(v) for v in unroll(value) if not isinstance(v, PsNull)]

def _property_arg(ctx: StageContext) -> Optional[PsValue]:
    """`-Property` when given, else the positional arguments flattened into one list."""
    val = ctx.param("Property")
    if val is None and ctx.args:
        val = PsList([v for arg in ctx.args for v in unroll(arg)])

    return val

def _count_param(stage: str, ctx: StageContext, name: str) -> Optional[int]:
    val = ctx.param(name)
    if val is None:
        return None

    n = to_number(val)
    if n is None:
        raise TypeMismatch(f"{stage} -{name}", "Number", type_name(val))

    return max(0, int(n))

def _block_arg(ctx: StageContext, *names: str) -> Optional[PsBlock]:
    for name in names:
        val = ctx.param(name)
        if isinstance(val, PsBlock):
            return val

    if ctx.args and isinstance(ctx.args[0], PsBlock):
        return ctx.args[0]

    return None

def _prop_or_null(item: PsValue, name: str) -> PsValue:
    val = get_property(item, name)
    return PsNull() if val is None else val

@register_stage("Write-Output")
def stage_write_output(ctx: StageContext) -> PsList:
    if ctx.input:
        return PsList(list(ctx.input))

    out: List[PsValue] = []
    for arg in ctx.args:
        out.extend(unroll(arg))

    return PsList(out)

@register_stage("Where-Object")
def stage_where_object(ctx: StageContext) -> PsList:
    block = _block_arg(ctx, "FilterScript")

    if block is not None:
        kept = [item for item in ctx.input if to_boolean(ctx.run_block(block, item))]
    elif ctx.has("Property") or ctx.args:
        prop_val = ctx.param("Property")
        prop = display_string(prop_val if prop_val is not None else ctx.args[0])
        expected = ctx.param("Value")

        if expected is None:
            kept = [item for item in ctx.input if to_boolean(_prop_or_null(item, prop))]
        else:
            kept = [
                item for item in ctx.input
                if get_property(item, prop) is not None and values_equal(_prop_or_null(item, prop), expected)
            ]
    else:
        kept = list(ctx.input)

    logger.debug("Where-Object kept %d of %d items", len(kept), len(ctx.input))
    return PsList(kept)

@register_stage("ForEach-Object")
def stage_foreach_object(ctx: StageContext) -> PsList:
    block = _block_arg(ctx, "Process")

    if block is not None:
        return PsList([ctx.run_block(block, item) for item in ctx.input])

    member = ctx.param("MemberName")
    if member is None and ctx.args:
        member = ctx.args[0]

    if member is None:
        return PsList(list(ctx.input))

    name = display_string(member)
    return PsList([_prop_or_null(item, name) for item in ctx.input])

@register_stage("Select-Object")
def stage_select_object(ctx: StageContext) -> PsList:
    items = list(ctx.input)

    expand = ctx.param("ExpandProperty")
    if expand is not None:
        name = display_string(expand)
        items = [_prop_or_null(item, name) for item in items if isinstance(item, PsRecord)]
    else:
        props = _property_names(_property_arg(ctx))

        if props:
            projected: List[PsValue] = []
            for item in items:
                if isinstance(item, PsRecord):
                    rec = PsRecord()
                    for p in props:
                        rec.set(p, _prop_or_null(item, p))
                    projected.append(rec)
                else:
                    projected.append(item)
            items = projected

    skip = _count_param("Select-Object", ctx, "Skip")
    if skip:
        items = items[skip:]

    first = _count_param("Select-Object", ctx, "First")
    if first is not None:
        items = items[:first]

    last = _count_param("Select-Object", ctx, "Last")
    if last is not None:
        items = items[-last:] if last else []

    return PsList(items)

def _sort_cmp(a: PsValue, b: PsValue) -> int:
    match (a, b):
        case (PsNull(), PsNull()):
            return 0
        case (PsNull(), _):
            return -1
        case (_, PsNull()):
            return 1

    return compare_values(a, b)

def _sort_keys(item: PsValue, props: List[str]) -> List[PsValue]:
    if not props:
        return [item]

    return [_prop_or_null(item, p) for p in props]

@register_stage("Sort-Object")
def stage_sort_object(ctx: StageContext) -> PsList:
    if ctx.piped:
        items = list(ctx.input)
        props = _property_names(_property_arg(ctx))
    else:
        items = []
        for arg in ctx.args:
            items.extend(unroll(arg))
        props = _property_names(ctx.param("Property"))

    def cmp(a: PsValue, b: PsValue) -> int:
        for ka, kb in zip(_sort_keys(a, props), _sort_keys(b, props)):
            result = _sort_cmp(ka, kb)
            if result:
                return result
        return 0

    # sorted() keeps equal items in input order, also with reverse=True
    ordered = sorted(items, key=cmp_to_key(cmp), reverse=ctx.switch("Descending"))
    return PsList(ordered)

@register_stage("Group-Object")
def stage_group_object(ctx: StageContext) -> PsValue:
    props = _property_names(_property_arg(ctx))

    groups: Dict[str, List[PsValue]] = {}
    names: Dict[str, str] = {}

    for item in ctx.input:
        if props:
            name = ", ".join(display_string(_prop_or_null(item, p)) for p in props)
        else:
            name = display_string(item)

        key = name.casefold()
        names.setdefault(key, name)
        groups.setdefault(key, []).append(item)

    ordered = sorted(groups, key=cmp_to_key(lambda a, b: compare_values(PsString(a), PsString(b))))
    logger.debug("Group-Object built %d groups from %d items", len(ordered), len(ctx.input))

    if ctx.switch("AsHashTable"):
        return PsRecord({names[key]: PsList(groups[key]) for key in ordered})

    no_element = ctx.switch("NoElement")
    out: List[PsValue] = []

    for key in ordered:
        slots: Dict[str, PsValue] = {
            "Count": PsNumber(float(len(groups[key]))),
            "Name": PsString(names[key]),
        }
        if not no_element:
            slots["Group"] = PsList(groups[key])
        out.append(PsRecord(slots))

    return PsList(out)
