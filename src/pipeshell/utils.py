from __future__ import annotations

import math
import os as _os
import re
from typing import List, Optional

from .types import (
    PsValue,
    PsNull,
    PsBool,
    PsNumber,
    PsString,
    PsList,
    PsRecord,
    PsFunction,
    PsBlock,
)

DEFAULT_MAX_CALL_DEPTH = 256

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")

# ---------- Configuration ----------

def debug_py_trace_enabled() -> bool:
    return _os.environ.get("PIPESHELL_DEBUG_PY_TRACE", "") not in ("", "0")

def max_call_depth() -> int:
    raw = _os.environ.get("PIPESHELL_MAX_CALL_DEPTH")
    if raw is None:
        return DEFAULT_MAX_CALL_DEPTH

    try:
        limit = int(raw)
    except ValueError:
        return DEFAULT_MAX_CALL_DEPTH

    return limit if limit > 0 else DEFAULT_MAX_CALL_DEPTH

# ---------- Conversions ----------

def to_boolean(value: PsValue) -> bool:
    match value:
        case PsNull():
            return False
        case PsBool(value=b):
            return b
        case PsNumber(value=n):
            return n != 0
        case PsString(value=s):
            return s != ""
        case PsList(items=items):
            return len(items) > 0
        case _:
            return True

def to_number(value: PsValue) -> Optional[float]:
    """Number passes through; numeric-looking strings parse; anything else is None."""
    match value:
        case PsNumber(value=n):
            return n
        case PsString(value=s) if _NUMERIC_RE.match(s):
            return float(s)
        case _:
            return None

def format_number(n: float) -> str:
    if math.isfinite(n) and n.is_integer():
        return str(int(n))

    return repr(n)

def display_string(value: Optional[PsValue]) -> str:
    match value:
        case None | PsNull():
            return ""
        case PsBool(value=b):
            return "True" if b else "False"
        case PsNumber(value=n):
            return format_number(n)
        case PsString(value=s):
            return s
        case PsRecord(slots=slots):
            parts = [f"{k}={display_string(v)}" for k, v in slots.items()]
            return "@{" + "; ".join(parts) + "}"
        case PsList(items=items):
            return "@(" + ", ".join(display_string(x) for x in items) + ")"
        case PsFunction(name=name):
            return f"function {name}"
        case PsBlock():
            return "{scriptblock}"
        case _:
            return str(value)

def type_name(value: PsValue) -> str:
    match value:
        case PsNull():
            return "Null"
        case PsBool():
            return "Boolean"
        case PsNumber():
            return "Number"
        case PsString():
            return "String"
        case PsList():
            return "List"
        case PsRecord():
            return "Record"
        case PsFunction():
            return "Function"
        case PsBlock():
            return "ScriptBlock"
        case _:
            return type(value).__name__

def get_property(value: PsValue, name: str) -> Optional[PsValue]:
    if isinstance(value, PsRecord):
        return value.get(name)

    return None

# ---------- Comparison ----------

def values_equal(lhs: PsValue, rhs: PsValue) -> bool:
    match (lhs, rhs):
        case (PsNull(), PsNull()):
            return True
        case (PsNull(), _) | (_, PsNull()):
            return False

    ln, rn = to_number(lhs), to_number(rhs)
    if ln is not None and rn is not None:
        return ln == rn

    return display_string(lhs).casefold() == display_string(rhs).casefold()

def compare_values(lhs: PsValue, rhs: PsValue) -> int:
    """Three-way compare: numeric when both coerce, else case-insensitive text."""
    ln, rn = to_number(lhs), to_number(rhs)

    if ln is not None and rn is not None:
        return (ln > rn) - (ln < rn)

    ls = display_string(lhs).casefold()
    rs = display_string(rhs).casefold()
    return (ls > rs) - (ls < rs)

# ---------- Collections ----------

def unroll(value: PsValue) -> List[PsValue]:
    if isinstance(value, PsList):
        return list(value.items)

    return [value]

def collapse_output(items: List[PsValue]) -> PsValue:
    if not items:
        return PsNull()
    if len(items) == 1:
        return items[0]

    return PsList(list(items))
