from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .scope import ScopeStack
from .types import (
    PsNull, PsBool, PsNumber, PsString, PsList, PsRecord, PsFunction, PsBlock, PsParam,
    PsValue, PipeshellRuntimeError, InvalidOperation, TypeMismatch,
)
from .utils import type_name

logger = logging.getLogger("pipeshell.runtime")

_STDLIB_INITIALIZED = False

def init_stdlib() -> None:
    """Load stdlib modules (idempotent) so register_stage hooks run."""
    global _STDLIB_INITIALIZED

    if _STDLIB_INITIALIZED:
        return

    importlib.import_module("pipeshell.stdlib")
    _STDLIB_INITIALIZED = True

# ---------- Evaluation context ----------

class Context:
    """Everything an evaluation step needs: the live scope stack and the stage registry."""

    def __init__(self, registry: Optional['StageRegistry']=None, source: Optional[str]=None):
        self.scope = ScopeStack()
        self.registry = registry if registry is not None else default_registry()
        self.source = source
        self.call_depth = 0

# ---------- Stages ----------

BlockRunner = Callable[[PsBlock, PsValue], PsValue]

_SWITCH_TRUE = {"true", "yes", "1"}
_SWITCH_FALSE = {"false", "no", "0"}

@dataclass
class StageContext:
    input: List[PsValue]
    args: List[PsValue]
    named: Dict[str, PsValue]
    run_block: BlockRunner
    piped: bool = False           # True when invoked as a pipeline stage

    def has(self, name: str) -> bool:
        return self._key(name) is not None

    def param(self, name: str, default: Optional[PsValue]=None) -> Optional[PsValue]:
        key = self._key(name)
        return default if key is None else self.named[key]

    def switch(self, name: str) -> bool:
        val = self.param(name)
        if val is None:
            return False
        return parse_switch(name, val)

    def _key(self, name: str) -> Optional[str]:
        folded = name.casefold()
        for key in self.named:
            if key.casefold() == folded:
                return key
        return None

def parse_switch(name: str, val: PsValue) -> bool:
    match val:
        case PsBool(value=b):
            return b
        case PsNumber(value=n):
            return n != 0
        case PsString(value=s) if s.strip().lower() in _SWITCH_TRUE:
            return True
        case PsString(value=s) if s.strip().lower() in _SWITCH_FALSE:
            return False

    raise InvalidOperation(f"Switch -{name} expects a boolean, got {type_name(val)}")

StageFn = Callable[[StageContext], PsValue]

@dataclass
class Stage:
    name: str
    fn: StageFn

    def invoke(self, ctx: StageContext) -> PsValue:
        return self.fn(ctx)

@dataclass
class StageRegistry:
    stages: Dict[str, Stage] = field(default_factory=dict)

    def register(self, name: str, fn: StageFn) -> Stage:
        stage = Stage(name, fn)
        self.stages[name.casefold()] = stage
        logger.debug("Registered stage %s", name)
        return stage

    def resolve(self, name: str) -> Optional[Stage]:
        return self.stages.get(name.casefold())

    def names(self) -> List[str]:
        return sorted(stage.name for stage in self.stages.values())

_DEFAULT_REGISTRY = StageRegistry()

def default_registry() -> StageRegistry:
    init_stdlib()
    return _DEFAULT_REGISTRY

def register_stage(name: str, registry: Optional[StageRegistry]=None):
    target = registry if registry is not None else _DEFAULT_REGISTRY

    def dec(fn: StageFn) -> StageFn:
        target.register(name, fn)
        return fn

    return dec

def resolve_stage(name: str) -> Optional[Stage]:
    return default_registry().resolve(name)

__all__ = [
    "BlockRunner",
    "Context",
    "InvalidOperation",
    "PipeshellRuntimeError",
    "PsBlock",
    "PsBool",
    "PsFunction",
    "PsList",
    "PsNull",
    "PsNumber",
    "PsParam",
    "PsRecord",
    "PsString",
    "PsValue",
    "Stage",
    "StageContext",
    "StageRegistry",
    "TypeMismatch",
    "default_registry",
    "init_stdlib",
    "parse_switch",
    "register_stage",
    "resolve_stage",
]
