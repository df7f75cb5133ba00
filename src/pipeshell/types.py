from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from typing_extensions import TypeAlias, TypeGuard
from .tree import Node

# ---------- Value Model ----------

@dataclass
class PsNull:
    def __repr__(self) -> str:
        return "$null"

@dataclass
class PsBool:
    value: bool
    def __repr__(self) -> str:
        return "$true" if self.value else "$false"

@dataclass
class PsNumber:
    value: float
    def __repr__(self) -> str:
        v = self.value
        return str(int(v)) if v.is_integer() else repr(v)

@dataclass
class PsString:
    value: str
    def __repr__(self) -> str:
        return f'"{self.value}"'

@dataclass
class PsList:
    items: List['PsValue']
    def __repr__(self) -> str:
        return "@(" + ", ".join(repr(x) for x in self.items) + ")"

@dataclass
class PsRecord:
    """Insertion-ordered property bag; keys compare case-insensitively."""
    slots: Dict[str, 'PsValue'] = field(default_factory=dict)

    def find_key(self, name: str) -> Optional[str]:
        if name in self.slots:
            return name

        folded = name.casefold()
        for key in self.slots:
            if key.casefold() == folded:
                return key

        return None

    def get(self, name: str) -> Optional['PsValue']:
        key = self.find_key(name)
        return None if key is None else self.slots[key]

    def set(self, name: str, value: 'PsValue') -> None:
        key = self.find_key(name)
        self.slots[name if key is None else key] = value

    def __repr__(self) -> str:
        pairs = []

        for k, v in self.slots.items():
            pairs.append(f"{k}={repr(v)}")

        return "@{" + "; ".join(pairs) + "}"

@dataclass
class PsParam:
    name: str
    default: Optional[Node] = None

@dataclass
class PsFunction:
    name: str
    params: List[PsParam]
    body: Node                    # 'block' tree
    def __repr__(self) -> str:
        names = ", ".join("$" + p.name for p in self.params)
        return f"<function {self.name}({names})>"

@dataclass
class PsBlock:
    """Deferred statement body; runs against the live scope stack."""
    body: Node                    # 'block' tree
    def __repr__(self) -> str:
        return "{scriptblock}"

PsValue: TypeAlias = (
    PsNull
    | PsBool
    | PsNumber
    | PsString
    | PsList
    | PsRecord
    | PsFunction
    | PsBlock
)

_PS_VALUE_TYPES: Tuple[type, ...] = (
    PsNull,
    PsBool,
    PsNumber,
    PsString,
    PsList,
    PsRecord,
    PsFunction,
    PsBlock,
)

def is_ps_value(value: object) -> TypeGuard[PsValue]:
    return isinstance(value, _PS_VALUE_TYPES)

# ---------- Exceptions ----------

class PipeshellRuntimeError(Exception):
    """Base of every error a script can raise; carries a kind and location."""
    kind: str = "RuntimeError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.line: Optional[int] = None
        self.column: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        if self.line is None:
            return self.message

        if self.column is None:
            return f"{self.message} (line {self.line})"

        return f"{self.message} (line {self.line}, col {self.column})"

class UndefinedVariable(PipeshellRuntimeError):
    kind = "UndefinedVariable"

    def __init__(self, name: str):
        super().__init__(f"Variable '${name}' is not defined")
        self.name = name

class TypeMismatch(PipeshellRuntimeError):
    kind = "TypeMismatch"

    def __init__(self, operation: str, expected: str, actual: str):
        super().__init__(f"Type mismatch in {operation}: expected {expected}, got {actual}")
        self.operation = operation
        self.expected = expected
        self.actual = actual

class DivisionByZero(PipeshellRuntimeError):
    kind = "DivisionByZero"

    def __init__(self, operation: str = "division"):
        super().__init__(f"Attempted to divide by zero in {operation}")
        self.operation = operation

class CommandNotFound(PipeshellRuntimeError):
    kind = "CommandNotFound"

    def __init__(self, name: str):
        super().__init__(f"The term '{name}' is not recognized as a function or command")
        self.name = name

class InvalidPropertyAccess(PipeshellRuntimeError):
    kind = "InvalidPropertyAccess"

    def __init__(self, prop: str, reason: str, receiver: str = ""):
        if reason == "not-a-record":
            detail = f"cannot read property '{prop}' of {receiver or 'a non-record value'}"
        else:
            detail = f"property '{prop}' not found"
        super().__init__(f"Invalid property access: {detail}")
        self.prop = prop
        self.reason = reason

class ReturnOutsideFunction(PipeshellRuntimeError):
    kind = "ReturnOutsideFunction"

    def __init__(self) -> None:
        super().__init__("Return statement outside of function")

class ParameterBindingError(PipeshellRuntimeError):
    kind = "ParameterBindingError"

    def __init__(self, function: str, parameter: str):
        super().__init__(f"Function '{function}' has no parameter named '{parameter}'")
        self.function = function
        self.parameter = parameter

class InvalidOperation(PipeshellRuntimeError):
    kind = "InvalidOperation"

class RecursionLimitExceeded(PipeshellRuntimeError):
    kind = "RecursionLimitExceeded"

    def __init__(self, limit: int):
        super().__init__(f"Call depth exceeded the limit of {limit}")
        self.limit = limit

class ReturnSignal(Exception):
    """Internal control-flow exception used to implement `return`."""
    def __init__(self, value: PsValue):
        self.value = value

class ScopeStackUnderflow(Exception):
    """Raised when something tries to pop the global frame."""
