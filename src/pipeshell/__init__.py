"""pipeshell: an interpreter for a small object-pipeline shell language."""

import logging

from .runner import Interpreter, run
from .types import (
    CommandNotFound,
    DivisionByZero,
    InvalidOperation,
    InvalidPropertyAccess,
    ParameterBindingError,
    PipeshellRuntimeError,
    RecursionLimitExceeded,
    ReturnOutsideFunction,
    TypeMismatch,
    UndefinedVariable,
)

logging.getLogger("pipeshell").addHandler(logging.NullHandler())

__all__ = [
    "CommandNotFound",
    "DivisionByZero",
    "Interpreter",
    "InvalidOperation",
    "InvalidPropertyAccess",
    "ParameterBindingError",
    "PipeshellRuntimeError",
    "RecursionLimitExceeded",
    "ReturnOutsideFunction",
    "TypeMismatch",
    "UndefinedVariable",
    "run",
]
