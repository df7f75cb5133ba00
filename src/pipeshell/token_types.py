"""
Token Types for the pipeshell parser

Shared between lexer, parser and the REPL highlighter.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types"""

    # Literals
    NUMBER = auto()
    STRING = auto()         # single-quoted, or double-quoted without interpolation
    INTERP_STRING = auto()  # double-quoted with $var / $( ) parts
    VARIABLE = auto()       # $name, $global:name
    IDENT = auto()          # bareword / command name, may contain '-'
    PARAM = auto()          # -Name in command mode

    # Operator words
    COMPARE = auto()  # -eq -ne -gt -lt -ge -le
    LOGICAL = auto()  # -and -or
    NOT = auto()      # -not

    # Keywords
    IF = auto()
    ELSEIF = auto()
    ELSE = auto()
    FUNCTION = auto()
    RETURN = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    # Arithmetic
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    MOD = auto()
    NEG = auto()  # !

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    LBRACE = auto()
    RBRACE = auto()
    AT_LPAR = auto()    # @(
    AT_LBRACE = auto()  # @{
    COMMA = auto()
    DOT = auto()
    SEMI = auto()
    ASSIGN = auto()
    PIPE = auto()
    AMP = auto()  # & call operator

    # Special
    NEWLINE = auto()
    EOF = auto()


@dataclass
class Tok:
    """Token with position info"""

    type: TT
    value: Any
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
