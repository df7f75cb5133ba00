"""prompt_toolkit lexer for live pipeshell syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer_rd import Lexer as PsLexer, LexError
from .token_types import TT, Tok

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "boolean": "ansicyan",
    "constant": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "variable": "ansiyellow",
    "identifier": "",
    "command": "bold ansiyellow",
    "parameter": "ansiblue",
    "operator": "",
    "punctuation": "",
    "comment": "italic ansigray",
    "error": "bold ansired",
}

_TT_GROUP = {
    TT.IF: "keyword",
    TT.ELSEIF: "keyword",
    TT.ELSE: "keyword",
    TT.FUNCTION: "keyword",
    TT.RETURN: "keyword",
    TT.TRUE: "boolean",
    TT.FALSE: "boolean",
    TT.NULL: "constant",
    TT.NUMBER: "number",
    TT.STRING: "string",
    TT.INTERP_STRING: "string",
    TT.VARIABLE: "variable",
    TT.IDENT: "identifier",
    TT.PARAM: "parameter",
    TT.COMPARE: "keyword",
    TT.LOGICAL: "keyword",
    TT.NOT: "keyword",
    TT.PLUS: "operator",
    TT.MINUS: "operator",
    TT.STAR: "operator",
    TT.SLASH: "operator",
    TT.MOD: "operator",
    TT.NEG: "operator",
    TT.ASSIGN: "operator",
    TT.PIPE: "operator",
    TT.AMP: "operator",
    TT.LPAR: "punctuation",
    TT.RPAR: "punctuation",
    TT.LBRACE: "punctuation",
    TT.RBRACE: "punctuation",
    TT.AT_LPAR: "punctuation",
    TT.AT_LBRACE: "punctuation",
    TT.DOT: "punctuation",
    TT.COMMA: "punctuation",
    TT.SEMI: "punctuation",
}

_LAYOUT = {TT.NEWLINE, TT.EOF}

# A bareword right after these starts a command.
_COMMAND_HEADS = {TT.PIPE, TT.SEMI, TT.LPAR, TT.LBRACE, TT.AT_LPAR, TT.ASSIGN, TT.AMP}


def _is_command_position(tokens: list[Tok], idx: int) -> bool:
    if idx == 0:
        return True
    return tokens[idx - 1].type in _COMMAND_HEADS


def _split_trailing(segment: str) -> StyleAndTextTuples:
    """Whitespace and a trailing comment that follow a token's text."""
    stripped = segment.lstrip()
    if not stripped:
        return [("", segment)] if segment else []

    lead = segment[:len(segment) - len(stripped)]
    spans: StyleAndTextTuples = [("", lead)] if lead else []
    style = GROUP_STYLE["comment"] if stripped.startswith(("#", "<#")) else ""
    spans.append((style, stripped))
    return spans


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = PsLexer(text).tokenize()
    except LexError:
        return [("", text)]

    sig = [tok for tok in tokens if tok.type not in _LAYOUT]
    result: StyleAndTextTuples = []

    first_col = sig[0].column if sig else len(text) + 1
    if first_col > 1:
        result.extend(_split_trailing(text[:first_col - 1]))

    for i, tok in enumerate(sig):
        start = tok.column - 1
        end = sig[i + 1].column - 1 if i + 1 < len(sig) else len(text)
        segment = text[start:end]
        body = segment.rstrip()

        # Comments are skipped by the lexer; the last token's segment may carry one.
        hash_at = body.find("#") if tok.type not in (TT.STRING, TT.INTERP_STRING) else -1
        if hash_at > 0 and i + 1 == len(sig):
            body = body[:hash_at].rstrip()

        group = _TT_GROUP.get(tok.type, "")
        if tok.type == TT.IDENT and _is_command_position(sig, i):
            group = "command"

        result.append((GROUP_STYLE.get(group, ""), body))
        result.extend(_split_trailing(segment[len(body):]))

    return result if result else [("", text)]


class PipeshellLexer(Lexer):
    """prompt_toolkit Lexer that highlights pipeshell source using the RD lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        # Pre-compute highlights for all lines.
        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
