"""Interactive REPL for pipeshell, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .lexer_rd import LexError, tokenize
from .parser_rd import ParseError
from .repl_highlight import PipeshellLexer
from .runner import Interpreter, print_value, report_error
from .token_types import TT
from .types import PipeshellRuntimeError, PsFunction
from .utils import debug_py_trace_enabled

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

_WORD_RE = re.compile(r"[A-Za-z_][\w-]*$")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Reset the REPL environment", ""),
}

_DEPTH_OPEN = {TT.LPAR, TT.LBRACE, TT.AT_LPAR, TT.AT_LBRACE}
_DEPTH_CLOSE = {TT.RPAR, TT.RBRACE}
_LAYOUT = {TT.NEWLINE, TT.EOF}


def _needs_continuation(text: str) -> bool:
    """True while brackets are open, a string is unterminated or the text ends in '|'."""
    try:
        tokens = tokenize(text)
    except LexError as exc:
        return str(exc).startswith("Unterminated")

    depth = 0
    last_sig = None

    for tok in tokens:
        if tok.type in _LAYOUT:
            continue
        if tok.type in _DEPTH_OPEN:
            depth += 1
        elif tok.type in _DEPTH_CLOSE:
            depth -= 1
        last_sig = tok.type

    return depth > 0 or last_sig == TT.PIPE


class _ReplCompleter(Completer):
    """Slash commands on the primary prompt; stage and function names elsewhere."""

    def __init__(self, interp_box: list[Interpreter]):
        self.interp_box = interp_box

    def _command_names(self) -> list[str]:
        interp = self.interp_box[0]
        names = list(interp.ctx.registry.names())

        for frame in interp.scope.frames:
            names.extend(name for name, val in frame.items() if isinstance(val, PsFunction))

        return names

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor

        if text.startswith("/"):
            for cmd, (desc, hint) in _SLASH_CMDS.items():
                if cmd.startswith(text):
                    yield Completion(cmd, start_position=-len(text), display_meta=desc)
            return

        match = _WORD_RE.search(text)
        if match is None:
            return

        word = match.group(0)
        folded = word.casefold()
        for name in self._command_names():
            if name.casefold().startswith(folded) and name != word:
                yield Completion(name, start_position=-len(word))


def _handle_slash(line: str, interp_box: list[Interpreter]) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1] if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/py-traceback":
        if arg.lower() in ("on", "1", "true", "yes"):
            os.environ["PIPESHELL_DEBUG_PY_TRACE"] = "1"
        elif arg.lower() in ("off", "0", "false", "no"):
            os.environ.pop("PIPESHELL_DEBUG_PY_TRACE", None)
        elif arg == "":
            # Toggle.
            if debug_py_trace_enabled():
                os.environ.pop("PIPESHELL_DEBUG_PY_TRACE", None)
            else:
                os.environ["PIPESHELL_DEBUG_PY_TRACE"] = "1"
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state}")
        return True

    if cmd == "/reset":
        interp_box[0] = Interpreter()
        print("Environment reset.")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def repl() -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    # Use a mutable box so /reset can swap the interpreter.
    interp_box: list[Interpreter] = [Interpreter()]

    bindings = KeyBindings()

    @bindings.add("backspace")
    def _backspace(event):
        buf = event.app.current_buffer
        buf.delete_before_cursor(1)
        if buf.text.startswith("/"):
            buf.start_completion()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        text = buf.text

        if text.startswith("/") or not _needs_continuation(text):
            buf.validate_and_handle()
            return

        buf.insert_text("\n    ")

    session: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        lexer=PipeshellLexer(),
        completer=_ReplCompleter(interp_box),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation=">> ",
    )

    print("pipeshell repl - Ctrl-D to exit, / for commands")

    while True:
        try:
            text = session.prompt("PS> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if _handle_slash(text, interp_box):
            continue

        try:
            interp_box[0].execute(text, print_value)
        except (ParseError, LexError, PipeshellRuntimeError) as exc:
            report_error(exc)
