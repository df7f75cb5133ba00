from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from typing import Callable, List, Optional, Union

from .eval.common import SILENT_STATEMENTS
from .evaluator import eval_node
from .lexer_rd import LexError
from .parser_rd import ParseError, parse_source
from .runtime import Context, PsList, PsNull, PsValue, StageRegistry, init_stdlib
from .tree import Node, Tree, is_tree, make_meta, tree_children, tree_label
from .types import PipeshellRuntimeError, ReturnOutsideFunction, ReturnSignal
from .utils import debug_py_trace_enabled, display_string, max_call_depth

logger = logging.getLogger("pipeshell.runner")

Emit = Callable[[PsValue], None]

def _ensure_recursion_headroom() -> None:
    # Each user-level call costs a handful of Python frames.
    needed = max_call_depth() * 40 + 1000
    if sys.getrecursionlimit() < needed:
        sys.setrecursionlimit(needed)

class Interpreter:
    """Owns one global scope; successive evaluations share it."""

    def __init__(self, registry: Optional[StageRegistry]=None):
        init_stdlib()
        _ensure_recursion_headroom()
        self.ctx = Context(registry=registry)

    @property
    def scope(self):
        return self.ctx.scope

    def evaluate_program(self, statements: Union[Tree, List[Node]]) -> PsValue:
        """Run top-level statements; the value of the last one is returned."""
        if is_tree(statements) and tree_label(statements) == 'program':
            program = statements
        else:
            program = Tree('program', list(statements), make_meta(1, 1))

        return eval_node(program, self.ctx)

    def evaluate_line(self, source_or_statements: Union[str, Tree, List[Node]]) -> PsValue:
        if isinstance(source_or_statements, str):
            self.ctx.source = source_or_statements
            return self.evaluate_program(parse_source(source_or_statements))

        return self.evaluate_program(source_or_statements)

    def execute(self, source: str, emit: Emit) -> PsValue:
        """Run a script statement by statement, passing each statement's output to emit."""
        program = parse_source(source)
        self.ctx.source = source
        result: PsValue = PsNull()

        for stmt in tree_children(program):
            try:
                result = eval_node(stmt, self.ctx)
            except ReturnSignal:
                raise ReturnOutsideFunction() from None

            if tree_label(stmt) in SILENT_STATEMENTS or isinstance(result, PsNull):
                continue
            emit(result)

        return result

def run(source: str, registry: Optional[StageRegistry]=None) -> PsValue:
    """Parse and evaluate a whole script in a fresh interpreter."""
    return Interpreter(registry=registry).evaluate_line(source)

def format_value(value: PsValue) -> List[str]:
    """Output lines for a value: one per list item, nothing for Null."""
    if isinstance(value, PsNull):
        return []

    if isinstance(value, PsList):
        lines: List[str] = []
        for item in value.items:
            lines.extend(format_value(item) if isinstance(item, PsList) else [display_string(item)])
        return lines

    return [display_string(value)]

def print_value(value: PsValue) -> None:
    for line in format_value(value):
        print(line)

def report_error(exc: BaseException) -> None:
    print(f"Error: {exc}", file=sys.stderr)

    if debug_py_trace_enabled():
        print("\nPython traceback:", file=sys.stderr)
        print("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), file=sys.stderr, end="")

def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if candidate.exists():
        return candidate.read_text(encoding="utf-8")

    return arg

def main(argv: Optional[List[str]]=None) -> int:
    debug = False
    inline: Optional[str] = None
    arg = None
    it = iter(sys.argv[1:] if argv is None else argv)

    for token in it:
        if token == "--debug":
            debug = True
            continue

        if token == "-c":
            try:
                inline = next(it)
            except StopIteration:
                raise SystemExit("-c flag requires source text") from None
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    if debug:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s")

    if inline is None and arg is None and sys.stdin.isatty():
        from .repl import repl

        repl()
        return 0

    source = inline if inline is not None else _load_source(arg)
    logger.debug("Running %d characters of source", len(source))

    try:
        Interpreter().execute(source, print_value)
    except (LexError, ParseError, PipeshellRuntimeError) as exc:
        report_error(exc)
        return 1

    return 0

if __name__ == "__main__":
    raise SystemExit(main())
