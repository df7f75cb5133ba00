"""Variable frames and the scope stack.

Names are case-insensitive. A name may carry a ``global:``, ``local:`` or
``script:`` qualifier; ``script:`` resolves to the global frame because there
is no separate script-level frame. Any other ``prefix:`` is kept as part of
the bare name.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from .types import PsValue, ScopeStackUnderflow

_QUALIFIERS = {"global": "global", "local": "local", "script": "global"}

def split_qualifier(name: str) -> Tuple[Optional[str], str]:
    """Return (target, bare_name) where target is 'global', 'local' or None."""
    head, sep, rest = name.partition(":")
    if not sep:
        return None, name

    target = _QUALIFIERS.get(head.lower())
    if target is None:
        return None, name

    return target, rest

def _fold(name: str) -> str:
    return name.casefold()

class Frame:
    def __init__(self, isolated: bool=False):
        self.vars: Dict[str, PsValue] = {}
        self.names: Dict[str, str] = {}
        # Function-call frames stop the search of unqualified writes.
        self.isolated = isolated

    def has(self, name: str) -> bool:
        return _fold(name) in self.vars

    def get(self, name: str) -> Optional[PsValue]:
        return self.vars.get(_fold(name))

    def set(self, name: str, val: PsValue) -> None:
        key = _fold(name)
        self.names.setdefault(key, name)
        self.vars[key] = val

    def items(self) -> Iterator[Tuple[str, PsValue]]:
        for key, val in self.vars.items():
            yield self.names[key], val

class ScopeStack:
    def __init__(self) -> None:
        self.frames: List[Frame] = [Frame()]

    @property
    def depth(self) -> int:
        return len(self.frames)

    @property
    def global_frame(self) -> Frame:
        return self.frames[0]

    @property
    def current(self) -> Frame:
        return self.frames[-1]

    def push_frame(self, isolated: bool=False) -> Frame:
        frame = Frame(isolated=isolated)
        self.frames.append(frame)
        return frame

    def pop_frame(self) -> Frame:
        if len(self.frames) <= 1:
            raise ScopeStackUnderflow("cannot pop the global frame")

        return self.frames.pop()

    @contextmanager
    def frame(self, isolated: bool=False) -> Iterator[Frame]:
        """Push a frame for the duration of the block; pop it on every exit path."""
        depth = len(self.frames)
        pushed = self.push_frame(isolated=isolated)

        try:
            yield pushed
        finally:
            self.pop_frame()
            assert len(self.frames) == depth, "scope stack out of balance"

    def read(self, name: str) -> Optional[PsValue]:
        target, bare = split_qualifier(name)

        if target == "global":
            return self.global_frame.get(bare)
        if target == "local":
            return self.current.get(bare)

        for frame in reversed(self.frames):
            val = frame.get(bare)
            if val is not None:
                return val

        return None

    def write(self, name: str, val: PsValue) -> None:
        target, bare = split_qualifier(name)

        if target == "global":
            self.global_frame.set(bare, val)
            return
        if target == "local":
            self.current.set(bare, val)
            return

        for frame in reversed(self.frames):
            if frame.has(bare):
                frame.set(bare, val)
                return
            if frame.isolated:
                break

        self.current.set(bare, val)

    def define(self, name: str, val: PsValue) -> None:
        self.current.set(name, val)
