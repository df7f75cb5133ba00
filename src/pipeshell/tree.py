"""Shared helpers for working with the lark Tree/Token nodes that form the AST."""
from __future__ import annotations
from typing import Any, List, Optional

from lark import Token, Tree
from lark.tree import Meta
from typing_extensions import TypeAlias, TypeGuard

Node: TypeAlias = "Tree | Token"


def make_meta(line: int, column: int) -> Meta:
    meta = Meta()
    meta.line = line
    meta.column = column
    meta.empty = False
    return meta

def is_tree(node: Any) -> TypeGuard[Tree]:
    return isinstance(node, Tree)

def is_token(node: Any) -> TypeGuard[Token]:
    return isinstance(node, Token)

def tree_label(node: Any) -> Optional[str]:
    return node.data if is_tree(node) else None

def tree_children(node: Any) -> List[Any]:
    if not is_tree(node):
        return []

    children = getattr(node, "children", None)
    if children is None:
        return []

    return list(children)

def node_meta(node: Any) -> Optional[Meta]:
    if is_token(node):
        return None

    # Tree.meta lazily creates an empty Meta; peek at the slot instead.
    return getattr(node, "_meta", None)

def node_position(node: Any) -> tuple[Optional[int], Optional[int]]:
    if is_token(node):
        return getattr(node, "line", None), getattr(node, "column", None)

    meta = node_meta(node)
    if meta is None or getattr(meta, "empty", True):
        return None, None

    return getattr(meta, "line", None), getattr(meta, "column", None)

def child_by_label(node: Any, label: str) -> Optional[Tree]:
    for ch in tree_children(node):
        if tree_label(ch) == label:
            return ch

    return None
