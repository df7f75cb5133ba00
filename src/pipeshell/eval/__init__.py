"""Evaluator helper modules for the pipeshell runtime."""

__all__ = [
    "bind",
    "blocks",
    "calls",
    "common",
    "control",
    "expr",
    "fn",
    "literals",
    "objects",
    "pipeline",
]
