"""Symbols: the name atoms of lispvm source and quoted data.

Any atom the reader cannot classify as a number becomes a Symbol, so names
like ``+``, ``&rest``, ``1e5`` and ``#t`` all land here. The compiler keys
scopes and the constant pool on them, and the printer writes them back bare.
"""

from __future__ import annotations

import sys


class Symbol:
    """A name compared by its text; ``Symbol("x") == Symbol("x")``."""

    __slots__ = ("id",)

    def __init__(self, name: str):
        # Interned so lookups through the scope chain hash a shared string
        self.id = sys.intern(name)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Symbol) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self):
        return f"Symbol({self.id!r})"

    def __str__(self):
        return self.id
