"""Syntax tree produced by the parser.

A node is an ``AtomNode`` or a ``ListNode``; every node is wrapped in exactly
one modifier recording how it was prefixed in the source:

    Form         plain form
    Quoted       'x
    QuasiQuoted  `x
    Unquoted     ~x   (inside a quasiquote: insert the value of x)
    Spliced      ~@x  (inside a quasiquote: inline the list value of x)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO
from typing import Any, ClassVar, Union

from lispvm import SExpression
from lispvm.types.symbol import Symbol
from lispvm.types.value import to_lisp_string


@dataclass(frozen=True)
class AtomNode:
    value: Any

    def __str__(self) -> str:
        return to_lisp_string(self.value)


@dataclass(frozen=True)
class ListNode:
    children: list[SyntaxNode] = field(default_factory=list)

    def __str__(self) -> str:
        return syntax_to_string(self)


Node = Union[AtomNode, ListNode]


@dataclass(frozen=True)
class SyntaxNode:
    node: Node

    prefix: ClassVar[str] = ""
    # symbol naming the list form equivalent to this modifier, e.g. 'x == (quote x)
    head: ClassVar[str | None] = None

    def __str__(self) -> str:
        return syntax_to_string(self)


@dataclass(frozen=True)
class Form(SyntaxNode):
    pass


@dataclass(frozen=True)
class Quoted(SyntaxNode):
    prefix: ClassVar[str] = "'"
    head: ClassVar[str | None] = "quote"


@dataclass(frozen=True)
class QuasiQuoted(SyntaxNode):
    prefix: ClassVar[str] = "`"
    head: ClassVar[str | None] = "quasiquote"


@dataclass(frozen=True)
class Unquoted(SyntaxNode):
    prefix: ClassVar[str] = "~"
    head: ClassVar[str | None] = "unquote"


@dataclass(frozen=True)
class Spliced(SyntaxNode):
    prefix: ClassVar[str] = "~@"
    head: ClassVar[str | None] = "unquote-splicing"


def as_node(form: SyntaxNode) -> Node:
    """The node of `form`, rewriting a modifier into its list equivalent.

    Used when a modifier is applied to an already-modified form: ''x reads as
    Quoted(ListNode([quote, x])).
    """
    if form.head is None:
        return form.node
    return ListNode([Form(AtomNode(Symbol(form.head))), Form(form.node)])


def node_to_value(node: Node) -> SExpression:
    if isinstance(node, AtomNode):
        return node.value
    # Each stack entry pairs a list's remaining children with the value being built
    result: list = []
    stack = [(iter(node.children), result)]
    while stack:
        children, out = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            continue
        sub = as_node(child)
        if isinstance(sub, AtomNode):
            out.append(sub.value)
        else:
            built: list = []
            out.append(built)
            stack.append((iter(sub.children), built))
    return result


def syntax_to_value(form: SyntaxNode) -> SExpression:
    """Literal runtime value of a syntax tree: what (quote form) evaluates to."""
    return node_to_value(as_node(form))


def syntax_to_string(root: Union[SyntaxNode, Node]) -> str:
    """Source text of a syntax tree, written without recursion."""
    with StringIO() as buffer:
        pending: list = [root]
        while pending:
            item = pending.pop()
            match item:
                case str():
                    buffer.write(item)
                case SyntaxNode():
                    buffer.write(item.prefix)
                    pending.append(item.node)
                case AtomNode():
                    buffer.write(to_lisp_string(item.value))
                case ListNode():
                    pending.append(")")
                    for i in range(len(item.children) - 1, -1, -1):
                        pending.append(item.children[i])
                        if i:
                            pending.append(" ")
                    pending.append("(")
        return buffer.getvalue()
