"""
  Parser: tokens -> SyntaxNode trees

Nested lists are built on an explicit work stack instead of by recursion, so
arbitrarily deep input never touches the Python call stack. Each stack entry is
either the children of a list still waiting for its `)` or a pending modifier
(quote, quasiquote, unquote, splice) waiting for the form it applies to.

Running out of tokens while a list is open or a modifier is pending raises
LispEndOfInput rather than LispSyntaxError: the input is a valid prefix and an
interactive caller can keep reading.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Union

from lispvm.errors import LispEndOfInput, LispSyntaxError
from lispvm.reader.lexer import Token, TokenKind, tokenize
from lispvm.reader.syntax import (
    AtomNode,
    Form,
    ListNode,
    QuasiQuoted,
    Quoted,
    Spliced,
    SyntaxNode,
    Unquoted,
    as_node,
)

MODIFIERS: dict[TokenKind, type[SyntaxNode]] = {
    TokenKind.QUOTE: Quoted,
    TokenKind.QUASIQUOTE: QuasiQuoted,
    TokenKind.UNQUOTE: Unquoted,
    TokenKind.SPLICE: Spliced,
}

_Pending = Union[list, type]


class TokenStream:
    def __init__(self, tokens: Iterable[Token]):
        self.tokens: list[Token] = list(tokens)
        self.pos = 0

    def peek(self) -> Optional[Token]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def advance(self) -> Optional[Token]:
        tok = self.peek()
        if tok is not None:
            self.pos += 1
        return tok

    def parse_expr(self) -> Optional[SyntaxNode]:
        """Parse the next complete form, or return None when no tokens remain."""
        stack: list[_Pending] = []
        while True:
            tok = self.advance()
            if tok is None:
                if not stack:
                    return None
                if isinstance(stack[-1], list):
                    raise LispEndOfInput("Unexpected end of input inside a list")
                raise LispEndOfInput("Unexpected end of input after a quote marker")

            if tok.kind is TokenKind.OPEN:
                stack.append([])
                continue
            if tok.kind in MODIFIERS:
                stack.append(MODIFIERS[tok.kind])
                continue
            if tok.kind is TokenKind.CLOSE:
                if not stack:
                    raise LispSyntaxError("Unmatched ')'")
                if not isinstance(stack[-1], list):
                    raise LispSyntaxError("Quote marker followed by ')'")
                form: SyntaxNode = Form(ListNode(stack.pop()))
            else:
                # ATOM or STRING
                form = Form(AtomNode(tok.value))

            # Apply pending modifiers, then hand the form to its enclosing list
            while stack and not isinstance(stack[-1], list):
                wrapper = stack.pop()
                form = wrapper(as_node(form))
            if not stack:
                return form
            stack[-1].append(form)

    def parse_all(self) -> Iterator[SyntaxNode]:
        while self.peek() is not None:
            yield self.parse_expr()


def parse(tokens: Iterable[Token]) -> SyntaxNode:
    """Parse the first form of a token sequence; an empty sequence is LispEndOfInput."""
    form = TokenStream(tokens).parse_expr()
    if form is None:
        raise LispEndOfInput("No form in input")
    return form


def read(source: str) -> SyntaxNode:
    return parse(tokenize(source))


def read_all(source: str) -> list[SyntaxNode]:
    """Every top-level form of `source`, in order."""
    return list(TokenStream(tokenize(source)).parse_all())
