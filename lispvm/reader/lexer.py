"""
  Lexer: source text -> flat token list

- `(` `)` `'` and the backtick are single-character tokens
- `~@` splices, `~` unquotes (both only meaningful under a backtick)
- `;` starts a comment running to the end of the line
- strings: `\\c` copies `c` verbatim, escapes are never interpreted
- anything else is an atom running up to whitespace or `)`, classified by
  `parse_atom` into int, float or Symbol
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from lispvm.errors import LispSyntaxError
from lispvm.types.symbol import Symbol
from lispvm.types.value import INT64_MAX, INT64_MIN


class TokenKind(Enum):
    ATOM = "atom"
    STRING = "string"
    OPEN = "open"
    CLOSE = "close"
    QUOTE = "quote"
    QUASIQUOTE = "quasiquote"
    UNQUOTE = "unquote"
    SPLICE = "splice"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Any = None


TOKEN_RE = re.compile(
    r"(?P<ws>\s+)"
    r"|(?P<comment>;[^\n]*)"  # single-line comment
    r"|(?P<open>\()"
    r"|(?P<close>\))"
    r"|(?P<quote>')"
    r"|(?P<quasiquote>`)"
    r"|(?P<splice>~@)"  # must precede plain unquote
    r"|(?P<unquote>~)"
    r'|(?P<string>"(?:\\.|[^\\"])*")'  # complete double-quoted string
    r'|(?P<bad_string>")'  # a quote the string rule could not close
    r"|(?P<atom>[^\s)]+)",  # fallback: atoms
    re.DOTALL,
)

_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_DANGLING_ESCAPE_RE = re.compile(r'(?:\\.|[^\\"])*\\', re.DOTALL)

_INT_RE = re.compile(r"-?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

_MARKERS = {
    "open": TokenKind.OPEN,
    "close": TokenKind.CLOSE,
    "quote": TokenKind.QUOTE,
    "quasiquote": TokenKind.QUASIQUOTE,
    "splice": TokenKind.SPLICE,
    "unquote": TokenKind.UNQUOTE,
}


def parse_atom(text: str) -> Any:
    """Classify atom text: 64-bit integer, then decimal-point float, else Symbol."""
    if _INT_RE.fullmatch(text):
        n = int(text)
        if INT64_MIN <= n <= INT64_MAX:
            return n
    if "." in text and _FLOAT_RE.fullmatch(text):
        return float(text)
    return Symbol(text)


def _unescape(body: str) -> str:
    return _ESCAPE_RE.sub(r"\1", body)


def tokenize(source: str) -> list[Token]:
    """Convert source text into tokens; raises LispSyntaxError on a bad string literal."""
    tokens: list[Token] = []
    pos = 0
    n = len(source)
    while pos < n:
        m = TOKEN_RE.match(source, pos)
        # every character is covered by one of the alternatives
        assert m is not None
        kind = m.lastgroup
        text = m.group(kind)
        if kind in ("ws", "comment"):
            pass
        elif kind == "string":
            tokens.append(Token(TokenKind.STRING, _unescape(text[1:-1])))
        elif kind == "bad_string":
            if _DANGLING_ESCAPE_RE.fullmatch(source, pos + 1):
                raise LispSyntaxError(f"Escape at end of input in string starting at {pos}")
            raise LispSyntaxError(f"Unterminated string starting at {pos}")
        elif kind == "atom":
            tokens.append(Token(TokenKind.ATOM, parse_atom(text)))
        else:
            tokens.append(Token(_MARKERS[kind], text))
        pos = m.end()
    return tokens
