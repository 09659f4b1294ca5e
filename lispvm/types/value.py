"""Runtime value model.

The set of value kinds is closed; every consumer below dispatches over all of
them with a single ``match`` so a new kind shows up as an unhandled case here
first:

    Integer  int (never bool)         Symbol   Symbol
    Float    float                    Boolean  bool
    String   str                      List     list (empty list is "no value")
    Closure  compiler.function.Closure
    Native   types.native.Native
"""

from __future__ import annotations

from io import StringIO

from lispvm import LispValue
from lispvm.compiler.function import Closure
from lispvm.types.native import Native
from lispvm.types.symbol import Symbol

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


def kind_of(value: LispValue) -> str:
    """Name of the value's kind, used in error messages."""
    match value:
        case bool():
            return "boolean"
        case int():
            return "integer"
        case float():
            return "float"
        case str():
            return "string"
        case Symbol():
            return "symbol"
        case list():
            return "list"
        case Closure():
            return "closure"
        case Native():
            return "native"
        case _:
            raise TypeError(f"Not a lispvm value: {value!r}")


def is_number(value: LispValue) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value: LispValue) -> bool:
    # Only #f and the empty list are falsey
    return not (value is False or (isinstance(value, list) and not value))


def is_equal(a: LispValue, b: LispValue) -> bool:
    """Deep equality; values of different kinds are never equal (1 vs 1.0, 1 vs #t)."""
    pending = [(a, b)]
    while pending:
        x, y = pending.pop()
        if x is y:
            continue
        if kind_of(x) != kind_of(y):
            return False
        match x:
            case list():
                if len(x) != len(y):
                    return False
                pending.extend(zip(x, y))
            case Closure() | Native():
                return False
            case _:
                if x != y:
                    return False
    return True


def _write_value(buffer: StringIO, value: LispValue) -> None:
    # Work stack of (literal, item); literal items are punctuation to copy as-is
    pending = [(False, value)]
    while pending:
        literal, item = pending.pop()
        if literal:
            buffer.write(item)
            continue
        match item:
            case bool():
                buffer.write("#t" if item else "#f")
            case int():
                buffer.write(str(item))
            case float():
                buffer.write(repr(item))
            case str():
                buffer.write(item)
            case Symbol():
                buffer.write(item.id)
            case list():
                pending.append((True, ")"))
                for i in range(len(item) - 1, -1, -1):
                    pending.append((False, item[i]))
                    if i:
                        pending.append((True, " "))
                pending.append((True, "("))
            case Closure() | Native():
                buffer.write(repr(item))
            case _:
                raise TypeError(f"Not a lispvm value: {item!r}")


def to_lisp_string(value: LispValue) -> str:
    """Printed form of a value: strings raw, lists parenthesized and space-separated."""
    with StringIO() as buffer:
        _write_value(buffer, value)
        return buffer.getvalue()
