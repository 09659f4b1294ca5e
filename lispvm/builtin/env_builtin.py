"""Built-in functions for the lispvm runtime environment.

This module defines core arithmetic, comparison, list processing, predicates,
string helpers, output, and the registration utility that exposes them to
Lisp code. Every function takes `(env, args)` and returns a Lisp value.
"""
from __future__ import annotations

import sys
from typing import Callable

from lispvm import LispValue
from lispvm.compiler.function import Closure
from lispvm.errors import LispArityError, LispRuntimeError, LispTypeError
from lispvm.types.environment import Environment
from lispvm.types.native import Native
from lispvm.types.symbol import Symbol
from lispvm.types.value import INT64_MAX, INT64_MIN, is_equal, is_number, is_truthy, kind_of, to_lisp_string


def _expect_arity(name: str, args: list[LispValue], n: int) -> None:
    if len(args) != n:
        raise LispArityError(f"{name} requires exactly {n} argument(s), got {len(args)}")


def _expect_numbers(name: str, args: list[LispValue]) -> None:
    for a in args:
        if not is_number(a):
            raise LispTypeError(f"All arguments to {name} must be numbers, got {kind_of(a)} {to_lisp_string(a)}")


def _expect_list(name: str, value: LispValue) -> list[LispValue]:
    if not isinstance(value, list):
        raise LispTypeError(f"{name} expects a list, got {kind_of(value)} {to_lisp_string(value)}")
    return value


def _checked(name: str, value: int | float) -> int | float:
    """Range check integer results to signed 64 bits."""
    if isinstance(value, int) and not INT64_MIN <= value <= INT64_MAX:
        raise LispRuntimeError(f"Integer overflow in {name}")
    return value


# -------------------------------
# Arithmetic
# -------------------------------
def add(env: Environment, expr: list[LispValue]) -> LispValue:
    """Return the numeric sum of all arguments; 0 with none."""
    _expect_numbers("+", expr)
    result: int | float = 0
    for x in expr:
        result = _checked("+", result + x)
    return result


def sub(env: Environment, expr: list[LispValue]) -> LispValue:
    """Subtract all subsequent numbers from the first; unary negation for one arg."""
    if not expr:
        raise LispArityError("- requires at least 1 argument")
    _expect_numbers("-", expr)
    if len(expr) == 1:
        return _checked("-", -expr[0])
    result = expr[0]
    for x in expr[1:]:
        result = _checked("-", result - x)
    return result


def mul(env: Environment, expr: list[LispValue]) -> LispValue:
    """Return the product of all arguments; 1 with none."""
    _expect_numbers("*", expr)
    result: int | float = 1
    for x in expr:
        result = _checked("*", result * x)
    return result


def _divide(a: int | float, b: int | float) -> int | float:
    if b == 0:
        raise LispRuntimeError("Division by zero")
    if isinstance(a, int) and isinstance(b, int):
        # Truncate toward zero, unlike Python's floor division
        q = abs(a) // abs(b)
        return _checked("/", q if (a < 0) == (b < 0) else -q)
    return a / b


def div(env: Environment, expr: list[LispValue]) -> LispValue:
    """Divide left-to-right; with one arg returns the reciprocal."""
    if not expr:
        raise LispArityError("/ requires at least 1 argument")
    _expect_numbers("/", expr)
    if len(expr) == 1:
        return _divide(1, expr[0])
    result = expr[0]
    for x in expr[1:]:
        result = _divide(result, x)
    return result


def mod(env: Environment, expr: list[LispValue]) -> LispValue:
    """(mod n d) => n % d, result has the sign of d. Exactly 2 integer arguments."""
    _expect_arity("mod", expr, 2)
    n, d = expr
    if not isinstance(n, int) or not isinstance(d, int) or isinstance(n, bool) or isinstance(d, bool):
        raise LispTypeError("All arguments to mod must be integers")
    if d == 0:
        raise LispRuntimeError("Modulo by zero")
    return n % d


# -------------------------------
# Comparison
# -------------------------------
def _chain(name: str, test: Callable[[LispValue, LispValue], bool]):
    def compare(env: Environment, expr: list[LispValue]) -> bool:
        _expect_numbers(name, expr)
        return all(test(a, b) for a, b in zip(expr, expr[1:]))

    compare.__doc__ = f"Chainable numeric {name}: #t if it holds for every adjacent pair."
    return compare


num_eq = _chain("=", lambda a, b: a == b)
lt = _chain("<", lambda a, b: a < b)
lte = _chain("<=", lambda a, b: a <= b)
gt = _chain(">", lambda a, b: a > b)
gte = _chain(">=", lambda a, b: a >= b)


def equals(env: Environment, expr: list[LispValue]) -> bool:
    """Return #t if all arguments are structurally equal (or zero/one arg), else #f."""
    if len(expr) <= 1:
        return True
    first = expr[0]
    return all(is_equal(first, other) for other in expr[1:])


def logical_not(env: Environment, expr: list[LispValue]) -> bool:
    """Logical NOT for a single value; only () and #f are considered falsey."""
    _expect_arity("not", expr, 1)
    return not is_truthy(expr[0])


# -------------------------------
# Lists
# -------------------------------
def cons(env: Environment, expr: list[LispValue]) -> list[LispValue]:
    """Prepend head to a list tail, non-destructively."""
    _expect_arity("cons", expr, 2)
    head, tail = expr
    return [head] + _expect_list("cons", tail)


def car(env: Environment, expr: list[LispValue]) -> LispValue:
    _expect_arity("car", expr, 1)
    xs = _expect_list("car", expr[0])
    if not xs:
        raise LispTypeError("car of empty list")
    return xs[0]


def cdr(env: Environment, expr: list[LispValue]) -> list[LispValue]:
    _expect_arity("cdr", expr, 1)
    xs = _expect_list("cdr", expr[0])
    if not xs:
        raise LispTypeError("cdr of empty list")
    return xs[1:]


def list_builtin(env: Environment, expr: list[LispValue]) -> list[LispValue]:
    """Construct a list from the provided arguments."""
    return list(expr)


def length(env: Environment, expr: list[LispValue]) -> int:
    _expect_arity("length", expr, 1)
    return len(_expect_list("length", expr[0]))


def append(env: Environment, expr: list[LispValue]) -> list[LispValue]:
    """Concatenate any number of lists into a new list."""
    result: list[LispValue] = []
    for item in expr:
        result.extend(_expect_list("append", item))
    return result


def null(env: Environment, args: list[LispValue]) -> bool:
    """Predicate: #t if the single argument is the empty list."""
    _expect_arity("null?", args, 1)
    return isinstance(args[0], list) and not args[0]


# -------------------------------
# Predicates
# -------------------------------
def _predicate(name: str, test: Callable[[LispValue], bool]):
    def check(env: Environment, args: list[LispValue]) -> bool:
        _expect_arity(name, args, 1)
        return test(args[0])

    return check


is_number_p = _predicate("number?", is_number)
is_integer_p = _predicate("integer?", lambda x: isinstance(x, int) and not isinstance(x, bool))
is_float_p = _predicate("float?", lambda x: isinstance(x, float))
is_string_p = _predicate("string?", lambda x: isinstance(x, str))
is_symbol_p = _predicate("symbol?", lambda x: isinstance(x, Symbol))
is_boolean_p = _predicate("boolean?", lambda x: isinstance(x, bool))
is_list_p = _predicate("list?", lambda x: isinstance(x, list))
is_procedure_p = _predicate("procedure?", lambda x: isinstance(x, (Closure, Native)))


# -------------------------------
# Strings and symbols
# -------------------------------
def symbol_to_string(env: Environment, args: list[LispValue]) -> str:
    """(symbol->string x) -> name of symbol x"""
    _expect_arity("symbol->string", args, 1)
    x = args[0]
    if not isinstance(x, Symbol):
        raise LispTypeError(f"symbol->string expects a symbol, got {kind_of(x)}")
    return x.id


def string_to_symbol(env: Environment, args: list[LispValue]) -> Symbol:
    """(string->symbol x) -> Symbol named by string x"""
    _expect_arity("string->symbol", args, 1)
    x = args[0]
    if not isinstance(x, str):
        raise LispTypeError(f"string->symbol expects a string, got {kind_of(x)}")
    return Symbol(x)


def string_append(env: Environment, args: list[LispValue]) -> str:
    for a in args:
        if not isinstance(a, str):
            raise LispTypeError(f"string-append expects strings, got {kind_of(a)} {to_lisp_string(a)}")
    return "".join(args)


# -------------------------------
# Output
# -------------------------------
def print_builtin(env: Environment, args: list[LispValue]) -> LispValue:
    """Print space-separated printed forms of args followed by newline; returns ()."""
    sys.stdout.write(" ".join(to_lisp_string(a) for a in args) + "\n")
    return []


def display(env: Environment, args: list[LispValue]) -> LispValue:
    """Like print, without the trailing newline."""
    sys.stdout.write(" ".join(to_lisp_string(a) for a in args))
    return []


BUILTINS: dict[str, Callable[[Environment, list[LispValue]], LispValue]] = {
    "+": add,
    "-": sub,
    "*": mul,
    "/": div,
    "mod": mod,
    "=": num_eq,
    "<": lt,
    "<=": lte,
    ">": gt,
    ">=": gte,
    "eq?": equals,
    "equal?": equals,
    "not": logical_not,
    "cons": cons,
    "car": car,
    "cdr": cdr,
    "list": list_builtin,
    "length": length,
    "append": append,
    "null?": null,
    "number?": is_number_p,
    "integer?": is_integer_p,
    "float?": is_float_p,
    "string?": is_string_p,
    "symbol?": is_symbol_p,
    "boolean?": is_boolean_p,
    "list?": is_list_p,
    "procedure?": is_procedure_p,
    "symbol->string": symbol_to_string,
    "string->symbol": string_to_symbol,
    "string-append": string_append,
    "print": print_builtin,
    "display": display,
}


def register(env: Environment) -> None:
    """Register all builtin functions and constants into the given environment."""
    env.update({Symbol(name): Native(name, fn) for name, fn in BUILTINS.items()})
    env.define(Symbol("#t"), True)
    env.define(Symbol("#f"), False)
    env.define(Symbol("nil"), [])
