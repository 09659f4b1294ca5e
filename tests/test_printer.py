import pytest

from lispvm.compiler.function import Closure, Function
from lispvm.reader.parser import read
from lispvm.types.native import Native
from lispvm.types.symbol import Symbol
from lispvm.types.value import is_equal, is_truthy, kind_of, to_lisp_string


@pytest.mark.parametrize(
    "value,expected",
    [
        (42, "42"),
        (-7, "-7"),
        (2.5, "2.5"),
        (1.0, "1.0"),
        ("raw text", "raw text"),
        (Symbol("sym"), "sym"),
        (True, "#t"),
        (False, "#f"),
        ([], "()"),
        ([1, [2, "s"], Symbol("x")], "(1 (2 s) x)"),
        (Native("car", lambda env, args: None), "#<native car>"),
        (Closure(Function(chunk=None, name="f"), scope=None), "#<closure f>"),
        (Closure(Function(chunk=None), scope=None), "#<closure>"),
    ],
)
def test_to_lisp_string(value, expected):
    assert to_lisp_string(value) == expected


def test_printed_values_from_interpreter(itp):
    assert to_lisp_string(itp.eval("'(1 2.5 \"s\" (a))")) == "(1 2.5 s (a))"
    assert to_lisp_string(itp.eval("(= 1 1)")) == "#t"
    assert to_lisp_string(itp.eval("car")) == "#<native car>"
    assert to_lisp_string(itp.eval("(lambda (x) x)")) == "#<closure>"


@pytest.mark.parametrize("source", ["(a 'b `(c ~d ~@e))", "(1 2.5 ())", "''x"])
def test_syntax_prints_with_prefixes(source):
    printed = str(read(source))
    assert str(read(printed)) == printed


def test_syntax_printing_of_modifiers():
    assert str(read("(a 'b `(c ~d ~@e))")) == "(a 'b `(c ~d ~@e))"


def test_kind_and_truthiness():
    assert kind_of(True) == "boolean"
    assert kind_of(1) == "integer"
    assert kind_of([]) == "list"
    assert not is_truthy(False)
    assert not is_truthy([])
    assert is_truthy(0)
    assert is_truthy("")


def test_equality_is_kind_strict():
    assert not is_equal(1, 1.0)
    assert not is_equal(1, True)
    assert is_equal([1, [Symbol("a")]], [1, [Symbol("a")]])
    native = Native("n", lambda env, args: None)
    assert is_equal(native, native)
    assert not is_equal(native, Native("n", native.fn))


def _nested(depth):
    value = []
    for _ in range(depth):
        value = [value]
    return value


def test_deeply_nested_values_print_and_compare():
    depth = 5000
    assert to_lisp_string(_nested(depth)) == "(" * (depth + 1) + ")" * (depth + 1)
    assert is_equal(_nested(depth), _nested(depth))
    assert not is_equal(_nested(depth), _nested(depth - 1))


def test_deeply_nested_syntax_prints():
    source = "'" + "(" * 5000 + "x" + ")" * 5000
    assert str(read(source)) == source


def test_symbol_text_and_repr():
    sym = Symbol("&rest")
    assert str(sym) == "&rest"
    assert repr(sym) == "Symbol('&rest')"
    assert to_lisp_string(read("1e5").node.value) == "1e5"
