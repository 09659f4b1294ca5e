import pytest

from lispvm.errors import LispArityError, LispTypeError
from lispvm.types.native import Native
from lispvm.types.symbol import Symbol


@pytest.mark.parametrize(
    "code,expected",
    [
        ("(cons 1 '(2 3))", [1, 2, 3]),
        ("(cons 1 '())", [1]),
        ("(car '(1 2 3))", 1),
        ("(cdr '(1 2 3))", [2, 3]),
        ("(cdr '(1))", []),
        ("(list)", []),
        ("(list 1 'a \"s\")", [1, Symbol("a"), "s"]),
        ("(length '(1 2 3))", 3),
        ("(length '())", 0),
        ("(append '(1) '() '(2 3))", [1, 2, 3]),
        ("(append)", []),
        ("(null? '())", True),
        ("(null? '(1))", False),
        ("(null? nil)", True),
        ("(symbol->string 'abc)", "abc"),
        ("(string->symbol \"abc\")", Symbol("abc")),
        ("(string-append \"ab\" \"cd\" \"\")", "abcd"),
    ],
)
def test_list_and_string_builtins(itp, code, expected):
    assert itp.eval(code) == expected


@pytest.mark.parametrize(
    "pred,truthy,falsy",
    [
        ("number?", ["1", "1.5"], ["#t", "'a", '"1"']),
        ("integer?", ["1", "-3"], ["1.0", "#f"]),
        ("float?", ["1.0"], ["1"]),
        ("string?", ['"s"'], ["'s"]),
        ("symbol?", ["'s"], ['"s"', "#t"]),
        ("boolean?", ["#t", "#f"], ["'()", "0"]),
        ("list?", ["'()", "'(1)"], ["1", '"()"']),
        ("procedure?", ["car", "(lambda () 1)"], ["'car", "1"]),
    ],
)
def test_predicates(itp, pred, truthy, falsy):
    for arg in truthy:
        assert itp.eval(f"({pred} {arg})") is True, arg
    for arg in falsy:
        assert itp.eval(f"({pred} {arg})") is False, arg


@pytest.mark.parametrize(
    "code",
    ["(car '())", "(cdr '())", "(car 1)", "(cons 1 2)", "(length 5)", "(append '(1) 2)",
     "(symbol->string \"a\")", "(string->symbol 'a)", "(string-append \"a\" 1)"],
)
def test_builtin_type_errors(itp, code):
    with pytest.raises(LispTypeError):
        itp.eval(code)


@pytest.mark.parametrize("code", ["(car)", "(cons 1)", "(not 1 2)", "(null?)", "(number? 1 2)"])
def test_builtin_arity_errors(itp, code):
    with pytest.raises(LispArityError):
        itp.eval(code)


def test_cons_does_not_mutate_its_tail(itp):
    itp.eval("(define tail '(2 3))")
    itp.eval("(define whole (cons 1 tail))")
    assert itp.eval("tail") == [2, 3]
    assert itp.eval("whole") == [1, 2, 3]


def test_print_outputs_and_returns_empty_list(itp, capsys):
    ret = itp.eval("(print \"alpha\" 42 'beta '(1 #t))")
    assert capsys.readouterr().out == "alpha 42 beta (1 #t)\n"
    assert ret == []


def test_display_has_no_newline(itp, capsys):
    itp.eval('(display "a" 1)')
    assert capsys.readouterr().out == "a 1"


def test_builtins_are_natives_called_with_env(env):
    plus = env.lookup(Symbol("+"))
    assert isinstance(plus, Native)
    assert plus(env, [1, 2]) == 3
    assert repr(plus) == "#<native +>"


def test_boolean_constants(env):
    assert env.lookup(Symbol("#t")) is True
    assert env.lookup(Symbol("#f")) is False
    assert env.lookup(Symbol("nil")) == []
