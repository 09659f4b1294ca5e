import pytest
from hypothesis import assume, given, strategies as st

from lispvm.errors import LispEndOfInput, LispSyntaxError
from lispvm.reader.lexer import Token, TokenKind, parse_atom, tokenize
from lispvm.reader.parser import TokenStream, parse, read, read_all
from lispvm.reader.syntax import AtomNode, Form, ListNode, QuasiQuoted, Quoted, Spliced, Unquoted, syntax_to_value
from lispvm.types.symbol import Symbol
from lispvm.types.value import INT64_MAX, INT64_MIN, to_lisp_string


@pytest.mark.parametrize(
    "source,expected",
    [
        ("a", [Token(TokenKind.ATOM, Symbol("a"))]),
        ("'a", [Token(TokenKind.QUOTE, "'"), Token(TokenKind.ATOM, Symbol("a"))]),
        (
            "(a 1)",
            [
                Token(TokenKind.OPEN, "("),
                Token(TokenKind.ATOM, Symbol("a")),
                Token(TokenKind.ATOM, 1),
                Token(TokenKind.CLOSE, ")"),
            ],
        ),
        ('"hello world"', [Token(TokenKind.STRING, "hello world")]),
        (" ; comment\n a b", [Token(TokenKind.ATOM, Symbol("a")), Token(TokenKind.ATOM, Symbol("b"))]),
        ("`y", [Token(TokenKind.QUASIQUOTE, "`"), Token(TokenKind.ATOM, Symbol("y"))]),
        ("~z", [Token(TokenKind.UNQUOTE, "~"), Token(TokenKind.ATOM, Symbol("z"))]),
        ("~@w", [Token(TokenKind.SPLICE, "~@"), Token(TokenKind.ATOM, Symbol("w"))]),
        ("a;trailing", [Token(TokenKind.ATOM, Symbol("a;trailing"))]),
        ("x)", [Token(TokenKind.ATOM, Symbol("x")), Token(TokenKind.CLOSE, ")")]),
        # only whitespace and ')' end an atom
        ("a(b", [Token(TokenKind.ATOM, Symbol("a(b"))]),
        ("", []),
    ],
)
def test_tokenize(source, expected):
    assert tokenize(source) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("123", 123),
        ("-45", -45),
        ("0", 0),
        ("3.14", 3.14),
        ("-0.5", -0.5),
        ("1.", 1.0),
        (".5", 0.5),
        ("2.5e3", 2500.0),
        ("1e5", Symbol("1e5")),
        ("+5", Symbol("+5")),
        ("-", Symbol("-")),
        ("1.2.3", Symbol("1.2.3")),
        ("foo-bar?", Symbol("foo-bar?")),
        (str(INT64_MAX + 1), Symbol(str(INT64_MAX + 1))),
        (str(INT64_MIN), INT64_MIN),
    ],
)
def test_parse_atom(text, expected):
    value = parse_atom(text)
    assert value == expected
    assert type(value) is type(expected)


@pytest.mark.parametrize(
    "source,expected",
    [
        (r'"a\"b"', 'a"b'),
        (r'"a\nb"', "anb"),  # escapes copy the next character verbatim
        (r'"a\\b"', "a\\b"),
        ('"multi\nline"', "multi\nline"),
        ('""', ""),
    ],
)
def test_string_escapes(source, expected):
    assert tokenize(source) == [Token(TokenKind.STRING, expected)]


def test_unterminated_string_is_syntax_error():
    with pytest.raises(LispSyntaxError, match="Unterminated string"):
        tokenize('(print "abc')


def test_escape_at_end_of_input_is_syntax_error():
    with pytest.raises(LispSyntaxError, match="Escape at end of input"):
        tokenize('"abc\\')


def test_bad_string_is_not_end_of_input():
    with pytest.raises(LispSyntaxError) as info:
        read('"abc')
    assert not isinstance(info.value, LispEndOfInput)


@given(st.integers(min_value=INT64_MIN, max_value=INT64_MAX))
def test_integers_classify_as_int(n):
    value = parse_atom(str(n))
    assert value == n and type(value) is int


@given(st.floats(allow_nan=False, allow_infinity=False))
def test_float_text_round_trips_through_printer(f):
    text = repr(f)
    assume("." in text)
    value = parse_atom(text)
    assert isinstance(value, float)
    assert to_lisp_string(value) == text


@given(st.text())
def test_escaped_strings_read_back_verbatim(s):
    escaped = s.replace("\\", "\\\\").replace('"', '\\"')
    assert tokenize(f'"{escaped}"') == [Token(TokenKind.STRING, s)]


def test_parse_nested_list():
    form = read("(1 (2 3))")
    assert form == Form(
        ListNode(
            [
                Form(AtomNode(1)),
                Form(ListNode([Form(AtomNode(2)), Form(AtomNode(3))])),
            ]
        )
    )


@pytest.mark.parametrize(
    "source,cls",
    [("'x", Quoted), ("`x", QuasiQuoted), ("~x", Unquoted), ("~@x", Spliced)],
)
def test_modifiers_wrap_the_next_form(source, cls):
    form = read(source)
    assert form == cls(AtomNode(Symbol("x")))
    assert str(form) == source


def test_double_quote_wraps_list_equivalent():
    form = read("''x")
    assert form == Quoted(ListNode([Form(AtomNode(Symbol("quote"))), Form(AtomNode(Symbol("x")))]))
    assert syntax_to_value(form) == [Symbol("quote"), [Symbol("quote"), Symbol("x")]]


def test_quoted_list_value():
    assert syntax_to_value(read("'(a (b) 1)")) == [Symbol("quote"), [Symbol("a"), [Symbol("b")], 1]]


def test_parse_only_reads_first_form():
    assert parse(tokenize("1 2 3")) == Form(AtomNode(1))


def test_read_all_returns_every_form():
    forms = read_all("1 (a) 'b")
    assert [str(f) for f in forms] == ["1", "(a)", "'b"]


@pytest.mark.parametrize("source", ["", "   ", "; nothing here"])
def test_empty_input_is_end_of_input(source):
    with pytest.raises(LispEndOfInput):
        read(source)
    assert read_all(source) == []


@pytest.mark.parametrize("source", ["(1 2", "((a)", "'", "(a '"])
def test_incomplete_input_is_end_of_input(source):
    with pytest.raises(LispEndOfInput):
        read_all(source)


@pytest.mark.parametrize("source", [")", "(a))", "(')"])
def test_malformed_input_is_syntax_error(source):
    with pytest.raises(LispSyntaxError):
        read_all(source)


def test_token_stream_returns_none_when_exhausted():
    stream = TokenStream(tokenize("a"))
    assert stream.parse_expr() == Form(AtomNode(Symbol("a")))
    assert stream.parse_expr() is None


def test_deep_nesting_does_not_recurse():
    depth = 20_000
    form = read("(" * depth + ")" * depth)
    seen = 0
    node = form.node
    while node.children:
        seen += 1
        node = node.children[0].node
    assert seen == depth - 1


@pytest.mark.parametrize(
    "source,expected",
    [("\"foo\\'bar\"", "foo'bar"), ('"foo\\"bar"', 'foo"bar')],
)
def test_escaped_quotes_read_as_string_content(source, expected):
    assert parse(tokenize(source)) == Form(AtomNode(expected))


@pytest.mark.parametrize("source", ["( 1   2\n\t3 )", "(1 2 3)", "(1\n2 ; comment\n3)"])
def test_printed_list_is_canonical(source):
    assert str(read(source)) == "(1 2 3)"
    assert to_lisp_string(syntax_to_value(read(source))) == "(1 2 3)"
