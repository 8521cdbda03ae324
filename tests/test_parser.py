import pytest

from twik.twik_ast import Int, Float, String, Symbol, List, Root
from twik.twik_datatypes import ParseError
from twik.twik_parser import parse, parse_string, unquote, parse_int_literal
from twik.twik_source import SourceSet


def parse_nodes(code: str):
    return parse_string(SourceSet(), "", code).nodes


# Test cases: (id, code, expected top-level nodes)
PARSE_TEST_CASES = [
    ("int", "1", (Int("1", 1, 1),)),
    ("negative_int", "-1", (Int("-1", 1, -1),)),
    ("padded_int", " 1 ", (Int("1", 2, 1),)),
    ("hex", "0x10", (Int("0x10", 1, 16),)),
    ("octal", "010", (Int("010", 1, 8),)),
    ("binary", "0b101", (Int("0b101", 1, 5),)),
    ("char", "'a'", (Int("'a'", 1, 97),)),
    ("escaped_char", "'\\''", (Int("'\\''", 1, 39),)),
    ("float", " 1.0 ", (Float("1.0", 2, 1.0),)),
    ("negative_float", "-2.5", (Float("-2.5", 1, -2.5),)),
    ("empty_list", "()", (List(1, 2, ()),)),
    ("padded_empty_list", " ( ) ", (List(2, 4, ()),)),
    ("string", '"foo\\"bar"', (String('"foo\\"bar"', 1, 'foo"bar'),)),
    ("padded_string", ' "foo" ', (String('"foo"', 2, "foo"),)),
    ("string_escapes", '"a\\tb\\x41\\u00e9\\101"', (String('"a\\tb\\x41\\u00e9\\101"', 1, "a\tbAéA"),)),
    ("minus_symbol", "-", (Symbol("-", 1),)),
    ("minus_prefixed_symbol", "-x", (Symbol("-x", 1),)),
    ("unicode_symbol", "héllo", (Symbol("héllo", 1),)),
    (
        "nested",
        "(+ 1 (- 2 3) 4)",
        (
            List(1, 15, (
                Symbol("+", 2),
                Int("1", 4, 1),
                List(6, 12, (
                    Symbol("-", 7),
                    Int("2", 9, 2),
                    Int("3", 11, 3),
                )),
                Int("4", 14, 4),
            )),
        ),
    ),
    ("comment", "; Comment\n1", (Int("1", 11, 1),)),
    ("comment_in_list", "(; Comment\n1)", (List(1, 13, (Int("1", 12, 1),)),)),
    ("symbol_closes_list", "(a)", (List(1, 3, (Symbol("a", 2),)),)),
    ("many_roots", "1 x", (Int("1", 1, 1), Symbol("x", 3))),
]


@pytest.mark.parametrize("id, code, expected", PARSE_TEST_CASES, ids=[c[0] for c in PARSE_TEST_CASES])
def test_parse(id, code, expected):
    assert parse_nodes(code) == expected


# Test cases: (code, expected error message)
PARSE_ERROR_CASES = [
    ("0n10", "twik source:1:1: invalid int literal: 0n10"),
    ("09", "twik source:1:1: invalid int literal: 09"),
    ("1e5", "twik source:1:1: invalid int literal: 1e5"),
    ("9223372036854775808", "twik source:1:1: invalid int literal: 9223372036854775808"),
    ("1.2.3", "twik source:1:1: invalid float literal: 1.2.3"),
    ("'", "twik source:1:1: invalid single quote"),
    ("''", "twik source:1:1: invalid single quote"),
    ("'ab'", "twik source:1:1: unclosed single quote"),
    (' "foo ', 'twik source:1:2: unclosed string literal: "foo '),
    ('"\\m"', 'twik source:1:1: invalid string literal: "\\m"'),
    ("(a\nb\nc", "twik source:3:2: missing )"),
    ("(a\nb\n 1n \n)", "twik source:3:2: invalid int literal: 1n"),
    ("1n", "twik source:1:1: invalid int literal: 1n"),
    (")", "twik source:1:2: unexpected )"),
    ("(a))", "twik source:1:5: unexpected )"),
]


@pytest.mark.parametrize("code, message", PARSE_ERROR_CASES)
def test_parse_errors(code, message):
    with pytest.raises(ParseError) as exc:
        parse_nodes(code)
    assert str(exc.value) == message


def test_parse_error_carries_position_and_message():
    sources = SourceSet()
    sources.register("first", "1 2 3")
    with pytest.raises(ParseError) as exc:
        parse(sources.register("second.twik", "(x"))
    err = exc.value
    assert err.message == "missing )"
    assert err.pinfo.name == "second.twik"
    assert err.pos == sources.files[1].base + 2
    assert str(err) == "second.twik:1:3: missing )"


def test_root_spans_whole_unit():
    sources = SourceSet()
    sources.register("", "abc")
    root = parse_string(sources, "", "  (x)  ")
    assert isinstance(root, Root)
    assert root.pos == 5
    assert root.end == 5 + 7
    assert root.nodes[0].pos == 7
    assert root.nodes[0].end == 10


def test_node_ends():
    (lst,) = parse_nodes('(foo "s" 12 1.5)')
    sym, s, i, f = lst.nodes
    assert (sym.pos, sym.end) == (2, 5)
    assert (s.pos, s.end) == (6, 9)
    assert (i.pos, i.end) == (10, 12)
    assert (f.pos, f.end) == (13, 16)
    assert lst.end == 17


def test_empty_source_has_no_nodes():
    root = parse_string(SourceSet(), "", "  ; nothing here")
    assert root.nodes == ()


@pytest.mark.parametrize("literal, expected", [
    ('""', ""),
    ('"plain"', "plain"),
    ('"\\\\"', "\\"),
    ('"\\a\\b\\f\\n\\r\\t\\v"', "\a\b\f\n\r\t\v"),
    ('"\\U0001F600"', "\U0001F600"),
])
def test_unquote(literal, expected):
    assert unquote(literal) == expected


@pytest.mark.parametrize("literal", ['"\\q"', '"a\nb"', '"\\x4"', '"\\400"', '"\\\'"'])
def test_unquote_rejects(literal):
    with pytest.raises(ValueError):
        unquote(literal)


def test_escaped_backslash_closes_string():
    s, sym = parse_nodes('"a\\\\" x')
    assert s == String('"a\\\\"', 1, "a\\")
    assert sym == Symbol("x", 6)


@pytest.mark.parametrize("text, value", [
    ("0", 0),
    ("-0x1F", -31),
    ("0o17", 15),
    ("1_000", 1000),
    ("0x_ff", 255),
    ("-9223372036854775808", -9223372036854775808),
    ("1__0", None),
    ("0x", None),
    ("08", None),
])
def test_parse_int_literal(text, value):
    assert parse_int_literal(text) == value
