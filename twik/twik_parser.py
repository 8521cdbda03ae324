"""
A recursive-descent parser turning twik source text into a positioned AST.
"""

import math
import re
from typing import List as PyList, Optional

from twik.twik_ast import Int, Float, String, Symbol, List, Root, Node
from twik.twik_datatypes import ParseError
from twik.twik_source import SourceFile, SourceSet

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

MISSING_PAREN = "missing )"
UNEXPECTED_PAREN = "unexpected )"

_DIGITS = "0123456789"

_SIMPLE_ESCAPES = {
    "a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r",
    "t": "\t", "v": "\v", "\\": "\\", '"': '"',
}

_INT_FORMS = (
    (re.compile(r"0[xX]_?[0-9a-fA-F]+(_[0-9a-fA-F]+)*"), 16),
    (re.compile(r"0[bB]_?[01]+(_[01]+)*"), 2),
    (re.compile(r"0[oO]_?[0-7]+(_[0-7]+)*"), 8),
    (re.compile(r"0_?[0-7]+(_[0-7]+)*"), 8),
    (re.compile(r"0|[1-9](_?[0-9])*"), 10),
)

_FLOAT_FORM = re.compile(r"[0-9]+\.[0-9]*([eE][+-]?[0-9]+)?")


class _CloseParen(Exception):
    """Raised when a bare ) is met; the caller decides whether it closes a list."""


class _EndOfInput(Exception):
    pass


def parse_int_literal(text: str) -> Optional[int]:
    """Parses an integer literal with C-style base prefixes. Returns None when malformed."""
    negative = text.startswith("-")
    body = text[1:] if negative else text
    for pattern, base in _INT_FORMS:
        if pattern.fullmatch(body):
            digits = body.replace("_", "")
            if base != 10 and len(digits) > 1 and digits[1] in "xXbBoO":
                digits = digits[2:]
            value = int(digits, base)
            value = -value if negative else value
            if INT64_MIN <= value <= INT64_MAX:
                return value
            return None
    return None


def parse_float_literal(text: str) -> Optional[float]:
    body = text[1:] if text.startswith("-") else text
    if not _FLOAT_FORM.fullmatch(body):
        return None
    value = float(text)
    if math.isinf(value):
        return None
    return value


def unquote(literal: str) -> str:
    """Decodes a double-quoted literal, including its quotes. Raises ValueError on bad input."""
    if len(literal) < 2 or literal[0] != '"' or literal[-1] != '"':
        raise ValueError("not a quoted string")
    body = literal[1:-1]
    out = []
    i = 0
    n = len(body)
    while i < n:
        c = body[i]
        if c == '"' or c == "\n":
            raise ValueError(f"unexpected {c!r} in string literal")
        if c != "\\":
            out.append(c)
            i += 1
            continue
        if i + 1 >= n:
            raise ValueError("trailing backslash")
        e = body[i + 1]
        if e in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[e])
            i += 2
            continue
        width = {"x": 2, "u": 4, "U": 8}.get(e)
        if width is not None:
            digits = body[i + 2:i + 2 + width]
            if len(digits) != width or not re.fullmatch(r"[0-9a-fA-F]+", digits):
                raise ValueError(f"invalid \\{e} escape")
            code = int(digits, 16)
            if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                raise ValueError(f"invalid code point {code:#x}")
            out.append(chr(code))
            i += 2 + width
            continue
        if e in "01234567":
            digits = body[i + 1:i + 4]
            if len(digits) != 3 or not re.fullmatch(r"[0-7]{3}", digits) or int(digits, 8) > 255:
                raise ValueError("invalid octal escape")
            out.append(chr(int(digits, 8)))
            i += 4
            continue
        raise ValueError(f"unknown escape \\{e}")
    return "".join(out)


class Parser:
    """Parses one registered source unit.

    The parser keeps a single cursor `i` into the text; positions handed out
    are `base + i`.
    """
    def __init__(self, source: SourceFile):
        self.source = source
        self.code = source.text
        self.base = source.base
        self.i = 0

    def pos(self, i: int) -> int:
        return self.base + i

    def error(self, i: int, message: str) -> ParseError:
        pos = self.pos(i)
        return ParseError(message, pos, self.source.registry.resolve(pos))

    def parse(self) -> Root:
        first = self.pos(0)
        nodes: PyList[Node] = []
        while True:
            try:
                nodes.append(self.next())
            except _EndOfInput:
                break
            except _CloseParen:
                raise self.error(self.i, UNEXPECTED_PAREN) from None
        return Root(first=first, after=self.pos(self.i), nodes=tuple(nodes))

    def _skip_blank(self) -> None:
        code = self.code
        while self.i < len(code):
            c = code[self.i]
            if c == ";":
                nl = code.find("\n", self.i)
                self.i = len(code) if nl < 0 else nl + 1
            elif c.isspace():
                self.i += 1
            else:
                return

    def _scan_token(self) -> None:
        """Advances the cursor to the next ) or whitespace."""
        code = self.code
        while self.i < len(code) and code[self.i] != ")" and not code[self.i].isspace():
            self.i += 1

    def next(self) -> Node:
        self._skip_blank()
        code = self.code
        if self.i == len(code):
            raise _EndOfInput()

        start = self.i
        c = code[start]
        self.i += 1

        if c == ")":
            raise _CloseParen()
        if c == "(":
            return self._list(start)
        if c == "-" and self.i < len(code) and code[self.i] in _DIGITS:
            return self._number(start)
        if c in _DIGITS:
            return self._number(start)
        if c == "'":
            return self._char(start)
        if c == '"':
            return self._string(start)

        self._scan_token()
        return Symbol(name=code[start:self.i], pos=self.pos(start))

    def _list(self, start: int) -> List:
        nodes: PyList[Node] = []
        while True:
            try:
                nodes.append(self.next())
            except _CloseParen:
                break
            except _EndOfInput:
                raise self.error(self.i, MISSING_PAREN) from None
        return List(lparen=self.pos(start), rparen=self.pos(self.i - 1), nodes=tuple(nodes))

    def _number(self, start: int) -> Node:
        self._scan_token()
        text = self.code[start:self.i]
        if "." in text:
            fvalue = parse_float_literal(text)
            if fvalue is None:
                raise self.error(start, f"invalid float literal: {text}")
            return Float(input=text, pos=self.pos(start), value=fvalue)
        ivalue = parse_int_literal(text)
        if ivalue is None:
            raise self.error(start, f"invalid int literal: {text}")
        return Int(input=text, pos=self.pos(start), value=ivalue)

    def _char(self, start: int) -> Int:
        code = self.code
        ch = ""
        if self.i < len(code):
            ch = code[self.i]
            self.i += 1
            if ch == "\\" and self.i < len(code):
                ch = code[self.i]
                self.i += 1
            elif ch == "'":
                raise self.error(start, "invalid single quote")
        if self.i == len(code):
            raise self.error(start, "invalid single quote")
        closing = code[self.i]
        self.i += 1
        if closing != "'":
            raise self.error(start, "unclosed single quote")
        return Int(input=code[start:self.i], pos=self.pos(start), value=ord(ch))

    def _string(self, start: int) -> String:
        code = self.code
        escaped = False
        while True:
            if self.i == len(code):
                raise self.error(start, f"unclosed string literal: {code[start:]}")
            c = code[self.i]
            self.i += 1
            if c == '"' and not escaped:
                break
            escaped = c == "\\" and not escaped
        text = code[start:self.i]
        try:
            value = unquote(text)
        except ValueError:
            raise self.error(start, f"invalid string literal: {text}") from None
        return String(input=text, pos=self.pos(start), value=value)


def parse(source: SourceFile) -> Root:
    """Parses a registered source unit and returns its Root node."""
    return Parser(source).parse()


def parse_string(sources: SourceSet, name: str, code: str) -> Root:
    """Registers code under name in sources and parses it."""
    return parse(sources.register(name, code))
