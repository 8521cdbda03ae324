"""
AST node types produced by the twik parser.

Nodes are immutable and carry their source positions; they have no behavior
beyond reporting where they start and end.
"""

from dataclasses import dataclass, field
from typing import Tuple, Union


@dataclass(frozen=True)
class Int:
    input: str
    pos: int
    value: int

    @property
    def end(self) -> int:
        return self.pos + len(self.input)


@dataclass(frozen=True)
class Float:
    input: str
    pos: int
    value: float

    @property
    def end(self) -> int:
        return self.pos + len(self.input)


@dataclass(frozen=True)
class String:
    """A string literal. `input` keeps the quotes and escapes as written."""
    input: str
    pos: int
    value: str

    @property
    def end(self) -> int:
        return self.pos + len(self.input)


@dataclass(frozen=True)
class Symbol:
    name: str
    pos: int

    @property
    def end(self) -> int:
        return self.pos + len(self.name)


@dataclass(frozen=True)
class List:
    lparen: int
    rparen: int
    nodes: Tuple["Node", ...] = field(default=())

    @property
    def pos(self) -> int:
        return self.lparen

    @property
    def end(self) -> int:
        return self.rparen + 1


@dataclass(frozen=True)
class Root:
    """The parse result of one source unit."""
    first: int
    after: int
    nodes: Tuple["Node", ...] = field(default=())

    @property
    def pos(self) -> int:
        return self.first

    @property
    def end(self) -> int:
        return self.after


Node = Union[Int, Float, String, Symbol, List, Root]
