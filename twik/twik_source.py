"""
Position bookkeeping for parsed twik sources.

Every registered source unit gets a disjoint range of integer positions, so a
single int is enough to find the file, line and column of any AST node.
"""

from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_SOURCE_NAME = "twik source"


@dataclass(frozen=True)
class SourceFile:
    """A registered source unit. Positions in it run from base to base+len(text)."""
    name: str
    text: str
    base: int
    registry: "SourceSet" = field(compare=False, repr=False)

    def pos(self, offset: int) -> int:
        return self.base + offset

    @property
    def end(self) -> int:
        return self.base + len(self.text)

    def __repr__(self) -> str:
        return f"<SourceFile name={self.name!r} base={self.base} len={len(self.text)}>"


@dataclass(frozen=True)
class PosInfo:
    """Human-oriented details for a position: source name, line and column."""
    name: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        name = self.name or DEFAULT_SOURCE_NAME
        return f"{name}:{self.line}:{self.column}:"


class SourceSet:
    """Holds every source unit parsed for one interpreter session."""

    def __init__(self):
        self.files: List[SourceFile] = []

    def _next_base(self) -> int:
        if not self.files:
            return 1
        last = self.files[-1]
        return last.end + 1

    def register(self, name: str, text: str) -> SourceFile:
        """Registers text under name and returns the handle used by the parser."""
        f = SourceFile(name=name or "", text=text, base=self._next_base(), registry=self)
        self.files.append(f)
        return f

    def resolve(self, pos: int) -> PosInfo:
        """Maps pos back to (name, line, column).

        Files are kept in base order, so the first one whose range holds pos
        is the owner; later files have larger bases and must not be consulted.
        """
        f = self.file_at(pos)
        if f is None:
            return PosInfo()
        offset = pos - f.base
        code = f.text[:offset]
        line = 1 + code.count("\n")
        nl = code.rfind("\n")
        column = offset - nl if nl >= 0 else offset + 1
        return PosInfo(f.name, line, column)

    def file_at(self, pos: int) -> Optional[SourceFile]:
        """Returns the file owning pos, or None when no registered file holds it."""
        for f in self.files:
            if f.base <= pos <= f.end:
                return f
        return None

    def __len__(self) -> int:
        return len(self.files)
