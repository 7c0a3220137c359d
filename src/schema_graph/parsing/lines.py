"""
Lexical Line Scanner - shared pieces

A scanner turns raw schema text into a lazy sequence of classified logical
lines. Scanning happens in two steps:

1. a dialect-specific splitter cuts the text into logical lines (so that
   `Table users { id int }` becomes three lines) and drops comments;
2. a dialect-specific classifier tags each logical line with a LineShape,
   carrying only the running state it needs (the open table and the
   nesting depth).

Every call to `scan()` starts from fresh state, so scanning the same text
twice yields identical shapes.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Union

from ..models.schema import ConstraintType


@dataclass(frozen=True)
class LogicalLine:
    """One classifiable unit of input; line_number is where it starts (1-based)"""
    line_number: int
    text: str


@dataclass(frozen=True)
class InlineReference:
    """A reference written on a column line ('>' = this column references target)"""
    operator: str
    table: str
    column: str


@dataclass(frozen=True)
class TableOpen:
    line_number: int
    text: str
    name: str


@dataclass(frozen=True)
class TableClose:
    line_number: int
    text: str


@dataclass(frozen=True)
class ColumnLine:
    line_number: int
    text: str
    name: str
    type: str
    constraints: Tuple[ConstraintType, ...] = ()
    reference: Optional[InlineReference] = None


@dataclass(frozen=True)
class RelationshipLine:
    """`Ref[ label]: left_table.left_column (>|<) right_table.right_column`"""
    line_number: int
    text: str
    left_table: str
    left_column: str
    operator: str
    right_table: str
    right_column: str
    label: Optional[str] = None


@dataclass(frozen=True)
class ForeignKeyLine:
    """Standalone `FOREIGN KEY (column) REFERENCES ref_table(ref_column)`"""
    line_number: int
    text: str
    column: str
    ref_table: str
    ref_column: str


@dataclass(frozen=True)
class Unrecognized:
    line_number: int
    text: str
    reason: str = "unrecognized line"


LineShape = Union[TableOpen, TableClose, ColumnLine, RelationshipLine, ForeignKeyLine, Unrecognized]


_QUOTED = re.compile(r"'[^']*'|\"[^\"]*\"|`[^`]*`")


def strip_quoted(text: str) -> str:
    """Blank out quoted literals so keywords inside them are not matched"""
    return _QUOTED.sub("''", text)


def recognize_constraints(text: str, shorthand: bool = False) -> Tuple[ConstraintType, ...]:
    """
    Keyword-substring constraint recognition, case-insensitive

    "primary key" -> PRIMARY_KEY, "not null" -> NOT_NULL, "unique" -> UNIQUE,
    "auto_increment"/"autoincrement" -> AUTO_INCREMENT. With shorthand=True
    the comma-separated tokens "pk" and "increment" count as well.
    """
    lowered = strip_quoted(text).lower()
    found: List[ConstraintType] = []

    if "primary key" in lowered:
        found.append(ConstraintType.PRIMARY_KEY)
    if "not null" in lowered:
        found.append(ConstraintType.NOT_NULL)
    if "unique" in lowered:
        found.append(ConstraintType.UNIQUE)
    if "auto_increment" in lowered or "autoincrement" in lowered:
        found.append(ConstraintType.AUTO_INCREMENT)

    if shorthand:
        tokens = {token.strip() for token in lowered.split(",")}
        if "pk" in tokens and ConstraintType.PRIMARY_KEY not in found:
            found.append(ConstraintType.PRIMARY_KEY)
        if "increment" in tokens and ConstraintType.AUTO_INCREMENT not in found:
            found.append(ConstraintType.AUTO_INCREMENT)

    return tuple(found)


class LineBuffer:
    """Accumulates characters of the current logical line"""

    def __init__(self):
        self._chars: List[str] = []
        self._start: Optional[int] = None

    def push(self, ch: str, line_number: int) -> None:
        if not self._chars and ch.isspace():
            return
        if not self._chars:
            self._start = line_number
        self._chars.append(ch)

    @property
    def empty(self) -> bool:
        return not self._chars

    def take(self) -> Optional[LogicalLine]:
        """Return the finished logical line (None when blank) and reset"""
        text = "".join(self._chars).strip()
        start = self._start
        self._chars = []
        self._start = None
        if not text or start is None:
            return None
        return LogicalLine(line_number=start, text=text)


class LineScanner(ABC):
    """Base class for a dialect's splitter + classifier"""

    dialect: str = ""

    def scan(self, text: str) -> Iterator[LineShape]:
        """Lazily classify every logical line of text"""
        state = self.new_state()
        for line in self.split(text):
            shape = self.classify(line, state)
            if shape is not None:
                yield shape

    @abstractmethod
    def split(self, text: str) -> Iterator[LogicalLine]:
        """Cut raw text into logical lines, dropping comments and blanks"""

    @abstractmethod
    def new_state(self) -> Any:
        """Fresh running state for one scan"""

    @abstractmethod
    def classify(self, line: LogicalLine, state: Any) -> Optional[LineShape]:
        """Tag one logical line, updating the running state (None for pure block markers)"""
