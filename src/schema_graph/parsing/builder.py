"""
Entity Builder

Consumes classified lines in order and accumulates a draft schema: the
finished tables (with their columns) and a queue of relationship
descriptors that still refer to tables and columns by name. Nothing is
resolved here; the resolver runs once every table is known.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from ..config import LayoutConfig
from ..models.results import Diagnostic, DiagnosticKind
from ..models.schema import Column, Constraint, Position, Table
from ..utils import get_logger
from .lines import (
    ColumnLine,
    ForeignKeyLine,
    LineShape,
    RelationshipLine,
    TableClose,
    TableOpen,
    Unrecognized,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class RawReference:
    """An unresolved 'from_table.from_column references to_table.to_column'"""
    from_table: str
    from_column: str
    to_table: str
    to_column: str
    line_number: Optional[int] = None
    origin: str = "relationship"  # "relationship", "foreign_key", "inline"

    def key(self) -> Tuple[str, str, str, str]:
        return (self.from_table.lower(), self.from_column, self.to_table.lower(), self.to_column)

    def __str__(self) -> str:
        return f"{self.from_table}.{self.from_column} -> {self.to_table}.{self.to_column}"


@dataclass
class DraftSchema:
    """Builder output: tables in id order plus name-keyed references"""
    tables: List[Table] = field(default_factory=list)
    references: List[RawReference] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class EntityBuilder:
    """
    Accumulates tables, columns and raw references for ONE parse

    Table and column ids come from counters owned by this instance, in the
    order entities are first seen. Create a new builder for every parse.
    """

    def __init__(self, layout: Optional[LayoutConfig] = None):
        self.layout = layout or LayoutConfig()
        self._table_counter = 0
        self._column_counter = 0
        self._tables: List[Table] = []
        self._table_names: Set[str] = set()
        self._current: Optional[Table] = None
        self._skipping_duplicate = False
        self._references: List[RawReference] = []
        self._reference_keys: Set[Tuple[str, str, str, str]] = set()
        self._diagnostics: List[Diagnostic] = []
        self._finished = False

    def build(self, shapes: Iterable[LineShape]) -> DraftSchema:
        """Consume every shape and return the finished draft"""
        if self._finished:
            raise RuntimeError("EntityBuilder instances build exactly one draft")

        for shape in shapes:
            self.add(shape)
        return self.finish()

    def add(self, shape: LineShape) -> None:
        if isinstance(shape, TableOpen):
            self._open_table(shape)
        elif isinstance(shape, TableClose):
            self._close_table(shape)
        elif isinstance(shape, ColumnLine):
            self._add_column(shape)
        elif isinstance(shape, RelationshipLine):
            self._add_relationship_line(shape)
        elif isinstance(shape, ForeignKeyLine):
            self._add_foreign_key(shape)
        elif isinstance(shape, Unrecognized):
            self._drop(shape.line_number, shape.text, shape.reason)

    def finish(self) -> DraftSchema:
        if self._current is not None:
            table = self._current
            self._finalize()
            self._diagnose(
                DiagnosticKind.UNCLOSED_TABLE,
                f"Table '{table.name}' was not closed before end of input",
                severity="info",
                table=table.name,
            )
        self._skipping_duplicate = False
        self._finished = True

        logger.debug(
            f"Built {len(self._tables)} tables, {self._column_counter} columns, "
            f"{len(self._references)} references"
        )
        return DraftSchema(
            tables=list(self._tables),
            references=list(self._references),
            diagnostics=list(self._diagnostics),
        )

    # Tables

    def _open_table(self, shape: TableOpen) -> None:
        if self._current is not None:
            previous = self._current
            self._finalize()
            self._diagnose(
                DiagnosticKind.UNCLOSED_TABLE,
                f"Table '{previous.name}' was not closed before table '{shape.name}'",
                line_number=shape.line_number,
                severity="info",
                table=previous.name,
            )
        self._skipping_duplicate = False

        if shape.name.lower() in self._table_names:
            # First declaration wins; the duplicate body is ignored
            self._skipping_duplicate = True
            self._diagnose(
                DiagnosticKind.DUPLICATE_TABLE,
                f"Duplicate table '{shape.name}' ignored; the first declaration is kept",
                line_number=shape.line_number,
                table=shape.name,
            )
            return

        self._table_counter += 1
        offset = (self._table_counter - 1) * self.layout.spacing_x
        self._current = Table(
            id=f"table-{self._table_counter}",
            name=shape.name,
            position=Position(x=self.layout.origin_x + offset, y=self.layout.origin_y),
        )
        self._table_names.add(shape.name.lower())
        logger.debug(f"Opened table {shape.name} as {self._current.id}")

    def _close_table(self, shape: TableClose) -> None:
        if self._skipping_duplicate:
            self._skipping_duplicate = False
        elif self._current is not None:
            self._finalize()
        else:
            self._drop(shape.line_number, shape.text, "closing line without an open table")

    def _finalize(self) -> None:
        self._tables.append(self._current)
        self._current = None

    # Columns and references

    def _add_column(self, shape: ColumnLine) -> None:
        if self._skipping_duplicate:
            return
        if self._current is None:
            self._drop(shape.line_number, shape.text, "column outside a table")
            return

        self._column_counter += 1
        column = Column(
            id=f"col-{self._column_counter}",
            name=shape.name,
            type=shape.type,
            constraints=[Constraint(type=c) for c in shape.constraints],
        )
        self._current.add_column(column)

        if shape.reference is not None:
            ref = shape.reference
            if ref.operator == '<':
                self._queue(ref.table, ref.column, self._current.name, shape.name, shape.line_number, "inline")
            else:
                self._queue(self._current.name, shape.name, ref.table, ref.column, shape.line_number, "inline")

    def _add_relationship_line(self, shape: RelationshipLine) -> None:
        # A.a > B.b: A.a references B.b. A.a < B.b: B.b references A.a.
        if shape.operator == '>':
            self._queue(shape.left_table, shape.left_column,
                        shape.right_table, shape.right_column, shape.line_number, "relationship")
        else:
            self._queue(shape.right_table, shape.right_column,
                        shape.left_table, shape.left_column, shape.line_number, "relationship")

    def _add_foreign_key(self, shape: ForeignKeyLine) -> None:
        if self._skipping_duplicate:
            return
        if self._current is None:
            self._drop(shape.line_number, shape.text, "foreign key outside a table")
            return
        self._queue(self._current.name, shape.column,
                    shape.ref_table, shape.ref_column, shape.line_number, "foreign_key")

    def _queue(self, from_table: str, from_column: str, to_table: str, to_column: str,
               line_number: Optional[int], origin: str) -> None:
        reference = RawReference(
            from_table=from_table,
            from_column=from_column,
            to_table=to_table,
            to_column=to_column,
            line_number=line_number,
            origin=origin,
        )
        if reference.key() in self._reference_keys:
            self._diagnose(
                DiagnosticKind.DUPLICATE_REFERENCE,
                f"Reference {reference} declared more than once; counted once",
                line_number=line_number,
                severity="info",
            )
            return
        self._reference_keys.add(reference.key())
        self._references.append(reference)

    # Diagnostics

    def _drop(self, line_number: int, text: str, reason: str) -> None:
        self._diagnose(
            DiagnosticKind.DROPPED_LINE,
            f"Dropped line ({reason}): {text}",
            line_number=line_number,
            severity="info",
            reason=reason,
        )

    def _diagnose(self, kind: DiagnosticKind, message: str, line_number: Optional[int] = None,
                  severity: str = "warning", **details) -> None:
        self._diagnostics.append(Diagnostic(
            kind=kind,
            message=message,
            line_number=line_number,
            severity=severity,
            details=details,
        ))
