"""
SQL DDL dialect scanner

Understands CREATE TABLE bodies well enough to extract columns, inline
column constraints and single-column foreign keys. Everything else
(indexes, inserts, table-level PRIMARY KEY/UNIQUE/CHECK clauses) is
reported as unrecognized.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional

import sqlparse

from .lines import (
    ColumnLine,
    ForeignKeyLine,
    InlineReference,
    LineBuffer,
    LineScanner,
    LineShape,
    LogicalLine,
    TableClose,
    TableOpen,
    Unrecognized,
    recognize_constraints,
)

_IDENT = r'[`"\[]?(\w+)[`"\]]?'
_QUALIFIER = r'(?:[`"\[]?\w+[`"\]]?\.)?'

CREATE_TABLE = re.compile(
    rf'^CREATE\s+(?:(?:GLOBAL\s+|LOCAL\s+)?(?:TEMP|TEMPORARY)\s+)?TABLE\s+'
    rf'(?:IF\s+NOT\s+EXISTS\s+)?{_QUALIFIER}{_IDENT}\s*\($',
    re.IGNORECASE,
)
FOREIGN_KEY = re.compile(
    rf'^(?:CONSTRAINT\s+{_IDENT}\s+)?FOREIGN\s+KEY\s*\(\s*{_IDENT}\s*\)\s*'
    rf'REFERENCES\s+{_QUALIFIER}{_IDENT}\s*\(\s*{_IDENT}\s*\)',
    re.IGNORECASE,
)
# KEY, INDEX, CHECK, ... double as column names (`key VARCHAR(255)`), so
# those only count as constraints when the parenthesis opens a name list,
# never type arguments like (255) or ('a', 'b')
TABLE_CONSTRAINT = re.compile(
    r'^(?:CONSTRAINT\s+\S+\s+'
    r'|(?:PRIMARY|FOREIGN)\s+KEY\b'
    r'|(?:UNIQUE(?:\s+(?:KEY|INDEX))?|KEY|INDEX|CHECK|FULLTEXT|EXCLUDE)\b'
    r'\s*(?:[`"\[]?\w+[`"\]]?\s*)?\(\s*[`"\[]?[A-Za-z_])',
    re.IGNORECASE,
)
COLUMN = re.compile(
    rf'^{_IDENT}\s+(\w+(?:\s*\([^)]*\))?)(.*)$',
    re.IGNORECASE | re.DOTALL,
)
INLINE_REFERENCES = re.compile(
    rf'REFERENCES\s+{_QUALIFIER}{_IDENT}\s*\(\s*{_IDENT}\s*\)',
    re.IGNORECASE,
)

_QUOTES = {'"': '"', "'": "'", '`': '`'}


@dataclass
class _DDLState:
    in_table: bool = False


class DDLScanner(LineScanner):
    """Splitter and classifier for SQL DDL"""

    dialect = "ddl"

    def split(self, text: str) -> Iterator[LogicalLine]:
        """
        Split on parenthesis depth: the `(` opening a body ends its line,
        commas at depth 1 separate lines, and the `)` closing the body
        forms its own line together with a directly following `;`.
        """
        buffer = LineBuffer()
        line_number = 1
        depth = 0
        quote: Optional[str] = None
        in_block_comment = False
        pending_close: Optional[int] = None  # line number of a just-closed body
        i = 0
        n = len(text)

        while i < n:
            ch = text[i]

            if in_block_comment:
                if text.startswith('*/', i):
                    in_block_comment = False
                    i += 2
                    continue
                if ch == '\n':
                    line_number += 1
                i += 1
                continue

            if pending_close is not None and not text.startswith(('--', '/*'), i):
                if ch.isspace():
                    if ch == '\n':
                        line_number += 1
                    i += 1
                    continue
                if ch == ';':
                    yield LogicalLine(line_number=pending_close, text=');')
                    pending_close = None
                    i += 1
                    continue
                yield LogicalLine(line_number=pending_close, text=')')
                pending_close = None

            if quote:
                buffer.push(ch, line_number)
                if ch == quote:
                    quote = None
                elif ch == '\n':
                    line_number += 1
                i += 1
                continue

            if text.startswith('--', i):
                while i < n and text[i] != '\n':
                    i += 1
                continue

            if text.startswith('/*', i):
                in_block_comment = True
                i += 2
                continue

            if ch == '\n':
                buffer.push(' ', line_number)
                line_number += 1
                i += 1
                continue

            if ch in _QUOTES:
                quote = _QUOTES[ch]
                buffer.push(ch, line_number)
                i += 1
                continue

            if ch == '(':
                depth += 1
                buffer.push(ch, line_number)
                if depth == 1:
                    line = buffer.take()
                    if line:
                        yield line
                i += 1
                continue

            if ch == ')':
                if depth == 1:
                    line = buffer.take()
                    if line:
                        yield line
                    depth = 0
                    pending_close = line_number
                    i += 1
                    continue
                depth = max(0, depth - 1)
                buffer.push(ch, line_number)
                i += 1
                continue

            if ch == ',' and depth == 1:
                line = buffer.take()
                if line:
                    yield line
                i += 1
                continue

            if ch == ';' and depth == 0:
                buffer.push(ch, line_number)
                line = buffer.take()
                if line:
                    yield line
                i += 1
                continue

            buffer.push(ch, line_number)
            i += 1

        if pending_close is not None:
            yield LogicalLine(line_number=pending_close, text=')')
        line = buffer.take()
        if line:
            yield line

    def new_state(self) -> _DDLState:
        return _DDLState()

    def classify(self, line: LogicalLine, state: _DDLState) -> LineShape:
        text = line.text

        opened = CREATE_TABLE.match(text)
        if opened:
            state.in_table = True
            return TableOpen(line_number=line.line_number, text=text, name=opened.group(1))

        if not state.in_table:
            return Unrecognized(line.line_number, text, "outside any table")

        if text in (')', ');'):
            state.in_table = False
            return TableClose(line_number=line.line_number, text=text)

        foreign_key = FOREIGN_KEY.match(text)
        if foreign_key:
            return ForeignKeyLine(
                line_number=line.line_number,
                text=text,
                column=foreign_key.group(2),
                ref_table=foreign_key.group(3),
                ref_column=foreign_key.group(4),
            )

        if TABLE_CONSTRAINT.match(text):
            return Unrecognized(line.line_number, text, "table-level constraint")

        column = COLUMN.match(text)
        if column:
            trailing = column.group(3)
            reference = None
            inline_ref = INLINE_REFERENCES.search(trailing)
            if inline_ref:
                reference = InlineReference(
                    operator='>',
                    table=inline_ref.group(1),
                    column=inline_ref.group(2),
                )
                trailing = trailing[:inline_ref.start()] + trailing[inline_ref.end():]

            return ColumnLine(
                line_number=line.line_number,
                text=text,
                name=column.group(1),
                type=column.group(2).strip(),
                constraints=recognize_constraints(trailing),
                reference=reference,
            )

        return Unrecognized(line.line_number, text, "not a column definition")


def create_table_statements(text: str) -> List[str]:
    """Statements of text that sqlparse recognizes as CREATE ... TABLE"""
    statements = []
    for statement in sqlparse.parse(text):
        if statement.get_type() != 'CREATE':
            continue
        if any(token.is_keyword and token.normalized == 'TABLE' for token in statement.flatten()):
            statements.append(str(statement).strip())
    return statements
