"""
Table-definition dialect scanner (DBML style)

    Table users {
      id integer [primary key]
      email varchar(255) [not null, unique]
    }
    Ref: posts.user_id > users.id
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional

from .lines import (
    ColumnLine,
    InlineReference,
    LineBuffer,
    LineScanner,
    LineShape,
    LogicalLine,
    RelationshipLine,
    TableClose,
    TableOpen,
    Unrecognized,
    recognize_constraints,
)

_NAME = r'"?(\w+)"?'

TABLE_OPEN = re.compile(
    rf'^Table\s+{_NAME}(?:\s+as\s+\w+)?\s*(?:\[[^\]]*\])?\s*\{{$',
    re.IGNORECASE,
)
RELATIONSHIP = re.compile(
    rf'^Ref(?:\s+"?(\w+)"?)?\s*:\s*{_NAME}\.{_NAME}\s*([<>])\s*{_NAME}\.{_NAME}',
    re.IGNORECASE,
)
REF_BLOCK_OPEN = re.compile(r'^Ref(?:\s+"?(\w+)"?)?\s*(?:\[[^\]]*\]\s*)?\{$', re.IGNORECASE)
REF_BLOCK_LINE = re.compile(rf'^{_NAME}\.{_NAME}\s*([<>])\s*{_NAME}\.{_NAME}')
COLUMN = re.compile(
    r'^"?(\w+)"?\s+("[^"]+"|\w+(?:\s*\([^)]*\))?)\s*(?:\[(.*)\])?'
)
INLINE_REF = re.compile(
    rf'ref\s*:\s*([<>])\s*{_NAME}\.{_NAME}',
    re.IGNORECASE,
)
BLOCK_OPEN = re.compile(r'\{$')


@dataclass
class _TableDefinitionState:
    in_table: bool = False
    depth: int = 0  # brace depth inside the open table
    outer_depth: int = 0  # depth of non-table blocks (Enum, Project, ...)
    in_ref_block: bool = False
    ref_label: Optional[str] = None


class TableDefinitionScanner(LineScanner):
    """Splitter and classifier for the table-definition dialect"""

    dialect = "table-definition"

    def split(self, text: str) -> Iterator[LogicalLine]:
        """
        Newlines and `;` end a logical line, except inside [settings] or quotes.
        `{` ends the current line, `}` always stands alone.
        """
        buffer = LineBuffer()
        line_number = 1
        quote = None
        bracket_depth = 0
        in_block_comment = False
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

            if quote:
                buffer.push(ch, line_number)
                if ch == quote:
                    quote = None
                elif ch == '\n':
                    line_number += 1
                i += 1
                continue

            if ch in ('"', "'", '`'):
                quote = ch
                buffer.push(ch, line_number)
                i += 1
                continue

            if text.startswith('//', i):
                while i < n and text[i] != '\n':
                    i += 1
                continue

            if text.startswith('/*', i):
                in_block_comment = True
                i += 2
                continue

            if ch == '\n':
                if bracket_depth:
                    buffer.push(' ', line_number)
                else:
                    line = buffer.take()
                    if line:
                        yield line
                line_number += 1
                i += 1
                continue

            if ch == '[':
                bracket_depth += 1
            elif ch == ']':
                bracket_depth = max(0, bracket_depth - 1)
            elif ch == '{' and not bracket_depth:
                buffer.push(ch, line_number)
                line = buffer.take()
                if line:
                    yield line
                i += 1
                continue
            elif ch == ';' and not bracket_depth:
                line = buffer.take()
                if line:
                    yield line
                i += 1
                continue
            elif ch == '}' and not bracket_depth:
                line = buffer.take()
                if line:
                    yield line
                yield LogicalLine(line_number=line_number, text='}')
                i += 1
                continue

            buffer.push(ch, line_number)
            i += 1

        line = buffer.take()
        if line:
            yield line

    def new_state(self) -> _TableDefinitionState:
        return _TableDefinitionState()

    def classify(self, line: LogicalLine, state: _TableDefinitionState) -> Optional[LineShape]:
        text = line.text

        ref = RELATIONSHIP.match(text)
        if ref:
            return RelationshipLine(
                line_number=line.line_number,
                text=text,
                label=ref.group(1),
                left_table=ref.group(2),
                left_column=ref.group(3),
                operator=ref.group(4),
                right_table=ref.group(5),
                right_column=ref.group(6),
            )

        if state.in_ref_block:
            return self._classify_in_ref_block(line, state)

        if state.in_table:
            return self._classify_in_table(line, state)

        if state.outer_depth:
            if text == '}':
                state.outer_depth -= 1
                return Unrecognized(line.line_number, text, "end of non-table block")
            if BLOCK_OPEN.search(text):
                state.outer_depth += 1
            return Unrecognized(line.line_number, text, "inside non-table block")

        opened = TABLE_OPEN.match(text)
        if opened:
            state.in_table = True
            state.depth = 1
            return TableOpen(line_number=line.line_number, text=text, name=opened.group(1))

        ref_block = REF_BLOCK_OPEN.match(text)
        if ref_block:
            state.in_ref_block = True
            state.ref_label = ref_block.group(1)
            return None

        if BLOCK_OPEN.search(text):
            state.outer_depth = 1
            return Unrecognized(line.line_number, text, "unsupported block")

        return Unrecognized(line.line_number, text, "outside any table")

    def _classify_in_ref_block(self, line: LogicalLine, state: _TableDefinitionState) -> Optional[LineShape]:
        """Body of `Ref [label] { a.x > b.y ... }`: one relationship per line"""
        text = line.text

        if text == '}':
            state.in_ref_block = False
            state.ref_label = None
            return None

        ref = REF_BLOCK_LINE.match(text)
        if ref is None:
            return Unrecognized(line.line_number, text, "not a relationship")

        return RelationshipLine(
            line_number=line.line_number,
            text=text,
            label=state.ref_label,
            left_table=ref.group(1),
            left_column=ref.group(2),
            operator=ref.group(3),
            right_table=ref.group(4),
            right_column=ref.group(5),
        )

    def _classify_in_table(self, line: LogicalLine, state: _TableDefinitionState) -> LineShape:
        text = line.text

        if text == '}':
            if state.depth == 1:
                state.in_table = False
                state.depth = 0
                return TableClose(line_number=line.line_number, text=text)
            state.depth -= 1
            return Unrecognized(line.line_number, text, "end of nested block")

        if state.depth > 1:
            if BLOCK_OPEN.search(text):
                state.depth += 1
            return Unrecognized(line.line_number, text, "inside nested block")

        # A new table before the previous one closed; the builder finalizes the old one
        opened = TABLE_OPEN.match(text)
        if opened:
            state.depth = 1
            return TableOpen(line_number=line.line_number, text=text, name=opened.group(1))

        if BLOCK_OPEN.search(text):
            state.depth += 1
            return Unrecognized(line.line_number, text, "nested block")

        column = COLUMN.match(text)
        if column:
            settings = column.group(3) or ""
            reference = None
            inline_ref = INLINE_REF.search(settings)
            if inline_ref:
                reference = InlineReference(
                    operator=inline_ref.group(1),
                    table=inline_ref.group(2),
                    column=inline_ref.group(3),
                )
                settings = settings[:inline_ref.start()] + settings[inline_ref.end():]

            return ColumnLine(
                line_number=line.line_number,
                text=text,
                name=column.group(1),
                type=column.group(2).strip().strip('"'),
                constraints=recognize_constraints(settings, shorthand=True),
                reference=reference,
            )

        return Unrecognized(line.line_number, text, "not a column definition")
