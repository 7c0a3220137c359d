"""
Schema Parser

Entry point of the extraction pipeline:

    text -> Scanner -> EntityBuilder -> ReferenceResolver
         -> CardinalityInferenceEngine -> Schema

Every call builds its own scanner state, builder and id sequences, so one
SchemaParser can serve concurrent parses.
"""
from __future__ import annotations

import re
import time
from typing import List, Optional, Union

from ..config import Dialect, SystemConfig, get_config
from ..models.results import Diagnostic, JunctionTable, ParseResult, ValidationIssue, ValidationResult
from ..models.schema import Schema
from ..utils import (
    ErrorContext,
    ParserMetrics,
    StructuralParseError,
    UnsupportedDialectError,
    get_logger,
    log_context,
    log_operation,
    new_parse_id,
)
from .builder import EntityBuilder
from .cardinality import CardinalityInferenceEngine
from .ddl import create_table_statements
from .lines import TableOpen
from .resolver import ReferenceResolver, RelationshipIds
from .scanner import get_scanner

logger = get_logger(__name__)

SchemaInput = Union[str, bytes]

_TABLE_DEFINITION_HINT = re.compile(r'^\s*Table\s+"?\w+"?[^{\n]*\{', re.IGNORECASE | re.MULTILINE)


def detect_dialect(text: str) -> Optional[Dialect]:
    """
    Guess the dialect of schema text

    `Table <name> {` marks the table-definition dialect, a CREATE TABLE
    statement marks DDL. Returns None when neither is present.
    """
    if _TABLE_DEFINITION_HINT.search(text):
        return Dialect.TABLE_DEFINITION
    if create_table_statements(text):
        return Dialect.DDL
    return None


class SchemaParser:
    """
    Parses schema text into a Schema graph

    Usage:
        parser = SchemaParser()
        result = parser.parse(text, dialect="ddl")
        if result.success:
            print(result.schema.to_json())
    """

    def __init__(self, config: Optional[SystemConfig] = None):
        self.config = config or get_config()

    def parse(self, text: SchemaInput, dialect: Optional[Union[Dialect, str]] = None) -> ParseResult:
        """
        Parse schema text

        Args:
            text: Schema text (bytes are decoded as UTF-8)
            dialect: Dialect tag; falls back to the configured default,
                then to detection

        Returns:
            ParseResult. Structural failures come back with success=False
            and a single error instead of raising.
        """
        start_time = time.perf_counter()
        parse_id = new_parse_id()

        try:
            source = self._decode(text)
            resolved = self._resolve_dialect(source, dialect)
        except StructuralParseError as e:
            label = _dialect_label(dialect)
            logger.warning(f"Rejected input: {e.message}")
            self._record_parse(start_time, False, label)
            return ParseResult.failure(e.message, line=e.line_number, dialect=label)

        with log_context(parse_id=parse_id, dialect=resolved.value):
            with log_operation(logger, "schema_parse", dialect=resolved.value) as op:
                result = self._run(source, resolved)
                op["tables"] = len(result.schema.tables)
                op["relationships"] = len(result.schema.relationships)
                op["diagnostics"] = len(result.diagnostics)

        self._record_parse(start_time, True, resolved.value)
        self._record_result(result, resolved.value)
        return result

    def can_parse(self, text: SchemaInput, dialect: Union[Dialect, str]) -> bool:
        """True when text holds at least one table of the given dialect"""
        try:
            source = self._decode(text)
            resolved = Dialect.from_value(dialect)
        except (StructuralParseError, ValueError):
            return False

        if resolved == Dialect.DDL and not create_table_statements(source):
            return False
        return any(isinstance(shape, TableOpen) for shape in get_scanner(resolved).scan(source))

    def validate_input(self, text: SchemaInput, dialect: Union[Dialect, str]) -> ValidationResult:
        """Cheap pre-parse check of raw input, reported on the 'input' field"""
        issues: List[ValidationIssue] = []

        if isinstance(text, (str, bytes)) and not text.strip():
            issues.append(ValidationIssue(field="input", message="Schema input is required"))
        else:
            try:
                source = self._decode(text)
                resolved = Dialect.from_value(dialect)
            except ValueError as e:
                issues.append(ValidationIssue(field="dialect", message=str(e)))
            except StructuralParseError as e:
                issues.append(ValidationIssue(field="input", message=e.message))
            else:
                if not self.can_parse(source, resolved):
                    expected = "Table blocks" if resolved == Dialect.TABLE_DEFINITION else "CREATE TABLE statements"
                    issues.append(ValidationIssue(
                        field="input",
                        message=f"Input must contain {expected}",
                    ))

        return ValidationResult(is_valid=not issues, issues=issues)

    def _run(self, text: str, dialect: Dialect) -> ParseResult:
        parser_config = self.config.parser

        draft = EntityBuilder(parser_config.layout).build(get_scanner(dialect).scan(text))

        ids = RelationshipIds()
        resolution = ReferenceResolver(ids).resolve(draft)
        diagnostics: List[Diagnostic] = draft.diagnostics + resolution.diagnostics

        relationships = resolution.candidates
        junction_tables: List[JunctionTable] = []
        if parser_config.infer_cardinality:
            inference = CardinalityInferenceEngine(ids).infer(draft.tables, resolution.candidates)
            relationships = inference.relationships
            junction_tables = inference.junction_tables
            diagnostics.extend(inference.diagnostics)

        for diagnostic in diagnostics:
            logger.debug(f"[{diagnostic.kind.value}] {diagnostic}")

        schema = Schema.from_parts(draft.tables, relationships)
        return ParseResult(
            success=True,
            schema=schema,
            dialect=dialect.value,
            diagnostics=diagnostics,
            junction_tables=junction_tables,
        )

    def _resolve_dialect(self, text: str, dialect: Optional[Union[Dialect, str]]) -> Dialect:
        if dialect is None:
            dialect = self.config.parser.default_dialect
        if dialect is None:
            detected = detect_dialect(text)
            if detected is None:
                raise UnsupportedDialectError(None)
            logger.debug(f"Detected dialect {detected.value}")
            return detected

        try:
            return Dialect.from_value(dialect)
        except ValueError as e:
            label = _dialect_label(dialect)
            raise UnsupportedDialectError(label, context=ErrorContext(dialect=label)) from e

    @staticmethod
    def _decode(text: SchemaInput) -> str:
        if isinstance(text, bytes):
            try:
                text = text.decode('utf-8')
            except UnicodeDecodeError as e:
                raise StructuralParseError(
                    f"Input is not valid UTF-8 text (byte offset {e.start})",
                    original_error=e,
                ) from e
        if not isinstance(text, str):
            raise StructuralParseError(f"Expected schema text, got {type(text).__name__}")
        return text.lstrip('\ufeff')

    def _record_parse(self, start_time: float, success: bool, dialect: str) -> None:
        if self.config.metrics.enabled:
            ParserMetrics.record_parse(time.perf_counter() - start_time, success, dialect)

    def _record_result(self, result: ParseResult, dialect: str) -> None:
        if not self.config.metrics.enabled:
            return
        schema = result.schema
        ParserMetrics.record_entities(
            len(schema.tables), schema.column_count(), len(schema.relationships), dialect
        )
        for diagnostic in result.diagnostics:
            ParserMetrics.record_diagnostic(diagnostic.kind.value, dialect)
        ParserMetrics.record_junction_collapse(len(result.junction_tables), dialect)


def parse_schema(
    text: SchemaInput,
    dialect: Optional[Union[Dialect, str]] = None,
    config: Optional[SystemConfig] = None,
) -> ParseResult:
    """Parse schema text with a one-off SchemaParser"""
    return SchemaParser(config).parse(text, dialect)


def _dialect_label(dialect: Optional[Union[Dialect, str]]) -> str:
    if isinstance(dialect, Dialect):
        return dialect.value
    return str(dialect) if dialect else "unknown"
