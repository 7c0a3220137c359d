"""
Parsing Package

Turns table-definition (DBML style) or SQL DDL text into a Schema graph.
"""
from .lines import (
    LogicalLine,
    InlineReference,
    TableOpen,
    TableClose,
    ColumnLine,
    RelationshipLine,
    ForeignKeyLine,
    Unrecognized,
    LineShape,
    LineScanner,
)
from .table_definition import TableDefinitionScanner
from .ddl import DDLScanner, create_table_statements
from .scanner import get_scanner, scan
from .builder import RawReference, DraftSchema, EntityBuilder
from .resolver import RelationshipIds, Resolution, ReferenceResolver
from .cardinality import InferenceResult, CardinalityInferenceEngine
from .parser import SchemaParser, detect_dialect, parse_schema

__all__ = [
    # Scanning
    "LogicalLine",
    "InlineReference",
    "TableOpen",
    "TableClose",
    "ColumnLine",
    "RelationshipLine",
    "ForeignKeyLine",
    "Unrecognized",
    "LineShape",
    "LineScanner",
    "TableDefinitionScanner",
    "DDLScanner",
    "create_table_statements",
    "get_scanner",
    "scan",
    # Building and resolution
    "RawReference",
    "DraftSchema",
    "EntityBuilder",
    "RelationshipIds",
    "Resolution",
    "ReferenceResolver",
    "InferenceResult",
    "CardinalityInferenceEngine",
    # Facade
    "SchemaParser",
    "detect_dialect",
    "parse_schema",
]
