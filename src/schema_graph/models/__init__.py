"""
Models Package for Schema Graph
"""
from .schema import (
    ConstraintType,
    RelationshipType,
    Constraint,
    Position,
    Column,
    Table,
    Relationship,
    SchemaMetadata,
    Schema,
)
from .results import (
    DiagnosticKind,
    Diagnostic,
    ParseError,
    JunctionTable,
    ParseResult,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "ConstraintType",
    "RelationshipType",
    "Constraint",
    "Position",
    "Column",
    "Table",
    "Relationship",
    "SchemaMetadata",
    "Schema",
    "DiagnosticKind",
    "Diagnostic",
    "ParseError",
    "JunctionTable",
    "ParseResult",
    "ValidationIssue",
    "ValidationResult",
]
