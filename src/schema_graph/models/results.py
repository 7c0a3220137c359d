"""
Result Types for Parsing and Validation
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .schema import Schema


class DiagnosticKind(str, Enum):
    """Non-fatal conditions recorded while parsing"""
    DROPPED_LINE = "dropped_line"
    UNRESOLVED_TABLE = "unresolved_table"
    UNRESOLVED_COLUMN = "unresolved_column"
    SELF_REFERENCE = "self_reference"
    DUPLICATE_TABLE = "duplicate_table"
    DUPLICATE_REFERENCE = "duplicate_reference"
    UNCLOSED_TABLE = "unclosed_table"
    JUNCTION_ABANDONED = "junction_abandoned"


@dataclass
class Diagnostic:
    """A non-fatal parse finding"""
    kind: DiagnosticKind
    message: str
    line_number: Optional[int] = None
    severity: str = "warning"  # "warning", "info"
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "line_number": self.line_number,
            "severity": self.severity,
            "details": self.details,
        }

    def __str__(self) -> str:
        location = f"line {self.line_number}: " if self.line_number else ""
        return f"{location}{self.message}"


@dataclass
class ParseError:
    """The error that aborted a parse"""
    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "line": self.line, "column": self.column}


@dataclass
class JunctionTable:
    """A junction table collapsed into one many-to-many relationship"""
    table_id: str
    table_name: str
    relationship_id: str
    suppressed_relationship_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_id": self.table_id,
            "table_name": self.table_name,
            "relationship_id": self.relationship_id,
            "suppressed_relationship_ids": self.suppressed_relationship_ids,
        }


@dataclass
class ParseResult:
    """Outcome of one parse: a schema plus diagnostics, or a single error"""
    success: bool
    schema: Optional[Schema] = None
    dialect: Optional[str] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    junction_tables: List[JunctionTable] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str, line: Optional[int] = None, dialect: Optional[str] = None) -> "ParseResult":
        return cls(success=False, dialect=dialect, errors=[ParseError(message=message, line=line)])

    def diagnostics_of(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    @property
    def has_warnings(self) -> bool:
        return any(d.severity == "warning" for d in self.diagnostics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "dialect": self.dialect,
            "schema": self.schema.to_dict() if self.schema else None,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "errors": [e.to_dict() for e in self.errors],
            "junction_tables": [j.to_dict() for j in self.junction_tables],
        }


@dataclass
class ValidationIssue:
    """One violated schema invariant"""
    field: str
    message: str
    entity_type: str = "schema"  # "schema", "table", "column", "relationship"
    entity_id: Optional[str] = None

    @property
    def path(self) -> str:
        """Dotted location, e.g. 'table.table-1.columns'"""
        if self.entity_type == "schema" or not self.entity_id:
            return self.field
        return f"{self.entity_type}.{self.entity_id}.{self.field}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "path": self.path,
        }


@dataclass
class ValidationResult:
    """Result of schema validation"""
    is_valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def fields(self) -> List[str]:
        return [issue.field for issue in self.issues]

    def issues_for(self, entity_id: str) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.entity_id == entity_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "issues": [issue.to_dict() for issue in self.issues],
        }
