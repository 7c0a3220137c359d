"""
Error Handling Module for Schema Graph
Defines custom exceptions raised by the parser and the schema model
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(str, Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification"""
    PARSE = "parse"
    REFERENCE = "reference"
    INTEGRITY = "integrity"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Additional context for errors"""
    parse_id: Optional[str] = None
    dialect: Optional[str] = None
    line_number: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parse_id": self.parse_id,
            "dialect": self.dialect,
            "line_number": self.line_number,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class SchemaGraphError(Exception):
    """Base exception for Schema Graph"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        suggestions: Optional[List[str]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.suggestions = suggestions or []
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.message}"


class StructuralParseError(SchemaGraphError):
    """Input could not be tokenized at all; the whole parse fails"""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        context = context or ErrorContext()
        if line_number is not None:
            context.line_number = line_number

        super().__init__(
            message=message,
            category=ErrorCategory.PARSE,
            severity=ErrorSeverity.HIGH,
            context=context,
            suggestions=[
                "Make sure the input is UTF-8 text",
                "Check that the selected dialect matches the input",
            ],
            original_error=original_error
        )
        self.line_number = line_number


class UnsupportedDialectError(StructuralParseError):
    """Dialect tag is unknown or could not be detected"""

    def __init__(
        self,
        dialect: Optional[str],
        context: Optional[ErrorContext] = None
    ):
        if dialect is None:
            message = "Could not detect the schema dialect of the input"
        else:
            message = f"Unsupported dialect: {dialect!r}"
        super().__init__(message=message, context=context)
        self.suggestions = [
            "Use one of: 'table-definition', 'ddl'",
            "Pass the dialect explicitly when detection fails",
        ]
        self.dialect = dialect


class DuplicateIdentifierError(SchemaGraphError):
    """An entity with the same identifier already exists"""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        context: Optional[ErrorContext] = None
    ):
        super().__init__(
            message=f"{entity_type.capitalize()} with id {entity_id} already exists",
            category=ErrorCategory.INTEGRITY,
            severity=ErrorSeverity.HIGH,
            context=context,
            suggestions=[f"Generate a fresh id for the {entity_type}"],
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class SchemaIntegrityError(SchemaGraphError):
    """A mutation would leave the schema graph inconsistent"""

    def __init__(
        self,
        message: str,
        table_id: Optional[str] = None,
        column_id: Optional[str] = None,
        context: Optional[ErrorContext] = None
    ):
        suggestions = ["Verify the referenced ids exist in the schema"]
        if table_id:
            suggestions.append(f"Check table '{table_id}'")
        if column_id:
            suggestions.append(f"Check column '{column_id}'")

        super().__init__(
            message=message,
            category=ErrorCategory.INTEGRITY,
            severity=ErrorSeverity.HIGH,
            context=context,
            suggestions=suggestions,
        )
        self.table_id = table_id
        self.column_id = column_id


class ConfigurationError(SchemaGraphError):
    """Configuration errors"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        suggestions = ["Review configuration settings"]
        if config_key:
            suggestions.append(f"Check configuration for key: {config_key}")

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.HIGH,
            context=context,
            suggestions=suggestions,
            original_error=original_error
        )
        self.config_key = config_key
