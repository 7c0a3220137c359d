"""
Schema Graph
============

Extracts an entity-relationship graph (tables, columns, constraints and
relationships) from schema text, in either of two dialects:

- table-definition (DBML style): `Table users { ... }` plus `Ref:` lines
- SQL DDL: `CREATE TABLE` statements with inline or standalone foreign keys

Features:
- Forward references: a table may be referenced before it is declared
- Junction tables collapse into a single many-to-many relationship
- Structured diagnostics for everything that was skipped or unresolved
- A validator that reports every violated schema invariant at once
- JSON/YAML persistence of the resulting graph

Quick Start:
------------

    from schema_graph import parse_schema, validate_schema

    result = parse_schema('''
        Table users { id integer [primary key] }
        Table posts { id integer [primary key]
                      user_id integer }
        Ref: posts.user_id > users.id
    ''', dialect="table-definition")

    schema = result.schema
    print(schema.to_json())

    for diagnostic in result.diagnostics:
        print(diagnostic)

    validation = validate_schema(schema)
    print(validation.is_valid)
"""

__version__ = "1.0.0"
__author__ = "Schema Graph Team"

# Configuration
from .config import (
    Dialect,
    LogLevel,
    LayoutConfig,
    ParserConfig,
    ValidationConfig,
    MetricsConfig,
    SystemConfig,
    get_config,
    set_config,
    reset_config,
)

# Models
from .models import (
    ConstraintType,
    RelationshipType,
    Constraint,
    Position,
    Column,
    Table,
    Relationship,
    SchemaMetadata,
    Schema,
    DiagnosticKind,
    Diagnostic,
    ParseError,
    JunctionTable,
    ParseResult,
    ValidationIssue,
    ValidationResult,
)

# Parsing
from .parsing import (
    SchemaParser,
    detect_dialect,
    parse_schema,
)

# Validation
from .validation import (
    SchemaValidator,
    validate_schema,
)

# Utilities
from .utils import (
    setup_logging,
    get_logger,
    SchemaGraphError,
    StructuralParseError,
    UnsupportedDialectError,
    DuplicateIdentifierError,
    SchemaIntegrityError,
    ConfigurationError,
    get_metrics_collector,
    ParserMetrics,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "Dialect",
    "LogLevel",
    "LayoutConfig",
    "ParserConfig",
    "ValidationConfig",
    "MetricsConfig",
    "SystemConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Models
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
    # Parsing
    "SchemaParser",
    "detect_dialect",
    "parse_schema",
    # Validation
    "SchemaValidator",
    "validate_schema",
    # Utilities
    "setup_logging",
    "get_logger",
    "SchemaGraphError",
    "StructuralParseError",
    "UnsupportedDialectError",
    "DuplicateIdentifierError",
    "SchemaIntegrityError",
    "ConfigurationError",
    "get_metrics_collector",
    "ParserMetrics",
]
