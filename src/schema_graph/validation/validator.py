"""
Schema Validator

Checks a finished Schema against the structural rules of the graph and
reports every violation it finds. Validation never mutates the schema and
never stops at the first problem.
"""
from __future__ import annotations

import time
from collections import Counter
from typing import List, Optional

from ..config import SystemConfig, get_config
from ..models.results import ValidationIssue, ValidationResult
from ..models.schema import Column, Relationship, RelationshipType, Schema, Table
from ..utils import ParserMetrics, get_logger

logger = get_logger(__name__)

_RELATIONSHIP_TYPES = {t.value for t in RelationshipType}


class SchemaValidator:
    """Collects every violated invariant of a schema"""

    def __init__(self, config: Optional[SystemConfig] = None):
        self.config = config or get_config()
        self.rules = self.config.validation

    def validate(self, schema: Schema) -> ValidationResult:
        start_time = time.perf_counter()
        issues: List[ValidationIssue] = []

        self._check_schema(schema, issues)
        for table in schema.tables:
            self._check_table(table, issues)
        for relationship in schema.relationships:
            self._check_relationship(schema, relationship, issues)

        if issues:
            logger.info(f"Schema {schema.id} failed validation with {len(issues)} issues")
        else:
            logger.debug(f"Schema {schema.id} is valid")

        if self.config.metrics.enabled:
            ParserMetrics.record_validation(time.perf_counter() - start_time, len(issues))

        return ValidationResult(is_valid=not issues, issues=issues)

    def _check_schema(self, schema: Schema, issues: List[ValidationIssue]) -> None:
        if not schema.id:
            issues.append(ValidationIssue(field="id", message="Schema ID is required"))
        if not schema.metadata.created_at:
            issues.append(ValidationIssue(field="metadata.createdAt", message="Created date is required"))
        if not schema.metadata.updated_at:
            issues.append(ValidationIssue(field="metadata.updatedAt", message="Updated date is required"))

        tables = schema.tables
        if self.rules.require_tables and not tables:
            issues.append(ValidationIssue(field="tables", message="Schema must have at least one table"))

        name_counts = Counter(t.name.lower() for t in tables if t.name)
        for table in tables:
            if table.name and name_counts[table.name.lower()] > 1:
                issues.append(ValidationIssue(
                    field="name",
                    message=f"Duplicate table name: {table.name}",
                    entity_type="table",
                    entity_id=table.id,
                ))

    def _check_table(self, table: Table, issues: List[ValidationIssue]) -> None:
        def report(field: str, message: str) -> None:
            issues.append(ValidationIssue(field=field, message=message, entity_type="table", entity_id=table.id))

        if not table.id:
            report("id", "Table ID is required")

        if not table.name or not table.name.strip():
            report("name", "Table name is required")
        elif len(table.name) > self.rules.max_table_name_length:
            report("name", f"Table name must be at most {self.rules.max_table_name_length} characters")

        if table.position.x < 0 or table.position.y < 0:
            report("position", "Table position must be non-negative")

        if not table.columns:
            report("columns", "Table must have at least one column")

        for column in table.columns:
            self._check_column(column, issues)

        name_counts = Counter(c.name.lower() for c in table.columns if c.name)
        duplicates = sorted(name for name, count in name_counts.items() if count > 1)
        if duplicates:
            report("columns", f"Duplicate column names: {', '.join(duplicates)}")

    @staticmethod
    def _check_column(column: Column, issues: List[ValidationIssue]) -> None:
        if not column.name or not column.name.strip():
            issues.append(ValidationIssue(
                field="name", message="Column name is required", entity_type="column", entity_id=column.id
            ))
        if not column.type or not column.type.strip():
            issues.append(ValidationIssue(
                field="type", message="Column type is required", entity_type="column", entity_id=column.id
            ))

    @staticmethod
    def _check_relationship(schema: Schema, relationship: Relationship, issues: List[ValidationIssue]) -> None:
        def report(field: str, message: str) -> None:
            issues.append(ValidationIssue(
                field=field, message=message, entity_type="relationship", entity_id=relationship.id
            ))

        if not relationship.id:
            report("id", "Relationship ID is required")

        for side, table_id, column_id in (
            ("from", relationship.from_table_id, relationship.from_column_id),
            ("to", relationship.to_table_id, relationship.to_column_id),
        ):
            table = schema.get_table(table_id)
            if table is None:
                report(f"{side}TableId", f"{side.capitalize()} table {table_id} does not exist")
            elif table.get_column(column_id) is None:
                report(
                    f"{side}ColumnId",
                    f"{side.capitalize()} column {column_id} does not exist in table {table_id}",
                )

        rel_type = relationship.type.value if isinstance(relationship.type, RelationshipType) else relationship.type
        if rel_type not in _RELATIONSHIP_TYPES:
            report("type", f"Invalid relationship type: {rel_type}")

        if relationship.from_table_id == relationship.to_table_id:
            report("toTableId", "Relationship cannot reference the same table")


def validate_schema(schema: Schema, config: Optional[SystemConfig] = None) -> ValidationResult:
    """Validate a schema with a one-off SchemaValidator"""
    return SchemaValidator(config).validate(schema)
