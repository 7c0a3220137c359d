"""
Schema Graph Data Model

Tables, columns, constraints and relationships, plus the Schema aggregate
root that owns them and keeps relationships from ever dangling.
"""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import yaml

from ..utils.errors import DuplicateIdentifierError, SchemaIntegrityError


class ConstraintType(str, Enum):
    """Column constraint tags"""
    PRIMARY_KEY = "PRIMARY_KEY"
    FOREIGN_KEY = "FOREIGN_KEY"
    UNIQUE = "UNIQUE"
    NOT_NULL = "NOT_NULL"
    AUTO_INCREMENT = "AUTO_INCREMENT"


class RelationshipType(str, Enum):
    """Relationship cardinality tags"""
    ONE_TO_ONE = "ONE_TO_ONE"
    ONE_TO_MANY = "ONE_TO_MANY"
    MANY_TO_MANY = "MANY_TO_MANY"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Constraint:
    """A constraint on a column; FOREIGN_KEY may carry 'Table.column' for display"""
    type: ConstraintType
    value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.value is not None:
            data["value"] = self.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Constraint":
        return cls(type=ConstraintType(data["type"]), value=data.get("value"))


@dataclass
class Position:
    """Canvas position of a table"""
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class Column:
    """A table column; the id never changes, even on rename"""
    id: str
    name: str
    type: str
    constraints: List[Constraint] = field(default_factory=list)

    def has_constraint(self, constraint_type: ConstraintType) -> bool:
        return any(c.type == constraint_type for c in self.constraints)

    def add_constraint(self, constraint: Constraint) -> bool:
        """Add a constraint unless one of the same type is present"""
        if self.has_constraint(constraint.type):
            return False
        self.constraints.append(constraint)
        return True

    @property
    def is_primary_key(self) -> bool:
        return self.has_constraint(ConstraintType.PRIMARY_KEY)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "constraints": [c.to_dict() for c in self.constraints],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            type=data.get("type", ""),
            constraints=[Constraint.from_dict(c) for c in data.get("constraints", [])],
        )


@dataclass
class Table:
    """A table with an ordered list of columns"""
    id: str
    name: str
    position: Position = field(default_factory=Position)
    columns: List[Column] = field(default_factory=list)

    def rename(self, name: str) -> None:
        if not name or not name.strip():
            raise ValueError("Table name cannot be empty")
        self.name = name

    def move_to(self, x: float, y: float) -> None:
        self.position = Position(x=x, y=y)

    def add_column(self, column: Column) -> None:
        if self.get_column(column.id) is not None:
            raise DuplicateIdentifierError("column", column.id)
        self.columns.append(column)

    def get_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def find_column(self, name: str) -> Optional[Column]:
        """Find a column by exact name (first match wins)"""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def primary_key_column(self) -> Optional[Column]:
        """First column carrying PRIMARY_KEY"""
        for column in self.columns:
            if column.is_primary_key:
                return column
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position.to_dict(),
            "columns": [c.to_dict() for c in self.columns],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Table":
        position = data.get("position") or {}
        table = cls(
            id=data["id"],
            name=data.get("name", ""),
            position=Position(x=position.get("x", 0.0), y=position.get("y", 0.0)),
        )
        for column_data in data.get("columns", []):
            table.add_column(Column.from_dict(column_data))
        return table


@dataclass
class Relationship:
    """A directed edge (from_table.from_column) -> (to_table.to_column)"""
    id: str
    from_table_id: str
    from_column_id: str
    to_table_id: str
    to_column_id: str
    type: RelationshipType = RelationshipType.ONE_TO_MANY
    optional: bool = False

    def touches(self, table_id: str) -> bool:
        return self.from_table_id == table_id or self.to_table_id == table_id

    def uses_column(self, column_id: str) -> bool:
        return self.from_column_id == column_id or self.to_column_id == column_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fromTableId": self.from_table_id,
            "fromColumnId": self.from_column_id,
            "toTableId": self.to_table_id,
            "toColumnId": self.to_column_id,
            "type": self.type.value if isinstance(self.type, RelationshipType) else self.type,
            "optional": self.optional,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Relationship":
        raw_type = data.get("type", RelationshipType.ONE_TO_MANY.value)
        try:
            rel_type: Any = RelationshipType(raw_type)
        except ValueError:
            # Kept verbatim so the validator can report it
            rel_type = raw_type
        return cls(
            id=data["id"],
            from_table_id=data["fromTableId"],
            from_column_id=data["fromColumnId"],
            to_table_id=data["toTableId"],
            to_column_id=data["toColumnId"],
            type=rel_type,
            optional=bool(data.get("optional", False)),
        )


@dataclass
class SchemaMetadata:
    """Creation and last-modification timestamps (ISO-8601)"""
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    def touch(self) -> None:
        self.updated_at = _now()

    def to_dict(self) -> Dict[str, str]:
        return {"createdAt": self.created_at, "updatedAt": self.updated_at}


class Schema:
    """
    Aggregate root of the schema graph

    Owns tables (in declaration order) and relationships. Every mutation
    keeps the graph closed: a relationship can only be added when both
    endpoint tables and columns exist, and removing a table or column
    removes the relationships that use it in the same call.
    """

    def __init__(self, schema_id: str, metadata: Optional[SchemaMetadata] = None):
        self.id = schema_id
        self.metadata = metadata or SchemaMetadata()
        self._tables: Dict[str, Table] = {}
        self._relationships: Dict[str, Relationship] = {}

    @classmethod
    def create(cls, schema_id: Optional[str] = None) -> "Schema":
        """Create an empty schema with fresh metadata"""
        return cls(schema_id or f"schema-{uuid.uuid4().hex[:12]}")

    # Tables

    @property
    def tables(self) -> List[Table]:
        return list(self._tables.values())

    def add_table(self, table: Table) -> None:
        if table.id in self._tables:
            raise DuplicateIdentifierError("table", table.id)
        # Column ids are unique across the whole schema, not just per table
        existing = {column.id for other in self._tables.values() for column in other.columns}
        for column in table.columns:
            if column.id in existing:
                raise DuplicateIdentifierError("column", column.id)
        self._tables[table.id] = table
        self.metadata.touch()

    def get_table(self, table_id: str) -> Optional[Table]:
        return self._tables.get(table_id)

    def find_table_by_name(self, name: str) -> Optional[Table]:
        """Case-insensitive name lookup"""
        name_lower = name.lower()
        for table in self._tables.values():
            if table.name.lower() == name_lower:
                return table
        return None

    def remove_table(self, table_id: str) -> Table:
        if table_id not in self._tables:
            raise SchemaIntegrityError(f"Table with id {table_id} not found", table_id=table_id)

        for rel in self.relationships_for_table(table_id):
            del self._relationships[rel.id]
        table = self._tables.pop(table_id)
        self.metadata.touch()
        return table

    def remove_column(self, table_id: str, column_id: str) -> Column:
        table = self._tables.get(table_id)
        if table is None:
            raise SchemaIntegrityError(f"Table with id {table_id} not found", table_id=table_id)
        column = table.get_column(column_id)
        if column is None:
            raise SchemaIntegrityError(
                f"Column with id {column_id} not found in table {table_id}",
                table_id=table_id,
                column_id=column_id,
            )

        stale = [rel.id for rel in self._relationships.values() if rel.uses_column(column_id)]
        for rel_id in stale:
            del self._relationships[rel_id]
        table.columns.remove(column)
        self.metadata.touch()
        return column

    # Relationships

    @property
    def relationships(self) -> List[Relationship]:
        return list(self._relationships.values())

    def add_relationship(self, relationship: Relationship) -> None:
        if relationship.id in self._relationships:
            raise DuplicateIdentifierError("relationship", relationship.id)

        self._require_endpoint(relationship.from_table_id, relationship.from_column_id, "From")
        self._require_endpoint(relationship.to_table_id, relationship.to_column_id, "To")
        if relationship.from_table_id == relationship.to_table_id:
            raise SchemaIntegrityError(
                f"Relationship {relationship.id} cannot reference its own table",
                table_id=relationship.from_table_id,
            )

        self._relationships[relationship.id] = relationship
        self.metadata.touch()

    def _require_endpoint(self, table_id: str, column_id: str, side: str) -> None:
        table = self._tables.get(table_id)
        if table is None:
            raise SchemaIntegrityError(f"{side} table {table_id} not found", table_id=table_id)
        if table.get_column(column_id) is None:
            raise SchemaIntegrityError(
                f"{side} column {column_id} not found in table {table_id}",
                table_id=table_id,
                column_id=column_id,
            )

    def remove_relationship(self, relationship_id: str) -> Relationship:
        if relationship_id not in self._relationships:
            raise SchemaIntegrityError(f"Relationship with id {relationship_id} not found")
        relationship = self._relationships.pop(relationship_id)
        self.metadata.touch()
        return relationship

    def get_relationship(self, relationship_id: str) -> Optional[Relationship]:
        return self._relationships.get(relationship_id)

    def relationships_for_table(self, table_id: str) -> List[Relationship]:
        return [rel for rel in self._relationships.values() if rel.touches(table_id)]

    def relationships_of_type(self, rel_type: RelationshipType) -> List[Relationship]:
        return [rel for rel in self._relationships.values() if rel.type == rel_type]

    def column_count(self) -> int:
        return sum(len(t.columns) for t in self._tables.values())

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tables": [t.to_dict() for t in self._tables.values()],
            "relationships": [r.to_dict() for r in self._relationships.values()],
            "metadata": self.metadata.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON"""
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        """Export as YAML"""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def save(self, path: str) -> None:
        """Save schema to file (JSON or YAML based on extension)"""
        content = self.to_yaml() if path.endswith(('.yaml', '.yml')) else self.to_json()
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)

    @classmethod
    def load(cls, path: str) -> "Schema":
        """Load schema from file"""
        with open(path, 'r', encoding='utf-8') as f:
            if path.endswith(('.yaml', '.yml')):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_json(cls, text: str) -> "Schema":
        return cls.from_dict(json.loads(text))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schema":
        """Rebuild a schema from its stored form, enforcing the same invariants"""
        metadata_data = data.get("metadata") or {}
        metadata = SchemaMetadata(
            created_at=metadata_data.get("createdAt") or _now(),
            updated_at=metadata_data.get("updatedAt") or _now(),
        )
        stored_updated_at = metadata.updated_at
        schema = cls(data.get("id", ""), metadata)

        for table_data in data.get("tables", []):
            schema.add_table(Table.from_dict(table_data))
        for rel_data in data.get("relationships", []):
            schema.add_relationship(Relationship.from_dict(rel_data))

        # Loading is not an edit
        schema.metadata.updated_at = stored_updated_at
        return schema

    @classmethod
    def from_parts(cls, tables: Iterable[Table], relationships: Iterable[Relationship],
                   schema_id: Optional[str] = None) -> "Schema":
        """Assemble a fresh schema from finished tables and relationships"""
        schema = cls.create(schema_id)
        for table in tables:
            schema.add_table(table)
        for relationship in relationships:
            schema.add_relationship(relationship)
        return schema

    def __repr__(self) -> str:
        return (
            f"Schema(id={self.id!r}, tables={len(self._tables)}, "
            f"relationships={len(self._relationships)})"
        )
