#!/usr/bin/env python3
"""
Basic Usage Example for Schema Graph

This example demonstrates:
1. Parsing a table-definition (DBML style) document
2. Inspecting tables, columns and relationships
3. Reading parse diagnostics
4. Validating and saving the resulting schema
"""
import sys
import os

# Add src to path for local development
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from schema_graph import (
    SchemaParser,
    SchemaValidator,
    setup_logging,
)


SCHEMA_TEXT = """
Table users {
  id integer [pk, increment]
  username varchar(50) [not null, unique]
  created_at timestamp
}

Table posts {
  id integer [primary key]
  title varchar(200) [not null]
  user_id integer [ref: > users.id]
}

Table tags {
  id integer [pk]
  name varchar [unique]
}

Table post_tags {
  post_id integer [pk]
  tag_id integer [pk]
}

Ref: post_tags.post_id > posts.id
Ref: post_tags.tag_id > tags.id
Ref: comments.post_id > posts.id
"""


def main():
    # Setup logging
    setup_logging(level="INFO")

    print("=" * 60)
    print("Schema Graph - Basic Usage Example")
    print("=" * 60)

    print("\n1. Parsing table definitions...")
    parser = SchemaParser()
    result = parser.parse(SCHEMA_TEXT, dialect="table-definition")
    if not result.success:
        for error in result.errors:
            print(f"   Error: {error.message}")
        return

    schema = result.schema
    print(f"   Parsed {len(schema.tables)} tables, {schema.column_count()} columns")

    print("\n2. Tables:")
    for table in schema.tables:
        print(f"   {table.name} at ({table.position.x:.0f}, {table.position.y:.0f})")
        for column in table.columns:
            constraints = ", ".join(c.type.value for c in column.constraints)
            print(f"     - {column.name} {column.type} {constraints}".rstrip())

    print("\n3. Relationships:")
    for rel in schema.relationships:
        from_table = schema.get_table(rel.from_table_id)
        to_table = schema.get_table(rel.to_table_id)
        print(
            f"   {rel.id}: {from_table.name}.{from_table.get_column(rel.from_column_id).name} -> "
            f"{to_table.name}.{to_table.get_column(rel.to_column_id).name} ({rel.type.value})"
        )
    for junction in result.junction_tables:
        print(f"   {junction.table_name} collapsed into {junction.relationship_id}")

    print("\n4. Diagnostics:")
    for diagnostic in result.diagnostics:
        print(f"   {diagnostic.severity}: {diagnostic}")

    print("\n5. Validating...")
    validation = SchemaValidator().validate(schema)
    print(f"   Valid: {validation.is_valid}")
    for issue in validation.issues:
        print(f"   {issue.path}: {issue.message}")

    print("\n" + "=" * 60)
    print("Example completed!")
    print("=" * 60)
    print(schema.to_yaml())


if __name__ == "__main__":
    main()
