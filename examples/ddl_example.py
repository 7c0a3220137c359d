#!/usr/bin/env python3
"""
SQL DDL Example for Schema Graph

Parses CREATE TABLE statements with inline REFERENCES and standalone
FOREIGN KEY clauses, lets the dialect be detected, and writes the graph
to a JSON file.
"""
import sys
import os

# Add src to path for local development
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from schema_graph import (
    SystemConfig,
    parse_schema,
    setup_logging,
    validate_schema,
)


DDL = """
CREATE TABLE Student (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL
);

CREATE TABLE Course (
    id INTEGER PRIMARY KEY,
    title VARCHAR(100) NOT NULL
);

CREATE TABLE Enrollment (
    student_id INTEGER PRIMARY KEY REFERENCES Student(id),
    course_id INTEGER PRIMARY KEY,
    FOREIGN KEY (course_id) REFERENCES Course(id)
);

CREATE INDEX idx_course ON Enrollment(course_id);
"""


def main():
    config = SystemConfig.from_env()
    setup_logging(level="DEBUG" if config.debug_mode else "INFO", json_format=config.json_logs)

    print("=" * 60)
    print("Schema Graph - SQL DDL Example")
    print("=" * 60)

    # No dialect given: detected from the CREATE TABLE statements
    result = parse_schema(DDL, config=config)
    print(f"\nDetected dialect: {result.dialect}")

    schema = result.schema
    print(f"Tables: {', '.join(t.name for t in schema.tables)}")
    for rel in schema.relationships:
        print(f"Relationship {rel.id}: {rel.type.value}")

    print("\nSkipped lines:")
    for diagnostic in result.diagnostics:
        print(f"  [{diagnostic.kind.value}] {diagnostic}")

    validation = validate_schema(schema, config)
    print(f"\nValid: {validation.is_valid}")

    output = os.path.join(os.path.dirname(__file__), "university.json")
    schema.save(output)
    print(f"Saved to {output}")


if __name__ == "__main__":
    main()
