"""
Unit Tests for the Entity Builder
"""
import pytest
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from schema_graph.config import LayoutConfig
from schema_graph.models import ConstraintType, DiagnosticKind
from schema_graph.parsing import (
    ColumnLine,
    DDLScanner,
    EntityBuilder,
    ForeignKeyLine,
    InlineReference,
    RawReference,
    RelationshipLine,
    TableClose,
    TableDefinitionScanner,
    TableOpen,
    Unrecognized,
)


def build(text, scanner=None, layout=None):
    scanner = scanner or TableDefinitionScanner()
    return EntityBuilder(layout).build(scanner.scan(text))


def kinds(draft):
    return [d.kind for d in draft.diagnostics]


class TestEntityBuilderTables:
    """Tests for table and column accumulation"""

    def test_ids_follow_declaration_order(self):
        """table-N and col-N count per parse, in order of appearance"""
        draft = build(
            "Table users {\n  id integer [pk]\n  email varchar\n}\n"
            "Table posts {\n  id integer [pk]\n}\n"
        )

        assert [t.id for t in draft.tables] == ["table-1", "table-2"]
        assert [c.id for c in draft.tables[0].columns] == ["col-1", "col-2"]
        assert [c.id for c in draft.tables[1].columns] == ["col-3"]

    def test_layout_positions(self):
        """Tables are laid out left to right"""
        draft = build("Table a { id int }\nTable b { id int }\nTable c { id int }")

        assert [(t.position.x, t.position.y) for t in draft.tables] == [
            (100.0, 100.0), (400.0, 100.0), (700.0, 100.0),
        ]

    def test_custom_layout(self):
        """Layout comes from configuration"""
        layout = LayoutConfig(origin_x=0, origin_y=50, spacing_x=250)
        draft = build("Table a { id int }\nTable b { id int }", layout=layout)

        assert [(t.position.x, t.position.y) for t in draft.tables] == [(0.0, 50.0), (250.0, 50.0)]

    def test_column_constraints(self):
        """Recognized constraints become Constraint objects"""
        draft = build("Table users {\n  id integer [primary key, increment]\n}")
        column = draft.tables[0].columns[0]

        assert [c.type for c in column.constraints] == [
            ConstraintType.PRIMARY_KEY,
            ConstraintType.AUTO_INCREMENT,
        ]
        assert all(c.value is None for c in column.constraints)

    def test_unclosed_table_finalized_at_end(self):
        """A table still open at end of input is kept"""
        draft = build("Table users {\n  id integer\n")

        assert [t.name for t in draft.tables] == ["users"]
        assert kinds(draft) == [DiagnosticKind.UNCLOSED_TABLE]
        assert draft.diagnostics[0].severity == "info"

    def test_unclosed_table_finalized_by_next_open(self):
        """Opening a table closes the previous one"""
        draft = build("Table a {\n  id int\nTable b {\n  id int\n}")

        assert [t.name for t in draft.tables] == ["a", "b"]
        assert [len(t.columns) for t in draft.tables] == [1, 1]
        assert kinds(draft) == [DiagnosticKind.UNCLOSED_TABLE]

    def test_duplicate_table_first_wins(self):
        """A repeated table name is ignored along with its columns"""
        draft = build(
            "Table users {\n  id integer\n}\n"
            "Table Users {\n  name text\n  email text\n}\n"
            "Table posts {\n  id integer\n}\n"
        )

        assert [t.name for t in draft.tables] == ["users", "posts"]
        assert [t.id for t in draft.tables] == ["table-1", "table-2"]
        assert [c.name for c in draft.tables[0].columns] == ["id"]
        assert draft.tables[1].columns[0].id == "col-2"

        duplicates = [d for d in draft.diagnostics if d.kind == DiagnosticKind.DUPLICATE_TABLE]
        assert len(duplicates) == 1
        assert duplicates[0].line_number == 4
        assert duplicates[0].severity == "warning"

    def test_unrecognized_lines_reported(self):
        """Dropped lines become info diagnostics with their line number"""
        draft = build("Table users {\n  id integer\n  ???\n}")

        dropped = [d for d in draft.diagnostics if d.kind == DiagnosticKind.DROPPED_LINE]
        assert len(dropped) == 1
        assert dropped[0].line_number == 3
        assert dropped[0].severity == "info"
        assert dropped[0].details["reason"] == "not a column definition"

    def test_stray_close_reported(self):
        """A close with no open table is dropped"""
        builder = EntityBuilder()
        draft = builder.build([TableClose(line_number=1, text="}")])

        assert draft.tables == []
        assert kinds(draft) == [DiagnosticKind.DROPPED_LINE]

    def test_column_without_table_reported(self):
        """Column shapes need an open table"""
        draft = EntityBuilder().build([ColumnLine(line_number=1, text="id int", name="id", type="int")])

        assert draft.tables == []
        assert kinds(draft) == [DiagnosticKind.DROPPED_LINE]

    def test_builder_is_single_use(self):
        """A builder cannot be reused for a second parse"""
        builder = EntityBuilder()
        builder.build([])

        with pytest.raises(RuntimeError):
            builder.build([])


class TestEntityBuilderReferences:
    """Tests for reference descriptor queuing"""

    def test_ref_direction_greater_than(self):
        """A.a > B.b means A.a references B.b"""
        draft = EntityBuilder().build([RelationshipLine(
            line_number=1, text="", left_table="posts", left_column="user_id",
            operator=">", right_table="users", right_column="id",
        )])

        assert draft.references == [RawReference("posts", "user_id", "users", "id", 1, "relationship")]

    def test_ref_direction_less_than(self):
        """A.a < B.b means B.b references A.a"""
        draft = EntityBuilder().build([RelationshipLine(
            line_number=1, text="", left_table="users", left_column="id",
            operator="<", right_table="posts", right_column="user_id",
        )])

        reference = draft.references[0]
        assert (reference.from_table, reference.from_column) == ("posts", "user_id")
        assert (reference.to_table, reference.to_column) == ("users", "id")

    def test_forward_reference_is_queued_unresolved(self):
        """References are kept by name; nothing is looked up yet"""
        draft = build("Ref: posts.user_id > users.id\nTable users { id int }")

        assert len(draft.references) == 1
        assert draft.diagnostics == []

    def test_inline_reference(self):
        """Inline refs come from the column's own table"""
        draft = EntityBuilder().build([
            TableOpen(line_number=1, text="", name="posts"),
            ColumnLine(
                line_number=2, text="", name="user_id", type="int",
                reference=InlineReference(operator=">", table="users", column="id"),
            ),
            ColumnLine(
                line_number=3, text="", name="id", type="int",
                reference=InlineReference(operator="<", table="comments", column="post_id"),
            ),
            TableClose(line_number=4, text="}"),
        ])

        assert [(r.from_table, r.from_column, r.to_table, r.to_column) for r in draft.references] == [
            ("posts", "user_id", "users", "id"),
            ("comments", "post_id", "posts", "id"),
        ]
        assert {r.origin for r in draft.references} == {"inline"}

    def test_foreign_key_uses_open_table(self):
        """FOREIGN KEY lines are attributed to the open table"""
        draft = EntityBuilder().build([
            TableOpen(line_number=1, text="", name="posts"),
            ColumnLine(line_number=2, text="", name="user_id", type="int"),
            ForeignKeyLine(line_number=3, text="", column="user_id", ref_table="users", ref_column="id"),
            TableClose(line_number=4, text=");"),
        ])

        assert draft.references == [RawReference("posts", "user_id", "users", "id", 3, "foreign_key")]

    def test_duplicate_reference_counted_once(self):
        """Inline REFERENCES plus a FOREIGN KEY on the same column yield one reference"""
        text = (
            "CREATE TABLE posts (\n"
            "  user_id INTEGER REFERENCES users(id),\n"
            "  FOREIGN KEY (user_id) REFERENCES users(id)\n"
            ");"
        )
        draft = build(text, scanner=DDLScanner())

        assert len(draft.references) == 1
        assert draft.references[0].origin == "inline"
        assert kinds(draft) == [DiagnosticKind.DUPLICATE_REFERENCE]

    def test_duplicate_table_body_adds_no_references(self):
        """Foreign keys inside an ignored duplicate table are ignored too"""
        text = (
            "CREATE TABLE posts (id INT PRIMARY KEY);\n"
            "CREATE TABLE posts (\n"
            "  user_id INT,\n"
            "  FOREIGN KEY (user_id) REFERENCES users(id)\n"
            ");"
        )
        draft = build(text, scanner=DDLScanner())

        assert draft.references == []
        assert kinds(draft) == [DiagnosticKind.DUPLICATE_TABLE]

    def test_unrecognized_shape_does_not_stop_build(self):
        """Builds continue after dropped lines"""
        draft = EntityBuilder().build([
            Unrecognized(line_number=1, text="Project x {", reason="unsupported block"),
            TableOpen(line_number=2, text="", name="users"),
            TableClose(line_number=3, text="}"),
        ])

        assert [t.name for t in draft.tables] == ["users"]
        assert kinds(draft) == [DiagnosticKind.DROPPED_LINE]
