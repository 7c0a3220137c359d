"""
Integration Tests for the Parse Pipeline

Runs whole documents through SchemaParser and SchemaValidator.
"""
import pytest
import sys
import os
from concurrent.futures import ThreadPoolExecutor

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from schema_graph import SchemaParser, SchemaValidator, parse_schema
from schema_graph.config import Dialect, MetricsConfig, ParserConfig, SystemConfig
from schema_graph.models import (
    Constraint,
    ConstraintType,
    DiagnosticKind,
    RelationshipType,
    Schema,
)
from schema_graph.parsing import detect_dialect
from schema_graph.utils import get_metrics_collector


FIXTURES = os.path.join(os.path.dirname(__file__), '..', 'fixtures')

END_TO_END = (
    "Table users { id integer [primary key] }\n"
    "Table posts { id integer [primary key]\n"
    " user_id integer [not null] }\n"
    "Ref: posts.user_id > users.id"
)

STUDENT_COURSE = (
    "Table Student {\n  id int [pk]\n  name varchar\n}\n"
    "Table Course {\n  id int [pk]\n  title varchar\n}\n"
    "Table Enrollment {\n  student_id int [pk]\n  course_id int [pk]\n}\n"
    "Ref: Enrollment.student_id > Student.id\n"
    "Ref: Enrollment.course_id > Course.id\n"
)


def fixture_text(name):
    with open(os.path.join(FIXTURES, name), encoding='utf-8') as f:
        return f.read()


def structure(schema):
    """Names-only view of a schema, comparable across parses"""
    table_names = {t.id: t.name for t in schema.tables}
    column_names = {c.id: c.name for t in schema.tables for c in t.columns}
    tables = [
        (t.name, [(c.name, c.type, [(x.type.value, x.value) for x in c.constraints]) for c in t.columns])
        for t in schema.tables
    ]
    relationships = sorted(
        (
            table_names[r.from_table_id],
            column_names[r.from_column_id],
            table_names[r.to_table_id],
            column_names[r.to_column_id],
            r.type.value,
        )
        for r in schema.relationships
    )
    return tables, relationships


@pytest.fixture
def config():
    return SystemConfig(metrics=MetricsConfig(enabled=False))


@pytest.fixture
def parser(config):
    return SchemaParser(config)


class TestEndToEnd:
    """Tests for the documented two-table example"""

    def test_users_and_posts(self, parser):
        """Two tables, three columns and one posts -> users edge"""
        result = parser.parse(END_TO_END, dialect="table-definition")

        assert result.success
        schema = result.schema
        assert [t.name for t in schema.tables] == ["users", "posts"]
        assert schema.column_count() == 3

        assert len(schema.relationships) == 1
        rel = schema.relationships[0]
        users = schema.find_table_by_name("users")
        posts = schema.find_table_by_name("posts")
        assert rel.type == RelationshipType.ONE_TO_MANY
        assert rel.from_table_id == posts.id
        assert rel.from_column_id == posts.find_column("user_id").id
        assert rel.to_table_id == users.id
        assert rel.to_column_id == users.find_column("id").id

    def test_constraints_and_layout(self, parser):
        """Constraints and initial positions are filled in"""
        schema = parser.parse(END_TO_END, dialect="table-definition").schema
        posts = schema.find_table_by_name("posts")
        user_id = posts.find_column("user_id")

        assert user_id.has_constraint(ConstraintType.NOT_NULL)
        assert Constraint(ConstraintType.FOREIGN_KEY, "users.id") in user_id.constraints
        assert [(t.position.x, t.position.y) for t in schema.tables] == [(100.0, 100.0), (400.0, 100.0)]

    def test_result_is_valid(self, parser, config):
        result = parser.parse(END_TO_END, dialect="table-definition")

        assert SchemaValidator(config).validate(result.schema).is_valid


class TestParseProperties:
    """Tests for properties that hold for every input"""

    @pytest.mark.parametrize("name", ["blog.dbml", "university.sql", "ecommerce.sql"])
    def test_idempotent(self, parser, name):
        """Parsing the same text twice gives the same graph"""
        text = fixture_text(name)
        first = parser.parse(text)
        second = parser.parse(text)

        assert structure(first.schema) == structure(second.schema)
        assert [r.to_dict() for r in first.schema.relationships] == \
            [r.to_dict() for r in second.schema.relationships]
        assert [d.to_dict() for d in first.diagnostics] == [d.to_dict() for d in second.diagnostics]

    def test_forward_references(self, parser):
        """References declared before their tables resolve the same way"""
        tables, refs = STUDENT_COURSE.split("Ref:", 1)
        refs = "Ref:" + refs
        text = END_TO_END.replace("Ref: posts.user_id > users.id", "")

        before = parser.parse("Ref: posts.user_id > users.id\n" + text, dialect="dbml")
        after = parser.parse(text + "\nRef: posts.user_id > users.id", dialect="dbml")
        assert structure(before.schema) == structure(after.schema)

        before = parser.parse(refs + tables, dialect="dbml")
        after = parser.parse(tables + refs, dialect="dbml")
        assert structure(before.schema) == structure(after.schema)

    def test_ref_block(self, parser):
        """A labelled Ref { } block yields the edge and no dropped lines"""
        text = (
            "Table users{id int [pk]} Table posts{id int [pk]; user_id int} "
            "Ref fk_posts { posts.user_id > users.id }"
        )
        result = parser.parse(text, dialect="table-definition")

        assert result.diagnostics_of(DiagnosticKind.DROPPED_LINE) == []
        assert structure(result.schema)[1] == [("posts", "user_id", "users", "id", "ONE_TO_MANY")]

    def test_ref_block_reverse_direction(self, parser):
        """`<` inside a block points from the right side to the left"""
        text = END_TO_END.replace(
            "Ref: posts.user_id > users.id",
            "Ref {\n  users.id < posts.user_id\n}",
        )
        blocked = parser.parse(text, dialect="table-definition")
        inline = parser.parse(END_TO_END, dialect="table-definition")

        assert blocked.diagnostics_of(DiagnosticKind.DROPPED_LINE) == []
        assert structure(blocked.schema) == structure(inline.schema)

    def test_keyword_named_ddl_columns(self, parser):
        """Columns called key or index are columns, not constraints"""
        text = (
            "CREATE TABLE settings (\n"
            "  id INT PRIMARY KEY,\n"
            "  key VARCHAR(255) NOT NULL,\n"
            "  index INT,\n"
            "  value TEXT\n"
            ");"
        )
        schema = parser.parse(text, dialect="ddl").schema

        assert [c.name for c in schema.tables[0].columns] == ["id", "key", "index", "value"]
        assert schema.tables[0].find_column("key").type == "VARCHAR(255)"

    def test_dangling_references_never_surface(self, parser):
        """Unknown names yield diagnostics and no relationships"""
        text = (
            "Table users {\n  id int [pk]\n}\n"
            "Ref: users.id > accounts.id\n"
            "Ref: accounts.owner_id > users.id\n"
            "Ref: users.uuid > users.id\n"
        )
        result = parser.parse(text, dialect="table-definition")

        assert result.success
        assert result.schema.relationships == []
        assert len(result.diagnostics) >= 3
        assert result.has_warnings
        assert [t.name for t in result.schema.tables] == ["users"]
        assert [c.name for c in result.schema.tables[0].columns] == ["id"]

    def test_every_relationship_resolves(self, parser):
        """Endpoints of every produced relationship exist in the schema"""
        for name in ("blog.dbml", "university.sql", "ecommerce.sql"):
            schema = parser.parse(fixture_text(name)).schema
            for rel in schema.relationships:
                assert schema.get_table(rel.from_table_id).get_column(rel.from_column_id)
                assert schema.get_table(rel.to_table_id).get_column(rel.to_column_id)
                assert rel.from_table_id != rel.to_table_id


class TestJunctionCollapse:
    """Tests for many-to-many detection through the facade"""

    def test_collapse_in_both_dialects(self, parser):
        """Student/Course/Enrollment gives one MANY_TO_MANY edge in either dialect"""
        for text, dialect in ((STUDENT_COURSE, "table-definition"), (fixture_text("university.sql"), "ddl")):
            result = parser.parse(text, dialect=dialect)
            schema = result.schema
            enrollment = schema.find_table_by_name("Enrollment")

            assert schema.relationships_for_table(enrollment.id) == []
            assert [r.type for r in schema.relationships] == [RelationshipType.MANY_TO_MANY]
            _, relationships = structure(schema)
            assert relationships == [("Student", "id", "Course", "id", "MANY_TO_MANY")]
            assert [j.table_name for j in result.junction_tables] == ["Enrollment"]

    def test_junction_table_stays_in_schema(self, parser):
        """Collapsing removes edges, never the table"""
        schema = parser.parse(fixture_text("university.sql")).schema

        assert [t.name for t in schema.tables] == ["Student", "Course", "Enrollment"]
        assert [c.name for c in schema.find_table_by_name("Enrollment").columns] == \
            ["student_id", "course_id", "enrolled_on"]

    def test_non_junction_keeps_edges(self, parser):
        """A foreign key outside the primary key prevents the collapse"""
        text = STUDENT_COURSE.replace("course_id int [pk]", "course_id int")
        result = parser.parse(text, dialect="table-definition")

        assert [r.type for r in result.schema.relationships] == [RelationshipType.ONE_TO_MANY] * 2
        assert result.junction_tables == []

    def test_inference_can_be_disabled(self):
        """With infer_cardinality off, junction edges are kept as is"""
        config = SystemConfig(
            parser=ParserConfig(infer_cardinality=False),
            metrics=MetricsConfig(enabled=False),
        )
        result = SchemaParser(config).parse(STUDENT_COURSE, dialect="table-definition")

        assert [r.id for r in result.schema.relationships] == ["rel-1", "rel-2"]
        assert result.junction_tables == []


class TestFixtures:
    """Tests for the sample documents"""

    def test_blog(self, parser):
        """Nested blocks, inline refs and '<' refs in the table-definition dialect"""
        result = parser.parse(fixture_text("blog.dbml"))

        assert result.dialect == "table-definition"
        schema = result.schema
        assert [t.name for t in schema.tables] == ["users", "posts", "comments", "tags", "post_tags"]
        assert schema.column_count() == 17

        _, relationships = structure(schema)
        assert relationships == [
            ("comments", "author_id", "users", "id", "ONE_TO_MANY"),
            ("comments", "post_id", "posts", "id", "ONE_TO_MANY"),
            ("posts", "id", "tags", "id", "MANY_TO_MANY"),
            ("posts", "user_id", "users", "id", "ONE_TO_MANY"),
        ]
        assert [r.id for r in schema.relationships] == ["rel-1", "rel-2", "rel-3", "rel-6"]

        unresolved = result.diagnostics_of(DiagnosticKind.UNRESOLVED_TABLE)
        assert [d.details["table"] for d in unresolved] == ["ghosts"]

    def test_blog_column_details(self, parser):
        schema = parser.parse(fixture_text("blog.dbml")).schema
        users = schema.find_table_by_name("users")
        posts = schema.find_table_by_name("posts")

        assert [c.type for c in users.columns] == ["integer", "varchar(50)", "varchar(255)", "timestamp"]
        assert users.columns[0].has_constraint(ConstraintType.AUTO_INCREMENT)
        assert posts.find_column("body").constraints == []
        assert posts.find_column("status").type == "post_status"

    def test_ecommerce(self, parser):
        """Comments, forward inline references and a junction in DDL"""
        result = parser.parse(fixture_text("ecommerce.sql"))

        assert result.dialect == "ddl"
        schema = result.schema
        assert [t.name for t in schema.tables] == [
            "customers", "products", "categories", "orders", "order_items", "reviews",
        ]
        assert schema.column_count() == 21

        _, relationships = structure(schema)
        assert relationships == [
            ("orders", "customer_id", "customers", "id", "ONE_TO_MANY"),
            ("orders", "id", "products", "id", "MANY_TO_MANY"),
            ("products", "category_id", "categories", "id", "ONE_TO_MANY"),
            ("reviews", "customer_id", "customers", "id", "ONE_TO_MANY"),
            ("reviews", "product_id", "products", "id", "ONE_TO_MANY"),
        ]
        assert [r.id for r in schema.relationships] == ["rel-1", "rel-2", "rel-5", "rel-6", "rel-7"]

    def test_ecommerce_diagnostics(self, parser):
        """Self references, repeated keys and CREATE INDEX are reported"""
        result = parser.parse(fixture_text("ecommerce.sql"))

        assert len(result.diagnostics_of(DiagnosticKind.SELF_REFERENCE)) == 1
        assert len(result.diagnostics_of(DiagnosticKind.DUPLICATE_REFERENCE)) == 1
        assert result.diagnostics_of(DiagnosticKind.DROPPED_LINE)

    def test_ecommerce_column_details(self, parser):
        schema = parser.parse(fixture_text("ecommerce.sql")).schema
        products = schema.find_table_by_name("products")
        customers = schema.find_table_by_name("customers")

        assert products.find_column("price").type == "DECIMAL(10, 2)"
        assert products.find_column("id").has_constraint(ConstraintType.AUTO_INCREMENT)
        assert customers.find_column("email").has_constraint(ConstraintType.UNIQUE)
        assert Constraint(ConstraintType.FOREIGN_KEY, "categories.id") in \
            products.find_column("category_id").constraints

    def test_parsed_schema_survives_storage(self, parser, config, tmp_path):
        """A parsed schema saves, loads and validates unchanged"""
        schema = parser.parse(fixture_text("ecommerce.sql")).schema
        path = str(tmp_path / "ecommerce.yaml")

        schema.save(path)
        loaded = Schema.load(path)

        assert loaded.to_dict() == schema.to_dict()
        assert SchemaValidator(config).validate(loaded).is_valid


class TestValidation:
    """Tests for validating parsed schemas"""

    def test_zero_column_table(self, parser, config):
        """A parsed table without columns fails validation on 'columns'"""
        result = parser.parse("Table empty {\n}\nTable users {\n  id int\n}", dialect="table-definition")
        empty = result.schema.find_table_by_name("empty")

        validation = SchemaValidator(config).validate(result.schema)

        assert not validation.is_valid
        assert [i.field for i in validation.issues_for(empty.id)] == ["columns"]

    def test_empty_document(self, parser, config):
        """Text without tables parses to an empty schema that fails validation"""
        result = parser.parse("// nothing here\n", dialect="table-definition")

        assert result.success
        assert result.schema.tables == []
        assert SchemaValidator(config).validate(result.schema).fields == ["tables"]


class TestInputHandling:
    """Tests for decoding, dialect selection and structural failures"""

    def test_bytes_input(self, parser):
        """UTF-8 bytes parse like text, a leading BOM is ignored"""
        from_text = parser.parse(END_TO_END, dialect="dbml")
        from_bytes = parser.parse(("\ufeff" + END_TO_END).encode("utf-8"), dialect="dbml")

        assert structure(from_bytes.schema) == structure(from_text.schema)

    def test_invalid_utf8(self, parser):
        """Undecodable bytes fail with one error and no schema"""
        result = parser.parse(b"Table users {\xff\xfe}", dialect="dbml")

        assert not result.success
        assert result.schema is None
        assert len(result.errors) == 1
        assert "UTF-8" in result.errors[0].message

    def test_non_text_input(self, parser):
        result = parser.parse(42, dialect="ddl")

        assert not result.success
        assert "int" in result.errors[0].message

    def test_unknown_dialect(self, parser):
        """Unknown dialect tags fail structurally"""
        result = parser.parse(END_TO_END, dialect="xml")

        assert not result.success
        assert result.dialect == "xml"
        assert [e.message for e in result.errors] == ["Unsupported dialect: 'xml'"]

    def test_undetectable_dialect(self, parser):
        result = parser.parse("hello world")

        assert not result.success
        assert len(result.errors) == 1

    def test_detection(self):
        assert detect_dialect(END_TO_END) == Dialect.TABLE_DEFINITION
        assert detect_dialect(fixture_text("ecommerce.sql")) == Dialect.DDL
        assert detect_dialect("SELECT 1;") is None

    def test_configured_default_dialect(self):
        """The configured default is used before detection"""
        config = SystemConfig(
            parser=ParserConfig(default_dialect=Dialect.DDL),
            metrics=MetricsConfig(enabled=False),
        )
        result = SchemaParser(config).parse(END_TO_END)

        assert result.success
        assert result.dialect == "ddl"
        assert result.schema.tables == []

    def test_wrong_dialect_is_not_an_error(self, parser):
        """DDL read as table definitions yields no tables, only diagnostics"""
        result = parser.parse(fixture_text("university.sql"), dialect="table-definition")

        assert result.success
        assert result.schema.tables == []
        assert result.diagnostics_of(DiagnosticKind.DROPPED_LINE)

    def test_can_parse(self, parser):
        assert parser.can_parse(END_TO_END, "table-definition")
        assert parser.can_parse(fixture_text("university.sql"), Dialect.DDL)
        assert not parser.can_parse(END_TO_END, "ddl")
        assert not parser.can_parse(END_TO_END, "xml")
        assert not parser.can_parse(b"\xff", "ddl")

    def test_validate_input(self, parser):
        """Raw input problems are reported on 'input' or 'dialect'"""
        assert parser.validate_input(END_TO_END, "dbml").is_valid
        assert parser.validate_input("   ", "dbml").fields == ["input"]
        assert parser.validate_input(END_TO_END, "xml").fields == ["dialect"]

        result = parser.validate_input("SELECT 1;", "ddl")
        assert result.fields == ["input"]
        assert "CREATE TABLE" in result.issues[0].message

    def test_parse_schema_shortcut(self, config):
        result = parse_schema(END_TO_END, config=config)

        assert result.success
        assert result.dialect == "table-definition"


class TestConcurrency:
    """Tests for parsing from several threads"""

    def test_shared_parser(self, parser):
        """One parser serves concurrent parses with identical results"""
        texts = [fixture_text("ecommerce.sql"), fixture_text("blog.dbml")] * 8

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(parser.parse, texts))

        expected = [structure(parser.parse(text).schema) for text in texts[:2]]
        for i, result in enumerate(results):
            assert result.success
            assert structure(result.schema) == expected[i % 2]
            assert [r.id for r in result.schema.relationships][0] == "rel-1"


class TestMetrics:
    """Tests for parse metrics"""

    def test_parse_metrics_recorded(self):
        """Successful and failed parses are counted per dialect"""
        collector = get_metrics_collector()
        collector.reset()
        collector.enable()
        parser = SchemaParser(SystemConfig())

        parser.parse(fixture_text("university.sql"))
        parser.parse(b"\xff", dialect="ddl")

        assert collector.get_counter("schema_parse_total", {"dialect": "ddl", "success": "true"}) == 1.0
        assert collector.get_counter("schema_parse_total", {"dialect": "ddl", "success": "false"}) == 1.0
        assert collector.get_counter("tables_parsed_total", {"dialect": "ddl"}) == 3.0
        assert collector.get_counter("junction_tables_collapsed_total", {"dialect": "ddl"}) == 1.0

    def test_metrics_disabled(self, parser):
        collector = get_metrics_collector()
        collector.reset()
        collector.enable()

        parser.parse(fixture_text("university.sql"))

        assert collector.get_metrics()["counters"] == {}
