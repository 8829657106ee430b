"""Unit tests for DDL templates and the statement splitter."""

import pytest

from infrastructure.settings import DEFAULT_TENANT_TABLES
from shared_kernel.identifiers import InvalidIdentifier
from tenancy.infrastructure.templates import (
    PLACEHOLDER,
    PUBLIC_TEMPLATE,
    SCHOOL_TEMPLATE,
    SchemaTemplate,
    load_template,
    split_statements,
)
from tenancy.ports.exceptions import TemplateNotFoundError

SIMPLE = """-- version: 3
CREATE SCHEMA IF NOT EXISTS {SCHEMA_NAME};
CREATE TABLE IF NOT EXISTS {SCHEMA_NAME}.students (id SERIAL PRIMARY KEY);
CREATE INDEX IF NOT EXISTS idx_students ON {SCHEMA_NAME}.students (id);
"""


class TestSchemaTemplate:
    """Tests for SchemaTemplate."""

    def test_render_substitutes_every_occurrence(self):
        """All tokens are replaced by the namespace."""
        rendered = SchemaTemplate("t.sql", SIMPLE).render("school_ws")

        assert PLACEHOLDER not in rendered
        assert rendered.count("school_ws") == 3

    def test_render_is_deterministic(self):
        """Same template and namespace always produce the same DDL."""
        template = SchemaTemplate("t.sql", SIMPLE)
        assert template.render("school_ws") == template.render("school_ws")

    def test_render_rejects_unsafe_namespace(self):
        """Unsafe names never reach the DDL."""
        with pytest.raises(InvalidIdentifier):
            SchemaTemplate("t.sql", SIMPLE).render("ws; DROP SCHEMA public")

    def test_version_header(self):
        """The version comes from the header comment."""
        assert SchemaTemplate("t.sql", SIMPLE).version == "3"
        assert SchemaTemplate("t.sql", "CREATE SCHEMA {SCHEMA_NAME};").version == "unversioned"

    def test_template_without_token_is_rejected(self):
        """A template must be parameterized."""
        with pytest.raises(ValueError):
            SchemaTemplate("t.sql", "CREATE TABLE students (id int);")

    def test_defined_tables(self):
        """Tables are listed in declaration order."""
        assert SchemaTemplate("t.sql", SIMPLE).defined_tables() == ["students"]

    def test_checksum_changes_with_text(self):
        """The checksum identifies the template content."""
        first = SchemaTemplate("t.sql", SIMPLE)
        second = SchemaTemplate("t.sql", SIMPLE + "\n-- trailing\n")
        assert first.checksum != second.checksum

    def test_from_file(self, tmp_path):
        """Templates can be read from disk."""
        path = tmp_path / "custom.sql"
        path.write_text(SIMPLE, encoding="utf-8")

        template = SchemaTemplate.from_file(path)

        assert template.name == "custom.sql"
        assert template.version == "3"


class TestLoadTemplate:
    """Tests for load_template()."""

    def test_packaged_school_template_defines_every_tenant_table(self):
        """The packaged school template creates all migrated tables."""
        template = load_template(SCHOOL_TEMPLATE)
        assert set(DEFAULT_TENANT_TABLES) <= set(template.defined_tables())

    def test_packaged_public_template(self):
        """The packaged shared template creates the registry and directory."""
        tables = load_template(PUBLIC_TEMPLATE).defined_tables()
        assert tables == ["schools", "users", "user_schools", "platform_users"]

    def test_template_dir_override(self, tmp_path):
        """An explicit directory wins over packaged templates."""
        (tmp_path / SCHOOL_TEMPLATE).write_text(SIMPLE, encoding="utf-8")
        assert load_template(SCHOOL_TEMPLATE, tmp_path).version == "3"

    def test_missing_template_in_directory(self, tmp_path):
        """A missing file is reported as TemplateNotFoundError."""
        with pytest.raises(TemplateNotFoundError):
            load_template(SCHOOL_TEMPLATE, tmp_path)

    def test_missing_packaged_template(self):
        """Unknown packaged names are reported as TemplateNotFoundError."""
        with pytest.raises(TemplateNotFoundError):
            load_template("nope.sql")


class TestSplitStatements:
    """Tests for split_statements()."""

    def test_splits_on_semicolons(self):
        """Each statement is returned without its terminator."""
        assert split_statements("SELECT 1; SELECT 2;") == ["SELECT 1", "SELECT 2"]

    def test_trailing_statement_without_semicolon(self):
        """The last statement does not need a terminator."""
        assert split_statements("SELECT 1;\nSELECT 2") == ["SELECT 1", "SELECT 2"]

    def test_semicolon_in_string_literal(self):
        """Quoted semicolons do not split, including escaped quotes."""
        script = "INSERT INTO t VALUES ('a;b', 'it''s;');SELECT 1;"
        assert split_statements(script) == [
            "INSERT INTO t VALUES ('a;b', 'it''s;')",
            "SELECT 1",
        ]

    def test_dollar_quoted_function_body(self):
        """Function bodies with semicolons stay in one statement."""
        script = (
            "CREATE FUNCTION f() RETURNS trigger AS $$\n"
            "BEGIN NEW.updated_at = NOW(); RETURN NEW; END;\n"
            "$$ LANGUAGE plpgsql;\n"
            "SELECT 1;"
        )
        statements = split_statements(script)

        assert len(statements) == 2
        assert statements[0].endswith("LANGUAGE plpgsql")

    def test_tagged_dollar_quotes(self):
        """Named dollar tags are matched exactly."""
        script = "DO $body$ BEGIN PERFORM 1; END $body$;SELECT 2;"
        assert split_statements(script) == ["DO $body$ BEGIN PERFORM 1; END $body$", "SELECT 2"]

    def test_comment_only_chunks_are_dropped(self):
        """Comments alone do not form a statement."""
        script = "-- header; with semicolon\n/* block; */\nSELECT 1;\n-- trailing\n"
        statements = split_statements(script)

        assert len(statements) == 1
        assert statements[0].endswith("SELECT 1")

    def test_packaged_templates_split_cleanly(self):
        """Every packaged statement is non-empty code."""
        for name in (PUBLIC_TEMPLATE, SCHOOL_TEMPLATE):
            rendered = load_template(name).render("school_ws")
            statements = split_statements(rendered)
            assert statements
            assert all(statement.strip() for statement in statements)
