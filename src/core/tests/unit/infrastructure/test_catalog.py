"""Unit tests for PostgresCatalog."""

from infrastructure.database.catalog import ColumnInfo, PostgresCatalog
from shared_kernel.identifiers import SafeIdentifier

WS = SafeIdentifier("school_ws")
STUDENTS = SafeIdentifier("students")


class TestPostgresCatalog:
    """Tests for catalog lookups."""

    def test_namespace_exists_binds_name(self, recording_cursor):
        """Names are bound parameters, not interpolated."""
        cursor = recording_cursor(lambda statement, params: [(True,)])

        assert PostgresCatalog(cursor).namespace_exists(WS)
        text, params = cursor.statements[0]
        assert "school_ws" not in text
        assert params == ("school_ws",)

    def test_columns_in_declaration_order(self, recording_cursor):
        """Column rows map to ColumnInfo."""
        cursor = recording_cursor(
            lambda statement, params: [
                ("id", "integer", "int4", None, 1),
                ("first_name", "character varying", "varchar", 100, 2),
            ]
        )

        columns = PostgresCatalog(cursor).columns(WS, STUDENTS)

        assert columns == [
            ColumnInfo("id", "integer", "int4", None, 1),
            ColumnInfo("first_name", "character varying", "varchar", 100, 2),
        ]
        assert "ORDER BY ordinal_position" in cursor.statements[0][0]

    def test_columns_of_missing_table_is_empty(self, recording_cursor):
        """A missing table has no columns."""
        cursor = recording_cursor()
        assert PostgresCatalog(cursor).columns(WS, STUDENTS) == []

    def test_primary_key_uses_quoted_regclass(self, recording_cursor):
        """The regclass argument is the quoted qualified name."""
        cursor = recording_cursor(lambda statement, params: [("id",)])

        assert PostgresCatalog(cursor).primary_key_columns(WS, STUDENTS) == ["id"]
        assert cursor.statements[0][1] == ('"school_ws"."students"',)

    def test_list_namespaces(self, recording_cursor):
        """School namespaces are listed with an escaped LIKE pattern."""
        cursor = recording_cursor(lambda statement, params: [("school_a",), ("school_b",)])

        assert PostgresCatalog(cursor).list_namespaces() == ["school_a", "school_b"]
        assert cursor.statements[0][1] == ("school\\_%",)
