"""Read-only PostgreSQL catalog queries.

Used by provisioning (namespace existence, table checks) and by column
reconciliation (column lists and primary keys). All names are passed as
bound parameters; nothing here interpolates identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from shared_kernel.identifiers import SafeIdentifier

NAMESPACE_PATTERN = "school\\_%"


@dataclass(frozen=True)
class ColumnInfo:
    """One column of a table as reported by information_schema."""

    name: str
    data_type: str
    udt_name: str
    char_max_length: int | None
    position: int


class PostgresCatalog:
    """Catalog lookups over an open psycopg2 cursor.

    The cursor belongs to the caller, so lookups see uncommitted changes of
    the caller's transaction (e.g. namespaces created earlier in a run).
    """

    def __init__(self, cursor: Any):
        self._cursor = cursor

    def namespace_exists(self, namespace: SafeIdentifier) -> bool:
        self._cursor.execute(
            "SELECT EXISTS (SELECT 1 FROM information_schema.schemata "
            "WHERE schema_name = %s)",
            (namespace.value,),
        )
        return bool(self._cursor.fetchone()[0])

    def list_namespaces(self, pattern: str = NAMESPACE_PATTERN) -> list[str]:
        """School namespaces currently present, sorted by name."""
        self._cursor.execute(
            "SELECT schema_name FROM information_schema.schemata "
            "WHERE schema_name LIKE %s ORDER BY schema_name",
            (pattern,),
        )
        return [row[0] for row in self._cursor.fetchall()]

    def table_exists(self, namespace: SafeIdentifier, table: SafeIdentifier) -> bool:
        self._cursor.execute(
            "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = %s AND table_name = %s)",
            (namespace.value, table.value),
        )
        return bool(self._cursor.fetchone()[0])

    def columns(self, namespace: SafeIdentifier, table: SafeIdentifier) -> list[ColumnInfo]:
        """Columns of a table ordered by declaration position.

        Returns an empty list when the table does not exist.
        """
        self._cursor.execute(
            "SELECT column_name, data_type, udt_name, character_maximum_length, "
            "ordinal_position FROM information_schema.columns "
            "WHERE table_schema = %s AND table_name = %s "
            "ORDER BY ordinal_position",
            (namespace.value, table.value),
        )
        return [
            ColumnInfo(
                name=row[0],
                data_type=row[1],
                udt_name=row[2],
                char_max_length=row[3],
                position=row[4],
            )
            for row in self._cursor.fetchall()
        ]

    def has_column(
        self, namespace: SafeIdentifier, table: SafeIdentifier, column: str
    ) -> bool:
        self._cursor.execute(
            "SELECT EXISTS (SELECT 1 FROM information_schema.columns "
            "WHERE table_schema = %s AND table_name = %s AND column_name = %s)",
            (namespace.value, table.value, column),
        )
        return bool(self._cursor.fetchone()[0])

    def primary_key_columns(
        self, namespace: SafeIdentifier, table: SafeIdentifier
    ) -> list[str]:
        """Primary key columns of a table, in key order.

        Returns an empty list when the table does not exist or has no
        primary key.
        """
        self._cursor.execute(
            "SELECT a.attname FROM pg_index i "
            "JOIN pg_attribute a ON a.attrelid = i.indrelid "
            "AND a.attnum = ANY(i.indkey) "
            "WHERE i.indrelid = to_regclass(%s) AND i.indisprimary "
            "ORDER BY array_position(i.indkey::int2[], a.attnum)",
            (f'"{namespace.value}"."{table.value}"',),
        )
        return [row[0] for row in self._cursor.fetchall()]
