"""Set-based copy of one shared table into one school namespace."""

from __future__ import annotations

from typing import Any

import psycopg2
from psycopg2 import sql

from infrastructure.database.catalog import PostgresCatalog
from infrastructure.database.errors import error_summary, is_benign
from infrastructure.database.transactions import savepoint
from migration.domain.outcomes import ColumnMapping, TableOutcome
from migration.infrastructure.observability import (
    DefaultMigrationStepProbe,
    MigrationStepProbe,
)
from migration.infrastructure.reconciler import ColumnReconciler
from shared_kernel.identifiers import SafeIdentifier
from tenancy.domain.tenant import Tenant


def build_copy_statement(
    mapping: ColumnMapping,
    source_namespace: SafeIdentifier,
    dest_namespace: SafeIdentifier,
    owner_column: SafeIdentifier | None,
) -> sql.Composed:
    """``INSERT ... SELECT ... ON CONFLICT DO NOTHING`` for a mapping.

    With an owner column the statement takes one parameter, the school id,
    and copies the school's rows plus unowned rows.
    """
    table = SafeIdentifier(mapping.table)
    column_list = sql.SQL(", ").join([sql.Identifier(c) for c in mapping.copy_columns])
    statement = sql.SQL("INSERT INTO {dest} ({columns}) SELECT {columns} FROM {source}").format(
        dest=dest_namespace.qualify(table),
        columns=column_list,
        source=source_namespace.qualify(table),
    )
    if owner_column is not None:
        statement += sql.SQL(" WHERE {owner} = %s OR {owner} IS NULL").format(
            owner=owner_column.sql
        )
    return statement + sql.SQL(" ON CONFLICT DO NOTHING")


class TableMigrator:
    """Copies shared-table rows into school namespaces.

    Each copy is a single statement under its own savepoint, so a failing
    table is rolled back alone and never blocks the tables after it. Non
    database errors are not caught and abort the run.
    """

    def __init__(
        self,
        cursor: Any,
        shared_namespace: SafeIdentifier,
        owner_column: str = "school_id",
        reconciler: ColumnReconciler | None = None,
        probe: MigrationStepProbe | None = None,
    ):
        self._cursor = cursor
        self._catalog = PostgresCatalog(cursor)
        self._shared = shared_namespace
        self._owner_column = SafeIdentifier.of(owner_column)
        self._probe = probe or DefaultMigrationStepProbe()
        self._reconciler = reconciler or ColumnReconciler(self._catalog, probe=self._probe)

    def migrate_table(self, tenant: Tenant, table: str | SafeIdentifier) -> TableOutcome:
        """Copy one table into the tenant's namespace.

        Raises:
            InvalidIdentifier: If the table name is not a safe identifier.
            NamespaceImmutableError: If the tenant has no namespace.
        """
        table_id = SafeIdentifier.of(table)
        namespace = tenant.require_namespace()

        if not self._catalog.table_exists(self._shared, table_id):
            return self._skip(namespace, table_id, "source table does not exist")

        has_owner = self._catalog.has_column(
            self._shared, table_id, self._owner_column.value
        )

        mapping = self._reconciler.reconcile(table_id, self._shared, namespace)
        if mapping.is_empty:
            return self._skip(namespace, table_id, "no columns in common")
        if not mapping.identity_columns:
            self._probe.identity_not_preserved(namespace.value, table_id.value)

        statement = build_copy_statement(
            mapping,
            self._shared,
            namespace,
            self._owner_column if has_owner else None,
        )
        params = (tenant.id,) if has_owner else None

        try:
            with savepoint(self._cursor, prefix="copy"):
                self._cursor.execute(statement, params)
                rows = max(self._cursor.rowcount, 0)
        except psycopg2.Error as e:
            reason = error_summary(e)
            if is_benign(e):
                return self._skip(namespace, table_id, reason)
            self._probe.table_failed(namespace.value, table_id.value, e)
            return TableOutcome.warning(namespace.value, table_id.value, reason)

        self._probe.table_copied(namespace.value, table_id.value, rows)
        return TableOutcome.copied(
            namespace.value, table_id.value, rows, mapping.type_conflicts
        )

    def migrate_tables(
        self, tenant: Tenant, tables: list[str]
    ) -> list[TableOutcome]:
        """Copy every table in order; one outcome per table."""
        return [self.migrate_table(tenant, table) for table in tables]

    def _skip(
        self, namespace: SafeIdentifier, table: SafeIdentifier, reason: str
    ) -> TableOutcome:
        self._probe.table_skipped(namespace.value, table.value, reason)
        return TableOutcome.skipped(namespace.value, table.value, reason)
