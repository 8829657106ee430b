"""Resynchronize id sequences after a bulk copy with explicit ids."""

from __future__ import annotations

from typing import Any

import psycopg2
from psycopg2 import sql

from infrastructure.database.transactions import savepoint
from migration.infrastructure.observability import (
    DefaultMigrationStepProbe,
    MigrationStepProbe,
)
from shared_kernel.identifiers import SafeIdentifier

ID_COLUMN = "id"


def build_resync_statement(namespace: SafeIdentifier, table: SafeIdentifier) -> tuple[sql.Composed, tuple[str, str]]:
    """``setval`` moving the id sequence to ``max(id) + 1`` (1 when empty).

    ``is_called = false`` makes the next ``nextval`` return exactly that value.
    """
    statement = sql.SQL(
        "SELECT setval(pg_get_serial_sequence(%s, %s), "
        "COALESCE((SELECT MAX({id}) FROM {table}), 0) + 1, false)"
    ).format(id=sql.Identifier(ID_COLUMN), table=namespace.qualify(table))
    regclass = f'"{namespace.value}"."{table.value}"'
    return statement, (regclass, ID_COLUMN)


class SequenceResynchronizer:
    """Best-effort repair of forward insert capability.

    Tables without an owned id sequence (or missing entirely) are skipped
    and only reported at debug level. A missing table fails its savepoint;
    a table with no owned sequence makes ``setval`` return NULL.
    """

    def __init__(self, cursor: Any, probe: MigrationStepProbe | None = None):
        self._cursor = cursor
        self._probe = probe or DefaultMigrationStepProbe()

    def resync(self, namespace: SafeIdentifier, tables: list[str]) -> int:
        """Resync each table; returns the number of sequences moved."""
        moved = 0
        for name in tables:
            table = SafeIdentifier.of(name)
            statement, params = build_resync_statement(namespace, table)
            try:
                with savepoint(self._cursor, prefix="seq"):
                    self._cursor.execute(statement, params)
                    row = self._cursor.fetchone()
            except psycopg2.Error as e:
                self._probe.sequence_resync_skipped(namespace.value, table.value, e)
                continue
            if row is None or row[0] is None:
                self._probe.sequence_resync_skipped(
                    namespace.value, table.value, f"no sequence owned by {ID_COLUMN}"
                )
                continue
            moved += 1
            self._probe.sequence_resynced(namespace.value, table.value)
        return moved
