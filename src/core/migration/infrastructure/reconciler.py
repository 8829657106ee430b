"""Column reconciliation between a shared table and a namespace table.

Columns are matched by name in destination declaration order. A matched
column is only copied when its source type can be assigned to the
destination type without narrowing.
"""

from __future__ import annotations

from infrastructure.database.catalog import ColumnInfo, PostgresCatalog
from migration.domain.outcomes import ColumnMapping, TypeConflict
from migration.infrastructure.observability import (
    DefaultMigrationStepProbe,
    MigrationStepProbe,
)
from shared_kernel.identifiers import SafeIdentifier

_INTEGER_RANK = {"int2": 1, "int4": 2, "int8": 3}
_FLOAT_RANK = {"float4": 1, "float8": 2}
_STRING_TYPES = frozenset({"text", "varchar", "bpchar"})
_TIMESTAMP_TYPES = frozenset({"timestamp", "timestamptz"})
_TIME_TYPES = frozenset({"time", "timetz"})


def _is_unbounded_string(column: ColumnInfo) -> bool:
    return column.udt_name == "text" or (
        column.udt_name == "varchar" and column.char_max_length is None
    )


def _length_conflict(source: ColumnInfo, dest: ColumnInfo) -> str | None:
    if dest.char_max_length is None or source.char_max_length is None:
        return None
    if dest.char_max_length < source.char_max_length:
        return (
            f"destination length {dest.char_max_length} is shorter than "
            f"source length {source.char_max_length}"
        )
    return None


def type_conflict_reason(source: ColumnInfo, dest: ColumnInfo) -> str | None:
    """Why ``source`` cannot be copied into ``dest``, or None if it can.

    Accepted combinations:
    - identical types (character lengths must not shrink)
    - any type into an unbounded string column
    - string into string (lengths must not shrink)
    - integer widening, integer or float into numeric, float widening
    - date into timestamp, timestamp with or without time zone
    - time into time with time zone
    """
    src, dst = source.udt_name, dest.udt_name

    if src == dst:
        if src in _STRING_TYPES:
            return _length_conflict(source, dest)
        if source.data_type != dest.data_type:
            return "incompatible types"
        return None

    if _is_unbounded_string(dest):
        return None
    if src in _STRING_TYPES and dst in _STRING_TYPES:
        return _length_conflict(source, dest)

    if src in _INTEGER_RANK and dst in _INTEGER_RANK:
        if _INTEGER_RANK[src] > _INTEGER_RANK[dst]:
            return "integer narrowing"
        return None
    if (src in _INTEGER_RANK or src in _FLOAT_RANK) and dst == "numeric":
        return None
    if src in _INTEGER_RANK and dst in _FLOAT_RANK:
        return None
    if src in _FLOAT_RANK and dst in _FLOAT_RANK:
        if _FLOAT_RANK[src] > _FLOAT_RANK[dst]:
            return "floating point narrowing"
        return None

    if src == "date" and dst in _TIMESTAMP_TYPES:
        return None
    if src in _TIMESTAMP_TYPES and dst in _TIMESTAMP_TYPES:
        return None
    if src in _TIME_TYPES and dst in _TIME_TYPES:
        return None if dst == "timetz" else "time zone would be dropped"

    return "incompatible types"


class ColumnReconciler:
    """Computes the Column Mapping for one table and one namespace."""

    def __init__(
        self,
        catalog: PostgresCatalog,
        probe: MigrationStepProbe | None = None,
    ):
        self._catalog = catalog
        self._probe = probe or DefaultMigrationStepProbe()

    def reconcile(
        self,
        table: SafeIdentifier,
        source_namespace: SafeIdentifier,
        dest_namespace: SafeIdentifier,
    ) -> ColumnMapping:
        """Reconcile the columns of ``table`` across two namespaces.

        Returns an empty mapping when either table is absent.
        """
        source_columns = {
            c.name: c for c in self._catalog.columns(source_namespace, table)
        }
        dest_columns = self._catalog.columns(dest_namespace, table)
        if not source_columns or not dest_columns:
            return ColumnMapping(table=table.value)

        primary_key = set(self._catalog.primary_key_columns(dest_namespace, table))

        columns: list[str] = []
        identity: list[str] = []
        conflicts: list[TypeConflict] = []
        for dest in dest_columns:
            source = source_columns.get(dest.name)
            if source is None:
                continue
            reason = type_conflict_reason(source, dest)
            if reason is not None:
                if dest.name not in primary_key:
                    conflicts.append(
                        TypeConflict(
                            column=dest.name,
                            source_type=_describe(source),
                            dest_type=_describe(dest),
                            reason=reason,
                        )
                    )
                continue
            if dest.name in primary_key:
                identity.append(dest.name)
            else:
                columns.append(dest.name)

        # Identity is only carried over when every key column is present.
        if len(identity) != len(primary_key):
            identity = []

        mapping = ColumnMapping(
            table=table.value,
            columns=tuple(columns),
            identity_columns=tuple(identity),
            type_conflicts=tuple(conflicts),
        )
        self._probe.columns_reconciled(
            table.value, len(mapping.columns), len(mapping.identity_columns), len(conflicts)
        )
        return mapping


def _describe(column: ColumnInfo) -> str:
    if column.char_max_length is not None:
        return f"{column.udt_name}({column.char_max_length})"
    return column.udt_name
