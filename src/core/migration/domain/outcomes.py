"""Typed per-entity outcomes collected during a migration run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TableStatus(StrEnum):
    """Outcome of copying one table into one namespace."""

    COPIED = "copied"
    SKIPPED = "skipped"
    WARNING = "warning"


@dataclass(frozen=True)
class TypeConflict:
    """A shared column left out of a copy because its types are incompatible."""

    column: str
    source_type: str
    dest_type: str
    reason: str

    def __str__(self) -> str:
        return f"{self.column} ({self.source_type} -> {self.dest_type}: {self.reason})"


@dataclass(frozen=True)
class ColumnMapping:
    """Columns safe to copy from a shared table into a namespace table.

    Attributes:
        table: Table name (same on both sides)
        columns: Ordered intersection by name, excluding the destination
            primary key and type-incompatible columns
        identity_columns: Destination primary key columns also present and
            compatible on the source, copied so ids survive migration
        type_conflicts: Columns dropped because of incompatible types
    """

    table: str
    columns: tuple[str, ...] = ()
    identity_columns: tuple[str, ...] = ()
    type_conflicts: tuple[TypeConflict, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.columns

    @property
    def copy_columns(self) -> tuple[str, ...]:
        """Columns named in the INSERT, identity columns first."""
        return self.identity_columns + self.columns


@dataclass(frozen=True)
class TableOutcome:
    """Result of ``MigrateTable`` for one (school, table) pair."""

    namespace: str
    table: str
    status: TableStatus
    rows_copied: int = 0
    reason: str | None = None
    type_conflicts: tuple[TypeConflict, ...] = ()

    @classmethod
    def copied(
        cls,
        namespace: str,
        table: str,
        rows: int,
        type_conflicts: tuple[TypeConflict, ...] = (),
    ) -> TableOutcome:
        return cls(namespace, table, TableStatus.COPIED, rows, None, type_conflicts)

    @classmethod
    def skipped(cls, namespace: str, table: str, reason: str) -> TableOutcome:
        return cls(namespace, table, TableStatus.SKIPPED, 0, reason)

    @classmethod
    def warning(cls, namespace: str, table: str, reason: str) -> TableOutcome:
        return cls(namespace, table, TableStatus.WARNING, 0, reason)

    def describe(self) -> str:
        target = f"{self.namespace}.{self.table}"
        if self.status == TableStatus.COPIED:
            text = f"Copied {self.rows_copied} rows into {target}"
            if self.type_conflicts:
                dropped = ", ".join(str(c) for c in self.type_conflicts)
                text += f" (columns skipped for type mismatch: {dropped})"
            return text
        if self.status == TableStatus.SKIPPED:
            return f"Skipped {target}: {self.reason}"
        return f"Failed to copy {target}: {self.reason}"


@dataclass
class UserMigrationResult:
    """Counts and per-user problems from ``MigrateUsers``."""

    inserted: int = 0
    merged: int = 0
    linked: int = 0
    orphans_assigned: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.inserted + self.merged
