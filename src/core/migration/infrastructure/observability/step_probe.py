"""Domain probe for individual migration steps.

Captures per-entity events (one table, one user, one school) emitted by
the step implementations. Run-level events live in the application probe.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class MigrationStepProbe(Protocol):
    """Domain probe for migration step internals."""

    def school_registered(self, school_id: int, namespace: str) -> None:
        """Record that a legacy school received its namespace."""
        ...

    def school_registration_failed(self, school_id: int, error: Exception) -> None:
        """Record that a legacy school could not be registered."""
        ...

    def columns_reconciled(
        self, table: str, columns: int, identity: int, conflicts: int
    ) -> None:
        """Record the column mapping computed for a table."""
        ...

    def table_copied(self, namespace: str, table: str, rows: int) -> None:
        """Record a successful table copy."""
        ...

    def table_skipped(self, namespace: str, table: str, reason: str) -> None:
        """Record a table skipped for a benign reason."""
        ...

    def table_failed(self, namespace: str, table: str, error: Exception) -> None:
        """Record a table whose copy failed and was rolled back to its savepoint."""
        ...

    def identity_not_preserved(self, namespace: str, table: str) -> None:
        """Record a copy without source ids (source lacks the primary key)."""
        ...

    def orphan_user_assigned(self, email: str, school_id: int) -> None:
        """Record that a user without a school link was assigned by policy."""
        ...

    def user_skipped(self, email: str, reason: str) -> None:
        """Record that a legacy user was not migrated."""
        ...

    def user_failed(self, email: str, error: Exception) -> None:
        """Record that migrating a legacy user failed."""
        ...

    def sequence_resynced(self, namespace: str, table: str) -> None:
        """Record that a table's id sequence was moved past the copied ids."""
        ...

    def sequence_resync_skipped(
        self, namespace: str, table: str, error: Exception | str
    ) -> None:
        """Record that a table has no usable id sequence."""
        ...

    def with_context(self, context: ObservationContext) -> MigrationStepProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultMigrationStepProbe:
    """Default implementation of MigrationStepProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultMigrationStepProbe:
        return DefaultMigrationStepProbe(logger=self._logger, context=context)

    def school_registered(self, school_id: int, namespace: str) -> None:
        self._logger.info(
            "migration_school_registered",
            school_id=school_id,
            namespace=namespace,
            **self._get_context_kwargs(),
        )

    def school_registration_failed(self, school_id: int, error: Exception) -> None:
        self._logger.warning(
            "migration_school_registration_failed",
            school_id=school_id,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def columns_reconciled(
        self, table: str, columns: int, identity: int, conflicts: int
    ) -> None:
        self._logger.debug(
            "migration_columns_reconciled",
            table=table,
            columns=columns,
            identity_columns=identity,
            type_conflicts=conflicts,
            **self._get_context_kwargs(),
        )

    def table_copied(self, namespace: str, table: str, rows: int) -> None:
        self._logger.info(
            "migration_table_copied",
            namespace=namespace,
            table=table,
            rows=rows,
            **self._get_context_kwargs(),
        )

    def table_skipped(self, namespace: str, table: str, reason: str) -> None:
        self._logger.info(
            "migration_table_skipped",
            namespace=namespace,
            table=table,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def table_failed(self, namespace: str, table: str, error: Exception) -> None:
        self._logger.warning(
            "migration_table_failed",
            namespace=namespace,
            table=table,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def identity_not_preserved(self, namespace: str, table: str) -> None:
        self._logger.warning(
            "migration_identity_not_preserved",
            namespace=namespace,
            table=table,
            **self._get_context_kwargs(),
        )

    def orphan_user_assigned(self, email: str, school_id: int) -> None:
        self._logger.warning(
            "migration_orphan_user_assigned",
            email=email,
            school_id=school_id,
            **self._get_context_kwargs(),
        )

    def user_skipped(self, email: str, reason: str) -> None:
        self._logger.info(
            "migration_user_skipped",
            email=email,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def user_failed(self, email: str, error: Exception) -> None:
        self._logger.warning(
            "migration_user_failed",
            email=email,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def sequence_resynced(self, namespace: str, table: str) -> None:
        self._logger.debug(
            "migration_sequence_resynced",
            namespace=namespace,
            table=table,
            **self._get_context_kwargs(),
        )

    def sequence_resync_skipped(
        self, namespace: str, table: str, error: Exception | str
    ) -> None:
        self._logger.debug(
            "migration_sequence_resync_skipped",
            namespace=namespace,
            table=table,
            error=str(error),
            **self._get_context_kwargs(),
        )
