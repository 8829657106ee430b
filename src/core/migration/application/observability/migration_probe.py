"""Domain probe for migration runs.

Mirrors the human-readable run log into structured logs and records the
run's lifecycle events.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class MigrationProbe(Protocol):
    """Domain probe for migration run operations."""

    def run_started(self, run_id: str) -> None:
        """Record that a migration run started."""
        ...

    def step_started(self, step: str) -> None:
        """Record that the run entered a step."""
        ...

    def run_message(self, message: str) -> None:
        """Mirror a run log message."""
        ...

    def run_warning(self, message: str, error: str) -> None:
        """Mirror a recoverable problem recorded on the run."""
        ...

    def run_committed(self, run_id: str, warnings: int, rows_copied: int) -> None:
        """Record that the run's transaction was committed."""
        ...

    def run_rolled_back(self, run_id: str, step: str | None, error: BaseException) -> None:
        """Record that the run's transaction was rolled back."""
        ...

    def rollback_failed(self, error: Exception) -> None:
        """Record that the rollback itself failed (the connection is closed anyway)."""
        ...

    def artifact_written(self, path: str) -> None:
        """Record where the run artifact was persisted."""
        ...

    def artifact_write_failed(self, error: Exception) -> None:
        """Record that the run artifact could not be written."""
        ...

    def with_context(self, context: ObservationContext) -> MigrationProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultMigrationProbe:
    """Default implementation of MigrationProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultMigrationProbe:
        """Create a new probe with observation context bound."""
        return DefaultMigrationProbe(logger=self._logger, context=context)

    def run_started(self, run_id: str) -> None:
        self._logger.info(
            "migration_run_started",
            migration_run=run_id,
            **self._get_context_kwargs(),
        )

    def step_started(self, step: str) -> None:
        self._logger.info(
            "migration_step_started",
            step=step,
            **self._get_context_kwargs(),
        )

    def run_message(self, message: str) -> None:
        self._logger.info(
            "migration_log",
            message=message,
            **self._get_context_kwargs(),
        )

    def run_warning(self, message: str, error: str) -> None:
        self._logger.warning(
            "migration_warning",
            message=message,
            error=error,
            **self._get_context_kwargs(),
        )

    def run_committed(self, run_id: str, warnings: int, rows_copied: int) -> None:
        self._logger.info(
            "migration_run_committed",
            migration_run=run_id,
            warnings=warnings,
            rows_copied=rows_copied,
            **self._get_context_kwargs(),
        )

    def run_rolled_back(self, run_id: str, step: str | None, error: BaseException) -> None:
        self._logger.error(
            "migration_run_rolled_back",
            migration_run=run_id,
            step=step,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def rollback_failed(self, error: Exception) -> None:
        self._logger.error(
            "migration_rollback_failed",
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def artifact_written(self, path: str) -> None:
        self._logger.info(
            "migration_artifact_written",
            path=path,
            **self._get_context_kwargs(),
        )

    def artifact_write_failed(self, error: Exception) -> None:
        self._logger.error(
            "migration_artifact_write_failed",
            error=str(error),
            **self._get_context_kwargs(),
        )
